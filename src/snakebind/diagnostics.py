"""Location-tagged diagnostics reported by the generator."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from .symbols import SourceSpan


class Severity(enum.Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


# Stable diagnostic codes.
PARSE_ERROR = "SNB001"
GENERATED = "SNB002"
DEGRADED = "SNB003"


@dataclass(frozen=True)
class GeneratorError:
    message: str
    start_line: int
    start_column: int
    end_line: int
    end_column: int
    code: str = PARSE_ERROR
    severity: Severity = Severity.ERROR

    @classmethod
    def at(
        cls,
        span: SourceSpan,
        message: str,
        *,
        code: str = PARSE_ERROR,
        severity: Severity = Severity.ERROR,
    ) -> "GeneratorError":
        return cls(
            message=message,
            start_line=span.start_line,
            start_column=span.start_column,
            end_line=span.end_line,
            end_column=span.end_column,
            code=code,
            severity=severity,
        )

    @classmethod
    def warning(cls, span: SourceSpan, message: str) -> "GeneratorError":
        return cls.at(span, message, code=DEGRADED, severity=Severity.WARNING)

    @property
    def span(self) -> SourceSpan:
        return SourceSpan(self.start_line, self.start_column, self.end_line, self.end_column)

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def format(self, path: str) -> str:
        return (
            f"{path}:{self.start_line}:{self.start_column}: "
            f"{self.severity.value} {self.code}: {self.message}"
        )
