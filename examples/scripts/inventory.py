"""A plain script module: no bindings code, just functions."""

STOCK: dict[str, int] = {}


def restock(item: str, count: int = 1) -> int:
    STOCK[item] = STOCK.get(item, 0) + count
    return STOCK[item]


def levels(items: list[str] | None = None) -> dict[str, int]:
    if items is None:
        return dict(STOCK)
    return {i: STOCK.get(i, 0) for i in items}


def reset(*items, keep_zero=False):
    for i in items or list(STOCK):
        if keep_zero:
            STOCK[i] = 0
        else:
            STOCK.pop(i, None)
