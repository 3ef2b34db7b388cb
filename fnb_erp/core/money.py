from decimal import Decimal, ROUND_HALF_UP

MONEY_QUANT = Decimal("0.01")
UNIT_COST_QUANT = Decimal("0.0001")
QTY_QUANT = Decimal("0.001")
ZERO_MONEY = Decimal("0.00")
ZERO_QTY = Decimal("0.000")


def to_money(value: Decimal | int | float | str) -> Decimal:
    return Decimal(str(value)).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def to_unit_cost(value: Decimal | int | float | str) -> Decimal:
    return Decimal(str(value)).quantize(UNIT_COST_QUANT, rounding=ROUND_HALF_UP)


def to_qty(value: Decimal | int | float | str) -> Decimal:
    return Decimal(str(value)).quantize(QTY_QUANT, rounding=ROUND_HALF_UP)


def weighted_average_cost(
    current_qty: Decimal,
    current_cost: Decimal,
    incoming_qty: Decimal,
    incoming_cost: Decimal,
) -> Decimal:
    total_qty = current_qty + incoming_qty
    if total_qty <= 0:
        return to_unit_cost(incoming_cost)
    return to_unit_cost((current_qty * current_cost + incoming_qty * incoming_cost) / total_qty)


def format_qty(value: Decimal) -> str:
    """Render a quantity without trailing zeros, e.g. 5.000 -> "5", 2.500 -> "2.5"."""
    return f"{to_qty(value).normalize():f}"
