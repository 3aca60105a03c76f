from decimal import Decimal, ROUND_HALF_UP

WEIGHT_QUANT = Decimal("0.001")
ZERO_WEIGHT = Decimal("0.000")


def to_weight(value: Decimal | int | float | str | None) -> Decimal:
    if value is None:
        return ZERO_WEIGHT
    return Decimal(str(value)).quantize(WEIGHT_QUANT, rounding=ROUND_HALF_UP)
