from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

# largest value an entries.amount Numeric(12, 2) column holds
MAX_AMOUNT = Decimal("9999999999.99")


class InvalidAmount(ValueError):
    pass


def to_decimal(value):
    """
    Parse a currency amount into a Decimal quantized to cents.

    - Accepts int, float, Decimal and numeric strings ("12.5", "12,50")
    - Raises InvalidAmount for None, blanks, booleans, NaN, infinities
      and amounts beyond MAX_AMOUNT
    """

    if value is None or isinstance(value, bool):
        raise InvalidAmount(f"Invalid amount: {value!r}")

    if isinstance(value, str):
        text = value.strip().replace("€", "").replace(" ", "")
        if "," in text and "." not in text:
            text = text.replace(",", ".")
        value = text
        if not value:
            raise InvalidAmount("Missing amount")

    try:
        # str() keeps floats at their shortest repr (0.1 -> "0.1")
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError) as ex:
        raise InvalidAmount(f"Invalid amount: {value!r}") from ex

    if not amount.is_finite():
        raise InvalidAmount(f"Invalid amount: {value!r}")

    try:
        amount = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation as ex:
        raise InvalidAmount(f"Amount out of range: {value!r}") from ex

    if abs(amount) > MAX_AMOUNT:
        raise InvalidAmount(f"Amount out of range: {value!r}")

    return amount


def money(value):
    """
    Normalize a numeric value to a 2-decimal float suitable for display
    and JSON serialization.
    """

    if value is None:
        return 0.0

    return float(to_decimal(value))
