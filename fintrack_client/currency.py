# fintrack_client/currency.py

from decimal import ROUND_HALF_UP, Decimal

CURRENCY_SYMBOLS = {
    "USD": "$",
    "INR": "₹",
}
DEFAULT_SYMBOL = "$"


def round_half_up(value: float, places: int = 2) -> Decimal:
    """Round with exact halves going up (62.5 -> 63, 0.125 -> 0.13)."""
    return Decimal(str(value)).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def get_currency_symbol(currency: str) -> str:
    """Symbol for a currency code; unknown codes fall back to the dollar sign."""
    return CURRENCY_SYMBOLS.get(currency, DEFAULT_SYMBOL)


def _group_indian(digits: str) -> str:
    """1234567 -> 12,34,567 (last three digits, then pairs)."""
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    pairs = []
    while len(head) > 2:
        pairs.insert(0, head[-2:])
        head = head[:-2]
    if head:
        pairs.insert(0, head)
    return ",".join(pairs) + "," + tail


def format_currency(amount: float, currency: str) -> str:
    """
    Symbol plus the amount with two decimals and thousands separators.

    INR uses Indian lakh/crore grouping, every other code western grouping:
        format_currency(123456.78, "INR") -> "₹1,23,456.78"
        format_currency(1234.5, "USD")    -> "$1,234.50"
    """
    symbol = get_currency_symbol(currency)
    sign = "-" if amount < 0 else ""
    whole, cents = str(round_half_up(abs(amount))).split(".")

    if currency == "INR":
        grouped = _group_indian(whole)
    else:
        grouped = f"{int(whole):,}"
    return f"{sign}{symbol}{grouped}.{cents}"


def format_currency_simple(amount: float, currency: str) -> str:
    """Symbol plus two decimals, no grouping."""
    symbol = get_currency_symbol(currency)
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{round_half_up(abs(amount))}"
