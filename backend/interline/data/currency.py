"""Currency utilities — static fallback rates, conversion and price formatting."""

# Static exchange rates to USD (fallback when the live rate service is down)
EXCHANGE_RATES_TO_USD: dict[str, float] = {
    "USD": 1.0,
    "ZAR": 0.055,
    "EUR": 1.08,
    "GBP": 1.27,
    "KES": 0.0077,
    "NGN": 0.00065,
    "EGP": 0.021,
    "GHS": 0.067,
    "ETB": 0.0087,
    "TZS": 0.00039,
    "MAD": 0.1,
    "AED": 0.27,
    "QAR": 0.27,
    "TRY": 0.031,
    "CAD": 0.74,
    "AUD": 0.65,
    "INR": 0.012,
    "SGD": 0.75,
    "HKD": 0.13,
}

CURRENCY_SYMBOLS: dict[str, str] = {
    "ZAR": "R", "USD": "$", "EUR": "€", "GBP": "£",
    "KES": "KSh", "NGN": "₦", "EGP": "E£", "GHS": "GH₵",
    "AED": "AED", "QAR": "QAR", "CAD": "CA$", "AUD": "A$",
}


def static_rate(from_currency: str, to_currency: str) -> float | None:
    """Cross rate via USD from the static table. None if either side is unknown."""
    if from_currency == to_currency:
        return 1.0
    from_usd = EXCHANGE_RATES_TO_USD.get(from_currency)
    to_usd = EXCHANGE_RATES_TO_USD.get(to_currency)
    if not from_usd or not to_usd:
        return None
    return from_usd / to_usd


def format_price(amount: float, currency: str = "ZAR") -> str:
    """Format a price with currency symbol for display."""
    symbol = CURRENCY_SYMBOLS.get(currency, currency + " ")
    return f"{symbol}{round(amount):,}"
