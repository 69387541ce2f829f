"""
Formatting utilities.
"""


def format_currency(amount: int, currency: str = "ILS") -> str:
    """
    Format an integer amount as currency.

    Args:
        amount: The amount in whole units (e.g., shekels, not agorot).
        currency: Currency code (default ILS).

    Returns:
        Formatted currency string.
    """
    symbols = {
        "ILS": "₪",
        "NIS": "₪",
        "USD": "$",
        "EUR": "€",
    }
    symbol = symbols.get(currency, currency + " ")
    return f"{symbol}{amount:,}"


def format_percent(value: float, decimals: int = 1) -> str:
    """
    Format a number as a percentage.

    Args:
        value: The percentage value.
        decimals: Number of decimal places.

    Returns:
        Formatted percentage string.
    """
    return f"{value:.{decimals}f}%"
