"""Display formatting helpers."""


def format_usd(value: float) -> str:
    """Whole-dollar currency string, e.g. -$1,235."""
    sign = '-' if value < 0 and round(abs(value)) != 0 else ''
    return f"{sign}${abs(value):,.0f}"


def format_percent(value: float, decimals: int = 1) -> str:
    """Format a value already expressed in percent."""
    return f"{value:.{decimals}f}%"


def format_rate(rate: float) -> str:
    """Interest rate as entered, without trailing zeros (22.9 -> '22.9%', 18.0 -> '18%')."""
    return f"{rate:g}%"
