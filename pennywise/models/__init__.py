def format_amount(cents: int) -> str:
    """Format cents as a plain money string: -285050 -> '-2,850.50'"""
    sign = "-" if cents < 0 else ""
    return f"{sign}{abs(cents) / 100:,.2f}"


def parse_amount(text: str) -> int | None:
    """Parse an amount string into cents. Returns None on invalid input.

    Accepts formats like '2850', '2850.5', '2,850.00', '-12.30'.
    """
    text = text.strip().replace(",", "")
    if not text:
        return None
    try:
        return int(round(float(text) * 100))
    except ValueError:
        return None
