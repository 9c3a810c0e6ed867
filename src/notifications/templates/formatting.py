"""Value formatting shared by the book templates."""

SIGNATURE = "Best regards,\nBook Management System"


def or_na(value) -> str:
    return "N/A" if value is None or value == "" else str(value)


def or_system(value) -> str:
    return value or "System"


def price(value) -> str:
    return "N/A" if value is None else f"${float(value):.2f}"


def timestamp(value) -> str:
    return value.isoformat() if hasattr(value, "isoformat") else or_na(value)
