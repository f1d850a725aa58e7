"""Formatting utilities for display."""


def format_number(value):
    """Format a sensor number without trailing zeros: 28.0 → '28', 29.20 → '29.2'."""
    if value is None:
        return "N/A"
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return f"{value:.2f}".rstrip("0").rstrip(".")


def format_reading(value, unit=""):
    """Number plus unit, e.g. '29.2°C' or '620ppm'."""
    if value is None:
        return "N/A"
    return f"{format_number(value)}{unit or ''}"


def format_timestamp(ts):
    """Format a datetime to human-readable string."""
    if ts is None:
        return "N/A"
    if isinstance(ts, str):
        return ts
    return ts.strftime("%Y-%m-%d %H:%M:%S UTC")
