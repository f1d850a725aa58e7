"""Utility modules for Farm Monitor."""
from utils.logger import setup_logging
from utils.formatters import format_number, format_reading, format_timestamp
