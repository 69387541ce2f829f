"""
Utility modules for the appraisal engine.
"""

from .formatting import format_currency, format_percent
from .config import Config
from .coercion import clamp, to_float, to_text, round_half_up, parse_iso_date, parse_iso_datetime

__all__ = [
    "format_currency",
    "format_percent",
    "Config",
    "clamp",
    "to_float",
    "to_text",
    "round_half_up",
    "parse_iso_date",
    "parse_iso_datetime",
]
