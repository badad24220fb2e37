"""Utility modules for the iMessage archiver."""

from .formatters import format_date_list, format_duration, truncate_string

__all__ = ["format_date_list", "format_duration", "truncate_string"]
