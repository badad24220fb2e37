"""Formatting utilities for archiver console output."""

from datetime import date
from typing import Iterable


def format_date_list(dates: Iterable[date], empty: str = "none") -> str:
    """Format dates as a comma separated list of ISO strings.
    
    Args:
        dates: Dates to format.
        empty: Text returned when there are no dates.
        
    Returns:
        Formatted string.
    """
    formatted = [d.strftime('%Y-%m-%d') for d in dates]
    return ", ".join(formatted) if formatted else empty


def format_duration(seconds: float) -> str:
    """Format a duration for display.
    
    Args:
        seconds: Elapsed seconds.
        
    Returns:
        Human readable duration string.
    """
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, secs = divmod(int(seconds), 60)
    if minutes < 60:
        return f"{minutes}m {secs}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m"


def truncate_string(text: str, max_length: int, suffix: str = "...") -> str:
    """Truncate string to maximum length.
    
    Args:
        text: Text to truncate.
        max_length: Maximum length.
        suffix: Suffix to add when truncating.
        
    Returns:
        Truncated string.
    """
    if len(text) <= max_length:
        return text
    
    return text[:max_length - len(suffix)] + suffix
