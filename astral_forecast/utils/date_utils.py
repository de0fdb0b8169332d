"""Date manipulation utilities"""

from datetime import date, timedelta
from typing import Tuple


def trailing_window(as_of: date, days: int) -> Tuple[date, date]:
    """Inclusive window of `days` days ending on as_of"""
    return as_of - timedelta(days=days - 1), as_of


def upcoming_window(as_of: date, days: int = 30) -> Tuple[date, date]:
    """Inclusive window starting on as_of and covering the next `days` days"""
    return as_of, as_of + timedelta(days=days)
