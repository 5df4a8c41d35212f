"""
Helper functions for the Case & Report Tracker.

This module contains small display helpers shared by the export service and
the API views.
"""

from typing import Iterable, Optional, Union

from casetrack.models.entities import Prosecutor

NO_VALUE = "None"


def resolve_prosecutor_name(prosecutors: Iterable[Union[Prosecutor, dict]], prosecutor_id: Optional[str]) -> str:
    """Get the display name of a prosecutor by id; unknown ids are shown as-is"""
    if not prosecutor_id:
        return ""
    for prosecutor in prosecutors:
        if isinstance(prosecutor, dict):
            prosecutor = Prosecutor.from_dict(prosecutor)
        if prosecutor.id == prosecutor_id:
            return prosecutor.name
    return prosecutor_id


def format_days(days: Optional[int]) -> str:
    """Format a day count for display, ``None`` when there is nothing to count"""
    if days is None:
        return NO_VALUE
    return f"{days} days"


def single_line(value) -> str:
    """Collapse tabs and line breaks so a value fits in one tab-separated cell"""
    if value is None:
        return ""
    text = str(value)
    for char in ("\r\n", "\r", "\n", "\t"):
        text = text.replace(char, " ")
    return text
