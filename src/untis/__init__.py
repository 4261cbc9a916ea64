"""WebUntis timetable changes as speakable text.

Parses the weekly timetable payload into typed periods and renders today's
cancellations and substitutions as German sentences for voice assistants.
"""

from src.untis.catalog import Catalog
from src.untis.extractor import decode_date, decode_time, extract
from src.untis.models import ElementState, Period, PeriodState
from src.untis.renderer import render, render_lines, speakable_text
from src.untis.service import fetch_speakable, speakable_from_payload

__all__ = [
    "Catalog",
    "ElementState",
    "Period",
    "PeriodState",
    "decode_date",
    "decode_time",
    "extract",
    "fetch_speakable",
    "render",
    "render_lines",
    "speakable_from_payload",
    "speakable_text",
]
