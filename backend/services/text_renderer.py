"""Bionic reading transform."""
import html
import math
import re
from typing import List, Union

from config import BIONIC_RATIO
from models.reading import Segment
from services.preferences import SessionPreferences

_WHITESPACE_SPLIT = re.compile(r"(\s+)")


def to_bionic(text: str, ratio: float = BIONIC_RATIO) -> List[Segment]:
    """
    Split text into word and whitespace segments, emphasizing the first
    ``ceil(len(word) * ratio)`` characters of each word.

    Whitespace runs are kept verbatim, so joining every ``segment.text``
    reproduces the input exactly.
    """
    segments = []
    for part in _WHITESPACE_SPLIT.split(text):
        if not part:
            continue
        if part.isspace():
            segments.append(Segment(text=part, is_whitespace=True))
        else:
            segments.append(Segment(text=part, bold_length=math.ceil(len(part) * ratio)))
    return segments


def segments_to_html(segments: List[Segment]) -> str:
    """Render segments as HTML with ``<strong>`` prefixes."""
    out = []
    for segment in segments:
        if segment.is_whitespace or not segment.bold:
            out.append(html.escape(segment.text))
        else:
            out.append(f"<strong>{html.escape(segment.bold)}</strong>{html.escape(segment.normal)}")
    return "".join(out)


class TextRenderer:
    """Applies the bionic transform when enabled; identity on raw text otherwise."""

    def __init__(self, preferences: SessionPreferences, ratio: float = BIONIC_RATIO):
        self.preferences = preferences
        self.ratio = ratio

    @property
    def enabled(self) -> bool:
        return self.preferences.bionic_mode

    def render(self, text: str) -> Union[str, List[Segment]]:
        if not self.enabled:
            return text
        return to_bionic(text, self.ratio)

    def toggle(self) -> bool:
        return self.preferences.toggle_bionic_mode()
