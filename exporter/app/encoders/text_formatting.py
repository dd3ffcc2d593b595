"""
Text preparation for the paginated-document encoder.

Text is sanitized (typographic punctuation folded to ASCII, control
characters blanked) and cell text is truncated at a word boundary so it
fits its column. Non-Latin text passes through untouched; whether it can
be drawn depends on the configured font (see fonts.py).
"""

from __future__ import annotations

import textwrap

ELLIPSIS = "..."
MIN_CHARS = 5
MAX_CHARS = 50

# 1 pt = 1/72 in; average Helvetica glyph is roughly 0.5-0.6 em wide
_FIT_CHAR_RATIO = 0.6
_ESTIMATE_CHAR_RATIO = 0.5

_TRANSLATION = str.maketrans(
    {
        "\u201c": '"',
        "\u201d": '"',
        "\u2018": "'",
        "\u2019": "'",
        "\u2013": "-",
        "\u2014": "-",
        "\u2026": "...",
    }
)


def sanitize(text: str) -> str:
    folded = text.translate(_TRANSLATION)
    return "".join(" " if ord(c) < 0x20 or ord(c) == 0x7F else c for c in folded)


def truncate(text: str, max_chars: int) -> str:
    """
    Shorten ``text`` to at most ``max_chars`` characters.

    Prefers breaking at a word boundary and appends an ellipsis when
    anything was cut. Long unbroken words are split.
    """
    if len(text) <= max_chars:
        return text

    if max_chars <= len(ELLIPSIS):
        return text[:max_chars]

    available = max_chars - len(ELLIPSIS)
    lines = textwrap.wrap(
        text,
        width=available,
        break_long_words=True,
        break_on_hyphens=False,
    )
    if not lines:
        return ELLIPSIS

    return lines[0].rstrip() + ELLIPSIS


def max_chars_for_width(width_pt: float, font_size: float) -> int:
    fit = int(width_pt / (font_size * _FIT_CHAR_RATIO))
    return min(max(fit, MIN_CHARS), MAX_CHARS)


def estimate_width(text: str, font_size: float) -> float:
    """Approximate rendered width of ``text`` in points."""
    return len(text) * font_size * _ESTIMATE_CHAR_RATIO
