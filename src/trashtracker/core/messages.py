"""Disposal instructions for predicted waste categories."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum


class WasteCategory(StrEnum):
    TRASH = "trash"
    RECYCLE = "recycle"
    COMPOST = "compost"


@dataclass(frozen=True)
class EmphasisSpan:
    """Half-open ``[start, end)`` range of characters in a message."""

    start: int
    end: int


@dataclass(frozen=True)
class DisplayMessage:
    """Text shown on the result screen, with keyword ranges to highlight."""

    text: str
    emphasis: tuple[EmphasisSpan, ...] = ()
    label: str | None = None
    is_error: bool = False

    def segments(self) -> list[tuple[str, bool]]:
        """Split the text into ``(chunk, emphasized)`` runs for rendering."""
        runs: list[tuple[str, bool]] = []
        cursor = 0
        for span in sorted(self.emphasis, key=lambda s: s.start):
            if span.start > cursor:
                runs.append((self.text[cursor : span.start], False))
            runs.append((self.text[span.start : span.end], True))
            cursor = span.end
        if cursor < len(self.text):
            runs.append((self.text[cursor:], False))
        return runs


INSTRUCTIONS: dict[WasteCategory, str] = {
    WasteCategory.TRASH: (
        "Your object is trash. Dispose of this object by putting it in the trash can and leaving the "
        "trash can at your curb for the local trash services to pick it up."
    ),
    WasteCategory.RECYCLE: (
        "Your object is recycling. Dispose of this object by putting it in the recycling bin and leaving "
        "the bin at your curb for the local recycling services to pick it up. Make sure to keep the object "
        "clean and dry, separate all materials, and flatten and compress."
    ),
    WasteCategory.COMPOST: (
        "Your object is compost. You can dispose of this object by adding it to your flower and vegetable "
        "beds, window boxes, and container gardens, incorporating it into tree beds, mixing it with potting "
        "soil for indoor plants, or spreading it on top of the soil in your yard. Compost can also be used "
        "as a soil amendment or as a mulch."
    ),
}

# Word highlighted in each instruction ("recycle" reads as "recycling").
KEYWORDS: dict[WasteCategory, str] = {
    WasteCategory.TRASH: "trash",
    WasteCategory.RECYCLE: "recycling",
    WasteCategory.COMPOST: "compost",
}

UNRECOGNIZED_PREFIX = "Prediction: "
PREPROCESSING_FAILED = "Failed to process image."
ERROR_PREFIX = "Error: "


def resolve(label: str) -> DisplayMessage:
    """Map a predicted label to its disposal instruction.

    Matching is case-insensitive and exact. Unknown labels are echoed back
    unchanged after ``UNRECOGNIZED_PREFIX``.
    """
    try:
        category = WasteCategory(label.casefold())
    except ValueError:
        return DisplayMessage(text=f"{UNRECOGNIZED_PREFIX}{label}", label=label)

    text = INSTRUCTIONS[category]
    span = find_keyword(text, KEYWORDS[category])
    return DisplayMessage(text=text, emphasis=(span,) if span else (), label=label)


def error_message(text: str) -> DisplayMessage:
    return DisplayMessage(text=text, is_error=True)


def find_keyword(text: str, keyword: str) -> EmphasisSpan | None:
    """Locate the first case-insensitive occurrence of ``keyword`` in ``text``.

    Offsets are ``str`` indices (code points). Returns None when absent.
    """
    if not keyword:
        return None
    match = re.search(re.escape(keyword), text, flags=re.IGNORECASE)
    if match is None:
        return None
    return EmphasisSpan(start=match.start(), end=match.end())
