"""Keyword content filter used on both sides of the completion call.

Matching is plain substring matching on the lowercased text, not word-boundary
matching: "killer" and "skillset" both trip the term "kill". This is a known
source of false positives and is kept as-is.
"""

from dataclasses import dataclass
import re
from typing import Iterable, List, Tuple

Denylist = Tuple[str, ...]

REDACTION_MARKER = "[REDACTED]"

DEFAULT_DENYLIST: Denylist = ("kill", "hack", "bomb", "exploit", "violence")

# Capturing group keeps the markers in the split output
_MARKER_SPLIT = re.compile("(" + re.escape(REDACTION_MARKER) + ")")


@dataclass(frozen=True)
class ModerationOutcome:
    flagged: bool
    text: str


def build_denylist(terms: Iterable[str]) -> Denylist:
    """Normalize raw terms: lowercase, strip, drop blanks, keep first occurrence."""
    seen: List[str] = []
    for raw in terms:
        term = (raw or "").strip().lower()
        if term and term not in seen:
            seen.append(term)
    return tuple(seen)


def _active_terms(denylist: Denylist) -> List[str]:
    # Blank terms would match everywhere
    return [term.lower() for term in denylist if term and term.strip()]


def _lower_with_offsets(piece: str) -> Tuple[str, List[int]]:
    """Lowercase ``piece`` and map each lowered char back to its source index.

    A few characters lowercase to more than one char ("İ" -> "i̇").
    """
    lowered = piece.lower()
    origins: List[int] = []
    for i, ch in enumerate(piece):
        origins.extend([i] * len(ch.lower()))
    if len(origins) != len(lowered):
        lowered = "".join(ch.lower() for ch in piece)
    return lowered, origins


def _split_on_term(piece: str, term: str) -> List[str]:
    """Split ``piece`` around every occurrence of ``term`` in its lowercase form.

    A match that covers part of an expanded character takes the whole
    source character with it.
    """
    lowered, origins = _lower_with_offsets(piece)
    parts: List[str] = []
    prev = 0
    pos = lowered.find(term)
    while pos != -1:
        end = pos + len(term)
        start = max(origins[pos], prev)
        parts.append(piece[prev:start])
        prev = origins[end - 1] + 1
        pos = lowered.find(term, end)
    parts.append(piece[prev:])
    return parts


def scan(text: str, denylist: Denylist) -> bool:
    """Return True iff any term occurs in ``text.lower()``."""
    if not text:
        return False
    lowered = text.lower()
    return any(term in lowered for term in _active_terms(denylist))


def redact(text: str, denylist: Denylist) -> ModerationOutcome:
    """Replace every occurrence of every term with ``REDACTION_MARKER``.

    Matching is done on the lowercase form of the text, the same comparison
    ``scan`` uses. Terms are applied in denylist order, repeated until a
    full pass changes nothing. Existing markers are never rescanned, so
    running the redactor on its own output is a no-op.
    """
    terms = _active_terms(denylist)
    if not text or not terms:
        return ModerationOutcome(False, text)

    pieces = _MARKER_SPLIT.split(text)
    flagged = False
    changed = True
    while changed:
        changed = False
        for term in terms:
            out: List[str] = []
            for piece in pieces:
                if piece == REDACTION_MARKER:
                    out.append(piece)
                    continue
                parts = _split_on_term(piece, term)
                if len(parts) > 1:
                    changed = True
                for i, part in enumerate(parts):
                    if i:
                        out.append(REDACTION_MARKER)
                    out.append(part)
            pieces = out
        flagged = flagged or changed

    if not flagged:
        return ModerationOutcome(False, text)
    return ModerationOutcome(True, "".join(pieces))


def pre_moderate(text: str, denylist: Denylist) -> ModerationOutcome:
    # Guard only: the text is passed through untouched
    return ModerationOutcome(scan(text, denylist), text)


def post_moderate(text: str, denylist: Denylist) -> ModerationOutcome:
    return redact(text, denylist)
