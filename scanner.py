"""
scanner.py — Locate catalog phrases in a document.

Matching is case-insensitive and whole-phrase: a phrase never matches inside a
longer word (hyphenated compounds count as one word), and the gap between the
words of a multi-word phrase may be any run of whitespace.  Offsets always
refer to the text exactly as it was passed in.
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, List, Tuple

from catalog import SIGNALS, SignalDefinition


@dataclass(frozen=True)
class Occurrence:
    phrase:   str
    category: str
    weight:   int
    spans:    Tuple[Tuple[int, int], ...]    # (start, end) per match, in text order

    @property
    def positions(self) -> Tuple[int, ...]:
        return tuple(start for start, _ in self.spans)

    @property
    def count(self) -> int:
        return len(self.spans)

    @property
    def first_position(self) -> int:
        return self.spans[0][0]


@lru_cache(maxsize=None)
def phrase_pattern(phrase: str) -> "re.Pattern":
    """Compile (once) the whole-phrase regex for a catalog phrase."""
    words = phrase.split()
    body = r"\s+".join(re.escape(w) for w in words)
    return re.compile(rf"(?<![\w-]){body}(?![\w-])", re.IGNORECASE)


def find_spans(text: str, phrase: str) -> Tuple[Tuple[int, int], ...]:
    """All non-overlapping (start, end) spans of phrase in text."""
    if not text:
        return ()
    return tuple(m.span() for m in phrase_pattern(phrase).finditer(text))


def scan(text: str, catalog: Iterable[SignalDefinition] = SIGNALS) -> List[Occurrence]:
    """
    Return one Occurrence per catalog phrase present in text, in catalog order.
    Phrases that never occur are omitted.
    """
    found = []
    for signal in catalog:
        spans = find_spans(text or "", signal.phrase)
        if spans:
            found.append(Occurrence(
                phrase=signal.phrase,
                category=signal.category,
                weight=signal.weight,
                spans=spans,
            ))
    return found

