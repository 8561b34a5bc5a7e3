"""
catalog.py — Static signal tables for the heuristic risk scorer.

Two kinds of tables live here:
  • SIGNALS          — the global weighted phrase table that drives the overall
                       risk score, concerns and text highlights.  Negative
                       weights are protective ("positive") factors.
  • CATEGORY_TERMS   — smaller per-category topic vocabularies used for the
                       four canonical category sub-scores.

Everything is built once at import and never mutated.
"""

from dataclasses import dataclass
from typing import Dict, Tuple


# ─────────────────────────────────────────────────────────────────────────────
# Categories
# ─────────────────────────────────────────────────────────────────────────────

DATA_COLLECTION = "dataCollection"
LIABILITY       = "liability"
TERMINATION     = "termination"
USER_RIGHTS     = "userRights"
LEGAL           = "legal"
PRIVACY         = "privacy"
CHANGES         = "changes"
GENERAL         = "general"

# The four categories every report carries, in display order
CANONICAL_CATEGORIES = (DATA_COLLECTION, LIABILITY, TERMINATION, USER_RIGHTS)

ALL_CATEGORIES = CANONICAL_CATEGORIES + (LEGAL, PRIVACY, CHANGES, GENERAL)

CATEGORY_LABELS = {
    DATA_COLLECTION: "Data Collection",
    LIABILITY:       "Liability",
    TERMINATION:     "Account Termination",
    USER_RIGHTS:     "User Rights",
    LEGAL:           "Legal",
    PRIVACY:         "Privacy",
    CHANGES:         "Terms Changes",
    GENERAL:         "General",
}


@dataclass(frozen=True)
class SignalDefinition:
    phrase:   str
    weight:   int      # signed; negative = risk-reducing
    category: str

    def __post_init__(self):
        if self.category not in ALL_CATEGORIES:
            raise ValueError(f"Unknown category {self.category!r} for {self.phrase!r}")
        if not self.phrase.strip():
            raise ValueError("Signal phrase must not be blank")


def _table(category: str, *entries: Tuple[str, int]) -> Tuple[SignalDefinition, ...]:
    return tuple(SignalDefinition(p, w, category) for p, w in entries)


# ─────────────────────────────────────────────────────────────────────────────
# Global signal table  (overall score, concerns, highlights)
# ─────────────────────────────────────────────────────────────────────────────

SIGNALS: Tuple[SignalDefinition, ...] = (
    _table(DATA_COLLECTION,
        ("sell your data",                  25),
        ("sell your personal information",  25),
        ("shared with third parties",       15),
        ("share your data",                 12),
        ("third-party partners",            10),
        ("location data",                   10),
        ("monitor your behavior",           10),
        ("browsing habits",                  8),
        ("marketing purposes",               8),
        ("tracking technologies",            6),
    )
    + _table(LIABILITY,
        ("unlimited liability",             20),
        ("disclaim all liability",          15),
        ("not liable",                      10),
        ("indemnify",                       10),
        ("hold harmless",                   10),
        ("without warranty",                 8),
        ("not responsible",                  8),
        ("limitation of liability",          7),
        ("as is",                            6),
    )
    + _table(TERMINATION,
        ("without notice",                  15),
        ("at our discretion",               15),
        ("at our sole discretion",          15),
        ("terminate your account",          12),
        ("suspend your account",            10),
        ("retained for business purposes",  10),
    )
    + _table(USER_RIGHTS,
        ("waive all rights",                20),
        ("binding arbitration",             15),
        ("waive your right",                15),
        ("waive their right",               15),
        ("class action",                    12),
        ("cannot opt out",                  12),
        ("jury trial",                       8),
        ("no right",                         8),
    )
    + _table(CHANGES,
        ("modify these terms",              10),
        ("change these terms",              10),
        ("continued use constitutes acceptance", 10),
        ("at any time",                      5),
    )
    + _table(LEGAL,
        ("exclusive jurisdiction",           5),
        ("governing law",                    3),
    )
    + _table(PRIVACY,
        ("we do not sell",                 -10),
        ("delete your data",                -8),
        ("opt out",                         -5),
        ("data protection",                 -5),
        ("right to access",                 -5),
        ("gdpr",                            -5),
        ("ccpa",                            -3),
        ("encrypted",                       -3),
    )
    + _table(GENERAL,
        ("prior notice",                    -5),
        ("full refund",                     -5),
        ("notify you",                      -3),
    )
)

SIGNAL_WEIGHTS: Dict[str, int] = {s.phrase: s.weight for s in SIGNALS}


# ─────────────────────────────────────────────────────────────────────────────
# Category topic tables  (canonical category sub-scores)
# ─────────────────────────────────────────────────────────────────────────────

# Base score each canonical category starts from
CATEGORY_BASE: Dict[str, int] = {
    DATA_COLLECTION: 20,
    LIABILITY:       20,
    TERMINATION:     15,
    USER_RIGHTS:     15,
}

# Weight added per distinct topic term found in that category
CATEGORY_HIT_WEIGHT: Dict[str, int] = {
    DATA_COLLECTION: 6,
    LIABILITY:       8,
    TERMINATION:     10,
    USER_RIGHTS:     7,
}

_CATEGORY_VOCABULARY = {
    DATA_COLLECTION: (
        "collect", "collected", "data collection", "personal data",
        "personal information", "cookies", "tracking", "location",
        "third parties", "browsing", "device information", "analytics",
        "advertising",
    ),
    LIABILITY: (
        "liability", "liable", "warranty", "warranties", "damages",
        "disclaim", "indemnification", "harmless", "loss",
    ),
    TERMINATION: (
        "terminate", "termination", "suspend", "suspension",
        "close your account", "deactivate", "cancel",
    ),
    USER_RIGHTS: (
        "arbitration", "dispute", "waive", "jury", "opt out",
        "your rights", "data portability", "refund", "appeal",
    ),
}

CATEGORY_TERMS: Dict[str, Tuple[SignalDefinition, ...]] = {
    cat: tuple(SignalDefinition(term, CATEGORY_HIT_WEIGHT[cat], cat) for term in terms)
    for cat, terms in _CATEGORY_VOCABULARY.items()
}
