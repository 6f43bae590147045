"""
Keyword Intent Classifier

Maps a user utterance to a coarse support intent with a confidence score.
Pure function, no I/O.

Tie-breaking contract
---------------------
Intents are scanned in the order of `INTENT_KEYWORDS`. An intent replaces
the current winner only with a strictly greater match count, so on a tie
the intent listed first wins.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_INTENT = "general"

INTENT_KEYWORDS: Sequence[Tuple[str, Tuple[str, ...]]] = (
    ("authentication", ("login", "password", "2fa", "auth", "sign in", "locked", "access")),
    ("billing", ("invoice", "payment", "charge", "subscription", "refund", "billing", "price")),
    ("api", ("api", "endpoint", "request", "response", "401", "403", "500", "error code")),
    ("integration", ("integrate", "webhook", "connect", "setup", "configure")),
    ("account", ("account", "profile", "settings", "email", "name", "delete")),
    ("troubleshooting", ("not working", "error", "issue", "problem", "help", "broken", "fix")),
)


class IntentResult(BaseModel):
    intent: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    topics: List[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


def confidence_for(match_count: int) -> float:
    """0.4 floor, +0.3 per keyword, saturating at 1.0."""
    return min(match_count * 0.3 + 0.4, 1.0)


def classify(message: str) -> IntentResult:
    text = message.lower()

    best_intent = DEFAULT_INTENT
    best_matches: List[str] = []

    for intent, keywords in INTENT_KEYWORDS:
        matches = [kw for kw in keywords if kw in text]
        if len(matches) > len(best_matches):
            best_intent = intent
            best_matches = matches

    return IntentResult(
        intent=best_intent,
        confidence=confidence_for(len(best_matches)),
        topics=list(dict.fromkeys(best_matches)),
    )
