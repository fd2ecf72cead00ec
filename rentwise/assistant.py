# Scripted housing FAQ assistant.
# Replies come from a fixed question -> answer table; unknown questions get a generic follow-up prompt.
from __future__ import annotations

import time
from typing import Dict, Optional, Tuple

GREETING = "Hi! I'm your housing assistant. How can I help you today?"

FALLBACK_ANSWER = (
    "I'll help you find the perfect housing solution. "
    "Could you please be more specific about what you're looking for?"
)

QUICK_QUESTIONS: Tuple[str, ...] = (
    "What areas are available?",
    "What's the average rent?",
    "Are utilities included?",
    "Is parking available?",
)

FAQ_ANSWERS: Dict[str, str] = {
    "What areas are available?": (
        "We have properties available in Potomac Yard, Crystal City, and Pentagon City - "
        "all convenient to Virginia Tech's Alexandria campus."
    ),
    "What's the average rent?": (
        "The average rent ranges from $1,800 for studios to $3,500 for 3-bedroom units "
        "in the Alexandria area."
    ),
    "Are utilities included?": (
        "Utility inclusion varies by property. Most properties include water, but electricity "
        "and internet are typically tenant responsibilities."
    ),
    "Is parking available?": (
        "Many properties offer parking options, either included in rent or available for an "
        "additional fee. Street parking is also available in some areas."
    ),
}

_NORMALIZED_ANSWERS = {q.strip().casefold(): a for q, a in FAQ_ANSWERS.items()}


def lookup_answer(text: str) -> Optional[str]:
    """Return the scripted answer for `text`, ignoring case and surrounding whitespace."""
    return _NORMALIZED_ANSWERS.get((text or "").strip().casefold())


def answer(text: str) -> Tuple[str, bool]:
    """Return (reply, matched) where matched is False for the fallback reply."""
    found = lookup_answer(text)
    if found is None:
        return FALLBACK_ANSWER, False
    return found, True


class TokenBucket:
    """
    Simple token bucket limiter.
    - rate: tokens per second (refill)
    - capacity: max burst tokens
    consume(1) returns True if allowed, False if throttled.
    """
    def __init__(self, rate: float, capacity: int) -> None:
        self.rate = rate
        self.capacity = capacity
        self.tokens = float(capacity)
        self.ts = time.monotonic()

    def consume(self, amount: float = 1.0) -> bool:
        now = time.monotonic()
        self.tokens = min(self.capacity, self.tokens + (now - self.ts) * self.rate)
        self.ts = now
        if self.tokens >= amount:
            self.tokens -= amount
            return True
        return False
