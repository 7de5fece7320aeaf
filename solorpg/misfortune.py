"""Misfortune: the penalty for claiming dice results in chat.

A player who writes "I rolled a 20" instead of rolling gains a stack of
misfortune. The action still goes ahead, but every later roll loses one
point per stack (max 5) and each honest roll removes a stack.
"""

from __future__ import annotations

import re

MISFORTUNE_MAX = 5
PENALTY_PER_STACK = 1
DECAY_PER_HONEST_ROLL = 1

_CLAIMED_ROLL_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        # Portuguese
        r"\b(?:tirei|rolei|rolou|rolamos)\s*(?:um?\s*)?(\d{1,2})\b",
        r"\b(?:dado|dados?)\s*(?:deu|deu\s+em|resultou\s+em)?\s*(\d{1,2})\b",
        r"\b(?:natural\s+)?(\d{1,2})\s*(?:no\s+dado|nos\s+dados)\b",
        # English
        r"\b(?:rolled|rolled\s+a|got|got\s+a)\s*(?:natural\s+)?(\d{1,2})\b",
        r"\b(?:natural\s+)?(\d{1,2})\s*(?:on\s+the\s+die|on\s+dice)\b",
        r"\b(?:the\s+die\s+showed|dice\s+showed)\s*(\d{1,2})\b",
        # Spanish
        r"\b(?:tir[eé]|saqu[eé]|sali[oó])\s*(?:un?\s*)?(\d{1,2})\b",
        r"\b(?:dado|dados?)\s*(?:sali[oó]|dio)\s*(\d{1,2})\b",
    )
)


def detect_claimed_roll(message: str) -> int | None:
    """The d20 value a player message claims to have rolled, if any."""
    trimmed = message.strip()
    if len(trimmed) < 5:
        return None
    for pattern in _CLAIMED_ROLL_PATTERNS:
        match = pattern.search(trimmed)
        if match:
            value = int(match.group(1))
            if 1 <= value <= 20:
                return value
    return None


def misfortune_penalty(misfortune: int) -> int:
    if misfortune <= 0:
        return 0
    return min(misfortune, MISFORTUNE_MAX) * PENALTY_PER_STACK


def apply_misfortune_to_roll(roll_total: int, misfortune: int) -> int:
    return max(1, roll_total - misfortune_penalty(misfortune))


def misfortune_breakdown(roll_total: int, breakdown: str, misfortune: int) -> str:
    if misfortune_penalty(misfortune) <= 0:
        return breakdown
    return f"{breakdown} [misfortune: {apply_misfortune_to_roll(roll_total, misfortune)}]"


def add_misfortune(misfortune: int) -> int:
    return min(MISFORTUNE_MAX, max(0, misfortune) + 1)


def decay_misfortune(misfortune: int) -> int:
    return max(0, misfortune - DECAY_PER_HONEST_ROLL)
