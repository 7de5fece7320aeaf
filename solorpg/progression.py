"""Experience and levelling.

Levels come from a table of cumulative XP thresholds indexed by level - 1.
Gaining a level grants one attribute point per level gained; losing XP may
drop the level but never takes points back.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from solorpg.models import LevelChange, XPAward

APP_XP_TABLE: tuple[int, ...] = (
    0, 600, 1800, 4200, 8400, 15000, 24000, 35000, 48000, 64000,
    84000, 108000, 136000, 168000, 204000, 244000, 288000, 336000, 388000, 444000,
)


def validate_xp_table(table: Sequence[int]) -> None:
    """Raise ValueError unless the table starts at 0 and strictly increases."""
    if not table:
        return
    if table[0] != 0:
        raise ValueError("XP table must start at 0")
    for prev, cur in zip(table, table[1:]):
        if cur <= prev:
            raise ValueError(f"XP table must be strictly increasing ({prev} >= {cur})")


validate_xp_table(APP_XP_TABLE)


def max_level(table: Sequence[int] = APP_XP_TABLE) -> int:
    return max(1, len(table))


def level_from_xp(xp: int, table: Sequence[int] = APP_XP_TABLE) -> int:
    xp = max(0, xp)
    level = 1
    for index, threshold in enumerate(table):
        if xp >= threshold:
            level = index + 1
        else:
            break
    return level


def min_xp_for_level(level: int, table: Sequence[int] = APP_XP_TABLE) -> int:
    if not table or level <= 1:
        return 0
    return table[min(level, len(table)) - 1]


def next_level_xp(level: int, table: Sequence[int] = APP_XP_TABLE) -> float:
    """XP needed for the level after `level`; infinity at the top of the table."""
    if level >= len(table):
        return math.inf
    return table[max(level, 1)]


def progress_to_next_level(xp: int, level: int, table: Sequence[int] = APP_XP_TABLE) -> float:
    """Percentage (0-100) of the way from `level` to the next one."""
    nxt = next_level_xp(level, table)
    if math.isinf(nxt):
        return 100.0
    floor = min_xp_for_level(level, table)
    span = nxt - floor
    if span <= 0:
        return 100.0
    return max(0.0, min(100.0, (xp - floor) / span * 100))


def apply_xp_change(
    current_level: int,
    current_xp: int,
    delta: int,
    table: Sequence[int] = APP_XP_TABLE,
) -> LevelChange:
    new_xp = max(0, current_xp + delta)
    new_level = level_from_xp(new_xp, table)
    return LevelChange(
        leveled_up=new_level > current_level,
        leveled_down=new_level < current_level,
        new_level=new_level,
        new_xp=new_xp,
        attribute_points=max(0, new_level - current_level),
    )


# ---------------------------------------------------------------------------
# Roll XP bonus
# ---------------------------------------------------------------------------

NATURAL_20_BONUS = 25


def _dc_band_bonus(dc: int) -> tuple[int, str]:
    if dc <= 10:
        return 10, "Easy check passed"
    if dc <= 15:
        return 25, "Moderate check passed"
    if dc <= 20:
        return 50, "Hard check passed"
    return 75, "Very hard check passed"


def roll_xp_bonus(
    roll_total: int,
    dc: int | None,
    natural_20: bool = False,
    succeeded: bool | None = None,
) -> XPAward | None:
    """XP earned for beating a DC. None on a failed roll or when no DC was set.

    `succeeded` overrides the plain total >= dc comparison, so a resolved
    natural 20 or natural 1 decides the award.
    """
    if dc is None:
        return None
    if succeeded is None:
        succeeded = roll_total >= dc
    if not succeeded:
        return None
    amount, reason = _dc_band_bonus(dc)
    if natural_20:
        amount += NATURAL_20_BONUS
        reason += " (natural 20!)"
    return XPAward(amount=amount, reason=reason)


# ---------------------------------------------------------------------------
# Chat strings
# ---------------------------------------------------------------------------

def format_xp_message(award: XPAward) -> str:
    sign = "+" if award.amount >= 0 else ""
    return f"✨ {sign}{award.amount} XP - {award.reason}"


def format_level_up_message(new_level: int) -> str:
    return f"🎉 LEVEL UP! You are now Level {new_level}!"
