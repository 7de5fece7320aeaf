"""Dice notation parsing and rolling.

Notation: [count]d<sides>[+/-modifier], e.g. "d20", "1d20", "2d6+3", "d20-2".

Limits: 1-100 dice, 2-1000 sides, modifier within +/-100. Anything else is a
DiceNotationError. Rolling takes an injected random.Random so callers (and
tests) control the randomness.
"""

from __future__ import annotations

import random
import re
from typing import NamedTuple

from solorpg.models import DiceRoll

_NOTATION_RE = re.compile(r"^(\d*)d(\d+)([+-]\d+)?$")


class DiceNotationError(ValueError):
    """Raised when a dice expression does not match the notation grammar."""


class DiceNotation(NamedTuple):
    count: int
    sides: int
    modifier: int


def parse_dice_notation(notation: str) -> DiceNotation:
    trimmed = notation.strip().lower()
    match = _NOTATION_RE.match(trimmed)
    if not match:
        raise DiceNotationError(
            f'Invalid dice notation: {notation}. Use format like "d20", "2d6", or "2d6+3"'
        )

    count = int(match.group(1)) if match.group(1) else 1
    sides = int(match.group(2))
    modifier = int(match.group(3) or "+0")

    if not 1 <= count <= 100:
        raise DiceNotationError("Dice count must be between 1 and 100")
    if not 2 <= sides <= 1000:
        raise DiceNotationError("Dice sides must be between 2 and 1000")
    if not -100 <= modifier <= 100:
        raise DiceNotationError("Modifier must be between -100 and +100")

    return DiceNotation(count, sides, modifier)


def is_valid_dice_notation(notation: str) -> bool:
    try:
        parse_dice_notation(notation)
    except DiceNotationError:
        return False
    return True


def format_dice_notation(notation: DiceNotation) -> str:
    """DiceNotation(1, 20, 0) -> "d20", DiceNotation(2, 6, -1) -> "2d6-1"."""
    count = "" if notation.count == 1 else str(notation.count)
    if notation.modifier == 0:
        mod = ""
    elif notation.modifier > 0:
        mod = f"+{notation.modifier}"
    else:
        mod = str(notation.modifier)
    return f"{count}d{notation.sides}{mod}"


def _breakdown(rolls: list[int], modifier: int, total: int) -> str:
    rolled = str(rolls[0]) if len(rolls) == 1 else f"[{', '.join(map(str, rolls))}]"
    if modifier == 0:
        return f"{rolled} = {total}"
    sign = f"+ {modifier}" if modifier > 0 else f"- {abs(modifier)}"
    return f"{rolled} {sign} = {total}"


def roll_notation(notation: DiceNotation, rng: random.Random | None = None) -> DiceRoll:
    rng = rng or random.Random()
    rolls = [rng.randint(1, notation.sides) for _ in range(notation.count)]
    total = sum(rolls) + notation.modifier
    return DiceRoll(
        notation=format_dice_notation(notation),
        sides=notation.sides,
        rolls=rolls,
        modifier=notation.modifier,
        total=total,
        breakdown=_breakdown(rolls, notation.modifier, total),
    )


def roll_dice(notation: str, rng: random.Random | None = None) -> DiceRoll:
    """Parse and roll a dice expression. Raises DiceNotationError."""
    return roll_notation(parse_dice_notation(notation), rng)


def roll_with_advantage(notation: str, rng: random.Random | None = None) -> DiceRoll:
    """Roll twice and keep the higher total."""
    first = roll_dice(notation, rng)
    second = roll_dice(notation, rng)
    kept = second if second.total > first.total else first
    return kept.model_copy(
        update={"breakdown": f"{first.breakdown} | {second.breakdown} (advantage)"}
    )


def roll_with_disadvantage(notation: str, rng: random.Random | None = None) -> DiceRoll:
    """Roll twice and keep the lower total."""
    first = roll_dice(notation, rng)
    second = roll_dice(notation, rng)
    kept = second if second.total < first.total else first
    return kept.model_copy(
        update={"breakdown": f"{first.breakdown} | {second.breakdown} (disadvantage)"}
    )
