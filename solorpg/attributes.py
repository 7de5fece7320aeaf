"""Universal attribute model and legacy attribute migration.

Every sheet preset shares the same four attributes (strength, agility, mind,
presence) on a 1-20 scale. Campaigns created before the universal model kept
per-system stats (STR/DEX, POW/EDU, Strength/Wits...) on their own scales;
migrate() maps those onto the universal set:

    legacy key  --LEGACY_TO_UNIVERSAL-->  universal key
    legacy value  --_rescale-->  1..20

Values above 20 are percentile-style stats (15-99), values 1-5 are dot
ratings, anything else is already on the universal scale. Several legacy
keys may land on the same attribute; the highest value wins, and no migrated
value drops below the default.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Mapping

from solorpg.models import AttributeDefinition

logger = logging.getLogger(__name__)

MIN_ATTRIBUTE = 1
MAX_ATTRIBUTE = 20
DEFAULT_ATTRIBUTE = 5
POINT_BUY_TOTAL = 40


class AttributeAssignmentError(ValueError):
    """Raised when a player-assigned attribute set breaks the point-buy rules."""


# ---------------------------------------------------------------------------
# Universal attribute set
# ---------------------------------------------------------------------------

UNIVERSAL_ATTRIBUTES: tuple[AttributeDefinition, ...] = (
    AttributeDefinition(
        name="strength",
        display_name="Strength",
        description="Physical power, raw strength. Covers melee combat, breaking things, carrying, endurance.",
        default_value=DEFAULT_ATTRIBUTE,
        min_value=MIN_ATTRIBUTE,
        max_value=MAX_ATTRIBUTE,
    ),
    AttributeDefinition(
        name="agility",
        display_name="Agility",
        description="Speed, reflexes, coordination. Covers stealth, dodging, acrobatics, precision.",
        default_value=DEFAULT_ATTRIBUTE,
        min_value=MIN_ATTRIBUTE,
        max_value=MAX_ATTRIBUTE,
    ),
    AttributeDefinition(
        name="mind",
        display_name="Mind",
        description="Intelligence, memory, willpower. Covers investigation, magic, mental resistance, analysis.",
        default_value=DEFAULT_ATTRIBUTE,
        min_value=MIN_ATTRIBUTE,
        max_value=MAX_ATTRIBUTE,
    ),
    AttributeDefinition(
        name="presence",
        display_name="Presence",
        description="Charisma, influence, leadership. Covers persuasion, intimidation, negotiation, command.",
        default_value=DEFAULT_ATTRIBUTE,
        min_value=MIN_ATTRIBUTE,
        max_value=MAX_ATTRIBUTE,
    ),
)

UNIVERSAL_NAMES: tuple[str, ...] = tuple(a.name for a in UNIVERSAL_ATTRIBUTES)
_BY_NAME: dict[str, AttributeDefinition] = {a.name: a for a in UNIVERSAL_ATTRIBUTES}


def get_attribute(name: str) -> AttributeDefinition | None:
    return _BY_NAME.get(name)


def default_attributes() -> dict[str, int]:
    return {a.name: a.default_value for a in UNIVERSAL_ATTRIBUTES}


# ---------------------------------------------------------------------------
# Legacy mapping
# ---------------------------------------------------------------------------

LEGACY_TO_UNIVERSAL: dict[str, str] = {
    # Strength
    "strength": "strength", "STR": "strength", "body": "strength", "BODY": "strength",
    "constitution": "strength", "CON": "strength", "stamina": "strength", "SIZ": "strength",
    # Agility
    "agility": "agility", "dexterity": "agility", "DEX": "agility", "reflexes": "agility",
    "REF": "agility", "move": "agility", "MOVE": "agility", "technique": "agility",
    "TECH": "agility",
    # Mind
    "mind": "mind", "intelligence": "mind", "INT": "mind", "wits": "mind",
    "resolve": "mind", "POW": "mind", "EDU": "mind", "willpower": "mind",
    "WILL": "mind", "cool": "mind", "luck": "mind", "LUCK": "mind",
    # Presence
    "presence": "presence", "charisma": "presence", "CHA": "presence", "APP": "presence",
    "manipulation": "presence", "composure": "presence", "empathy": "presence",
    "EMP": "presence",
}


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp(value: float, low: int = MIN_ATTRIBUTE, high: int = MAX_ATTRIBUTE) -> int:
    return max(low, min(high, _round_half_up(value)))


def _rescale(value: float) -> int:
    if value > 20:
        # Percentile stats (Call of Cthulhu style) span roughly 15-99.
        return _clamp(1 + (min(value, 99) - 15) / 84 * 19)
    if 1 <= value <= 5:
        # Dot ratings (World of Darkness style).
        return _clamp(value * 4)
    return _clamp(value)


def universal_name(key: str) -> str | None:
    """Universal attribute a legacy or universal key maps to, any case."""
    for candidate in (key, key.lower(), key.upper()):
        target = LEGACY_TO_UNIVERSAL.get(candidate)
        if target:
            return target
    return None


def _numeric(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return float(value)


def needs_migration(attributes: Mapping[str, object]) -> bool:
    """True when any key is not one of the four universal names."""
    return any(key not in _BY_NAME for key in attributes)


def clamp_attributes(attributes: Mapping[str, object]) -> dict[str, int]:
    """Repair an already-universal attribute map: fill defaults, round, clamp."""
    result = default_attributes()
    for name in UNIVERSAL_NAMES:
        value = _numeric(attributes.get(name))
        if value is not None:
            result[name] = _clamp(value)
    return result


def migrate(old_attributes: Mapping[str, object]) -> dict[str, int]:
    """Map any attribute set onto the universal four.

    Every attribute starts at the default, which is also the floor for
    migrated values. Already-universal input is only clamped, so migrate()
    is idempotent.
    """
    if not needs_migration(old_attributes):
        return clamp_attributes(old_attributes)

    result = default_attributes()
    for key, raw in old_attributes.items():
        target = universal_name(key)
        value = _numeric(raw)
        if target is None or value is None:
            logger.debug("migrate: ignoring attribute %r=%r", key, raw)
            continue
        result[target] = max(result[target], _rescale(value))

    logger.debug("migrate: %s -> %s", dict(old_attributes), result)
    return result


# ---------------------------------------------------------------------------
# Modifiers & point buy
# ---------------------------------------------------------------------------

_MODIFIER_STEPS: tuple[tuple[int, int], ...] = (
    (2, -2), (4, -1), (6, 0), (8, 1), (10, 2),
    (12, 3), (14, 4), (16, 5), (18, 6),
)


def universal_modifier(value: int) -> int:
    """1-20 attribute value to a -2..+7 roll modifier."""
    for ceiling, modifier in _MODIFIER_STEPS:
        if value <= ceiling:
            return modifier
    return 7


def point_cost(attributes: Mapping[str, int]) -> int:
    return sum(attributes.values())


def validate_assignment(attributes: Mapping[str, int]) -> dict[str, int]:
    """Check a player-assigned attribute set. Raises AttributeAssignmentError."""
    for name, value in attributes.items():
        definition = _BY_NAME.get(name)
        if definition is None:
            raise AttributeAssignmentError(f"Unknown attribute: {name}")
        if not definition.min_value <= value <= definition.max_value:
            raise AttributeAssignmentError(
                f"{definition.display_name} must be between "
                f"{definition.min_value} and {definition.max_value}"
            )
    result = default_attributes()
    result.update(attributes)
    spent = point_cost(result)
    if spent > POINT_BUY_TOTAL:
        raise AttributeAssignmentError(
            f"Attribute points exceed budget: {spent}/{POINT_BUY_TOTAL}"
        )
    return result


_NOTATION_ATTR_RE = re.compile(r"([+-])\s*([A-Za-z]+)")


def resolve_notation_attributes(notation: str, attributes: Mapping[str, int]) -> str:
    """Swap attribute names in a roll notation for their modifiers.

    "d20+strength" with strength 12 -> "d20+3"; "d20-agility" with agility 2
    -> "d20+2". Unknown names are left alone.
    """

    def replace(match: re.Match[str]) -> str:
        target = universal_name(match.group(2))
        if target is None:
            return match.group(0)
        modifier = universal_modifier(attributes.get(target, DEFAULT_ATTRIBUTE))
        if match.group(1) == "-":
            modifier = -modifier
        return f"+{modifier}" if modifier >= 0 else str(modifier)

    return _NOTATION_ATTR_RE.sub(replace, notation)
