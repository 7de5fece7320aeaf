"""Character creation and effect projection.

The engine never writes to a character. Everything here takes a Character
and returns new values (a projected state, or a copied Character) which the
caller persists if it agrees with them.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable

from solorpg.attributes import default_attributes
from solorpg.inventory import add_items, armor_damage_reduction, create_inventory_item
from solorpg.models import Character, CharacterEffect, ItemDrop, LevelChange, ProjectedState
from solorpg.presets import get_preset, max_hp_for

logger = logging.getLogger(__name__)

DEFAULT_CHARACTER_NAME = "Adventurer"


def max_hit_points(preset_id: str, level: int) -> int:
    return max_hp_for(get_preset(preset_id), level)


def create_character(
    campaign_id: str,
    preset_id: str,
    name: str | None = None,
    attributes: dict[str, int] | None = None,
    starting_items: Iterable[str] = (),
) -> Character:
    """A fresh level 1 character for a campaign, at full HP."""
    hp = max_hit_points(preset_id, 1)
    inventory = [item for item in map(create_inventory_item, starting_items) if item is not None]
    return Character(
        id=uuid.uuid4().hex,
        campaign_id=campaign_id,
        name=name or DEFAULT_CHARACTER_NAME,
        attributes=attributes or default_attributes(),
        hit_points=hp,
        max_hit_points=hp,
        inventory=inventory,
    )


def project_effects(character: Character, effects: Iterable[CharacterEffect]) -> ProjectedState:
    """Apply effects to a copy of the character's HP and resources.

    Damage is reduced by equipped armor (never below 0). HP stays within
    [0, max_hit_points]; resources stay within [0, max] when a max is known.
    damage_roll effects must already carry their rolled amount.
    """
    reduction = armor_damage_reduction(character.equipped_armor, character.inventory)
    hp = character.hit_points
    resources = dict(character.resources)

    for effect in effects:
        if effect.type in ("damage", "damage_roll"):
            hp -= max(0, effect.amount - reduction)
        elif effect.type == "heal":
            hp += max(0, effect.amount)
        elif effect.resource_name:
            value = resources.get(effect.resource_name, 0) + effect.amount
            ceiling = character.max_resources.get(effect.resource_name)
            if ceiling is not None:
                value = min(value, ceiling)
            resources[effect.resource_name] = max(0, value)
        hp = max(0, min(character.max_hit_points, hp))

    return ProjectedState(hit_points=hp, resources=resources, defeated=hp <= 0)


def full_rest(character: Character) -> Character:
    return character.model_copy(
        update={
            "hit_points": character.max_hit_points,
            "resources": dict(character.max_resources),
        }
    )


def apply_level_change(character: Character, change: LevelChange, preset_id: str) -> Character:
    """Copy of the character at its new XP and level, max HP recomputed.

    Current HP rises by the max HP gained on a level up; it is only lowered
    when it would otherwise exceed the new max.
    """
    new_max = max_hit_points(preset_id, change.new_level)
    gained = max(0, new_max - character.max_hit_points)
    hp = min(new_max, character.hit_points + gained)
    return character.model_copy(
        update={
            "level": change.new_level,
            "experience": change.new_xp,
            "max_hit_points": new_max,
            "hit_points": hp,
        }
    )


def apply_item_drops(character: Character, drops: Iterable[ItemDrop]) -> Character:
    inventory = list(character.inventory)
    for drop in drops:
        inventory = add_items(inventory, drop.item_id, drop.quantity)
    return character.model_copy(update={"inventory": inventory})
