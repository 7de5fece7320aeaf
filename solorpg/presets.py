"""Sheet presets: narrative skins over the universal mechanic.

A preset only changes flavour (display name, tone, consequence themes) and a
couple of numbers. Every preset rolls d20 + modifier against a DC, uses the
four universal attributes and shares the app-wide XP table.

Formulas are named variants, not callables, so a preset stays plain data:

    SheetPreset.hp_formula        -> _HP_FORMULAS[...](preset, level)
    SheetPreset.modifier_formula  -> _MODIFIER_FORMULAS[...](value)
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from solorpg.attributes import POINT_BUY_TOTAL, universal_modifier

logger = logging.getLogger(__name__)

DEFAULT_PRESET_ID = "generic"


class HpFormula(str, Enum):
    LINEAR = "linear"  # base_hp + (level - 1) * hp_per_level
    FLAT = "flat"  # base_hp at every level


class ModifierFormula(str, Enum):
    UNIVERSAL = "universal"  # step table, -2..+7
    D20_HALF = "d20_half"  # floor((value - 10) / 2)
    OFFSET = "offset"  # value - 5
    NONE = "none"  # always 0


class ConsequenceTheme(BaseModel):
    type: str  # physical | mental | social | resource | environmental
    examples: list[str]


class SheetPreset(BaseModel):
    model_config = ConfigDict(frozen=True)

    preset_id: str
    display_name: str
    narrative_flavor: str
    level_up_points: int = 2
    point_buy_total: int = POINT_BUY_TOTAL
    base_hp: int = 10
    hp_per_level: int = 5
    hp_formula: HpFormula = HpFormula.LINEAR
    modifier_formula: ModifierFormula = ModifierFormula.UNIVERSAL
    consequence_themes: list[ConsequenceTheme] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Formula tables
# ---------------------------------------------------------------------------

_HP_FORMULAS: dict[HpFormula, Callable[[SheetPreset, int], int]] = {
    HpFormula.LINEAR: lambda p, level: p.base_hp + (max(level, 1) - 1) * p.hp_per_level,
    HpFormula.FLAT: lambda p, level: p.base_hp,
}

_MODIFIER_FORMULAS: dict[ModifierFormula, Callable[[int], int]] = {
    ModifierFormula.UNIVERSAL: universal_modifier,
    ModifierFormula.D20_HALF: lambda value: math.floor((value - 10) / 2),
    ModifierFormula.OFFSET: lambda value: value - 5,
    ModifierFormula.NONE: lambda value: 0,
}


def max_hp_for(preset: SheetPreset, level: int) -> int:
    return _HP_FORMULAS[preset.hp_formula](preset, level)


def modifier_for(preset: SheetPreset, value: int) -> int:
    return _MODIFIER_FORMULAS[preset.modifier_formula](value)


# ---------------------------------------------------------------------------
# Presets
# ---------------------------------------------------------------------------

def _themes(**themes: list[str]) -> list[ConsequenceTheme]:
    return [ConsequenceTheme(type=kind, examples=examples) for kind, examples in themes.items()]


SHEET_PRESETS: dict[str, SheetPreset] = {
    p.preset_id: p
    for p in (
        SheetPreset(
            preset_id="dnd-fantasy",
            display_name="D&D-Style Fantasy",
            narrative_flavor=(
                "Classic fantasy adventures with dungeons, magic, and heroic deeds. "
                "Attributes represent physical and mental capabilities."
            ),
            consequence_themes=_themes(
                physical=["HP damage", "exhaustion", "wounded", "bleeding"],
                environmental=["enemies alerted", "trap triggered", "time pressure", "noise attracts danger"],
                resource=["equipment damaged", "supplies lost", "weapon breaks"],
                social=["reputation damage", "NPC distrust", "bounty placed"],
            ),
        ),
        SheetPreset(
            preset_id="cosmic-horror",
            display_name="Cosmic Horror",
            narrative_flavor=(
                "Investigation into the unknown. Face eldritch horrors beyond human comprehension."
            ),
            consequence_themes=_themes(
                mental=["paranoia", "nightmares", "phobias", "delusions"],
                social=["marked as mad", "isolation", "distrust from community"],
                resource=["forbidden tome damaged", "ritual components lost"],
                environmental=["cultists alerted", "entity awakens", "reality warps"],
            ),
        ),
        SheetPreset(
            preset_id="dark-future",
            display_name="Dark Future",
            narrative_flavor=(
                "Cyberpunk dystopia where technology and humanity collide. "
                "Street-level survival in a corporate-controlled world."
            ),
            consequence_themes=_themes(
                social=["Heat gained", "corporate attention", "street cred loss", "wanted by gangs"],
                physical=["cyberware malfunction", "injuries", "chrome rejection", "bleeding out"],
                resource=["eddies lost", "ammo depleted", "gear fried", "contacts burned"],
                environmental=["security alerted", "netrunners trace you", "NCPD incoming"],
            ),
        ),
        SheetPreset(
            preset_id="gothic-vampire",
            display_name="Gothic Vampire",
            narrative_flavor=(
                "Undead existence balancing humanity and the Beast. "
                "Political intrigue among immortals in a world of darkness."
            ),
            consequence_themes=_themes(
                resource=["hunger increases", "vitality depleted"],
                social=["Masquerade breach", "lost standing", "marked by Prince", "domain violated"],
                mental=["Beast stirs", "frenzy risk", "humanity loss", "guilt and remorse"],
                physical=["torpor risk", "damaged", "staked", "burned"],
            ),
        ),
        SheetPreset(
            preset_id="generic",
            display_name="Generic Adventure",
            narrative_flavor=(
                "Flexible narrative experience with simple attributes. Adapt to any story or genre."
            ),
            consequence_themes=_themes(
                physical=["HP damage", "wounded", "exhausted"],
                mental=["stressed", "confused", "demoralized"],
                social=["reputation damaged", "trust lost", "conflict escalates"],
                environmental=["situation worsens", "time pressure", "danger attracts attention"],
            ),
        ),
    )
}

LEGACY_SYSTEM_TO_PRESET: dict[str, str] = {
    "D&D 5e": "dnd-fantasy",
    "Pathfinder 2e": "dnd-fantasy",
    "Call of Cthulhu": "cosmic-horror",
    "Cyberpunk RED": "dark-future",
    "Vampire: The Masquerade": "gothic-vampire",
    "Fate Core": "generic",
    "Powered by the Apocalypse": "generic",
    "OSR (Old School Renaissance)": "generic",
    "Generic/Freeform": "generic",
    "Generic": "generic",
    "Other": "generic",
}


def resolve_preset_id(system: str) -> str:
    """Preset id for a preset id or a legacy system name; unknown -> generic."""
    if system in SHEET_PRESETS:
        return system
    preset_id = LEGACY_SYSTEM_TO_PRESET.get(system)
    if preset_id is None:
        logger.debug("Unknown system %r, using %s preset", system, DEFAULT_PRESET_ID)
        return DEFAULT_PRESET_ID
    return preset_id


def get_preset(system: str) -> SheetPreset:
    return SHEET_PRESETS[resolve_preset_id(system)]


def all_presets() -> list[SheetPreset]:
    return list(SHEET_PRESETS.values())
