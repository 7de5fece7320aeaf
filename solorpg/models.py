"""Core domain models.

Every engine component consumes and returns these types. Pydantic is used
for validation and serialisation at every data boundary; engine operations
build new instances instead of mutating the ones they were given.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

MessageRole = Literal["user", "ai", "system"]
TurnRole = Literal["user", "assistant"]

EffectType = Literal[
    "damage",
    "damage_roll",
    "heal",
    "spend_resource",
    "restore_resource",
]

Outcome = Literal["critical_failure", "failure", "success", "critical_success"]

EntityType = Literal["character", "npc", "place", "item", "faction", "other"]

ItemType = Literal["consumable", "equipment", "other"]

TurnStatus = Literal["ok", "fallback", "cancelled"]

# Sentinel ids for messages that only live for a single LLM call.
ROLL_RESULT_MESSAGE_ID = "temp-roll-result"
PENDING_PLAYER_MESSAGE_ID = "pending-player-message"


# ---------------------------------------------------------------------------
# Transcript
# ---------------------------------------------------------------------------

class Message(BaseModel):
    """A persisted chat message. Immutable once stored."""

    model_config = ConfigDict(frozen=True)

    id: str
    campaign_id: str
    role: MessageRole
    content: str
    created_at: int = 0  # epoch milliseconds


class Turn(BaseModel):
    """One entry of the transcript sent to the LLM."""

    role: TurnRole
    content: str


# ---------------------------------------------------------------------------
# Directive payloads
# ---------------------------------------------------------------------------

class SuggestedAction(BaseModel):
    """An option the narrator offers the player; regenerated every AI turn."""

    id: str
    label: str
    action: str
    roll_notation: str | None = None
    dc: int | None = None


class CharacterEffect(BaseModel):
    """A proposed change to the character. Spends carry a negative amount."""

    type: EffectType
    amount: int
    roll_notation: str | None = None
    resource_name: str | None = None


class ItemDrop(BaseModel):
    item_id: str
    quantity: int = Field(ge=1)


class RollRequest(BaseModel):
    """A roll the narration asks the player to make."""

    notation: str = "d20"
    dc: int | None = None


class AttributeRollCue(BaseModel):
    """An inline "**Strength (STR)** (DC: 15)" roll suggestion in narration.

    Offsets index into the clean narration; the cue text stays in the prose.
    """

    text: str
    attribute_name: str
    attribute_abbr: str
    attribute: str | None = None  # universal attribute, when recognised
    dc: int | None = None
    start: int
    end: int


class ExtractedDirectives(BaseModel):
    """Narration with every recognised tag removed, plus what was found."""

    clean_content: str
    xp_award: int | None = None
    effects: list[CharacterEffect] = Field(default_factory=list)
    item_drops: list[ItemDrop] = Field(default_factory=list)
    actions: list[SuggestedAction] = Field(default_factory=list)
    roll_request: RollRequest | None = None
    attribute_rolls: list[AttributeRollCue] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Mechanics
# ---------------------------------------------------------------------------

class ResolutionResult(BaseModel):
    outcome: Outcome
    roll_total: int
    dc: int
    margin: int
    narrative_guidance: str


class LevelChange(BaseModel):
    leveled_up: bool
    leveled_down: bool
    new_level: int
    new_xp: int
    attribute_points: int


class XPAward(BaseModel):
    amount: int
    reason: str


class DiceRoll(BaseModel):
    """The outcome of rolling a dice expression."""

    notation: str
    sides: int = 20
    rolls: list[int]
    modifier: int = 0
    total: int
    breakdown: str

    @property
    def natural(self) -> int | None:
        """The face of a single d20, when that is what was rolled."""
        if len(self.rolls) == 1 and self.sides == 20:
            return self.rolls[0]
        return None


class AttributeDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    display_name: str
    description: str
    default_value: int
    min_value: int
    max_value: int


# ---------------------------------------------------------------------------
# Campaign & character
# ---------------------------------------------------------------------------

class Campaign(BaseModel):
    id: str
    title: str
    system: str = "generic"  # sheet preset id or legacy system name
    theme: str = ""
    tone: str = ""


class CampaignSuggestion(BaseModel):
    """A generated campaign idea for a chosen system."""

    title: str
    theme: str
    tone: str


class InventoryItem(BaseModel):
    id: str
    item_id: str
    name: str
    type: ItemType
    quantity: int = 1
    effect: str | None = None  # e.g. "heal:10", "roll_bonus:2,damage_bonus:3"
    description: str | None = None


class Character(BaseModel):
    """The single player character of a campaign."""

    id: str
    campaign_id: str
    name: str
    level: int = 1
    experience: int = 0
    attributes: dict[str, int] = Field(default_factory=dict)
    hit_points: int = 10
    max_hit_points: int = 10
    resources: dict[str, int] = Field(default_factory=dict)
    max_resources: dict[str, int] = Field(default_factory=dict)
    misfortune: int = 0  # 0-5 bad-luck stacks
    inventory: list[InventoryItem] = Field(default_factory=list)
    equipped_weapon: str | None = None
    equipped_armor: str | None = None
    backstory: str | None = None
    personality: str | None = None
    goals: str | None = None
    fears: str | None = None


class ProjectedState(BaseModel):
    """Character condition after a turn's effects, as proposed by the engine."""

    hit_points: int
    resources: dict[str, int] = Field(default_factory=dict)
    defeated: bool = False


# ---------------------------------------------------------------------------
# Memory
# ---------------------------------------------------------------------------

class Entity(BaseModel):
    name: str
    type: EntityType = "other"
    blurb: str = ""


class Fact(BaseModel):
    subject_entity_id: str = ""
    predicate: str
    object: str = ""
    source_message_id: str = ""


class MemoryPayload(BaseModel):
    recap: str = ""
    entities: list[Entity] = Field(default_factory=list)
    facts: list[Fact] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Turns
# ---------------------------------------------------------------------------

class TurnContext(BaseModel):
    """Everything a turn reads. Passed in by the caller, never written back."""

    campaign: Campaign
    messages: list[Message] = Field(default_factory=list)
    character: Character | None = None
    memory: MemoryPayload = Field(default_factory=MemoryPayload)


class TurnResult(BaseModel):
    status: TurnStatus = "ok"
    narration: str = ""
    effects: list[CharacterEffect] = Field(default_factory=list)
    item_drops: list[ItemDrop] = Field(default_factory=list)
    actions: list[SuggestedAction] = Field(default_factory=list)
    roll_request: RollRequest | None = None
    attribute_rolls: list[AttributeRollCue] = Field(default_factory=list)
    xp_award: int | None = None
    roll: DiceRoll | None = None
    roll_xp: XPAward | None = None
    level_change: LevelChange | None = None
    resolution: ResolutionResult | None = None
    projected: ProjectedState | None = None
    claimed_roll: int | None = None
    misfortune: int | None = None  # proposed new stack count
    used_fallback: bool = False
