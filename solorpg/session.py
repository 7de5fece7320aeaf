"""Session orchestrator: runs one game turn end-to-end.

Turn flow:
  1. Assemble the transcript from stored history (plus the turn's synthetic
     message: the pending player message or the roll result).
  2. Build the system prompt from campaign, character and memory.
  3. Call the LLM once, streaming chunks to the caller's sink.
  4. Extract directives from the complete response.
  5. Roll damage_roll effects, apply XP through the progression table and
     project HP/resources.
  6. Return a TurnResult. Nothing is persisted and no input is modified;
     the caller decides what to store.

Provider failures never stall the session: an LLMError yields a canned,
language-appropriate narration with used_fallback=True.

One turn is active per orchestrator. cancel() retires the active turn: chunks
that arrive afterwards are dropped and its response is never parsed.
SessionRegistry keeps one orchestrator per client session, so turns of
different sessions never interfere.
"""

from __future__ import annotations

import itertools
import logging
import random
import time
from collections.abc import Sequence
from typing import Protocol

from solorpg.attributes import resolve_notation_attributes
from solorpg.character import project_effects
from solorpg.context import DEFAULT_CONTEXT_WINDOW, assemble_context
from solorpg.dice import DiceNotationError, roll_dice
from solorpg.directives import (
    CampaignSuggestionError,
    MemoryExtractionError,
    extract_directives,
    fallback_suggestion,
    parse_campaign_suggestion,
    parse_memory_payload,
)
from solorpg.i18n import t
from solorpg.inventory import equipment_roll_bonus
from solorpg.llm import LLM, ChunkSink, LLMError
from solorpg.misfortune import (
    add_misfortune,
    apply_misfortune_to_roll,
    decay_misfortune,
    detect_claimed_roll,
    misfortune_breakdown,
)
from solorpg.models import (
    PENDING_PLAYER_MESSAGE_ID,
    ROLL_RESULT_MESSAGE_ID,
    Campaign,
    CampaignSuggestion,
    Character,
    CharacterEffect,
    DiceRoll,
    LevelChange,
    MemoryPayload,
    Message,
    ResolutionResult,
    SuggestedAction,
    Turn,
    TurnContext,
    TurnResult,
    XPAward,
)
from solorpg.presets import get_preset, resolve_preset_id
from solorpg.progression import apply_xp_change, roll_xp_bonus
from solorpg.prompts import (
    build_campaign_prompt,
    build_campaign_request,
    build_defeat_prompt,
    build_memory_prompt,
    build_roll_instruction,
    build_system_prompt,
)
from solorpg.resolution import is_success, resolve

logger = logging.getLogger(__name__)

DEFEAT_MESSAGE_ID = "death-trigger"
DEFAULT_MEMORY_WINDOW = 10


class CampaignStore(Protocol):
    """Read-only view of persisted campaign data."""

    def get_campaign(self, campaign_id: str) -> Campaign | None: ...

    def get_messages(self, campaign_id: str) -> list[Message]: ...

    def get_character(self, campaign_id: str) -> Character | None: ...

    def get_memory(self, campaign_id: str) -> MemoryPayload | None: ...


def load_context(store: CampaignStore, campaign_id: str) -> TurnContext:
    campaign = store.get_campaign(campaign_id)
    if campaign is None:
        raise ValueError(f"Campaign not found: {campaign_id}")
    return TurnContext(
        campaign=campaign,
        messages=store.get_messages(campaign_id),
        character=store.get_character(campaign_id),
        memory=store.get_memory(campaign_id) or MemoryPayload(),
    )


def _synthetic(ctx: TurnContext, message_id: str, content: str) -> Message:
    return Message(
        id=message_id,
        campaign_id=ctx.campaign.id,
        role="user",
        content=content,
        created_at=int(time.time() * 1000),
    )


class SessionOrchestrator:
    """Drives turns for one session. Construct one per session."""

    def __init__(
        self,
        llm: LLM,
        *,
        language: str = "en",
        rng: random.Random | None = None,
        context_window: int = DEFAULT_CONTEXT_WINDOW,
        memory_window: int = DEFAULT_MEMORY_WINDOW,
    ) -> None:
        self._llm = llm
        self._language = language
        self._rng = rng or random.Random()
        self._context_window = context_window
        self._memory_window = memory_window
        self._tokens = itertools.count(1)
        self._active: int | None = None

    # -----------------------------------------------------------------------
    # Public turn operations
    # -----------------------------------------------------------------------

    async def play_turn(
        self, ctx: TurnContext, player_message: str, on_chunk: ChunkSink | None = None
    ) -> TurnResult:
        """Narrate the response to a free-text player message.

        `ctx.messages` is the history before this message.
        """
        messages = list(ctx.messages)
        if player_message.strip():
            messages.append(_synthetic(ctx, PENDING_PLAYER_MESSAGE_ID, player_message))

        result = await self._narrate(
            ctx,
            messages,
            self._system_prompt(ctx),
            on_chunk,
            fallback=t("ai_error_notice", self._language),
        )

        claimed = detect_claimed_roll(player_message)
        if claimed is not None and result.status != "cancelled":
            logger.info("Player claimed a roll of %d", claimed)
            current = ctx.character.misfortune if ctx.character else 0
            result = result.model_copy(
                update={"claimed_roll": claimed, "misfortune": add_misfortune(current)}
            )
        return result

    async def play_roll(
        self,
        ctx: TurnContext,
        roll: DiceRoll,
        dc: int | None = None,
        on_chunk: ChunkSink | None = None,
    ) -> TurnResult:
        """Narrate the outcome of a roll the system made for the player."""
        misfortune = ctx.character.misfortune if ctx.character else 0
        total = apply_misfortune_to_roll(roll.total, misfortune)
        roll = roll.model_copy(
            update={"breakdown": misfortune_breakdown(roll.total, roll.breakdown, misfortune)}
        )

        resolution = self._resolve(roll, total, dc)
        roll_xp = roll_xp_bonus(
            total,
            dc,
            natural_20=roll.natural == 20,
            succeeded=is_success(resolution) if resolution else None,
        )

        messages = list(ctx.messages)
        messages.append(
            _synthetic(ctx, ROLL_RESULT_MESSAGE_ID, f"[Player rolled {roll.notation} and got {total}]")
        )
        system_prompt = (
            self._system_prompt(ctx)
            + "\n\n"
            + build_roll_instruction(
                roll.notation, total, resolution.model_dump() if resolution else None
            )
        )

        result = await self._narrate(
            ctx,
            messages,
            system_prompt,
            on_chunk,
            fallback=t("ai_error_notice", self._language),
            roll_xp=roll_xp,
        )
        if result.status == "cancelled":
            return result
        return result.model_copy(
            update={
                "roll": roll,
                "resolution": resolution,
                "misfortune": decay_misfortune(misfortune) if ctx.character else None,
            }
        )

    async def act(
        self, ctx: TurnContext, action: SuggestedAction, on_chunk: ChunkSink | None = None
    ) -> TurnResult:
        """Take a suggested action, rolling for it when it carries a roll."""
        if not action.roll_notation:
            return await self.play_turn(ctx, action.action, on_chunk)

        roll = self.roll_for(ctx.character, action.roll_notation)
        history = ctx.model_copy(
            update={
                "messages": list(ctx.messages)
                + [_synthetic(ctx, PENDING_PLAYER_MESSAGE_ID, action.action)]
            }
        )
        return await self.play_roll(history, roll, action.dc, on_chunk)

    def roll_for(self, character: Character | None, notation: str) -> DiceRoll:
        """Roll a notation that may name attributes ("1d20+strength").

        Attribute names become their modifiers and carried equipment adds
        its roll bonus. An unusable notation falls back to a plain d20.
        """
        attributes = character.attributes if character else {}
        resolved = resolve_notation_attributes(notation, attributes)
        try:
            roll = roll_dice(resolved, self._rng)
        except DiceNotationError:
            logger.warning("Unusable roll notation %r, rolling d20", notation)
            roll = roll_dice("d20", self._rng)

        bonus = equipment_roll_bonus(character.inventory) if character else 0
        if bonus:
            roll = roll.model_copy(
                update={
                    "modifier": roll.modifier + bonus,
                    "total": roll.total + bonus,
                    "breakdown": f"{roll.breakdown} (+{bonus} equipment = {roll.total + bonus})",
                }
            )
        return roll

    async def start_campaign(self, ctx: TurnContext, on_chunk: ChunkSink | None = None) -> TurnResult:
        """Opening narration for a new campaign."""
        fallback = t(
            "start_fallback",
            self._language,
            theme=ctx.campaign.theme,
            tone=ctx.campaign.tone,
            system=get_preset(ctx.campaign.system).display_name,
        )
        return await self._narrate(ctx, list(ctx.messages), self._system_prompt(ctx), on_chunk, fallback)

    async def narrate_defeat(self, ctx: TurnContext, on_chunk: ChunkSink | None = None) -> TurnResult:
        """Game-over narration once the character's HP reaches zero."""
        name = ctx.character.name if ctx.character else "The hero"
        messages = list(ctx.messages) + [
            _synthetic(ctx, DEFEAT_MESSAGE_ID, build_defeat_prompt(name, ctx.campaign.tone))
        ]
        result = await self._narrate(
            ctx,
            messages,
            self._system_prompt(ctx),
            on_chunk,
            fallback=t("game_over", self._language, name=name),
        )
        if result.status != "ok":
            return result
        return TurnResult(
            narration=t("game_over_wrapper", self._language, narration=result.narration),
        )

    async def extract_memory(self, messages: Sequence[Message]) -> MemoryPayload:
        """Summarise recent history into recap, entities and facts.

        Any provider or parse failure yields an empty payload.
        """
        labelled = [
            m.model_copy(update={
                "role": "ai" if m.role == "ai" else "user",
                "content": f"[{m.id}] {m.content}",
            })
            for m in messages
        ]
        turns = assemble_context(labelled, self._memory_window)
        try:
            text = await self._llm.send_once(build_memory_prompt(self._language), turns)
            return parse_memory_payload(text)
        except (LLMError, MemoryExtractionError) as e:
            logger.warning("Memory extraction failed: %s", e)
            return MemoryPayload()

    async def suggest_campaign(self, system: str) -> CampaignSuggestion:
        """Generate a campaign idea for a preset id or legacy system name.

        Any provider or parse failure yields a canned idea for the system.
        """
        name = get_preset(system).display_name if resolve_preset_id(system) == system else system
        turns = [Turn(role="user", content=build_campaign_request(name))]
        try:
            text = await self._llm.send_once(build_campaign_prompt(name, self._language), turns)
            return parse_campaign_suggestion(text)
        except (LLMError, CampaignSuggestionError) as e:
            logger.warning("Campaign suggestion failed: %s", e)
            return fallback_suggestion(system)

    def cancel(self) -> None:
        """Retire the in-flight turn, if any."""
        if self._active is not None:
            logger.info("Cancelling turn %d", self._active)
        self._active = None

    # -----------------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------------

    def _system_prompt(self, ctx: TurnContext) -> str:
        return build_system_prompt(ctx.campaign, ctx.character, ctx.memory, self._language)

    @staticmethod
    def _resolve(roll: DiceRoll, total: int, dc: int | None) -> ResolutionResult | None:
        if dc is None:
            return None
        face = roll.natural
        if face is None:
            return resolve(total, 0, dc, is_natural_1=False, is_natural_20=False)
        return resolve(face, total - face, dc)

    def _guarded_sink(self, token: int, on_chunk: ChunkSink | None) -> ChunkSink:
        def sink(chunk: str) -> None:
            if self._active != token:
                logger.debug("Dropping late chunk for turn %d", token)
                return
            if on_chunk is not None:
                on_chunk(chunk)

        return sink

    @staticmethod
    def _level_change(character: Character | None, xp_delta: int) -> LevelChange | None:
        if character is None or not xp_delta:
            return None
        return apply_xp_change(character.level, character.experience, xp_delta)

    def _roll_damage(self, effects: list[CharacterEffect]) -> list[CharacterEffect]:
        rolled = []
        for effect in effects:
            if effect.type == "damage_roll" and effect.roll_notation:
                damage = roll_dice(effect.roll_notation, self._rng)
                logger.debug("damage_roll %s -> %s", effect.roll_notation, damage.breakdown)
                effect = effect.model_copy(update={"amount": max(0, damage.total)})
            rolled.append(effect)
        return rolled

    async def _narrate(
        self,
        ctx: TurnContext,
        messages: list[Message],
        system_prompt: str,
        on_chunk: ChunkSink | None,
        fallback: str,
        roll_xp: XPAward | None = None,
    ) -> TurnResult:
        token = next(self._tokens)
        self._active = token
        turns = assemble_context(messages, self._context_window)

        try:
            raw = await self._llm.send_streaming(system_prompt, turns, self._guarded_sink(token, on_chunk))
        except LLMError as e:
            if self._active != token:
                return TurnResult(status="cancelled")
            self._active = None
            logger.info("LLM unavailable, using fallback narration: %s", e)
            return TurnResult(
                status="fallback",
                narration=fallback,
                used_fallback=True,
                roll_xp=roll_xp,
                level_change=self._level_change(ctx.character, roll_xp.amount if roll_xp else 0),
            )

        if self._active != token:
            logger.info("Discarding response of cancelled turn %d", token)
            return TurnResult(status="cancelled")
        self._active = None

        directives = extract_directives(raw)
        effects = self._roll_damage(directives.effects)

        xp_delta = (directives.xp_award or 0) + (roll_xp.amount if roll_xp else 0)
        character = ctx.character

        return TurnResult(
            narration=directives.clean_content,
            effects=effects,
            item_drops=directives.item_drops,
            actions=directives.actions,
            roll_request=directives.roll_request,
            attribute_rolls=directives.attribute_rolls,
            xp_award=directives.xp_award,
            roll_xp=roll_xp,
            level_change=self._level_change(character, xp_delta),
            projected=project_effects(character, effects) if character else None,
        )


class SessionRegistry:
    """One orchestrator per client session, all sharing one LLM client.

    Turns of different sessions never cancel each other. Requests without a
    session id get a throwaway orchestrator.
    """

    def __init__(self, llm: LLM, **options) -> None:
        self._llm = llm
        self._options = options
        self._sessions: dict[str, SessionOrchestrator] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def new(self) -> SessionOrchestrator:
        return SessionOrchestrator(self._llm, **self._options)

    def get(self, session_id: str | None = None) -> SessionOrchestrator:
        if session_id is None:
            return self.new()
        session = self._sessions.get(session_id)
        if session is None:
            logger.debug("Opening session %s", session_id)
            session = self._sessions[session_id] = self.new()
        return session

    def cancel(self, session_id: str) -> bool:
        """Cancel the session's in-flight turn. False for an unknown session."""
        session = self._sessions.get(session_id)
        if session is None:
            return False
        session.cancel()
        return True

    def close(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None
