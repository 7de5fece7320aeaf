"""FastAPI API endpoints under /api.

Endpoint groups: health and settings, mechanics (resolve, narrative risk,
progression, attribute migration, dice, presets), directive extraction and
context assembly, and the session (turn, roll, memory extraction, campaign
suggestions).

Session endpoints are stateless: the caller posts the full TurnContext and
persists whatever it wants from the returned TurnResult.
"""

from __future__ import annotations

import math

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from solorpg.attributes import migrate
from solorpg.config import get_config, update_config
from solorpg.context import DEFAULT_CONTEXT_WINDOW, assemble_context
from solorpg.dice import DiceNotationError, roll_dice
from solorpg.directives import extract_directives
from solorpg.models import (
    DiceRoll,
    Message,
    SuggestedAction,
    TurnContext,
)
from solorpg.presets import all_presets
from solorpg.progression import apply_xp_change, level_from_xp, next_level_xp, progress_to_next_level
from solorpg.resolution import narrative_risk, resolve
from solorpg.session import SessionOrchestrator

router = APIRouter()


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------

class ResolveBody(BaseModel):
    roll: int = Field(ge=1, le=20)
    modifier: int = 0
    dc: int
    is_natural_1: bool | None = None
    is_natural_20: bool | None = None


class XPChangeBody(BaseModel):
    level: int = Field(ge=1)
    xp: int = Field(ge=0)
    delta: int


class MigrateBody(BaseModel):
    attributes: dict[str, float | int]


class RollBody(BaseModel):
    notation: str


class TextBody(BaseModel):
    text: str


class AssembleBody(BaseModel):
    messages: list[Message]
    window: int = Field(DEFAULT_CONTEXT_WINDOW, ge=1)


class TurnBody(BaseModel):
    context: TurnContext
    message: str


class RollTurnBody(BaseModel):
    context: TurnContext
    roll: DiceRoll
    dc: int | None = None


class ActionBody(BaseModel):
    context: TurnContext
    action: SuggestedAction


class SuggestBody(BaseModel):
    system: str


class MemoryBody(BaseModel):
    messages: list[Message]


def _session(request: Request, session_id: str | None = None) -> SessionOrchestrator:
    return request.app.state.sessions.get(session_id)


# ---------------------------------------------------------------------------
# Health & settings
# ---------------------------------------------------------------------------

@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.get("/settings")
async def get_settings():
    """Get engine settings with the API key masked."""
    config = get_config()
    config["api_key"] = "***" if config["api_key"] else ""
    return config


@router.patch("/settings")
async def update_settings(body: dict):
    """Update engine settings (partial merge). Takes effect on restart."""
    config = update_config(body)
    config["api_key"] = "***" if config["api_key"] else ""
    return config


# ---------------------------------------------------------------------------
# Mechanics
# ---------------------------------------------------------------------------

@router.post("/resolve")
async def resolve_check(body: ResolveBody):
    """Resolve a d20 check against a DC."""
    return resolve(body.roll, body.modifier, body.dc, body.is_natural_1, body.is_natural_20)


@router.get("/narrative-risk")
async def get_narrative_risk(dc: int):
    return {"dc": dc, "guidance": narrative_risk(dc)}


@router.get("/progression")
async def get_progression(xp: int):
    """Level and progress for an XP total."""
    if xp < 0:
        raise HTTPException(400, "XP cannot be negative")
    level = level_from_xp(xp)
    next_xp = next_level_xp(level)
    return {
        "level": level,
        "next_level_xp": None if math.isinf(next_xp) else int(next_xp),
        "progress": progress_to_next_level(xp, level),
    }


@router.post("/progression/xp")
async def change_xp(body: XPChangeBody):
    return apply_xp_change(body.level, body.xp, body.delta)


@router.post("/attributes/migrate")
async def migrate_attributes(body: MigrateBody):
    """Map legacy attributes onto the universal set."""
    return migrate(body.attributes)


@router.post("/dice/roll")
async def roll(body: RollBody):
    try:
        return roll_dice(body.notation)
    except DiceNotationError as e:
        raise HTTPException(400, str(e))


@router.get("/presets")
async def list_presets():
    return all_presets()


# ---------------------------------------------------------------------------
# Directives & context
# ---------------------------------------------------------------------------

@router.post("/directives/extract")
async def extract(body: TextBody):
    """Strip directive tags from narration and return what was found."""
    return extract_directives(body.text)


@router.post("/context/assemble")
async def assemble(body: AssembleBody):
    return assemble_context(body.messages, body.window)


# ---------------------------------------------------------------------------
# Session
#
# Turn endpoints take an optional ?session_id=. Turns sharing a session id
# share one orchestrator (and cancel); without one each request is isolated.
# ---------------------------------------------------------------------------

@router.post("/turn")
async def play_turn(body: TurnBody, request: Request, session_id: str | None = None):
    """Narrate the response to a player message."""
    return await _session(request, session_id).play_turn(body.context, body.message)


@router.post("/turn/roll")
async def play_roll(body: RollTurnBody, request: Request, session_id: str | None = None):
    """Narrate the outcome of a roll."""
    return await _session(request, session_id).play_roll(body.context, body.roll, body.dc)


@router.post("/turn/action")
async def act(body: ActionBody, request: Request, session_id: str | None = None):
    """Take a suggested action, rolling when it carries a roll."""
    return await _session(request, session_id).act(body.context, body.action)


@router.post("/turn/start")
async def start_campaign(body: TurnContext, request: Request, session_id: str | None = None):
    """Opening narration for a new campaign."""
    return await _session(request, session_id).start_campaign(body)


@router.post("/turn/defeat")
async def narrate_defeat(body: TurnContext, request: Request, session_id: str | None = None):
    return await _session(request, session_id).narrate_defeat(body)


@router.post("/turn/cancel")
async def cancel_turn(session_id: str, request: Request):
    """Cancel the in-flight turn of one session."""
    if not request.app.state.sessions.cancel(session_id):
        raise HTTPException(404, "Session not found")
    return {"ok": True}


@router.delete("/sessions/{session_id}")
async def close_session(session_id: str, request: Request):
    if not request.app.state.sessions.close(session_id):
        raise HTTPException(404, "Session not found")
    return {"ok": True}


@router.post("/memory/extract")
async def extract_memory(body: MemoryBody, request: Request):
    """Summarise recent messages into recap, entities and facts."""
    return await _session(request).extract_memory(body.messages)


@router.post("/campaigns/suggest")
async def suggest_campaign(body: SuggestBody, request: Request):
    """Generate a campaign idea (title, theme, tone) for a system."""
    return await _session(request).suggest_campaign(body.system)
