"""Parsing of campaign-designer output.

The campaign designer asks the model for a single JSON object:

    {"title": "...", "theme": "...", "tone": "..."}

Fences are stripped and the first {...} object is read. Over-long titles and
themes are cut with an ellipsis. Anything unusable raises
CampaignSuggestionError; callers fall back to fallback_suggestion().
"""

from __future__ import annotations

import json
import logging
import re

from solorpg.models import CampaignSuggestion
from solorpg.presets import resolve_preset_id

logger = logging.getLogger(__name__)

MAX_TITLE_CHARS = 60
MAX_THEME_CHARS = 180

_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)
_OBJECT_RE = re.compile(r"\{[\s\S]*?\}")


class CampaignSuggestionError(ValueError):
    """Raised when campaign-designer output has no usable suggestion."""


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


def parse_campaign_suggestion(text: str) -> CampaignSuggestion:
    match = _OBJECT_RE.search(_FENCE_RE.sub("", text))
    if not match:
        raise CampaignSuggestionError("No JSON object found in campaign suggestion")
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise CampaignSuggestionError(f"Campaign suggestion is not valid JSON: {e}") from e

    fields = {key: data.get(key) for key in ("title", "theme", "tone")}
    missing = [key for key, value in fields.items() if not isinstance(value, str) or not value.strip()]
    if missing:
        raise CampaignSuggestionError(f"Campaign suggestion missing {', '.join(missing)}")

    return CampaignSuggestion(
        title=_truncate(fields["title"].strip(), MAX_TITLE_CHARS),
        theme=_truncate(fields["theme"].strip(), MAX_THEME_CHARS),
        tone=fields["tone"].strip(),
    )


# ── Fallbacks ────────────────────────────────────────────

FALLBACK_SUGGESTIONS: dict[str, CampaignSuggestion] = {
    "dnd-fantasy": CampaignSuggestion(
        title="The Forgotten Ruins",
        theme="Ancient dungeons hide secrets of a lost civilization. Magic runs wild, "
              "and dark forces stir beneath the earth.",
        tone="Heroic, adventurous",
    ),
    "cosmic-horror": CampaignSuggestion(
        title="The Arkham Files",
        theme="Strange disappearances in 1920s New England lead to eldritch horrors "
              "and cosmic truths beyond comprehension.",
        tone="Horror, investigative",
    ),
    "dark-future": CampaignSuggestion(
        title="Neon Ghosts",
        theme="Corporate espionage in Night City. Hackers, mercs, and rebels fight "
              "for survival in the chrome and shadows.",
        tone="Gritty, noir",
    ),
    "gothic-vampire": CampaignSuggestion(
        title="Blood and Politics",
        theme="Navigate vampire society politics while maintaining the Masquerade. "
              "Ancient bloodlines clash in modern nights.",
        tone="Dark, intrigue",
    ),
    "generic": CampaignSuggestion(
        title="The Journey Begins",
        theme="A classic adventure awaits. Heroes rise, challenges appear, and destinies are forged.",
        tone="Adventurous",
    ),
}

# Legacy systems that share a preset but have their own idea
_BY_SYSTEM_NAME: dict[str, CampaignSuggestion] = {
    "Pathfinder 2e": CampaignSuggestion(
        title="Crown of Shadows",
        theme="A cursed kingdom needs heroes to break an ancient curse. "
              "Political intrigue meets dungeon exploration.",
        tone="Epic, mysterious",
    ),
}


def fallback_suggestion(system: str) -> CampaignSuggestion:
    """Canned idea for a preset id or legacy system name; unknown -> generic."""
    return _BY_SYSTEM_NAME.get(system) or FALLBACK_SUGGESTIONS[resolve_preset_id(system)]
