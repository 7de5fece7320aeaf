"""Parsing of memory-extraction output.

The memory extractor asks the model for a JSON object:

    {"recap": "...",
     "entities": [{"name", "type", "blurb"}],
     "facts": [{"subjectEntityId", "predicate", "object", "sourceMessageId"}]}

Models wrap it in markdown fences and, at the token limit, stop mid-string.
parse_memory_payload() strips fences, parses, and if that fails makes one
repair attempt before giving up with MemoryExtractionError:

    recap string left open         -> close it, add empty entities and facts
    entities open, no facts key    -> replace with empty entities and facts
    trailing comma                 -> dropped before the object is closed

Results are capped: recap 600 chars, 10 entities, 20 facts.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from solorpg.models import Entity, Fact, MemoryPayload

logger = logging.getLogger(__name__)

MAX_RECAP_CHARS = 600
MAX_ENTITIES = 10
MAX_FACTS = 20

_ENTITY_TYPES = {"character", "npc", "place", "item", "faction", "other"}

_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)
_OPEN_RECAP_RE = re.compile(r'"recap"\s*:\s*"((?:[^"\\]|\\.)*)\\?$')
_OPEN_ENTITIES_RE = re.compile(r'"entities"\s*:\s*\[[\s\S]*$')


class MemoryExtractionError(ValueError):
    """Raised when memory output cannot be parsed even after repair."""


def _loads_object(text: str) -> dict[str, Any] | None:
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def _repair(text: str) -> str:
    text = text.rstrip()
    text, closed_recap = _OPEN_RECAP_RE.subn(
        lambda m: f'"recap": "{m.group(1)}", "entities": [], "facts": []', text, count=1
    )
    if not closed_recap and '"facts"' not in text:
        text = _OPEN_ENTITIES_RE.sub('"entities": [], "facts": []', text, count=1)
    text = text.rstrip().rstrip(",")
    if not text.endswith("}"):
        text += "}"
    return text


def _decode(text: str) -> dict[str, Any]:
    cleaned = _FENCE_RE.sub("", text)
    start = cleaned.find("{")
    if start < 0:
        raise MemoryExtractionError("No JSON object found in memory output")
    tail = cleaned[start:]

    end = tail.rfind("}")
    if end >= 0:
        data = _loads_object(tail[: end + 1])
        if data is not None:
            return data

    logger.warning("Memory output is not valid JSON, attempting repair")
    repaired = _repair(tail)
    data = _loads_object(repaired)
    if data is None:
        raise MemoryExtractionError("Memory output could not be parsed after repair")
    return data


def _entity(raw: Any) -> Entity | None:
    if not isinstance(raw, dict):
        return None
    name = raw.get("name")
    if not isinstance(name, str) or not name.strip():
        return None
    kind = str(raw.get("type", "other")).lower()
    return Entity(
        name=name.strip(),
        type=kind if kind in _ENTITY_TYPES else "other",
        blurb=str(raw.get("blurb") or ""),
    )


def _fact(raw: Any) -> Fact | None:
    if not isinstance(raw, dict):
        return None
    predicate = raw.get("predicate")
    if not isinstance(predicate, str) or not predicate.strip():
        return None
    subject = raw.get("subjectEntityId", raw.get("subject_entity_id", raw.get("subject", "")))
    source = raw.get("sourceMessageId", raw.get("source_message_id", ""))
    return Fact(
        subject_entity_id=str(subject or ""),
        predicate=predicate.strip(),
        object=str(raw.get("object") or ""),
        source_message_id=str(source or ""),
    )


def _items(data: dict[str, Any], key: str) -> list[Any]:
    value = data.get(key)
    return value if isinstance(value, list) else []


def parse_memory_payload(text: str) -> MemoryPayload:
    data = _decode(text)

    recap = data.get("recap")
    recap = recap if isinstance(recap, str) else ""
    if len(recap) > MAX_RECAP_CHARS:
        recap = recap[: MAX_RECAP_CHARS - 3] + "..."

    entities = [e for e in map(_entity, _items(data, "entities")) if e is not None]
    facts = [f for f in map(_fact, _items(data, "facts")) if f is not None]

    payload = MemoryPayload(
        recap=recap,
        entities=entities[:MAX_ENTITIES],
        facts=facts[:MAX_FACTS],
    )
    logger.debug(
        "Parsed memory: recap=%d chars, entities=%d, facts=%d",
        len(payload.recap), len(payload.entities), len(payload.facts),
    )
    return payload
