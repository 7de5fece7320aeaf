"""Tests for solorpg.directives.memory."""

import json

import pytest

from solorpg.directives.memory import (
    MAX_ENTITIES,
    MAX_FACTS,
    MAX_RECAP_CHARS,
    MemoryExtractionError,
    parse_memory_payload,
)


def test_well_formed_payload():
    payload = parse_memory_payload(json.dumps({
        "recap": "Mira reached Thornwall.",
        "entities": [{"name": "Thornwall", "type": "place", "blurb": "A walled town"}],
        "facts": [{"subjectEntityId": "Thornwall", "predicate": "is ruled by", "object": "Lady Vess", "sourceMessageId": "m7"}],
    }))
    assert payload.recap == "Mira reached Thornwall."
    assert payload.entities[0].type == "place"
    fact = payload.facts[0]
    assert (fact.subject_entity_id, fact.predicate, fact.object, fact.source_message_id) == (
        "Thornwall", "is ruled by", "Lady Vess", "m7",
    )


def test_code_fences_and_chatter_ignored():
    payload = parse_memory_payload('Here you go:\n```json\n{"recap": "ok", "entities": [], "facts": []}\n```')
    assert payload.recap == "ok"


def test_truncated_recap_repaired():
    payload = parse_memory_payload('{"recap":"He entered the tow')
    assert payload.recap == "He entered the tow"
    assert payload.entities == []
    assert payload.facts == []


def test_truncated_entities_repaired():
    payload = parse_memory_payload(
        '{"recap": "Night fell.", "entities": [{"name": "Bran", "type": "npc"}, {"name": "Ol'
    )
    assert payload.recap == "Night fell."
    assert payload.entities == []
    assert payload.facts == []


def test_truncated_after_closed_recap_repaired():
    payload = parse_memory_payload('{"recap":"The bridge burned.", ')
    assert payload.recap == "The bridge burned."
    assert payload.entities == []


def test_unrepairable_raises():
    with pytest.raises(MemoryExtractionError):
        parse_memory_payload('{"recap": "x", "facts": [{"predicate": ')


def test_no_json_raises():
    with pytest.raises(MemoryExtractionError):
        parse_memory_payload("I could not summarise that.")


def test_caps_applied_from_the_tail():
    payload = parse_memory_payload(json.dumps({
        "recap": "x" * 1000,
        "entities": [{"name": f"E{i}", "type": "npc"} for i in range(15)],
        "facts": [{"subject": f"E{i}", "predicate": "knows"} for i in range(25)],
    }))
    assert len(payload.recap) == MAX_RECAP_CHARS
    assert payload.recap.endswith("...")
    assert [e.name for e in payload.entities] == [f"E{i}" for i in range(MAX_ENTITIES)]
    assert len(payload.facts) == MAX_FACTS
    assert payload.facts[0].subject_entity_id == "E0"


def test_malformed_entries_skipped():
    payload = parse_memory_payload(json.dumps({
        "recap": "",
        "entities": [{"name": ""}, "bogus", {"name": "Vess", "type": "deity"}],
        "facts": [{"object": "no predicate"}, {"predicate": "fears", "subject_entity_id": "Vess"}],
    }))
    assert [(e.name, e.type) for e in payload.entities] == [("Vess", "other")]
    assert [f.predicate for f in payload.facts] == ["fears"]
