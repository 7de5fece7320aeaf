"""Shared builders for tests."""

import random

from solorpg.models import Campaign, Character, Message


class ScriptedRandom(random.Random):
    """random.Random whose randint() returns queued faces in order."""

    def __init__(self, *faces: int) -> None:
        super().__init__(0)
        self.faces = list(faces)

    def randint(self, a: int, b: int) -> int:
        face = self.faces.pop(0)
        assert a <= face <= b, f"scripted face {face} outside {a}..{b}"
        return face


def make_campaign(**overrides) -> Campaign:
    fields = {
        "id": "camp-1",
        "title": "The Sunken Crown",
        "system": "dnd-fantasy",
        "theme": "dungeon crawl",
        "tone": "grim",
    }
    fields.update(overrides)
    return Campaign(**fields)


def make_character(**overrides) -> Character:
    fields = {
        "id": "char-1",
        "campaign_id": "camp-1",
        "name": "Mira",
        "attributes": {"strength": 12, "agility": 8, "mind": 5, "presence": 10},
        "hit_points": 15,
        "max_hit_points": 15,
    }
    fields.update(overrides)
    return Character(**fields)


def msg(role: str, content: str, id: str | None = None) -> Message:
    return Message(id=id or f"{role}-{abs(hash(content)) % 10000}", campaign_id="camp-1", role=role, content=content)
