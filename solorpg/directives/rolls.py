"""Roll requests written in plain language.

The narrator asks for rolls in prose rather than tags, in English or
Portuguese. Cues, tried in order:

    "Roll to pick the lock. (DC: 15)"        -> d20, DC 15
    "role 1d20 para abrir a porta. (DC: 12)" -> 1d20, DC 12
    "Roll 2d6+1"                             -> 2d6+1
    last paragraph mentions roll/role and DC -> first dice notation, else d20

parse_attribute_rolls() separately finds inline "**Strength (STR)** (DC: 15)"
cues and resolves them to a universal attribute.

Run this on text that has already had its directive tags removed, so the
notation inside an action's roll="" attribute is not mistaken for a request.
"""

from __future__ import annotations

import re

from solorpg.attributes import universal_name
from solorpg.dice import is_valid_dice_notation
from solorpg.models import AttributeRollCue, RollRequest

DEFAULT_NOTATION = "d20"

_DC_REQUEST_RE = re.compile(
    r"(Roll to [^.]+\.|role \d*d\d+ para [^.]+\.)\s*\(DC:\s*(\d+)\)", re.IGNORECASE
)
_ROLE_DICE_RE = re.compile(r"\brole\s+(\d*d\d+)", re.IGNORECASE)
_ROLL_DICE_RE = re.compile(r"\b(?:Roll|role)\s+(\d*d\d+(?:[+-]\d+)?)", re.IGNORECASE)
_ROLL_CUE_RE = re.compile(r"\b(?:roll|role)", re.IGNORECASE)
_DC_MARKER_RE = re.compile(r"\bDC\b", re.IGNORECASE)
_DC_VALUE_RE = re.compile(r"\bDC\b\s*:?\s*(\d+)", re.IGNORECASE)
_ANY_DICE_RE = re.compile(r"(\d*d\d+)", re.IGNORECASE)


def _notation_or_default(notation: str | None) -> str:
    if notation and is_valid_dice_notation(notation):
        return notation.lower()
    return DEFAULT_NOTATION


def _find_dc(text: str) -> int | None:
    match = _DC_VALUE_RE.search(text)
    return int(match.group(1)) if match else None


def parse_roll_request(text: str) -> RollRequest | None:
    match = _DC_REQUEST_RE.search(text)
    if match:
        dice = _ROLE_DICE_RE.search(text)
        return RollRequest(
            notation=_notation_or_default(dice.group(1) if dice else None),
            dc=int(match.group(2)),
        )

    match = _ROLL_DICE_RE.search(text)
    if match:
        return RollRequest(notation=_notation_or_default(match.group(1)), dc=_find_dc(text))

    last_paragraph = text.split("\n\n")[-1]
    if _ROLL_CUE_RE.search(last_paragraph) and _DC_MARKER_RE.search(last_paragraph):
        dice = _ANY_DICE_RE.search(last_paragraph)
        return RollRequest(
            notation=_notation_or_default(dice.group(1) if dice else None),
            dc=_find_dc(last_paragraph),
        )
    return None


# ---------------------------------------------------------------------------
# Inline attribute roll cues
# ---------------------------------------------------------------------------

DC_LOOKAHEAD = 100

_ATTRIBUTE_CUE_RE = re.compile(r"\*\*([^(*]+?)\s*\(([A-Z]{2,4})\)\*\*", re.IGNORECASE)
_CUE_DC_RES = (
    re.compile(r"\((?:Dificuldade|DC|CD|Difficulty):\s*(\d+)\)", re.IGNORECASE),
    re.compile(r"(?:DC|CD|Dificuldade|Difficulty)\s+(\d+)", re.IGNORECASE),
)

# Portuguese and Spanish attribute names
_LOCALIZED_ATTRIBUTES: dict[str, str] = {
    "força": "strength", "fuerza": "strength",
    "agilidade": "agility", "agilidad": "agility",
    "mente": "mind",
    "presença": "presence", "presencia": "presence",
}


def _cue_attribute(name: str, abbr: str) -> str | None:
    return universal_name(abbr) or universal_name(name) or _LOCALIZED_ATTRIBUTES.get(name.lower())


def _cue_dc(lookahead: str) -> int | None:
    for pattern in _CUE_DC_RES:
        match = pattern.search(lookahead)
        if match:
            return int(match.group(1))
    return None


def parse_attribute_rolls(text: str) -> list[AttributeRollCue]:
    """Find "**Strength (STR)**" cues, each with the DC written just after it."""
    cues = []
    for match in _ATTRIBUTE_CUE_RE.finditer(text):
        name, abbr = match.group(1).strip(), match.group(2).strip()
        cues.append(AttributeRollCue(
            text=match.group(0),
            attribute_name=name,
            attribute_abbr=abbr,
            attribute=_cue_attribute(name, abbr),
            dc=_cue_dc(text[match.end():match.end() + DC_LOOKAHEAD]),
            start=match.start(),
            end=match.end(),
        ))
    return cues
