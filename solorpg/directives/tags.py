"""Parsers for the directive tags the narrator embeds in its prose.

One parser per tag family. Each takes the text, returns
(text_with_the_family_removed, payload) and never raises:

    parse_xp_award    <xp_award>N</xp_award>  (alias <xp>N</xp>)
    parse_effects     <damage>N</damage>
                      <damage_roll>NdM+K</damage_roll>
                      <heal>N</heal>
                      <spend_resource name="X">N</spend_resource>
                      <restore_resource name="X">N</restore_resource>
    parse_item_drops  <item_drop id="X" qty="N"/>  |  <item_drop id="X">N</item_drop>
    parse_actions     <actions><action id="" label="" roll="" dc="">text</action>...</actions>

A tag whose body does not match its grammar is removed from the text but
produces no record, so a malformed tag never leaks into the narration and
never affects its siblings.
"""

from __future__ import annotations

import logging
import re

from solorpg.dice import is_valid_dice_notation
from solorpg.models import CharacterEffect, EffectType, ItemDrop, SuggestedAction

logger = logging.getLogger(__name__)

_INT_RE = re.compile(r"^-?\d+$")
_COUNT_RE = re.compile(r"^\d+$")
_DICE_RE = re.compile(r"^\d*d\d+(?:[+-]\d+)?$", re.IGNORECASE)


def _remove(pattern: re.Pattern[str], text: str) -> str:
    return pattern.sub("", text).strip()


# ---------------------------------------------------------------------------
# XP award
# ---------------------------------------------------------------------------

_XP_RE = re.compile(r"<(xp_award|xp)>\s*([^<]*?)\s*</\1>", re.IGNORECASE)


def parse_xp_award(text: str) -> tuple[str, int | None]:
    """First well-formed XP tag wins; every XP tag is removed."""
    amount: int | None = None
    for match in _XP_RE.finditer(text):
        body = match.group(2)
        if _INT_RE.match(body):
            amount = int(body)
            break
        logger.warning("Ignoring malformed XP tag: %r", match.group(0))
    return _remove(_XP_RE, text), amount


# ---------------------------------------------------------------------------
# Character effects
# ---------------------------------------------------------------------------

_DAMAGE_RE = re.compile(r"<damage>\s*([^<]*?)\s*</damage>", re.IGNORECASE)
_DAMAGE_ROLL_RE = re.compile(r"<damage_roll>\s*([^<]*?)\s*</damage_roll>", re.IGNORECASE)
_HEAL_RE = re.compile(r"<heal>\s*([^<]*?)\s*</heal>", re.IGNORECASE)
_SPEND_RE = re.compile(
    r'<spend_resource\s+name="([^"]*)"\s*>\s*([^<]*?)\s*</spend_resource>', re.IGNORECASE
)
_RESTORE_RE = re.compile(
    r'<restore_resource\s+name="([^"]*)"\s*>\s*([^<]*?)\s*</restore_resource>', re.IGNORECASE
)


def _flat_effects(pattern: re.Pattern[str], text: str, kind: EffectType) -> list[CharacterEffect]:
    effects = []
    for match in pattern.finditer(text):
        body = match.group(1)
        if _COUNT_RE.match(body):
            effects.append(CharacterEffect(type=kind, amount=int(body)))
        else:
            logger.warning("Ignoring malformed %s tag: %r", kind, match.group(0))
    return effects


def _damage_rolls(text: str) -> list[CharacterEffect]:
    effects = []
    for match in _DAMAGE_ROLL_RE.finditer(text):
        notation = match.group(1).lower()
        if _DICE_RE.match(notation) and is_valid_dice_notation(notation):
            effects.append(CharacterEffect(type="damage_roll", amount=0, roll_notation=notation))
        else:
            logger.warning("Ignoring damage_roll with bad notation: %r", match.group(1))
    return effects


def _resource_effects(pattern: re.Pattern[str], text: str, kind: EffectType, sign: int) -> list[CharacterEffect]:
    effects = []
    for match in pattern.finditer(text):
        name, body = match.group(1).strip(), match.group(2)
        if name and _COUNT_RE.match(body):
            effects.append(CharacterEffect(type=kind, amount=sign * int(body), resource_name=name))
        else:
            logger.warning("Ignoring malformed %s tag: %r", kind, match.group(0))
    return effects


def parse_effects(text: str) -> tuple[str, list[CharacterEffect]]:
    """All effect tags, grouped damage, damage_roll, heal, spend, restore."""
    effects = (
        _flat_effects(_DAMAGE_RE, text, "damage")
        + _damage_rolls(text)
        + _flat_effects(_HEAL_RE, text, "heal")
        + _resource_effects(_SPEND_RE, text, "spend_resource", -1)
        + _resource_effects(_RESTORE_RE, text, "restore_resource", 1)
    )
    for pattern in (_DAMAGE_RE, _DAMAGE_ROLL_RE, _HEAL_RE, _SPEND_RE, _RESTORE_RE):
        text = _remove(pattern, text)
    return text, effects


# ---------------------------------------------------------------------------
# Item drops
# ---------------------------------------------------------------------------

_ITEM_DROP_RE = re.compile(
    r'<item_drop\s+id="([^"]*)"(?:\s+qty="([^"]*)")?\s*/>'
    r'|<item_drop\s+id="([^"]*)"\s*>\s*([^<]*?)\s*</item_drop>',
    re.IGNORECASE,
)


def parse_item_drops(text: str) -> tuple[str, list[ItemDrop]]:
    """Both item_drop syntaxes, in document order. Missing quantity means 1."""
    drops = []
    for match in _ITEM_DROP_RE.finditer(text):
        item_id = (match.group(1) if match.group(1) is not None else match.group(3)).strip()
        raw_qty = match.group(2) if match.group(1) is not None else match.group(4)
        raw_qty = (raw_qty or "").strip() or "1"
        if not item_id or not _COUNT_RE.match(raw_qty) or int(raw_qty) < 1:
            logger.warning("Ignoring malformed item_drop tag: %r", match.group(0))
            continue
        drops.append(ItemDrop(item_id=item_id, quantity=int(raw_qty)))
    return _remove(_ITEM_DROP_RE, text), drops


# ---------------------------------------------------------------------------
# Suggested actions
# ---------------------------------------------------------------------------

# An unclosed block at the very end is a response cut off mid-list.
_ACTIONS_BLOCK_RE = re.compile(r"<actions>([\s\S]*?)(?:</actions>|$)", re.IGNORECASE)
_ACTION_RE = re.compile(
    r'<action\s+id="([^"]+)"\s+label="([^"]+)"(?:\s+roll="([^"]+)")?(?:\s+dc="([^"]+)")?>([^<]+)</action>',
    re.IGNORECASE,
)
_ORPHAN_ACTION_RE = re.compile(r"<action\b[^>]*>[^<]*</action>", re.IGNORECASE)
_STRAY_ACTION_TAG_RE = re.compile(r"</?actions?\b[^>]*>", re.IGNORECASE)


def _to_action(match: re.Match[str]) -> SuggestedAction:
    action_id, label, roll, dc, body = match.groups()
    dc = dc.strip() if dc else None
    return SuggestedAction(
        id=action_id.strip(),
        label=label.strip(),
        action=body.strip(),
        roll_notation=(roll.strip() or None) if roll else None,
        dc=int(dc) if dc and _INT_RE.match(dc) else None,
    )


def parse_actions(text: str) -> tuple[str, list[SuggestedAction]]:
    """Actions from the first <actions> block; every block and orphan is removed."""
    actions: list[SuggestedAction] = []
    block = _ACTIONS_BLOCK_RE.search(text)
    if block:
        actions = [_to_action(m) for m in _ACTION_RE.finditer(block.group(1))]
        text = _remove(_ACTIONS_BLOCK_RE, text)
    text = _remove(_ORPHAN_ACTION_RE, text)
    text = _remove(_STRAY_ACTION_TAG_RE, text)
    return text, actions
