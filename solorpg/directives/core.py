"""Directive extraction over a complete narrator response.

Layers are peeled in a fixed order, each working on the previous layer's
output:

    XP tag -> effect tags -> item drops -> actions block -> roll request
                                                           + attribute cues

Roll requests and attribute cues are read last, from prose with every tag
already removed. Run this only on the full response: a tag may be split
across stream chunks.
"""

from __future__ import annotations

import logging
import re

from solorpg.directives.rolls import parse_attribute_rolls, parse_roll_request
from solorpg.directives.tags import parse_actions, parse_effects, parse_item_drops, parse_xp_award
from solorpg.models import ExtractedDirectives

logger = logging.getLogger(__name__)

_BLANK_RUN_RE = re.compile(r"\n{3,}")


def extract_directives(text: str) -> ExtractedDirectives:
    content, xp_award = parse_xp_award(text or "")
    content, effects = parse_effects(content)
    content, item_drops = parse_item_drops(content)
    content, actions = parse_actions(content)
    content = _BLANK_RUN_RE.sub("\n\n", content).strip()

    result = ExtractedDirectives(
        clean_content=content,
        xp_award=xp_award,
        effects=effects,
        item_drops=item_drops,
        actions=actions,
        roll_request=parse_roll_request(content),
        attribute_rolls=parse_attribute_rolls(content),
    )
    logger.debug(
        "Extracted directives: xp=%s effects=%d drops=%d actions=%d roll=%s cues=%d",
        result.xp_award, len(result.effects), len(result.item_drops),
        len(result.actions), result.roll_request, len(result.attribute_rolls),
    )
    return result
