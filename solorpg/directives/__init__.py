"""Directive extraction from narrator output.

Narration carries machine-readable tags (XP, HP and resource effects, item
drops, suggested actions) and plain-language roll requests. This package
strips them from the prose and returns what it found:

    tags.py         one parser per tag family
    rolls.py        "Roll to ... (DC: N)" roll requests and "**Strength (STR)**" cues
    core.py         extract_directives(), the fixed-order chain of the above
    memory.py       JSON memory payloads, with truncation repair
    suggestions.py  JSON campaign ideas, with canned fallbacks
"""

from .core import extract_directives  # noqa: F401
from .memory import MemoryExtractionError, parse_memory_payload  # noqa: F401
from .rolls import parse_attribute_rolls, parse_roll_request  # noqa: F401
from .suggestions import (  # noqa: F401
    CampaignSuggestionError,
    fallback_suggestion,
    parse_campaign_suggestion,
)
from .tags import (  # noqa: F401
    parse_actions,
    parse_effects,
    parse_item_drops,
    parse_xp_award,
)
