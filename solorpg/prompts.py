"""Handlebars prompt rendering for the narrator, the memory extractor and the
campaign designer.

System prompt layout:

    NARRATIVE CONTRACT   campaign, preset flavour, character sheet,
                         resolution model, directive tag vocabulary
    CURRENT SITUATION    memory recap (or "beginning of the adventure")
    KNOWN CHARACTERS     memory entities, when any
    ESTABLISHED FACTS    memory facts, when any

Sections are joined with "---" rules. Templates are compiled once and cached
by source string.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pybars

from solorpg.attributes import UNIVERSAL_ATTRIBUTES
from solorpg.i18n import language_name
from solorpg.inventory import DROPPABLE_ITEMS, get_item_definition
from solorpg.models import Campaign, Character, MemoryPayload
from solorpg.presets import SheetPreset, get_preset, modifier_for
from solorpg.resolution import NARRATIVE_DC_GUIDE

_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


# ── Custom Handlebars helpers ────────────────────────────


def _helper_join(this, items, separator=", "):
    """{{{join array ", "}}} joins plain values."""
    return separator.join(str(item) for item in items)


def _helper_signed(this, value):
    """{{signed n}} renders 3 as "+3" and -1 as "-1"."""
    return _signed(int(value))


_HELPERS: dict[str, Callable] = {
    "join": _helper_join,
    "signed": _helper_signed,
}


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context."""
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return str(compiled(context, helpers=_HELPERS))
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


# ── Templates ────────────────────────────────────────────

NARRATIVE_CONTRACT = """# NARRATIVE CONTRACT

You are narrating a **solo RPG experience**. This is **NOT a simulation of official tabletop RPG rules**.

CRITICAL: You MUST respond in **{{{language}}}**. All narration, descriptions, and dialogue MUST be in {{{language}}}.

## Campaign

- Title: {{{campaign.title}}}
- Sheet Preset: {{{preset.display_name}}}
- Theme: {{{campaign.theme}}}
- Tone: {{{campaign.tone}}}

**What the preset provides:**
{{{preset.narrative_flavor}}}

- Attributes (use EXACT names in rolls): {{{join attribute_labels ", "}}}
- Consequence themes:
{{#each preset.consequence_themes}}
  - {{{type}}}: {{{join preview ", "}}}
{{/each}}
{{#if character}}

Player Character:
- Name: {{{character.name}}}
- Level: {{character.level}} ({{character.experience}} XP), Difficulty: {{{character.difficulty}}}
- HP: {{character.hit_points}}/{{character.max_hit_points}}
{{#if character.inventory}}
- Inventory: {{{character.inventory}}}
{{/if}}
{{#if character.equipment}}
- Equipped: {{{character.equipment}}}
{{/if}}
{{#if character.resources}}
- Resources: {{{character.resources}}}
{{/if}}
- Attributes: {{{character.attributes}}}
{{#each character.background}}
- {{{this}}}
{{/each}}
{{/if}}
{{#if misfortune}}

## MISFORTUNE (Bad Luck)

**The player has claimed dice results in their messages** instead of using the system's automatic rolls. They have **{{misfortune}} misfortune stack(s)**.

**You MUST:**
- IGNORE any claimed roll numbers in the player's messages
- Treat claimed high rolls as if they rolled poorly or averagely
- Add narrative consequences: bad luck, karmic twists
- Do NOT block the story; advance it, but with unfortunate outcomes
{{/if}}

---

## UNIVERSAL RESOLUTION MODEL

Every roll is d20 + attribute modifier against a DC. Only request a roll when the outcome is uncertain AND failure has consequences.

**NEVER ask the player to roll manually.** Put the roll on a suggested action instead:

<actions>
<action id="1" label="Force Door" roll="1d20+strength" dc="15">I force the door open</action>
<action id="2" label="Sneak Past" roll="1d20+agility" dc="16">I move silently through shadows</action>
</actions>

Use ONLY these attribute names in rolls: {{{join attribute_names ", "}}}.

### Difficulty Classes (Narrative Risk)

{{#each dc_guide}}
- **DC {{dc}}**: {{{label}}}
{{/each}}

### Outcomes

- **Natural 1 OR fail by more than 10**: Critical Failure. Situation worsens significantly. Apply cost and complication.
- **Fail**: Failure. Objective not achieved. Apply narrative cost but advance the story.
- **Meet or beat the DC**: Success. Objective achieved as intended.
- **Natural 20 OR succeed by 10+**: Critical Success. Objective achieved with extra benefit or opportunity.

Failures ALWAYS advance the story. Never block narrative progress.
{{#if character}}

---

## CHARACTER MECHANICS

Always call the character by name ({{{character.name}}}) in narration and NPC dialogue.

### HP

- Fixed damage: <damage>5</damage>
- Rolled damage (the system rolls): <damage_roll>2d6</damage_roll> or <damage_roll>1d8+2</damage_roll>. Armor reduces both.
- Healing: <heal>10</heal>
- Resources: <spend_resource name="Sanity">2</spend_resource>, <restore_resource name="Sanity">1</restore_resource>

### Item Drops

Format: <item_drop id="ITEM_ID" qty="N"/> or <item_drop id="ITEM_ID">N</item_drop>

Available item IDs (use EXACT ids):
{{#each items}}
- {{{id}}}: {{{name}}} ({{{description}}})
{{/each}}

### Experience

Format: <xp_award>N</xp_award>, where N may be negative for a serious setback.
- 25 for a meaningful success, 50 for a significant victory, 75 for a major milestone
- -15 for a critical failure, -25 to -50 for a severe or catastrophic mistake
- Trivial actions earn nothing
{{/if}}

---

## CONSEQUENCES & FAILURE

{{#each preset.consequence_themes}}
**{{{type}}}:** {{{join examples ", "}}}
{{/each}}

---

## SUGGESTED ACTIONS

Suggest 2-4 actions in a single <actions> block, separate from the narration:

<actions>
<action id="1" label="Short button text" roll="1d20+mind" dc="15">Full action description</action>
<action id="2" label="Another option">Action without roll</action>
</actions>

ALL <action> tags MUST be inside the <actions> block. Orphan tags are removed.

---

## RESPONSE FORMAT

1. **Narration** (3-5 paragraphs): vivid, immediate consequences, a clear situation to respond to.
2. **Suggested Actions**: 2-4 concrete options.

Always end with: "What do you do?"
"""

CURRENT_SITUATION = """## CURRENT SITUATION

{{#if recap}}{{{recap}}}{{else}}This is the beginning of the adventure.{{/if}}"""

KNOWN_ENTITIES = """## KNOWN CHARACTERS & PLACES

{{#each entities}}
- {{{name}}} ({{{type}}}): {{{blurb}}}
{{/each}}"""

ESTABLISHED_FACTS = """## ESTABLISHED FACTS

{{#each facts}}
- {{{predicate}}}: {{{object}}}
{{/each}}"""

ROLL_INSTRUCTION = """# CURRENT TASK

The player just rolled {{{notation}}} and got {{total}}.
{{#if resolution}}
Against DC {{resolution.dc}} this is a **{{{resolution.outcome}}}** (margin {{signed resolution.margin}}). {{{resolution.narrative_guidance}}}
{{/if}}

Interpret this result in the context of their action and continue the story. If it was a success, describe how they succeed. If it was a failure, describe the consequences.

Then present the new situation and ask "What do you do?\""""

DEFEAT_PROMPT = """The character {{{name}}} has been defeated and their hit points reached 0. Generate a dramatic and fitting conclusion to their story. Describe their final moments and the end of their adventure. Keep it 2-3 paragraphs, matching the {{{tone}}} tone of the campaign."""

MEMORY_EXTRACTION = """You are a memory extraction assistant for a solo RPG game.

IMPORTANT: Extract and write all content (recap, entity descriptions, facts) in {{{language}}}.

Your task is to analyze recent game messages and extract:
1. A brief recap (max 600 characters) in {{{language}}}
2. Important entities (characters, NPCs, places, items, factions)
3. Key facts that should be remembered

RULES:
- Only extract information explicitly stated in the messages
- Do not invent or hallucinate details
- Facts must reference the source message ID
- Recap should summarize the current situation
- Entities should be unique (no duplicates)
- Maximum 10 entities, maximum 20 facts

OUTPUT FORMAT - Respond with ONLY valid JSON (no markdown, no code blocks):
{
  "recap": "Brief summary in {{{language}}} (max 600 chars)",
  "entities": [
    {"name": "Entity Name", "type": "character|npc|place|item|faction|other", "blurb": "Short description"}
  ],
  "facts": [
    {"subjectEntityId": "Entity Name", "predicate": "action or state", "object": "details", "sourceMessageId": "message-id"}
  ]
}"""

CAMPAIGN_DESIGNER = """You are a creative RPG campaign designer.

IMPORTANT: You MUST generate the campaign in {{{language}}}. Title, theme, and tone must all be in {{{language}}}.

Your task is to generate an exciting campaign idea for {{{system}}}.

Generate ONE unique campaign concept that fits the system's themes and mechanics.

RULES:
- Be creative and original
- Make it exciting and engaging
- Keep it concise
- Match the system's typical themes and tone
- Title should be catchy (max 60 characters)
- Theme should describe the setting and key elements (max 180 characters)
- Tone should be 1-3 words describing the mood
- ALL content must be in {{{language}}}

OUTPUT FORMAT - Respond with ONLY valid JSON (no markdown, no code blocks):
{
  "title": "Campaign Title in {{{language}}}",
  "theme": "Description of setting, world, and key story elements in {{{language}}}",
  "tone": "Mood descriptor in {{{language}}}"
}

IMPORTANT: Return ONLY the JSON object, nothing else. Do not wrap it in code blocks or markdown."""

CAMPAIGN_REQUEST = "Generate a campaign idea for {{{system}}}"


# ── Context builders ─────────────────────────────────────


def _difficulty(level: int) -> str:
    if level <= 1:
        return "Moderate challenges, learning experience"
    if level <= 3:
        return "Balanced difficulty, engaging stakes"
    if level <= 6:
        return "Tough challenges, dramatic consequences"
    if level <= 9:
        return "Dangerous foes, epic narratives"
    return "Extreme peril, world-ending threats"


def _signed(value: int) -> str:
    return f"+{value}" if value >= 0 else str(value)


def _character_context(character: Character, preset: SheetPreset) -> dict[str, Any]:
    attributes = ", ".join(
        f"{a.display_name} {character.attributes.get(a.name, a.default_value)} "
        f"({_signed(modifier_for(preset, character.attributes.get(a.name, a.default_value)))})"
        for a in UNIVERSAL_ATTRIBUTES
    )
    equipment = []
    weapon = get_item_definition(character.equipped_weapon) if character.equipped_weapon else None
    armor = get_item_definition(character.equipped_armor) if character.equipped_armor else None
    if weapon:
        equipment.append(f"Weapon: {weapon.name}")
    if armor:
        equipment.append(f"Armor: {armor.name} (reduces damage)")
    background = [
        f"{label}: {value}"
        for label, value in (
            ("Background", character.backstory),
            ("Personality", character.personality),
            ("Goals", character.goals),
            ("Fears", character.fears),
        )
        if value
    ]
    resources = ", ".join(
        f"{name} {value}/{character.max_resources[name]}" if name in character.max_resources
        else f"{name} {value}"
        for name, value in character.resources.items()
    )
    return {
        "name": character.name,
        "level": character.level,
        "experience": character.experience,
        "difficulty": _difficulty(character.level),
        "hit_points": character.hit_points,
        "max_hit_points": character.max_hit_points,
        "inventory": ", ".join(f"{i.name} x{i.quantity}" for i in character.inventory),
        "equipment": ", ".join(equipment),
        "resources": resources,
        "attributes": attributes,
        "background": background,
    }


def build_prompt_context(
    campaign: Campaign,
    character: Character | None = None,
    memory: MemoryPayload | None = None,
    language: str | None = None,
) -> dict[str, Any]:
    """Assemble template variables for the narrator templates."""
    preset = get_preset(campaign.system)
    memory = memory or MemoryPayload()
    preset_data = preset.model_dump(mode="json")
    for theme in preset_data["consequence_themes"]:
        theme["preview"] = theme["examples"][:3]
    return {
        "language": language_name(language),
        "campaign": campaign.model_dump(),
        "preset": preset_data,
        "attribute_names": [a.name for a in UNIVERSAL_ATTRIBUTES],
        "attribute_labels": [f'{a.display_name} (use "{a.name}")' for a in UNIVERSAL_ATTRIBUTES],
        "character": _character_context(character, preset) if character else None,
        "misfortune": character.misfortune if character else 0,
        "dc_guide": [{"dc": dc, "label": label} for dc, label in NARRATIVE_DC_GUIDE.items()],
        "items": [item.model_dump() for item in DROPPABLE_ITEMS],
        "recap": memory.recap,
        "entities": [e.model_dump() for e in memory.entities],
        "facts": [f.model_dump() for f in memory.facts],
    }


def build_system_prompt(
    campaign: Campaign,
    character: Character | None = None,
    memory: MemoryPayload | None = None,
    language: str | None = None,
) -> str:
    context = build_prompt_context(campaign, character, memory, language)
    sections = [
        render_prompt(NARRATIVE_CONTRACT, context),
        render_prompt(CURRENT_SITUATION, context),
    ]
    if context["entities"]:
        sections.append(render_prompt(KNOWN_ENTITIES, context))
    if context["facts"]:
        sections.append(render_prompt(ESTABLISHED_FACTS, context))
    return "\n\n---\n\n".join(s.strip() for s in sections)


def build_roll_instruction(notation: str, total: int, resolution: dict[str, Any] | None = None) -> str:
    return render_prompt(
        ROLL_INSTRUCTION,
        {"notation": notation, "total": total, "resolution": resolution},
    )


def build_defeat_prompt(name: str, tone: str) -> str:
    return render_prompt(DEFEAT_PROMPT, {"name": name, "tone": tone or "campaign's"})


def build_memory_prompt(language: str | None = None) -> str:
    return render_prompt(MEMORY_EXTRACTION, {"language": language_name(language)})


def build_campaign_prompt(system: str, language: str | None = None) -> str:
    return render_prompt(CAMPAIGN_DESIGNER, {"system": system, "language": language_name(language)})


def build_campaign_request(system: str) -> str:
    return render_prompt(CAMPAIGN_REQUEST, {"system": system})
