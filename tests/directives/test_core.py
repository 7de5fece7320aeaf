"""Tests for solorpg.directives.core (full extraction order)."""

import re

from solorpg.directives import extract_directives
from solorpg.models import CharacterEffect, ItemDrop, RollRequest

FULL_RESPONSE = """The goblin's blade catches your arm. <damage>4</damage>
You drive it off and find its stash. <item_drop id="healing_potion" qty="2"/>
<heal>1</heal> <damage_roll>1d4</damage_roll>
<spend_resource name="stamina">1</spend_resource><restore_resource name="focus">2</restore_resource>
<xp_award>25</xp_award>



A rope bridge sways ahead. Roll to cross the bridge. (DC: 12)

<actions>
<action id="1" label="Cross" roll="d20+agility" dc="12">Cross carefully</action>
</actions>"""


def test_one_of_each_tag():
    result = extract_directives(FULL_RESPONSE)
    assert result.xp_award == 25
    assert [e.type for e in result.effects] == [
        "damage", "damage_roll", "heal", "spend_resource", "restore_resource",
    ]
    assert result.item_drops == [ItemDrop(item_id="healing_potion", quantity=2)]
    assert len(result.actions) == 1
    assert result.roll_request == RollRequest(notation="d20", dc=12)
    assert not re.search(r"</?[a-z_]+[^>]*>", result.clean_content)


def test_blank_runs_collapsed():
    result = extract_directives(FULL_RESPONSE)
    assert "\n\n\n" not in result.clean_content
    assert result.clean_content.endswith("Roll to cross the bridge. (DC: 12)")


def test_action_roll_attribute_not_a_roll_request():
    result = extract_directives(
        'You wait.\n\n<actions><action id="1" label="Swim" roll="2d6" dc="15">Swim across</action></actions>'
    )
    assert result.roll_request is None
    assert result.actions[0].roll_notation == "2d6"


def test_plain_text_has_nothing():
    result = extract_directives("Rain falls on the empty road.")
    assert result.clean_content == "Rain falls on the empty road."
    assert result.effects == []
    assert result.item_drops == []
    assert result.actions == []
    assert result.xp_award is None
    assert result.roll_request is None


def test_malformed_tag_does_not_block_others():
    result = extract_directives("Hit! <damage>lots</damage> <heal>2</heal> <xp_award>10</xp_award>")
    assert result.effects == [CharacterEffect(type="heal", amount=2)]
    assert result.xp_award == 10
    assert result.clean_content == "Hit!"


def test_empty_text():
    assert extract_directives("").clean_content == ""
