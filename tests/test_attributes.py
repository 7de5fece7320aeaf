"""Tests for solorpg.attributes."""

import pytest

from solorpg.attributes import (
    POINT_BUY_TOTAL,
    UNIVERSAL_NAMES,
    AttributeAssignmentError,
    clamp_attributes,
    default_attributes,
    get_attribute,
    migrate,
    needs_migration,
    resolve_notation_attributes,
    universal_modifier,
    universal_name,
    validate_assignment,
)


class TestUniversalSet:
    def test_four_fixed_attributes(self) -> None:
        assert UNIVERSAL_NAMES == ("strength", "agility", "mind", "presence")

    def test_definitions(self) -> None:
        mind = get_attribute("mind")
        assert mind is not None
        assert (mind.min_value, mind.max_value, mind.default_value) == (1, 20, 5)
        assert get_attribute("charisma") is None

    def test_defaults(self) -> None:
        assert default_attributes() == {"strength": 5, "agility": 5, "mind": 5, "presence": 5}


class TestMigrate:
    def test_dnd_stats_keep_their_scale(self) -> None:
        result = migrate({"STR": 16, "DEX": 12, "INT": 9, "CHA": 14})
        assert result == {"strength": 16, "agility": 12, "mind": 9, "presence": 14}

    def test_percentile_stats_are_rescaled(self) -> None:
        result = migrate({"STR": 99, "DEX": 50, "POW": 60})
        assert result["strength"] == 20
        assert result["agility"] == 9
        assert result["mind"] == 11

    def test_dot_ratings_are_rescaled(self) -> None:
        result = migrate({"wits": 3, "manipulation": 5})
        assert result["mind"] == 12
        assert result["presence"] == 20

    def test_highest_contributor_wins(self) -> None:
        result = migrate({"STR": 10, "CON": 14, "SIZ": 8})
        assert result["strength"] == 14

    def test_missing_attributes_default(self) -> None:
        result = migrate({"DEX": 13})
        assert result == {"strength": 5, "agility": 13, "mind": 5, "presence": 5}

    def test_default_is_floor_for_low_legacy_values(self) -> None:
        result = migrate({"STR": 30, "DEX": 0.5, "wits": 1})
        assert result == {"strength": 5, "agility": 5, "mind": 5, "presence": 5}

    def test_universal_name(self) -> None:
        assert universal_name("str") == "strength"
        assert universal_name("Dexterity") == "agility"
        assert universal_name("sanity") is None

    def test_unknown_keys_and_junk_values_ignored(self) -> None:
        result = migrate({"sanity": 50, "STR": "strong", "DEX": float("nan"), "INT": True})
        assert result == default_attributes()

    def test_case_insensitive_keys(self) -> None:
        assert migrate({"Dexterity": 17})["agility"] == 17

    def test_universal_input_is_clamped_only(self) -> None:
        result = migrate({"strength": 25, "agility": 0, "mind": 7.5, "presence": 3})
        assert result == {"strength": 20, "agility": 1, "mind": 8, "presence": 3}

    @pytest.mark.parametrize("legacy", [
        {"STR": 16, "DEX": 12},
        {"STR": 70, "EDU": 85, "APP": 40},
        {"wits": 2, "composure": 4},
        {"strength": 3, "agility": 19},
        {},
    ])
    def test_idempotent(self, legacy: dict) -> None:
        once = migrate(legacy)
        assert migrate(once) == once
        assert set(once) == set(UNIVERSAL_NAMES)
        assert all(1 <= v <= 20 for v in once.values())

    def test_needs_migration(self) -> None:
        assert needs_migration({"STR": 10})
        assert not needs_migration({"strength": 10})

    def test_clamp_attributes_fills_defaults(self) -> None:
        assert clamp_attributes({"mind": 30}) == {"strength": 5, "agility": 5, "mind": 20, "presence": 5}


class TestModifiers:
    @pytest.mark.parametrize("value, modifier", [(1, -2), (3, -1), (5, 0), (10, 2), (12, 3), (18, 6), (20, 7)])
    def test_universal_modifier(self, value: int, modifier: int) -> None:
        assert universal_modifier(value) == modifier

    def test_notation_attribute_names(self) -> None:
        attrs = {"strength": 12, "agility": 2, "mind": 5, "presence": 5}
        assert resolve_notation_attributes("d20+strength", attrs) == "d20+3"
        assert resolve_notation_attributes("d20-agility", attrs) == "d20+2"
        assert resolve_notation_attributes("1d20+STR", attrs) == "1d20+3"

    def test_notation_without_names_unchanged(self) -> None:
        assert resolve_notation_attributes("2d6+1", {}) == "2d6+1"

    def test_unknown_name_left_alone(self) -> None:
        assert resolve_notation_attributes("d20+sanity", {}) == "d20+sanity"


class TestValidateAssignment:
    def test_within_budget(self) -> None:
        result = validate_assignment({"strength": 15, "agility": 10, "mind": 10, "presence": 5})
        assert sum(result.values()) == POINT_BUY_TOTAL

    def test_partial_assignment_filled_with_defaults(self) -> None:
        assert validate_assignment({"mind": 12})["strength"] == 5

    def test_over_budget_rejected(self) -> None:
        with pytest.raises(AttributeAssignmentError, match="budget"):
            validate_assignment({"strength": 20, "agility": 20, "mind": 1, "presence": 1})

    def test_out_of_range_rejected(self) -> None:
        with pytest.raises(AttributeAssignmentError):
            validate_assignment({"strength": 21})

    def test_unknown_name_rejected(self) -> None:
        with pytest.raises(AttributeAssignmentError, match="Unknown"):
            validate_assignment({"luck": 5})
