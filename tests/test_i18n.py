"""Tests for solorpg.i18n."""

import pytest

from solorpg.i18n import TRANSLATIONS, language_name, normalize_language, t


@pytest.mark.parametrize("raw, code", [("pt-BR", "pt"), ("EN", "en"), ("es_MX", "es"), ("", "en"), (None, "en")])
def test_normalize_language(raw, code) -> None:
    assert normalize_language(raw) == code


def test_language_name() -> None:
    assert language_name("pt-BR") == "Português"
    assert language_name("xx") == "xx"


class TestTranslate:
    def test_every_language_has_every_key(self) -> None:
        keys = set(TRANSLATIONS["en"])
        for table in TRANSLATIONS.values():
            assert set(table) == keys

    def test_placeholders(self) -> None:
        text = t("game_over", "es", name="Mira")
        assert "Mira ha caído en batalla" in text

    def test_unknown_language_falls_back_to_english(self) -> None:
        assert t("ai_error_notice", "fr") == TRANSLATIONS["en"]["ai_error_notice"]

    def test_missing_params_left_in_place(self) -> None:
        assert "{theme}" in t("start_fallback", "en", system="Generic", tone="light")

    def test_unknown_key_returns_key(self) -> None:
        assert t("no_such_key") == "no_such_key"
