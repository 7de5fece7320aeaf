"""Canned strings for the narrator fallbacks, in English, Portuguese and Spanish.

Only the text the engine itself emits lives here. t() falls back to English
for unknown languages and leaves unknown {placeholders} as they are.
"""

from __future__ import annotations

import logging
import re

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en"

LANGUAGE_NAMES: dict[str, str] = {
    "en": "English",
    "pt": "Português",
    "es": "Español",
    "fr": "Français",
    "de": "Deutsch",
    "it": "Italiano",
    "ja": "日本語",
    "ko": "한국어",
    "zh": "中文",
    "ru": "Русский",
}

TRANSLATIONS: dict[str, dict[str, str]] = {
    "en": {
        "ai_offline_notice": "⚠️ AI service temporarily unavailable. Using offline mode.",
        "ai_error_notice": "⚠️ AI service error. You can continue playing with the fallback narration.",
        "start_fallback": (
            "Welcome to your {theme} adventure in the {system} system!\n\n"
            "Your journey begins in a world filled with mystery and danger. "
            "The tone is {tone}, and countless stories await to be told.\n\n"
            "What would you like to do?"
        ),
        "game_over": (
            "💀 **GAME OVER**\n\n{name} has fallen in battle. Their hit points reached zero.\n\n"
            "_Your adventure has come to an end. You can start a new campaign or return to the main menu._"
        ),
        "game_over_wrapper": (
            "💀 **GAME OVER**\n\n{narration}\n\n"
            "_Your adventure has come to an end. You can start a new campaign or return to the main menu._"
        ),
    },
    "pt": {
        "ai_offline_notice": "⚠️ Serviço de IA temporariamente indisponível. Usando modo offline.",
        "ai_error_notice": "⚠️ Erro no serviço de IA. Você pode continuar jogando com a narração alternativa.",
        "start_fallback": (
            "Bem-vindo à sua aventura {theme} no sistema {system}!\n\n"
            "Sua jornada começa em um mundo cheio de mistério e perigo. "
            "O tom é {tone}, e incontáveis histórias aguardam para serem contadas.\n\n"
            "O que você gostaria de fazer?"
        ),
        "game_over": (
            "💀 **GAME OVER**\n\n{name} caiu em batalha. Os pontos de vida chegaram a zero.\n\n"
            "_Sua aventura chegou ao fim. Você pode começar uma nova campanha ou voltar ao menu principal._"
        ),
        "game_over_wrapper": (
            "💀 **GAME OVER**\n\n{narration}\n\n"
            "_Sua aventura chegou ao fim. Você pode começar uma nova campanha ou voltar ao menu principal._"
        ),
    },
    "es": {
        "ai_offline_notice": "⚠️ Servicio de IA temporalmente no disponible. Usando modo sin conexión.",
        "ai_error_notice": "⚠️ Error en el servicio de IA. Puedes continuar jugando con la narración alternativa.",
        "start_fallback": (
            "¡Bienvenido a tu aventura {theme} en el sistema {system}!\n\n"
            "Tu viaje comienza en un mundo lleno de misterio y peligro. "
            "El tono es {tone}, e innumerables historias esperan ser contadas.\n\n"
            "¿Qué te gustaría hacer?"
        ),
        "game_over": (
            "💀 **GAME OVER**\n\n{name} ha caído en batalla. Sus puntos de vida llegaron a cero.\n\n"
            "_Tu aventura ha llegado a su fin. Puedes comenzar una nueva campaña o volver al menú principal._"
        ),
        "game_over_wrapper": (
            "💀 **GAME OVER**\n\n{narration}\n\n"
            "_Tu aventura ha llegado a su fin. Puedes comenzar una nueva campaña o volver al menú principal._"
        ),
    },
}

_PLACEHOLDER_RE = re.compile(r"\{(\w+)\}")


def normalize_language(language: str | None) -> str:
    """"pt-BR" -> "pt", "EN" -> "en". Empty -> the default language."""
    if not language:
        return DEFAULT_LANGUAGE
    return language.strip().lower().replace("_", "-").split("-")[0] or DEFAULT_LANGUAGE


def language_name(language: str | None) -> str:
    code = normalize_language(language)
    return LANGUAGE_NAMES.get(code, code)


def t(key: str, language: str | None = None, **params: object) -> str:
    table = TRANSLATIONS.get(normalize_language(language), TRANSLATIONS[DEFAULT_LANGUAGE])
    template = table.get(key) or TRANSLATIONS[DEFAULT_LANGUAGE].get(key)
    if template is None:
        logger.warning("Missing translation key %r", key)
        return key
    return _PLACEHOLDER_RE.sub(
        lambda m: str(params[m.group(1)]) if m.group(1) in params else m.group(0),
        template,
    )
