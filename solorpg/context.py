"""Conversation context for the LLM transcript.

The providers want a transcript that opens with a user turn and strictly
alternates user/assistant. Stored history does not look like that: system
notes are mixed in, and a roll result or two player messages in a row
produce consecutive turns of the same role. assemble_context() bridges the
two:

    last `window` messages -> drop system -> ai=>assistant
        -> merge consecutive same-role turns ("\\n\\n")
        -> prepend "[Conversation started]" if the first turn is not user

An empty history gives an empty transcript; the LLM client supplies its own
opening turn in that case.
"""

from __future__ import annotations

from collections.abc import Sequence

from solorpg.models import Message, Turn

DEFAULT_CONTEXT_WINDOW = 20
CONVERSATION_STARTED = "[Conversation started]"


def assemble_context(messages: Sequence[Message], window: int = DEFAULT_CONTEXT_WINDOW) -> list[Turn]:
    recent = list(messages)[-window:] if window > 0 else []

    turns: list[Turn] = []
    for message in recent:
        if message.role == "system":
            continue
        role = "user" if message.role == "user" else "assistant"
        if turns and turns[-1].role == role:
            turns[-1] = Turn(role=role, content=f"{turns[-1].content}\n\n{message.content}")
        else:
            turns.append(Turn(role=role, content=message.content))

    if turns and turns[0].role != "user":
        turns.insert(0, Turn(role="user", content=CONVERSATION_STARTED))
    return turns
