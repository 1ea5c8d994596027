"""Prompt assembly from a (possibly trimmed) conversation context."""

from __future__ import annotations

from siyaq.core.constants import PROMPT_RECENT_TURNS
from siyaq.core.prompts import (
    ASSISTANT_ROLE_LABEL,
    KEY_POINTS_LABEL,
    RECENT_CONVERSATION_HEADER,
    SUMMARY_LABEL,
    USER_ROLE_LABEL,
)
from siyaq.models.context_models import ConversationContext


def role_label(role: str) -> str:
    """Arabic label for a message author. Anything but ``user`` reads as the assistant."""
    return USER_ROLE_LABEL if role == "user" else ASSISTANT_ROLE_LABEL


def assemble_prompt(
    context: ConversationContext,
    user_message: str,
    recent_turns: int = PROMPT_RECENT_TURNS,
) -> str:
    """Build the single prompt string handed to the model layer.

    Sections, in order and each only when present:
    summary, key points, the last ``recent_turns`` messages, then the new
    user message. Pure function of its inputs.
    """
    parts: list[str] = []

    if context.summary:
        parts.append(f"{SUMMARY_LABEL}: {context.summary}\n\n")

    if context.key_points:
        parts.append(f"{KEY_POINTS_LABEL}: {', '.join(context.key_points)}\n\n")

    recent = context.messages[-recent_turns:] if recent_turns > 0 else []
    if recent:
        parts.append(f"{RECENT_CONVERSATION_HEADER}\n")
        parts.extend(f"{role_label(message.role)}: {message.content}\n" for message in recent)
        parts.append("\n")

    parts.append(f"{USER_ROLE_LABEL}: {user_message}")
    return "".join(parts)
