"""
Build chat-completion messages from a ConversationContext.

JSON payload shape sent to the model:
    step, reason, owner_id, guild,
    staff[].user_id / name / mention,
    channels[].id / name / type,
    transcript[].author_id / author / bot / content,
    message.author_id / content / attachments
"""

from __future__ import annotations

import json
from typing import Any, Dict, List

from openai.types.chat import (
    ChatCompletionMessageParam,
    ChatCompletionSystemMessageParam,
    ChatCompletionUserMessageParam,
)

from eticket.datatypes.ticket_datatypes import ConversationContext
from eticket.util.logger import get_logger

logger = get_logger("llm_payload_builder")

EMPTY_MESSAGE_MARKER = "[empty]"


def build_context_payload(context: ConversationContext) -> Dict[str, Any]:
    """Serialise every fact of the turn into a JSON-ready mapping."""
    staff = sorted(context.staff, key=lambda entry: entry.id.to_int())
    channels = sorted(context.channels, key=lambda channel: channel.id.to_int())

    latest = context.latest_message.strip()
    return {
        "step": context.step,
        "reason": context.reason,
        "owner_id": str(context.owner_id) if context.owner_id is not None else None,
        "guild": context.guild_name,
        "staff": [
            {"user_id": str(entry.id), "name": entry.display_name, "mention": entry.mention}
            for entry in staff
        ],
        "channels": [
            {"id": str(channel.id), "name": channel.name, "type": channel.type}
            for channel in channels
        ],
        "transcript": [
            {
                "author_id": str(line.author_id),
                "author": line.author_name,
                "bot": line.is_bot,
                "content": line.content,
            }
            for line in context.transcript
        ],
        "message": {
            "author_id": str(context.author_id),
            "content": latest or EMPTY_MESSAGE_MARKER,
            "attachments": context.attachment_count,
        },
    }


def build_decision_messages(
    context: ConversationContext,
    system_prompt: str,
) -> List[ChatCompletionMessageParam]:
    """Return the [system, user] message pair for one decision request."""
    payload = build_context_payload(context)

    messages: List[ChatCompletionMessageParam] = [
        ChatCompletionSystemMessageParam(role="system", content=system_prompt),
        ChatCompletionUserMessageParam(
            role="user",
            content=json.dumps(payload, ensure_ascii=False, separators=(",", ":")),
        ),
    ]

    logger.debug(
        "[PAYLOAD] step=%s staff=%d channels=%d transcript=%d",
        context.step, len(payload["staff"]), len(payload["channels"]), len(payload["transcript"]),
    )
    return messages
