"""Validation of the model's structured output into a Decision.

The model's reply is untrusted. Anything that is not a JSON object with a
string ``reply`` becomes the fallback decision; everything else is coerced
field by field so a bad ``action`` or ``targetUserId`` can never reach the
executor.
"""

from __future__ import annotations

import json
from typing import Any

import jsonschema
from jsonschema import ValidationError

from eticket.datatypes.action_datatypes import ActionType, Decision
from eticket.datatypes.discord_datatypes import UserID
from eticket.util.logger import get_logger

logger = get_logger("decision_parsing")

FAILURE_REPLY = "Une erreur est survenue lors du traitement de votre demande."

MAX_STEP_LENGTH = 64
MAX_REASON_LENGTH = 512

# Only the outer shape is enforced here; ``action`` is coerced, not rejected.
DECISION_SCHEMA: dict = {
    "type": "object",
    "properties": {
        "reply": {"type": "string", "minLength": 1},
        "action": {},
        "targetUserId": {"type": ["string", "integer", "null"]},
        "reason": {"type": ["string", "null"]},
        "newStep": {"type": ["string", "null"]},
    },
    "required": ["reply"],
}


def fallback_decision(reply: str = FAILURE_REPLY) -> Decision:
    return Decision(reply=reply, action=ActionType.NONE)


def _extract_json_payload(raw: str) -> Any:
    """Parse `raw` as JSON, tolerating a surrounding ```json fence."""
    text = raw.strip()
    if text.startswith("```"):
        text = text.strip("`")
        if text.lower().startswith("json"):
            text = text[4:]
    try:
        return json.loads(text.strip())
    except json.JSONDecodeError as exc:
        raise ValueError(f"Failed to extract JSON payload: {exc}") from exc


def _clean_text(value: Any, limit: int) -> str | None:
    if not isinstance(value, str):
        return None
    text = value.strip()
    return text[:limit] if text else None


def parse_decision(
    raw: str,
    author_id: UserID,
    target_policy: str = "require",
) -> Decision:
    """Parse one model response into a Decision.

    Args:
        raw: Text content returned by the model.
        author_id: Author of the message that triggered the turn.
        target_policy: ``"author"`` sanctions the author when the model names
            no target; ``"require"`` drops the action instead.

    Returns:
        A validated Decision. Never raises.
    """
    try:
        payload = _extract_json_payload(raw or "")
    except ValueError as exc:
        logger.error("[PARSE] %s", exc)
        return fallback_decision()

    try:
        jsonschema.validate(instance=payload, schema=DECISION_SCHEMA)
    except ValidationError as exc:
        logger.error("[PARSE] Decision schema validation failed: %s", exc.message)
        return fallback_decision()

    reply = payload["reply"].strip() or FAILURE_REPLY

    raw_action = payload.get("action")
    action = ActionType.coerce(raw_action)
    if raw_action not in (None, "") and action is ActionType.NONE and str(raw_action).upper() != "NONE":
        logger.warning("[PARSE] Unknown action %r coerced to NONE", raw_action)

    raw_target = payload.get("targetUserId")
    target = UserID.parse(raw_target)
    if raw_target not in (None, "") and target is None:
        logger.warning("[PARSE] Ignoring malformed targetUserId %r", raw_target)

    if action.is_sanction and target is None:
        if target_policy == "author":
            logger.info("[PARSE] %s without target; defaulting to author %s", action, author_id)
            target = UserID(author_id)
        else:
            logger.warning("[PARSE] %s without targetUserId rejected", action)
            action = ActionType.NONE

    return Decision(
        reply=reply,
        action=action,
        target_user_id=target if action.is_sanction else None,
        reason=_clean_text(payload.get("reason"), MAX_REASON_LENGTH),
        new_step=_clean_text(payload.get("newStep"), MAX_STEP_LENGTH),
    )
