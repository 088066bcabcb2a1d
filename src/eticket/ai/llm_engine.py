"""Decision client: one language-model round-trip per ticket turn.

The client talks to any OpenAI-compatible endpoint through ``AsyncOpenAI``,
asks for a JSON object, and hands the text to ``decision_parsing``. There is
no retry: a transport error or timeout ends the turn with the generic
failure reply, and the session step stays where it was.
"""

from __future__ import annotations

import asyncio

from openai import AsyncOpenAI, OpenAIError

from eticket.ai import decision_parsing
from eticket.ai.llm_payload_builder import build_decision_messages
from eticket.configuration.ai_settings import AISettings
from eticket.datatypes.action_datatypes import Decision
from eticket.datatypes.ticket_datatypes import ConversationContext
from eticket.util.logger import get_logger

logger = get_logger("llm_engine")


class DecisionClient:
    """
    Translate a ConversationContext into a validated Decision.

    Args:
        ai_settings: Backend address, model name, timeout and system prompt.
        target_policy: Forwarded to :func:`decision_parsing.parse_decision`.
        client: Pre-built client; tests inject a mock here.
    """

    def __init__(
        self,
        ai_settings: AISettings,
        target_policy: str = "require",
        client: AsyncOpenAI | None = None,
    ) -> None:
        self._client = client or AsyncOpenAI(
            api_key=ai_settings.api_key,
            base_url=ai_settings.base_url,
        )
        self._model_name = ai_settings.model_name
        self._timeout = ai_settings.request_timeout
        self._system_prompt = ai_settings.system_prompt
        self._target_policy = target_policy
        logger.info(
            "[DECISION] Initialized with base_url=%s, model=%s, timeout=%.1fs",
            ai_settings.base_url,
            self._model_name,
            self._timeout,
        )

    async def decide(self, context: ConversationContext) -> Decision:
        """Run one model call for `context`. Never raises for backend faults."""
        messages = build_decision_messages(context, self._system_prompt)

        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self._model_name,
                    messages=messages,
                    response_format={"type": "json_object"},
                ),
                timeout=self._timeout,
            )
            response_text = response.choices[0].message.content or ""
        except asyncio.TimeoutError:
            logger.error("[DECISION] Model call timed out after %.1fs", self._timeout)
            return decision_parsing.fallback_decision()
        except (OpenAIError, IndexError, AttributeError) as exc:
            logger.error("[DECISION] Model call failed: %s", exc)
            return decision_parsing.fallback_decision()

        decision = decision_parsing.parse_decision(
            response_text,
            author_id=context.author_id,
            target_policy=self._target_policy,
        )
        logger.info(
            "[DECISION] step=%s -> action=%s target=%s newStep=%s",
            context.step,
            decision.action,
            decision.target_user_id,
            decision.new_step,
        )
        logger.debug("[DECISION] Raw response: %s", response_text)
        return decision
