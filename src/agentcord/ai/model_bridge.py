"""Language-model collaborator for free-form requests.

Sends the persona system prompt and the user's query to an OpenAI-compatible
chat completions endpoint. When the request looks administrative, the action
catalog is attached as tool declarations so the model may answer with a
structured call instead of text.

The bridge is a fail-soft boundary: any transport or API failure becomes the
persona's AI-failure message, never an exception.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, List

from openai import AsyncOpenAI
from openai.types.chat import ChatCompletionMessageParam

from agentcord.actions.action_catalog import ActionCatalog
from agentcord.configuration.ai_settings import AISettings
from agentcord.configuration.persona import PersonaSettings
from agentcord.datatypes.action_datatypes import StructuredCall
from agentcord.util.logger import get_logger

logger = get_logger("model_bridge")


CODE_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


@dataclass(slots=True)
class ModelReply:
    """Normalised model response: text plus at most one structured call."""
    content: str
    function_call: StructuredCall | None = None


def create_client(ai_settings: AISettings, api_key: str) -> AsyncOpenAI:
    """Build the AsyncOpenAI client for the configured endpoint."""
    return AsyncOpenAI(
        api_key=api_key,
        base_url=ai_settings.base_url,
        timeout=ai_settings.request_timeout,
    )


def parse_call_arguments(raw: Any) -> Dict[str, Any]:
    """Parse a tool call's serialized arguments, repairing common damage.

    Accepts a dict as-is, strips Markdown code fences, and falls back to the
    outermost ``{...}`` span when the payload has surrounding text. Anything
    that still does not decode to an object yields ``{}``; the executor then
    reports the missing arguments.
    """
    if isinstance(raw, dict):
        return dict(raw)
    if not isinstance(raw, str) or not raw.strip():
        return {}

    text = raw.strip()
    fenced = CODE_FENCE_PATTERN.match(text)
    if fenced:
        text = fenced.group(1)

    candidates = [text]
    start, end = text.find("{"), text.rfind("}")
    if 0 <= start < end and (start, end) != (0, len(text) - 1):
        candidates.append(text[start:end + 1])

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed

    logger.warning("[MODEL BRIDGE] Could not parse tool call arguments: %r", raw[:200])
    return {}


class ModelBridge:
    """Wraps the chat completions API for one persona and one action catalog."""

    def __init__(
        self,
        client: AsyncOpenAI,
        persona: PersonaSettings,
        catalog: ActionCatalog,
        ai_settings: AISettings | None = None,
    ) -> None:
        self._client = client
        self._persona = persona
        self._catalog = catalog
        self._ai_settings = ai_settings or AISettings()
        logger.info("[MODEL BRIDGE] Initialized with model=%s", persona.model)

    def build_request(self, query: str, expose_catalog: bool) -> Dict[str, Any]:
        """Return the keyword arguments for ``chat.completions.create``."""
        messages: List[ChatCompletionMessageParam] = [
            {"role": "system", "content": self._persona.system_prompt},
            {"role": "user", "content": query},
        ]
        request: Dict[str, Any] = {"model": self._persona.model, "messages": messages}
        if expose_catalog:
            request["tools"] = self._catalog.to_tool_declarations()
        if self._ai_settings.temperature is not None:
            request["temperature"] = self._ai_settings.temperature
        if self._ai_settings.max_tokens is not None:
            request["max_tokens"] = self._ai_settings.max_tokens
        return request

    async def generate(self, query: str, expose_catalog: bool) -> ModelReply:
        """Ask the model about ``query``; never raises."""
        request = self.build_request(query, expose_catalog)
        logger.debug("[MODEL BRIDGE] Requesting completion (tools exposed: %s)", expose_catalog)
        try:
            response = await self._client.chat.completions.create(**request)
            return self._normalise(response)
        except Exception as exc:
            logger.error("[MODEL BRIDGE] Chat completion failed: %s", exc)
            return ModelReply(content=self._persona.ai_failure_error)

    @staticmethod
    def _normalise(response: Any) -> ModelReply:
        choices = getattr(response, "choices", None) or []
        if not choices:
            logger.warning("[MODEL BRIDGE] Response contained no choices")
            return ModelReply(content="")

        message = choices[0].message
        content = message.content or ""
        if isinstance(content, list):
            content = "".join(part if isinstance(part, str) else getattr(part, "text", "") for part in content)

        tool_calls = getattr(message, "tool_calls", None) or []
        if tool_calls:
            if len(tool_calls) > 1:
                logger.info("[MODEL BRIDGE] Model proposed %d tool calls, using the first", len(tool_calls))
            function = tool_calls[0].function
            call = StructuredCall(name=function.name, arguments=parse_call_arguments(function.arguments))
            logger.info("[MODEL BRIDGE] Model requested %s", call.name)
            return ModelReply(content=content, function_call=call)

        legacy_call = getattr(message, "function_call", None)
        if legacy_call is not None and getattr(legacy_call, "name", None):
            return ModelReply(
                content=content,
                function_call=StructuredCall(name=legacy_call.name, arguments=parse_call_arguments(legacy_call.arguments)),
            )

        return ModelReply(content=content)
