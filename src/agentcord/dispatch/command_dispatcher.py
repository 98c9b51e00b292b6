"""Per-message control flow of the function-call resolution pipeline.

    routing -> direct call parse -> (embedded shorthand) -> model -> execute

Whichever step first yields a structured call hands it to the executor; a
model reply without a call is returned as conversation.
"""

from __future__ import annotations

from agentcord.ai.model_bridge import ModelBridge
from agentcord.configuration.persona import PersonaSettings
from agentcord.datatypes.action_datatypes import ExecutionContext, StructuredCall
from agentcord.dispatch.action_executor import ActionExecutor
from agentcord.dispatch.call_parser import DirectTextCallParser
from agentcord.dispatch.intent_router import IntentRouter
from agentcord.util.logger import get_logger

logger = get_logger("command_dispatcher")


EMPTY_RESULT_REPLY = "Command executed successfully."


class CommandDispatcher:
    """Turns one message into at most one reply string."""

    def __init__(
        self,
        router: IntentRouter,
        parser: DirectTextCallParser,
        bridge: ModelBridge,
        executor: ActionExecutor,
        persona: PersonaSettings,
    ) -> None:
        self.router = router
        self.parser = parser
        self.bridge = bridge
        self.executor = executor
        self.persona = persona

    async def handle(
        self,
        text: str,
        context: ExecutionContext,
        bot_mentioned: bool,
        bot_user_id: int | None = None,
    ) -> str | None:
        """Return the reply for ``text``, or None when the message is not addressed to the bot."""
        if not self.router.should_handle(text, bot_mentioned):
            logger.debug("[COMMAND DISPATCHER] Ignoring message not addressed to the bot")
            return None

        query = self.router.extract_query(text, bot_user_id)
        if not query:
            return self.persona.greeting_message

        call = self.parser.parse(query) or self.parser.find_shorthand(query)
        if call is not None:
            logger.info("[COMMAND DISPATCHER] Direct call %s %s", call.name, call.arguments)
            return await self._execute(call, context)

        expose_catalog = self.router.is_administrative_intent(query)
        reply = await self.bridge.generate(query, expose_catalog)
        if reply.function_call is not None:
            return await self._execute(reply.function_call, context)

        content = reply.content.strip()
        return content or self.persona.general_error

    async def _execute(self, call: StructuredCall, context: ExecutionContext) -> str:
        result = await self.executor.execute(call, context)
        logger.info("[COMMAND DISPATCHER] %s -> %s", call.name, result)
        return result if result and result.strip() else EMPTY_RESULT_REPLY
