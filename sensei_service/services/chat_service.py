import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable

from ..clock import to_iso, utcnow
from ..context import (
    adjust_for_context,
    analyze_response_length,
    build_persona,
    category_directive,
    check_ng_words,
    check_restricted_topics,
    classify_importance,
    compose_parts,
    custom_directive,
    mode_directive,
)
from ..errors import AgentNotFoundError, CacheError
from ..models.chat import ChatRequest, ChatResponse

logger = logging.getLogger(__name__)


class ChatService:
    """One chat turn: history snapshot, length control, prompt, completion, cache write.

    The cache write runs as a detached task after the reply exists, so a
    caller that goes away after generation does not lose the write, and a
    failing write does not fail the turn.
    """

    def __init__(self, agent_service, cache_service, completion_service,
                 clock: Callable[[], datetime] = utcnow):
        self.agent_service = agent_service
        self.cache_service = cache_service
        self.completion_service = completion_service
        self._clock = clock
        self._pending: set[asyncio.Task] = set()

    async def send_message(self, request: ChatRequest) -> ChatResponse:
        received_at = self._clock()
        agent = await self.agent_service.get_agent(request.agent_id)
        if agent is None:
            raise AgentNotFoundError(request.agent_id)

        refusal = check_ng_words(request.message, agent) or check_restricted_topics(request.message, agent)
        if refusal:
            logger.info("Blocked message for agent %s", agent.id)
            return ChatResponse(
                response=refusal,
                agent_id=agent.id,
                timestamp=to_iso(self._clock()),
                blocked=True,
            )

        persona = build_persona(agent)

        caching = request.use_cache and bool(request.session_id)
        cached_messages = None
        if caching:
            cache = await self.cache_service.get(agent.id, request.session_id)
            if cache and cache.messages:
                cached_messages = cache.messages
        history = self.cache_service.format_history(cached_messages) if cached_messages else None

        analysis = analyze_response_length(request.message, request.category, request.response_length)
        length_instruction = adjust_for_context(analysis.instruction, cached_messages)

        parts = compose_parts(
            persona,
            history,
            length_instruction,
            category_directive(request.category),
            mode_directive(request.mode),
            request.message,
            custom_directive=custom_directive(agent, request.category, request.mode),
            message_type=analysis.message_type,
            recommended_length=analysis.recommended_length,
        )

        reply = await self.completion_service.complete(parts.system_prompt, parts.user_prompt)

        if caching:
            task = asyncio.get_running_loop().create_task(
                self._save_exchange(agent.id, request.session_id, request.message,
                                    request.category, reply, received_at)
            )
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

        return ChatResponse(
            response=reply,
            agent_id=agent.id,
            timestamp=to_iso(self._clock()),
            message_type=analysis.message_type,
            recommended_length=analysis.recommended_length,
        )

    async def drain(self):
        """Wait for outstanding cache writes."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _save_exchange(self, agent_id: str, session_id: str, user_text: str,
                             category: str | None, reply: str, received_at: datetime):
        try:
            user_message = self.cache_service.make_message(
                user_text, "user", classify_importance(user_text, category), timestamp=received_at
            )
            await self.cache_service.append(agent_id, session_id, user_message)

            # the reply always sorts after the message it answers
            replied_at = max(self._clock(), received_at + timedelta(milliseconds=1))
            agent_message = self.cache_service.make_message(
                reply, "agent", classify_importance(reply), timestamp=replied_at
            )
            await self.cache_service.append(agent_id, session_id, agent_message)
            logger.info("Saved exchange to conversation cache %s/%s", agent_id, session_id)
        except CacheError as e:
            logger.error("Conversation cache write failed for %s/%s: %s", agent_id, session_id, e)
