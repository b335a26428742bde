import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from ..errors import CompletionError, QuotaExceededError

logger = logging.getLogger(__name__)


@dataclass
class ApiKeyState:
    name: str
    api_key: str
    priority: int
    max_daily_requests: int
    status: str = "active"  # active | quota_exceeded | error
    request_count: int = 0
    daily_request_count: int = 0
    last_reset_date: date = field(default_factory=lambda: datetime.now(timezone.utc).date())
    last_used: datetime | None = None

    @property
    def usable(self) -> bool:
        return self.status == "active" and self.daily_request_count < self.max_daily_requests


def _is_quota_error(error: Exception) -> bool:
    if isinstance(error, genai_errors.APIError) and error.code == 429:
        return True
    message = str(error)
    return "RESOURCE_EXHAUSTED" in message or "quota" in message.lower()


class CompletionService:
    """Gemini text completion with priority-ordered key rotation.

    A quota error parks the current key until the next UTC day and the
    call is retried with the next usable key. Other errors are raised as
    CompletionError without retrying.
    """

    def __init__(self, settings, client_factory=genai.Client):
        self.model = settings.gemini_model
        self._client_factory = client_factory
        self._clients: dict[str, object] = {}
        self.keys = [
            ApiKeyState(
                name=f"GEMINI_API_KEY_{i + 1}",
                api_key=key,
                priority=i + 1,
                max_daily_requests=settings.gemini_max_daily_requests,
            )
            for i, key in enumerate(settings.api_keys)
        ]

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Generate a reply. The returned text is passed through unchanged."""
        while True:
            key = self._active_key()
            if key is None:
                raise QuotaExceededError("No usable Gemini API key available")

            try:
                response = await self._client(key).aio.models.generate_content(
                    model=self.model,
                    contents=user_prompt,
                    config=types.GenerateContentConfig(system_instruction=system_prompt),
                )
            except Exception as e:
                if _is_quota_error(e):
                    key.status = "quota_exceeded"
                    logger.warning("%s hit its quota, switching to the next key", key.name)
                    continue
                logger.error("Gemini call failed with %s: %s", key.name, e)
                raise CompletionError(f"Reply generation failed: {e}") from e

            key.request_count += 1
            key.daily_request_count += 1
            key.last_used = datetime.now(timezone.utc)
            return response.text or ""

    def usage_stats(self) -> dict:
        self._reset_daily_counts()
        return {
            "total_requests": sum(k.request_count for k in self.keys),
            "today_requests": sum(k.daily_request_count for k in self.keys),
            "active_keys": sum(1 for k in self.keys if k.usable),
            "total_keys": len(self.keys),
            "model": self.model,
        }

    def reset_key(self, name: str) -> bool:
        for key in self.keys:
            if key.name == name:
                key.status = "active"
                key.daily_request_count = 0
                logger.info("Reset status of %s", name)
                return True
        return False

    def _active_key(self) -> ApiKeyState | None:
        self._reset_daily_counts()
        return next((k for k in self.keys if k.usable), None)

    def _reset_daily_counts(self):
        today = datetime.now(timezone.utc).date()
        for key in self.keys:
            if key.last_reset_date != today:
                key.daily_request_count = 0
                key.last_reset_date = today
                if key.status == "quota_exceeded":
                    key.status = "active"

    def _client(self, key: ApiKeyState):
        client = self._clients.get(key.name)
        if client is None:
            client = self._client_factory(api_key=key.api_key)
            self._clients[key.name] = client
        return client
