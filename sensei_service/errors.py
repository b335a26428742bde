class SenseiError(Exception):
    """Base class for service errors."""


class StoreUnavailableError(SenseiError):
    """The document store backend could not be reached or failed."""


class CacheError(SenseiError):
    """A conversation cache write failed."""


class CompletionError(SenseiError):
    """The text-completion call failed."""


class QuotaExceededError(CompletionError):
    """Every configured completion key is exhausted."""


class AgentNotFoundError(SenseiError):
    def __init__(self, agent_id: str):
        super().__init__(f"Agent not found: {agent_id}")
        self.agent_id = agent_id


class PersonaError(SenseiError):
    """The agent has no usable persona; the request cannot be composed."""
