import logging

from pydantic import ValidationError

from ..models.agents import AgentProfile

logger = logging.getLogger(__name__)


class AgentService:
    def __init__(self, store, collection: str = "agents"):
        self.store = store
        self.collection = collection

    async def get_agent(self, agent_id: str) -> AgentProfile | None:
        """Get a single agent by id."""
        doc = await self.store.get(self.collection, agent_id)
        if not doc:
            return None
        try:
            return AgentProfile.model_validate(doc)
        except ValidationError as e:
            logger.error("Stored agent %s is malformed: %s", agent_id, e)
            return None

    async def list_agents(self, active_only: bool = False) -> list[AgentProfile]:
        """All agents, optionally only active ones, sorted by display name."""
        agents = []
        for key, doc in await self.store.scan(self.collection):
            try:
                agent = AgentProfile.model_validate(doc)
            except ValidationError as e:
                logger.warning("Skipping malformed agent %s: %s", key, e)
                continue
            if active_only and not agent.is_active:
                continue
            agents.append(agent)
        return sorted(agents, key=lambda a: a.display_name)

    async def upsert_agent(self, agent: AgentProfile) -> dict:
        await self.store.put(self.collection, agent.id, agent.model_dump())
        return {"agent_id": agent.id, "upserted": True}

    async def delete_agent(self, agent_id: str) -> dict:
        deleted = await self.store.delete(self.collection, agent_id)
        return {"deleted": 1 if deleted else 0}
