from fastapi import APIRouter, Request, HTTPException

from ..models.agents import AgentProfile

router = APIRouter(prefix="/api/agents")


def _get_agent_service(request: Request):
    svc = request.app.state.agent_service
    if not svc:
        raise HTTPException(status_code=503, detail="Agent service not available")
    return svc


@router.get("/")
async def list_agents(request: Request, active_only: bool = False):
    svc = _get_agent_service(request)
    agents = await svc.list_agents(active_only=active_only)
    return {"agents": [a.model_dump() for a in agents], "count": len(agents)}


@router.get("/{agent_id}")
async def get_agent(request: Request, agent_id: str):
    svc = _get_agent_service(request)
    agent = await svc.get_agent(agent_id)
    if not agent:
        raise HTTPException(status_code=404, detail="Agent not found")
    return agent.model_dump()


@router.put("/")
async def upsert_agent(request: Request, body: AgentProfile):
    svc = _get_agent_service(request)
    return await svc.upsert_agent(body)


@router.delete("/{agent_id}")
async def delete_agent(request: Request, agent_id: str):
    svc = _get_agent_service(request)
    return await svc.delete_agent(agent_id)
