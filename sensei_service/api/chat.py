import logging

from fastapi import APIRouter, Request, HTTPException

from ..errors import (
    AgentNotFoundError,
    CompletionError,
    PersonaError,
    QuotaExceededError,
    StoreUnavailableError,
)
from ..models.chat import ChatRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat")


def _get_chat_service(request: Request):
    svc = request.app.state.chat_service
    if not svc:
        raise HTTPException(status_code=503, detail="Chat service not available")
    return svc


@router.post("")
async def send_message(request: Request, body: ChatRequest):
    svc = _get_chat_service(request)
    try:
        return await svc.send_message(body)
    except AgentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PersonaError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except StoreUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except QuotaExceededError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except CompletionError as e:
        raise HTTPException(status_code=502, detail=str(e))
