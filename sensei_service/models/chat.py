from pydantic import BaseModel, field_validator
from typing import Literal, Optional

Category = Literal["daily", "career", "study", "relationships"]
ChatMode = Literal["normal", "detailed", "quick", "encouraging"]
ResponseLength = Literal["auto", "short", "medium", "long"]

# Labels used by the Japanese chat UI
CATEGORY_ALIASES = {
    "日常会話": "daily",
    "進路": "career",
    "学習": "study",
    "人間関係": "relationships",
}


class ChatRequest(BaseModel):
    message: str
    agent_id: str
    session_id: Optional[str] = None
    category: Optional[Category] = None
    mode: Optional[ChatMode] = None
    use_cache: bool = True
    response_length: ResponseLength = "auto"

    @field_validator("category", mode="before")
    @classmethod
    def normalize_category(cls, v):
        if isinstance(v, str):
            return CATEGORY_ALIASES.get(v, v)
        return v


class ChatResponse(BaseModel):
    response: str
    agent_id: str
    timestamp: str
    message_type: Optional[str] = None
    recommended_length: Optional[str] = None
    blocked: bool = False
