from pydantic import BaseModel, Field
from typing import Literal, Optional

PersonalityCategory = Literal["core", "challenging", "practical", "boundaries", "language"]


class PersonalityAnswer(BaseModel):
    question_id: str
    category: PersonalityCategory
    answer: str


class PersonalityProfile(BaseModel):
    """Questionnaire answers describing how the agent teaches."""

    answers: list[PersonalityAnswer] = Field(default_factory=list)
    is_complete: bool = False


class NGWordSettings(BaseModel):
    enabled: bool = False
    words: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    custom_message: Optional[str] = None


class CustomPrompt(BaseModel):
    category: Optional[str] = None
    mode: Optional[str] = None
    prompt: str


class ResponseCustomization(BaseModel):
    enable_customization: bool = False
    custom_prompts: list[CustomPrompt] = Field(default_factory=list)
    restricted_topics: list[str] = Field(default_factory=list)


class AgentProfile(BaseModel):
    id: str
    display_name: str
    personality: str = ""
    specialties: list[str] = Field(default_factory=list)
    greeting: Optional[str] = None
    is_active: bool = True
    personality_profile: Optional[PersonalityProfile] = None
    ng_words: Optional[NGWordSettings] = None
    response_customization: Optional[ResponseCustomization] = None
