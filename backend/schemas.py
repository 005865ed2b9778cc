from typing import Optional, Any, Dict
from datetime import datetime

from pydantic import BaseModel, Field, ConfigDict, field_validator

from backend.errors import E_INTERNAL


class GenerationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Defaults let missing fields reach the orchestrator's own validation
    graphql_schema: str = Field(default="", alias="schema")
    user_story: str = Field(default="", alias="userStory")

    @field_validator("graphql_schema", "user_story", mode="before")
    @classmethod
    def null_means_empty(cls, v):
        return "" if v is None else v


class GenerationResult(BaseModel):
    success: bool
    data: Optional[str] = None
    error: Optional[str] = None
    details: Optional[str] = None
    # internal: lets the HTTP layer pick a status code, never serialized
    error_code: Optional[str] = Field(default=None, exclude=True)

    @classmethod
    def ok(cls, data: str) -> "GenerationResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, details: Optional[str] = None,
             error_code: str = E_INTERNAL) -> "GenerationResult":
        return cls(success=False, error=error, details=details, error_code=error_code)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class HistoryRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    graphql_schema: str = Field(alias="schema")
    user_story: str = Field(alias="userStory")
    generated_query: str = Field(alias="generatedQuery")
    created_at: datetime = Field(alias="createdAt")

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")
