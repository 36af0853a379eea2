"""Topic request schemas."""

from pydantic import BaseModel, Field


class TopicCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)


class TopicUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
