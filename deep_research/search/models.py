"""Pydantic models for search API responses."""

from pydantic import BaseModel, Field, field_validator


class RetrievedDocument(BaseModel):
    """A page returned by a search, with its content as markdown."""

    url: str
    content: str = Field("", alias="markdown")
    title: str | None = None
    description: str | None = None

    model_config = {"populate_by_name": True, "frozen": True}

    @field_validator("content", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return value or ""


class SearchResponse(BaseModel):
    """Response from the Firecrawl search endpoint."""

    success: bool = True
    data: list[RetrievedDocument] = Field(default_factory=list)
    warning: str | None = None
    error: str | None = None
