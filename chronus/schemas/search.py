"""Global search result schemas."""

from pydantic import BaseModel


class SearchResult(BaseModel):
    type: str
    id: str
    title: str
    subtitle: str | None = None
    status: str | None = None


class SearchResponse(BaseModel):
    results: list[SearchResult]
