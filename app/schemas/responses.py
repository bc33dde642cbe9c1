from __future__ import annotations

from pydantic import BaseModel

from app.schemas.leads import BusinessLead, SearchParams


class SearchRequest(SearchParams):
    latitude: float | None = None
    longitude: float | None = None


class SearchResponse(BaseModel):
    added: int
    total: int
    narrative: str
    leads: list[BusinessLead]


class LeadsResponse(BaseModel):
    total: int
    narrative: str | None = None
    error: str | None = None
    searching: bool = False
    leads: list[BusinessLead] = []


class ResetRequest(BaseModel):
    confirm: bool = False


class ResetResponse(BaseModel):
    cleared: bool
    total: int
