from pydantic import BaseModel, Field, field_validator

NOT_AVAILABLE = "N/A"

MIN_LIMIT = 1
MAX_LIMIT = 99


class GeoLocation(BaseModel):
    latitude: float
    longitude: float


class MapsSource(BaseModel):
    uri: str | None = None
    title: str | None = None


class GroundingChunk(BaseModel):
    maps: MapsSource | None = None


class SearchParams(BaseModel):
    business_type: str = Field(min_length=1)
    location: str = Field(min_length=1)
    limit: int = 10

    @field_validator("business_type", "location", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("limit", mode="before")
    @classmethod
    def _clamp_limit(cls, value) -> int:
        """Clamp into 1..99; anything that is not a number counts as 1."""
        try:
            limit = int(value)
        except (TypeError, ValueError):
            limit = MIN_LIMIT
        except OverflowError:
            # +/- Infinity
            limit = MAX_LIMIT if value > 0 else MIN_LIMIT
        return min(MAX_LIMIT, max(MIN_LIMIT, limit))


class BusinessLead(BaseModel):
    id: str
    name: str
    address: str = NOT_AVAILABLE
    phone_number: str = NOT_AVAILABLE
    whatsapp: str = NOT_AVAILABLE
    email: str = NOT_AVAILABLE
    website: str = NOT_AVAILABLE
    maps_url: str = NOT_AVAILABLE
    suggestion: str = NOT_AVAILABLE
    category: str
    location: str


class ModelResponse(BaseModel):
    text: str = ""
    grounding_chunks: list[GroundingChunk] = []


class SearchResult(BaseModel):
    leads: list[BusinessLead] = []
    narrative: str
