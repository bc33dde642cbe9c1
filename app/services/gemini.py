import logging

import httpx
from google import genai
from google.genai import errors, types

from app.exceptions.custom import GeminiError
from app.schemas.leads import (
    GeoLocation,
    GroundingChunk,
    MapsSource,
    ModelResponse,
    SearchParams,
)

logger = logging.getLogger(__name__)

MODEL = "gemini-2.5-flash"

_PROMPT_TEMPLATE = """Find exactly {limit} businesses of type "{business_type}" in "{location}".

TASK 1: EXTRACT DATA (INDIVIDUAL BUSINESSES)
For each business, you MUST provide these details. If missing, write "N/A":
---
Name: [Business Name]
Address: [Full Address]
Mobile: [Contact Phone Number]
WhatsApp: [WhatsApp Number]
Email: [Official Email Address]
Website: [Official Website URL]
Maps: [Google Maps Link]
Suggestion: [Very brief marketing tip, e.g., "Needs website", "Low reviews", "SEO required", "Add WhatsApp"]
---

TASK 2: GENERAL MARKET ANALYSIS
After the list, provide a concise summary titled "MARKET OVERVIEW".
Analyze the competition in "{location}" for "{business_type}".

Use Google Search and Google Maps to verify contact details and check if websites exist."""


def build_prompt(params: SearchParams) -> str:
    return _PROMPT_TEMPLATE.format(
        limit=params.limit,
        business_type=params.business_type,
        location=params.location,
    )


def build_config(location: GeoLocation | None = None) -> types.GenerateContentConfig:
    """Maps + Search grounding, biased toward ``location`` when known."""
    tool_config = None
    if location is not None:
        tool_config = types.ToolConfig(
            retrieval_config=types.RetrievalConfig(
                lat_lng=types.LatLng(
                    latitude=location.latitude,
                    longitude=location.longitude,
                )
            )
        )
    return types.GenerateContentConfig(
        tools=[
            types.Tool(google_maps=types.GoogleMaps()),
            types.Tool(google_search=types.GoogleSearch()),
        ],
        tool_config=tool_config,
    )


def extract_grounding_chunks(response) -> list[GroundingChunk]:
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    metadata = getattr(candidates[0], "grounding_metadata", None)
    raw_chunks = getattr(metadata, "grounding_chunks", None) or []

    chunks: list[GroundingChunk] = []
    for raw in raw_chunks:
        maps = getattr(raw, "maps", None)
        if maps is None:
            chunks.append(GroundingChunk())
            continue
        chunks.append(
            GroundingChunk(maps=MapsSource(uri=maps.uri, title=maps.title))
        )
    return chunks


class GeminiService:
    def __init__(self, api_key: str, model: str = MODEL):
        self._client = genai.Client(api_key=api_key)
        self._model = model

    async def generate(
        self,
        params: SearchParams,
        location: GeoLocation | None = None,
    ) -> ModelResponse:
        """Run one grounded generation for ``params``. Failures raise GeminiError."""
        try:
            response = await self._client.aio.models.generate_content(
                model=self._model,
                contents=build_prompt(params),
                config=build_config(location),
            )
        except errors.APIError as exc:
            logger.exception(
                "Gemini API call failed for %s in %s",
                params.business_type, params.location,
            )
            raise GeminiError(str(exc), status_code=exc.code) from exc
        except httpx.HTTPError as exc:
            logger.exception(
                "Gemini transport error for %s in %s",
                params.business_type, params.location,
            )
            raise GeminiError(str(exc)) from exc
        except Exception as exc:
            logger.exception(
                "Unexpected Gemini failure for %s in %s",
                params.business_type, params.location,
            )
            raise GeminiError(str(exc)) from exc

        text = response.text or ""
        chunks = extract_grounding_chunks(response)
        logger.info(
            "Gemini returned %d chars and %d grounding chunks for %s in %s",
            len(text), len(chunks), params.business_type, params.location,
        )
        return ModelResponse(text=text, grounding_chunks=chunks)
