import logging

from app.mappers.lead_parser import MIN_SEGMENT_LENGTH, parse_response
from app.schemas.leads import GeoLocation, SearchParams, SearchResult
from app.services.gemini import GeminiService

logger = logging.getLogger(__name__)


class LeadSearchService:
    def __init__(
        self,
        gemini: GeminiService,
        min_segment_length: int = MIN_SEGMENT_LENGTH,
    ):
        self._gemini = gemini
        self._min_segment_length = min_segment_length

    async def search(
        self,
        params: SearchParams,
        location: GeoLocation | None = None,
    ) -> SearchResult:
        """Ask the model once and parse its answer into leads."""
        response = await self._gemini.generate(params, location)
        result = parse_response(
            response.text,
            response.grounding_chunks,
            params,
            min_segment_length=self._min_segment_length,
        )
        logger.info(
            "Parsed %d leads (limit %d) for %s in %s",
            len(result.leads), params.limit, params.business_type, params.location,
        )
        return result
