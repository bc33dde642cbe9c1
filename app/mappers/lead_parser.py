import logging
import re
import time

from app.schemas.leads import (
    NOT_AVAILABLE,
    BusinessLead,
    GroundingChunk,
    SearchParams,
    SearchResult,
)

logger = logging.getLogger(__name__)

NO_OVERVIEW = "No overall overview generated."
DEFAULT_SUGGESTION = "Analyze for improvements"
MIN_SEGMENT_LENGTH = 20

_OVERVIEW_RE = re.compile(r"MARKET OVERVIEW", re.IGNORECASE)
_DELIMITER_RE = re.compile(r"^[ \t]*-{3,}[ \t\r]*$", re.MULTILINE)
_SENTINELS = {"n/a", "na", "-", "none"}

# Prompt label -> BusinessLead field
FIELD_LABELS: dict[str, str] = {
    "Name": "name",
    "Address": "address",
    "Mobile": "phone_number",
    "WhatsApp": "whatsapp",
    "Email": "email",
    "Website": "website",
    "Maps": "maps_url",
    "Suggestion": "suggestion",
}

_LABEL_PATTERNS = {
    label: re.compile(rf"{label}:[ \t]*([^\n]+)", re.IGNORECASE)
    for label in FIELD_LABELS
}


def normalize_value(value: str | None) -> str:
    """Map empty and sentinel values ("n/a", "na", "-", "none") to N/A."""
    if value is None:
        return NOT_AVAILABLE
    value = value.strip()
    if not value or value.lower() in _SENTINELS:
        return NOT_AVAILABLE
    return value


def split_sections(text: str) -> tuple[str, str]:
    """Split the raw response into (data section, narrative)."""
    parts = _OVERVIEW_RE.split(text, maxsplit=1)
    data = parts[0]
    narrative = parts[1].strip() if len(parts) > 1 else ""
    return data, narrative or NO_OVERVIEW


def split_segments(data: str, min_length: int = MIN_SEGMENT_LENGTH) -> list[str]:
    return [s for s in _DELIMITER_RE.split(data) if len(s.strip()) > min_length]


def extract_fields(segment: str) -> dict[str, str]:
    fields: dict[str, str] = {}
    for label, field in FIELD_LABELS.items():
        match = _LABEL_PATTERNS[label].search(segment)
        fields[field] = normalize_value(match.group(1) if match else None)
    return fields


def _placeholder_name(index: int) -> str:
    return f"Business {index + 1}"


def leads_from_segments(
    segments: list[str], params: SearchParams, now_ms: int
) -> list[BusinessLead]:
    leads: list[BusinessLead] = []
    for index, segment in enumerate(segments):
        fields = extract_fields(segment)
        if fields["name"] == NOT_AVAILABLE:
            fields["name"] = _placeholder_name(index)
        leads.append(
            BusinessLead(
                id=f"lead-{now_ms}-{index}",
                category=params.business_type,
                location=params.location,
                **fields,
            )
        )
    return leads


def leads_from_grounding(
    chunks: list[GroundingChunk], params: SearchParams, now_ms: int
) -> list[BusinessLead]:
    """Build bare leads (name + maps link) from maps citations."""
    maps_sources = [c.maps for c in chunks if c.maps is not None]
    return [
        BusinessLead(
            id=f"m-lead-{now_ms}-{i}",
            name=(source.title or "").strip() or _placeholder_name(i),
            maps_url=normalize_value(source.uri),
            suggestion=DEFAULT_SUGGESTION,
            category=params.business_type,
            location=params.location,
        )
        for i, source in enumerate(maps_sources)
    ]


def parse_response(
    text: str,
    chunks: list[GroundingChunk],
    params: SearchParams,
    *,
    now_ms: int | None = None,
    min_segment_length: int = MIN_SEGMENT_LENGTH,
) -> SearchResult:
    """Turn the model's free-text answer into leads plus a market overview.

    Labeled blocks before the MARKET OVERVIEW marker become leads. When none
    can be read, maps grounding citations are used instead. The result never
    holds more than ``params.limit`` leads.
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)

    data, narrative = split_sections(text or "")
    segments = split_segments(data, min_segment_length)
    leads = leads_from_segments(segments, params, now_ms)

    if not leads:
        leads = leads_from_grounding(chunks, params, now_ms)
        if leads:
            logger.info(
                "No labeled segments in response, using %d maps citations",
                len(leads),
            )

    if len(leads) > params.limit:
        logger.info("Model returned %d leads, keeping %d", len(leads), params.limit)

    return SearchResult(leads=leads[: params.limit], narrative=narrative)
