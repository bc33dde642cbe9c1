import csv
import io
import time

from app.schemas.leads import NOT_AVAILABLE, BusinessLead

CSV_HEADERS = [
    "Business Name",
    "Address",
    "Mobile No.",
    "WhatsApp No.",
    "Email ID",
    "Website",
    "AI Suggestion",
    "Maps Link",
    "Category",
    "Search Area",
]


def _or_na(value: str | None) -> str:
    return value if value else NOT_AVAILABLE


def _lead_row(lead: BusinessLead) -> list[str]:
    return [
        lead.name,
        _or_na(lead.address),
        _or_na(lead.phone_number),
        _or_na(lead.whatsapp),
        _or_na(lead.email),
        _or_na(lead.website),
        _or_na(lead.suggestion),
        _or_na(lead.maps_url),
        lead.category,
        lead.location,
    ]


def export_csv(leads: list[BusinessLead]) -> str | None:
    """Render leads as a fully quoted CSV document, or None when empty."""
    if not leads:
        return None

    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    writer.writerows(_lead_row(lead) for lead in leads)
    return buf.getvalue().rstrip("\n")


def export_filename(now_ms: int | None = None) -> str:
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"map_leads_marketing_{now_ms}.csv"
