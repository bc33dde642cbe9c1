from html import escape

from app.mappers.lead_parser import DEFAULT_SUGGESTION
from app.schemas.leads import MAX_LIMIT, MIN_LIMIT, NOT_AVAILABLE, BusinessLead
from app.sessions import SessionState

_STYLE = """
body{margin:0;font-family:system-ui,sans-serif;background:#f8fafc;color:#1e293b;display:flex;min-height:100vh}
aside{width:18rem;background:#fff;border-right:1px solid #e2e8f0;padding:1.5rem;display:flex;flex-direction:column;gap:1rem}
main{flex:1;padding:2rem;overflow-x:auto}
label{font-size:.75rem;font-weight:600;color:#64748b;text-transform:uppercase}
input{width:100%;padding:.5rem;border:1px solid #e2e8f0;border-radius:.5rem;box-sizing:border-box}
button,.button{display:block;width:100%;padding:.6rem;border:0;border-radius:.5rem;color:#fff;background:#4f46e5;text-align:center;text-decoration:none;cursor:pointer}
button:disabled{background:#a5b4fc;cursor:default}
.export{background:#059669}.export.disabled{background:#6ee7b7;pointer-events:none}
.reset{background:#fff;color:#e11d48;border:1px solid #fecdd3}
.insight{padding:1.5rem;border:1px solid #fcd34d;border-radius:1rem;background:#fffbeb;margin-bottom:2rem;white-space:pre-wrap}
.error{padding:1rem;border:1px solid #fecdd3;border-radius:.75rem;background:#fff1f2;color:#be123c;margin-bottom:1.5rem}
table{width:100%;border-collapse:collapse;background:#fff;min-width:1200px}
th{background:#f8fafc;font-size:.75rem;text-transform:uppercase;color:#64748b;text-align:left;padding:1rem}
td{padding:1rem;border-top:1px solid #f1f5f9;font-size:.875rem;vertical-align:top}
.address{font-size:.7rem;color:#94a3b8}.na{color:#cbd5e1;font-style:italic}
.empty{text-align:center;padding:6rem 1rem;color:#94a3b8}
"""

_SCRIPT = """
let userLocation = null;
if ("geolocation" in navigator) {
  navigator.geolocation.getCurrentPosition(
    (pos) => { userLocation = {latitude: pos.coords.latitude, longitude: pos.coords.longitude}; },
    (err) => console.log("Location access denied", err)
  );
}
const form = document.getElementById("search-form");
form.addEventListener("submit", async (e) => {
  e.preventDefault();
  const button = document.getElementById("search-button");
  if (button.disabled) return;
  button.disabled = true;
  button.textContent = "Processing...";
  const data = new FormData(form);
  const body = {
    business_type: data.get("business_type"),
    location: data.get("location"),
    limit: data.get("limit"),
    ...(userLocation || {}),
  };
  try {
    await fetch("/search", {
      method: "POST",
      headers: {"Content-Type": "application/json"},
      body: JSON.stringify(body),
    });
  } finally {
    window.location.reload();
  }
});
document.getElementById("reset-button").addEventListener("click", async () => {
  if (!window.confirm("Are you sure you want to clear all extracted leads?")) return;
  await fetch("/leads/reset", {
    method: "POST",
    headers: {"Content-Type": "application/json"},
    body: JSON.stringify({confirm: true}),
  });
  window.location.reload();
});
"""


def _website_href(website: str) -> str:
    return website if _is_web_url(website) else f"https://{website}"


def _is_web_url(value: str) -> bool:
    return value.lower().startswith(("http://", "https://"))


def _cell(value: str | None) -> str:
    if not value or value == NOT_AVAILABLE:
        return f'<span class="na">{NOT_AVAILABLE}</span>'
    return escape(value)


def _format_lead_row(lead: BusinessLead) -> str:
    if lead.website != NOT_AVAILABLE:
        website = (
            f'<a href="{escape(_website_href(lead.website))}" target="_blank">Visit Site</a>'
        )
    else:
        website = _cell(None)

    if _is_web_url(lead.maps_url):
        maps = f'<a href="{escape(lead.maps_url)}" target="_blank">Open Map</a>'
    else:
        maps = _cell(None)

    return (
        "<tr>"
        f'<td><strong>{escape(lead.name)}</strong>'
        f'<div class="address" title="{escape(lead.address)}">{escape(lead.address)}</div></td>'
        f"<td>{_cell(lead.phone_number)}</td>"
        f"<td>{_cell(lead.whatsapp)}</td>"
        f"<td>{_cell(lead.email)}</td>"
        f"<td>{website}</td>"
        f"<td>{_cell(lead.suggestion or DEFAULT_SUGGESTION)}</td>"
        f"<td>{maps}</td>"
        "</tr>"
    )


def _format_table(state: SessionState) -> str:
    headers = [
        "Business Name", "Mobile No.", "WhatsApp No.", "Email ID",
        "Website", "AI Suggestion", "Maps",
    ]
    head = "".join(f"<th>{h}</th>" for h in headers)
    if state.leads:
        body = "".join(_format_lead_row(lead) for lead in state.leads)
    else:
        body = (
            f'<tr><td colspan="{len(headers)}" class="empty">'
            "<p><strong>Start Extracting Leads</strong></p>"
            "<p>Enter the business type and location in the sidebar to extract "
            "contact info and AI marketing tips into a professional list.</p>"
            "</td></tr>"
        )
    return f"<table><thead><tr>{head}</tr></thead><tbody>{body}</tbody></table>"


def _format_sidebar(state: SessionState, default_limit: int) -> str:
    params = state.last_params
    business_type = escape(params.business_type) if params else ""
    location = escape(params.location) if params else ""
    limit = params.limit if params else default_limit
    count = len(state.leads)
    disabled = "" if count else " disabled"
    export_class = "button export" if count else "button export disabled"
    searching = " disabled" if state.searching else ""

    return (
        "<aside>"
        "<h1>MapLeads Pro</h1>"
        '<form id="search-form">'
        '<label for="business_type">Business Type</label>'
        f'<input id="business_type" name="business_type" placeholder="e.g. Tile Showrooms" value="{business_type}" required>'
        '<label for="location">Specific Area</label>'
        f'<input id="location" name="location" placeholder="e.g. Surat, Gujarat" value="{location}" required>'
        f'<label for="limit">Data Count ({MIN_LIMIT}-{MAX_LIMIT})</label>'
        f'<input id="limit" name="limit" type="number" min="{MIN_LIMIT}" max="{MAX_LIMIT}" value="{limit}" required>'
        f'<button id="search-button" type="submit"{searching}>'
        f'{"Processing..." if state.searching else "Extract &amp; Analyze"}</button>'
        "</form>"
        f'<a class="{export_class}" href="/leads/export">Download Excel/CSV ({count})</a>'
        f'<button id="reset-button" class="reset" type="button"{disabled}>Reset Data</button>'
        "</aside>"
    )


def build_dashboard(state: SessionState, default_limit: int = 10) -> str:
    """Render the full dashboard page for one session."""
    params = state.last_params
    region = escape(params.location) if params else "Your Region"
    limit = params.limit if params else default_limit

    sections: list[str] = [
        "<header><h2>Marketing Dashboard</h2>"
        f"<p>Verified data from {region}.</p>"
        f"<p><strong>Extracted: {len(state.leads)} / {limit}</strong></p></header>"
    ]
    if state.narrative:
        sections.append(
            '<section class="insight"><h3>Regional Market Insight</h3>'
            f"{escape(state.narrative)}</section>"
        )
    if state.error:
        sections.append(f'<div class="error">{escape(state.error)}</div>')
    sections.append(_format_table(state))

    return (
        "<!DOCTYPE html>"
        '<html lang="en"><head><meta charset="utf-8">'
        "<title>MapLeads Pro</title>"
        f"<style>{_STYLE}</style></head><body>"
        f"{_format_sidebar(state, default_limit)}"
        f"<main>{''.join(sections)}</main>"
        f"<script>{_SCRIPT}</script>"
        "</body></html>"
    )
