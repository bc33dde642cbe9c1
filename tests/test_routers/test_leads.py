import asyncio
import csv
import io
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from httpx import ASGITransport

from app.exceptions.custom import GeminiError
from app.exceptions.handlers import SEARCH_FAILED_MESSAGE
from app.schemas.leads import GroundingChunk, MapsSource, ModelResponse

GENERATE = "app.services.gemini.GeminiService.generate"

SEARCH_BODY = {"business_type": "Tile Showrooms", "location": "Surat, Gujarat", "limit": 5}

MODEL_TEXT = """Here you go:
---
Name: Acme Tiles
Address: Ring Road, Surat
Mobile: +91 98765 43210
WhatsApp: N/A
Email: info@acmetiles.in
Website: acmetiles.in
Maps: https://maps.google.com/?cid=1
Suggestion: Low reviews
---
Name: Bharat "Royal" Ceramics
Address: Varachha Road, Surat
Mobile: none
WhatsApp: -
Email: na
Website: N/A
Maps: https://maps.google.com/?cid=2
Suggestion: Needs website
---
Name: Kajaria World
Address: Adajan, Surat
Mobile: +91 90000 00000
---

MARKET OVERVIEW
Surat's tile market is crowded along Ring Road.
"""


def _model_response(text: str = MODEL_TEXT, chunks=None) -> ModelResponse:
    return ModelResponse(text=text, grounding_chunks=chunks or [])


async def test_dashboard_sets_session_cookie(client):
    resp = await client.get("/")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/html")
    assert "mapleads_session" in resp.cookies
    assert "Start Extracting Leads" in resp.text


async def test_search_scenario_under_delivery(client):
    with patch(GENERATE, new_callable=AsyncMock, return_value=_model_response()) as mock_generate:
        resp = await client.post("/search", json=SEARCH_BODY)

    assert resp.status_code == 200
    data = resp.json()
    assert data["added"] == 3
    assert data["total"] == 3
    assert data["narrative"] == "Surat's tile market is crowded along Ring Road."
    bharat = data["leads"][1]
    assert bharat["name"] == 'Bharat "Royal" Ceramics'
    assert bharat["phone_number"] == "N/A"
    assert bharat["whatsapp"] == "N/A"
    assert bharat["email"] == "N/A"

    params, location = mock_generate.call_args.args
    assert params.limit == 5
    assert location is None


async def test_search_passes_geolocation(client):
    body = {**SEARCH_BODY, "latitude": 21.17, "longitude": 72.83}
    with patch(GENERATE, new_callable=AsyncMock, return_value=_model_response()) as mock_generate:
        resp = await client.post("/search", json=body)

    assert resp.status_code == 200
    _, location = mock_generate.call_args.args
    assert location.latitude == 21.17
    assert location.longitude == 72.83


async def test_search_clamps_limit(client):
    with patch(GENERATE, new_callable=AsyncMock, return_value=_model_response()) as mock_generate:
        await client.post("/search", json={**SEARCH_BODY, "limit": 500})
        await client.post("/search", json={**SEARCH_BODY, "limit": 0})

    assert mock_generate.call_args_list[0].args[0].limit == 99
    assert mock_generate.call_args_list[1].args[0].limit == 1


async def test_search_limit_caps_results(client):
    with patch(GENERATE, new_callable=AsyncMock, return_value=_model_response()):
        resp = await client.post("/search", json={**SEARCH_BODY, "limit": 2})

    assert len(resp.json()["leads"]) == 2


async def test_search_requires_business_type_and_location(client):
    with patch(GENERATE, new_callable=AsyncMock) as mock_generate:
        resp = await client.post("/search", json={**SEARCH_BODY, "business_type": "  "})
        assert resp.status_code == 422
        resp = await client.post("/search", json={"business_type": "Tiles", "limit": 5})
        assert resp.status_code == 422
    mock_generate.assert_not_awaited()


async def test_search_citation_fallback_scenario(client):
    chunks = [
        GroundingChunk(maps=MapsSource(uri="https://maps.google.com/?cid=11", title="Acme Tiles")),
        GroundingChunk(maps=MapsSource(uri="https://maps.google.com/?cid=22", title="Bharat Ceramics")),
    ]
    with patch(GENERATE, new_callable=AsyncMock, return_value=_model_response("Sorry.", chunks)):
        resp = await client.post("/search", json=SEARCH_BODY)

    data = resp.json()
    assert [lead["name"] for lead in data["leads"]] == ["Acme Tiles", "Bharat Ceramics"]
    assert data["leads"][0]["maps_url"] == "https://maps.google.com/?cid=11"
    assert data["narrative"] == "No overall overview generated."


async def test_repeat_search_does_not_duplicate(client):
    with patch(GENERATE, new_callable=AsyncMock, return_value=_model_response()):
        await client.post("/search", json=SEARCH_BODY)
        resp = await client.post("/search", json=SEARCH_BODY)

    assert resp.json()["added"] == 0
    assert resp.json()["total"] == 3

    leads = (await client.get("/leads")).json()
    assert leads["total"] == 3


async def test_narrative_replaced_not_accumulated(client):
    second = MODEL_TEXT.replace(
        "Surat's tile market is crowded along Ring Road.", "Prices are rising."
    )
    with patch(GENERATE, new_callable=AsyncMock, side_effect=[_model_response(), _model_response(second)]):
        await client.post("/search", json=SEARCH_BODY)
        await client.post("/search", json=SEARCH_BODY)

    assert (await client.get("/leads")).json()["narrative"] == "Prices are rising."


async def test_search_failure_returns_generic_message(client):
    with patch(GENERATE, new_callable=AsyncMock, return_value=_model_response()):
        await client.post("/search", json=SEARCH_BODY)

    with patch(GENERATE, new_callable=AsyncMock, side_effect=GeminiError("quota", status_code=429)):
        resp = await client.post("/search", json=SEARCH_BODY)

    assert resp.status_code == 502
    assert resp.json()["detail"] == SEARCH_FAILED_MESSAGE

    leads = (await client.get("/leads")).json()
    assert leads["total"] == 3
    assert leads["error"] == SEARCH_FAILED_MESSAGE
    assert leads["searching"] is False
    assert leads["narrative"] == "Surat's tile market is crowded along Ring Road."

    page = await client.get("/")
    assert SEARCH_FAILED_MESSAGE in page.text


async def test_successful_search_clears_error(client):
    await client.get("/")  # establish session cookie
    with patch(GENERATE, new_callable=AsyncMock, side_effect=GeminiError("down")):
        await client.post("/search", json=SEARCH_BODY)
    assert (await client.get("/leads")).json()["error"] == SEARCH_FAILED_MESSAGE

    with patch(GENERATE, new_callable=AsyncMock, return_value=_model_response()):
        await client.post("/search", json=SEARCH_BODY)

    assert (await client.get("/leads")).json()["error"] is None


async def test_overlapping_search_rejected(client):
    await client.get("/")  # establish session cookie
    release = asyncio.Event()

    async def _slow_generate(*args, **kwargs):
        await release.wait()
        return _model_response()

    with patch(GENERATE, new_callable=AsyncMock, side_effect=_slow_generate):
        first = asyncio.create_task(client.post("/search", json=SEARCH_BODY))
        await asyncio.sleep(0.05)
        second = await client.post("/search", json=SEARCH_BODY)
        release.set()
        first_resp = await first

    assert second.status_code == 409
    assert first_resp.status_code == 200
    assert (await client.get("/leads")).json()["searching"] is False


async def test_reset_requires_confirmation(client):
    with patch(GENERATE, new_callable=AsyncMock, return_value=_model_response()):
        await client.post("/search", json=SEARCH_BODY)

    resp = await client.post("/leads/reset", json={"confirm": False})
    assert resp.json() == {"cleared": False, "total": 3}

    resp = await client.post("/leads/reset")
    assert resp.json() == {"cleared": False, "total": 3}
    assert (await client.get("/leads")).json()["total"] == 3

    resp = await client.post("/leads/reset", json={"confirm": True})
    assert resp.json() == {"cleared": True, "total": 0}

    leads = (await client.get("/leads")).json()
    assert leads["total"] == 0
    assert leads["narrative"] is None


async def test_export_empty_is_noop(client):
    resp = await client.get("/leads/export")
    assert resp.status_code == 204
    assert resp.content == b""


async def test_export_csv(client):
    with patch(GENERATE, new_callable=AsyncMock, return_value=_model_response()):
        await client.post("/search", json=SEARCH_BODY)

    resp = await client.get("/leads/export")

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    disposition = resp.headers["content-disposition"]
    assert 'attachment; filename="map_leads_marketing_' in disposition
    assert disposition.endswith('.csv"')

    rows = list(csv.reader(io.StringIO(resp.text)))
    assert len(rows) == 4
    assert rows[0][0] == "Business Name"
    assert rows[2][0] == 'Bharat "Royal" Ceramics'
    assert rows[3][9] == "Surat, Gujarat"


async def test_sessions_do_not_share_leads(client):
    with patch(GENERATE, new_callable=AsyncMock, return_value=_model_response()):
        await client.post("/search", json=SEARCH_BODY)

    client.cookies.clear()
    leads = (await client.get("/leads")).json()
    assert leads["total"] == 0


async def test_cancelled_search_releases_guard(client):
    await client.get("/")  # establish session cookie
    started = asyncio.Event()

    async def _hang(*args, **kwargs):
        started.set()
        await asyncio.Event().wait()

    with patch(GENERATE, new_callable=AsyncMock, side_effect=_hang):
        task = asyncio.create_task(client.post("/search", json=SEARCH_BODY))
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    leads = (await client.get("/leads")).json()
    assert leads["searching"] is False
    assert leads["error"] is None

    with patch(GENERATE, new_callable=AsyncMock, return_value=_model_response()):
        resp = await client.post("/search", json=SEARCH_BODY)
    assert resp.status_code == 200


async def test_unexpected_search_error_returns_generic_message(client):
    await client.get("/")  # establish session cookie
    with patch(GENERATE, new_callable=AsyncMock, side_effect=ValueError("bad provider payload")):
        resp = await client.post("/search", json=SEARCH_BODY)

    assert resp.status_code == 502
    assert resp.json()["detail"] == SEARCH_FAILED_MESSAGE

    leads = (await client.get("/leads")).json()
    assert leads["searching"] is False
    assert leads["error"] == SEARCH_FAILED_MESSAGE


async def test_failed_first_search_issues_session_cookie(client):
    with patch(GENERATE, new_callable=AsyncMock, side_effect=GeminiError("down")):
        resp = await client.post("/search", json=SEARCH_BODY)

    assert resp.status_code == 502
    assert "mapleads_session" in resp.cookies
    assert (await client.get("/leads")).json()["error"] == SEARCH_FAILED_MESSAGE


async def test_cookie_not_reissued_for_known_session(client):
    first = await client.get("/")
    assert "mapleads_session" in first.cookies
    second = await client.get("/leads")
    assert "set-cookie" not in second.headers


async def test_search_infinite_limit_is_clamped(client):
    content = '{"business_type": "Tile Showrooms", "location": "Surat", "limit": Infinity}'
    with patch(GENERATE, new_callable=AsyncMock, return_value=_model_response()) as mock_generate:
        resp = await client.post(
            "/search", content=content, headers={"content-type": "application/json"}
        )

    assert resp.status_code == 200
    assert mock_generate.call_args.args[0].limit == 99


async def test_search_uses_configured_default_limit(mock_env, monkeypatch):
    monkeypatch.setenv("DEFAULT_LIMIT", "7")
    from app.main import app, lifespan

    async with lifespan(app):
        async with httpx.AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as c:
            with patch(GENERATE, new_callable=AsyncMock, return_value=_model_response()) as mock_generate:
                resp = await c.post(
                    "/search", json={"business_type": "Tile Showrooms", "location": "Surat"}
                )
            page = await c.get("/")

    assert resp.status_code == 200
    assert mock_generate.call_args.args[0].limit == 7
    assert "Extracted: 3 / 7" in page.text
