from __future__ import annotations

import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, Field

from app.exceptions.custom import SearchInProgressError
from app.mappers.lead_merger import merge_leads
from app.schemas.leads import BusinessLead, SearchParams, SearchResult


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SessionState(BaseModel):
    session_id: str
    leads: list[BusinessLead] = []
    narrative: str | None = None
    error: str | None = None
    searching: bool = False
    last_params: SearchParams | None = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


def apply_search_result(
    state: SessionState, result: SearchResult, params: SearchParams
) -> SessionState:
    """Merge a finished search into the session. The narrative is replaced."""
    return state.model_copy(update={
        "leads": merge_leads(state.leads, result.leads),
        "narrative": result.narrative,
        "error": None,
        "searching": False,
        "last_params": params,
        "updated_at": _now(),
    })


def reset_session(state: SessionState) -> SessionState:
    return state.model_copy(update={
        "leads": [],
        "narrative": None,
        "error": None,
        "updated_at": _now(),
    })


class SessionStore:
    def __init__(self, max_sessions: int = 1000) -> None:
        self._sessions: dict[str, SessionState] = {}
        self._max_sessions = max_sessions

    def _evict(self, keep: str) -> None:
        if len(self._sessions) <= self._max_sessions:
            return
        # Never drop a session with a search in flight
        candidates = sorted(
            (
                s for s in self._sessions.values()
                if not s.searching and s.session_id != keep
            ),
            key=lambda s: s.updated_at,
        )
        while len(self._sessions) > self._max_sessions and candidates:
            self._sessions.pop(candidates.pop(0).session_id, None)

    def create(self) -> SessionState:
        state = SessionState(session_id=uuid.uuid4().hex)
        self._sessions[state.session_id] = state
        self._evict(keep=state.session_id)
        return state

    def get(self, session_id: str | None) -> SessionState | None:
        if session_id is None:
            return None
        return self._sessions.get(session_id)

    def get_or_create(self, session_id: str | None) -> SessionState:
        return self.get(session_id) or self.create()

    def _save(self, state: SessionState) -> SessionState:
        self._sessions[state.session_id] = state
        return state

    def begin_search(self, session_id: str) -> SessionState:
        state = self.get_or_create(session_id)
        if state.searching:
            raise SearchInProgressError(session_id)
        return self._save(state.model_copy(update={
            "searching": True,
            "error": None,
            "updated_at": _now(),
        }))

    def complete_search(
        self, session_id: str, result: SearchResult, params: SearchParams
    ) -> SessionState:
        return self._save(
            apply_search_result(self.get_or_create(session_id), result, params)
        )

    def fail_search(
        self, session_id: str, error: str, params: SearchParams | None = None
    ) -> SessionState:
        state = self.get_or_create(session_id)
        return self._save(state.model_copy(update={
            "searching": False,
            "error": error,
            "last_params": params or state.last_params,
            "updated_at": _now(),
        }))

    def cancel_search(self, session_id: str) -> SessionState:
        """Release the in-flight guard without touching leads or error."""
        state = self.get_or_create(session_id)
        return self._save(state.model_copy(update={
            "searching": False,
            "updated_at": _now(),
        }))

    def reset(self, session_id: str) -> SessionState:
        return self._save(reset_session(self.get_or_create(session_id)))
