from http.cookies import SimpleCookie

from starlette.datastructures import MutableHeaders
from starlette.requests import Request
from starlette.types import ASGIApp, Message, Receive, Scope, Send

SESSION_COOKIE = "mapleads_session"


def _session_cookie(session_id: str) -> str:
    cookie: SimpleCookie = SimpleCookie()
    cookie[SESSION_COOKIE] = session_id
    cookie[SESSION_COOKIE]["path"] = "/"
    cookie[SESSION_COOKIE]["httponly"] = True
    cookie[SESSION_COOKIE]["samesite"] = "lax"
    return cookie.output(header="").strip()


class SessionCookieMiddleware:
    """Bind every HTTP request to a session and issue its cookie.

    The cookie goes out on every response, including those produced by
    exception handlers.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        cookie_id = request.cookies.get(SESSION_COOKIE)
        state = request.app.state.session_store.get_or_create(cookie_id)
        request.state.session_id = state.session_id

        async def send_with_cookie(message: Message) -> None:
            if message["type"] == "http.response.start" and cookie_id != state.session_id:
                headers = MutableHeaders(scope=message)
                headers.append("set-cookie", _session_cookie(state.session_id))
            await send(message)

        await self.app(scope, receive, send_with_cookie)
