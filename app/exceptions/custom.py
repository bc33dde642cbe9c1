class GeminiError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class SearchInProgressError(Exception):
    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Search already in progress for session {session_id}")
