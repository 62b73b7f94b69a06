class OriginError(Exception):
    """Base class for failures talking to the origin."""

    def __init__(self, message: str, url: str | None = None):
        super().__init__(message)
        self.url = url


class OriginTimeout(OriginError):
    pass


class OriginRateLimited(OriginError):
    def __init__(self, url: str, attempts: int):
        super().__init__(f"origin rate limited after {attempts} attempts", url)
        self.attempts = attempts


class OriginHttpError(OriginError):
    def __init__(self, status: int, body: str, url: str | None = None):
        super().__init__(f"origin returned HTTP {status}", url)
        self.status = status
        self.body = body


class OriginUnavailable(OriginError):
    pass


class OriginProtocolError(OriginError):
    """Origin answered 2xx but the body was not what we expect."""
