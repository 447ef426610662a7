"""In-process cache for the Shopify Admin API access token."""
import time
from typing import Callable, Optional


class TokenCache:
    """
    Holds one bearer token and the epoch second it expires at.

    Lives for the process lifetime, so a warm instance reuses its token and
    a cold start fetches a new one. There is no lock: two requests racing on
    an expired token both fetch, and the last write wins.
    """

    def __init__(self, margin_seconds: int = 60, clock: Callable[[], float] = time.time):
        self.margin_seconds = margin_seconds
        self.clock = clock
        self.value: Optional[str] = None
        self.expires_at: float = 0.0

    def get(self) -> Optional[str]:
        """Return the cached token, or None once inside the refresh margin."""
        if self.value and self.clock() < self.expires_at - self.margin_seconds:
            return self.value
        return None

    def store(self, value: str, expires_in: float) -> None:
        self.value = value
        self.expires_at = self.clock() + float(expires_in or 0)

    def clear(self) -> None:
        self.value = None
        self.expires_at = 0.0

    def get_or_refresh(self, fetch: Callable[[], tuple]) -> str:
        """Return the cached token or call ``fetch`` for ``(token, expires_in)``."""
        token = self.get()
        if token:
            return token
        token, expires_in = fetch()
        self.store(token, expires_in)
        return token
