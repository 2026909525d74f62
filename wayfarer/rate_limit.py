from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional


class RequestRateLimiter:
    """
    In-memory per-client request limiter.

    Keeps the timestamps of each client's requests inside a sliding window; a
    request is refused once the client already made `max_requests` of them.
    Clients with no request left in the window are forgotten. State is per
    process.
    """

    def __init__(self, max_requests: int, window_seconds: int):
        self.max_requests = max_requests
        self.window = timedelta(seconds=window_seconds)
        self._log: Dict[str, List[datetime]] = {}
        self._last_sweep: Optional[datetime] = None

    def allow(self, client_key: str, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        window_start = now - self.window
        self._sweep(now, window_start)
        entries = [ts for ts in self._log.get(client_key, []) if ts >= window_start]
        if len(entries) >= self.max_requests:
            self._log[client_key] = entries
            return False
        entries.append(now)
        self._log[client_key] = entries
        return True

    def _sweep(self, now: datetime, window_start: datetime) -> None:
        # At most once per window; entries are appended in time order
        if self._last_sweep is not None and now - self._last_sweep < self.window:
            return
        self._last_sweep = now
        for key in [k for k, entries in self._log.items() if not entries or entries[-1] < window_start]:
            del self._log[key]
