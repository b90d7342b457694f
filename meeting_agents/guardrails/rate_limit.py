import threading
import time
from collections import defaultdict

from fastapi import HTTPException
from starlette.requests import Request


class SimpleRateLimiter:
    """Sliding-window limiter per client IP, in memory (per process). Guards the upload endpoint, where each
    request starts a full pipeline run."""

    def __init__(self, max_requests: int, window_seconds: int):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.storage = defaultdict(list)  # ip -> [timestamps]
        self._lock = threading.Lock()

    def check(self, request: Request):
        """Raise 429 when the client is over the limit; otherwise record the request."""
        now = time.time()
        ip = request.client.host if request.client else "unknown"
        with self._lock:
            recent = [t for t in self.storage[ip] if now - t < self.window_seconds]
            if len(recent) >= self.max_requests:
                self.storage[ip] = recent
                raise HTTPException(status_code=429, detail="Rate limit exceeded. Please retry later.")
            recent.append(now)
            self.storage[ip] = recent
