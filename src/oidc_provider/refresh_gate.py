"""Rate limiting for miss-triggered JWKS refreshes.

A token carrying an unknown ``kid`` makes the key cache refresh its key set.
Without a limit, a client sending random ``kid`` values turns every request
into an outbound JWKS fetch. RefreshGate allows at most one such refresh per
configured interval, rejecting additional attempts and logging once the
number of denials reaches an alert threshold.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Final

logger = logging.getLogger(__name__)

_DEFAULT_INTERVAL: Final[float] = 60.0
"""Default minimum interval between refreshes in seconds."""

_DEFAULT_ALERT_THRESHOLD: Final[int] = 40
"""Default number of denials before alerting (per interval)."""


class RefreshGate:
    """Thread-safe rate limiter for key set refresh operations.

    Thread Safety:
        ``allow`` never suspends, and its state is protected by a lock, so one
        gate can be shared by caches running on different threads or loops.

    Attributes:
        _min_interval: Minimum seconds between allowed refreshes.
        _alert_threshold: Number of denials before alerting.
        _lock: Thread synchronization lock.
        _next_allowed_at: Unix timestamp when next refresh is allowed.
        _denied: Count of denied attempts since last allow.
    """

    def __init__(
        self,
        min_interval: float = _DEFAULT_INTERVAL,
        alert_threshold: int = _DEFAULT_ALERT_THRESHOLD,
    ) -> None:
        """Initialize the refresh gate.

        Args:
            min_interval: Minimum seconds between allowed refreshes.
            alert_threshold: Number of denied attempts before a warning is logged.

        Raises:
            ValueError: If min_interval or alert_threshold are invalid.
        """
        if min_interval <= 0:
            raise ValueError(f"min_interval must be positive, got {min_interval}")
        if alert_threshold < 1:
            raise ValueError(f"alert_threshold must be at least 1, got {alert_threshold}")

        self._min_interval = min_interval
        self._alert_threshold = alert_threshold

        self._lock = threading.Lock()
        self._next_allowed_at: float = 0.0
        self._denied: int = 0

    @property
    def denied(self) -> int:
        """Denied attempts since the last allowed refresh."""
        return self._denied

    def allow(self) -> bool:
        """Check if a refresh operation is allowed now.

        Returns:
            True if refresh is allowed (and the interval restarts).
            False if refresh is denied (too soon since last refresh).
        """
        now = time.time()

        with self._lock:
            if now < self._next_allowed_at:
                self._denied += 1
                if self._denied == self._alert_threshold:
                    logger.warning(
                        "jwks_refresh_throttled",
                        extra={"denied": self._denied, "min_interval": self._min_interval},
                    )
                return False

            self._next_allowed_at = now + self._min_interval
            self._denied = 0
            return True
