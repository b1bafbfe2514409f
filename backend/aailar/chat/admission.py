"""Connection admission guard.

Caps concurrent connections globally and per origin. Runs before
authentication, so unauthenticated sockets count against both ceilings.
"""
import logging
from typing import Dict, Optional, Tuple

from .effects import ErrorKind

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOTAL_CONNECTIONS = 100
DEFAULT_MAX_CONNECTIONS_PER_ORIGIN = 5


class AdmissionGuard:
    def __init__(
        self,
        max_total: int = DEFAULT_MAX_TOTAL_CONNECTIONS,
        max_per_origin: int = DEFAULT_MAX_CONNECTIONS_PER_ORIGIN,
    ) -> None:
        self.max_total = max_total
        self.max_per_origin = max_per_origin
        self._total = 0
        self._per_origin: Dict[str, int] = {}

    @property
    def total(self) -> int:
        return self._total

    def count_for(self, origin: str) -> int:
        return self._per_origin.get(origin, 0)

    def admit(self, origin: str) -> Tuple[bool, Optional[ErrorKind], str]:
        """Try to take a connection slot for ``origin``.

        Returns:
            Tuple of (admitted, error_kind, reason). On success both counters
            are incremented and error_kind is None.
        """
        if self._total >= self.max_total:
            logger.warning(
                "[Admission] Rejecting %s: server at capacity (%d)", origin, self.max_total
            )
            return False, ErrorKind.CAPACITY, "Server is at capacity. Please try again later."

        current = self._per_origin.get(origin, 0)
        if current >= self.max_per_origin:
            logger.warning(
                "[Admission] Rejecting %s: per-origin limit reached (%d)",
                origin, self.max_per_origin,
            )
            return (
                False,
                ErrorKind.PER_ORIGIN,
                "Too many connections from your network. Please close other tabs.",
            )

        self._total += 1
        self._per_origin[origin] = current + 1
        return True, None, ""

    def release(self, origin: str) -> None:
        """Give back a slot taken by :meth:`admit`."""
        if self._total > 0:
            self._total -= 1

        current = self._per_origin.get(origin, 0)
        if current <= 1:
            self._per_origin.pop(origin, None)
        else:
            self._per_origin[origin] = current - 1

    def origins(self) -> Dict[str, int]:
        return dict(self._per_origin)
