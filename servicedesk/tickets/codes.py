from __future__ import annotations

import random
from datetime import datetime, timezone
from typing import Awaitable, Callable

from servicedesk.errors import DependencyFailure


class TicketCodeGenerator:
    """Produce ``<prefix>-<year>-<NNNN>`` codes that are not yet taken.

    The four digit suffix is random; ``exists`` is consulted inside the creating
    transaction and a unique index on ``tickets.ticket_code`` catches the remaining race.
    """

    def __init__(
        self,
        *,
        prefix: str = "ICT",
        max_attempts: int = 10,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._prefix = prefix
        self._max_attempts = max(1, max_attempts)
        self._rng = rng or random.SystemRandom()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def candidate(self) -> str:
        year = self._clock().year
        return f"{self._prefix}-{year:04d}-{self._rng.randint(1000, 9999)}"

    async def generate(self, exists: Callable[[str], Awaitable[bool]]) -> str:
        for _ in range(self._max_attempts):
            code = self.candidate()
            if not await exists(code):
                return code
        raise DependencyFailure(f"Could not allocate a free ticket code after {self._max_attempts} attempts")
