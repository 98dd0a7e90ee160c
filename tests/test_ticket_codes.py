import random
from datetime import datetime, timezone

import pytest

from servicedesk.errors import DependencyFailure
from servicedesk.tickets import TicketCodeGenerator


def _fixed_clock():
    return datetime(2026, 3, 14, tzinfo=timezone.utc)


def test_candidate_uses_prefix_year_and_four_digits():
    generator = TicketCodeGenerator(rng=random.Random(7), clock=_fixed_clock)

    for _ in range(50):
        code = generator.candidate()
        prefix, year, number = code.split("-")
        assert (prefix, year) == ("ICT", "2026")
        assert 1000 <= int(number) <= 9999


@pytest.mark.asyncio
async def test_generate_retries_taken_codes():
    generator = TicketCodeGenerator(prefix="HD", rng=random.Random(1), clock=_fixed_clock)
    seen: list[str] = []

    async def exists(code: str) -> bool:
        seen.append(code)
        return len(seen) < 3

    code = await generator.generate(exists)

    assert code == seen[-1]
    assert len(seen) == 3
    assert code.startswith("HD-2026-")


@pytest.mark.asyncio
async def test_generate_gives_up_after_max_attempts():
    generator = TicketCodeGenerator(max_attempts=4, clock=_fixed_clock)
    calls = 0

    async def exists(code: str) -> bool:
        nonlocal calls
        calls += 1
        return True

    with pytest.raises(DependencyFailure):
        await generator.generate(exists)
    assert calls == 4
