import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator


class ConcurrencyGate:
    """
    A counting permit pool that bounds how many processing units execute at once.

    With a size of 1, units run strictly one after another in the order they
    asked for a permit.
    """

    def __init__(self, size: int):
        if size < 1:
            raise ValueError("Concurrency gate size must be a positive integer.")
        self.size = size
        self._semaphore = asyncio.Semaphore(size)
        self.in_flight = 0
        self.peak = 0

    @asynccontextmanager
    async def permit(self) -> AsyncIterator[None]:
        """Holds one permit for the duration of the block, releasing it even if the block raises."""
        async with self._semaphore:
            self.in_flight += 1
            self.peak = max(self.peak, self.in_flight)
            try:
                yield
            finally:
                self.in_flight -= 1
