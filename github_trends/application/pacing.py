import asyncio
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar

T = TypeVar("T")

# Each job receives the delay it must wait before touching the network.
PacedJob = Callable[[float], Awaitable[T]]


class PacedTaskQueue:
    """
    Runs jobs one at a time, in order, with a minimum start spacing.

    Job ``i`` is handed a delay such that it begins no earlier than
    ``loop_start + i * interval``, and it is never started before job
    ``i - 1`` has completed. Delays are measured from the start of the
    run, so time already spent in earlier jobs counts toward the spacing.
    """

    def __init__(self, interval: float, clock: Optional[Callable[[], float]] = None):
        if interval < 0:
            raise ValueError("interval must be non-negative.")
        self.interval = interval
        self._clock = clock

    def delay_for(self, index: int, started: float, now: float) -> float:
        return max(0.0, started + index * self.interval - now)

    async def run(self, jobs: Sequence[PacedJob]) -> List[T]:
        clock = self._clock or asyncio.get_running_loop().time
        started = clock()
        results: List[T] = []

        for index, job in enumerate(jobs):
            results.append(await job(self.delay_for(index, started, clock())))

        return results
