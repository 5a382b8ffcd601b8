"""
Bounded-concurrency dispatch of one probe call per route.

At most `max_concurrency` probe calls hold a slot at any instant. Every
descriptor produces exactly one outcome, even when its probe raises: the
exception is converted into the probe's own failure classification at
the per-route boundary so siblings keep running.
"""

import asyncio
import logging
from typing import Callable, Iterable

from .metrics import OutcomeKind, RouteDescriptor, RouteOutcome
from .utils import build_url, error_outcome

logger = logging.getLogger(__name__)


class BoundedScheduler:
    def __init__(self, max_concurrency: int, base_url: str = ""):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self.max_concurrency = max_concurrency
        self.base_url = base_url
        self.active = 0
        self.peak = 0

    async def _run_one(self, semaphore: asyncio.Semaphore, probe, descriptor: RouteDescriptor,
                       on_outcome: Callable[[RouteOutcome], None]) -> None:
        async with semaphore:
            self.active += 1
            self.peak = max(self.peak, self.active)
            try:
                try:
                    outcome = await probe.probe(descriptor)
                except Exception as e:
                    logger.exception("probe crashed for %s", descriptor.route)
                    kind = getattr(probe, "failure_kind", OutcomeKind.NAVIGATION_ERROR)
                    outcome = error_outcome(descriptor, build_url(self.base_url, descriptor.route), kind, e)
                on_outcome(outcome)
            finally:
                self.active -= 1

    async def run(self, descriptors: Iterable[RouteDescriptor], probe,
                  on_outcome: Callable[[RouteOutcome], None]) -> None:
        """
        Probe every descriptor; returns once all of them have completed.

        `probe` is anything with an async `probe(descriptor) -> RouteOutcome`
        method (HttpProber, BrowserProber). `on_outcome` is called once per
        route, in completion order, while the route still holds its slot.
        """
        semaphore = asyncio.Semaphore(self.max_concurrency)
        tasks = [
            asyncio.create_task(self._run_one(semaphore, probe, d, on_outcome))
            for d in descriptors
        ]
        if tasks:
            await asyncio.gather(*tasks)
