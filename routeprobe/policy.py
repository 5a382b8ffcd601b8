"""
Policy module: decides whether a screenshot looks like a blank / unrendered
page and should be captured once more.

The logic is:
- explicit
- configurable
- bounded (at most one recapture per artifact)
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable

from .settings import DEFAULT_PROBE_CONFIG, ProbeConfig


@dataclass
class CaptureResult:
    size_bytes: int
    suspicious: bool
    retried: bool


def is_suspicious(size_bytes: int, config: ProbeConfig | None = None) -> bool:
    cfg = config or DEFAULT_PROBE_CONFIG

    return size_bytes < cfg.suspicious_bytes


async def capture_with_retry(
    capture: Callable[[], Awaitable[int]],
    config: ProbeConfig | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> CaptureResult:
    """
    Run `capture` (which writes the artifact and returns its size) and, if the
    result is suspiciously small, wait `retry_delay_ms` and run it exactly once
    more. The second capture overwrites the first and is the one reported,
    even if it is still small.
    """
    cfg = config or DEFAULT_PROBE_CONFIG

    size = await capture()
    if not is_suspicious(size, cfg):
        return CaptureResult(size_bytes=size, suspicious=False, retried=False)

    await sleep(cfg.retry_delay_ms / 1000)
    size = await capture()
    return CaptureResult(size_bytes=size, suspicious=is_suspicious(size, cfg), retried=True)
