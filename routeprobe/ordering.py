import threading
from typing import Callable

from .metrics import RouteOutcome


class OrderedResultSink:
    """
    Re-serializes outcomes that complete in any order into input order.

    Outcomes are buffered by index; whenever the outcome for `next_index`
    is present it is emitted and the cursor advances, repeatedly. Insertion
    and draining share one lock, so concurrent arrivals never interleave
    output and no index is emitted twice.

    Invariant: the buffer never holds an index below `next_index`.
    """

    def __init__(self, emit: Callable[[RouteOutcome], None]):
        self._emit = emit
        self._lock = threading.Lock()
        self._pending: dict[int, RouteOutcome] = {}
        self.next_index = 0
        self.emitted = 0

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def add(self, outcome: RouteOutcome) -> None:
        with self._lock:
            if outcome.index < self.next_index or outcome.index in self._pending:
                raise ValueError(f"Duplicate outcome for index {outcome.index}")
            self._pending[outcome.index] = outcome
            self._drain()

    def _drain(self) -> None:
        while self.next_index in self._pending:
            outcome = self._pending.pop(self.next_index)
            self.next_index += 1
            self.emitted += 1
            self._emit(outcome)

    def flush_remaining(self) -> int:
        """
        Emit anything still buffered, in ascending index order.

        Only reachable if some index never arrived; returns how many
        outcomes were force-flushed.
        """
        with self._lock:
            self._drain()
            leftovers = sorted(self._pending)
            for index in leftovers:
                outcome = self._pending.pop(index)
                self.emitted += 1
                self._emit(outcome)
            if leftovers:
                self.next_index = leftovers[-1] + 1
            return len(leftovers)
