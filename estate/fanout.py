"""
Multi-source fan-out: bounded batches of independent fetches, merged by key.

Batches run their tasks in parallel on a short-lived thread pool and fully
settle before the next batch starts, which caps simultaneous load on upstream
APIs with undocumented rate limits.
"""

import concurrent.futures
import logging
import threading
from contextlib import contextmanager
from typing import (
    Any,
    Callable,
    Dict,
    Hashable,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    TypeVar,
)

from . import config
from .format import round_half_up
from .errors import FanOutCancelled

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancelToken:
    """Abort signal shared by the tasks of one aggregation."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise FanOutCancelled()


class ChannelRegistry:
    """One in-flight aggregation per channel; starting a new one cancels the old."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tokens: Dict[str, CancelToken] = {}

    def begin(self, channel: Optional[str]) -> CancelToken:
        token = CancelToken()
        if not channel:
            return token
        with self._lock:
            previous = self._tokens.get(channel)
            if previous is not None:
                logger.info("Superseding in-flight aggregation on channel %s", channel)
                previous.cancel()
            self._tokens[channel] = token
        return token

    def finish(self, channel: Optional[str], token: CancelToken) -> None:
        if not channel:
            return
        with self._lock:
            if self._tokens.get(channel) is token:
                del self._tokens[channel]

    @contextmanager
    def track(self, channel: Optional[str]) -> Iterator[CancelToken]:
        token = self.begin(channel)
        try:
            yield token
        finally:
            self.finish(channel, token)


def _guarded(task: Callable[[], T], token: Optional[CancelToken]) -> Callable[[], Optional[T]]:
    def run() -> Optional[T]:
        if token is not None and token.cancelled:
            return None
        return task()

    return run


def fan_out(
    tasks: Sequence[Callable[[], T]],
    batch_size: Optional[int] = config.FANOUT_BATCH_SIZE,
    cancel_token: Optional[CancelToken] = None,
    tolerate_errors: bool = True,
) -> List[Optional[T]]:
    """Run ``tasks`` in batches and return their results in task order.

    ``batch_size=None`` runs every task at once. With ``tolerate_errors`` a task
    that raises yields ``None``; otherwise the first error is re-raised once its
    batch has settled. A cancelled token raises ``FanOutCancelled`` between
    batches and after the last one, discarding whatever was collected.
    """

    results: List[Optional[T]] = [None] * len(tasks)
    if not tasks:
        return results
    size = batch_size if batch_size and batch_size > 0 else len(tasks)

    for start in range(0, len(tasks), size):
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        batch = tasks[start : start + size]
        first_error: Optional[BaseException] = None
        with concurrent.futures.ThreadPoolExecutor(max_workers=len(batch)) as executor:
            future_to_index = {
                executor.submit(_guarded(task, cancel_token)): start + offset
                for offset, task in enumerate(batch)
            }
            for future in concurrent.futures.as_completed(future_to_index):
                index = future_to_index[future]
                try:
                    results[index] = future.result()
                except Exception as exc:  # pylint: disable=broad-except
                    logger.warning("Fan-out task %d failed: %s", index, exc)
                    if not tolerate_errors and first_error is None:
                        first_error = exc
        if first_error is not None:
            raise first_error

    if cancel_token is not None:
        cancel_token.raise_if_cancelled()
    return results


def join_by_key(
    sources: Mapping[str, Mapping[Hashable, Any]], default: Any = 0
) -> Dict[Hashable, Dict[str, Any]]:
    """Full outer join of several ``key -> value`` maps, keys in sorted order.

    A key present in only some sources still appears; the other sources
    contribute ``default``.
    """

    keys = set()
    for values in sources.values():
        keys.update(values)
    return {
        key: {name: values.get(key, default) for name, values in sources.items()}
        for key in sorted(keys)
    }


def pct_change(current: float, previous: float) -> float:
    if not previous:
        return 0.0
    return (current - previous) / previous * 100


def safe_ratio(numerator: float, denominator: float, scale: float = 100.0) -> float:
    if not denominator:
        return 0.0
    return numerator / denominator * scale


def average(values: Sequence[float]) -> int:
    if not values:
        return 0
    return int(round_half_up(sum(values) / len(values)))
