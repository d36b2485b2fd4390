"""
Check scheduler that runs URL checks with bounded concurrency and
summarizes the results.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

from .fetcher import CheckRequest, CheckResult


@dataclass
class RunSummary:
    """Aggregate counts over a finished run."""
    total: int = 0
    successful: int = 0
    redirects: int = 0
    client_errors: int = 0
    server_errors: int = 0
    failed: int = 0
    average_response_time_ms: float = 0.0

    @property
    def has_failures(self) -> bool:
        """True when any URL failed outright or answered 4xx/5xx."""
        return (self.failed + self.client_errors + self.server_errors) > 0

    def to_dict(self) -> Dict[str, float]:
        return {
            'total': self.total,
            'successful': self.successful,
            'redirects': self.redirects,
            'client_errors': self.client_errors,
            'server_errors': self.server_errors,
            'failed': self.failed,
            'average_response_time_ms': self.average_response_time_ms,
        }


# status_class -> RunSummary counter; informational responses are not counted
SUMMARY_BUCKETS = {
    'success': 'successful',
    'redirect': 'redirects',
    'client_error': 'client_errors',
    'server_error': 'server_errors',
    'failed': 'failed',
}


def summarize(results: List[CheckResult]) -> RunSummary:
    """Bucket results by status class and average their response times."""
    summary = RunSummary(total=len(results))

    for result in results:
        bucket = SUMMARY_BUCKETS.get(result.status_class)
        if bucket:
            setattr(summary, bucket, getattr(summary, bucket) + 1)

    if results:
        summary.average_response_time_ms = (
            sum(result.response_time_ms for result in results) / len(results)
        )

    return summary


class CheckScheduler:
    """
    Runs checks through a fixed pool of worker tasks.

    At most ``concurrency`` checks are in flight. Workers pull the next URL as
    soon as they finish one, so the pool stays full until the queue drains.
    Results are collected in completion order and passed to ``on_result``
    as each one finishes.
    """

    def __init__(self, checker, request_factory: Callable[[str], CheckRequest],
                 concurrency: int = 5,
                 on_result: Optional[Callable[[CheckResult], None]] = None,
                 monitor=None):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")

        self.checker = checker
        self.request_factory = request_factory
        self.concurrency = concurrency
        self.on_result = on_result
        self.monitor = monitor
        self.logger = logging.getLogger(__name__)

        self.results: List[CheckResult] = []
        self.in_flight = 0
        self.peak_in_flight = 0
        self.started_at: Optional[float] = None
        self.elapsed: float = 0.0

    async def run(self, urls: Iterable[str]) -> List[CheckResult]:
        """
        Check every URL and return the results in completion order.

        Args:
            urls: URLs in dispatch order

        Returns:
            One CheckResult per input URL
        """
        queue: asyncio.Queue = asyncio.Queue()
        for url in urls:
            queue.put_nowait(url)

        self.results = []
        self.started_at = time.time()

        num_workers = min(self.concurrency, queue.qsize())
        self.logger.info(f"Checking {queue.qsize()} URL(s) with {num_workers} worker(s)")

        workers = [
            asyncio.create_task(self._worker(f"worker-{i}", queue))
            for i in range(num_workers)
        ]

        try:
            await asyncio.gather(*workers)
        finally:
            for worker in workers:
                if not worker.done():
                    worker.cancel()
            self.elapsed = time.time() - self.started_at

        self.logger.info(f"Finished {len(self.results)} check(s) in {self.elapsed:.2f}s")
        return self.results

    async def _worker(self, worker_id: str, queue: asyncio.Queue):
        """Worker coroutine that checks URLs until the queue is empty."""
        self.logger.debug(f"Worker {worker_id} started")

        while True:
            try:
                url = queue.get_nowait()
            except asyncio.QueueEmpty:
                break

            self._set_in_flight(self.in_flight + 1)
            try:
                result = await self.checker.check_url(self.request_factory(url))
            finally:
                self._set_in_flight(self.in_flight - 1)

            self.results.append(result)
            if self.on_result:
                self.on_result(result)

        self.logger.debug(f"Worker {worker_id} finished")

    def _set_in_flight(self, count: int):
        self.in_flight = count
        self.peak_in_flight = max(self.peak_in_flight, count)
        if self.monitor:
            self.monitor.update_in_flight(count)

    def get_stats(self) -> Dict:
        """Get statistics for the last run."""
        return {
            'checked': len(self.results),
            'in_flight': self.in_flight,
            'peak_in_flight': self.peak_in_flight,
            'elapsed_time': self.elapsed,
        }
