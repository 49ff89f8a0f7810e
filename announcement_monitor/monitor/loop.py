import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from loguru import logger

from announcement_monitor.core.classifier import ListingClassifier
from announcement_monitor.core.models import MonitorConfig, MonitorError, NetworkError
from announcement_monitor.exchanges.base import ExchangeMonitor, NormalizedBatch, RawPayload
from announcement_monitor.monitor.seen_set import DEFAULT_CAPACITY, SeenSet
from announcement_monitor.utils.tools import jittered_delay


class LoopState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"
    SUCCESS = "success"
    FAILED = "failed"
    SLEEPING = "sleeping"
    STOPPED = "stopped"


@dataclass
class LoopStats:
    cycles: int = 0
    failures: int = 0
    emitted: int = 0
    listings: int = 0
    skipped: int = 0
    last_total: int = 0
    last_error: Optional[str] = None
    last_success_at: Optional[datetime] = field(default=None, compare=False)


class SourceMonitorLoop:
    """
    Poll one exchange forever: fetch, normalize, classify the unseen announcements and
    put the events on the shared queue.

    A failed cycle is logged and followed by the normal sleep; only the stop event ends
    the loop. The stop event also interrupts an in-flight fetch and the sleep.
    """

    def __init__(
            self,
            monitor: ExchangeMonitor,
            config: MonitorConfig,
            queue: asyncio.Queue,
            stop_event: asyncio.Event,
            classifier: Optional[ListingClassifier] = None,
            seen_capacity: int = DEFAULT_CAPACITY,
            seed_on_start: bool = False,
            jitter_percent: float = 0.0,
    ):
        self.monitor = monitor
        self.config = config
        self._queue = queue
        self._stop = stop_event
        self.classifier = classifier or ListingClassifier()
        self.seen = SeenSet(seen_capacity)
        self._seed_pending = seed_on_start
        self._jitter_percent = jitter_percent

        self.state = LoopState.IDLE
        self.stats = LoopStats()
        self._log = logger.bind(exchange=monitor.name)

    @property
    def name(self) -> str:
        return self.monitor.name

    async def run(self):
        self._log.info(f"Starting loop with {self.config.poll_interval:g}s interval")
        try:
            while not self._stop.is_set():
                await self.run_cycle()
                if self._stop.is_set():
                    break
                self.state = LoopState.SLEEPING
                await self._sleep(jittered_delay(self.config.poll_interval, self._jitter_percent))
        finally:
            self.state = LoopState.STOPPED
            self._log.debug("Loop stopped")

    async def run_cycle(self) -> bool:
        """One poll; True when the fetch and normalization succeeded"""
        self.stats.cycles += 1
        cycle = self.stats.cycles
        self.state = LoopState.POLLING
        start_time = asyncio.get_running_loop().time()

        try:
            raw = await self._fetch()
            if raw is None:
                return False
            batch = self.monitor.normalize(raw)
        except MonitorError as e:
            self._fail(cycle, e.kind, e)
            return False
        except Exception as e:
            self._log.opt(exception=e).error(f"Cycle {cycle} crashed: {e!r}")
            self._fail(cycle, "unexpected", e)
            return False

        self.state = LoopState.SUCCESS
        self.stats.last_total = batch.total
        self.stats.last_success_at = datetime.now(timezone.utc)

        if batch.warning:
            self.stats.skipped += batch.warning.skipped
            self._log.warning(f"Skipped {batch.warning.skipped}/{batch.warning.total} malformed entries: "
                              f"{'; '.join(batch.warning.reasons[:3])}")

        new_count = await self._process(batch)

        process_time = asyncio.get_running_loop().time() - start_time
        log_msg = f"{new_count} / {batch.total} / {process_time:.2f}s"
        if new_count > 0:
            self._log.info(f"✅ {log_msg}")
        else:
            self._log.debug(log_msg)
        return True

    async def _fetch(self) -> Optional[RawPayload]:
        """fetch_raw() bounded by fetch_timeout; None when the stop event wins the race"""
        fetch = asyncio.ensure_future(asyncio.wait_for(self.monitor.fetch_raw(), self.config.fetch_timeout))
        stop = asyncio.ensure_future(self._stop.wait())
        try:
            done, _ = await asyncio.wait({fetch, stop}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            fetch.cancel()
            stop.cancel()
            raise

        if fetch in done:
            stop.cancel()
            try:
                return fetch.result()
            except asyncio.TimeoutError:
                raise NetworkError(f"fetch timed out after {self.config.fetch_timeout:g}s",
                                   self.name, timeout=True) from None

        fetch.cancel()
        await asyncio.gather(fetch, return_exceptions=True)
        self._log.debug("Fetch cancelled by shutdown")
        return None

    async def _process(self, batch: NormalizedBatch) -> int:
        seeding = self._seed_pending
        new_count = 0

        # Oldest first, so events reach the queue in publication order
        for ann in reversed(batch.announcements):
            if ann.fingerprint in self.seen:
                continue

            if not seeding:
                event = self.classifier.classify(ann, detected_at=datetime.now(timezone.utc))
                await self._queue.put(event)
                self.stats.emitted += 1
                if event.is_new_listing:
                    self.stats.listings += 1

            self.seen.add(ann.fingerprint)
            new_count += 1

        if seeding:
            self._seed_pending = False
            self._log.info(f"Seeded {new_count} existing announcements")
            return 0
        return new_count

    def _fail(self, cycle: int, kind: str, error: BaseException):
        self.state = LoopState.FAILED
        self.stats.failures += 1
        self.stats.last_error = f"{kind}: {error}"
        next_retry = datetime.now(timezone.utc) + timedelta(seconds=self.config.poll_interval)
        self._log.warning(f"❌ Cycle {cycle} failed ({kind}): {error} | next retry at {next_retry:%H:%M:%S} UTC")

    async def _sleep(self, delay: float):
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass
