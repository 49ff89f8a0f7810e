import asyncio
from typing import Callable, Dict, List, Optional, Sequence

from loguru import logger

from announcement_monitor.config.loader import AppConfig, GeneralConfig
from announcement_monitor.core.classifier import ListingClassifier
from announcement_monitor.core.http_client import HttpClient
from announcement_monitor.core.models import Exchange, ListingEvent, MonitorConfig
from announcement_monitor.core.proxy_manager import ExchangeProxyManager
from announcement_monitor.exchanges.base import ExchangeMonitor
from announcement_monitor.exchanges.factory import ExchangeFactory
from announcement_monitor.monitor.loop import SourceMonitorLoop
from announcement_monitor.notifiers.base import EventSink

MonitorBuilder = Callable[[MonitorConfig], ExchangeMonitor]


class OrchestratorHandle:
    """Running orchestrator: shutdown() stops it, wait() blocks until it has stopped"""

    def __init__(self, orchestrator: "Orchestrator"):
        self._orchestrator = orchestrator

    @property
    def loops(self) -> Dict[Exchange, SourceMonitorLoop]:
        return self._orchestrator.loops

    async def shutdown(self):
        await self._orchestrator.shutdown()

    async def wait(self):
        await self._orchestrator.stopped.wait()


class Orchestrator:
    """
    Runs one independent loop per enabled exchange and fans their events into the sinks.

    Every loop owns its adapter, HTTP client and seen-set; the bounded queue is the only
    shared object. A crash in one loop or sink never reaches the others.
    """

    def __init__(
            self,
            sinks: Sequence[EventSink],
            general: Optional[GeneralConfig] = None,
            proxy_manager: Optional[ExchangeProxyManager] = None,
            monitor_builder: Optional[MonitorBuilder] = None,
            classifier: Optional[ListingClassifier] = None,
    ):
        self.general = general or GeneralConfig()
        self.sinks = list(sinks)
        self.proxy_manager = proxy_manager or ExchangeProxyManager()
        self.classifier = classifier or ListingClassifier()
        self._build_monitor = monitor_builder or self._default_monitor

        self._log = logger.bind(component="orchestrator")
        self.loops: Dict[Exchange, SourceMonitorLoop] = {}
        self._exchange_tasks: Dict[Exchange, asyncio.Task] = {}
        self._dispatcher: Optional[asyncio.Task] = None
        self._reporter: Optional[asyncio.Task] = None
        self._queue: Optional[asyncio.Queue] = None
        self._stop: Optional[asyncio.Event] = None
        self.stopped = asyncio.Event()
        self._shutdown_lock = asyncio.Lock()

    @classmethod
    def from_config(cls, config: AppConfig, sinks: Sequence[EventSink]) -> "Orchestrator":
        proxy_manager = ExchangeProxyManager()
        proxies = config.proxy.proxy_urls()
        if proxies:
            proxy_manager.register_all([e.display_name for e in Exchange], proxies)
        return cls(sinks, config.general, proxy_manager)

    def _default_monitor(self, config: MonitorConfig) -> ExchangeMonitor:
        name = config.exchange_id.display_name
        http = HttpClient(self.proxy_manager, name, timeout=config.fetch_timeout)
        return ExchangeFactory.create(config, http)

    async def start(self, configs: Sequence[MonitorConfig]) -> OrchestratorHandle:
        """Start a loop per enabled config plus the dispatcher and the stats reporter"""
        self._queue = asyncio.Queue(maxsize=self.general.queue_size)
        self._stop = asyncio.Event()

        for config in configs:
            if not config.enabled or config.exchange_id in self.loops:
                continue
            try:
                monitor = self._build_monitor(config)
            except (ValueError, TypeError) as e:
                self._log.error(f"Failed to init {config.exchange_id.value}: {e}")
                continue

            loop = SourceMonitorLoop(
                monitor,
                config,
                self._queue,
                self._stop,
                classifier=self.classifier,
                seen_capacity=self.general.seen_capacity,
                seed_on_start=self.general.seed_on_start,
                jitter_percent=self.general.poll_jitter,
            )
            self.loops[config.exchange_id] = loop
            self._exchange_tasks[config.exchange_id] = asyncio.create_task(
                self._supervise(loop), name=f"exchange_{config.exchange_id.value}"
            )

        if self.loops:
            self._log.info(f"Started {len(self.loops)} exchange loops: "
                           f"{', '.join(loop.name for loop in self.loops.values())}")
        else:
            self._log.warning("No exchanges enabled")

        self._dispatcher = asyncio.create_task(self._dispatch(), name="dispatcher")
        if self.general.stats_interval > 0:
            self._reporter = asyncio.create_task(self._stats_reporter(), name="stats")
        return OrchestratorHandle(self)

    async def _supervise(self, loop: SourceMonitorLoop):
        """Keep a loop running until shutdown even if it crashes outside a cycle"""
        while not self._stop.is_set():
            try:
                await loop.run()
            except Exception as e:
                loop.stats.failures += 1
                self._log.opt(exception=e).error(f"{loop.name} loop crashed, restarting: {e!r}")
                try:
                    await asyncio.wait_for(self._stop.wait(), timeout=loop.config.poll_interval)
                except asyncio.TimeoutError:
                    pass

    async def _dispatch(self):
        while True:
            event = await self._queue.get()
            try:
                await self._deliver(event)
            finally:
                self._queue.task_done()

    async def _deliver(self, event: ListingEvent):
        for sink in self.sinks:
            try:
                await sink.send(event)
            except Exception as e:
                self._log.error(f"Sink {sink.name} failed on {event.exchange} event: {e!r}")

    async def shutdown(self):
        """Stop loops, flush queued events to the sinks, then release clients and sinks"""
        async with self._shutdown_lock:
            if self.stopped.is_set() or self._stop is None:
                self.stopped.set()
                return

            self._log.info("Shutting down...")
            self._stop.set()

            if self._reporter:
                self._reporter.cancel()
                await asyncio.gather(self._reporter, return_exceptions=True)

            await asyncio.gather(*self._exchange_tasks.values(), return_exceptions=True)

            await self._queue.join()
            self._dispatcher.cancel()
            await asyncio.gather(self._dispatcher, return_exceptions=True)

            for loop in self.loops.values():
                try:
                    await loop.monitor.close()
                except Exception as e:
                    self._log.warning(f"Closing {loop.name} client failed: {e!r}")

            for sink in self.sinks:
                try:
                    await sink.close()
                except Exception as e:
                    self._log.warning(f"Closing sink {sink.name} failed: {e!r}")

            self.stopped.set()
            self._log.info("Cleanup complete")

    def stats_line(self) -> str:
        summary = []
        for loop in self.loops.values():
            stats = loop.stats
            status = f"📊{loop.name}: [{stats.emitted} / {stats.listings} / {stats.cycles}]"
            if stats.failures > 0:
                status += f", {stats.failures} errors"
            summary.append(status)
        return " | ".join(summary)

    async def _stats_reporter(self):
        """Periodically report statistics"""
        while not self._stop.is_set():
            await asyncio.sleep(self.general.stats_interval)
            if self.loops:
                self._log.info(self.stats_line())


async def run_until_stopped(config: AppConfig, sinks: List[EventSink],
                            stop_signal: Optional[asyncio.Event] = None) -> Orchestrator:
    """Start from a resolved AppConfig and block until stop_signal is set"""
    orchestrator = Orchestrator.from_config(config, sinks)
    handle = await orchestrator.start(config.monitor_configs())
    stop_signal = stop_signal or asyncio.Event()
    try:
        await stop_signal.wait()
    finally:
        await handle.shutdown()
    return orchestrator
