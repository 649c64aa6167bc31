"""Periodic polling of the OJP API for one stop."""

import asyncio
import enum
import logging
import threading
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager

from .config import ConfigurationError, Settings, check_api_key
from .logging_config import VERBOSE
from .models import VbzData
from .ojp_client import OjpClient, OjpError
from .ojp_parser import parse_response
from .ojp_request import build_stop_event_request

logger = logging.getLogger(__name__)

SnapshotHandler = Callable[[VbzData], None]
ClientFactory = Callable[[Settings], AbstractAsyncContextManager[OjpClient]]


class MonitorState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"


def default_client_factory(settings: Settings) -> OjpClient:
    return OjpClient(
        api_key=settings.api_key,
        api_url=settings.api_url,
        timeout=settings.timeout_seconds,
    )


async def collect_departures(client: OjpClient, settings: Settings) -> VbzData:
    """Run one request/parse cycle and return its snapshot.

    API and transport failures come back as error snapshots.
    """
    try:
        check_api_key(settings.api_key)
    except ConfigurationError as e:
        logger.warning("%s", e)

    body = build_stop_event_request(settings.stop_point_id, settings.number_of_results)
    logger.log(VERBOSE, "StopEventRequest: %s", body)

    try:
        content = await client.post_stop_event_request(body)
    except OjpError as e:
        return VbzData.failure(str(e))

    return parse_response(content)


class DepartureMonitor:
    """Polls departures on a fixed interval and hands each snapshot to a subscriber.

    One poll runs at a time. The interval counts from the scheduled start of
    one tick to the next, so a fetch slower than the interval makes the next
    tick start right away rather than overlap.
    """

    def __init__(
        self,
        settings: Settings,
        on_snapshot: SnapshotHandler,
        client_factory: ClientFactory = default_client_factory,
    ):
        self.settings = settings
        self.on_snapshot = on_snapshot
        self.client_factory = client_factory
        self._state = MonitorState.IDLE
        self._lock = threading.Lock()
        self._stop_requested: asyncio.Event | None = None
        self._task: asyncio.Task | None = None

    @property
    def state(self) -> MonitorState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is MonitorState.RUNNING

    def start(self, cancel_event: asyncio.Event | None = None) -> asyncio.Task | None:
        """Start polling in a background task.

        Returns the task, or None when the monitor was already running.
        """
        with self._lock:
            if self._state is not MonitorState.IDLE:
                logger.info("Already monitoring")
                return None
            self._state = MonitorState.RUNNING
            self._stop_requested = asyncio.Event()
            self._task = asyncio.create_task(self._run(cancel_event, self._stop_requested))
        return self._task

    async def run(self, cancel_event: asyncio.Event | None = None) -> None:
        """Poll until stopped or until cancel_event is set."""
        task = self.start(cancel_event)
        if task is not None:
            await task

    async def stop(self) -> None:
        """Stop polling and wait for the loop to release its resources."""
        with self._lock:
            if self._state is MonitorState.IDLE:
                return
            self._state = MonitorState.STOPPING
            task = self._task
            if self._stop_requested is not None:
                self._stop_requested.set()

        if task is not None and task is not asyncio.current_task():
            try:
                await task
            except asyncio.CancelledError:
                logger.info("Monitoring cancelled")

    async def _run(self, cancel_event: asyncio.Event | None, stop_requested: asyncio.Event) -> None:
        loop = asyncio.get_running_loop()
        interval = self.settings.interval_seconds
        logger.info("Monitoring started (interval: %dms)", self.settings.monitoring_interval_ms)

        try:
            async with self.client_factory(self.settings) as client:
                next_tick = loop.time()
                while not self._halted(stop_requested, cancel_event):
                    await self._tick(client)
                    # Missed ticks are skipped; at most one tick follows a slow fetch at once.
                    next_tick = max(next_tick + interval, loop.time())
                    if await self._wait(next_tick - loop.time(), stop_requested, cancel_event):
                        break
                with self._lock:
                    self._state = MonitorState.STOPPING
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Monitoring cancelled")
        finally:
            with self._lock:
                self._state = MonitorState.IDLE
                self._task = None
                self._stop_requested = None
            logger.info("Monitoring stopped")

    @staticmethod
    def _halted(stop_requested: asyncio.Event, cancel_event: asyncio.Event | None) -> bool:
        return stop_requested.is_set() or (cancel_event is not None and cancel_event.is_set())

    @staticmethod
    async def _wait(
        delay: float,
        stop_requested: asyncio.Event,
        cancel_event: asyncio.Event | None,
    ) -> bool:
        """Sleep until the next tick; True when stop or cancel came first."""
        signals = [stop_requested]
        if cancel_event is not None:
            signals.append(cancel_event)
        if any(signal.is_set() for signal in signals):
            return True
        if delay <= 0:
            await asyncio.sleep(0)
            return any(signal.is_set() for signal in signals)

        waiters = [asyncio.ensure_future(signal.wait()) for signal in signals]
        try:
            done, _ = await asyncio.wait(
                waiters, timeout=delay, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for waiter in waiters:
                waiter.cancel()
        return bool(done)

    async def _tick(self, client: OjpClient) -> None:
        try:
            snapshot = await collect_departures(client, self.settings)
        except Exception as e:
            logger.error("Error collecting data: %s", e, exc_info=True)
            snapshot = VbzData.failure(f"Collection error: {e}")

        if snapshot.has_error:
            logger.warning("Poll failed: %s", snapshot.error_message)
        else:
            logger.debug("Poll returned %d departures", len(snapshot.departures))

        if self._state is MonitorState.STOPPING:
            logger.debug("Discarding snapshot collected while stopping")
            return
        self._publish(snapshot)

    def _publish(self, snapshot: VbzData) -> None:
        try:
            self.on_snapshot(snapshot)
        except Exception as e:
            logger.error("Error in snapshot subscriber: %s", e, exc_info=True)
