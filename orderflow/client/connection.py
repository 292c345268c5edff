"""
Client Connection Manager

Keeps one live channel per (server, role, user) open against ``WS /ws`` and
recovers from drops on its own:

- identifies right after every (re)connect so the server can place the
  connection in its rooms
- reconnects immediately when the server closed a healthy session, and with
  exponential backoff plus jitter after network failures or repeated
  short-lived sessions, forever, until the channel is closed
- sends its own heartbeat probes and recycles the connection after too
  many unanswered ones; round-trip times are classified for reporting only

Hosting that cannot keep long-lived connections gets a ``NullChannel`` and
relies on polling instead.
"""

import asyncio
import enum
import inspect
import logging
import random
import time
from collections import OrderedDict, deque
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Protocol, Sequence, Union
from urllib.parse import urlparse, urlunparse

import websockets
from websockets.exceptions import ConnectionClosed, InvalidHandshake

from orderflow.core.config import Settings
from orderflow.realtime.events import (
    ConnectionQualityReport,
    ConnectionQualityRequest,
    EventDecodeError,
    EventName,
    Identified,
    Identify,
    MENU_EVENTS,
    ORDER_EVENTS,
    Ping,
    Pong,
    decode_event,
    encode_event,
)
from orderflow.status import Role

logger = logging.getLogger(__name__)

DEFAULT_SERVERLESS_MARKERS = ("vercel.app", "netlify.app", "serverless")

# Failures that are part of normal life for a live channel
EXPECTED_ERRORS = (InvalidHandshake, ConnectionClosed, OSError, asyncio.TimeoutError, EOFError)

Callback = Callable[[Any], Any]
ErrorHandler = Callable[[BaseException], Any]


class Connection(Protocol):
    async def send(self, message: str) -> None: ...

    async def recv(self) -> Union[str, bytes]: ...

    async def close(self) -> None: ...


Connector = Callable[[str], Awaitable[Connection]]


# =============================================================================
# HELPERS
# =============================================================================

def is_serverless_platform(url: str, markers: Optional[Sequence[str]] = None) -> bool:
    """True when the API host is known to drop long-lived connections."""
    host = urlparse(url).hostname or url
    host = host.lower()
    return any(marker in host for marker in (markers or DEFAULT_SERVERLESS_MARKERS))


def live_channel_url(base_url: str) -> str:
    """``http://host:8000`` → ``ws://host:8000/ws``."""
    parsed = urlparse(base_url)
    scheme = {"http": "ws", "https": "wss"}.get(parsed.scheme, parsed.scheme or "ws")
    path = parsed.path.rstrip("/")
    if not path.endswith("/ws"):
        path = f"{path}/ws"
    return urlunparse((scheme, parsed.netloc, path, "", "", ""))


def backoff_delay(
    attempt: int,
    base: float = 1.0,
    maximum: float = 30.0,
    rng: Callable[[], float] = random.random,
) -> float:
    """
    Delay before reconnect attempt number ``attempt`` (1-based).

    Exponential growth capped at ``maximum``, with equal jitter: the result
    lies between half the capped value and the capped value.
    """
    capped = min(maximum, base * (2 ** max(attempt - 1, 0)))
    half = capped / 2
    return half + rng() * half


def classify_latency(latency_ms: Optional[float]) -> str:
    if latency_ms is None:
        return "unknown"
    if latency_ms < 100:
        return "excellent"
    if latency_ms < 300:
        return "good"
    if latency_ms < 1000:
        return "fair"
    if latency_ms < 3000:
        return "poor"
    return "critical"


class LatencyTracker:
    """Round-trip times of the last few heartbeat probes."""

    def __init__(self, size: int = 5):
        self._samples: deque[float] = deque(maxlen=size)

    def record(self, latency_ms: float) -> None:
        self._samples.append(latency_ms)

    def reset(self) -> None:
        self._samples.clear()

    @property
    def average(self) -> Optional[float]:
        if not self._samples:
            return None
        return sum(self._samples) / len(self._samples)

    @property
    def quality(self) -> str:
        return classify_latency(self.average)


async def _websockets_connect(url: str) -> Connection:
    # Heartbeats are handled by the channel itself
    return await websockets.connect(url, ping_interval=None, open_timeout=None)


# =============================================================================
# OPTIONS & STATE
# =============================================================================

@dataclass
class ChannelOptions:
    heartbeat_interval: float = 20.0
    heartbeat_timeout: float = 5.0
    max_missed_heartbeats: int = 3
    connect_timeout: float = 10.0
    reconnect_base_delay: float = 1.0
    reconnect_max_delay: float = 30.0
    stable_session: float = 30.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "ChannelOptions":
        return cls(
            heartbeat_interval=settings.heartbeat_interval_seconds,
            heartbeat_timeout=settings.heartbeat_timeout_seconds,
            max_missed_heartbeats=settings.max_missed_heartbeats,
            connect_timeout=settings.connect_timeout_seconds,
            reconnect_base_delay=settings.reconnect_base_delay_seconds,
            reconnect_max_delay=settings.reconnect_max_delay_seconds,
            stable_session=settings.stable_session_seconds,
        )


class ChannelState(str, enum.Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    CLOSED = "closed"


def _event_name(name: Union[str, EventName]) -> EventName:
    name = EventName(name)
    if name not in ORDER_EVENTS and name not in MENU_EVENTS:
        raise ValueError(f"{name.value} is not a server event")
    return name


# =============================================================================
# CHANNELS
# =============================================================================

class NullChannel:
    """Inert channel for hosting without long-lived connections."""

    connected = False
    closed = False
    identified = False
    state = ChannelState.IDLE
    quality = "unknown"

    def on(self, name: Union[str, EventName], callback: Callback) -> None:
        pass

    def off(self, name: Union[str, EventName], callback: Optional[Callback] = None) -> None:
        pass

    def on_state(self, callback: Callable[[ChannelState], Any]) -> None:
        pass

    def start(self) -> None:
        pass

    def cleanup(self) -> None:
        pass

    async def wait_connected(self, timeout: Optional[float] = None) -> bool:
        return False

    async def close(self) -> None:
        pass


class RealtimeChannel:
    """
    One self-healing live connection.

    Subscribers register per event name and receive the event payload: the
    order (or menu item) for upserts, the identifier for deletions.
    """

    def __init__(
        self,
        url: str,
        role: Union[str, Role],
        user_id: Optional[str] = None,
        options: Optional[ChannelOptions] = None,
        connect: Optional[Connector] = None,
        on_error: Optional[ErrorHandler] = None,
    ):
        self.url = url
        self.role = Role(role)
        self.user_id = user_id or None
        self.options = options or ChannelOptions()
        self.latency = LatencyTracker()
        self.last_quality_report: Optional[ConnectionQualityReport] = None
        self.identified = False
        self.reconnects = 0

        self._connect = connect or _websockets_connect
        self._on_error = on_error
        self._subscribers: dict[EventName, list[Callback]] = {}
        self._state_listeners: list[Callable[[ChannelState], Any]] = []
        self._state = ChannelState.IDLE
        self._connected_event = asyncio.Event()

        self._ws: Optional[Connection] = None
        self._run_task: Optional[asyncio.Task] = None
        self._heartbeat_task: Optional[asyncio.Task] = None
        self._pending_pongs: dict[int, asyncio.Future] = {}
        self._seq = 0
        self._closing_locally = False
        self._closed = False

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state is ChannelState.CONNECTED

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def quality(self) -> str:
        return self.latency.quality

    def on(self, name: Union[str, EventName], callback: Callback) -> None:
        subscribers = self._subscribers.setdefault(_event_name(name), [])
        if callback not in subscribers:
            subscribers.append(callback)

    def off(self, name: Union[str, EventName], callback: Optional[Callback] = None) -> None:
        """Drop one subscriber, or all subscribers of ``name``."""
        name = _event_name(name)
        if callback is None:
            self._subscribers.pop(name, None)
            return
        subscribers = self._subscribers.get(name, [])
        if callback in subscribers:
            subscribers.remove(callback)

    def on_state(self, callback: Callable[[ChannelState], Any]) -> None:
        self._state_listeners.append(callback)

    def start(self) -> None:
        """Begin connecting in the background. Requires a running event loop."""
        if self._closed or self._run_task is not None:
            return
        self._run_task = asyncio.get_running_loop().create_task(self._run())

    async def wait_connected(self, timeout: Optional[float] = None) -> bool:
        try:
            await asyncio.wait_for(self._connected_event.wait(), timeout)
            return True
        except asyncio.TimeoutError:
            return False

    async def request_quality_report(self) -> None:
        """Ask the server for its view of this connection (answer is stored on arrival)."""
        if self._ws is not None:
            await self._ws.send(encode_event(ConnectionQualityRequest()))

    def cleanup(self) -> None:
        """Remove every subscription and stop the heartbeat. Safe to call repeatedly."""
        self._subscribers.clear()
        self._state_listeners.clear()
        self._cancel_heartbeat()

    async def close(self) -> None:
        """Tear the channel down for good. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        self.cleanup()

        if self._run_task is not None:
            self._run_task.cancel()
            try:
                await self._run_task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.debug(f"Channel task ended with {e!r}")
            self._run_task = None

        await self._close_ws()
        self._set_state(ChannelState.CLOSED)

    # =========================================================================
    # CONNECTION LOOP
    # =========================================================================

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        attempt = 0
        immediate_retry = True
        while not self._closed:
            self._set_state(
                ChannelState.CONNECTING if self._state is ChannelState.IDLE
                else ChannelState.RECONNECTING
            )
            try:
                ws = await asyncio.wait_for(self._connect(self.url), self.options.connect_timeout)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self._report(e)
                attempt += 1
                await self._backoff(attempt)
                continue

            started = loop.time()
            server_closed = await self._session(ws)
            if self._closed:
                break
            self.reconnects += 1

            # Only a session the server acknowledged and kept open counts as healthy
            if self.identified and loop.time() - started >= self.options.stable_session:
                attempt = 0
                immediate_retry = True

            # One immediate retry per healthy run; repeated closes back off
            if server_closed and self.identified and immediate_retry:
                immediate_retry = False
                logger.info(f"Server closed the channel to {self.url}, reconnecting")
                continue

            attempt += 1
            await self._backoff(attempt)

    async def _backoff(self, attempt: int) -> None:
        delay = backoff_delay(
            attempt,
            self.options.reconnect_base_delay,
            self.options.reconnect_max_delay,
        )
        logger.debug(f"Reconnect attempt {attempt} to {self.url} in {delay:.2f}s")
        await asyncio.sleep(delay)

    async def _session(self, ws: Connection) -> bool:
        """
        Serve one connection until it ends.

        Returns:
            True when the server closed the connection
        """
        self._ws = ws
        self._closing_locally = False
        self.identified = False
        self.latency.reset()
        try:
            await ws.send(encode_event(Identify(role=self.role, user_id=self.user_id)))
            self._set_state(ChannelState.CONNECTED)
            self._heartbeat_task = asyncio.get_running_loop().create_task(self._heartbeat(ws))

            while True:
                raw = await ws.recv()
                await self._dispatch(raw)

        except ConnectionClosed as e:
            return e.rcvd is not None and not self._closing_locally
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._report(e)
            return False
        finally:
            self._cancel_heartbeat()
            self._fail_pending_pongs()
            self._ws = None
            self._connected_event.clear()
            if not self._closed:
                self._set_state(ChannelState.RECONNECTING)
            await self._close_quietly(ws)

    async def _dispatch(self, raw: Union[str, bytes]) -> None:
        try:
            event = decode_event(raw)
        except EventDecodeError as e:
            logger.debug(f"Ignoring frame: {e}")
            return

        if isinstance(event, Pong):
            future = self._pending_pongs.get(event.seq)
            if future is not None and not future.done():
                future.set_result(event)
            return
        if isinstance(event, Identified):
            self.identified = event.success
            return
        if isinstance(event, ConnectionQualityReport):
            self.last_quality_report = event
            return

        for callback in list(self._subscribers.get(event.name, ())):
            try:
                result = callback(event.payload())
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Subscriber for {event.name.value} failed: {e}")
                if self._on_error:
                    self._on_error(e)

    # =========================================================================
    # HEARTBEAT
    # =========================================================================

    async def _heartbeat(self, ws: Connection) -> None:
        missed = 0
        loop = asyncio.get_running_loop()
        while True:
            await asyncio.sleep(self.options.heartbeat_interval)

            self._seq += 1
            seq = self._seq
            future = loop.create_future()
            self._pending_pongs[seq] = future
            sent = time.monotonic()
            try:
                await ws.send(encode_event(Ping(seq=seq, sent_at=time.time())))
                await asyncio.wait_for(future, self.options.heartbeat_timeout)
            except asyncio.TimeoutError:
                missed += 1
                logger.warning(
                    f"Heartbeat {seq} unanswered ({missed}/{self.options.max_missed_heartbeats})"
                )
                if missed >= self.options.max_missed_heartbeats:
                    logger.warning(f"Channel to {self.url} unresponsive, forcing reconnect")
                    self._closing_locally = True
                    await self._close_quietly(ws)
                    return
                continue
            except EXPECTED_ERRORS:
                return
            finally:
                self._pending_pongs.pop(seq, None)

            missed = 0
            self.latency.record((time.monotonic() - sent) * 1000)

    def _cancel_heartbeat(self) -> None:
        task, self._heartbeat_task = self._heartbeat_task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def _fail_pending_pongs(self) -> None:
        for future in self._pending_pongs.values():
            if not future.done():
                future.cancel()
        self._pending_pongs.clear()

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _set_state(self, state: ChannelState) -> None:
        if state is self._state:
            return
        self._state = state
        if state is ChannelState.CONNECTED:
            self._connected_event.set()
        for listener in list(self._state_listeners):
            try:
                listener(state)
            except Exception as e:
                logger.error(f"State listener failed: {e}")

    def _report(self, exc: BaseException) -> None:
        if isinstance(exc, EXPECTED_ERRORS):
            logger.debug(f"Live channel to {self.url} unavailable: {exc!r}")
            return
        logger.error(f"Live channel to {self.url} failed: {exc!r}")
        if self._on_error:
            self._on_error(exc)

    async def _close_quietly(self, ws: Connection) -> None:
        try:
            await ws.close()
        except Exception as e:
            logger.debug(f"Ignoring error while closing channel: {e!r}")

    async def _close_ws(self) -> None:
        ws, self._ws = self._ws, None
        if ws is not None:
            await self._close_quietly(ws)


# =============================================================================
# POOL
# =============================================================================

@dataclass
class ChannelPool:
    """
    Bounded set of live channels keyed by (url, role, user id).

    Asking twice for the same key returns the same channel while it has not
    been closed. The oldest channel is closed when the pool overflows.
    """
    max_size: int = 5
    options: ChannelOptions = field(default_factory=ChannelOptions)
    connect: Optional[Connector] = None
    serverless: bool = False
    on_error: Optional[ErrorHandler] = None
    _channels: "OrderedDict[tuple[str, Role, Optional[str]], RealtimeChannel]" = field(
        default_factory=OrderedDict, init=False, repr=False
    )

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "ChannelPool":
        return cls(
            max_size=settings.channel_pool_size,
            options=ChannelOptions.from_settings(settings),
            serverless=settings.serverless_mode,
            **kwargs,
        )

    def __len__(self) -> int:
        return len(self._channels)

    async def acquire(
        self,
        url: str,
        role: Union[str, Role],
        user_id: Optional[str] = None,
    ) -> Union[RealtimeChannel, NullChannel]:
        if self.serverless:
            return NullChannel()

        key = (url, Role(role), user_id or None)
        channel = self._channels.get(key)
        if channel is not None and not channel.closed:
            self._channels.move_to_end(key)
            return channel

        channel = RealtimeChannel(
            url,
            role,
            user_id,
            options=self.options,
            connect=self.connect,
            on_error=self.on_error,
        )
        self._channels[key] = channel
        channel.start()

        while len(self._channels) > self.max_size:
            _, oldest = self._channels.popitem(last=False)
            logger.debug(f"Evicting pooled channel to {oldest.url}")
            await oldest.close()

        return channel

    async def close_all(self) -> None:
        channels = list(self._channels.values())
        self._channels.clear()
        for channel in channels:
            await channel.close()
