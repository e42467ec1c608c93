#!/usr/bin/env python3
# wsrobot_daemon/ws_interface.py
# WebSocket transport for the WPILib simulation protocol

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

import websockets
import websockets.exceptions

from wsrobot_daemon.messages import (
    CHANNEL_TYPES,
    DEVICE_TYPES,
    MessageType,
    decode_message,
    device_ident,
    encode_message,
    parse_channel,
    parse_device_ident,
)
from wsrobot_daemon.resilience import Backoff

logger = logging.getLogger(__name__)

DEFAULT_PORT = 3300
DEFAULT_URI = "/wpilibws"

# Close codes
CLOSE_POLICY_VIOLATION = 1008
CLOSE_TRY_AGAIN_LATER = 1013


class WSInterface(ABC):
    """
    Transport base shared by the listening and connecting roles.

    Inbound frames are decoded and routed through an explicit dispatch
    table keyed by MessageType:
    - channel types:  handler(channel: int, payload)
    - device types:   handler(name: str, channel: Optional[int], payload)
    - DriverStation:  handler(payload)

    Frames are not read from a connection until attach() has been called.

    Outbound update functions are synchronous: frames are queued and sent
    by a per-connection task. With no peer connected they are dropped.
    """

    def __init__(self):
        self._handlers: Dict[MessageType, Callable] = {}
        self._on_open: Optional[Callable[[], None]] = None
        self._on_close: Optional[Callable[[], None]] = None

        self._attached = asyncio.Event()
        self._ready = asyncio.Event()
        self._outbox: Optional[asyncio.Queue] = None
        self._task: Optional[asyncio.Task] = None

        self.connected = False

        self.stats = {
            'frames_received': 0,
            'frames_dropped': 0,
            'frames_sent': 0,
            'connections': 0,
        }

    # ================================
    # Handler wiring
    # ================================

    def attach(self, handlers: Dict[MessageType, Callable], on_open=None, on_close=None):
        self._handlers = dict(handlers)
        self._on_open = on_open
        self._on_close = on_close
        self._attached.set()

    def detach(self):
        self._attached.clear()
        self._handlers = {}
        self._on_open = None
        self._on_close = None

    # ================================
    # Service control
    # ================================

    @abstractmethod
    def start(self):
        """Schedule the transport task on the running loop"""

    async def wait_ready(self):
        """Return once the transport is ready; re-raise if it failed to start"""
        if self._task is None:
            await self._ready.wait()
            return

        ready_waiter = asyncio.ensure_future(self._ready.wait())
        done, _ = await asyncio.wait(
            {ready_waiter, self._task}, return_when=asyncio.FIRST_COMPLETED
        )

        if ready_waiter not in done:
            ready_waiter.cancel()
            # Surfaces the startup exception, if any
            self._task.result()
            raise RuntimeError("Transport stopped before becoming ready")

    async def stop(self):
        if self._task is None:
            return

        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        self._ready.clear()

    # ================================
    # Outbound updates
    # ================================

    def dio_update(self, channel: int, payload: Dict[str, Any]):
        self._send(MessageType.DIO, str(channel), payload)

    def analog_in_update(self, channel: int, payload: Dict[str, Any]):
        self._send(MessageType.ANALOG_IN, str(channel), payload)

    def encoder_update(self, channel: int, payload: Dict[str, Any]):
        self._send(MessageType.ENCODER, str(channel), payload)

    def roborio_update(self, payload: Dict[str, Any]):
        self._send(MessageType.ROBORIO, "", payload)

    def sim_device_update(self, name: str, channel: Optional[int], payload: Dict[str, Any]):
        self._send(MessageType.SIM_DEVICE, device_ident(name, channel), payload)

    def accel_update(self, name: str, channel: Optional[int], payload: Dict[str, Any]):
        self._send(MessageType.ACCEL, device_ident(name, channel), payload)

    def gyro_update(self, name: str, channel: Optional[int], payload: Dict[str, Any]):
        self._send(MessageType.GYRO, device_ident(name, channel), payload)

    def _send(self, msg_type: MessageType, device: str, payload: Dict[str, Any]):
        if not self.connected or self._outbox is None:
            return
        self._outbox.put_nowait(encode_message(msg_type, device, payload))

    # ================================
    # Inbound dispatch
    # ================================

    def _dispatch(self, raw):
        self.stats['frames_received'] += 1

        msg = decode_message(raw)
        if msg is None:
            self.stats['frames_dropped'] += 1
            return

        handler = self._handlers.get(msg.type)
        if handler is None:
            return

        if msg.type in CHANNEL_TYPES:
            channel = parse_channel(msg.device)
            if channel is None:
                self.stats['frames_dropped'] += 1
                logger.debug(f"Dropping {msg.type.value} frame with bad channel {msg.device!r}")
                return
            handler(channel, msg.data)
        elif msg.type in DEVICE_TYPES:
            name, channel = parse_device_ident(msg.device)
            handler(name, channel, msg.data)
        else:
            handler(msg.data)

    # ================================
    # Connection session
    # ================================

    async def _session(self, websocket):
        """Run one connection until it closes"""
        await self._attached.wait()

        self._outbox = asyncio.Queue()
        self.connected = True
        self.stats['connections'] += 1
        sender = asyncio.create_task(self._sender(websocket, self._outbox))

        try:
            if self._on_open:
                self._on_open()

            async for raw in websocket:
                self._dispatch(raw)

        except websockets.exceptions.ConnectionClosed:
            pass
        finally:
            self.connected = False
            self._outbox = None
            sender.cancel()
            if self._on_close:
                self._on_close()

    async def _sender(self, websocket, outbox: asyncio.Queue):
        try:
            while True:
                frame = await outbox.get()
                await websocket.send(frame)
                self.stats['frames_sent'] += 1
        except websockets.exceptions.ConnectionClosed:
            pass


def _request_path(websocket, path=None) -> str:
    if path is None:
        request = getattr(websocket, "request", None)
        path = request.path if request is not None else getattr(websocket, "path", "/")
    return path.split("?", 1)[0]


def _normalize_path(path: str) -> str:
    return (path or "/").rstrip("/") or "/"


class WSServerInterface(WSInterface):
    """Listening role: accepts a single robot-code session at ws://host:port/uri"""

    def __init__(self, host: str = "localhost", port: int = DEFAULT_PORT, uri: str = DEFAULT_URI):
        super().__init__()
        self.host = host
        self.port = port
        self.uri = uri

        self._server = None
        self._active = None

    def start(self):
        self._task = asyncio.create_task(self._run())

    async def _run(self):
        self._server = await websockets.serve(self._handler, self.host, self.port)
        if not self.port:
            self.port = self._server.sockets[0].getsockname()[1]
        logger.info(f"✅ WebSocket server listening on ws://{self.host}:{self.port}{self.uri}")
        self._ready.set()
        await self._server.wait_closed()

    async def _handler(self, websocket, path=None):
        peer = getattr(websocket, "remote_address", "unknown")
        request_path = _request_path(websocket, path)

        if _normalize_path(request_path) != _normalize_path(self.uri):
            logger.warning(f"Rejected peer {peer}: invalid path {request_path}")
            await websocket.close(code=CLOSE_POLICY_VIOLATION, reason="Invalid path")
            return

        if self._active is not None:
            logger.warning(f"Rejected peer {peer}: session already active")
            await websocket.close(code=CLOSE_TRY_AGAIN_LATER, reason="Session already active")
            return

        self._active = websocket
        logger.info(f"🔌 Peer connected: {peer}")
        try:
            await self._session(websocket)
        finally:
            self._active = None
            logger.info(f"🔌 Peer disconnected: {peer}")

    async def stop(self):
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
        await super().stop()
        logger.info("🛑 WebSocket server stopped")


class WSClientInterface(WSInterface):
    """Connecting role: keeps a session to ws://host:port/uri, reconnecting with backoff"""

    def __init__(
        self,
        host: str = "localhost",
        port: int = DEFAULT_PORT,
        uri: str = DEFAULT_URI,
        backoff: Optional[Backoff] = None,
        open_timeout: float = 4,
    ):
        super().__init__()
        self.url = f"ws://{host}:{port}{uri}"
        self.open_timeout = open_timeout
        self._backoff = backoff or Backoff()

    def start(self):
        self._task = asyncio.create_task(self._run())

    async def _run(self):
        self._ready.set()

        while True:
            try:
                logger.info(f"🔌 Connecting to {self.url}...")
                async with websockets.connect(self.url, open_timeout=self.open_timeout) as websocket:
                    logger.info(f"✅ Connected to {self.url}")
                    self._backoff.reset()
                    await self._session(websocket)
                logger.info(f"🔌 Disconnected from {self.url}")
                await self._backoff.wait(self.url)

            except (OSError, asyncio.TimeoutError,
                    websockets.exceptions.InvalidHandshake,
                    websockets.exceptions.ConnectionClosed) as e:
                await self._backoff.wait(self.url, e)

    async def stop(self):
        await super().stop()
        logger.info("🛑 WebSocket client stopped")
