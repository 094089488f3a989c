import json
import time
import logging
import threading
from collections import deque
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Set

import websocket

logger = logging.getLogger(__name__)

EVENTS = (
    'query_created',
    'query_updated',
    'query_assigned',
    'response_received',
    'doctor_online',
    'doctor_offline',
    'system_stats_updated',
    'notification',
    'connection_status',
)

MAX_QUEUE_SIZE = 100
HEARTBEAT_INTERVAL = 30.0


@dataclass
class ConnectionStatus:
    connected: bool = False
    reconnecting: bool = False
    last_connected: Optional[datetime] = None
    connection_quality: str = 'disconnected'  # excellent | good | poor | disconnected
    latency: Optional[int] = None


def grade_latency(latency_ms: int) -> str:
    if latency_ms < 100:
        return 'excellent'
    if latency_ms < 300:
        return 'good'
    if latency_ms < 1000:
        return 'poor'
    return 'disconnected'


def _now_ms() -> int:
    return int(time.time() * 1000)


class RealtimeClient:
    """
    Push channel used to trigger UI refreshes.

    Reconnects with exponential backoff (``reconnect_interval * 2**(attempt-1)``,
    at most ``max_reconnect_attempts`` times), pings every ``heartbeat_interval``
    seconds, and queues outgoing messages while disconnected.
    """

    def __init__(self, url: str = 'ws://localhost:8080/ws',
                 connect_factory: Callable[..., Any] = websocket.create_connection,
                 max_reconnect_attempts: int = 5, reconnect_interval: float = 1.0,
                 heartbeat_interval: float = HEARTBEAT_INTERVAL, connect_timeout: float = 10.0,
                 background: bool = True, sleep: Optional[Callable[[float], Any]] = None):
        self.url = url
        self.connect_factory = connect_factory
        self.max_reconnect_attempts = max_reconnect_attempts
        self.reconnect_interval = reconnect_interval
        self.heartbeat_interval = heartbeat_interval
        self.connect_timeout = connect_timeout
        self.background = background

        self.ws = None
        self.reconnect_attempts = 0
        self.current_user: Optional[Dict[str, str]] = None
        self.status = ConnectionStatus()
        self.message_queue: deque = deque(maxlen=MAX_QUEUE_SIZE)
        self.listeners: Dict[str, Set[Callable]] = {event: set() for event in EVENTS}

        self._lock = threading.RLock()
        self._closing = threading.Event()
        self._threads = []
        # Backoff waits end early on disconnect()
        self.sleep = sleep or self._closing.wait

    # Connection lifecycle

    def connect(self, user_id: str, user_type: str) -> None:
        """Open the socket for a patient or doctor; raises on the first failed attempt."""
        with self._lock:
            self.current_user = {'id': user_id, 'type': user_type}
            if self.ws is not None:
                self._close_socket()
            self._closing.clear()

            self.ws = self.connect_factory(
                f"{self.url}?userId={user_id}&userType={user_type}",
                timeout=self.connect_timeout,
            )
            logger.info(f"WebSocket connected for {user_type} {user_id}")
            self.reconnect_attempts = 0
            self.status = replace(self.status, connected=True, reconnecting=False,
                                  last_connected=datetime.now(), connection_quality='good')

        self._process_message_queue()
        self._emit('connection_status', self.get_connection_status())
        if self.background:
            self._start_threads()

    def disconnect(self) -> None:
        self._closing.set()
        with self._lock:
            self._close_socket()
            self.status = replace(self.status, connected=False, reconnecting=False,
                                  connection_quality='disconnected')
        self._emit('connection_status', self.get_connection_status())

    def _close_socket(self) -> None:
        if self.ws is None:
            return
        try:
            self.ws.close()
        except Exception as e:
            logger.debug(f"Error closing WebSocket: {e}")
        self.ws = None

    def is_connected(self) -> bool:
        return self.status.connected and self.ws is not None

    def get_connection_status(self) -> ConnectionStatus:
        return replace(self.status)

    def handle_connection_lost(self) -> bool:
        """
        Reconnect after an unexpected close.

        Returns:
            bool: True if a connection was re-established
        """
        with self._lock:
            self.status = replace(self.status, connected=False)
            self._close_socket()

        while not self._closing.is_set() and self.current_user is not None:
            if self.reconnect_attempts >= self.max_reconnect_attempts:
                logger.error("Max reconnection attempts reached")
                self.status = replace(self.status, reconnecting=False, connection_quality='disconnected')
                self._emit('connection_status', self.get_connection_status())
                return False

            self.reconnect_attempts += 1
            self.status = replace(self.status, reconnecting=True)
            self._emit('connection_status', self.get_connection_status())

            delay = self.reconnect_interval * (2 ** (self.reconnect_attempts - 1))
            logger.info(f"Attempting to reconnect in {delay}s... "
                        f"({self.reconnect_attempts}/{self.max_reconnect_attempts})")
            self.sleep(delay)
            if self._closing.is_set():
                logger.info("Reconnect cancelled by disconnect")
                self.status = replace(self.status, reconnecting=False, connection_quality='disconnected')
                return False

            attempts = self.reconnect_attempts
            try:
                self.connect(self.current_user['id'], self.current_user['type'])
                return True
            except Exception as e:
                logger.error(f"Reconnection failed: {e}")
                self.reconnect_attempts = attempts
        return False

    # Listeners

    def on(self, event: str, callback: Callable) -> Callable[[], None]:
        """Subscribe to an event; returns an unsubscribe function."""
        self.listeners.setdefault(event, set()).add(callback)
        return lambda: self.off(event, callback)

    def off(self, event: str, callback: Callable) -> None:
        self.listeners.get(event, set()).discard(callback)

    def _emit(self, event: str, data: Any, message: Optional[Dict[str, Any]] = None) -> None:
        for callback in list(self.listeners.get(event, ())):
            try:
                callback(data, message)
            except Exception:
                logger.exception(f"Error in WebSocket event callback for {event}")

    # Messages

    def send(self, event: str, data: Any) -> bool:
        message = {
            'event': event,
            'data': data,
            'timestamp': _now_ms(),
            'userId': self.current_user['id'] if self.current_user else None,
            'userType': self.current_user['type'] if self.current_user else None,
        }
        with self._lock:
            if self.is_connected():
                try:
                    self.ws.send(json.dumps(message))
                    return True
                except Exception as e:
                    logger.error(f"Error sending WebSocket message: {e}")
            self.message_queue.append(message)
            return False

    def subscribe_to_query(self, query_id: str) -> bool:
        return self.send('query_subscribe', {'queryId': query_id})

    def unsubscribe_from_query(self, query_id: str) -> bool:
        return self.send('query_unsubscribe', {'queryId': query_id})

    def subscribe_to_system_stats(self) -> bool:
        return self.send('system_stats_subscribe', {})

    def set_user_status(self, status: str) -> bool:
        return self.send('user_status', {'status': status})

    def _process_message_queue(self) -> None:
        with self._lock:
            while self.message_queue and self.is_connected():
                message = self.message_queue.popleft()
                try:
                    self.ws.send(json.dumps(message))
                except Exception as e:
                    logger.error(f"Error processing queued message: {e}")
                    self.message_queue.appendleft(message)
                    break

    def handle_message(self, raw: str) -> None:
        try:
            message = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.error(f"Error parsing WebSocket message: {e}")
            return
        if not isinstance(message, dict):
            logger.error(f"Ignoring WebSocket message that is not an object: {raw!r}")
            return

        if message.get('timestamp'):
            try:
                latency = _now_ms() - int(message['timestamp'])
            except (TypeError, ValueError):
                logger.warning(f"Ignoring non-numeric message timestamp: {message['timestamp']!r}")
            else:
                self.status = replace(self.status, latency=latency, connection_quality=grade_latency(latency))

        event = message.get('event')
        if isinstance(event, str) and event:
            self._emit(event, message.get('data'), message)

    # Background threads

    def _start_threads(self) -> None:
        ws = self.ws
        self._threads = [
            threading.Thread(target=self._receive_loop, args=(ws,), name='realtime-recv', daemon=True),
            threading.Thread(target=self._heartbeat_loop, args=(ws,), name='realtime-heartbeat', daemon=True),
        ]
        for thread in self._threads:
            thread.start()

    def _receive_loop(self, ws) -> None:
        while not self._closing.is_set() and ws is self.ws and ws is not None:
            try:
                raw = ws.recv()
            except Exception as e:
                # a socket already replaced or closed on purpose needs no reconnect
                if self._closing.is_set() or ws is not self.ws:
                    return
                logger.warning(f"WebSocket disconnected: {e}")
                self.handle_connection_lost()
                return
            if raw:
                self.handle_message(raw)

    def _heartbeat_loop(self, ws) -> None:
        while not self._closing.wait(self.heartbeat_interval):
            if ws is not self.ws or not self.is_connected():
                return
            self.send('ping', {'timestamp': _now_ms()})
