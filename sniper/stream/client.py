"""
Event Stream Client
===================

Persistent ``transactionSubscribe`` websocket subscription (Helius enhanced
websockets) filtered by an account list.

- Connection attempts time out after ``connect_timeout`` seconds
- A ping is sent every ``ping_interval`` seconds while connected
  (a missing pong is not enforced; only transport close/error reconnects)
- Reconnects with exponential backoff; once ``RetryPolicy.max_attempts``
  consecutive attempts fail, ``on_fatal(ReconnectExhaustedError)`` fires
  and the client stops

Usage:
    client = EventStreamClient(
        name="launch",
        ws_url=config.env.ws_url,
        account_include=[PROGRAM_IDS['PUMP_FUN']],
        on_event=monitor.process_event,
        on_fatal=listener.on_fatal_error,
    )
    await client.start()
"""

import asyncio
import json
import logging
from typing import Any, Callable, Dict, List, Optional

import aiohttp

from ..core.helpers import mask_api_key
from ..core.policies import RetryPolicy
from ..errors import ReconnectExhaustedError, StreamConnectError
from ..models import StreamEvent

logger = logging.getLogger(__name__)


class EventStreamClient:

    def __init__(
        self,
        name: str,
        ws_url: Optional[str],
        account_include: List[str],
        on_event: Callable[[StreamEvent], None],
        on_fatal: Callable[[Exception], None],
        commitment: str = 'processed',
        request_id: int = 1,
        ping_interval: float = 30.0,
        connect_timeout: float = 30.0,
        reconnect_policy: Optional[RetryPolicy] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.name = name
        self.ws_url = ws_url
        self.account_include = list(account_include)
        self.commitment = commitment
        self.request_id = request_id
        self.ping_interval = ping_interval
        self.connect_timeout = connect_timeout
        self.reconnect_policy = reconnect_policy or RetryPolicy(max_attempts=10, base_delay=5.0)
        self.logger = logger or logging.getLogger(__name__)

        self._on_event = on_event
        self._on_fatal = on_fatal

        self._session: Optional[aiohttp.ClientSession] = None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._ping_task: Optional[asyncio.Task] = None
        self._run_task: Optional[asyncio.Task] = None
        self._running = False

        self.is_connected = False
        self.subscription_id: Optional[int] = None
        self.reconnect_attempts = 0

        self.stats = {
            'messages_received': 0,
            'events_forwarded': 0,
            'parse_errors': 0,
            'handler_errors': 0,
            'reconnections': 0,
        }

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    async def start(self):
        """Spawn the connect/consume/reconnect loop."""
        if self._running:
            self.logger.warning(f"[{self.name}] stream already running")
            return
        self._running = True
        self._run_task = asyncio.create_task(self.run(), name=f"stream-{self.name}")

    async def stop(self):
        self.logger.info(f"[{self.name}] stopping stream")
        self._running = False

        await self._close_socket()

        task, self._run_task = self._run_task, None
        if task and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def run(self):
        """
        Connect, consume until the socket closes, back off, repeat.

        Attempts reset after every successful connect.
        """
        self._running = True
        policy = self.reconnect_policy

        while self._running:
            try:
                await self.connect()
                await self._consume()
            except StreamConnectError as e:
                self.logger.error(f"[{self.name}] connect failed: {e}")
            except Exception as e:
                self.logger.exception(f"[{self.name}] stream loop error: {e}")
                await self._close_socket()

            if not self._running:
                break

            self.reconnect_attempts += 1
            if self.reconnect_attempts > policy.max_attempts:
                error = ReconnectExhaustedError(self.name, policy.max_attempts)
                self.logger.error(f"[{self.name}] max reconnection attempts reached, stopping stream")
                self._running = False
                self._on_fatal(error)
                return

            delay = policy.delay_for(self.reconnect_attempts)
            self.stats['reconnections'] += 1
            self.logger.info(
                f"[{self.name}] reconnecting in {delay:.1f}s "
                f"(attempt {self.reconnect_attempts}/{policy.max_attempts})"
            )
            await asyncio.sleep(delay)

    async def connect(self):
        """
        One connection attempt: open within ``connect_timeout`` and subscribe.

        Raises:
            StreamConnectError: URL missing, timeout, or transport failure
        """
        if not self.ws_url:
            raise StreamConnectError('WebSocket URL not configured')

        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()

        self.logger.info(f"[{self.name}] connecting to {mask_api_key(self.ws_url)}")

        try:
            self._ws = await asyncio.wait_for(
                self._session.ws_connect(self.ws_url, autoping=True),
                timeout=self.connect_timeout,
            )
        except asyncio.TimeoutError as e:
            raise StreamConnectError('WebSocket connection timeout') from e
        except (aiohttp.ClientError, OSError) as e:
            raise StreamConnectError(f'WebSocket connection failed: {e}') from e

        self.logger.info(f"[{self.name}] websocket connected")

        try:
            await self._ws.send_json(self.build_subscribe_request())
        except (aiohttp.ClientError, OSError, RuntimeError) as e:
            await self._close_socket()
            raise StreamConnectError(f'Subscribe failed: {e}') from e

        self.is_connected = True
        self.reconnect_attempts = 0
        self.logger.info(f"[{self.name}] subscribing to {len(self.account_include)} account(s)")

        self._ping_task = asyncio.create_task(self._ping_loop(self._ws))

    # ------------------------------------------------------------------
    # subscription
    # ------------------------------------------------------------------

    def build_subscribe_request(self) -> Dict[str, Any]:
        return {
            'jsonrpc': '2.0',
            'id': self.request_id,
            'method': 'transactionSubscribe',
            'params': [
                {
                    'failed': False,
                    'vote': False,
                    'accountInclude': list(self.account_include),
                },
                {
                    'commitment': self.commitment,
                    'encoding': 'jsonParsed',
                    'transactionDetails': 'full',
                    'maxSupportedTransactionVersion': 0,
                },
            ],
        }

    async def resubscribe(self, account_include: List[str]):
        """Swap the account filter; applied in place when connected."""
        self.account_include = list(account_include)

        if not self.is_connected or self._ws is None or self._ws.closed:
            return

        if self.subscription_id is not None:
            await self._ws.send_json({
                'jsonrpc': '2.0',
                'id': self.request_id + 100,
                'method': 'transactionUnsubscribe',
                'params': [self.subscription_id],
            })
            self.subscription_id = None

        await self._ws.send_json(self.build_subscribe_request())
        self.logger.info(f"[{self.name}] resubscribed to {len(self.account_include)} account(s)")

    # ------------------------------------------------------------------
    # messages
    # ------------------------------------------------------------------

    def handle_message(self, raw: Any):
        """Parse one websocket text frame and forward transaction notifications."""
        self.stats['messages_received'] += 1

        try:
            message = json.loads(raw)
        except (TypeError, ValueError) as e:
            self.stats['parse_errors'] += 1
            self.logger.error(f"[{self.name}] failed to parse message: {e}")
            return

        if not isinstance(message, dict):
            return

        if message.get('id') == self.request_id:
            if 'result' in message:
                self.subscription_id = message['result']
                self.logger.info(f"[{self.name}] subscription confirmed: {self.subscription_id}")
            elif 'error' in message:
                self.logger.error(f"[{self.name}] subscription rejected: {message['error']}")
            return

        if message.get('method') != 'transactionNotification':
            return

        try:
            result = (message.get('params') or {}).get('result')
            if not result:
                return
            event = StreamEvent.from_notification(result)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            self.stats['parse_errors'] += 1
            self.logger.error(f"[{self.name}] malformed transaction notification: {e}")
            return
        if not event.signature:
            return

        try:
            self._on_event(event)
            self.stats['events_forwarded'] += 1
        except Exception as e:
            # one bad transaction must not kill the stream
            self.stats['handler_errors'] += 1
            self.logger.error(f"[{self.name}] error processing {event.signature[:16]}...: {e}")

    async def _consume(self):
        ws = self._ws
        if ws is None:
            return

        try:
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self.handle_message(msg.data)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    self.logger.error(f"[{self.name}] websocket error: {ws.exception()}")
                    break
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.error(f"[{self.name}] websocket error: {e}")
        finally:
            code = ws.close_code
            await self._close_socket()
            if self._running:
                self.logger.warning(f"[{self.name}] websocket closed: {code}")

    async def _ping_loop(self, ws: aiohttp.ClientWebSocketResponse):
        while not ws.closed:
            await asyncio.sleep(self.ping_interval)
            if ws.closed:
                return
            try:
                await ws.ping()
            except (ConnectionResetError, RuntimeError) as e:
                self.logger.debug(f"[{self.name}] ping failed: {e}")
                return

    async def _close_socket(self):
        self.is_connected = False
        self.subscription_id = None

        ping, self._ping_task = self._ping_task, None
        if ping is not None:
            ping.cancel()
            try:
                await ping
            except asyncio.CancelledError:
                pass

        ws, self._ws = self._ws, None
        if ws is not None and not ws.closed:
            await ws.close()
