"""
Contract event subscriptions.

One ``EventPoller`` per contract polls ``eth_getLogs`` and fans decoded
events out to its subscriptions. Each subscription owns a queue and a
consumer task, so a slow handler never holds up another subscription.
Events reach a handler in the order the node returned them.

Once ``unsubscribe()`` returns, the handler is not invoked again: events
still queued for it are dropped.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from ..chain import abi as abi_codec
from ..chain.rpc import get_block_number, get_logs
from ..chain.wallet import WalletProvider
from ..constants import EVENT_POLL_INTERVAL
from ..utils import hex_to_int

logger = logging.getLogger(__name__)

Handler = Callable[["ContractEvent"], Any]


@dataclass(frozen=True)
class ContractEvent:
    contract: str
    event: str
    args: dict[str, Any]
    block_number: int
    tx_hash: Optional[str]
    log_index: int


class EventSubscription:
    """A handler registered for one event. Calling it unsubscribes."""

    def __init__(
        self,
        contract: str,
        event: str,
        handler: Handler,
        on_close: Callable[["EventSubscription"], None],
    ) -> None:
        self.contract = contract
        self.event = event
        self.handler = handler
        self._on_close = on_close
        self._queue: asyncio.Queue[ContractEvent] = asyncio.Queue()
        self._active = True
        self._task = asyncio.get_running_loop().create_task(self._consume())

    @property
    def active(self) -> bool:
        return self._active

    def deliver(self, event: ContractEvent) -> None:
        if self._active:
            self._queue.put_nowait(event)

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        self._task.cancel()
        self._on_close(self)

    __call__ = unsubscribe

    async def drain(self) -> None:
        """Wait until every queued event has been handled."""
        if self._active:
            await self._queue.join()

    async def _consume(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                if not self._active:
                    continue
                result = self.handler(event)
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Handler for %s.%s raised", self.contract, self.event)
            finally:
                self._queue.task_done()


class EventPoller:
    """Polls one contract's logs and dispatches them to subscriptions."""

    def __init__(
        self,
        provider: WalletProvider,
        contract: str,
        address: str,
        abi: list,
        poll_interval: float = EVENT_POLL_INTERVAL,
    ) -> None:
        self.provider = provider
        self.contract = contract
        self.address = address
        self.abi = abi
        self.poll_interval = poll_interval
        self._subscriptions: list[EventSubscription] = []
        self._events_by_topic: dict[str, dict[str, Any]] = {}
        self._next_block: Optional[int] = None
        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None

    @property
    def subscriptions(self) -> list[EventSubscription]:
        return list(self._subscriptions)

    async def subscribe(self, event_name: str, handler: Handler) -> EventSubscription:
        """
        Register ``handler`` for ``event_name``. Only events mined after this
        call are delivered.

        Raises:
            ValueError: The ABI has no such event
        """
        event = abi_codec.event_abi(self.abi, event_name)
        self._events_by_topic[abi_codec.event_topic(event).lower()] = event

        if self._next_block is None:
            self._next_block = await get_block_number(self.provider) + 1

        subscription = EventSubscription(self.contract, event_name, handler, self._remove)
        self._subscriptions.append(subscription)
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._run())
        return subscription

    async def poll_once(self) -> int:
        """Fetch new logs and dispatch them. Returns the number of logs seen."""
        async with self._lock:
            if self._next_block is None:
                return 0
            latest = await get_block_number(self.provider)
            if latest < self._next_block:
                return 0

            logs = await get_logs(self.provider, self.address, self._next_block, latest)
            self._next_block = latest + 1

            for log in logs:
                self._dispatch(log)
            return len(logs)

    def _dispatch(self, log: dict[str, Any]) -> None:
        topics = log.get("topics") or []
        if not topics:
            return
        event = self._events_by_topic.get(topics[0].lower())
        if event is None:
            return

        try:
            args = abi_codec.decode_event_log(event, log)
        except Exception as exc:
            logger.warning(
                "Skipping undecodable %s log in tx %s: %s",
                event["name"],
                log.get("transactionHash"),
                exc,
            )
            return

        decoded = ContractEvent(
            contract=self.contract,
            event=event["name"],
            args=args,
            block_number=hex_to_int(log.get("blockNumber")),
            tx_hash=log.get("transactionHash"),
            log_index=hex_to_int(log.get("logIndex")),
        )
        for subscription in list(self._subscriptions):
            if subscription.event == decoded.event:
                subscription.deliver(decoded)

    async def _run(self) -> None:
        while True:
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.warning("Polling events for %s failed: %s", self.contract, exc)
            await asyncio.sleep(self.poll_interval)

    def _remove(self, subscription: EventSubscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
        if not self._subscriptions:
            self.close()

    def close(self) -> None:
        for subscription in list(self._subscriptions):
            subscription.unsubscribe()
        if self._task is not None:
            self._task.cancel()
            self._task = None
        self._next_block = None
