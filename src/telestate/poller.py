from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable

import anyio
import anyio.lowlevel

from .api_models import Update
from .client import BotClient
from .errors import HandlerFailure, RemoteStatusError, TelestateError
from .handlers import UpdateHandler
from .logging import get_logger
from .requests import UpdatesRequest

logger = get_logger(__name__)

DEFAULT_POLL_TIMEOUT = 50
DEFAULT_ERROR_BACKOFF = 2.0


class Poller:
    """Long-poll getUpdates and feed each update to a handler chain.

    The cursor only moves forward and only after a fetch returns. It is
    committed for the whole batch before any handler runs, so an update whose
    handler fails is not fetched again.
    """

    def __init__(
        self,
        client: BotClient,
        handler: UpdateHandler,
        *,
        cursor: int = 0,
        limit: int = 0,
        timeout: int = DEFAULT_POLL_TIMEOUT,
        allowed_updates: Iterable[str] = (),
        handler_timeout: float | None = None,
        error_backoff: float = DEFAULT_ERROR_BACKOFF,
        sleep: Callable[[float], Awaitable[None]] = anyio.sleep,
    ) -> None:
        self._client = client
        self._handler = handler
        self._cursor = cursor
        self._limit = limit
        self._timeout = timeout
        self._allowed_updates = tuple(allowed_updates)
        self._handler_timeout = handler_timeout
        self._error_backoff = error_backoff
        self._sleep = sleep
        self._lock = anyio.Lock()

    @property
    def cursor(self) -> int:
        return self._cursor

    def _request(self, *, timeout: int) -> UpdatesRequest:
        return UpdatesRequest(
            offset=self._cursor,
            limit=self._limit,
            timeout=timeout,
            allowed_updates=self._allowed_updates,
        )

    async def _fetch(self, *, timeout: int) -> list[Update]:
        async with self._lock:
            # Cancellation while awaiting leaves the cursor untouched.
            updates = await self._client.fetch_updates(self._request(timeout=timeout))
            if updates:
                highest = max(update.update_id for update in updates)
                self._cursor = max(self._cursor, highest + 1)
            return updates

    async def fetch_once(self) -> list[Update]:
        updates = await self._fetch(timeout=self._timeout)
        logger.debug("poller.fetched", count=len(updates), cursor=self._cursor)
        return updates

    async def drain_backlog(self) -> int:
        """Skip every pending update without dispatching it."""
        drained = 0
        while True:
            updates = await self._fetch(timeout=0)
            if not updates:
                if drained:
                    logger.info("poller.backlog.drained", count=drained)
                return drained
            drained += len(updates)

    async def _dispatch_update(self, update: Update) -> None:
        with anyio.move_on_after(self._handler_timeout) as scope:
            await self._handler.dispatch(update)
        if scope.cancelled_caught:
            logger.warning(
                "poller.handler_timeout",
                update_id=update.update_id,
                timeout=self._handler_timeout,
            )

    async def dispatch_once(self) -> list[Update]:
        updates = await self.fetch_once()
        failures: list[HandlerFailure] = []
        for update in sorted(updates, key=lambda item: item.update_id):
            try:
                await self._dispatch_update(update)
            except HandlerFailure as exc:
                failures.append(exc)
        if failures:
            if len(failures) > 1:
                logger.error(
                    "poller.batch_failures",
                    count=len(failures),
                    update_ids=[failure.update_id for failure in failures],
                )
            raise failures[0]
        return updates

    async def run_forever(self) -> None:
        """Poll until the enclosing cancel scope is cancelled."""
        logger.info("poller.started", cursor=self._cursor)
        try:
            while True:
                await anyio.lowlevel.checkpoint()
                delay = await self._run_iteration()
                if delay > 0:
                    await self._sleep(delay)
        finally:
            logger.info("poller.stopped", cursor=self._cursor)

    async def _run_iteration(self) -> float:
        try:
            await self.dispatch_once()
        except HandlerFailure as exc:
            logger.error(
                "poller.dispatch.failed",
                update_id=exc.update_id,
                error=str(exc.cause),
            )
            return 0.0
        except RemoteStatusError as exc:
            logger.error(
                "poller.fetch.failed",
                cursor=self._cursor,
                error_code=exc.error_code,
                description=exc.description,
                retry_after=exc.retry_after,
            )
            if exc.retry_after is not None:
                return exc.retry_after
            return self._error_backoff
        except TelestateError as exc:
            logger.error(
                "poller.fetch.failed",
                cursor=self._cursor,
                error=str(exc),
                error_type=exc.__class__.__name__,
            )
            return self._error_backoff
        except Exception as exc:
            logger.exception(
                "poller.iteration.failed",
                cursor=self._cursor,
                error_type=exc.__class__.__name__,
            )
            return self._error_backoff
        return 0.0
