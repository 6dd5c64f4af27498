from __future__ import annotations

import re
from typing import Any, Protocol

import httpx
import msgspec

from .api_models import Message, ResponseEnvelope, Update, User
from .errors import MalformedResponse, RemoteStatusError, TransportFailure
from .logging import get_logger
from .requests import (
    AnswerCallbackQueryRequest,
    MessageRequest,
    Request,
    UpdatesRequest,
)

logger = get_logger(__name__)

DEFAULT_API_URL = "https://api.telegram.org"

_RETRY_AFTER_RE = re.compile(r"retry after (\d+)", re.IGNORECASE)


class BotClient(Protocol):
    async def fetch_updates(self, request: UpdatesRequest) -> list[Update]: ...

    async def send_request(self, request: Request) -> Any: ...

    async def close(self) -> None: ...


def _retry_after_from_envelope(envelope: ResponseEnvelope) -> float | None:
    params = envelope.parameters
    if params is not None and params.retry_after is not None:
        return float(params.retry_after)
    if envelope.description:
        match = _RETRY_AFTER_RE.search(envelope.description)
        if match:
            return float(match.group(1))
    return None


def decode_message(method: str, result: Any) -> Message:
    try:
        return msgspec.convert(result, type=Message)
    except msgspec.ValidationError as e:
        raise MalformedResponse(method, str(e)) from e


class TelegramClient:
    def __init__(
        self,
        token: str,
        *,
        api_url: str = DEFAULT_API_URL,
        timeout_s: float = 120,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not token:
            raise ValueError("Telegram token is empty")
        self._base = f"{api_url.rstrip('/')}/bot{token}"
        self._client = client or httpx.AsyncClient(timeout=timeout_s)
        self._owns_client = client is None

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _post(self, method: str, json_data: dict[str, Any]) -> Any:
        logger.debug("telegram.request", method=method, payload=json_data)
        try:
            resp = await self._client.post(f"{self._base}/{method}", json=json_data)
        except httpx.HTTPError as e:
            logger.error(
                "telegram.network_error",
                method=method,
                error=str(e),
                error_type=e.__class__.__name__,
            )
            raise TransportFailure(method, str(e)) from e

        try:
            envelope = msgspec.json.decode(resp.content, type=ResponseEnvelope)
        except msgspec.DecodeError as e:
            if resp.is_error:
                logger.error(
                    "telegram.http_error",
                    method=method,
                    status=resp.status_code,
                    body=resp.text,
                )
                raise TransportFailure(
                    method, f"HTTP {resp.status_code}: {resp.text}"
                ) from e
            logger.error(
                "telegram.bad_response",
                method=method,
                status=resp.status_code,
                error=str(e),
                body=resp.text,
            )
            raise MalformedResponse(method, str(e)) from e

        if not envelope.ok:
            retry_after = _retry_after_from_envelope(envelope)
            logger.error(
                "telegram.api_error",
                method=method,
                status=resp.status_code,
                error_code=envelope.error_code,
                description=envelope.description,
                retry_after=retry_after,
            )
            raise RemoteStatusError(
                envelope.error_code or resp.status_code,
                envelope.description or "",
                retry_after=retry_after,
            )

        logger.debug("telegram.response", method=method, result=envelope.result)
        return envelope.result

    async def send_request(self, request: Request) -> Any:
        return await self._post(request.method, request.params())

    async def fetch_updates(self, request: UpdatesRequest) -> list[Update]:
        result = await self.send_request(request)
        try:
            return msgspec.convert(result, type=list[Update])
        except msgspec.ValidationError as e:
            logger.error("telegram.invalid_updates", error=str(e))
            raise MalformedResponse(request.method, str(e)) from e

    async def send_message(self, request: MessageRequest) -> Message:
        return decode_message(request.method, await self.send_request(request))

    async def answer_callback_query(
        self, callback_query_id: str, text: str | None = None
    ) -> bool:
        result = await self.send_request(
            AnswerCallbackQueryRequest(callback_query_id=callback_query_id, text=text)
        )
        return bool(result)

    async def get_me(self) -> User:
        result = await self._post("getMe", {})
        try:
            return msgspec.convert(result, type=User)
        except msgspec.ValidationError as e:
            raise MalformedResponse("getMe", str(e)) from e
