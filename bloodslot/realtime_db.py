from __future__ import annotations

import logging
from typing import Any

import httpx
from tenacity import RetryCallState, retry, retry_if_exception, stop_after_attempt, wait_exponential

from bloodslot.domain import PersistenceError, StoreError
from bloodslot.store import children_as_records, generate_push_id, split_path

logger = logging.getLogger(__name__)


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return False


def _short_exc(retry_state: RetryCallState) -> str | None:
    if retry_state.outcome is None or not retry_state.outcome.failed:
        return None
    exc = retry_state.outcome.exception()
    if exc is None:
        return None
    msg = str(exc).strip()
    return f"{type(exc).__name__}: {msg}" if msg else type(exc).__name__


def _log_after_attempt(retry_state: RetryCallState) -> None:
    if retry_state.outcome is not None and retry_state.outcome.failed:
        reason = _short_exc(retry_state)
        logger.warning("Store request attempt %s failed (%s)", retry_state.attempt_number, reason or "unknown")


def _log_before_sleep(retry_state: RetryCallState) -> None:
    sleep_seconds = getattr(retry_state.next_action, "sleep", None)
    if sleep_seconds is None:
        logger.info("Retrying store request (attempt %s)", retry_state.attempt_number + 1)
        return
    logger.info("Retrying store request in %.0f s (attempt %s)", sleep_seconds, retry_state.attempt_number + 1)


class RealtimeDatabaseStore:
    """Firebase Realtime Database over its REST API.

    Appends are PUTs to a client-generated push id, so retrying one cannot
    create a duplicate record.
    """

    def __init__(
        self,
        database_url: str,
        *,
        auth_token: str | None = None,
        user_id: str | None = None,
        retry_attempts: int = 2,
        timeout_seconds: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.database_url = database_url.rstrip("/")
        self.auth_token = auth_token
        self.user_id = user_id
        self.retry_attempts = retry_attempts
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    def _url(self, path: str) -> str:
        return f"{self.database_url}/{'/'.join(split_path(path))}.json"

    def _params(self) -> dict[str, str]:
        return {"auth": self.auth_token} if self.auth_token else {}

    async def _request(self, method: str, path: str, payload: dict[str, Any] | None = None) -> Any:
        async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
            r = await client.request(method, self._url(path), params=self._params(), json=payload)
            r.raise_for_status()
            return r.json()

    async def _request_with_retry(self, method: str, path: str, payload: dict[str, Any] | None = None) -> Any:
        decorated = retry(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=4),
            retry=retry_if_exception(_is_transient),
            after=_log_after_attempt,
            before_sleep=_log_before_sleep,
            reraise=True,
        )(self._request)

        return await decorated(method, path, payload)

    async def read_many(self, path: str) -> list[dict[str, Any]]:
        try:
            node = await self._request_with_retry("GET", path)
        except (httpx.HTTPError, ValueError) as e:
            # ValueError covers a 200 response whose body is not JSON.
            raise StoreError(f"Failed to read {path}: {type(e).__name__}: {e}") from e
        return children_as_records(node)

    async def append_record(self, collection_path: str, record: dict[str, Any]) -> str:
        record_id = generate_push_id()
        try:
            await self._request_with_retry("PUT", f"{collection_path}/{record_id}", record)
        except (httpx.HTTPError, ValueError) as e:
            raise PersistenceError(f"Failed to write {collection_path}/{record_id}: {type(e).__name__}: {e}") from e
        logger.info("Stored record %s under %s", record_id, collection_path)
        return record_id

    def current_user_id(self) -> str | None:
        return self.user_id
