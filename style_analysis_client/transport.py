import asyncio
from typing import Any, Awaitable, Dict, Optional, TypeVar

import aiohttp
from loguru import logger
from style_analysis_client.errors import (
    ApplicationError,
    CancelledError,
    HttpError,
    normalize_error,
)
from style_analysis_client.models import (
    NO_CONTENT,
    ClientConfig,
    FormPayload,
    RequestEnvelope,
)

T = TypeVar("T")


async def run_cancellable(
    awaitable: Awaitable[T], cancel: Optional[asyncio.Event], what: str
) -> T:
    """Await ``awaitable`` unless ``cancel`` is set first, in which case abort it"""
    if cancel is None:
        return await awaitable
    if cancel.is_set():
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise CancelledError(f"{what} cancelled")

    task = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(cancel.wait())
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        waiter.cancel()
        if not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    if task.cancelled():
        raise CancelledError(f"{what} cancelled")
    return task.result()


class Transport:
    """Sends one HTTP request and returns the decoded JSON body.

    Failures are raised as ``NetworkError``, ``HttpError`` or
    ``ApplicationError``; nothing is retried here.
    """

    def __init__(
        self,
        config: ClientConfig,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.config = config
        self.logger = logger
        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.request_timeout)
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
        self._session = None

    def headers(self) -> Dict[str, str]:
        if self.config.auth_scheme == "bearer":
            auth = {"Authorization": f"Bearer {self.config.api_key}"}
        else:
            auth = {"x-api-key": self.config.api_key}
        return {**auth, "Accept": "application/json"}

    def envelope(
        self,
        method: str,
        path: str,
        *,
        json_body: Any = None,
        form: Optional[FormPayload] = None,
    ) -> RequestEnvelope:
        return RequestEnvelope(
            method=method.upper(),
            path=path,
            headers=self.headers(),
            json_body=json_body,
            form=form,
        )

    async def send(
        self, envelope: RequestEnvelope, cancel: Optional[asyncio.Event] = None
    ) -> Any:
        """Send ``envelope``; returns NO_CONTENT for 204 or empty bodies"""
        return await run_cancellable(
            self._send_once(envelope), cancel, f"{envelope.method} {envelope.path}"
        )

    async def _send_once(self, envelope: RequestEnvelope) -> Any:
        url = self.config.url_for(envelope.path)
        kwargs: Dict[str, Any] = {"headers": dict(envelope.headers)}
        if envelope.form is not None:
            kwargs["data"] = envelope.form.build()
        elif envelope.json_body is not None:
            kwargs["json"] = envelope.json_body

        self.logger.debug(f"{envelope.method} {url}")
        try:
            async with self._get_session().request(
                envelope.method, url, **kwargs
            ) as response:
                payload = await response.read()

                if not 200 <= response.status < 300:
                    error = HttpError.from_response(
                        response.status, await self._decode_error_body(response)
                    )
                    self.logger.error(
                        f"HTTP error {response.status} at {url}: {error.message}"
                    )
                    raise error

                if response.status == 204 or not payload.strip():
                    return NO_CONTENT

                try:
                    return await response.json(content_type=None)
                except ValueError as e:
                    self.logger.error(f"Could not decode response from {url}: {e}")
                    raise ApplicationError(
                        f"Could not decode JSON response from {url}"
                    ) from e
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            error = normalize_error(e)
            self.logger.error(f"Request to {url} failed: {error.message}")
            raise error from e

    @staticmethod
    async def _decode_error_body(response: aiohttp.ClientResponse) -> Any:
        try:
            return await response.json(content_type=None)
        except ValueError:
            return None
