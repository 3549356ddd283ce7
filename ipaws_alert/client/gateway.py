"""
IPAWS-OPEN submission client

POSTs CAP v1.2 messages to the gateway over mutual TLS with typed retry
semantics. Create one client per configuration and reuse it; it holds no
per-submission state, so concurrent submissions on one client are safe.

Usage:
    config = GatewayConfig(certificate_path='ipaws.p12', certificate_password='...')
    async with GatewayClient(config) as client:
        response = await client.submit(alert)
        if not response.is_success:
            print(response.errors)
"""

import asyncio
import logging
import ssl
import time
from datetime import datetime, timezone
from typing import Optional

import httpx

from ..cap.models import CAPAlert
from ..cap.serializer import try_encode
from .config import GatewayConfig, COG_ID_HEADER
from .credentials import ClientIdentity, resolve_identity, build_ssl_context
from .response import GatewayResponse, SubmissionStatus

logger = logging.getLogger(__name__)

USER_AGENT = 'ipaws-alert/1.0'


async def _until_cancelled(coro, cancel: asyncio.Event):
    """
    Await `coro` unless `cancel` fires first.

    Returns the coroutine's result, or None when cancelled (the pending
    request is aborted).
    """
    task = asyncio.ensure_future(coro)
    waiter = asyncio.ensure_future(cancel.wait())
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        waiter.cancel()
        if not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
    if task.cancelled():
        return None
    return task.result()


def _describe(error: Exception) -> str:
    return str(error) or type(error).__name__


class GatewayClient:
    """
    HTTP client for submitting CAP messages to IPAWS-OPEN.

    Credentials are resolved once at construction; a missing file or store
    entry fails here rather than on the first submission.
    """

    def __init__(
        self,
        config: GatewayConfig,
        identity: Optional[ClientIdentity] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        ssl_context: Optional[ssl.SSLContext] = None
    ):
        """
        Args:
            config: Endpoint, credential and retry settings
            identity: Pre-resolved client identity (resolved from config if None)
            transport: httpx transport override (tests use httpx.MockTransport)
            ssl_context: Prebuilt mTLS context for the identity (built here if None)

        Raises:
            CredentialError: If the configured certificate cannot be loaded
        """
        self.config = config
        self.identity = identity if identity is not None else resolve_identity(config)

        client_args = {
            'timeout': httpx.Timeout(config.timeout),
            'headers': {'Accept': 'application/xml', 'User-Agent': USER_AGENT},
        }
        if transport is not None:
            client_args['transport'] = transport
        elif ssl_context is not None:
            client_args['verify'] = ssl_context
        else:
            client_args['verify'] = build_ssl_context(self.identity)

        self._http = httpx.AsyncClient(**client_args)

    async def __aenter__(self) -> 'GatewayClient':
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def submit(self, alert: CAPAlert, cancel: Optional[asyncio.Event] = None) -> GatewayResponse:
        """
        Encode and submit an alert.

        An alert that cannot be encoded is reported as REJECTED with HTTP 0
        without any network activity.
        """
        encoded = try_encode(alert)
        if not encoded.ok:
            logger.warning(f"Alert {alert.identifier} not submitted: {encoded.error}")
            return GatewayResponse.failure(
                SubmissionStatus.REJECTED,
                0,
                [f"Serialization error: {encoded.error}"],
                alert_identifier=alert.identifier
            ).finished(datetime.now(timezone.utc), 0.0, 0)
        return await self.submit_raw(encoded.xml, alert.identifier, cancel)

    async def submit_raw(
        self,
        xml: str,
        alert_identifier: Optional[str] = None,
        cancel: Optional[asyncio.Event] = None
    ) -> GatewayResponse:
        """
        Submit pre-encoded CAP XML, retrying transient failures.

        After failed attempt n the client waits retry_delay * n seconds and
        gives up once n exceeds max_retries, returning the last outcome.
        Setting `cancel` aborts the in-flight request or the retry wait and
        yields a TIMEOUT outcome.

        Raises:
            ValueError: If xml is empty
        """
        if not xml or not xml.strip():
            raise ValueError("CAP XML must not be empty")

        submitted_at = datetime.now(timezone.utc)
        started = time.monotonic()
        attempt = 0

        while True:
            attempt += 1
            response = await self._attempt(xml, alert_identifier, attempt, cancel)

            if response.is_success or not response.is_retryable or attempt > self.config.max_retries:
                break
            if cancel is not None and cancel.is_set():
                response = self._cancelled(alert_identifier)
                break

            delay = self.config.retry_delay * attempt
            logger.warning(
                f"Attempt {attempt} for {alert_identifier or 'alert'} failed "
                f"({response.status.value}, HTTP {response.http_status}); retrying in {delay:g}s"
            )
            if await self._wait(delay, cancel):
                response = self._cancelled(alert_identifier)
                break

        elapsed = time.monotonic() - started
        if response.is_success:
            logger.info(
                f"Alert {alert_identifier} accepted (message id {response.server_message_id}) "
                f"after {attempt} attempt(s) in {elapsed:.2f}s"
            )
        else:
            logger.error(
                f"Alert {alert_identifier} failed: {response.status.value}, "
                f"HTTP {response.http_status}: {'; '.join(response.errors)}"
            )
        return response.finished(submitted_at, elapsed, attempt)

    async def _attempt(
        self,
        xml: str,
        alert_identifier: Optional[str],
        attempt: int,
        cancel: Optional[asyncio.Event]
    ) -> GatewayResponse:
        """One POST, classified. Never raises for transport failures."""
        if cancel is not None and cancel.is_set():
            return self._cancelled(alert_identifier)

        headers = {'Content-Type': 'application/xml; charset=utf-8'}
        if self.config.cog_id:
            headers[COG_ID_HEADER] = self.config.cog_id

        logger.info(f"Submitting {alert_identifier or 'alert'} to {self.config.endpoint} (attempt {attempt})")
        request = self._http.post(self.config.endpoint, content=xml.encode('utf-8'), headers=headers)
        try:
            if cancel is None:
                http_response = await request
            else:
                http_response = await _until_cancelled(request, cancel)
                if http_response is None:
                    return self._cancelled(alert_identifier)
        except httpx.TimeoutException as e:
            logger.warning(f"Attempt {attempt} timed out: {e!r}")
            return GatewayResponse.failure(
                SubmissionStatus.TIMEOUT, 0,
                [f"Request timed out after {self.config.timeout:g}s ({_describe(e)})"],
                alert_identifier=alert_identifier
            )
        except httpx.RequestError as e:
            logger.warning(f"Attempt {attempt} network error: {e!r}")
            return GatewayResponse.failure(
                SubmissionStatus.NETWORK_ERROR, 0,
                [f"Network error: {_describe(e)}"],
                alert_identifier=alert_identifier
            )

        result = GatewayResponse.from_http(http_response.status_code, http_response.text, alert_identifier)
        logger.info(f"Attempt {attempt}: HTTP {http_response.status_code} -> {result.status.value}")
        return result

    @staticmethod
    async def _wait(delay: float, cancel: Optional[asyncio.Event]) -> bool:
        """Sleep between attempts; True when cancelled during the wait."""
        if cancel is None:
            await asyncio.sleep(delay)
            return False
        try:
            await asyncio.wait_for(cancel.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return False
        return True

    @staticmethod
    def _cancelled(alert_identifier: Optional[str]) -> GatewayResponse:
        logger.warning(f"Submission of {alert_identifier or 'alert'} cancelled")
        return GatewayResponse.failure(
            SubmissionStatus.TIMEOUT, 0, ["Submission cancelled"], alert_identifier=alert_identifier
        )
