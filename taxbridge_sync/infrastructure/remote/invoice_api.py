"""
HTTP client for the remote invoice API.

One call, one attempt: retries are scheduled by the sync orchestrator
through persisted retry deadlines, never inside a request.
"""

import time
from collections.abc import Awaitable, Callable
from datetime import datetime
from email.utils import parsedate_to_datetime

import httpx

from taxbridge_sync.config import get_logger, get_settings
from taxbridge_sync.core.entities import InvoiceItem, utcnow
from taxbridge_sync.core.exceptions import (
    RemoteAPIError,
    RemoteResponseError,
    RemoteUnavailableError,
)
from taxbridge_sync.core.interfaces import IInvoiceEndpoint, RemoteInvoiceReceipt

logger = get_logger(__name__)

ValueProvider = Callable[[], Awaitable[str | None]]


def parse_retry_after(value: str | None, now: datetime | None = None) -> float | None:
    """
    Parse a Retry-After header into a delay in seconds.

    Accepts delta-seconds or an HTTP-date. Returns None when absent or
    unparseable; past dates yield 0.
    """
    if not value:
        return None
    value = value.strip()
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when is None:
        return None
    return max(0.0, (when - (now or utcnow())).total_seconds())


class HttpInvoiceEndpoint(IInvoiceEndpoint):
    """
    ``POST {base_url}{api_prefix}/invoices`` with an Idempotency-Key header.

    ``base_url_provider`` lets a URL stored on the device override the
    configured one; ``token_provider`` supplies an optional bearer token.
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_prefix: str | None = None,
        timeout: float | None = None,
        base_url_provider: ValueProvider | None = None,
        token_provider: ValueProvider | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.base_url = base_url or settings.remote.base_url
        self.api_prefix = api_prefix if api_prefix is not None else settings.remote.api_prefix
        self.timeout = timeout or settings.remote.timeout
        self._base_url_provider = base_url_provider
        self._token_provider = token_provider
        self._transport = transport

    async def resolve_url(self) -> str:
        base_url = self.base_url
        if self._base_url_provider is not None:
            base_url = await self._base_url_provider() or base_url
        return f"{base_url.rstrip('/')}{self.api_prefix}/invoices"

    async def create_invoice(
        self,
        items: list[InvoiceItem],
        idempotency_key: str,
        customer_name: str | None = None,
    ) -> RemoteInvoiceReceipt:
        """Create an invoice remotely, presenting ``idempotency_key``."""
        url = await self.resolve_url()
        payload: dict = {
            "items": [
                {
                    "description": item.description,
                    "quantity": item.quantity,
                    "unitPrice": item.unit_price,
                }
                for item in items
            ],
        }
        if customer_name:
            payload["customerName"] = customer_name

        headers = {"Idempotency-Key": idempotency_key}
        if self._token_provider is not None:
            token = await self._token_provider()
            if token:
                headers["Authorization"] = f"Bearer {token}"

        start_time = time.time()
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            raise RemoteUnavailableError(f"timeout after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise RemoteUnavailableError(str(e) or e.__class__.__name__) from e

        elapsed_ms = int((time.time() - start_time) * 1000)

        if 300 <= response.status_code < 400:
            # Redirects are not followed; usually a misconfigured base URL or proxy
            logger.warning(
                "remote_invoice_redirected",
                invoice_id=idempotency_key,
                status_code=response.status_code,
                location=response.headers.get("Location"),
            )
            raise RemoteResponseError(
                f"unexpected redirect {response.status_code}", response.text
            )

        if not response.is_success:
            logger.warning(
                "remote_invoice_rejected",
                invoice_id=idempotency_key,
                status_code=response.status_code,
                elapsed_ms=elapsed_ms,
            )
            raise RemoteAPIError(
                response.status_code,
                response.text[:200],
                retry_after=parse_retry_after(response.headers.get("Retry-After")),
            )

        try:
            body = response.json()
        except ValueError as e:
            raise RemoteResponseError("body is not JSON", response.text) from e

        if not isinstance(body, dict) or not body.get("invoiceId"):
            raise RemoteResponseError("missing invoiceId", response.text)

        receipt = RemoteInvoiceReceipt(
            invoice_id=str(body["invoiceId"]),
            status=str(body.get("status") or "queued"),
        )
        logger.info(
            "remote_invoice_created",
            invoice_id=idempotency_key,
            server_id=receipt.invoice_id,
            status=receipt.status,
            elapsed_ms=elapsed_ms,
        )
        return receipt
