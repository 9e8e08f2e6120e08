"""Remote invoice API client."""

from taxbridge_sync.infrastructure.remote.invoice_api import (
    HttpInvoiceEndpoint,
    parse_retry_after,
)

__all__ = ["HttpInvoiceEndpoint", "parse_retry_after"]
