"""
Abstract interface for the remote invoice API.

Implementations raise the ``RemoteError`` family from ``core.exceptions``;
the sync orchestrator classifies them into retryable and terminal failures.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from taxbridge_sync.core.entities import InvoiceItem


@dataclass
class RemoteInvoiceReceipt:
    """Remote acknowledgement of a created invoice."""

    invoice_id: str
    status: str


class IInvoiceEndpoint(ABC):
    """
    Idempotent "create invoice" endpoint.

    Implementations: HttpInvoiceEndpoint
    """

    @abstractmethod
    async def create_invoice(
        self,
        items: list[InvoiceItem],
        idempotency_key: str,
        customer_name: str | None = None,
    ) -> RemoteInvoiceReceipt:
        """
        Create an invoice remotely.

        Re-sending the same ``idempotency_key`` must not create a second
        remote invoice.

        Raises:
            RemoteAPIError: non-success HTTP status
            RemoteUnavailableError: network failure or timeout
            RemoteResponseError: success status with an unusable body
        """
        pass
