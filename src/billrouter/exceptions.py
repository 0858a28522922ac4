"""Error taxonomy for the mail billing pipeline."""

from typing import Optional


class BillRouterError(Exception):
    """Base exception for billrouter."""


class SizeExceeded(BillRouterError):
    """Raised when a zip bundle is larger than the allowed ceiling."""

    def __init__(self, size: int, limit: int):
        super().__init__(f"Bundle size {size} exceeds limit of {limit} bytes")
        self.size = size
        self.limit = limit


class NoValidInvoice(BillRouterError):
    """Raised when a bundle did not yield both an xml and a pdf entry."""

    def __init__(self, message: str = "Bundle did not contain a valid invoice", entries_read: int = 0):
        super().__init__(message)
        self.entries_read = entries_read


class UnrecognizedDocument(BillRouterError):
    """Raised when the XML is not an Invoice, CreditNote or AttachedDocument."""


class UnreadableDocument(BillRouterError):
    """Raised when an XML document cannot be read or is not well-formed."""


class MissingInvoiceId(BillRouterError):
    """Raised when extraction finished without an invoice identifier."""


class BuilderError(BillRouterError):
    """Raised when the external document builder fails.

    Attributes:
        output: Captured stdout of the builder process, if any
        returncode: Process exit status, None if the process never ran to completion
    """

    def __init__(self, message: str, output: str = "", returncode: Optional[int] = None):
        super().__init__(message)
        self.output = output
        self.returncode = returncode


class TransportFailure(BillRouterError):
    """Raised when the mail store connection itself is broken."""


class RouteFailure(BillRouterError):
    """Raised when moving a message to its destination mailbox fails."""
