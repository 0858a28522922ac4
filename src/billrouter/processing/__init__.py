"""Attachment processing: routing, unpacking, extraction and building."""

from .billing import BillingParser, extract_billing, load_document
from .builder import DocumentBuilder, sidecar_path
from .outcome import MessageRouter
from .router import classify_parts
from .unpacker import ZipUnpacker

__all__ = [
    "BillingParser",
    "extract_billing",
    "load_document",
    "DocumentBuilder",
    "sidecar_path",
    "MessageRouter",
    "classify_parts",
    "ZipUnpacker",
]
