"""Invoice mail pipeline - UBL attachments in, routed messages out."""

# Models
from .models import (
    # Billing models
    Party,
    Billing,
    # Routing models
    AttachmentStrategy,
    AttachmentPlan,
    UnpackedBundle,
    # Outcome models
    RouteResult,
    OutcomeStatus,
    MessageOutcome,
    CycleReport,
)

# Ingestion
from .ingestion import ImapSession, MailSession

# Processing
from .processing import BillingParser, DocumentBuilder, MessageRouter, ZipUnpacker, classify_parts, extract_billing

# Storage
from .storage import ScratchSpace, Workspace

# Pipeline
from .pipeline import MailProcessor
from .driver import PollingDriver

# Configuration
from .config import Config

__version__ = "0.1.0"

__all__ = [
    # Models
    "Party",
    "Billing",
    "AttachmentStrategy",
    "AttachmentPlan",
    "UnpackedBundle",
    "RouteResult",
    "OutcomeStatus",
    "MessageOutcome",
    "CycleReport",
    # Components
    "ImapSession",
    "MailSession",
    "BillingParser",
    "DocumentBuilder",
    "MessageRouter",
    "ZipUnpacker",
    "classify_parts",
    "extract_billing",
    "ScratchSpace",
    "Workspace",
    "MailProcessor",
    "PollingDriver",
    "Config",
]
