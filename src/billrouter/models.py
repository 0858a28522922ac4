"""Pydantic models for billing records and pipeline results."""

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


# ============================================================================
# Billing Models (written to the JSON sidecar)
# ============================================================================


class Party(BaseModel):
    """Supplier or customer identity taken from PartyTaxScheme."""

    nit: str = ""
    nombre: str = ""


class Billing(BaseModel):
    """Canonical billing record extracted from a UBL document."""

    id: str = Field(description="Invoice number")
    cufe: str = Field("", description="Unique fiscal identifier (document UUID)")
    date: str = Field("", description="IssueDate, verbatim")
    value: float = Field(0, description="Payable amount")
    proveedor: Party = Field(default_factory=Party)
    cliente: Party = Field(default_factory=Party)


# ============================================================================
# Attachment Routing Models
# ============================================================================


class AttachmentStrategy(str, Enum):
    """How a message's attachments are retrieved."""

    DIRECT_PAIR = "direct_pair"
    BUNDLE = "bundle"
    SKIP = "skip"


class AttachmentPlan(BaseModel):
    """Candidate parts picked from a message and the chosen strategy."""

    strategy: AttachmentStrategy
    xml_part: Optional[str] = None
    xml_filename: Optional[str] = None
    pdf_part: Optional[str] = None
    pdf_filename: Optional[str] = None
    zip_part: Optional[str] = None
    zip_filename: Optional[str] = None


class UnpackedBundle(BaseModel):
    """Files captured from a zip bundle."""

    xml_path: Path
    pdf_path: Path
    entries_read: int


# ============================================================================
# Outcome Models
# ============================================================================


class RouteResult(BaseModel):
    """Result of a best-effort mailbox move."""

    uid: str
    mailbox: str
    moved: bool
    destination: Optional[str] = None
    error: Optional[str] = None


class OutcomeStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class MessageOutcome(BaseModel):
    """Result of processing one message."""

    uid: str
    status: OutcomeStatus
    strategy: AttachmentStrategy
    error: Optional[str] = None
    output: Optional[str] = None  # Captured builder stdout
    route: Optional[RouteResult] = None
    duration_sec: float = 0.0


class CycleReport(BaseModel):
    """Aggregate result of one polling cycle."""

    cycle_dir: Optional[Path] = None
    messages_seen: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    route_failures: int = 0
    duration_sec: float = 0.0
    outcomes: list[MessageOutcome] = Field(default_factory=list)
