"""Billing extraction from UBL Invoice, CreditNote and AttachedDocument XML.

Documents are parsed into plain dict trees with namespace prefixes
stripped, so ``<cbc:ID>`` is read as ``ID``. Each recognised root element
maps to one extraction function.

Field sources, first non-empty value wins:

    id      embedded ID, embedded Invoice.ID, embedded CreditNote.ID,
            ParentDocumentID (literal "null" ignored), AltID,
            ParentDocumentLineReference.DocumentReference.ID, ID
    cufe    UUID, ParentDocumentLineReference.DocumentReference.UUID
    date    IssueDate
    value   embedded Invoice.LegalMonetaryTotal.PayableAmount,
            embedded LegalMonetaryTotal.PayableAmount
    parties PartyTaxScheme.CompanyID / RegistrationName

The embedded document is the XML carried as CDATA in
``Attachment.ExternalReference.Description``.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional, Union
from xml.parsers.expat import ExpatError

import xmltodict

from ..exceptions import MissingInvoiceId, UnreadableDocument, UnrecognizedDocument
from ..models import Billing, Party

logger = logging.getLogger(__name__)

Tree = dict[str, Any]


class DocumentKind(str, Enum):
    """Recognised UBL root elements, in detection order."""

    INVOICE = "Invoice"
    CREDIT_NOTE = "CreditNote"
    ATTACHED_DOCUMENT = "AttachedDocument"


@dataclass
class BillingDocument:
    """A recognised document: its kind, its root node and its embedded attachment."""

    kind: DocumentKind
    node: Tree
    attachment: Optional[Tree] = None


# ============================================================================
# Parsing
# ============================================================================


def _strip_prefix(path, key, value):
    return key.rsplit(":", 1)[-1], value


def load_document(data: Union[str, bytes]) -> Tree:
    """Parse XML into a dict tree, ignoring attributes and namespace prefixes.

    Raises:
        UnreadableDocument: If the data is not well-formed XML
    """
    try:
        tree = xmltodict.parse(data, xml_attribs=False, postprocessor=_strip_prefix)
    except ExpatError as e:
        raise UnreadableDocument(f"Invalid XML: {e}") from e

    return tree or {}


def _dig(node: Any, *path: str) -> Any:
    """Follow a key path through nested dicts, taking the first of repeated elements."""
    for key in path:
        if isinstance(node, list):
            node = node[0] if node else None
        if not isinstance(node, dict):
            return None
        node = node.get(key)

    if isinstance(node, list):
        node = node[0] if node else None
    return node


def _text(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        value = value.get("#text")
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _first(*values: Any) -> Optional[str]:
    for value in values:
        text = _text(value)
        if text is not None:
            return text
    return None


def _amount(value: Any) -> Optional[float]:
    text = _text(value)
    if text is None:
        return None
    try:
        return float(text)
    except ValueError:
        logger.warning(f"Ignoring non-numeric amount {text!r}")
        return None


def extract_attachment(node: Tree) -> Optional[Tree]:
    """Parse the embedded document carried in Attachment.ExternalReference.Description.

    Returns:
        The embedded tree, or None if the node carries no embedded XML

    Raises:
        UnreadableDocument: If the embedded XML is malformed
    """
    description = _text(_dig(node, "Attachment", "ExternalReference", "Description"))
    if description is None:
        return None

    payload = description.replace("<![CDATA[", "", 1)
    payload = payload.replace("]]>", "", 1) if "]]>" in payload else payload.replace("]]", "", 1)
    payload = payload.strip()

    if not payload.startswith("<"):
        return None

    try:
        return load_document(payload)
    except UnreadableDocument as e:
        raise UnreadableDocument(f"Embedded attachment is not valid XML: {e}") from e


def read_document(tree: Tree) -> BillingDocument:
    """Identify which UBL variant a parsed tree holds.

    Raises:
        UnrecognizedDocument: If no Invoice, CreditNote or AttachedDocument is present
    """
    for kind in DocumentKind:
        node = tree.get(kind.value)
        if node is not None:
            node = node if isinstance(node, dict) else {}
            return BillingDocument(kind=kind, node=node, attachment=extract_attachment(node))

    raise UnrecognizedDocument("XML is not an Invoice, CreditNote or AttachedDocument")


# ============================================================================
# Field extraction
# ============================================================================


def extract_id(node: Tree, attachment: Optional[Tree]) -> str:
    parent_id = _text(_dig(node, "ParentDocumentID"))
    if parent_id == "null":
        parent_id = None

    return _first(
        _dig(attachment, "ID"),
        _dig(attachment, "Invoice", "ID"),
        _dig(attachment, "CreditNote", "ID"),
        parent_id,
        _dig(node, "AltID"),
        _dig(node, "ParentDocumentLineReference", "DocumentReference", "ID"),
        _dig(node, "ID"),
    ) or ""


def extract_cufe(node: Tree) -> str:
    return _first(
        _dig(node, "UUID"),
        _dig(node, "ParentDocumentLineReference", "DocumentReference", "UUID"),
    ) or ""


def extract_value(attachment: Optional[Tree]) -> Optional[float]:
    for path in (("Invoice", "LegalMonetaryTotal", "PayableAmount"), ("LegalMonetaryTotal", "PayableAmount")):
        value = _amount(_dig(attachment, *path))
        if value is not None:
            return value
    return None


def extract_party(entity: Any) -> Party:
    """Project a party's PartyTaxScheme; a missing entity yields empty strings."""
    return Party(
        nit=_text(_dig(entity, "PartyTaxScheme", "CompanyID")) or "",
        nombre=_text(_dig(entity, "PartyTaxScheme", "RegistrationName")) or "",
    )


def _extract_attached_document(document: BillingDocument) -> Billing:
    node, attachment = document.node, document.attachment

    value = extract_value(attachment)
    return Billing(
        id=extract_id(node, attachment),
        cufe=extract_cufe(node),
        date=_text(_dig(node, "IssueDate")) or "",
        value=value if value is not None else 0,
        proveedor=extract_party(_dig(node, "SenderParty") or _dig(node, "AccountingSupplierParty", "Party")),
        cliente=extract_party(_dig(node, "ReceiverParty") or _dig(node, "AccountingCustomerParty", "Party")),
    )


def _extract_self_contained(document: BillingDocument) -> Billing:
    node, attachment = document.node, document.attachment

    value = extract_value(attachment)
    if value is None:
        value = _amount(_dig(node, "LegalMonetaryTotal", "PayableAmount"))

    return Billing(
        id=extract_id(node, attachment),
        cufe=extract_cufe(node),
        date=_text(_dig(node, "IssueDate")) or "",
        value=value if value is not None else 0,
        proveedor=extract_party(_dig(node, "AccountingSupplierParty", "Party")),
        cliente=extract_party(_dig(node, "AccountingCustomerParty", "Party")),
    )


_EXTRACTORS: dict[DocumentKind, Callable[[BillingDocument], Billing]] = {
    DocumentKind.INVOICE: _extract_self_contained,
    DocumentKind.CREDIT_NOTE: _extract_self_contained,
    DocumentKind.ATTACHED_DOCUMENT: _extract_attached_document,
}


def extract_billing(tree: Tree) -> Billing:
    """Turn a parsed UBL tree into a Billing record.

    Args:
        tree: Output of ``load_document``

    Returns:
        Billing: Extracted record (``id`` may be empty)

    Raises:
        UnrecognizedDocument: If the tree is none of the known variants
        UnreadableDocument: If an embedded attachment is malformed
    """
    document = read_document(tree)
    return _EXTRACTORS[document.kind](document)


class BillingParser:
    """Reads a UBL xml file and returns a validated Billing record."""

    def parse(self, xml_path: Union[str, Path]) -> Billing:
        """Parse an xml file.

        Args:
            xml_path: Path to the xml file

        Returns:
            Billing: Record with a non-empty ``id``

        Raises:
            UnreadableDocument: If the file cannot be read or parsed
            UnrecognizedDocument: If the XML is not a known billing document
            MissingInvoiceId: If no invoice identifier was found
        """
        try:
            data = Path(xml_path).read_bytes()
        except OSError as e:
            raise UnreadableDocument(f"Could not read {xml_path}: {e}") from e

        document = read_document(load_document(data))
        logger.info(f"Found {document.kind.value} in {Path(xml_path).name}")

        billing = _EXTRACTORS[document.kind](document)
        if not billing.id:
            raise MissingInvoiceId(f"No invoice id in {Path(xml_path).name}")

        return billing
