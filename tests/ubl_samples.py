"""
UBL Sample Builders

Small XML and zip builders shared by the test modules.
"""

import io
import zipfile
from typing import Optional

CAC = "urn:oasis:names:specification:ubl:schema:xsd:CommonAggregateComponents-2"
CBC = "urn:oasis:names:specification:ubl:schema:xsd:CommonBasicComponents-2"

ROOT_NAMESPACES = {
    "Invoice": "urn:oasis:names:specification:ubl:schema:xsd:Invoice-2",
    "CreditNote": "urn:oasis:names:specification:ubl:schema:xsd:CreditNote-2",
    "AttachedDocument": "urn:oasis:names:specification:ubl:schema:xsd:AttachedDocument-2",
}


def tax_scheme(nit: str, name: str) -> str:
    return (
        "<cac:PartyTaxScheme>"
        f"<cbc:RegistrationName>{name}</cbc:RegistrationName>"
        f'<cbc:CompanyID schemeAgencyID="195" schemeName="31">{nit}</cbc:CompanyID>'
        "</cac:PartyTaxScheme>"
    )


def accounting_party(tag: str, nit: str, name: str) -> str:
    return f"<cac:{tag}><cac:Party>{tax_scheme(nit, name)}</cac:Party></cac:{tag}>"


def attachment_block(embedded: str) -> str:
    return (
        "<cac:Attachment><cac:ExternalReference>"
        "<cbc:MimeCode>text/xml</cbc:MimeCode>"
        "<cbc:EncodingCode>UTF-8</cbc:EncodingCode>"
        f"<cbc:Description><![CDATA[{embedded}]]></cbc:Description>"
        "</cac:ExternalReference></cac:Attachment>"
    )


def document(root: str, body: str, declaration: bool = True) -> str:
    header = '<?xml version="1.0" encoding="UTF-8"?>' if declaration else ""
    return (
        f'{header}<{root} xmlns="{ROOT_NAMESPACES[root]}" xmlns:cac="{CAC}" xmlns:cbc="{CBC}">'
        f"{body}</{root}>"
    )


def invoice_xml(
    root: str = "Invoice",
    doc_id: Optional[str] = "FE100",
    uuid: Optional[str] = "cufe-100",
    issue_date: str = "2024-01-01",
    supplier: Optional[tuple[str, str]] = ("900123456", "Proveedor SAS"),
    customer: Optional[tuple[str, str]] = ("800987654", "Cliente Ltda"),
    payable: Optional[str] = None,
    embedded: Optional[str] = None,
) -> str:
    """Build a self-contained Invoice or CreditNote."""
    body = ""
    if doc_id is not None:
        body += f"<cbc:ID>{doc_id}</cbc:ID>"
    if uuid is not None:
        body += f'<cbc:UUID schemeName="CUFE-SHA384">{uuid}</cbc:UUID>'
    body += f"<cbc:IssueDate>{issue_date}</cbc:IssueDate>"
    if supplier:
        body += accounting_party("AccountingSupplierParty", *supplier)
    if customer:
        body += accounting_party("AccountingCustomerParty", *customer)
    if payable is not None:
        body += (
            "<cac:LegalMonetaryTotal>"
            f'<cbc:PayableAmount currencyID="COP">{payable}</cbc:PayableAmount>'
            "</cac:LegalMonetaryTotal>"
        )
    if embedded is not None:
        body += attachment_block(embedded)
    return document(root, body)


def attached_document_xml(
    embedded: Optional[str],
    doc_id: Optional[str] = "AD-1",
    uuid: Optional[str] = "cufe-ad-1",
    issue_date: str = "2024-02-10",
    parent_document_id: Optional[str] = None,
    alt_id: Optional[str] = None,
    line_reference: Optional[tuple[str, str]] = None,
    sender: Optional[tuple[str, str]] = ("900123456", "Proveedor SAS"),
    receiver: Optional[tuple[str, str]] = ("800987654", "Cliente Ltda"),
) -> str:
    """Build an AttachedDocument wrapping ``embedded`` as CDATA."""
    body = ""
    if doc_id is not None:
        body += f"<cbc:ID>{doc_id}</cbc:ID>"
    if uuid is not None:
        body += f"<cbc:UUID>{uuid}</cbc:UUID>"
    body += f"<cbc:IssueDate>{issue_date}</cbc:IssueDate>"
    if alt_id is not None:
        body += f"<cbc:AltID>{alt_id}</cbc:AltID>"
    if parent_document_id is not None:
        body += f"<cbc:ParentDocumentID>{parent_document_id}</cbc:ParentDocumentID>"
    if sender:
        body += f"<cac:SenderParty>{tax_scheme(*sender)}</cac:SenderParty>"
    if receiver:
        body += f"<cac:ReceiverParty>{tax_scheme(*receiver)}</cac:ReceiverParty>"
    if embedded is not None:
        body += attachment_block(embedded)
    if line_reference is not None:
        ref_id, ref_uuid = line_reference
        body += (
            "<cac:ParentDocumentLineReference><cbc:LineID>1</cbc:LineID><cac:DocumentReference>"
            f"<cbc:ID>{ref_id}</cbc:ID><cbc:UUID>{ref_uuid}</cbc:UUID>"
            "</cac:DocumentReference></cac:ParentDocumentLineReference>"
        )
    return document("AttachedDocument", body)


def zip_bytes(entries: dict[str, bytes]) -> bytes:
    """Build a zip archive from ``{name: data}`` in insertion order."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for name, data in entries.items():
            archive.writestr(name, data)
    return buffer.getvalue()
