"""Attachment discovery in a message's structural part list."""

from typing import Iterable

from ..ingestion.base import MessagePart
from ..models import AttachmentPlan, AttachmentStrategy


def classify_parts(parts: Iterable[MessagePart]) -> AttachmentPlan:
    """Pick candidate xml, pdf and zip parts and decide the retrieval strategy.

    The first part whose filename contains a suffix wins for that suffix.
    Both xml and pdf present means a direct pair, even if a zip is also
    attached; otherwise a zip means a bundle; otherwise the message is skipped.

    Args:
        parts: Leaf parts of a message

    Returns:
        AttachmentPlan: Selected parts and strategy
    """
    found: dict[str, MessagePart] = {}

    for part in parts:
        if not part.filename:
            continue

        filename = part.filename.lower()
        for suffix in (".xml", ".pdf", ".zip"):
            if suffix in filename and suffix not in found:
                found[suffix] = part

    xml, pdf, bundle = found.get(".xml"), found.get(".pdf"), found.get(".zip")

    if xml and pdf:
        return AttachmentPlan(
            strategy=AttachmentStrategy.DIRECT_PAIR,
            xml_part=xml.part,
            xml_filename=xml.filename,
            pdf_part=pdf.part,
            pdf_filename=pdf.filename,
        )

    if bundle:
        return AttachmentPlan(
            strategy=AttachmentStrategy.BUNDLE,
            zip_part=bundle.part,
            zip_filename=bundle.filename,
        )

    return AttachmentPlan(strategy=AttachmentStrategy.SKIP)
