"""Zip bundle unpacking under a size ceiling."""

import io
import logging
import shutil
import zipfile
import zlib
from pathlib import Path
from typing import BinaryIO, Optional

from ..config import MAX_BUNDLE_BYTES
from ..exceptions import NoValidInvoice, SizeExceeded
from ..models import UnpackedBundle
from ..storage.workspace import Workspace

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024

# Raised by zipfile while reading entries, besides BadZipFile
_ARCHIVE_ERRORS = (zipfile.BadZipFile, zlib.error, EOFError, RuntimeError, NotImplementedError)


def _drain(entry: BinaryIO) -> None:
    while entry.read(_CHUNK_SIZE):
        pass


class ZipUnpacker:
    """Extracts the first xml and first pdf entry of a zip bundle."""

    def __init__(self, max_bytes: int = MAX_BUNDLE_BYTES):
        self.max_bytes = max_bytes

    def unpack(self, content: BinaryIO, expected_size: int, workspace: Workspace) -> UnpackedBundle:
        """Unpack a bundle into the workspace.

        Every entry is read to the end, captured or not, so a corrupt
        entry anywhere in the archive fails its CRC check.

        Args:
            content: Bundle byte stream
            expected_size: Size declared by the mail store
            workspace: Destination for captured entries

        Returns:
            UnpackedBundle: Paths of the captured xml and pdf

        Raises:
            SizeExceeded: If the bundle is larger than ``max_bytes``
            NoValidInvoice: If the archive is unreadable or lacks an xml or pdf entry
        """
        if expected_size > self.max_bytes:
            raise SizeExceeded(expected_size, self.max_bytes)

        data = content.read(self.max_bytes + 1)
        if len(data) > self.max_bytes:
            raise SizeExceeded(len(data), self.max_bytes)

        xml_path: Optional[Path] = None
        pdf_path: Optional[Path] = None
        entries_read = 0

        try:
            with zipfile.ZipFile(io.BytesIO(data)) as archive:
                for info in archive.infolist():
                    entries_read += 1

                    wants_xml = xml_path is None and ".xml" in info.filename
                    wants_pdf = pdf_path is None and ".pdf" in info.filename

                    with archive.open(info) as entry:
                        if not info.is_dir() and (wants_xml or wants_pdf):
                            # One write serves both slots when a name carries both suffixes
                            captured = self._capture(entry, info.filename, workspace)
                            if wants_xml:
                                xml_path = captured
                            if wants_pdf:
                                pdf_path = captured

                        _drain(entry)
        except _ARCHIVE_ERRORS as e:
            raise NoValidInvoice(f"Attachment is not a readable zip archive: {e}", entries_read) from e

        if xml_path is None or pdf_path is None:
            raise NoValidInvoice("Bundle did not contain both an xml and a pdf", entries_read)

        logger.info(f"Unpacked {xml_path.name} and {pdf_path.name} ({entries_read} entries)")
        return UnpackedBundle(xml_path=xml_path, pdf_path=pdf_path, entries_read=entries_read)

    @staticmethod
    def _capture(entry: BinaryIO, name: str, workspace: Workspace) -> Optional[Path]:
        """Write one entry to disk; a failed write leaves the entry uncaptured."""
        try:
            target = workspace.resolve(name)
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, "wb") as f:
                shutil.copyfileobj(entry, f, _CHUNK_SIZE)
        except (OSError, ValueError) as e:
            logger.error(f"Could not write bundle entry {name}: {e}")
            return None

        return target
