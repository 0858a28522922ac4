"""Invocation of the external document builder."""

import logging
import subprocess
from pathlib import Path
from typing import Optional, Sequence

from ..exceptions import BuilderError

logger = logging.getLogger(__name__)


def sidecar_path(xml_path: Path) -> Path:
    """JSON path next to an xml file: ``factura.xml`` -> ``factura.json``."""
    xml_path = Path(xml_path)
    if xml_path.suffix.lower() == ".xml":
        return xml_path.with_suffix(".json")
    return xml_path.with_name(xml_path.name + ".json")


class DocumentBuilder:
    """Runs the builder command with ``(json_path, xml_path, pdf_path)`` appended."""

    def __init__(self, command: Sequence[str], timeout: Optional[float] = None):
        """Initialize builder.

        Args:
            command: Executable and leading arguments
            timeout: Seconds to wait for the process, None to wait forever
        """
        if not command:
            raise ValueError("Builder command must not be empty")
        self.command = list(command)
        self.timeout = timeout

    def build(self, json_path: Path, xml_path: Path, pdf_path: Path) -> str:
        """Run the builder.

        Returns:
            str: Captured stdout

        Raises:
            BuilderError: If the process cannot start, times out or exits non-zero
        """
        args = self.command + [str(json_path), str(xml_path), str(pdf_path)]
        logger.debug(f"Running builder: {' '.join(args)}")

        try:
            result = subprocess.run(
                args, capture_output=True, text=True, errors="replace", timeout=self.timeout
            )
        except subprocess.TimeoutExpired as e:
            output = e.stdout.decode(errors="ignore") if isinstance(e.stdout, bytes) else (e.stdout or "")
            raise BuilderError(f"Builder timed out after {self.timeout}s", output=output.strip()) from e
        except OSError as e:
            raise BuilderError(f"Could not run builder {self.command[0]}: {e}") from e

        if result.returncode != 0:
            raise BuilderError(
                f"Builder exited with status {result.returncode}",
                output=result.stdout.strip(),
                returncode=result.returncode,
            )

        return result.stdout
