"""Scratch space for attachments extracted during a polling cycle."""

import logging
import shutil
import tempfile
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Iterator, Optional, Union

logger = logging.getLogger(__name__)


class Workspace:
    """Temporary directory owned by one message while it is processed."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def resolve(self, name: str) -> Path:
        """Map a relative entry name to a path inside the workspace.

        Args:
            name: Relative path, possibly with subdirectories

        Returns:
            Absolute path inside the workspace

        Raises:
            ValueError: If the name resolves outside the workspace
        """
        root = self.path.resolve()
        target = (root / name).resolve()
        if target == root or root not in target.parents:
            raise ValueError(f"Entry {name!r} escapes workspace {self.path}")
        return target

    def save_attachment(self, filename: str, content: Union[bytes, BinaryIO]) -> Path:
        """Write an attachment into the workspace under its declared name.

        Args:
            filename: Declared filename (directory components are dropped)
            content: File data as bytes or a readable binary stream

        Returns:
            Path to the saved file
        """
        file_path = self.resolve(Path(filename).name)

        with open(file_path, "wb") as f:
            if isinstance(content, bytes):
                f.write(content)
            else:
                shutil.copyfileobj(content, f)

        return file_path

    def remove(self) -> None:
        shutil.rmtree(self.path, ignore_errors=True)
        logger.debug(f"Removed workspace {self.path}")


class ScratchSpace:
    """Root of per-cycle directories: ``<root>/<YYYYMMDDHHMM>/<tmpdir>/``."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def start_cycle(self, now: Optional[datetime] = None) -> Path:
        """Create the directory for the current polling cycle.

        Args:
            now: Cycle timestamp (defaults to the current time)

        Returns:
            Path to the cycle directory
        """
        now = now or datetime.now()
        cycle_dir = self.root / now.strftime("%Y%m%d%H%M")
        cycle_dir.mkdir(parents=True, exist_ok=True)
        return cycle_dir

    @contextmanager
    def workspace(self, cycle_dir: Path) -> Iterator[Workspace]:
        """Create a message workspace and remove it on exit, success or not."""
        workspace = Workspace(Path(tempfile.mkdtemp(dir=cycle_dir)))
        try:
            yield workspace
        finally:
            workspace.remove()
