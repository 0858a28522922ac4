"""Tests for cycle directories and message workspaces."""

import io
from datetime import datetime
from pathlib import Path

import pytest

from billrouter.storage import ScratchSpace, Workspace


class TestScratchSpace:
    """Tests for ScratchSpace."""

    def test_start_cycle_uses_minute_timestamp(self, tmp_path: Path):
        """Cycle directories are named YYYYMMDDHHMM."""
        cycle_dir = ScratchSpace(tmp_path / "root").start_cycle(datetime(2024, 3, 5, 7, 9, 59))

        assert cycle_dir == tmp_path / "root" / "202403050709"
        assert cycle_dir.is_dir()

    def test_start_cycle_is_reentrant(self, tmp_path: Path):
        """Two cycles in the same minute share the directory."""
        scratch = ScratchSpace(tmp_path)
        now = datetime(2024, 3, 5, 7, 9)

        assert scratch.start_cycle(now) == scratch.start_cycle(now)

    def test_workspace_removed_on_success(self, tmp_path: Path):
        """The workspace is gone after the block."""
        scratch = ScratchSpace(tmp_path)
        cycle_dir = scratch.start_cycle()

        with scratch.workspace(cycle_dir) as workspace:
            workspace.save_attachment("f.xml", b"<x/>")
            path = workspace.path
            assert path.parent == cycle_dir

        assert not path.exists()

    def test_workspace_removed_on_error(self, tmp_path: Path):
        """The workspace is removed even when the block raises."""
        scratch = ScratchSpace(tmp_path)
        cycle_dir = scratch.start_cycle()

        with pytest.raises(RuntimeError):
            with scratch.workspace(cycle_dir) as workspace:
                path = workspace.path
                raise RuntimeError("boom")

        assert not path.exists()

    def test_workspaces_are_distinct(self, tmp_path: Path):
        """Each message gets its own directory."""
        scratch = ScratchSpace(tmp_path)
        cycle_dir = scratch.start_cycle()

        with scratch.workspace(cycle_dir) as first, scratch.workspace(cycle_dir) as second:
            assert first.path != second.path


class TestWorkspace:
    """Tests for Workspace."""

    def test_save_attachment_bytes(self, tmp_path: Path):
        """Bytes are written under the declared name."""
        path = Workspace(tmp_path).save_attachment("factura.pdf", b"%PDF")

        assert path == (tmp_path / "factura.pdf").resolve()
        assert path.read_bytes() == b"%PDF"

    def test_save_attachment_stream(self, tmp_path: Path):
        """Streams are copied."""
        path = Workspace(tmp_path).save_attachment("factura.xml", io.BytesIO(b"<x/>"))

        assert path.read_bytes() == b"<x/>"

    def test_save_attachment_drops_directories(self, tmp_path: Path):
        """Directory components of a declared filename are ignored."""
        workspace = Workspace(tmp_path / "ws")
        workspace.path.mkdir()

        path = workspace.save_attachment("../../etc/factura.xml", b"<x/>")

        assert path == (workspace.path / "factura.xml").resolve()

    def test_resolve_rejects_escape(self, tmp_path: Path):
        """Names resolving outside the workspace are refused."""
        with pytest.raises(ValueError):
            Workspace(tmp_path / "ws").resolve("../outside.xml")

    def test_resolve_rejects_root(self, tmp_path: Path):
        """The workspace root itself is not a valid entry."""
        with pytest.raises(ValueError):
            Workspace(tmp_path).resolve(".")
