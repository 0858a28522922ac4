"""
Pytest Configuration and Shared Fixtures

Provides a configuration rooted in the test's temporary directory and a
recording document builder.
"""

from pathlib import Path

import pytest

from billrouter.config import Config
from fakes import RecordingBuilder


@pytest.fixture
def config(tmp_path: Path) -> Config:
    return Config(
        attachments_path=tmp_path / "attachments",
        good_mailbox="Procesados",
        bad_mailbox="Fallidos",
        imap_host="imap.example.com",
        imap_user="facturas@example.com",
        imap_password="secret",
        builder_command=["fake-builder"],
    )


@pytest.fixture
def builder() -> RecordingBuilder:
    return RecordingBuilder()
