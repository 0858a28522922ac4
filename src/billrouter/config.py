"""Configuration management for the billrouter service."""

import os
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

MAX_BUNDLE_BYTES = 4 * 1024 * 1024


@dataclass
class Config:
    """Service configuration loaded from environment variables."""

    # Scratch space
    attachments_path: Path

    # Destination mailboxes
    good_mailbox: str
    bad_mailbox: str

    # IMAP
    imap_host: str
    imap_user: str
    imap_password: Optional[str] = None
    imap_access_token: Optional[str] = None
    imap_port: int = 993
    imap_mailbox: str = "INBOX"

    # Document builder
    builder_command: list[str] = field(default_factory=list)
    builder_timeout_sec: Optional[float] = None

    # Processing
    poll_interval_sec: int = 600
    max_bundle_bytes: int = MAX_BUNDLE_BYTES

    # Logging
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables.

        Returns:
            Config: Configuration object

        Raises:
            ValueError: If required environment variables are missing or malformed
        """
        required_vars = [
            "ATTACHMENTS_PATH",
            "GOOD_MAILBOX",
            "BAD_MAILBOX",
            "IMAP_HOST",
            "IMAP_USER",
            "BUILDER_COMMAND",
        ]

        missing = [var for var in required_vars if not os.getenv(var)]
        if not (os.getenv("IMAP_PASSWORD") or os.getenv("IMAP_ACCESS_TOKEN")):
            missing.append("IMAP_PASSWORD or IMAP_ACCESS_TOKEN")
        if missing:
            raise ValueError(f"Missing required environment variables: {', '.join(missing)}")

        builder_command = shlex.split(os.getenv("BUILDER_COMMAND"))
        if not builder_command:
            raise ValueError("BUILDER_COMMAND must name an executable")

        timeout = os.getenv("BUILDER_TIMEOUT_SEC")
        log_file = os.getenv("LOG_FILE")

        return cls(
            attachments_path=Path(os.getenv("ATTACHMENTS_PATH")),
            good_mailbox=os.getenv("GOOD_MAILBOX"),
            bad_mailbox=os.getenv("BAD_MAILBOX"),
            imap_host=os.getenv("IMAP_HOST"),
            imap_user=os.getenv("IMAP_USER"),
            imap_password=os.getenv("IMAP_PASSWORD") or None,
            imap_access_token=os.getenv("IMAP_ACCESS_TOKEN") or None,
            imap_port=int(os.getenv("IMAP_PORT", "993")),
            imap_mailbox=os.getenv("IMAP_MAILBOX", "INBOX"),
            builder_command=builder_command,
            builder_timeout_sec=float(timeout) if timeout else None,
            poll_interval_sec=int(os.getenv("POLL_INTERVAL_SEC", "600")),
            max_bundle_bytes=int(os.getenv("MAX_BUNDLE_BYTES", str(MAX_BUNDLE_BYTES))),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_file=Path(log_file) if log_file else None,
        )
