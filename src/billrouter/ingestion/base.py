"""Abstract mail session used by the pipeline."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import BinaryIO, Iterator, Optional


@dataclass
class MessagePart:
    """A leaf part of a message's MIME structure."""

    part: str  # IMAP section path, e.g. "2" or "1.2"
    filename: Optional[str] = None
    content_type: str = "application/octet-stream"
    size_bytes: int = 0


@dataclass
class MessageEnvelope:
    """A message identifier with its structural part list."""

    uid: str
    parts: list[MessagePart] = field(default_factory=list)


@dataclass
class Download:
    """Decoded content of one message part."""

    content: BinaryIO
    filename: Optional[str]
    expected_size: int


class MailboxLock(ABC):
    """Exclusive hold on the polled mailbox for one cycle."""

    @abstractmethod
    def release(self) -> None:
        """Release the mailbox. Must not raise."""
        pass


class MailSession(ABC):
    """Abstract interface for the mail store."""

    @abstractmethod
    def is_usable(self) -> bool:
        """Whether the session is connected and authenticated."""
        pass

    @abstractmethod
    def lock(self, mailbox: str) -> MailboxLock:
        """Select and hold a mailbox.

        Raises:
            TransportFailure: If the mailbox cannot be selected
        """
        pass

    @abstractmethod
    def enumerate(self) -> Iterator[MessageEnvelope]:
        """Yield every message in the locked mailbox, ascending by UID.

        Raises:
            TransportFailure: If the mail store cannot be read
        """
        pass

    @abstractmethod
    def download(self, uid: str, part: str) -> Download:
        """Fetch and decode one part of a message."""
        pass

    @abstractmethod
    def move(self, uid: str, mailbox: str) -> str:
        """Move a message to another mailbox.

        Returns:
            str: Destination mailbox name

        Raises:
            RouteFailure: If the server rejects the move
            TransportFailure: If the connection fails
        """
        pass

    @abstractmethod
    def logout(self) -> None:
        """Close the session. Must not raise."""
        pass
