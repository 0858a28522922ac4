"""Mail session module."""

from .base import Download, MailboxLock, MailSession, MessageEnvelope, MessagePart
from .imap import ImapSession

__all__ = ["Download", "MailboxLock", "MailSession", "MessageEnvelope", "MessagePart", "ImapSession"]
