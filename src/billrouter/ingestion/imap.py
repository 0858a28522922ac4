"""IMAP mail session with password or OAuth2 authentication."""

import email
import imaplib
import io
import logging
import ssl
from email.message import Message
from typing import Iterator, Optional

from ..exceptions import RouteFailure, TransportFailure
from .base import Download, MailboxLock, MailSession, MessageEnvelope
from .structure import decode_filename, describe_structure, fetch_attributes, split_responses

logger = logging.getLogger(__name__)

_TRANSPORT_ERRORS = (imaplib.IMAP4.error, OSError)


def _disposition_filename(part: Message) -> Optional[str]:
    if part.get("Content-Disposition") is None:
        return None
    return decode_filename(part.get_filename())


def _quote(mailbox: str) -> str:
    escaped = mailbox.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class ImapMailboxLock(MailboxLock):
    """Selected mailbox on an IMAP connection; released by CLOSE."""

    def __init__(self, imap: imaplib.IMAP4, mailbox: str):
        self._imap = imap
        self.mailbox = mailbox
        self._released = False

    def release(self) -> None:
        if self._released:
            return
        self._released = True

        try:
            if self._imap.state == "SELECTED":
                # CLOSE also expunges messages flagged by COPY-based moves
                self._imap.close()
            logger.debug(f"Released mailbox {self.mailbox}")
        except _TRANSPORT_ERRORS as e:
            logger.error(f"Error releasing mailbox {self.mailbox}: {e}")


class ImapSession(MailSession):
    """Mail session over imaplib."""

    def __init__(
        self,
        host: str,
        user: str,
        password: Optional[str] = None,
        access_token: Optional[str] = None,
        port: int = 993,
    ):
        """Initialize IMAP session.

        Args:
            host: IMAP server host
            user: Account user name
            password: Password for LOGIN authentication
            access_token: OAuth2 access token for XOAUTH2 authentication
            port: IMAPS port
        """
        self.host = host
        self.user = user
        self.password = password
        self.access_token = access_token
        self.port = port
        self._imap: Optional[imaplib.IMAP4] = None

    def connect(self) -> None:
        """Connect and authenticate if not already connected.

        Raises:
            TransportFailure: If connection or authentication fails
        """
        if self._imap is not None:
            return

        try:
            self._imap = imaplib.IMAP4_SSL(self.host, self.port, ssl_context=ssl.create_default_context())

            if self.access_token:
                auth_string = f"user={self.user}\x01auth=Bearer {self.access_token}\x01\x01"
                self._imap.authenticate("XOAUTH2", lambda x: auth_string)
            else:
                self._imap.login(self.user, self.password)
        except _TRANSPORT_ERRORS as e:
            self._imap = None
            raise TransportFailure(f"Could not connect to {self.host} as {self.user}: {e}") from e

        logger.info(f"Connected to {self.host} as {self.user}")

    def is_usable(self) -> bool:
        return self._imap is not None and self._imap.state in ("AUTH", "SELECTED")

    def lock(self, mailbox: str) -> ImapMailboxLock:
        status, data = self._command(self._connection().select, _quote(mailbox))
        if status != "OK":
            raise TransportFailure(f"Failed to select mailbox {mailbox}: {data}")

        logger.debug(f"Selected mailbox {mailbox} ({data[0].decode()} messages)")
        return ImapMailboxLock(self._imap, mailbox)

    def enumerate(self) -> Iterator[MessageEnvelope]:
        imap = self._connection()

        status, data = self._command(imap.uid, "SEARCH", None, "ALL")
        if status != "OK":
            raise TransportFailure(f"Failed to search: {status}")

        if not (data and data[0] and data[0].split()):
            logger.info("Found 0 messages")
            return

        # Messages expunged since the SEARCH are simply absent from this reply
        status, data = self._command(imap.uid, "FETCH", "1:*", "(UID BODYSTRUCTURE)")
        if status != "OK":
            raise TransportFailure(f"Failed to fetch message structure: {status}")

        structures = {}
        for response in split_responses(data):
            try:
                attributes = fetch_attributes(response)
            except ValueError as e:
                logger.warning(f"Skipping unreadable FETCH response: {e}")
                continue

            uid = attributes.get("UID")
            structure = attributes.get("BODYSTRUCTURE")
            # Unsolicited FLAGS updates carry no structure
            if not isinstance(uid, bytes) or not uid.isdigit() or structure is None:
                continue
            structures[int(uid)] = structure

        logger.info(f"Found {len(structures)} messages")

        for uid in sorted(structures):
            try:
                parts = describe_structure(structures[uid])
            except ValueError as e:
                logger.warning(f"Skipping UID {uid}: {e}")
                continue
            yield MessageEnvelope(uid=str(uid), parts=parts)

    def download(self, uid: str, part: str) -> Download:
        status, data = self._command(
            self._connection().uid, "FETCH", uid, f"(BODY.PEEK[{part}.MIME] BODY.PEEK[{part}])"
        )
        if status != "OK" or not data:
            raise TransportFailure(f"Failed to download part {part} of UID {uid}: {status}")

        headers = b""
        raw = b""
        for item in data:
            if not isinstance(item, tuple):
                continue
            if b".MIME]" in item[0]:
                headers = item[1]
            else:
                raw = item[1]

        # Re-join headers and body so the email package undoes the transfer encoding
        entity = email.message_from_bytes(headers + raw)
        content = entity.get_payload(decode=True) if headers else raw
        if content is None:
            content = raw

        return Download(
            content=io.BytesIO(content),
            filename=_disposition_filename(entity),
            expected_size=len(raw),
        )

    def move(self, uid: str, mailbox: str) -> str:
        imap = self._connection()
        target = _quote(mailbox)

        if "MOVE" in imap.capabilities:
            status, data = self._command(imap.uid, "MOVE", uid, target)
        else:
            status, data = self._command(imap.uid, "COPY", uid, target)
            if status == "OK":
                status, data = self._command(imap.uid, "STORE", uid, "+FLAGS", "(\\Deleted)")

        if status != "OK":
            raise RouteFailure(f"Server rejected move of UID {uid} to {mailbox}: {data}")

        return mailbox

    def logout(self) -> None:
        """Close IMAP connection."""
        if self._imap is None:
            return

        try:
            self._imap.logout()
        except _TRANSPORT_ERRORS as e:
            logger.warning(f"Error during logout: {e}")
        finally:
            self._imap = None

    def _connection(self) -> imaplib.IMAP4:
        if self._imap is None:
            raise TransportFailure("IMAP session is not connected")
        return self._imap

    @staticmethod
    def _command(method, *args):
        try:
            return method(*args)
        except _TRANSPORT_ERRORS as e:
            raise TransportFailure(str(e)) from e
