"""Best-effort routing of processed messages to their destination mailbox."""

import logging

from ..exceptions import RouteFailure
from ..ingestion.base import MailSession
from ..models import RouteResult

logger = logging.getLogger(__name__)


class MessageRouter:
    """Moves messages and reports the result instead of raising."""

    def __init__(self, session: MailSession):
        self.session = session

    def move(self, uid: str, mailbox: str) -> RouteResult:
        """Move a message; failures are logged and returned, never raised.

        Args:
            uid: Message identifier
            mailbox: Destination mailbox name

        Returns:
            RouteResult: Whether the move happened and where
        """
        logger.info(f"Requesting move to {mailbox} - MSG: {uid}")

        try:
            destination = self.session.move(uid, mailbox)
        except Exception as e:
            failure = e if isinstance(e, RouteFailure) else RouteFailure(str(e))
            logger.error(
                f"Error moving message {uid} to {mailbox}: {failure}",
                extra={"uid": uid, "mailbox": mailbox, "error": str(failure)},
            )
            return RouteResult(uid=uid, mailbox=mailbox, moved=False, error=str(failure))

        logger.info(f"Message moved to {destination} - MSG: {uid}")
        return RouteResult(uid=uid, mailbox=mailbox, moved=True, destination=destination)
