"""Mail processing pipeline - message attachments in, routed messages out."""

import logging
from pathlib import Path
from typing import NoReturn, Optional

from .config import Config
from .exceptions import BuilderError, TransportFailure
from .ingestion.base import MailSession, MessageEnvelope
from .metrics import MetricsCollector
from .models import AttachmentPlan, AttachmentStrategy, CycleReport, MessageOutcome, OutcomeStatus
from .processing.billing import BillingParser
from .processing.builder import DocumentBuilder, sidecar_path
from .processing.outcome import MessageRouter
from .processing.router import classify_parts
from .processing.unpacker import ZipUnpacker
from .storage.workspace import ScratchSpace, Workspace

logger = logging.getLogger(__name__)


class MailProcessor:
    """Processes every message of the polled mailbox, one at a time.

    Per message: classify attachments, retrieve them (direct pair or zip
    bundle), build the downstream document, remove the temp workspace,
    then move the message to the good or bad mailbox. A failure in any
    of those steps only affects that message. A failure reading the
    mailbox itself ends the cycle with a TransportFailure.
    """

    def __init__(
        self,
        session: MailSession,
        config: Config,
        builder: DocumentBuilder,
        parser: Optional[BillingParser] = None,
        unpacker: Optional[ZipUnpacker] = None,
        scratch: Optional[ScratchSpace] = None,
    ):
        """Initialize the processor.

        Args:
            session: Connected mail session
            config: Service configuration (mailbox names, scratch root)
            builder: External document builder
            parser: Billing parser for bundle xml files
            unpacker: Zip bundle unpacker
            scratch: Scratch space for temp workspaces
        """
        self.session = session
        self.config = config
        self.builder = builder
        self.parser = parser or BillingParser()
        self.unpacker = unpacker or ZipUnpacker(config.max_bundle_bytes)
        self.scratch = scratch or ScratchSpace(config.attachments_path)
        self.router = MessageRouter(session)
        self.metrics_collector = MetricsCollector()

    def process_messages(self) -> CycleReport:
        """Run one polling cycle over the configured mailbox.

        Returns:
            CycleReport: Outcome of every message seen

        Raises:
            TransportFailure: If the mailbox cannot be locked or enumerated.
                The lock has been released and the session logged out.

        The lock is released exactly once on every path, including
        unexpected enumeration errors, which propagate to the caller.
        """
        collector = self.metrics_collector
        collector.start_timer("cycle")

        cycle_dir = self.scratch.start_cycle()

        if not self.session.is_usable():
            logger.warning("Mail session is not usable, skipping cycle")
            return collector.create_cycle_report([], collector.stop_timer("cycle"), cycle_dir)

        try:
            lock = self.session.lock(self.config.imap_mailbox)
        except TransportFailure as e:
            self._abort(e)

        outcomes = []
        try:
            try:
                for envelope in self.session.enumerate():
                    outcomes.append(self.process_message(envelope, cycle_dir))
            finally:
                lock.release()
        except TransportFailure as e:
            self._abort(e)

        report = collector.create_cycle_report(outcomes, collector.stop_timer("cycle"), cycle_dir)
        logger.info(
            f"Cycle complete: {report.messages_seen} messages, "
            f"{report.succeeded} succeeded, {report.failed} failed, "
            f"{report.skipped} skipped, {report.route_failures} route failures "
            f"in {report.duration_sec:.2f}s"
        )
        return report

    def process_message(self, envelope: MessageEnvelope, cycle_dir: Path) -> MessageOutcome:
        """Process a single message; never raises.

        Args:
            envelope: Message identifier and structure
            cycle_dir: Directory of the current cycle

        Returns:
            MessageOutcome: Result of processing and routing
        """
        uid = envelope.uid
        plan = classify_parts(envelope.parts)

        if plan.strategy is AttachmentStrategy.SKIP:
            logger.info(f"No invoice attachments - MSG: {uid}")
            return MessageOutcome(uid=uid, status=OutcomeStatus.SKIPPED, strategy=plan.strategy)

        self.metrics_collector.start_timer(uid)

        try:
            with self.scratch.workspace(cycle_dir) as workspace:
                if plan.strategy is AttachmentStrategy.DIRECT_PAIR:
                    self._process_direct_pair(uid, plan, workspace)
                else:
                    self._process_bundle(uid, plan, workspace)

            outcome = MessageOutcome(uid=uid, status=OutcomeStatus.SUCCEEDED, strategy=plan.strategy)
        except Exception as e:
            output = e.output if isinstance(e, BuilderError) else ""
            logger.error(
                f"Could not process message {uid}: {e}",
                extra={"uid": uid, "error": str(e), "output": output},
            )
            outcome = MessageOutcome(
                uid=uid,
                status=OutcomeStatus.FAILED,
                strategy=plan.strategy,
                error=str(e) or type(e).__name__,
                output=output or None,
            )

        mailbox = self.config.good_mailbox if outcome.status is OutcomeStatus.SUCCEEDED else self.config.bad_mailbox
        outcome.route = self.router.move(uid, mailbox)
        outcome.duration_sec = self.metrics_collector.stop_timer(uid)

        return outcome

    def _process_direct_pair(self, uid: str, plan: AttachmentPlan, workspace: Workspace) -> None:
        """Download xml and pdf separately and hand them to the builder.

        The billing record is not extracted here; the builder reads the xml itself.
        """
        xml_download = self.session.download(uid, plan.xml_part)
        pdf_download = self.session.download(uid, plan.pdf_part)

        xml_path = workspace.save_attachment(xml_download.filename or plan.xml_filename, xml_download.content)
        pdf_path = workspace.save_attachment(pdf_download.filename or plan.pdf_filename, pdf_download.content)

        self.builder.build(sidecar_path(xml_path), xml_path, pdf_path)
        logger.info(f"Built document from {xml_path.name} - MSG: {uid}")

    def _process_bundle(self, uid: str, plan: AttachmentPlan, workspace: Workspace) -> None:
        """Download a zip bundle, unpack it, extract billing and build."""
        download = self.session.download(uid, plan.zip_part)
        bundle = self.unpacker.unpack(download.content, download.expected_size, workspace)

        billing = self.parser.parse(bundle.xml_path)
        json_path = sidecar_path(bundle.xml_path)
        json_path.write_text(billing.model_dump_json(), encoding="utf-8")

        self.builder.build(json_path, bundle.xml_path, bundle.pdf_path)
        logger.info(f"Built document for invoice {billing.id} - MSG: {uid}")

    def _abort(self, error: TransportFailure) -> NoReturn:
        """Log out and re-raise a transport failure. The lock is already released."""
        logger.critical(f"Mail store failure, stopping: {error}")
        self.session.logout()

        raise error
