"""Fixed-interval driver for the mail processor."""

import logging
from datetime import datetime
from typing import Optional

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .exceptions import TransportFailure
from .models import CycleReport
from .pipeline import MailProcessor

logger = logging.getLogger(__name__)


class PollingDriver:
    """Runs one processing cycle immediately, then every ``interval_sec`` seconds.

    A TransportFailure stops the scheduler and sets ``exit_code`` to 1;
    any other cycle error is logged and polling continues.
    """

    def __init__(self, processor: MailProcessor, interval_sec: int, scheduler: Optional[BlockingScheduler] = None):
        self.processor = processor
        self.interval_sec = interval_sec
        self.scheduler = scheduler or BlockingScheduler()
        self.exit_code = 0

    def run_cycle(self) -> Optional[CycleReport]:
        """Run a single cycle, converting failures into driver state."""
        logger.info("Starting mail cycle")

        try:
            report = self.processor.process_messages()
        except TransportFailure as e:
            logger.critical(f"Stopping service after mail store failure: {e}")
            self.exit_code = 1
            self.scheduler.shutdown(wait=False)
            return None
        except Exception as e:
            logger.error(f"Error processing messages: {e}", exc_info=True)
            return None

        logger.info("Mail cycle finished")
        return report

    def start(self) -> int:
        """Block until the scheduler stops.

        Returns:
            int: Process exit code
        """
        self.scheduler.add_job(
            self.run_cycle,
            IntervalTrigger(seconds=self.interval_sec),
            id="process_messages",
            name="Process invoice mail",
            next_run_time=datetime.now(),
            max_instances=1,
            coalesce=True,
        )

        logger.info(f"Polling every {self.interval_sec}s")
        try:
            self.scheduler.start()
        except (KeyboardInterrupt, SystemExit):
            logger.info("Driver interrupted")

        return self.exit_code
