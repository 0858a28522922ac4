"""Command-line entry point for the invoice mail service."""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from billrouter import Config, DocumentBuilder, ImapSession, MailProcessor, PollingDriver
from billrouter.exceptions import TransportFailure

logger = logging.getLogger("billrouter")


def load_environment(env_path: Optional[str]) -> None:
    """Load the dotenv file named by ENV_PATH.

    Args:
        env_path: Path to the dotenv file

    Raises:
        ValueError: If ENV_PATH is unset or the file is not readable
    """
    if not env_path:
        raise ValueError("ENV_PATH not found")

    path = Path(env_path)
    if not path.is_file() or not os.access(path, os.R_OK):
        raise ValueError(f"Cannot read environment file {path}")

    load_dotenv(path)


def configure_logging(config: Config) -> None:
    """Console logging, plus a rotating file when LOG_FILE is set."""
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.log_file:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                config.log_file,
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5,
                encoding="utf-8",
            )
        )

    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=config.log_level, handlers=handlers, force=True)


def main() -> int:
    """Main CLI entry point."""
    try:
        load_environment(os.getenv("ENV_PATH"))
        config = Config.from_env()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    configure_logging(config)
    logger.info("Service started")

    session = ImapSession(
        host=config.imap_host,
        user=config.imap_user,
        password=config.imap_password,
        access_token=config.imap_access_token,
        port=config.imap_port,
    )

    try:
        session.connect()
    except TransportFailure as e:
        logger.error(f"Client error: {e}")
        return 1

    builder = DocumentBuilder(config.builder_command, timeout=config.builder_timeout_sec)
    processor = MailProcessor(session=session, config=config, builder=builder)
    driver = PollingDriver(processor, interval_sec=config.poll_interval_sec)

    exit_code = driver.start()
    session.logout()
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
