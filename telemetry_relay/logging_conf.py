"""Logging configuration for the relay, with Betterstack shipping."""
import logging
import sys
from logging.handlers import RotatingFileHandler
from logtail import LogtailHandler

from telemetry_relay import settings

LOGGER_NAME = "telemetry_relay"

# extra= fields that identify the queue item or event a record is about
CONTEXT_FIELDS = ("queue_item_id", "correlation_tag")


class RelayFormatter(logging.Formatter):
    """Appends queue item / event context passed via `extra=` to the message."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = [
            f"{name}={getattr(record, name)}"
            for name in CONTEXT_FIELDS
            if getattr(record, name, None)
        ]
        if context:
            message = f"{message} [{' '.join(context)}]"
        return message


def setup_logging():
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = []

    formatter = RelayFormatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Rotating file log, kept across restarts like the queue itself
    file_handler = RotatingFileHandler(settings.LOGS_DIR / "relay.log", maxBytes=10 * 1024 * 1024, backupCount=5)
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    relay_logger = logging.getLogger(LOGGER_NAME)

    if settings.BETTERSTACK_SOURCE_TOKEN:
        try:
            handler_kwargs = {"source_token": settings.BETTERSTACK_SOURCE_TOKEN}
            if settings.BETTERSTACK_INGEST_HOST:
                handler_kwargs["host"] = settings.BETTERSTACK_INGEST_HOST
            # Logtail ships extra= fields as structured attributes on its own
            betterstack_handler = LogtailHandler(**handler_kwargs)
            betterstack_handler.setLevel(logging.DEBUG)
            root_logger.addHandler(betterstack_handler)
            host_info = settings.BETTERSTACK_INGEST_HOST or "default (in.logs.betterstack.com)"
            relay_logger.info(f"BetterStack logging enabled (host: {host_info})")
        except Exception as e:
            relay_logger.warning(f"Failed to initialize BetterStack logging: {e}")

    # Connectivity probes and collector posts are chatty at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    return relay_logger


logger = setup_logging()
