from __future__ import annotations

import logging
import re
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DEFAULT_LOG_MAX_BYTES = 10 * 1024 * 1024
DEFAULT_LOG_BACKUP_COUNT = 5

REDACTED = "[REDACTED]"

# Bearer runs first so "Authorization: Bearer <key>" loses both words.
SENSITIVE_PATTERNS = (
    re.compile(r"(bearer)\s+[^\s,}]+", re.IGNORECASE),
    re.compile(r"(api[_-]?key|authorization|password|token|secret)[:\s=]+[^\s,}]+", re.IGNORECASE),
)


def redact_secrets(text: str) -> str:
    """Replace credential-looking fragments with ``<label>: [REDACTED]``."""
    for pattern in SENSITIVE_PATTERNS:
        text = pattern.sub(lambda match: f"{match.group(1)}: {REDACTED}", text)
    return text


class RedactingFilter(logging.Filter):
    """Scrubs credentials from a record before any handler writes it.

    The message is merged with its arguments first, so a secret split
    between the format string and an argument is still caught.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        record.msg = redact_secrets(message)
        record.args = None
        return True


def build_log_handlers(
    log_file_path: Path | None = None,
    *,
    max_bytes: int = DEFAULT_LOG_MAX_BYTES,
    backup_count: int = DEFAULT_LOG_BACKUP_COUNT,
) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file_path is not None:
        log_file_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                log_file_path,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
        )

    formatter = logging.Formatter(LOG_FORMAT)
    redacting_filter = RedactingFilter()
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(redacting_filter)
    return handlers


def configure_logging(
    level: str = "INFO",
    log_file_path: Path | None = None,
    *,
    max_bytes: int = DEFAULT_LOG_MAX_BYTES,
    backup_count: int = DEFAULT_LOG_BACKUP_COUNT,
) -> None:
    logging.basicConfig(
        level=level,
        handlers=build_log_handlers(log_file_path, max_bytes=max_bytes, backup_count=backup_count),
    )
    # httpx logs full request URLs, and Telegram URLs embed the bot token.
    logging.getLogger("httpx").setLevel(logging.WARNING)
