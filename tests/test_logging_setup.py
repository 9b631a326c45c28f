import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from birthday_sms.logging_setup import RedactingFilter, build_log_handlers, redact_secrets


def _record(msg: str, *args: object) -> logging.LogRecord:
    return logging.LogRecord("birthday_sms.test", logging.INFO, __file__, 1, msg, args, None)


def test_redact_secrets_masks_credential_fragments() -> None:
    assert redact_secrets("api_key=sk-live-123 sent") == "api_key: [REDACTED] sent"
    assert redact_secrets("API-KEY: sk-live-123") == "API-KEY: [REDACTED]"
    assert redact_secrets("password=hunter2, user=alice") == "password: [REDACTED], user=alice"
    assert redact_secrets("secret: abc token=xyz") == "secret: [REDACTED] token: [REDACTED]"
    assert "sk-live-123" not in redact_secrets("Authorization: Bearer sk-live-123")


def test_redact_secrets_leaves_plain_text_alone() -> None:
    message = "Parsing complete: 12 valid records, 1 rows skipped"
    assert redact_secrets(message) == message


def test_filter_redacts_secrets_passed_as_arguments() -> None:
    record = _record("Sending with %s", "Bearer sk-live-123")

    assert RedactingFilter().filter(record) is True
    assert record.getMessage() == "Sending with Bearer: [REDACTED]"


def test_filter_redacts_dict_arguments() -> None:
    record = _record("gateway %(auth)s", {"auth": "token=abc"})

    RedactingFilter().filter(record)

    assert record.getMessage() == "gateway token: [REDACTED]"


def test_build_log_handlers_without_file_only_streams() -> None:
    handlers = build_log_handlers()

    assert len(handlers) == 1
    assert not isinstance(handlers[0], RotatingFileHandler)


def test_rotating_file_log_is_redacted_and_rotates(tmp_path: Path) -> None:
    log_path = tmp_path / "logs" / "birthday-sms.log"
    handlers = build_log_handlers(log_path, max_bytes=200, backup_count=2)
    logger = logging.getLogger("birthday_sms.test_rotation")
    logger.propagate = False
    logger.setLevel(logging.INFO)
    for handler in handlers[1:]:
        logger.addHandler(handler)

    try:
        logger.info("SMS key api_key=sk-live-123")
        for index in range(20):
            logger.info("Row %s: missing name, skipping row", index)
    finally:
        for handler in handlers:
            logger.removeHandler(handler)
            handler.close()

    file_handler = handlers[1]
    assert isinstance(file_handler, RotatingFileHandler)
    written = sorted(path.name for path in log_path.parent.iterdir())
    assert written == ["birthday-sms.log", "birthday-sms.log.1", "birthday-sms.log.2"]
    contents = "".join(path.read_text(encoding="utf-8") for path in log_path.parent.iterdir())
    assert "sk-live-123" not in contents
