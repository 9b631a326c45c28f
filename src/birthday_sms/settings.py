from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path

from birthday_sms.logging_setup import DEFAULT_LOG_BACKUP_COUNT, DEFAULT_LOG_MAX_BYTES
from birthday_sms.sms_client import SmsGatewayConfig

MOBILE_NUMBER_PATTERN = re.compile(r"\+\d{10,15}")
LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class Settings:
    roster_path: Path
    recipient_mobile_number: str
    sms_api_url: str
    sms_api_key: str = field(repr=False)
    sms_sender_id: str
    daily_send_time: str = "09:00"
    log_level: str = "INFO"
    log_file_path: Path | None = None
    log_max_bytes: int = DEFAULT_LOG_MAX_BYTES
    log_max_files: int = DEFAULT_LOG_BACKUP_COUNT

    def sms_gateway(self) -> SmsGatewayConfig:
        return SmsGatewayConfig(
            api_url=self.sms_api_url,
            api_key=self.sms_api_key,
            sender_id=self.sms_sender_id,
        )


@dataclass(frozen=True)
class TelegramSettings:
    telegram_bot_token: str = field(repr=False)
    telegram_allowed_user_id: int
    telegram_allowed_chat_id: int


def _required_env(name: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        raise ValueError(f"Missing required environment variable: {name}")
    return value.strip()


def _optional_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def normalize_mobile_number(value: str) -> str:
    return re.sub(r"[\s-]", "", value)


def is_valid_mobile_number(value: str) -> bool:
    return MOBILE_NUMBER_PATTERN.fullmatch(normalize_mobile_number(value)) is not None


def mask_mobile_number(value: str) -> str:
    if not value or len(value) < 4:
        return "****"
    return f"{value[:3]}****{value[-2:]}"


def parse_daily_send_time(value: str) -> str:
    pieces = value.split(":")
    if len(pieces) != 2:
        raise ValueError("SCHEDULED_TIME must be in HH:MM format")

    hour, minute = pieces
    if not hour.isdigit() or not minute.isdigit():
        raise ValueError("SCHEDULED_TIME must contain numeric hour/minute")

    hour_i = int(hour)
    minute_i = int(minute)
    if hour_i < 0 or hour_i > 23 or minute_i < 0 or minute_i > 59:
        raise ValueError("SCHEDULED_TIME must be a valid 24-hour time")

    return f"{hour_i:02d}:{minute_i:02d}"


def parse_positive_int(name: str, value: str) -> int:
    if not value.isdigit() or int(value) < 1:
        raise ValueError(f"{name} must be a positive integer")
    return int(value)


def load_settings() -> Settings:
    problems: list[str] = []
    values: dict[str, str] = {}

    for name in (
        "EXCEL_FILE_PATH",
        "RECIPIENT_MOBILE_NUMBER",
        "SMS_API_URL",
        "SMS_API_KEY",
        "SMS_SENDER_ID",
    ):
        try:
            values[name] = _required_env(name)
        except ValueError as exc:
            problems.append(str(exc))

    recipient = normalize_mobile_number(values.get("RECIPIENT_MOBILE_NUMBER", ""))
    if "RECIPIENT_MOBILE_NUMBER" in values and not is_valid_mobile_number(recipient):
        problems.append(
            "RECIPIENT_MOBILE_NUMBER format is invalid. "
            "Expected +[country code][number] with 10-15 digits (e.g., +12345678901)"
        )

    daily_send_time = ""
    try:
        daily_send_time = parse_daily_send_time(_optional_env("SCHEDULED_TIME", "09:00"))
    except ValueError as exc:
        problems.append(str(exc))

    log_level = _optional_env("LOG_LEVEL", "INFO").upper()
    if log_level not in LOG_LEVELS:
        problems.append(f"LOG_LEVEL must be one of {sorted(LOG_LEVELS)}")

    log_file = _optional_env("LOG_FILE_PATH", "")
    log_limits: dict[str, int] = {}
    for name, default in (
        ("LOG_MAX_BYTES", DEFAULT_LOG_MAX_BYTES),
        ("LOG_MAX_FILES", DEFAULT_LOG_BACKUP_COUNT),
    ):
        try:
            log_limits[name] = parse_positive_int(name, _optional_env(name, str(default)))
        except ValueError as exc:
            problems.append(str(exc))

    if problems:
        raise ValueError(
            "Configuration validation failed:\n" + "\n".join(f"  - {problem}" for problem in problems)
        )

    return Settings(
        roster_path=Path(values["EXCEL_FILE_PATH"]),
        recipient_mobile_number=recipient,
        sms_api_url=values["SMS_API_URL"],
        sms_api_key=values["SMS_API_KEY"],
        sms_sender_id=values["SMS_SENDER_ID"],
        daily_send_time=daily_send_time,
        log_level=log_level,
        log_file_path=Path(log_file) if log_file else None,
        log_max_bytes=log_limits["LOG_MAX_BYTES"],
        log_max_files=log_limits["LOG_MAX_FILES"],
    )


def load_telegram_settings() -> TelegramSettings | None:
    """Return the bot settings, or None when no bot token is configured."""
    if not os.getenv("TELEGRAM_BOT_TOKEN", "").strip():
        return None
    return TelegramSettings(
        telegram_bot_token=_required_env("TELEGRAM_BOT_TOKEN"),
        telegram_allowed_user_id=int(_required_env("TELEGRAM_ALLOWED_USER_ID")),
        telegram_allowed_chat_id=int(_required_env("TELEGRAM_ALLOWED_CHAT_ID")),
    )
