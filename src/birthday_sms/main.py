from __future__ import annotations

import asyncio
import logging
from datetime import datetime, time

from dotenv import load_dotenv
from telegram.ext import Application, CallbackContext
from tzlocal import get_localzone

from birthday_sms.birthday_service import BirthdayCheckService
from birthday_sms.bot_handlers import CheckRunner, HandlerDependencies, build_handlers, log_result_summary
from birthday_sms.logging_setup import configure_logging
from birthday_sms.scheduler import DAILY_JOB_ID, run_scheduler
from birthday_sms.settings import Settings, load_settings, load_telegram_settings, mask_mobile_number
from birthday_sms.sms_client import SmsClient

LOGGER = logging.getLogger(__name__)


def build_service(settings: Settings) -> BirthdayCheckService:
    return BirthdayCheckService(
        roster_path=settings.roster_path,
        sms_client=SmsClient(settings.sms_gateway()),
        recipient=settings.recipient_mobile_number,
    )


def parse_time_string(value: str) -> tuple[int, int]:
    hour, minute = value.split(":")
    return int(hour), int(minute)


async def scheduled_check_callback(context: CallbackContext) -> None:
    runner: CheckRunner = context.application.bot_data["check_runner"]
    LOGGER.info("Scheduled birthday check triggered at %s", datetime.now().astimezone().isoformat())
    await runner.run()


def _setup(settings: Settings) -> None:
    configure_logging(
        settings.log_level,
        settings.log_file_path,
        max_bytes=settings.log_max_bytes,
        backup_count=settings.log_max_files,
    )
    LOGGER.info("Roster file: %s", settings.roster_path)
    LOGGER.info("Recipient: %s", mask_mobile_number(settings.recipient_mobile_number))
    LOGGER.info("SMS gateway: %s (sender %s)", settings.sms_api_url, settings.sms_sender_id)


def run_once() -> int:
    load_dotenv()
    settings = load_settings()
    _setup(settings)

    result = asyncio.run(build_service(settings).run())
    log_result_summary(result)
    return 1 if result.errors else 0


def main() -> None:
    load_dotenv()
    settings = load_settings()
    telegram_settings = load_telegram_settings()
    _setup(settings)

    # A named zone keeps the wall-clock send time across DST changes.
    local_tz = get_localzone()
    runner = CheckRunner(build_service(settings))

    if telegram_settings is None:
        LOGGER.info("TELEGRAM_BOT_TOKEN not set; running daily checks without the bot")
        asyncio.run(run_scheduler(runner, settings.daily_send_time, local_tz))
        return

    hour, minute = parse_time_string(settings.daily_send_time)
    application = Application.builder().token(telegram_settings.telegram_bot_token).build()
    application.bot_data["check_runner"] = runner
    application.bot_data["handler_deps"] = HandlerDependencies(settings=telegram_settings, runner=runner)

    for handler in build_handlers():
        application.add_handler(handler)

    application.job_queue.run_daily(
        scheduled_check_callback,
        time=time(hour=hour, minute=minute, tzinfo=local_tz),
        name=DAILY_JOB_ID,
    )
    LOGGER.info("Daily birthday checks scheduled at %s (%s)", settings.daily_send_time, local_tz)

    application.run_polling()


if __name__ == "__main__":
    main()
