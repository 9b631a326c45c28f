from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from datetime import date

from telegram import Update
from telegram.ext import CallbackContext, CommandHandler

from birthday_sms.birthday_service import BirthdayCheckService
from birthday_sms.models import PipelineResult
from birthday_sms.settings import TelegramSettings

LOGGER = logging.getLogger(__name__)


class CheckRunner:
    """Serializes birthday checks coming from the schedule and from /check."""

    def __init__(self, service: BirthdayCheckService) -> None:
        self._service = service
        self._lock = asyncio.Lock()
        self.last_result: PipelineResult | None = None

    async def run(self, now: date | None = None) -> PipelineResult:
        async with self._lock:
            result = await self._service.run(now)
            self.last_result = result
        log_result_summary(result)
        return result


@dataclass(frozen=True)
class HandlerDependencies:
    settings: TelegramSettings
    runner: CheckRunner


def is_authorized(update: Update, settings: TelegramSettings) -> bool:
    effective_user = update.effective_user
    effective_chat = update.effective_chat
    if effective_user is None or effective_chat is None:
        return False
    return (
        effective_user.id == settings.telegram_allowed_user_id
        and effective_chat.id == settings.telegram_allowed_chat_id
    )


async def _deny_unauthorized(update: Update) -> None:
    if update.effective_message:
        await update.effective_message.reply_text("This bot is restricted to its configured owner.")


def parse_check_date(args: list[str]) -> date | None:
    if not args:
        return None

    value = " ".join(args).strip()
    match = re.fullmatch(r"(\d{4})-(\d{2})-(\d{2})", value)
    if not match:
        raise ValueError("Date must use YYYY-MM-DD")
    return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))


def render_result_summary(result: PipelineResult) -> str:
    target = result.target_date.isoformat() if result.target_date else "(unknown date)"
    lines = [
        f"Birthday check for {target}",
        f"Records processed: {result.records_processed}",
    ]
    if result.skipped_rows:
        lines.append(f"Rows skipped: {len(result.skipped_rows)}")

    if result.matches:
        lines.append(f"Birthdays ({len(result.matches)}):")
        lines.extend(f"- {record.name}" for record in result.matches)
    else:
        lines.append("Birthdays: none")

    if result.notification_sent and result.delivery is not None:
        lines.append(
            f"Notification: sent (message id {result.delivery.message_id}, "
            f"attempts {result.delivery.attempt_count})"
        )
    else:
        lines.append("Notification: not sent")

    for error in result.errors:
        lines.append(f"Error: {error}")
    return "\n".join(lines)


def log_result_summary(result: PipelineResult) -> None:
    LOGGER.info(
        "Birthday check complete: %s records, %s birthday(s), notification sent: %s",
        result.records_processed,
        len(result.matches),
        "yes" if result.notification_sent else "no",
    )
    if result.errors:
        LOGGER.warning("Birthday check finished with %s error(s)", len(result.errors))


def _render_help() -> str:
    return (
        "Commands:\n"
        "/check - Run the birthday check for today now\n"
        "/check YYYY-MM-DD - Run the birthday check for another day\n"
        "/last - Show the result of the most recent check\n"
        "/help - Show this help message\n\n"
        "A single SMS is sent whenever the check finds birthdays."
    )


async def help_command(update: Update, context: CallbackContext) -> None:
    deps: HandlerDependencies = context.application.bot_data["handler_deps"]
    if not is_authorized(update, deps.settings):
        await _deny_unauthorized(update)
        return
    await update.effective_message.reply_text(_render_help())


async def check_command(update: Update, context: CallbackContext) -> None:
    deps: HandlerDependencies = context.application.bot_data["handler_deps"]
    if not is_authorized(update, deps.settings):
        await _deny_unauthorized(update)
        return

    try:
        target = parse_check_date(list(context.args or []))
    except ValueError as exc:
        await update.effective_message.reply_text(f"{exc}. Send /check or /check YYYY-MM-DD.")
        return

    LOGGER.info("Manual birthday check triggered")
    await update.effective_message.reply_text("Running birthday check...")
    result = await deps.runner.run(target)
    await update.effective_message.reply_text(render_result_summary(result))


async def last_command(update: Update, context: CallbackContext) -> None:
    deps: HandlerDependencies = context.application.bot_data["handler_deps"]
    if not is_authorized(update, deps.settings):
        await _deny_unauthorized(update)
        return

    result = deps.runner.last_result
    if result is None:
        await update.effective_message.reply_text("No birthday check has run since startup.")
        return
    await update.effective_message.reply_text(render_result_summary(result))


def build_handlers() -> list:
    return [
        CommandHandler("help", help_command),
        CommandHandler("start", help_command),
        CommandHandler("check", check_command),
        CommandHandler("last", last_command),
    ]
