from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import date, datetime
from pathlib import Path

from birthday_sms.date_logic import find_birthdays_on
from birthday_sms.models import PipelineResult, Record
from birthday_sms.roster import RosterUnreadableError, ingest_roster
from birthday_sms.settings import mask_mobile_number
from birthday_sms.sms_client import SmsClient

LOGGER = logging.getLogger(__name__)

NOTIFICATION_HEADER = "Birthday Alert! Today's birthdays:"


def format_notification(matches: Sequence[Record]) -> str:
    if not matches:
        return ""
    lines = [NOTIFICATION_HEADER]
    lines.extend(f"- {record.name}" for record in matches)
    return "\n".join(lines)


class BirthdayCheckService:
    """Runs one ingest, match and notify pass over the roster spreadsheet.

    ``run`` always returns a PipelineResult. Problems are reported in
    ``PipelineResult.errors`` instead of being raised.
    """

    def __init__(
        self,
        *,
        roster_path: Path,
        sms_client: SmsClient,
        recipient: str,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._roster_path = Path(roster_path)
        self._sms_client = sms_client
        self._recipient = recipient
        self._clock = clock or datetime.now

    async def run(self, now: date | None = None) -> PipelineResult:
        result = PipelineResult()
        try:
            target = now if now is not None else self._clock()
            if isinstance(target, datetime):
                target = target.date()
            result.target_date = target
            await self._run(target, result)
        except Exception as exc:
            message = f"Unexpected error during birthday check: {exc}"
            LOGGER.exception(message)
            result.errors.append(message)
        return result

    async def _run(self, target: date, result: PipelineResult) -> None:
        LOGGER.info("Starting birthday check for %s", target.isoformat())

        try:
            ingest = await ingest_roster(self._roster_path)
        except RosterUnreadableError as exc:
            message = f"Failed to read roster: {exc}"
            LOGGER.error(message)
            result.errors.append(message)
            return

        result.records_processed = len(ingest.records)
        result.skipped_rows = list(ingest.skipped)
        LOGGER.info("Loaded %s records from %s", result.records_processed, self._roster_path)

        matches = find_birthdays_on(ingest.records, target)
        result.matches = matches
        if not matches:
            LOGGER.info("No birthdays found for %s", target.isoformat())
            return

        LOGGER.info(
            "Found %s birthday(s): %s",
            len(matches),
            ", ".join(record.name for record in matches),
        )

        outcome = await self._sms_client.deliver(format_notification(matches), self._recipient)
        result.delivery = outcome
        if outcome.success:
            result.notification_sent = True
            LOGGER.info(
                "SMS notification sent to %s at %s (message id %s, %s attempt(s))",
                mask_mobile_number(self._recipient),
                outcome.timestamp.isoformat(),
                outcome.message_id,
                outcome.attempt_count,
            )
            return

        message = f"SMS notification failed: {outcome.error_description}"
        LOGGER.error("%s (after %s attempt(s))", message, outcome.attempt_count)
        result.errors.append(message)
