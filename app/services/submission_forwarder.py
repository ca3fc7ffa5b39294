import json
import logging
from datetime import timezone
from typing import Any, List, Optional
from zoneinfo import ZoneInfo

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.core.config import settings
from app.core.constants import SHEET_TIMESTAMP_FORMAT, SPREADSHEET_ID_PATTERN
from app.core.exceptions import (
    FormNotFoundError,
    InvalidSheetUrlError,
    LeadScorerError,
    StoreFailureError,
)
from app.repositories.form_repository import FormRepository
from app.schemas.submission import ForwardResult, SubmissionRecord
from app.services.sheets_client import GoogleSheetsClient

logger = logging.getLogger(__name__)


def extract_spreadsheet_id(sheet_url: str) -> str:
    """Return the id in ``https://docs.google.com/spreadsheets/d/<id>/...``."""
    match = SPREADSHEET_ID_PATTERN.search(sheet_url or "")
    if match is None:
        raise InvalidSheetUrlError(f"No spreadsheet id in '{sheet_url}'")
    return match.group(1)


def build_sheet_row(record: SubmissionRecord, tz_name: str) -> List[Any]:
    """``[timestamp, form_id, score, submitted_data, utm_params]`` for one submission."""
    created_at = record.created_at
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    local_time = created_at.astimezone(ZoneInfo(tz_name))
    return [
        local_time.strftime(SHEET_TIMESTAMP_FORMAT),
        str(record.form_id),
        record.calculated_score,
        json.dumps(record.submitted_data, indent=2, ensure_ascii=False),
        json.dumps(record.utm_params, indent=2, ensure_ascii=False),
    ]


class SubmissionForwarder:
    """Relay stored submissions to the owning form's Google Sheet.

    Forwarding is best-effort and happens after the submission is
    committed: it is never on the respondent's path and is never retried.
    Forms without ``google_sheet_url`` are a successful no-op.

    The forwarder opens its own database session because it runs after
    the request that created the submission has finished.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        sheets_client: GoogleSheetsClient,
        sheet_range: Optional[str] = None,
        tz_name: Optional[str] = None,
    ) -> None:
        self._session_factory = session_factory
        self._sheets = sheets_client
        self._sheet_range = sheet_range or settings.GOOGLE_SHEETS_RANGE
        self._tz_name = tz_name or settings.SHEET_TIMEZONE

    async def forward(self, record: SubmissionRecord) -> ForwardResult:
        """Append *record* to its form's spreadsheet.

        Raises:
            FormNotFoundError: The submission's form no longer exists.
            StoreFailureError: The form lookup failed.
            InvalidSheetUrlError: The configured URL has no spreadsheet id.
            SheetForwardingError: The Sheets API call failed.
        """
        sheet_url = await self._lookup_sheet_url(record)
        if not sheet_url:
            logger.info(
                "Form %s has no spreadsheet configured; skipping forward",
                record.form_id,
            )
            return ForwardResult(
                forwarded=False,
                message="No spreadsheet configured for this form",
            )

        spreadsheet_id = extract_spreadsheet_id(sheet_url)
        await self._sheets.append_row(
            spreadsheet_id,
            self._sheet_range,
            build_sheet_row(record, self._tz_name),
        )
        logger.info(
            "Forwarded submission %s of form %s to spreadsheet %s",
            record.id,
            record.form_id,
            spreadsheet_id,
        )
        return ForwardResult(forwarded=True)

    async def forward_in_background(self, record: SubmissionRecord) -> None:
        """Background-task entry point: failures are logged, never raised.

        Nothing downstream of a finished request could act on the error,
        and the respondent must not see it.
        """
        try:
            await self.forward(record)
        except LeadScorerError as exc:
            logger.error(
                "Forwarding submission %s of form %s failed: %s",
                record.id,
                record.form_id,
                exc.detail,
            )
        except Exception:
            logger.exception(
                "Unexpected error forwarding submission %s of form %s",
                record.id,
                record.form_id,
            )

    async def _lookup_sheet_url(self, record: SubmissionRecord) -> Optional[str]:
        try:
            async with self._session_factory() as session:
                target = await FormRepository(session).get_sheet_target(record.form_id)
        except SQLAlchemyError as exc:
            logger.error("Sheet lookup failed for form %s: %s", record.form_id, exc)
            raise StoreFailureError("Could not look up the form's spreadsheet") from exc
        if target is None:
            raise FormNotFoundError(f"Form {record.form_id} not found")
        return target.google_sheet_url
