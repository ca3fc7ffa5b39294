import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from app.core.config import settings
from app.core.constants import GOOGLE_SHEETS_SCOPES
from app.core.exceptions import SheetForwardingError

logger = logging.getLogger(__name__)


class GoogleSheetsClient:
    """Append rows to Google Sheets as a service account.

    The discovery client is synchronous, so every call runs in a worker
    thread.  The service is built lazily on first use; a missing or
    unreadable credential surfaces as :class:`SheetForwardingError`.
    """

    def __init__(
        self,
        service_account_info: Optional[Dict[str, Any]] = None,
        service: Any = None,
    ) -> None:
        self._service_account_info = service_account_info
        self._service = service

    @classmethod
    def from_settings(cls) -> "GoogleSheetsClient":
        info = None
        if settings.GOOGLE_SERVICE_ACCOUNT_JSON:
            try:
                info = json.loads(settings.GOOGLE_SERVICE_ACCOUNT_JSON)
            except json.JSONDecodeError:
                logger.error("GOOGLE_SERVICE_ACCOUNT_JSON is not valid JSON")
        return cls(service_account_info=info)

    def _get_service(self) -> Any:
        if self._service is not None:
            return self._service
        if not self._service_account_info:
            raise SheetForwardingError("Google service account is not configured")
        try:
            credentials = service_account.Credentials.from_service_account_info(
                self._service_account_info, scopes=GOOGLE_SHEETS_SCOPES
            )
        except (ValueError, GoogleAuthError) as exc:
            raise SheetForwardingError("Google service account is invalid") from exc
        self._service = build(
            "sheets", "v4", credentials=credentials, cache_discovery=False
        )
        return self._service

    async def append_row(
        self, spreadsheet_id: str, range_: str, values: List[Any]
    ) -> Dict[str, Any]:
        """Append one row after the last row of *range_*."""
        return await asyncio.to_thread(
            self._append_row_sync, spreadsheet_id, range_, values
        )

    def _append_row_sync(
        self, spreadsheet_id: str, range_: str, values: List[Any]
    ) -> Dict[str, Any]:
        service = self._get_service()
        try:
            return (
                service.spreadsheets()
                .values()
                .append(
                    spreadsheetId=spreadsheet_id,
                    range=range_,
                    valueInputOption="USER_ENTERED",
                    body={"values": [values]},
                )
                .execute()
            )
        except HttpError as exc:
            logger.error(
                "Sheets API returned %s for spreadsheet %s",
                exc.resp.status,
                spreadsheet_id,
            )
            raise SheetForwardingError(
                f"Google Sheets API returned {exc.resp.status}"
            ) from exc
        except GoogleAuthError as exc:
            raise SheetForwardingError("Google authentication failed") from exc
