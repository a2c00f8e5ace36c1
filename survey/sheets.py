"""
Google Sheets storage for survey transcripts.

One row per save. The structured survey columns are reserved for later
extraction and left blank; the raw transcript, summary and exit mode are
always filled in.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

import gspread
import requests
from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials
from gspread.exceptions import GSpreadException, WorksheetNotFound
from gspread.utils import rowcol_to_a1

from .config import Settings
from .errors import PersistenceError

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
TOKEN_URI = "https://oauth2.googleapis.com/token"

HEADER = [
    "Timestamp", "Session ID", "Duration (seconds)",
    "Role", "Team Size", "Location Setup", "Company Stage", "Industry Sector",
    "Project Management Tools", "Documentation Tools", "Communication Tools",
    "AI Usage", "Meeting Practices", "Main Pain Points", "Tool Satisfaction",
    "Looking to Change", "Raw Conversation", "Summary", "Exit Mode",
]

# Columns between "Duration" and "Raw Conversation"
_STRUCTURED_COLUMNS = HEADER.index("Raw Conversation") - HEADER.index("Role")

ABRUPT_MARKER = " [ABRUPT EXIT]"
AUTO_SAVE_MARKER = " [AUTO-SAVED]"


def build_summary(latest_response: str, is_abrupt_exit: bool = False, is_auto_save: bool = False) -> str:
    summary = latest_response or ""
    if is_abrupt_exit:
        summary += ABRUPT_MARKER
    if is_auto_save:
        summary += AUTO_SAVE_MARKER
    return summary


def exit_mode_label(is_abrupt_exit: bool, is_auto_save: bool) -> str:
    if is_abrupt_exit:
        return "abrupt"
    if is_auto_save:
        return "auto_save"
    return "normal"


@dataclass
class ConversationData:
    """One transcript save, as written to the sheet."""
    session_id: str
    messages: List[dict]
    duration: Optional[int] = None
    summary: str = ""
    exit_mode: str = "normal"
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def conversation_text(self) -> str:
        return "\n\n".join(f"{m.get('role', '')}: {m.get('content', '')}" for m in self.messages)

    def to_row(self) -> list:
        return [
            self.timestamp,
            self.session_id,
            self.duration if self.duration is not None else "",
            *([""] * _STRUCTURED_COLUMNS),
            self.conversation_text(),
            self.summary,
            self.exit_mode,
        ]


class SheetsStore:
    """Append-only access to the survey worksheet."""

    def __init__(self, worksheet: gspread.Worksheet):
        self.worksheet = worksheet

    @classmethod
    def from_settings(cls, settings: Settings) -> "SheetsStore":
        """
        Authorize with the service account and open the worksheet.

        Raises:
            ConfigurationError: sheets settings are incomplete
            PersistenceError: authorization or opening the sheet failed
        """
        settings.require_sheets()
        info = {
            "type": "service_account",
            "client_email": settings.sheets_client_email,
            "private_key": settings.sheets_private_key,
            "token_uri": TOKEN_URI,
        }
        try:
            creds = Credentials.from_service_account_info(info, scopes=SCOPES)
            gc = gspread.authorize(creds)
            spreadsheet = gc.open_by_key(settings.sheets_spreadsheet_id)
            try:
                worksheet = spreadsheet.worksheet(settings.sheets_worksheet)
            except WorksheetNotFound:
                worksheet = spreadsheet.add_worksheet(
                    title=settings.sheets_worksheet, rows=1, cols=len(HEADER)
                )
        except (GSpreadException, GoogleAuthError, requests.RequestException, ValueError) as e:
            print(f"Error opening Google Sheet: {e}")
            raise PersistenceError("Failed to open Google Sheets", details=str(e))
        return cls(worksheet)

    def initialize(self):
        """(Re)write the header row. Safe to call before every save."""
        header_range = f"A1:{rowcol_to_a1(1, len(HEADER))}"
        try:
            self.worksheet.update(range_name=header_range, values=[HEADER])
        except (GSpreadException, requests.RequestException) as e:
            print(f"Error initializing sheet: {e}")
            raise PersistenceError("Failed to initialize Google Sheets", details=str(e))

    def append(self, data: ConversationData):
        try:
            self.worksheet.append_row(data.to_row(), value_input_option="RAW")
        except (GSpreadException, requests.RequestException) as e:
            print(f"Error saving to Google Sheets: {e}")
            raise PersistenceError("Failed to save to Google Sheets", details=str(e))
