import re

# Guidance range for the qualification threshold, enforced before save
SCORE_THRESHOLD_MIN: int = 0
SCORE_THRESHOLD_MAX: int = 100
DEFAULT_SCORE_THRESHOLD: int = 60

# Lowercase URL-safe slug, 1–63 chars, no leading/trailing hyphen
SUBDOMAIN_PATTERN = re.compile(r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$")

# Spreadsheet id inside a Google Sheets URL (…/spreadsheets/d/<id>/edit)
SPREADSHEET_ID_PATTERN = re.compile(r"/d/([a-zA-Z0-9_-]+)")

GOOGLE_SHEETS_SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

# Query-string keys captured as campaign tracking parameters
UTM_PARAM_PREFIX: str = "utm_"

DRAFT_TOKEN_PREFIX: str = "draft:"

SHEET_TIMESTAMP_FORMAT: str = "%d/%m/%Y, %H:%M:%S"

# Option points and calculated_score are PostgreSQL INTEGER columns
PG_INT_MIN: int = -(2**31)
PG_INT_MAX: int = 2**31 - 1
