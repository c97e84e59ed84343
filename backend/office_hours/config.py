import os

from dotenv import load_dotenv

# ============================================================
# CONFIG
# ============================================================
load_dotenv()

MODEL_NAME = os.getenv("OPENAI_MODEL", "gpt-4o")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")

SENDGRID_API_KEY = os.getenv("SENDGRID_API_KEY")
MAIL_FROM = os.getenv("MAIL_FROM", "office-hours@example.com")

CALENDAR_TIMEZONE = os.getenv("CALENDAR_TIMEZONE", "America/New_York")
SEMESTER_WEEKS = int(os.getenv("SEMESTER_WEEKS", "15"))  # weekly events repeat this long

ESCAPES = {"\\n": "\n", "\\r": "\r", "\\t": "\t"}


def decode_delimiter(value: str) -> str:
    """Turn the escapes a .env file can hold (\\n, \\r, \\t) into real characters."""
    for escape, char in ESCAPES.items():
        value = value.replace(escape, char)
    return value


# Appended after every streamed record. Empty keeps the un-delimited wire format
# existing clients parse; "\n" turns the stream into NDJSON.
STREAM_RECORD_DELIMITER = decode_delimiter(os.getenv("STREAM_RECORD_DELIMITER", ""))

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
