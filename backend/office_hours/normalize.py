import re
from typing import Any, Dict

from pydantic import AnyUrl, TypeAdapter, ValidationError

# ============================================================
# FIELD RULES
# ============================================================
INVALID = "INVALID"

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
MODES = ["Remote", "In-person", "Hybrid"]

TIME_RE = re.compile(r"^(0?[1-9]|1[0-2]):[0-5][0-9] (AM|PM)$")
LOCATION_RE = re.compile(r"^[A-Z]+[0-9]+$")  # building code + room, e.g. MALA5200

_url_adapter = TypeAdapter(AnyUrl)


def capitalize(word: str) -> str:
    return word[:1].upper() + word[1:].lower()


def is_valid_time(value: Any) -> bool:
    return isinstance(value, str) and bool(TIME_RE.match(value))


def is_valid_location(value: Any) -> bool:
    return isinstance(value, str) and bool(LOCATION_RE.match(value))


def is_valid_url(value: Any) -> bool:
    if not isinstance(value, str) or not value:
        return False
    try:
        _url_adapter.validate_python(value)
    except ValidationError:
        return False
    return True


def derive_mode(location: str, link: str, complete: bool) -> str:
    if link:
        return "Hybrid" if location else "Remote"
    if location:
        return "In-person"
    return INVALID if complete else ""


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


# ============================================================
# FORMAT + VALIDATE
# ============================================================
def validate_office_hour(office_hour: Dict[str, Any]) -> Dict[str, Any]:
    """
    Replace fields that break their rule with INVALID, but only on complete
    records. While a record is still streaming the raw values are left alone
    so previews show what the model has written so far.
    """
    complete = bool(office_hour.get("complete"))

    def reject(field: str) -> None:
        if complete:
            office_hour[field] = INVALID

    host = office_hour.get("host")
    if not isinstance(host, str) or not host.strip():
        reject("host")

    if office_hour.get("day") not in WEEKDAYS:
        reject("day")

    for field in ("start_time", "end_time"):
        if not is_valid_time(office_hour.get(field)):
            reject(field)

    mode = office_hour.get("mode")
    if mode == "Remote":
        if not is_valid_url(office_hour.get("link")):
            reject("link")
        office_hour["location"] = ""
    elif mode == "In-person":
        if not is_valid_location(office_hour.get("location")):
            reject("location")
        office_hour["link"] = ""
    elif mode == "Hybrid":
        if not is_valid_url(office_hour.get("link")):
            reject("link")
        if not is_valid_location(office_hour.get("location")):
            reject("location")

    return office_hour


def format_office_hour(office_hour: Dict[str, Any]) -> Dict[str, Any]:
    """Normalize casing, derive mode, then validate. Mutates and returns the dict."""
    host = _text(office_hour.get("host"))
    office_hour["host"] = " ".join(capitalize(word) for word in host.split(" "))
    office_hour["day"] = capitalize(_text(office_hour.get("day")))
    office_hour["link"] = _text(office_hour.get("link"))
    office_hour["location"] = _text(office_hour.get("location"))
    office_hour["mode"] = derive_mode(
        office_hour["location"], office_hour["link"], bool(office_hour.get("complete"))
    )
    office_hour["start_time"] = _text(office_hour.get("start_time")).upper()
    office_hour["end_time"] = _text(office_hour.get("end_time")).upper()

    return validate_office_hour(office_hour)
