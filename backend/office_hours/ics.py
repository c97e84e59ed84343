import base64
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from dateutil import parser as dt_parser
from icalendar import Calendar, Event, vRecur

from office_hours.config import CALENDAR_TIMEZONE, SEMESTER_WEEKS
from office_hours.models import OfficeHour
from office_hours.normalize import WEEKDAYS

# ============================================================
# ICS GENERATION
# ============================================================
WEEKDAY_INDEX = {name.lower(): i for i, name in enumerate(WEEKDAYS)}


def transform_time(day: str, time: str, now: Optional[datetime] = None) -> datetime:
    """
    Next occurrence of ``day`` at ``time`` strictly after today. An office hour
    on today's weekday starts a week out.
    """
    now = now or datetime.now(ZoneInfo(CALENDAR_TIMEZONE))
    target = WEEKDAY_INDEX[day.strip().lower()]
    delta = (target - now.weekday() + 7) % 7 or 7

    t = dt_parser.parse(time).time()
    date = now.date() + timedelta(days=delta)
    return datetime.combine(date, t, tzinfo=now.tzinfo)


def office_hours_to_ics(
    office_hours: Iterable[OfficeHour], calendar_name: str, now: Optional[datetime] = None
) -> bytes:
    tz = ZoneInfo(CALENDAR_TIMEZONE)
    now = now or datetime.now(tz)
    semester_end = now + timedelta(weeks=SEMESTER_WEEKS)

    cal = Calendar()
    cal.add("prodid", "-//Office Hours//example.com//")
    cal.add("version", "2.0")
    cal.add("x-wr-calname", calendar_name)
    cal.add("x-wr-timezone", CALENDAR_TIMEZONE)

    for oh in office_hours:
        e = Event()
        e.add("uid", f"office-hour-{oh.id}@office-hours")
        e.add("summary", f"{oh.host}'s Office Hours")
        e.add("dtstart", transform_time(oh.day, oh.start_time, now))
        e.add("dtend", transform_time(oh.day, oh.end_time, now))
        e.add("dtstamp", now.astimezone(timezone.utc))
        e.add("rrule", vRecur({"FREQ": "WEEKLY", "UNTIL": semester_end.astimezone(timezone.utc)}))

        mode = oh.mode.lower()
        if mode != "remote" and oh.location:
            e.add("location", oh.location)
        if mode != "in-person" and oh.link:
            e.add("url", oh.link)

        cal.add_component(e)

    return cal.to_ical()


def ics_data_url(ics_bytes: bytes) -> str:
    if not ics_bytes:
        raise ValueError("Empty calendar data.")
    return f"data:text/calendar;base64,{base64.b64encode(ics_bytes).decode('utf-8')}"
