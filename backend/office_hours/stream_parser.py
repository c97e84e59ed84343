"""
Incremental parser for office hour JSON streamed by the model.

Model tokens never line up with JSON tokens, so after every fragment the
accumulated buffer is patched with a small closing suffix and parsed. When the
patch works the client gets a provisional record (``complete: false``) right
away; when it does not, nothing is emitted and the next fragment tries again.

    parser = OfficeHourStreamParser(course_id=7)
    for fragment in fragments:
        for record in parser.feed(fragment):
            send(record)
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from office_hours.normalize import format_office_hour

logger = logging.getLogger(__name__)

FENCE_RE = re.compile(r"```json\n?|\n?```")

_decoder = json.JSONDecoder()


# ============================================================
# SANITIZER
# ============================================================
def clean_json_fragment(fragment: str) -> str:
    """Drop ```json fences and the first newline left in the fragment."""
    return FENCE_RE.sub("", fragment).replace("\n", "", 1)


# ============================================================
# CLOSERS
# ============================================================
# A closer looks at the tail of the buffer and returns the text to seal with the
# bookkeeping fields (ending on a key/value boundary), or None when its suffix
# pattern does not apply.
Closer = Callable[[str], Optional[str]]


def close_after_value(text: str) -> Optional[str]:
    # ..."day": "monday",
    if text.endswith('",'):
        return text
    return None


def close_dangling_key(text: str) -> Optional[str]:
    # ..."day": "monday","   (next key just opened)
    if text.endswith('","'):
        return text[:-1]
    return None


def close_open_string(text: str) -> Optional[str]:
    # ..."host": "Prof Le   (value still being written)
    try:
        json.loads(text + '"}')
    except ValueError:
        return None
    return text + '",'


DEFAULT_CLOSERS: Tuple[Closer, ...] = (close_after_value, close_dangling_key, close_open_string)


def seal(base: str, is_new: bool) -> str:
    base += '"complete": false'
    if is_new:
        base += ', "new": true'
    return base + "}"


def complete_json_fragment(text: str, is_new: bool, closers: Sequence[Closer] = DEFAULT_CLOSERS) -> str:
    """
    Return ``text`` closed into a provisional JSON object, or ``text`` itself
    when none of the closers recognise its tail.
    """
    for closer in closers:
        base = closer(text)
        if base is not None:
            return seal(base, is_new)
    return text


# ============================================================
# FINALIZER
# ============================================================
def process_parsed_json(parsed: Dict[str, Any], course_id: int, is_new: bool = False) -> Dict[str, Any]:
    parsed["course_id"] = course_id

    if parsed.get("complete") is not False:
        parsed["complete"] = True

    if parsed.get("new") is not True:
        parsed["new"] = is_new

    return format_office_hour(parsed)


# ============================================================
# BUFFER
# ============================================================
BOOKKEEPING_FIELDS = {"complete", "new", "course_id"}


def has_content(parsed: Dict[str, Any]) -> bool:
    """True when the model wrote at least one schema field, not just ``{}``."""
    return any(key not in BOOKKEEPING_FIELDS for key in parsed)


@dataclass
class PartialRecordBuffer:
    text: str = ""
    is_continuation: bool = False

    def reset(self, text: str = "") -> None:
        self.text = text
        self.is_continuation = False

    def drop_preamble(self) -> None:
        # every record starts at "{"; anything before it is fence or tag debris
        # ("json" left over when the fence arrived as separate tokens)
        start = self.text.find("{")
        self.text = self.text[start:] if start != -1 else ""


class OfficeHourStreamParser:
    """Owns one request's buffer. Not shared between requests."""

    def __init__(self, course_id: int, closers: Sequence[Closer] = DEFAULT_CLOSERS):
        self.course_id = course_id
        self.closers = tuple(closers)
        self.buffer = PartialRecordBuffer()
        self.saw_content = False

    def feed(self, fragment: str) -> List[Dict[str, Any]]:
        self.buffer.text += clean_json_fragment(fragment)

        records: List[Dict[str, Any]] = []
        while True:
            self.buffer.drop_preamble()
            record = self._next_record()
            if record is None:
                break
            records.append(record)
            if not record["complete"] or not self.buffer.text.strip():
                break
        return records

    def _next_record(self) -> Optional[Dict[str, Any]]:
        finished = self._take_finished_object()
        if finished is not None:
            return finished

        candidate = complete_json_fragment(self.buffer.text, not self.buffer.is_continuation, self.closers)
        if candidate == self.buffer.text:
            return None
        try:
            parsed = json.loads(candidate)
        except ValueError:
            logger.debug("Deferring unparseable buffer: %r", candidate[-40:])
            return None
        if not isinstance(parsed, dict):
            return None

        self.saw_content = self.saw_content or has_content(parsed)
        record = process_parsed_json(parsed, self.course_id)
        self._advance(record, self.buffer.text)
        return record

    def _take_finished_object(self) -> Optional[Dict[str, Any]]:
        text = self.buffer.text
        try:
            parsed, end = _decoder.raw_decode(text)
        except ValueError:
            return None
        if not isinstance(parsed, dict):
            return None

        self.saw_content = self.saw_content or has_content(parsed)
        record = process_parsed_json(parsed, self.course_id, is_new=not self.buffer.is_continuation)
        self._advance(record, text[end:])
        return record

    def _advance(self, record: Dict[str, Any], rest: str) -> None:
        if record["complete"]:
            self.buffer.reset(rest)
        else:
            self.buffer.is_continuation = True


def serialize_record(record: Dict[str, Any], delimiter: str = "") -> str:
    return json.dumps(record, separators=(",", ":")) + delimiter
