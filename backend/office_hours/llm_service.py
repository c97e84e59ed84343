import json
import logging
import re
from typing import Any, Awaitable, Callable, Dict, List, Optional

from office_hours.config import STREAM_RECORD_DELIMITER
from office_hours.llm import OfficeHoursLLM, create_batch_prompt, create_markdown_prompt, create_stream_prompt
from office_hours.models import ServiceResponse
from office_hours.normalize import format_office_hour
from office_hours.stream_parser import FENCE_RE, OfficeHourStreamParser, serialize_record

logger = logging.getLogger(__name__)

MARKDOWN_FENCE_RE = re.compile(r"```markdown\n?|\n?```")

Writer = Callable[[str], Awaitable[Any]]


# ============================================================
# STREAMING
# ============================================================
async def parse_office_hours_json_stream(
    course_id: int,
    raw_data: str,
    write: Writer,
    llm: OfficeHoursLLM,
    delimiter: Optional[str] = None,
) -> ServiceResponse:
    """
    Stream provisional office hour records to ``write`` while the model is
    still generating. Each write is one compact JSON object; later writes for
    the same record supersede earlier ones.
    """
    if delimiter is None:
        delimiter = STREAM_RECORD_DELIMITER

    parser = OfficeHourStreamParser(course_id)

    try:
        async for chunk in llm.stream(create_stream_prompt(), raw_data):
            records = parser.feed(chunk)
            if not parser.saw_content:
                # nothing but empty objects so far, however they were split
                continue
            for record in records:
                await write(serialize_record(record, delimiter))
    except Exception as e:
        logger.warning("Office hour stream for course %s failed: %s", course_id, e)
        return ServiceResponse.fail(str(e), None, 400)

    if not parser.saw_content:
        return ServiceResponse.fail("Invalid input data. Nothing to parse.", None, 400)

    if parser.buffer.text.strip():
        logger.info("Stream for course %s ended with an unfinished record", course_id)

    return ServiceResponse.succeed("Data parsed successfully.", None, 200)


# ============================================================
# ONE-SHOT
# ============================================================
def parse_model_json(response_content: str, course_id: int) -> List[Dict[str, Any]]:
    text = FENCE_RE.sub("", response_content or "")
    data = json.loads(text)
    if not isinstance(data, list):
        raise ValueError("Top-level JSON must be an array.")

    office_hours: List[Dict[str, Any]] = []
    for item in data:
        if not isinstance(item, dict):
            raise ValueError(f"Expected an object, got {type(item).__name__}")
        item["course_id"] = course_id
        item["complete"] = True
        office_hours.append(format_office_hour(item))
    return office_hours


async def parse_office_hours_json(course_id: int, raw_data: str, llm: OfficeHoursLLM) -> ServiceResponse:
    try:
        response = await llm.complete(create_batch_prompt(), raw_data)
        parsed = parse_model_json(response, course_id)
        return ServiceResponse.succeed("Successfully parsed office hours", parsed)
    except Exception as e:
        logger.error("Error parsing office hours: %s", e)
        return ServiceResponse.fail("Failed to parse office hours", None, 500)


async def parse_office_hours_text(raw_data: str, llm: OfficeHoursLLM) -> ServiceResponse:
    try:
        response = await llm.complete(create_markdown_prompt(), raw_data)
        return ServiceResponse.succeed("Successfully parsed office hours", MARKDOWN_FENCE_RE.sub("", response))
    except Exception as e:
        logger.error("Error parsing office hours: %s", e)
        return ServiceResponse.fail("Failed to parse office hours", None, 500)
