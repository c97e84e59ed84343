from typing import AsyncIterator, Dict, List

import openai

# ============================================================
# PROMPTS
# ============================================================
SCHEMA = """
{
    "host": string,
    "day": "sunday" | "monday" | "tuesday" | "wednesday" | "thursday" | "friday" | "saturday" (allow any casing),
    "start_time": "HH:mm PM/AM" (convert time to this format),
    "end_time": "HH:mm PM/AM" (convert time to this format),
    "location": string,
    "link": string,
}
""".strip()

FIELD_RULES = """
Location must be uppercase letters followed by numbers (e.g., MALA5200). Set as "INVALID" if not explicitly given in this format.
At least one of link or location must be provided. If only one is provided, set the other as "". If neither is provided, set both as "INVALID".
""".strip()


def create_stream_prompt() -> str:
    return f"""
Parse the given data into a jsonl format (no backtick delimiters) with this schema:
{SCHEMA}
{FIELD_RULES}
Return only valid JSON. Allow missing or incorrect data, simply set the value as "INVALID". Include as much information as possible. You should almost never return empty unless there is truly no information.
Return empty {{}} if there is no information.
""".strip()


def create_batch_prompt() -> str:
    return f"""
Parse the given data into a list of objects with this schema:
{SCHEMA}
{FIELD_RULES}
Return only valid JSON array. Allow missing or incorrect data, simply set the value as "INVALID". Include as much information as possible. You should almost never return empty unless there is truly no information.
""".strip()


def create_markdown_prompt() -> str:
    return """
Parse the given data into formatted markdown of office hours, looking for this data:
    "host": string (full legal name of the host),
    "day": "sunday" | "monday" | "tuesday" | "wednesday" | "thursday" | "friday" | "saturday" (allow any casing),
    "start_time": "HH:mm PM/AM" (convert time to this format),
    "end_time": "HH:mm PM/AM" (convert time to this format),
    "location": string,
    "link": string,

Look for the table header. If it has default values, make sure to apply them to all rows.
Make sure to format the markdown in an extremely readable format. Output the markdown only.
""".strip()


def user_message(raw_data: str) -> str:
    return f"Raw Data: {raw_data}"


# ============================================================
# CLIENT
# ============================================================
class OfficeHoursLLM:
    """Thin wrapper over the chat completions API so tests can swap in a fake."""

    def __init__(self, client: openai.AsyncOpenAI, model: str):
        self.client = client
        self.model = model

    def _messages(self, system: str, raw_data: str) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": system},
            {"role": "user", "content": user_message(raw_data)},
        ]

    async def stream(self, system: str, raw_data: str) -> AsyncIterator[str]:
        stream = await self.client.chat.completions.create(
            model=self.model,
            messages=self._messages(system, raw_data),
            stream=True,
        )
        async for chunk in stream:
            if not chunk.choices:
                continue
            content = chunk.choices[0].delta.content
            if content:
                yield content

    async def complete(self, system: str, raw_data: str) -> str:
        resp = await self.client.chat.completions.create(
            model=self.model,
            messages=self._messages(system, raw_data),
        )
        return (resp.choices[0].message.content or "").strip()
