import pytest

from office_hours.models import OfficeHourIn
from office_hours.repository import InMemoryRepository


class FakeLLM:
    """Stands in for OfficeHoursLLM: replays canned fragments / completions."""

    def __init__(self, fragments=None, completion="", error=None, fail_after=None):
        self.fragments = list(fragments or [])
        self.completion = completion
        self.error = error
        self.fail_after = fail_after
        self.calls = []

    async def stream(self, system, raw_data):
        self.calls.append(("stream", system, raw_data))
        for i, fragment in enumerate(self.fragments):
            if self.error is not None and self.fail_after == i:
                raise self.error
            yield fragment
        if self.error is not None and self.fail_after is None:
            raise self.error

    async def complete(self, system, raw_data):
        self.calls.append(("complete", system, raw_data))
        if self.error is not None:
            raise self.error
        return self.completion


class FakeMailer:
    def __init__(self, error=None):
        self.sent = []
        self.error = error

    def send(self, messages):
        if self.error is not None:
            raise self.error
        self.sent.extend(messages)


PROF_LEE_FRAGMENTS = [
    '{"host": "Prof Lee", "day": "monday",',
    ' "start_time": "2:00 PM", "end_time": "3:00 PM",',
    ' "location": "MALA5200", "link": ""}',
]


@pytest.fixture
def repository():
    return InMemoryRepository()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def office_hour_in():
    return OfficeHourIn(
        course_id=42,
        host="Prof Lee",
        day="Monday",
        start_time="2:00 PM",
        end_time="3:00 PM",
        mode="In-person",
        location="MALA5200",
    )
