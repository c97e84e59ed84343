from typing import Any, Generic, Literal, Optional, TypeVar

from pydantic import BaseModel, Field, field_validator

from office_hours.normalize import TIME_RE, WEEKDAYS, capitalize

T = TypeVar("T")


# ============================================================
# MODELS
# ============================================================
class OfficeHourIn(BaseModel):
    course_id: int
    host: str = Field(min_length=1)
    day: str
    start_time: str
    end_time: str
    mode: Literal["Remote", "In-person", "Hybrid"]
    location: str = ""
    link: str = ""

    @field_validator("day")
    @classmethod
    def check_day(cls, v: str) -> str:
        v = capitalize(v.strip())
        if v not in WEEKDAYS:
            raise ValueError(f"day must be one of {', '.join(WEEKDAYS)}")
        return v

    @field_validator("start_time", "end_time")
    @classmethod
    def check_time(cls, v: str) -> str:
        v = v.strip().upper()
        if not TIME_RE.match(v):
            raise ValueError("time must look like 2:00 PM")
        return v


class OfficeHour(OfficeHourIn):
    id: int
    user_id: str


class User(BaseModel):
    user_id: str
    email: str


class CourseIn(BaseModel):
    course_code: str = Field(min_length=1)
    title: str = Field(min_length=1)
    instructor: str = Field(min_length=1)


class Course(CourseIn):
    id: int


class FeedbackIn(BaseModel):
    rating: int = Field(ge=1, le=5)
    content: str = ""


class Feedback(FeedbackIn):
    id: int
    user_id: str


class ParseRequest(BaseModel):
    raw_data: str


class ServiceResponse(BaseModel, Generic[T]):
    success: bool
    message: str
    response_object: Optional[T] = None
    status_code: int = 200

    @classmethod
    def succeed(cls, message: str, response_object: Any = None, status_code: int = 200) -> "ServiceResponse":
        return cls(success=True, message=message, response_object=response_object, status_code=status_code)

    @classmethod
    def fail(cls, message: str, response_object: Any = None, status_code: int = 400) -> "ServiceResponse":
        return cls(success=False, message=message, response_object=response_object, status_code=status_code)


class DeleteResult(BaseModel):
    deleted_count: int
