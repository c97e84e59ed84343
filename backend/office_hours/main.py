import asyncio
import logging
from functools import lru_cache
from typing import List, Optional

import openai
from fastapi import Body, Depends, FastAPI, Header, Query, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from sendgrid import SendGridAPIClient

from office_hours.config import CORS_ORIGINS, LOG_LEVEL, MAIL_FROM, MODEL_NAME, OPENAI_API_KEY, SENDGRID_API_KEY
from office_hours.ics import office_hours_to_ics
from office_hours.llm import OfficeHoursLLM
from office_hours.llm_service import parse_office_hours_json, parse_office_hours_json_stream, parse_office_hours_text
from office_hours.logging_config import configure_logging
from office_hours.mailer import Mailer, SendGridMailer
from office_hours.models import CourseIn, FeedbackIn, OfficeHourIn, ParseRequest, ServiceResponse
from office_hours.repository import InMemoryRepository, OfficeHourRepository
from office_hours.service import OfficeHourService
from office_hours.user_service import CourseService, FeedbackService, UserService

configure_logging(LOG_LEVEL)
logger = logging.getLogger(__name__)

# ============================================================
# FASTAPI
# ============================================================
app = FastAPI(title="Office Hours API", version="2.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================
# DEPENDENCIES
# ============================================================
@lru_cache
def get_llm() -> OfficeHoursLLM:
    return OfficeHoursLLM(openai.AsyncOpenAI(api_key=OPENAI_API_KEY), MODEL_NAME)


@lru_cache
def get_repository() -> InMemoryRepository:
    return InMemoryRepository()


@lru_cache
def get_mailer() -> Mailer:
    return SendGridMailer(SendGridAPIClient(SENDGRID_API_KEY), MAIL_FROM)


def get_service(
    repository: OfficeHourRepository = Depends(get_repository),
    mailer: Mailer = Depends(get_mailer),
) -> OfficeHourService:
    return OfficeHourService(repository, mailer)


def get_user_service(repository: InMemoryRepository = Depends(get_repository)) -> UserService:
    return UserService(repository)


def get_course_service(repository: InMemoryRepository = Depends(get_repository)) -> CourseService:
    return CourseService(repository)


def get_feedback_service(repository: InMemoryRepository = Depends(get_repository)) -> FeedbackService:
    return FeedbackService(repository)


def get_user_id(x_user_id: str = Header(...)) -> str:
    # identity is established upstream by the auth provider
    return x_user_id


def parse_ids(ids: Optional[str]) -> Optional[List[int]]:
    if not ids:
        return None
    try:
        return [int(i) for i in ids.split(",") if i.strip()]
    except ValueError:
        return None


def handle_service_response(service_response: ServiceResponse) -> JSONResponse:
    return JSONResponse(
        status_code=service_response.status_code,
        content=service_response.model_dump(mode="json"),
    )


MISSING_IDS = ServiceResponse.fail("Missing query parameters", None, 400)


# ============================================================
# LLM ENDPOINTS
# ============================================================
@app.post("/llm/office-hours/{course_id}/stream")
async def stream_office_hours(course_id: int, body: ParseRequest, llm: OfficeHoursLLM = Depends(get_llm)):
    queue: asyncio.Queue = asyncio.Queue()
    done = object()

    async def run() -> ServiceResponse:
        try:
            return await parse_office_hours_json_stream(course_id, body.raw_data, queue.put, llm)
        finally:
            await queue.put(done)

    task = asyncio.create_task(run())
    first = await queue.get()
    if first is done:
        # nothing was written, so the outcome can still pick the status code
        return handle_service_response(await task)

    async def drain():
        item = first
        try:
            while item is not done:
                yield item
                item = await queue.get()
            outcome = await task
            if not outcome.success:
                logger.warning("Stream for course %s ended with failure: %s", course_id, outcome.message)
        finally:
            if not task.done():
                task.cancel()

    return StreamingResponse(drain(), media_type="text/plain")


@app.post("/llm/office-hours/{course_id}/parse")
async def parse_office_hours(course_id: int, body: ParseRequest, llm: OfficeHoursLLM = Depends(get_llm)):
    return handle_service_response(await parse_office_hours_json(course_id, body.raw_data, llm))


@app.post("/llm/office-hours/markdown")
async def parse_office_hours_markdown(body: ParseRequest, llm: OfficeHoursLLM = Depends(get_llm)):
    return handle_service_response(await parse_office_hours_text(body.raw_data, llm))


# ============================================================
# OFFICE HOUR ENDPOINTS
# ============================================================
@app.get("/office-hours")
def get_all_office_hours(service: OfficeHourService = Depends(get_service)):
    return handle_service_response(service.get_all())


@app.get("/office-hours/ical")
def get_ical_file_by_ids(ids: Optional[str] = Query(None), service: OfficeHourService = Depends(get_service)):
    office_hour_ids = parse_ids(ids)
    if office_hour_ids is None:
        return handle_service_response(MISSING_IDS)
    return handle_service_response(service.get_ical_file_by_ids(office_hour_ids))


@app.get("/office-hours/calendar.ics")
def download_ical_file(
    ids: Optional[str] = Query(None),
    repository: OfficeHourRepository = Depends(get_repository),
):
    office_hour_ids = parse_ids(ids)
    if office_hour_ids is None:
        return handle_service_response(MISSING_IDS)
    office_hours = repository.get_office_hours_by_ids(office_hour_ids)
    if not office_hours:
        return handle_service_response(ServiceResponse.fail("No office hours found", None, 404))

    return Response(
        content=office_hours_to_ics(office_hours, "Office Hours for Selected Classes"),
        media_type="text/calendar",
        headers={"Content-Disposition": 'attachment; filename="office_hours.ics"'},
    )


# ============================================================
# COURSE ENDPOINTS
# ============================================================
@app.get("/courses")
def get_all_courses(service: CourseService = Depends(get_course_service)):
    return handle_service_response(service.get_all())


@app.post("/courses")
def store_course(data: CourseIn, service: CourseService = Depends(get_course_service)):
    return handle_service_response(service.store_course(data))


@app.get("/courses/{course_id}")
def get_course(course_id: int, service: CourseService = Depends(get_course_service)):
    return handle_service_response(service.get_by_course_id(course_id))


# ============================================================
# USER ENDPOINTS
# ============================================================
@app.get("/users")
def get_all_users(service: UserService = Depends(get_user_service)):
    return handle_service_response(service.get_all())


@app.get("/users/me")
def get_user(user_id: str = Depends(get_user_id), service: UserService = Depends(get_user_service)):
    return handle_service_response(service.get_by_id(user_id))


@app.post("/users/me")
def store_user(
    x_user_email: str = Header(...),
    user_id: str = Depends(get_user_id),
    service: UserService = Depends(get_user_service),
):
    return handle_service_response(service.store_user(user_id, x_user_email))


@app.get("/users/me/courses")
def get_courses_by_user_id(user_id: str = Depends(get_user_id), service: CourseService = Depends(get_course_service)):
    return handle_service_response(service.get_courses_by_user_id(user_id))


@app.post("/users/me/courses/{course_id}")
def store_user_course(
    course_id: int,
    user_id: str = Depends(get_user_id),
    service: CourseService = Depends(get_course_service),
):
    return handle_service_response(service.store_user_course(user_id, course_id))


@app.delete("/users/me/courses/{course_id}")
def delete_user_course(
    course_id: int,
    user_id: str = Depends(get_user_id),
    service: CourseService = Depends(get_course_service),
):
    return handle_service_response(service.delete_user_course(user_id, course_id))


@app.post("/users/me/feedback")
def store_feedback(
    data: FeedbackIn,
    user_id: str = Depends(get_user_id),
    service: FeedbackService = Depends(get_feedback_service),
):
    return handle_service_response(service.store_feedback(data, user_id))


@app.get("/users/me/office-hours")
def get_office_hours_by_user_id(
    user_id: str = Depends(get_user_id), service: OfficeHourService = Depends(get_service)
):
    return handle_service_response(service.get_office_hours_by_user_id(user_id))


@app.get("/users/me/office-hours/ical")
def get_ical_file_by_user_id(user_id: str = Depends(get_user_id), service: OfficeHourService = Depends(get_service)):
    return handle_service_response(service.get_ical_file_by_user_id(user_id))


@app.post("/users/me/office-hours")
def store_office_hour(
    data: OfficeHourIn,
    user_id: str = Depends(get_user_id),
    service: OfficeHourService = Depends(get_service),
):
    return handle_service_response(service.store_office_hour(data, user_id))


@app.post("/users/me/office-hours/batch")
def store_list_office_hours(
    data: List[OfficeHourIn] = Body(...),
    user_id: str = Depends(get_user_id),
    service: OfficeHourService = Depends(get_service),
):
    return handle_service_response(service.store_list_office_hours(data, user_id))


@app.put("/users/me/office-hours/{office_hour_id}")
def update_office_hour(
    office_hour_id: int,
    data: OfficeHourIn,
    user_id: str = Depends(get_user_id),
    service: OfficeHourService = Depends(get_service),
):
    return handle_service_response(service.update_office_hour(office_hour_id, data, user_id))


@app.delete("/users/me/office-hours")
def delete_office_hours(
    ids: Optional[str] = Query(None),
    user_id: str = Depends(get_user_id),
    service: OfficeHourService = Depends(get_service),
):
    office_hour_ids = parse_ids(ids)
    if office_hour_ids is None:
        return handle_service_response(MISSING_IDS)
    return handle_service_response(service.delete_office_hours(office_hour_ids, user_id))


# ============================================================
# META
# ============================================================
@app.get("/")
async def root():
    return {
        "message": "Office Hours API",
        "version": "2.0.0",
        "endpoints": {
            "stream": "/llm/office-hours/{course_id}/stream (POST)",
            "parse": "/llm/office-hours/{course_id}/parse (POST)",
            "markdown": "/llm/office-hours/markdown (POST)",
            "office_hours": "/office-hours (GET)",
            "ical": "/office-hours/ical?ids=1,2 (GET)",
            "courses": "/courses (GET, POST)",
            "me": "/users/me (GET, POST)",
            "health": "/health (GET)",
            "docs": "/docs (GET)",
        },
    }


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "openai_configured": bool(OPENAI_API_KEY),
        "sendgrid_configured": bool(SENDGRID_API_KEY),
        "message": "Office Hours API is running",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=8001, reload=False)
