import logging
from datetime import datetime
from typing import List, Optional

from office_hours.ics import ics_data_url, office_hours_to_ics
from office_hours.mailer import Mailer, build_update_notifications
from office_hours.models import DeleteResult, OfficeHour, OfficeHourIn, ServiceResponse
from office_hours.repository import OfficeHourRepository

logger = logging.getLogger(__name__)

ICAL_ERROR = "An error occurred while retrieving and storing office hours to ical file."
STORE_ERROR = "An error occurred while storing the office hours"


class OfficeHourService:
    def __init__(self, repository: OfficeHourRepository, mailer: Mailer):
        self.repository = repository
        self.mailer = mailer

    # ============================================================
    # QUERIES
    # ============================================================
    def get_all(self) -> ServiceResponse:
        try:
            office_hours = self.repository.get_all_office_hours()
        except Exception as e:
            logger.error("Error finding all office hours: %s", e)
            return ServiceResponse.fail("An error occurred while retrieving office hours.", None, 500)
        if not office_hours:
            return ServiceResponse.fail("No office hours found", None, 404)
        return ServiceResponse.succeed("Office hours found", office_hours)

    def get_office_hours_by_user_id(self, user_id: str) -> ServiceResponse:
        try:
            office_hours = self.repository.get_office_hours_by_user_id(user_id)
        except Exception as e:
            logger.error("Error finding office hours for user %s: %s", user_id, e)
            return ServiceResponse.fail("An error occurred while retrieving office hours.", None, 500)
        return ServiceResponse.succeed("Office hours found", office_hours)

    # ============================================================
    # CALENDAR
    # ============================================================
    def create_ical_events(
        self, office_hours: List[OfficeHour], calendar_name: str, now: Optional[datetime] = None
    ) -> ServiceResponse:
        if not office_hours:
            return ServiceResponse.fail("No office hours found", None, 404)
        try:
            url = ics_data_url(office_hours_to_ics(office_hours, calendar_name, now))
        except Exception as e:
            logger.error("Error in generating office hour ical file: %s", e)
            return ServiceResponse.fail(ICAL_ERROR, None, 500)
        return ServiceResponse.succeed("Office hours found", url)

    def get_ical_file_by_ids(self, office_hour_ids: List[int], now: Optional[datetime] = None) -> ServiceResponse:
        try:
            office_hours = self.repository.get_office_hours_by_ids(office_hour_ids)
        except Exception as e:
            logger.error("Error in generating office hour ical file by id: %s", e)
            return ServiceResponse.fail(ICAL_ERROR, None, 500)
        return self.create_ical_events(office_hours, "Office Hours for Selected Classes", now)

    def get_ical_file_by_user_id(self, user_id: str, now: Optional[datetime] = None) -> ServiceResponse:
        try:
            office_hours = self.repository.get_office_hours_by_user_id(user_id)
        except Exception as e:
            logger.error("Error in generating office hour ical file by user_id: %s", e)
            return ServiceResponse.fail(ICAL_ERROR, None, 500)
        return self.create_ical_events(office_hours, f"Office Hours for User {user_id}", now)

    # ============================================================
    # WRITES
    # ============================================================
    def store_office_hour(self, data: OfficeHourIn, user_id: str) -> ServiceResponse:
        try:
            office_hour = self.repository.store_office_hour(data, user_id)
            self.repository.store_user_course(user_id, office_hour.course_id)
        except Exception as e:
            logger.error("Error storing office hour: %s", e)
            return ServiceResponse.fail("An error occurred while storing the office hour", None, 500)
        return ServiceResponse.succeed("Office hour created successfully", office_hour)

    def store_list_office_hours(self, data: List[OfficeHourIn], user_id: str) -> ServiceResponse:
        if not data:
            return ServiceResponse.fail("No office hours to store", None, 400)
        try:
            office_hours = self.repository.store_list_office_hours(data, user_id)
            for course_id in {oh.course_id for oh in office_hours}:
                self.repository.store_user_course(user_id, course_id)
        except Exception as e:
            logger.error("Error storing office hours: %s", e)
            return ServiceResponse.fail(STORE_ERROR, None, 500)
        return ServiceResponse.succeed("Office hours created successfully", office_hours)

    def update_office_hour(self, office_hour_id: int, data: OfficeHourIn, user_id: str) -> ServiceResponse:
        try:
            office_hour = self.repository.update_office_hour(office_hour_id, data, user_id)
            if office_hour is None:
                return ServiceResponse.fail("Office hour not found", None, 404)
            students = self.repository.get_users_by_course_id(office_hour.course_id)
        except Exception as e:
            logger.error("Error updating office hour %s: %s", office_hour_id, e)
            return ServiceResponse.fail(STORE_ERROR, None, 500)

        if students:
            self.send_email_notification(students, office_hour)
        return ServiceResponse.succeed("Office hour updated successfully", office_hour)

    def send_email_notification(self, students, office_hour: OfficeHour) -> None:
        messages = build_update_notifications(students, office_hour)
        try:
            self.mailer.send(messages)
        except Exception as e:
            # update is already stored
            logger.error("Error sending update emails for office hour %s: %s", office_hour.id, e)
            return
        logger.info("Sent %d update emails for office hour %s", len(messages), office_hour.id)

    def delete_office_hours(self, office_hour_ids: List[int], user_id: str) -> ServiceResponse:
        try:
            deleted = self.repository.delete_office_hours(office_hour_ids, user_id)
        except Exception as e:
            logger.error("Error deleting office hours: %s", e)
            return ServiceResponse.fail(
                "An error occurred while deleting office hours", DeleteResult(deleted_count=0), 500
            )
        if deleted == 0:
            return ServiceResponse.fail("No office hours were found to delete", DeleteResult(deleted_count=0), 404)
        return ServiceResponse.succeed(
            f"Successfully deleted {deleted} office hours", DeleteResult(deleted_count=deleted)
        )
