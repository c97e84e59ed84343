import logging

from office_hours.models import CourseIn, FeedbackIn, ServiceResponse
from office_hours.repository import CourseRepository, FeedbackRepository, UserRepository

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, repository: UserRepository):
        self.repository = repository

    def get_all(self) -> ServiceResponse:
        try:
            users = self.repository.get_all_users()
        except Exception as e:
            logger.error("Error finding all users: %s", e)
            return ServiceResponse.fail("An error occurred while retrieving users.", None, 500)
        if not users:
            return ServiceResponse.fail("No Users found", None, 404)
        return ServiceResponse.succeed("Users found", users)

    def get_by_id(self, user_id: str) -> ServiceResponse:
        try:
            user = self.repository.get_user(user_id)
        except Exception as e:
            logger.error("Error finding user %s: %s", user_id, e)
            return ServiceResponse.fail("An error occurred while finding user.", None, 500)
        if user is None:
            return ServiceResponse.fail("User not found", None, 404)
        return ServiceResponse.succeed("User found", user)

    def store_user(self, user_id: str, email: str) -> ServiceResponse:
        if not email:
            return ServiceResponse.fail("No email found for user", None, 400)
        try:
            user = self.repository.store_user(user_id, email)
        except Exception as e:
            logger.error("Error storing user %s: %s", user_id, e)
            return ServiceResponse.fail("An error occurred while storing user.", None, 500)
        return ServiceResponse.succeed("User stored", user)


class CourseService:
    """Course catalog and per-user enrollment."""

    def __init__(self, repository: CourseRepository):
        self.repository = repository

    def get_all(self) -> ServiceResponse:
        try:
            courses = self.repository.get_all_courses()
        except Exception as e:
            logger.error("Error finding all courses: %s", e)
            return ServiceResponse.fail("An error occurred while retrieving courses.", None, 500)
        if not courses:
            return ServiceResponse.fail("No Courses found", None, 404)
        return ServiceResponse.succeed("Courses found", courses)

    def get_by_course_id(self, course_id: int) -> ServiceResponse:
        try:
            course = self.repository.get_course_by_id(course_id)
        except Exception as e:
            logger.error("Error finding course %s: %s", course_id, e)
            return ServiceResponse.fail("An error occurred while finding course.", None, 500)
        if course is None:
            return ServiceResponse.fail("Course not found", None, 404)
        return ServiceResponse.succeed("Course found", course)

    def get_courses_by_user_id(self, user_id: str) -> ServiceResponse:
        try:
            courses = self.repository.get_courses_by_user_id(user_id)
        except Exception as e:
            logger.error("Error finding courses for user %s: %s", user_id, e)
            return ServiceResponse.fail("An error occurred while retrieving user's courses.", None, 500)
        return ServiceResponse.succeed("Courses found", courses)

    def store_course(self, data: CourseIn) -> ServiceResponse:
        try:
            course = self.repository.store_course(data)
        except Exception as e:
            logger.error("Error storing course %s: %s", data.course_code, e)
            return ServiceResponse.fail("An error occurred while storing course.", None, 500)
        return ServiceResponse.succeed("Course stored successfully", course)

    def store_user_course(self, user_id: str, course_id: int) -> ServiceResponse:
        try:
            self.repository.store_user_course(user_id, course_id)
        except Exception as e:
            logger.error("Error enrolling %s in course %s: %s", user_id, course_id, e)
            return ServiceResponse.fail("Failed to store user course", None, 500)
        return ServiceResponse.succeed("User course stored successfully", {"user_id": user_id, "course_id": course_id})

    def delete_user_course(self, user_id: str, course_id: int) -> ServiceResponse:
        try:
            deleted = self.repository.delete_user_course(user_id, course_id)
        except Exception as e:
            logger.error("Error removing %s from course %s: %s", user_id, course_id, e)
            return ServiceResponse.fail("Failed to delete user course", None, 500)
        if not deleted:
            return ServiceResponse.fail("User course not found", None, 404)
        return ServiceResponse.succeed("User course deleted successfully", None)


class FeedbackService:
    def __init__(self, repository: FeedbackRepository):
        self.repository = repository

    def store_feedback(self, data: FeedbackIn, user_id: str) -> ServiceResponse:
        try:
            feedback = self.repository.store_feedback(data, user_id)
        except Exception as e:
            logger.error("Error storing feedback from %s: %s", user_id, e)
            return ServiceResponse.fail("An error occurred while storing feedback.", None, 500)
        return ServiceResponse.succeed("Feedback stored successfully", feedback)
