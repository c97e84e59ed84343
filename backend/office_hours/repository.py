import itertools
import threading
from typing import Dict, Iterable, List, Optional, Protocol, Set, Tuple

from office_hours.models import Course, CourseIn, Feedback, FeedbackIn, OfficeHour, OfficeHourIn, User


class OfficeHourRepository(Protocol):
    def get_all_office_hours(self) -> List[OfficeHour]: ...

    def get_office_hours_by_user_id(self, user_id: str) -> List[OfficeHour]: ...

    def get_office_hours_by_ids(self, ids: Iterable[int]) -> List[OfficeHour]: ...

    def store_office_hour(self, data: OfficeHourIn, user_id: str) -> OfficeHour: ...

    def store_list_office_hours(self, data: List[OfficeHourIn], user_id: str) -> List[OfficeHour]: ...

    def update_office_hour(self, office_hour_id: int, data: OfficeHourIn, user_id: str) -> Optional[OfficeHour]: ...

    def delete_office_hours(self, ids: Iterable[int], user_id: str) -> int: ...

    def get_users_by_course_id(self, course_id: int) -> List[User]: ...

    def store_user_course(self, user_id: str, course_id: int) -> None: ...


class UserRepository(Protocol):
    def get_all_users(self) -> List[User]: ...

    def get_user(self, user_id: str) -> Optional[User]: ...

    def store_user(self, user_id: str, email: str) -> User: ...


class CourseRepository(Protocol):
    def get_all_courses(self) -> List[Course]: ...

    def get_course_by_id(self, course_id: int) -> Optional[Course]: ...

    def get_courses_by_user_id(self, user_id: str) -> List[Course]: ...

    def store_course(self, data: CourseIn) -> Course: ...

    def store_user_course(self, user_id: str, course_id: int) -> None: ...

    def delete_user_course(self, user_id: str, course_id: int) -> bool: ...


class FeedbackRepository(Protocol):
    def store_feedback(self, data: FeedbackIn, user_id: str) -> Feedback: ...


class InMemoryRepository:
    """
    Process-local store behind all four repository protocols.

    Enrollment is tracked per (user, course) and does not require the course to
    be in the catalog: office hours are often parsed for a course id before
    anyone has registered the course itself.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._office_hours: Dict[int, OfficeHour] = {}
        self._emails: Dict[str, str] = {}
        self._enrollments: Set[Tuple[str, int]] = set()
        self._courses: Dict[int, Course] = {}
        self._feedback: List[Feedback] = []

    # -- users ------------------------------------------------------------
    def get_all_users(self) -> List[User]:
        with self._lock:
            return [User(user_id=uid, email=email) for uid, email in sorted(self._emails.items())]

    def get_user(self, user_id: str) -> Optional[User]:
        with self._lock:
            if user_id not in self._emails:
                return None
            return User(user_id=user_id, email=self._emails[user_id])

    def store_user(self, user_id: str, email: str) -> User:
        with self._lock:
            self._emails[user_id] = email
            return User(user_id=user_id, email=email)

    def get_users_by_course_id(self, course_id: int) -> List[User]:
        with self._lock:
            return [
                User(user_id=user_id, email=self._emails[user_id])
                for user_id, cid in sorted(self._enrollments)
                if cid == course_id and user_id in self._emails
            ]

    # -- courses ----------------------------------------------------------
    def get_all_courses(self) -> List[Course]:
        with self._lock:
            return sorted(self._courses.values(), key=lambda c: c.course_code)

    def get_course_by_id(self, course_id: int) -> Optional[Course]:
        with self._lock:
            return self._courses.get(course_id)

    def get_courses_by_user_id(self, user_id: str) -> List[Course]:
        with self._lock:
            return [
                self._courses[cid]
                for uid, cid in sorted(self._enrollments)
                if uid == user_id and cid in self._courses
            ]

    def store_course(self, data: CourseIn) -> Course:
        with self._lock:
            # (code, title, instructor) is unique; storing it again returns the existing row
            for course in self._courses.values():
                if (course.course_code, course.title, course.instructor) == (
                    data.course_code,
                    data.title,
                    data.instructor,
                ):
                    return course
            course = Course(id=next(self._ids), **data.model_dump())
            self._courses[course.id] = course
            return course

    def store_user_course(self, user_id: str, course_id: int) -> None:
        with self._lock:
            self._enrollments.add((user_id, course_id))

    def delete_user_course(self, user_id: str, course_id: int) -> bool:
        with self._lock:
            if (user_id, course_id) not in self._enrollments:
                return False
            self._enrollments.discard((user_id, course_id))
            return True

    # -- feedback ---------------------------------------------------------
    def store_feedback(self, data: FeedbackIn, user_id: str) -> Feedback:
        with self._lock:
            feedback = Feedback(id=next(self._ids), user_id=user_id, **data.model_dump())
            self._feedback.append(feedback)
            return feedback

    # -- office hours -----------------------------------------------------
    def get_all_office_hours(self) -> List[OfficeHour]:
        with self._lock:
            return list(self._office_hours.values())

    def get_office_hours_by_user_id(self, user_id: str) -> List[OfficeHour]:
        with self._lock:
            courses = {cid for uid, cid in self._enrollments if uid == user_id}
            return [
                oh
                for oh in self._office_hours.values()
                if oh.user_id == user_id or oh.course_id in courses
            ]

    def get_office_hours_by_ids(self, ids: Iterable[int]) -> List[OfficeHour]:
        with self._lock:
            return [self._office_hours[i] for i in ids if i in self._office_hours]

    def store_office_hour(self, data: OfficeHourIn, user_id: str) -> OfficeHour:
        with self._lock:
            return self._insert(data, user_id)

    def store_list_office_hours(self, data: List[OfficeHourIn], user_id: str) -> List[OfficeHour]:
        with self._lock:
            return [self._insert(d, user_id) for d in data]

    def update_office_hour(self, office_hour_id: int, data: OfficeHourIn, user_id: str) -> Optional[OfficeHour]:
        with self._lock:
            current = self._office_hours.get(office_hour_id)
            if current is None or current.user_id != user_id:
                return None
            updated = OfficeHour(id=office_hour_id, user_id=user_id, **data.model_dump())
            self._office_hours[office_hour_id] = updated
            return updated

    def delete_office_hours(self, ids: Iterable[int], user_id: str) -> int:
        with self._lock:
            owned = [i for i in set(ids) if i in self._office_hours and self._office_hours[i].user_id == user_id]
            for i in owned:
                del self._office_hours[i]
            return len(owned)

    def _insert(self, data: OfficeHourIn, user_id: str) -> OfficeHour:
        oh = OfficeHour(id=next(self._ids), user_id=user_id, **data.model_dump())
        self._office_hours[oh.id] = oh
        return oh
