import logging
from dataclasses import dataclass
from typing import Iterable, List, Protocol

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from office_hours.models import OfficeHour, User

logger = logging.getLogger(__name__)

UPDATE_SUBJECT = "Updated Office Hours Notification"


@dataclass
class EmailMessage:
    to: str
    subject: str
    text: str


class Mailer(Protocol):
    def send(self, messages: List[EmailMessage]) -> None: ...


def update_notification_text(office_hour: OfficeHour) -> str:
    return f"""Hello,

We wanted to let you know that the office hours for the course have been updated.

Updated Office Hours:
- Host: {office_hour.host}
- Day: {office_hour.day}
- Time: {office_hour.start_time} - {office_hour.end_time}
- Mode: {office_hour.mode}
- Location: {office_hour.location or 'N/A'}
- Link: {office_hour.link or 'N/A'}

Thank you!"""


def build_update_notifications(students: Iterable[User], office_hour: OfficeHour) -> List[EmailMessage]:
    text = update_notification_text(office_hour)
    return [EmailMessage(to=s.email, subject=UPDATE_SUBJECT, text=text) for s in students]


class SendGridMailer:
    def __init__(self, client: SendGridAPIClient, from_email: str):
        self.client = client
        self.from_email = from_email

    def send(self, messages: List[EmailMessage]) -> None:
        for msg in messages:
            mail = Mail(
                from_email=self.from_email,
                to_emails=msg.to,
                subject=msg.subject,
                plain_text_content=msg.text,
            )
            response = self.client.send(mail)
            logger.debug("SendGrid accepted mail to %s (status %s)", msg.to, response.status_code)
