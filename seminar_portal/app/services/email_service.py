from __future__ import annotations

import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from html import escape

from ..config import SchedulerSettings
from ..logging import get_logger


log = get_logger(__name__)


@dataclass(frozen=True)
class NotificationResult:
    success: bool
    error: str | None = None


class EmailNotifier:
    def __init__(self, settings: SchedulerSettings) -> None:
        self.settings = settings

    @property
    def configured(self) -> bool:
        s = self.settings
        return bool(s.smtp_host and s.smtp_user and s.smtp_pass and (s.from_email or s.smtp_user))

    def send_selection_notification(
        self,
        email: str,
        name: str,
        register_number: str,
        seminar_date: str,
        class_year: str,
        seminar_topic: str | None = None,
    ) -> NotificationResult:
        if not self.configured:
            log.warning("email_not_configured", to=email)
            return NotificationResult(False, "SMTP is not configured")
        if not email:
            return NotificationResult(False, "Student has no email address")

        s = self.settings
        msg = EmailMessage()
        msg["Subject"] = f"You're Selected for Tomorrow's Seminar - {seminar_date}"
        msg["From"] = f'"{s.from_name}" <{s.from_email or s.smtp_user}>'
        msg["To"] = email
        msg.set_content(
            render_selection_text(name, register_number, seminar_date, class_year, seminar_topic, s.college_name)
        )
        msg.add_alternative(
            render_selection_html(name, register_number, seminar_date, class_year, seminar_topic, s.college_name),
            subtype="html",
        )

        try:
            with smtplib.SMTP(s.smtp_host, s.smtp_port, timeout=s.smtp_timeout_seconds) as server:
                server.starttls()
                server.login(s.smtp_user, s.smtp_pass)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            log.error("email_send_failed", to=email, register_number=register_number, error=str(exc))
            return NotificationResult(False, str(exc))

        log.info("email_sent", to=email, register_number=register_number)
        return NotificationResult(True)


def render_selection_text(
    name: str,
    register_number: str,
    seminar_date: str,
    class_year: str,
    seminar_topic: str | None,
    college_name: str,
) -> str:
    return (
        "CONGRATULATIONS! You've been selected for tomorrow's seminar\n\n"
        f"Dear {name},\n\n"
        "You have been SELECTED to present in tomorrow's seminar session.\n\n"
        "SEMINAR DETAILS:\n"
        f"- Student: {name} ({register_number})\n"
        f"- Class: {class_year or 'Not specified'}\n"
        f"- Date: {seminar_date}\n"
        f"- Topic: {seminar_topic or 'Not provided'}\n"
        f"- Department: {college_name}\n"
    )


def render_selection_html(
    name: str,
    register_number: str,
    seminar_date: str,
    class_year: str,
    seminar_topic: str | None,
    college_name: str,
) -> str:
    rows = [
        ("Student", f"{name} ({register_number})"),
        ("Class", class_year or "Not specified"),
        ("Date", seminar_date),
        ("Topic", seminar_topic or "Not provided"),
        ("Department", college_name),
    ]
    cells = "".join(
        f"<tr><td style=\"padding:8px 0;\"><strong>{escape(k)}:</strong></td>"
        f"<td style=\"padding:8px 0;\">{escape(v)}</td></tr>"
        for k, v in rows
    )
    return (
        "<!DOCTYPE html><html><body style=\"font-family:Segoe UI,Tahoma,sans-serif;color:#333;\">"
        "<h1>Congratulations!</h1>"
        f"<p>Dear {escape(name)},</p>"
        "<p>You have been <strong>selected to present</strong> in tomorrow's seminar session.</p>"
        f"<table style=\"width:100%;border-collapse:collapse;\">{cells}</table>"
        "<ul>"
        "<li>Please prepare your presentation materials in advance</li>"
        "<li>Arrive at least 15 minutes before the scheduled time</li>"
        "<li>Contact your faculty coordinator if you have any questions</li>"
        "</ul>"
        "</body></html>"
    )
