from __future__ import annotations

from datetime import datetime, timezone
from email.message import EmailMessage
import html
import logging
import re

import aiosmtplib

logger = logging.getLogger(__name__)

_ADDRESS_RE = re.compile(r"\S+@\S+\.\S+")

DUE_TASK_SUBJECT = "Your Task is Due!"


def is_usable_address(address: str | None) -> bool:
    return bool(address) and bool(_ADDRESS_RE.fullmatch(address.strip()))


def format_due_date(due_date: datetime | None) -> str:
    if due_date is None:
        return "Not Set"
    if due_date.tzinfo is None:
        due_date = due_date.replace(tzinfo=timezone.utc)
    return due_date.astimezone(timezone.utc).strftime("%m/%d/%Y, %I:%M:%S %p UTC")


def render_due_task_html(description: str, due_date: datetime | None) -> str:
    return (
        "<h2>Task Due Alert</h2>"
        f"<p><strong>Task:</strong> {html.escape(description)}</p>"
        f"<p><strong>Due Date:</strong> {format_due_date(due_date)}</p>"
        "<p>Please complete it soon or it will be deleted in an hour.</p>"
    )


class Mailer:
    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        from_name: str = "Task Manager",
        start_tls: bool = True,
        timeout_sec: int = 20,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_name = from_name
        self.start_tls = start_tls
        self.timeout_sec = timeout_sec

    def is_configured(self) -> bool:
        return bool(self.host and self.username and self.password)

    def build_message(self, to: str, subject: str, html_body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = f'"{self.from_name}" <{self.username}>'
        message["To"] = to
        message["Subject"] = subject
        message.set_content("This message requires an HTML capable mail client.")
        message.add_alternative(html_body, subtype="html")
        return message

    async def send(self, to: str, subject: str, html_body: str) -> None:
        if not self.is_configured():
            raise ValueError("SMTP credentials are missing")
        message = self.build_message(to, subject, html_body)
        await aiosmtplib.send(
            message,
            hostname=self.host,
            port=self.port,
            username=self.username,
            password=self.password,
            start_tls=self.start_tls,
            timeout=self.timeout_sec,
        )

    async def send_due_task_email(self, to: str, description: str, due_date: datetime | None) -> None:
        if not is_usable_address(to):
            raise ValueError(f"Invalid email address: {to!r}")
        await self.send(to, DUE_TASK_SUBJECT, render_due_task_html(description, due_date))
        logger.debug("Due-task email handed to SMTP for %s", to)
