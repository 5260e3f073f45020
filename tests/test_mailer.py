import asyncio
from datetime import datetime, timezone

import pytest

from taskmanager.services import mailer as mailer_module
from taskmanager.services.mailer import Mailer, format_due_date, is_usable_address, render_due_task_html


def make_mailer(user="bot@example.com", password="secret") -> Mailer:
    return Mailer("smtp.example.com", 587, user, password, from_name="Task Manager")


def test_is_usable_address():
    assert is_usable_address("ana@example.com")
    assert not is_usable_address(None)
    assert not is_usable_address("")
    assert not is_usable_address("ana@example")
    assert not is_usable_address("ana example.com")


def test_format_due_date_uses_utc():
    due = datetime(2026, 3, 1, 13, 5, 9, tzinfo=timezone.utc)
    assert format_due_date(due) == "03/01/2026, 01:05:09 PM UTC"
    assert format_due_date(None) == "Not Set"


def test_due_task_html_escapes_description():
    html = render_due_task_html("<b>rent</b> & bills", None)
    assert "&lt;b&gt;rent&lt;/b&gt; &amp; bills" in html
    assert "Not Set" in html


def test_send_requires_credentials():
    with pytest.raises(ValueError):
        asyncio.run(make_mailer(password="").send("ana@example.com", "s", "<p>x</p>"))


def test_send_due_task_email_rejects_bad_address():
    with pytest.raises(ValueError):
        asyncio.run(make_mailer().send_due_task_email("nobody", "Pay rent", None))


def test_send_due_task_email_hands_message_to_smtp(monkeypatch):
    captured = {}

    async def fake_send(message, **kwargs):
        captured["message"] = message
        captured["kwargs"] = kwargs

    monkeypatch.setattr(mailer_module.aiosmtplib, "send", fake_send)
    due = datetime(2026, 3, 1, 11, 30, tzinfo=timezone.utc)
    asyncio.run(make_mailer().send_due_task_email("ana@example.com", "Pay rent", due))

    message = captured["message"]
    assert message["To"] == "ana@example.com"
    assert message["Subject"] == "Your Task is Due!"
    assert "Task Manager" in message["From"]
    assert "bot@example.com" in message["From"]
    assert "Pay rent" in message.get_body(preferencelist=("html",)).get_content()
    assert captured["kwargs"]["hostname"] == "smtp.example.com"
    assert captured["kwargs"]["start_tls"] is True
