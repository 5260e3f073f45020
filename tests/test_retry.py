import asyncio
from datetime import datetime, timezone

from conftest import FakeMailer

from taskmanager.services.retry import RetryingSender, backoff_delay

DUE = datetime(2026, 3, 1, 11, 30, tzinfo=timezone.utc)


def make_sender(mailer: FakeMailer, max_retries: int = 3):
    delays: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        delays.append(seconds)

    return RetryingSender(mailer, max_retries=max_retries, base_delay_sec=1.0, sleep=fake_sleep), delays


def test_backoff_doubles_per_attempt():
    assert [backoff_delay(n) for n in (1, 2, 3)] == [2.0, 4.0, 8.0]
    assert backoff_delay(2, base_delay_sec=0.5) == 2.0


def test_first_success_sends_once_without_waiting():
    mailer = FakeMailer()
    sender, delays = make_sender(mailer)
    assert asyncio.run(sender.send("a@example.com", "Write report", DUE)) is True
    assert mailer.attempts == 1
    assert sender.last_attempts == 1
    assert delays == []


def test_recovers_after_transient_failures():
    mailer = FakeMailer(fail_times=2)
    sender, delays = make_sender(mailer)
    assert asyncio.run(sender.send("a@example.com", "Write report", DUE)) is True
    assert mailer.attempts == 3
    assert delays == [2.0, 4.0]
    assert mailer.sent == [("a@example.com", "Write report", DUE)]


def test_always_failing_target_is_attempted_max_retries_times():
    mailer = FakeMailer(fail_times=-1)
    sender, delays = make_sender(mailer, max_retries=3)
    assert asyncio.run(sender.send("a@example.com", "Write report", DUE)) is False
    assert mailer.attempts == 3
    assert sender.last_attempts == 3
    assert delays == [2.0, 4.0, 8.0]
    assert all(a < b for a, b in zip(delays, delays[1:]))
