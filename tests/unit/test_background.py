"""
Unit tests for the background job queue and the email dispatcher built on it.
"""

import asyncio

import pytest

from app.core.background import BackgroundQueue
from app.features.notifications.email import EmailDispatcher
from tests.fakes import FailingEmailSender, RecordingEmailSender


@pytest.mark.unit
class TestBackgroundQueue:

    async def test_runs_submitted_jobs(self, queue):
        done = []

        async def job():
            done.append("ran")

        assert queue.submit(job, name="test_job") is True
        await queue.drain()

        assert done == ["ran"]

    async def test_drops_jobs_when_stopped(self):
        background = BackgroundQueue(workers=1)

        async def job():
            pass

        assert background.is_running is False
        assert background.submit(job, name="test_job") is False

    async def test_drops_jobs_when_full(self):
        background = BackgroundQueue(maxsize=1, workers=1)
        await background.start()
        started = asyncio.Event()
        release = asyncio.Event()

        async def blocker():
            started.set()
            await release.wait()

        try:
            background.submit(blocker, name="blocker")
            await asyncio.wait_for(started.wait(), timeout=1.0)
            assert background.submit(blocker, name="queued") is True
            assert background.submit(blocker, name="overflow") is False
        finally:
            release.set()
            await background.stop(drain_timeout=1.0)

    async def test_failing_job_does_not_stop_workers(self, queue):
        done = []

        async def broken():
            raise ValueError("boom")

        async def ok():
            done.append("ok")

        queue.submit(broken, name="broken")
        queue.submit(ok, name="ok")
        await queue.drain()

        assert done == ["ok"]

    async def test_slow_job_times_out(self):
        background = BackgroundQueue(workers=1, job_timeout=0.05)
        await background.start()
        done = []

        async def slow():
            await asyncio.sleep(1)

        async def fast():
            done.append("fast")

        try:
            background.submit(slow, name="slow")
            background.submit(fast, name="fast")
            await asyncio.wait_for(background.drain(), timeout=1.0)
        finally:
            await background.stop(drain_timeout=0.1)

        assert done == ["fast"]

    async def test_start_is_idempotent(self, queue):
        workers = list(queue._workers)

        await queue.start()

        assert queue._workers == workers


@pytest.mark.unit
class TestEmailDispatcher:

    async def test_dispatch_delivers_in_background(self, queue):
        sender = RecordingEmailSender()
        dispatcher = EmailDispatcher(sender, queue)

        assert dispatcher.dispatch("a@example.com", "Hello", "<p>Hi</p>") is True
        await queue.drain()

        assert [(e.to, e.subject) for e in sender.sent] == [("a@example.com", "Hello")]

    async def test_send_failure_stays_in_background(self, queue):
        dispatcher = EmailDispatcher(FailingEmailSender(), queue)

        assert dispatcher.dispatch("a@example.com", "Hello", "<p>Hi</p>") is True
        await queue.drain()
