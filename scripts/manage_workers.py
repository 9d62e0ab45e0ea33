"""
Email worker management utilities.

Only needed when EMAIL_BACKEND=celery.
"""

import argparse
import subprocess

from app.core.celery_app import EMAIL_QUEUE

CELERY_APP = "app.core.celery_app"


def start_worker(concurrency: int = 2, queues: str = EMAIL_QUEUE) -> None:
    """Start a Celery worker for outbound email."""
    cmd = [
        "celery", "-A", CELERY_APP,
        "worker",
        "--loglevel=info",
        f"--concurrency={concurrency}",
        f"--queues={queues}",
    ]
    print(f"Starting worker: {' '.join(cmd)}")
    subprocess.run(cmd)


def purge_queue(queue: str = EMAIL_QUEUE) -> None:
    """Drop every pending email in a queue."""
    cmd = ["celery", "-A", CELERY_APP, "purge", "-Q", queue, "-f"]
    print(f"Purging queue: {queue}")
    subprocess.run(cmd)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Manage email workers")
    parser.add_argument("command", choices=["worker", "purge"])
    parser.add_argument("--concurrency", type=int, default=2)
    parser.add_argument("--queue", default=EMAIL_QUEUE)

    args = parser.parse_args()

    if args.command == "worker":
        start_worker(args.concurrency, args.queue)
    else:
        purge_queue(args.queue)
