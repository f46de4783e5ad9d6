"""Queue service for background email delivery using RQ."""

from __future__ import annotations

import redis
from flask import current_app
from rq import Queue

from gms.services.email import Mailer
from gms.services.jobs import send_email_job

EMAIL_QUEUE = 'email'


class QueuedMailer(Mailer):
    """Mailer that hands each message to an RQ worker instead of sending it."""

    def __init__(self, queue: Queue) -> None:
        self.queue = queue

    def send(self, to: str, subject: str, body: str) -> bool:
        job = self.queue.enqueue(send_email_job, to, subject, body)
        current_app.logger.info(f"Queued email to {to} (job {job.id})")
        return True


def get_redis_connection(redis_url: str):
    return redis.from_url(redis_url)


def create_email_queue(redis_url: str) -> Queue:
    return Queue(EMAIL_QUEUE, connection=get_redis_connection(redis_url))


def init_queue(app) -> Queue | None:
    """Route outbound email through Redis when ``EMAIL_QUEUE_ENABLED`` is set."""
    if not app.config.get('EMAIL_QUEUE_ENABLED'):
        return None
    queue = create_email_queue(app.config['REDIS_URL'])
    app.extensions['gms_mailer'] = QueuedMailer(queue)
    return queue


__all__ = [
    "EMAIL_QUEUE",
    "QueuedMailer",
    "get_redis_connection",
    "create_email_queue",
    "init_queue",
]
