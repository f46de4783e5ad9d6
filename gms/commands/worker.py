"""RQ worker for queued email delivery."""

import click
from flask import current_app
from flask.cli import with_appcontext
from rq import Queue, Worker

from gms.services.queue import EMAIL_QUEUE, get_redis_connection


@click.command('worker')
@click.option('--burst', is_flag=True, help='Exit once the queue is empty')
@with_appcontext
def worker_command(burst):
    """Start an RQ worker that delivers queued email."""
    redis_conn = get_redis_connection(current_app.config['REDIS_URL'])
    worker = Worker([Queue(EMAIL_QUEUE, connection=redis_conn)], connection=redis_conn)

    click.echo(f"Starting RQ worker on queue '{EMAIL_QUEUE}'...")
    try:
        worker.work(burst=burst)
    except KeyboardInterrupt:
        click.echo("\nWorker stopped by user")
