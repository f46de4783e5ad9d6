"""Background job functions for the RQ worker."""


def send_email_job(to, subject, body):
    """Deliver one queued message with the configured delivery mailer."""
    from gms import create_app

    app = create_app()

    with app.app_context():
        from gms.services.email import get_delivery_mailer
        try:
            return get_delivery_mailer().send(to, subject, body)
        except Exception as e:
            # Re-raised so RQ records the job as failed
            app.logger.error(f"Email job for {to} failed: {e}")
            raise
