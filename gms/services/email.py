"""Outbound email capability.

A mailer is chosen once in the application factory: ``SMTPMailer`` when
``EMAIL_ENABLED`` is set, otherwise ``LogMailer`` which only writes the
message to the application log. With ``EMAIL_QUEUE_ENABLED`` requests only
enqueue the message (see ``gms.services.queue``) and an RQ worker delivers
it, so a slow SMTP server never holds up a response. Sending is best effort
everywhere: helpers return ``False`` on failure and never raise into the
calling request.
"""

from __future__ import annotations

import smtplib
from email.mime.text import MIMEText

from flask import current_app


class Mailer:
    """Interface for sending a plain-text message."""

    def send(self, to: str, subject: str, body: str) -> bool:
        raise NotImplementedError


class LogMailer(Mailer):
    """Development mailer: logs the message instead of sending it."""

    def __init__(self) -> None:
        self.outbox: list[dict[str, str]] = []

    def send(self, to: str, subject: str, body: str) -> bool:
        self.outbox.append({'to': to, 'subject': subject, 'body': body})
        current_app.logger.info(f"""
        ========== EMAIL (Development Mode) ==========
        To: {to}
        Subject: {subject}

        {body}
        ==============================================
        """)
        return True


class SMTPMailer(Mailer):
    def __init__(
        self,
        host: str,
        port: int,
        username: str | None,
        password: str | None,
        from_email: str,
        use_tls: bool = True,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_email = from_email
        self.use_tls = use_tls

    def send(self, to: str, subject: str, body: str) -> bool:
        msg = MIMEText(body, 'plain')
        msg['Subject'] = subject
        msg['From'] = self.from_email
        msg['To'] = to

        with smtplib.SMTP(self.host, self.port, timeout=10) as server:
            if self.use_tls:
                server.starttls()
            if self.username and self.password:
                server.login(self.username, self.password)
            server.send_message(msg)

        current_app.logger.info(f"Email sent successfully to {to}")
        return True


def create_mailer(config) -> Mailer:
    """Pick the mailer implementation from configuration."""
    if not config.get('EMAIL_ENABLED'):
        return LogMailer()
    if not config.get('SMTP_HOST'):
        raise RuntimeError("EMAIL_ENABLED is set but SMTP_HOST is not configured")
    return SMTPMailer(
        host=config['SMTP_HOST'],
        port=int(config.get('SMTP_PORT') or 587),
        username=config.get('SMTP_USERNAME'),
        password=config.get('SMTP_PASSWORD'),
        from_email=config.get('FROM_EMAIL') or 'noreply@example.com',
        use_tls=bool(config.get('SMTP_USE_TLS', True)),
    )


def init_mailer(app) -> Mailer:
    mailer = create_mailer(app.config)
    # Requests send through gms_mailer, which the queue may replace
    app.extensions['gms_delivery_mailer'] = mailer
    app.extensions['gms_mailer'] = mailer
    return mailer


def get_mailer() -> Mailer:
    return current_app.extensions['gms_mailer']


def get_delivery_mailer() -> Mailer:
    """The mailer that actually delivers, bypassing any queue."""
    return current_app.extensions['gms_delivery_mailer']


def _deliver(to: str, subject: str, body: str) -> bool:
    try:
        return bool(get_mailer().send(to, subject, body))
    except Exception as e:
        current_app.logger.error(f"Failed to send email to {to}: {e}")
        return False


def send_invitation_email(email: str, inviter_name: str, workspace_name: str, invitation_url: str) -> bool:
    """Invite someone without an account to join a workspace."""
    ttl_days = current_app.config.get('INVITATION_TTL_DAYS', 7)
    subject = f"Invitation to join {workspace_name} on Game Master Support"
    body = f"""Hi there,

{inviter_name} has invited you to join the "{workspace_name}" workspace in Game Master Support.

Accept the invitation and create your account here:
{invitation_url}

This link will expire in {ttl_days} days.

Best regards,
The Game Master Support Team
"""
    return _deliver(email, subject, body)


def send_added_to_workspace_email(email: str, inviter_name: str, workspace_name: str) -> bool:
    """Tell an existing user they were added to a workspace."""
    login_url = f"{current_app.config.get('FRONTEND_URL', '').rstrip('/')}/login"
    subject = f"You've been added to {workspace_name}"
    body = f"""Hi there,

{inviter_name} has added you to the "{workspace_name}" workspace in Game Master Support.
You can access it by logging in to your account at {login_url}.

Best regards,
The Game Master Support Team
"""
    return _deliver(email, subject, body)


__all__ = [
    "Mailer",
    "LogMailer",
    "SMTPMailer",
    "create_mailer",
    "init_mailer",
    "get_mailer",
    "get_delivery_mailer",
    "send_invitation_email",
    "send_added_to_workspace_email",
]
