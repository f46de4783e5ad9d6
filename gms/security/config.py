"""Security configuration and middleware."""

from flask import request, current_app
from flask_limiter.util import get_remote_address
from flask_login import current_user

from gms.errors import ValidationFailed


def get_user_id():
    """Rate-limit key: the authenticated user when known, else the client address."""
    if current_user and current_user.is_authenticated:
        return f"user:{current_user.id}"
    return get_remote_address()


def configure_security_headers(app):
    """Configure security headers."""

    @app.after_request
    def add_security_headers(response):
        """Add security headers to all responses."""
        # Prevent MIME type sniffing
        response.headers['X-Content-Type-Options'] = 'nosniff'

        # Prevent clickjacking
        response.headers['X-Frame-Options'] = 'DENY'

        response.headers['Referrer-Policy'] = 'no-referrer-when-downgrade'

        # The API only serves JSON and uploaded images
        response.headers['Content-Security-Policy'] = "default-src 'none'; img-src 'self'; frame-ancestors 'none'"

        # Workspace-scoped data must never be served from a shared cache
        if request.path.startswith('/api/') and not request.path.startswith('/api/uploads/'):
            response.headers['Cache-Control'] = 'no-store'

        if request.is_secure:
            response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'

        return response

    return app


def validate_input_length(app):
    """Middleware to validate request payload size."""
    @app.before_request
    def limit_request_size():
        if not request.content_length:
            return None
        if request.mimetype == 'multipart/form-data':
            limit = current_app.config.get('MAX_UPLOAD_SIZE', 5 * 1024 * 1024) * 10
        else:
            limit = current_app.config.get('MAX_JSON_BODY', 1024 * 1024)
        if request.content_length > limit:
            from flask import abort
            abort(413)  # Payload Too Large
        return None

    return app


PASSWORD_MIN_LENGTH = 6


def check_password_policy(password: str | None, field: str = 'password') -> None:
    """Raise ``ValidationFailed`` when the password is unacceptable."""
    if not password:
        raise ValidationFailed({field: ["Password is required"]})
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationFailed(
            {field: [f"Password must be at least {PASSWORD_MIN_LENGTH} characters long"]}
        )


# Rate limiting decorators
def auth_rate_limit():
    """Rate limit for authentication endpoints."""
    return "10 per minute"


def invitation_rate_limit():
    """Rate limit for unauthenticated invitation endpoints."""
    return "30 per minute"


__all__ = [
    'get_user_id',
    'configure_security_headers',
    'validate_input_length',
    'check_password_policy',
    'auth_rate_limit',
    'invitation_rate_limit',
]
