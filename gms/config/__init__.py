import os
from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str = 'false') -> bool:
    return os.getenv(name, default).lower() in ('1', 'true', 'yes')


class Config:
    # Provide a safe development fallback to avoid 500s when SECRET_KEY is missing.
    SECRET_KEY = os.getenv('SECRET_KEY') or 'dev-secret-key-change-me'
    DATABASE_URL = os.getenv('DATABASE_URL')
    SQLALCHEMY_DATABASE_URI = DATABASE_URL or 'sqlite:///gms.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Bearer tokens
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY') or SECRET_KEY
    JWT_ALGORITHM = 'HS256'
    JWT_EXPIRES_HOURS = int(os.getenv('JWT_EXPIRES_HOURS', '24'))

    # Invitations
    INVITATION_TTL_DAYS = int(os.getenv('INVITATION_TTL_DAYS', '7'))
    FRONTEND_URL = os.getenv('FRONTEND_URL', 'http://localhost:3000')

    # Blob storage for uploaded images
    UPLOAD_FOLDER = os.getenv('UPLOAD_FOLDER', 'uploads')
    MAX_UPLOAD_SIZE = int(os.getenv('MAX_UPLOAD_SIZE', str(5 * 1024 * 1024)))

    # Outbound email; when disabled messages are only logged
    EMAIL_ENABLED = _flag('EMAIL_ENABLED')
    SMTP_HOST = os.getenv('SMTP_HOST')
    SMTP_PORT = int(os.getenv('SMTP_PORT', '587'))
    SMTP_USERNAME = os.getenv('SMTP_USERNAME')
    SMTP_PASSWORD = os.getenv('SMTP_PASSWORD')
    SMTP_USE_TLS = _flag('SMTP_USE_TLS', 'true')
    FROM_EMAIL = os.getenv('FROM_EMAIL', 'noreply@example.com')

    # Hand email to an RQ worker instead of sending during the request
    EMAIL_QUEUE_ENABLED = _flag('EMAIL_QUEUE_ENABLED')
    REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')

    RATELIMIT_ENABLED = _flag('RATELIMIT_ENABLED', 'true')
    RATELIMIT_STORAGE_URI = os.getenv('RATELIMIT_STORAGE_URI', 'memory://')

    # Largest JSON body accepted by the API (uploads are bounded by MAX_UPLOAD_SIZE)
    MAX_JSON_BODY = 1024 * 1024
