import os
import re
from datetime import timedelta


def _database_url():
    database_url = os.environ.get("DATABASE_URL", "sqlite:///rental.db")

    # Fix for Heroku/Render postgres:// URLs (should be postgresql://)
    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://", 1)
    return database_url


def _engine_options(database_url):
    if database_url.startswith("sqlite"):
        return {}
    return {
        "pool_recycle": 300,
        "pool_pre_ping": True,
    }


def _cors_origins():
    configured = os.environ.get("CORS_ORIGINS")
    if configured:
        return [origin.strip() for origin in configured.split(",") if origin.strip()]
    return [
        "https://dtprod.vercel.app",
        re.compile(r"^https://.*\.vercel\.app$"),
        re.compile(r"^http://localhost(:\d+)?$"),
        re.compile(r"^http://127\.0\.0\.1(:\d+)?$"),
    ]


class Config:
    APP_ENV = os.environ.get("APP_ENV", os.environ.get("FLASK_ENV", "development"))
    SECRET_KEY = os.environ.get("SESSION_SECRET", "rental_secret_key")
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "DEBUG")

    SQLALCHEMY_DATABASE_URI = _database_url()
    SQLALCHEMY_ENGINE_OPTIONS = _engine_options(SQLALCHEMY_DATABASE_URI)
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    JWT_SECRET_KEY = os.environ.get("JWT_SECRET", "your_jwt_secret_here")
    JWT_ALGORITHM = "HS256"
    JWT_EXPIRES_IN = timedelta(days=1)

    GUEST_SESSION_COOKIE = "guestSessionId"
    GUEST_SESSION_MAX_AGE = timedelta(days=30)

    CORS_ORIGINS = _cors_origins()

    CLOUDINARY_CLOUD_NAME = os.environ.get("CLOUDINARY_CLOUD_NAME")
    CLOUDINARY_API_KEY = os.environ.get("CLOUDINARY_API_KEY")
    CLOUDINARY_API_SECRET = os.environ.get("CLOUDINARY_API_SECRET")
    UPLOAD_FOLDER = "rent_website"
    MAX_GALLERY_IMAGES = 10

    SEED_DATA = os.environ.get("SEED_DATA", "true").lower() in ("1", "true", "yes")
    ADMIN_EMAIL = os.environ.get("ADMIN_EMAIL", "admin@rental.local")
    ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD", "admin123")

    # 10mb JSON bodies carry base64 images
    MAX_CONTENT_LENGTH = 10 * 1024 * 1024


class TestConfig(Config):
    TESTING = True
    APP_ENV = "testing"
    LOG_LEVEL = "WARNING"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    JWT_SECRET_KEY = "test-secret"
    SEED_DATA = False
    CLOUDINARY_CLOUD_NAME = "demo"
    CLOUDINARY_API_KEY = "key"
    CLOUDINARY_API_SECRET = "secret"
