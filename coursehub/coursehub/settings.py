# coursehub/settings.py
from pathlib import Path
import os
from dotenv import load_dotenv

load_dotenv()

# -----------------------------------------------------------------------------
# Paths / helpers
# -----------------------------------------------------------------------------
BASE_DIR = Path(__file__).resolve().parent.parent


def _csv_env(name: str):
    """Read comma-separated env var into a clean list (no blanks)."""
    return [v.strip() for v in os.getenv(name, "").split(",") if v.strip()]


def _env_bool(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


# -----------------------------------------------------------------------------
# Core security / environment
# -----------------------------------------------------------------------------
SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-insecure-change-me")
DEBUG = _env_bool("DJANGO_DEBUG", "0")

ALLOWED_HOSTS = _csv_env("ALLOWED_HOSTS") or ["localhost", "127.0.0.1", "testserver"]

FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000").rstrip("/")

# -----------------------------------------------------------------------------
# Application definition
# -----------------------------------------------------------------------------
INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",

    "rest_framework",
    "corsheaders",

    "accounts",
    "learning",
    "quizzes",
]

MIDDLEWARE = [
    # CORS must be high (before CommonMiddleware)
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "coursehub.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "coursehub.wsgi.application"

# -----------------------------------------------------------------------------
# Database
# -----------------------------------------------------------------------------
DATABASE_URL = os.getenv("DATABASE_URL", "").strip()

if DATABASE_URL:
    import dj_database_url
    DATABASES = {
        "default": dj_database_url.parse(
            DATABASE_URL,
            conn_max_age=600,
            ssl_require=_env_bool("DATABASE_SSL_REQUIRE", "0"),
        )
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }

# -----------------------------------------------------------------------------
# Internationalization
# -----------------------------------------------------------------------------
LANGUAGE_CODE = "en-us"
TIME_ZONE = os.getenv("TIME_ZONE", "UTC")
USE_I18N = True
USE_TZ = True

STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# -----------------------------------------------------------------------------
# REST framework
# -----------------------------------------------------------------------------
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "accounts.authentication.JWTAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
    "DEFAULT_RENDERER_CLASSES": [
        "rest_framework.renderers.JSONRenderer",
    ],
    "EXCEPTION_HANDLER": "coursehub.exceptions.envelope_exception_handler",
    "UNAUTHENTICATED_USER": None,
}

# -----------------------------------------------------------------------------
# Tokens / device sessions
# -----------------------------------------------------------------------------
# Access and refresh tokens are signed with different secrets so a leaked access
# token can never be presented as a refresh token.
JWT_SECRET = os.getenv("JWT_SECRET", "dev-access-secret-change-me")
JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET", "dev-refresh-secret-change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

if JWT_SECRET == JWT_REFRESH_SECRET:
    raise ValueError("JWT_SECRET and JWT_REFRESH_SECRET must be different")

ACCESS_TOKEN_LIFETIME_MINUTES = _env_int("ACCESS_TOKEN_LIFETIME_MINUTES", 15)
REFRESH_TOKEN_LIFETIME_DAYS = _env_int("REFRESH_TOKEN_LIFETIME_DAYS", 30)
PASSWORD_RESET_LIFETIME_HOURS = _env_int("PASSWORD_RESET_LIFETIME_HOURS", 1)

MAX_DEVICES_STUDENT = _env_int("MAX_DEVICES_STUDENT", 3)
MAX_DEVICES_ADMIN = _env_int("MAX_DEVICES_ADMIN", 10)
INACTIVE_DEVICE_DAYS = _env_int("INACTIVE_DEVICE_DAYS", 30)

REFRESH_COOKIE_NAME = os.getenv("REFRESH_COOKIE_NAME", "refreshToken")
REFRESH_COOKIE_SECURE = _env_bool("REFRESH_COOKIE_SECURE", "0" if DEBUG else "1")

# -----------------------------------------------------------------------------
# Learning
# -----------------------------------------------------------------------------
CHAPTER_COMPLETION_THRESHOLD = _env_int("CHAPTER_COMPLETION_THRESHOLD", 90)
PROGRESS_HEARTBEAT_SECONDS = _env_int("PROGRESS_HEARTBEAT_SECONDS", 30)

# -----------------------------------------------------------------------------
# CORS
# -----------------------------------------------------------------------------
CORS_ALLOWED_ORIGINS = _csv_env("CORS_ALLOWED_ORIGINS")
CORS_ALLOW_CREDENTIALS = True

if DEBUG:
    for o in ["http://localhost:3000", "http://127.0.0.1:3000"]:
        if o not in CORS_ALLOWED_ORIGINS:
            CORS_ALLOWED_ORIGINS.append(o)

# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": os.getenv("LOG_LEVEL", "INFO"),
    },
    "loggers": {
        "django.db.backends": {
            "level": "WARNING",
        },
    },
}
