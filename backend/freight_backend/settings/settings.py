"""
Base Django settings for the freight dispatch backend.

Environment-specific modules (prod.py, test.py) import everything from here
and override what they need.
"""

import os
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent.parent
load_dotenv(os.path.join(BASE_DIR, '..', '.env'))

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-insecure-change-me")
DEBUG = os.getenv("DJANGO_DEBUG", "true").lower() == "true"
ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "*").split(',')


INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    # Third party
    'rest_framework',
    'corsheaders',
    'channels',

    # Local apps
    'accounts',
    'drivers',
    'jobs',
    'payments',
    'cancellations',
    'realtime',
]

MIDDLEWARE = [
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'freight_backend.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'freight_backend.wsgi.application'
ASGI_APPLICATION = 'freight_backend.asgi.application'


DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / 'db.sqlite3',
    }
}

if os.getenv('POSTGRES_DB'):
    DATABASES['default'] = {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': os.getenv('POSTGRES_DB'),
        'USER': os.getenv('POSTGRES_USER', 'freight'),
        'PASSWORD': os.getenv('POSTGRES_PASSWORD', ''),
        'HOST': os.getenv('POSTGRES_HOST', 'localhost'),
        'PORT': os.getenv('POSTGRES_PORT', '5432'),
    }

AUTH_USER_MODEL = 'accounts.User'
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'


# ---------------------- REST framework ----------------------

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': (
        'rest_framework_simplejwt.authentication.JWTAuthentication',
        'rest_framework.authentication.SessionAuthentication',
    ),
    'DEFAULT_PERMISSION_CLASSES': (
        'rest_framework.permissions.IsAuthenticated',
    ),
}

SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(hours=1),
    'REFRESH_TOKEN_LIFETIME': timedelta(days=7),
}

CORS_ALLOW_ALL_ORIGINS = DEBUG


# ---------------------- Redis / Channels / Celery ----------------------

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
REDIS_GEO_URL = os.getenv("REDIS_GEO_URL", REDIS_URL)

CHANNEL_LAYERS = {
    "default": {
        "BACKEND": "channels_redis.core.RedisChannelLayer",
        "CONFIG": {
            "hosts": [REDIS_URL],
        },
    }
}

CELERY_BROKER_URL = REDIS_URL
CELERY_RESULT_BACKEND = REDIS_URL
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TIMEZONE = TIME_ZONE
# At-least-once: a worker crash re-delivers the step instead of losing it
CELERY_TASK_ACKS_LATE = True
CELERY_TASK_REJECT_ON_WORKER_LOST = True

CELERY_BEAT_SCHEDULE = {
    "auto-confirm-payments": {
        "task": "payments.tasks.auto_confirm_sweep_task",
        "schedule": 120.0,
    },
    "expire-stale-bids": {
        "task": "jobs.tasks.expire_stale_bids_task",
        "schedule": 60.0,
    },
    "reset-monthly-strikes": {
        "task": "cancellations.tasks.reset_monthly_strikes_task",
        "schedule": 3600.0,
    },
}


# ---------------------- Freight coordinator ----------------------

FREIGHT_DISPATCH = {
    # (radius km, seconds to wait for bids before widening)
    "TIERS": [
        (5, 180),
        (10, 120),
        (20, 120),
        (30, 60),
    ],
    "INITIAL_DELAY_SECONDS": 0.1,
    "ESCALATION_DELAY_SECONDS": 1,
    "MAX_RETRIES": 3,
    "RETRY_BACKOFF_SECONDS": 5,
}

FREIGHT_AUCTION = {
    "BID_TTL_SECONDS": 600,
}

FREIGHT_ESCROW = {
    "AUTO_CONFIRM_AFTER_SECONDS": 15 * 60,
    "GEOFENCE_METERS": 100,
    "DEFAULT_PLATFORM_FEE_RATE": "0.15",
}

FREIGHT_CANCELLATION = {
    "GRACE_PERIOD_SECONDS": 5 * 60,
    "LATE_CANCELLATION_FEE": "5.00",
    "STRIKE_THRESHOLD": 3,
    "STRIKE_RESET_DAYS": 30,
}

PAYMENT_GATEWAY = {
    "API_URL": os.getenv("PAYMENT_GATEWAY_URL", "https://sandbox.payments.example/api"),
    "API_KEY": os.getenv("PAYMENT_GATEWAY_API_KEY", ""),
    "WEBHOOK_SECRET": os.getenv("PAYMENT_WEBHOOK_SECRET", ""),
    "RETURN_URL": os.getenv("FRONTEND_URL", "http://localhost:3000"),
    "TIMEOUT_SECONDS": 10,
}


# ---------------------- Logging ----------------------

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
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
        "django": {
            "handlers": ["console"],
            "level": "WARNING",
            "propagate": False,
        },
    },
}
