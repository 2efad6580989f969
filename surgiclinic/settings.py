"""
Django settings for the SurgiClinic workflow backend.

Wichtig: Dieses Setup nutzt PostgreSQL und führt keine Migrationen automatisch aus.
Konfiguration kommt aus der Umgebung (.env via python-dotenv).
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


BASE_DIR = Path(__file__).resolve().parent.parent


SECRET_KEY = os.getenv(
    'DJANGO_SECRET_KEY',
    'django-insecure-5n!x0c2v@s1k8l#m3e9r7t$w4y6u&i*o(p)q_a+b=d-f%g^h'
)

DEBUG = os.getenv('DJANGO_DEBUG', 'False').lower() in ('1', 'true', 'yes')

ALLOWED_HOSTS = [
    host.strip()
    for host in os.getenv('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1,[::1]').split(',')
    if host.strip()
]


INSTALLED_APPS = [
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',

    'rest_framework',

    'surgiclinic.core',
    'surgiclinic.appointments',
    'surgiclinic.consultations',
    'surgiclinic.surgery',
]


MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
]


DATABASES = {
    # Systemdatenbank (Benutzer, Termine, OP-Fälle, Audit-Log)
    'default': {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': os.getenv('SYS_DB_NAME', 'surgiclinic'),
        'USER': os.getenv('SYS_DB_USER', 'postgres'),
        'PASSWORD': os.getenv('SYS_DB_PASSWORD') or os.getenv('PGPASSWORD', ''),
        'HOST': os.getenv('SYS_DB_HOST', 'localhost'),
        'PORT': os.getenv('SYS_DB_PORT', '5432'),
        'CONN_MAX_AGE': int(os.getenv('SYS_DB_CONN_MAX_AGE', '0')),
    },
}


AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]


# Custom user model (must be set before running any migrations)
AUTH_USER_MODEL = 'core.User'


LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# ---------------------------------------------------------
# Clinic workflow
# ---------------------------------------------------------

CLINIC_WORKFLOW = {
    # Theater slot locks
    'LOCK_TTL_MINUTES': int(os.getenv('CLINIC_LOCK_TTL_MINUTES', '5')),
    'MAX_ACTIVE_LOCKS_PER_USER': int(os.getenv('CLINIC_MAX_ACTIVE_LOCKS_PER_USER', '3')),
    # No-show sweep (manage.py detect_no_shows)
    'NO_SHOW_THRESHOLD_MINUTES': int(os.getenv('CLINIC_NO_SHOW_THRESHOLD_MINUTES', '30')),
    # Operative timeline plausibility window
    'TIMELINE_PAST_WINDOW_HOURS': 48,
    'TIMELINE_FUTURE_TOLERANCE_MINUTES': 5,
}


# ---------------------------------------------------------
# LOGGING
# ---------------------------------------------------------

LOG_LEVEL = os.getenv('DJANGO_LOG_LEVEL', 'INFO')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} {module} {process:d} {thread:d} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': 'WARNING',
            'propagate': False,
        },
        'surgiclinic': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
    },
}
