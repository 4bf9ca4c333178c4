"""Django settings for the operational panels backend.

Every value can be overridden from the environment; defaults target a local
sqlite database and the ORM-backed panel store.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv('DJANGO_SECRET_KEY', 'dev-only-secret-key-change-me')
DEBUG = os.getenv('DJANGO_DEBUG', '0') in ['1', 'true', 'True']
ALLOWED_HOSTS = [h.strip() for h in os.getenv('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver').split(',') if h.strip()]

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'panels',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
]

ROOT_URLCONF = 'panels_project.urls'
WSGI_APPLICATION = 'panels_project.wsgi.application'

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

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': os.getenv('PANELS_DB_PATH', str(BASE_DIR / 'panels.sqlite3')),
    }
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'
USE_TZ = True
TIME_ZONE = 'UTC'
STATIC_URL = 'static/'

REST_FRAMEWORK = {
    'DEFAULT_RENDERER_CLASSES': ['rest_framework.renderers.JSONRenderer'],
    'DEFAULT_PARSER_CLASSES': ['rest_framework.parsers.JSONParser'],
    # panels are not user-scoped; the API is open
    'DEFAULT_AUTHENTICATION_CLASSES': [],
    'DEFAULT_PERMISSION_CLASSES': [],
    'UNAUTHENTICATED_USER': None,
}

# Panel store + query service configuration
PANELS = {
    'STORE': os.getenv('PANELS_STORE', 'orm'),
    'ES_HOSTS': os.getenv('PANELS_ES_HOSTS', 'http://localhost:9200'),
    'ES_INDEX': os.getenv('PANELS_ES_INDEX', '.operational-panels'),
    'ES_USERNAME': os.getenv('PANELS_ES_USERNAME', ''),
    'ES_PASSWORD': os.getenv('PANELS_ES_PASSWORD', ''),
    'ES_VERIFY_CERTS': os.getenv('PANELS_ES_VERIFY_CERTS', '1') in ['1', 'true', 'True'],
    'PPL_HOST': os.getenv('PANELS_PPL_HOST', 'http://localhost:9200'),
}

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'default': {
            'format': '%(asctime)s %(levelname)s %(name)s: %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'default',
        },
    },
    'loggers': {
        'panels': {'handlers': ['console'], 'level': os.getenv('PANELS_LOG_LEVEL', 'INFO'), 'propagate': False},
        'ppl': {'handlers': ['console'], 'level': os.getenv('PANELS_LOG_LEVEL', 'INFO'), 'propagate': False},
    },
}
