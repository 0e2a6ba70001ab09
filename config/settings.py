"""
Django settings for the ImobiGest painel.

O painel não tem banco de dados próprio: todos os dados vêm da API REST
configurada em IMOBIGEST_API.
"""
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'imobigest-dev-secret-key-troque-em-producao')

DEBUG = os.environ.get('DJANGO_DEBUG', 'True') == 'True'

ALLOWED_HOSTS = [h for h in os.environ.get('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',') if h]


INSTALLED_APPS = [
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'imobigest',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'config.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'config.wsgi.application'

# Sem banco: sessões ficam num cookie assinado
DATABASES = {}
SESSION_ENGINE = 'django.contrib.sessions.backends.signed_cookies'
MESSAGE_STORAGE = 'django.contrib.messages.storage.session.SessionStorage'


LANGUAGE_CODE = 'pt-br'
TIME_ZONE = 'America/Sao_Paulo'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'


# ---
# API REST do ImobiGest
# ---
IMOBIGEST_API = {
    'base_url': os.environ.get('IMOBIGEST_API_BASE_URL', 'http://localhost:8080'),
    'timeout': float(os.environ.get('IMOBIGEST_API_TIMEOUT', '30')),
    'token_cookie': 'token',
    'token_max_age': 7 * 24 * 60 * 60,  # 7 dias
}

IMOBIGEST_ITENS_POR_PAGINA = int(os.environ.get('IMOBIGEST_ITENS_POR_PAGINA', '10'))

LOGIN_URL = 'login'


LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'simples': {
            'format': '{asctime} {levelname} {name}: {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'simples',
        },
    },
    'loggers': {
        'imobigest': {
            'handlers': ['console'],
            'level': os.environ.get('IMOBIGEST_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
    },
}
