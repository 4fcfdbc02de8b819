from pathlib import Path
import sys
import os
from dotenv import load_dotenv
import dj_database_url
from urllib.parse import urlparse, parse_qsl

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

# Shared core apps live in company_core for reuse across projects.
CORE_DIR = BASE_DIR / "company_core"
if CORE_DIR.exists() and str(CORE_DIR) not in sys.path:
    sys.path.insert(0, str(CORE_DIR))

# Load environment variables from .env (default) or .env.example (fallback)
_env_file = os.getenv("ENV_FILE")
if _env_file:
    # Load an explicit env file first (e.g. for CI or alternate configs).
    # Then load .env.example as a "defaults" layer (does not override).
    load_dotenv(_env_file)
    load_dotenv(BASE_DIR / '.env.example', override=False)
else:
    load_dotenv(BASE_DIR / '.env')
    load_dotenv(BASE_DIR / '.env.example', override=False)


def _env_truthy(value, default=False):
    """Return True when the provided environment value represents truthy."""

    if value is None:
        return default
    return str(value).strip().lower() in {'1', 'true', 'yes', 'on'}


def _env_strip(value):
    return value.strip() if value else ''


def _env_list(value):
    return [item.strip() for item in (value or '').split(',') if item.strip()]


# Branding defaults (used on statements, invoices and e-mails)
DEFAULT_BUSINESS_NAME = os.getenv("DEFAULT_BUSINESS_NAME", "River Tech Inc.").strip() or "River Tech Inc."
DEFAULT_BUSINESS_TAGLINE = (
    os.getenv("DEFAULT_BUSINESS_TAGLINE", "Turn Everyday Needs Into Automatic Experience").strip()
    or "Turn Everyday Needs Into Automatic Experience"
)
DEFAULT_BUSINESS_EMAIL = os.getenv("DEFAULT_BUSINESS_EMAIL", "customers@riverph.com").strip() or "customers@riverph.com"
DEFAULT_BUSINESS_WEBSITE = os.getenv("DEFAULT_BUSINESS_WEBSITE", "www.riverph.com").strip() or "www.riverph.com"
DEFAULT_BUSINESS_ADDRESS = (
    os.getenv(
        "DEFAULT_BUSINESS_ADDRESS",
        "Filinvest Axis Tower 1 24th & 26th Flr, 304 Filinvest Ave, Alabang, Muntinlupa",
    ).strip()
    or "Filinvest Axis Tower 1 24th & 26th Flr, 304 Filinvest Ave, Alabang, Muntinlupa"
)
DASHBOARD_URL = os.getenv("DASHBOARD_URL", "https://app.riverph.com/dashboard").strip() or "https://app.riverph.com/dashboard"

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = os.getenv('SECRET_KEY', 'django-insecure-local-development-key')

DEBUG = os.getenv('DEBUG', 'True').lower() in ['1', 'true', 'yes']

_DEFAULT_ALLOWED_HOSTS = [
    'localhost',
    '127.0.0.1',
    'testserver',
    'app.riverph.com',
]

ALLOWED_HOSTS = []
for _host in _DEFAULT_ALLOWED_HOSTS + _env_list(os.getenv('ALLOWED_HOSTS')):
    if _host not in ALLOWED_HOSTS:
        ALLOWED_HOSTS.append(_host)

_csrf_origins = _env_list(os.getenv('CSRF_TRUSTED_ORIGINS'))
CSRF_TRUSTED_ORIGINS = _csrf_origins or [
    'http://localhost:8000',
    'http://127.0.0.1:8000',
    'https://app.riverph.com',
]

# Billing configuration
LITERS_PER_CONTAINER = os.getenv('LITERS_PER_CONTAINER', '19.5')
VAT_RATE = os.getenv('VAT_RATE', '0.12')
CURRENCY_SYMBOL = os.getenv('CURRENCY_SYMBOL', '₱')
try:
    INVOICE_DUE_DAYS = int(os.getenv('INVOICE_DUE_DAYS', '15'))
except (TypeError, ValueError):
    INVOICE_DUE_DAYS = 15
# Admin team is always BCC'd on statements
BILLING_BCC_EMAILS = _env_list(
    os.getenv('BILLING_BCC_EMAILS', 'support@riverph.com,jayvee@riverph.com,jimboy@riverph.com')
)
ADMIN_NOTIFICATION_EMAIL = os.getenv('ADMIN_NOTIFICATION_EMAIL', 'admin@riverph.com').strip()
STATEMENT_PDF_ENCRYPTION_ENABLED = _env_truthy(os.getenv('STATEMENT_PDF_ENCRYPTION_ENABLED'), True)
STATEMENT_PDF_OWNER_PASSWORD = os.getenv('STATEMENT_PDF_OWNER_PASSWORD', '')

# Application definition

INSTALLED_APPS = [
    'django.contrib.staticfiles',
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.humanize',
    'operations',
    'django_cron',
    'corsheaders',
    'rest_framework',
    'rest_framework.authtoken',
    'api',
]

CRON_CLASSES = [
    'operations.cron.GenerateMonthlyInvoicesCronJob',
    'operations.cron.MarkOverdueInvoicesCronJob',
]

MIDDLEWARE = [
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.security.SecurityMiddleware',
    'whitenoise.middleware.WhiteNoiseMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

CORS_ALLOWED_ORIGINS = _env_list(os.getenv('CORS_ALLOWED_ORIGINS')) or [
    'http://localhost:3000',
    'https://app.riverph.com',
]
CORS_ALLOW_CREDENTIALS = True

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'rest_framework.authentication.TokenAuthentication',
        'rest_framework.authentication.SessionAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticated',
    ],
}

ROOT_URLCONF = 'river_business.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [os.path.join(BASE_DIR, 'templates')],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'river_business.wsgi.application'

# Database
# https://docs.djangoproject.com/en/5.0/ref/settings/#databases

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / 'db.sqlite3',
    }
}

_force_sqlite = _env_truthy(os.getenv('FORCE_SQLITE'), False)

# Enable DATABASE_URL parsing when provided; fallback stays SQLite
_raw_db_url = os.getenv('DATABASE_URL', '')
_clean_db_url = _raw_db_url.strip().strip('"').strip("'")
if (not _force_sqlite) and _clean_db_url:
    try:
        DATABASES['default'] = dj_database_url.parse(
            _clean_db_url,
            conn_max_age=600,
            ssl_require=os.getenv('DB_SSL_REQUIRE', 'true').lower() in ['1', 'true', 'yes']
        )
    except ValueError:
        # Fallback manual parse for Postgres URLs if dj_database_url rejects them
        _u = urlparse(_clean_db_url)
        if _u.scheme in ('postgres', 'postgresql', 'pgsql'):
            _opts = dict(parse_qsl(_u.query or ''))
            if os.getenv('DB_SSL_REQUIRE', 'true').lower() in ['1', 'true', 'yes'] and 'sslmode' not in _opts:
                _opts['sslmode'] = 'require'
            DATABASES['default'] = {
                'ENGINE': 'django.db.backends.postgresql',
                'NAME': (_u.path or '').lstrip('/'),
                'USER': _u.username,
                'PASSWORD': _u.password,
                'HOST': _u.hostname,
                'PORT': _u.port or 5432,
                'OPTIONS': _opts,
            }

# Password validation
# https://docs.djangoproject.com/en/5.0/ref/settings/#auth-password-validators

AUTH_PASSWORD_VALIDATORS = [
    {
        'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',
        'OPTIONS': {
            'min_length': 8,
        }
    },
    {
        'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator',
    },
]

# Internationalization
# https://docs.djangoproject.com/en/5.0/topics/i18n/

LANGUAGE_CODE = 'en-us'

TIME_ZONE = os.getenv('TIME_ZONE', 'Asia/Manila')

USE_I18N = True

USE_TZ = True

# Static files (CSS, JavaScript, Images)
# https://docs.djangoproject.com/en/5.0/howto/static-files/

STATIC_URL = '/static/'
STATIC_ROOT = os.path.join(BASE_DIR, 'staticfiles')

if not DEBUG:
    STORAGES = {
        'default': {'BACKEND': 'django.core.files.storage.FileSystemStorage'},
        'staticfiles': {'BACKEND': 'whitenoise.storage.StaticFilesStorage'},
    }
    WHITENOISE_MANIFEST_STRICT = False
    SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')
    SESSION_COOKIE_SECURE = True
    CSRF_COOKIE_SECURE = True
    SECURE_SSL_REDIRECT = _env_truthy(os.getenv('SECURE_SSL_REDIRECT'), False)

# Media files (contracts, proofs of delivery/payment, compliance reports)
MEDIA_URL = '/media/'
MEDIA_ROOT = os.path.join(BASE_DIR, 'media')

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# E-mail goes out through the Brevo SMTP relay. The relay key is the password.
EMAIL_BACKEND = os.getenv('EMAIL_BACKEND', 'django.core.mail.backends.smtp.EmailBackend')
EMAIL_HOST = os.getenv('EMAIL_HOST', 'smtp-relay.brevo.com')
EMAIL_USE_TLS = True
EMAIL_PORT = int(os.getenv('EMAIL_PORT', '587'))
EMAIL_HOST_USER = os.getenv('EMAIL_HOST_USER', '998b0f001@smtp-brevo.com')
EMAIL_HOST_PASSWORD = _env_strip(os.getenv('BREVO_API_KEY', ''))
DEFAULT_FROM_EMAIL = os.getenv('DEFAULT_FROM_EMAIL', 'River Business | Customers <customers@riverph.com>')

SITE_URL = os.getenv("SITE_URL", "https://app.riverph.com").strip() or "https://app.riverph.com"

LOG_TO_FILE = os.getenv('LOG_TO_FILE', 'False').lower() in ['1', 'true', 'yes']
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'standard': {
            'format': '%(asctime)s %(levelname)s [%(name)s] %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'standard',
        },
        **({
            'file': {
                'level': 'INFO',
                'class': 'logging.FileHandler',
                'filename': os.path.join(BASE_DIR, 'logs', 'billing.log'),
                'formatter': 'standard',
            }
        } if LOG_TO_FILE else {})
    },
    'root': {
        'handlers': ['console'],
        'level': LOG_LEVEL,
    },
    'loggers': {
        'operations.billing': {
            'handlers': ['file'] if LOG_TO_FILE else ['console'],
            'level': 'INFO',
            'propagate': False,
        },
    },
}
