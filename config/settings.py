"""
Django settings for the payments project.

Used by the demo management command and the test suite. Provider credentials
come from the environment; without any, the sandbox gateway is used.
"""
import os

SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'django-insecure-payments-dev-key')

DEBUG = os.environ.get('DJANGO_DEBUG', 'False').lower() in ('true', '1', 'yes')

ALLOWED_HOSTS = []

INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'rest_framework',
    'payments.apps.PaymentsConfig',
]

USE_TZ = True
TIME_ZONE = 'UTC'

# Payment gateway configuration
PAYMENTS = {
    # One of: 'sandbox', 'stripe', 'paypal'
    'GATEWAY': os.environ.get('PAYMENTS_GATEWAY', 'sandbox'),
    'STRIPE_API_KEY': os.environ.get('STRIPE_API_KEY'),
    'PAYPAL_CLIENT_ID': os.environ.get('PAYPAL_CLIENT_ID'),
    'PAYPAL_CLIENT_SECRET': os.environ.get('PAYPAL_CLIENT_SECRET'),
    'PAYPAL_SANDBOX': os.environ.get('PAYPAL_SANDBOX', 'True').lower() in ('true', '1', 'yes'),
    # Simulated latency of the sandbox gateway, in seconds
    'SANDBOX_LATENCY': float(os.environ.get('PAYMENTS_SANDBOX_LATENCY', '0.5')),
    # Upper bound for a single gateway call, in seconds
    'TIMEOUT': float(os.environ.get('PAYMENTS_TIMEOUT', '30')),
}

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname} {name} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'loggers': {
        'payments': {
            'handlers': ['console'],
            'level': os.environ.get('PAYMENTS_LOG_LEVEL', 'INFO'),
            'propagate': True,
        },
    },
}
