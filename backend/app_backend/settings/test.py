
from .settings import *

DEBUG = False
SECRET_KEY = "test-secret-key-not-for-production-use-only-32b"

# File-backed test database so threads in concurrency tests get their own
# connections to the same data.
DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': str(BASE_DIR / 'test_db.sqlite3'),
        'OPTIONS': {
            'transaction_mode': 'IMMEDIATE',
            'timeout': 30,
        },
        'TEST': {
            'NAME': str(BASE_DIR / 'test_db.sqlite3'),
        },
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

CHANNEL_LAYERS = {
    "default": {
        "BACKEND": "channels.layers.InMemoryChannelLayer",
    }
}

OSRM_BASE_URL = "http://osrm.test"
RIDE_LOCK_TIMEOUT_SECONDS = 5
