"""
Settings package.

    app_backend.settings        base settings (development)
    app_backend.settings.prod   production overrides
    app_backend.settings.test   test overrides
"""

from .settings import *  # noqa: F401,F403
