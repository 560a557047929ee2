"""
Shared plumbing for the pregnancy service: settings, identity, dependency
wiring, errors, logging and request metrics.
"""
from core.config import settings, Settings
from core.exceptions import PregnancyServiceError, setup_exception_handlers

__all__ = [
    "settings",
    "Settings",
    "PregnancyServiceError",
    "setup_exception_handlers",
]
