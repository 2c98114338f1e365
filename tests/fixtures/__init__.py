"""Shared pytest fixtures for user service tests."""

from .api import *  # noqa: F401,F403
from .core import *  # noqa: F401,F403
from .services import *  # noqa: F401,F403
