# tactics/utils/__init__.py
"""Utility modules for the decision engine."""

from .errors import *
