"""
Core module for configuration, error handling and result domain logic.

auth and security are not imported at package level to avoid circular
imports with quizhub.models. Import them directly:
from quizhub.core.auth import ... or from quizhub.core.security import ...
"""
from .config import settings

__all__ = ["settings"]
