"""Core Utilities"""

from .env_validator import EnvValidationError, EnvValidator, validate_environment

__all__ = [
    'EnvValidationError',
    'EnvValidator',
    'validate_environment',
]
