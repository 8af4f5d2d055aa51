#!/usr/bin/env python3
"""
Environment Variable Validator

Validates required environment variables at startup and provides clear error messages.
Implements fail-fast behavior for missing or invalid configuration.
"""

import logging
import os
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import ccxt
from dotenv import load_dotenv

logger = logging.getLogger(__name__)


class EnvValidationError(Exception):
    """Raised when environment validation fails"""
    pass


class EnvValidator:
    """Validates environment variables with fail-fast behavior"""

    def __init__(self, env_file: str = ".env", environ: Optional[Dict[str, str]] = None):
        self.env_file = env_file
        self.environ = os.environ if environ is None else environ
        self.errors: List[str] = []
        self.warnings: List[str] = []
        if environ is None:
            self._load_env()

    def _load_env(self):
        """Load .env file if it exists"""
        env_path = Path(self.env_file)
        if env_path.exists():
            load_dotenv(env_path)
            logger.info(f"Loaded environment from {self.env_file}")
        else:
            logger.info(f"No {self.env_file} file found, using system environment only")

    def require(self, var_name: str, description: str = "",
                validator: Optional[Callable[[str], Tuple[bool, str]]] = None) -> str:
        """
        Require an environment variable to be set.

        Args:
            var_name: Name of the environment variable
            description: Human-readable description
            validator: Optional validation function that takes value and returns (bool, error_msg)

        Returns:
            The environment variable value ("" when missing; the error is collected)
        """
        value = self.environ.get(var_name)

        if not value:
            self.errors.append(
                f"❌ {var_name}: MISSING (Required)\n"
                f"   Description: {description or 'No description provided'}\n"
                f"   Set this in your .env file or environment"
            )
            return ""

        self._check(var_name, value, validator)
        return value

    def optional(self, var_name: str, default: str = "", description: str = "",
                 validator: Optional[Callable[[str], Tuple[bool, str]]] = None) -> str:
        """
        Get an optional environment variable with a default value.

        A validator only runs when the variable is actually set.
        """
        value = self.environ.get(var_name)

        if value is None or value == "":
            logger.debug(f"ℹ️  {var_name} using default: {default or '(empty)'}")
            return default

        self._check(var_name, value, validator)
        return value

    def _check(self, var_name: str, value: str, validator) -> None:
        if validator is None:
            logger.debug(f"✓ {var_name} set")
            return
        is_valid, error_msg = validator(value)
        if not is_valid:
            self.errors.append(
                f"❌ {var_name}: INVALID\n"
                f"   Value: {value[:50]}{'...' if len(value) > 50 else ''}\n"
                f"   Error: {error_msg}"
            )
        else:
            logger.debug(f"✓ {var_name} validated")

    def validate_all(self, strict: bool = True) -> bool:
        """
        Validate all environment variables.

        Args:
            strict: If True, raise EnvValidationError on validation errors. If False, just log.

        Returns:
            True if validation passed, False otherwise
        """
        if self.errors:
            error_msg = "\n\n" + "=" * 70 + "\n"
            error_msg += "🔴 ENVIRONMENT VALIDATION FAILED\n"
            error_msg += "=" * 70 + "\n\n"
            error_msg += "\n\n".join(self.errors)
            error_msg += "\n\n" + "=" * 70 + "\n"
            error_msg += "Fix the above issues and restart the bot.\n"
            error_msg += "=" * 70 + "\n"

            logger.error(error_msg, extra={'event_type': 'ENV_VALIDATION_FAILED', 'error_count': len(self.errors)})

            if strict:
                raise EnvValidationError(error_msg)

            return False

        if self.warnings:
            warning_msg = "\n⚠️  Configuration Warnings:\n"
            warning_msg += "\n".join(f"  - {w}" for w in self.warnings)
            logger.warning(warning_msg)

        logger.info("✅ Environment validation passed", extra={'event_type': 'ENV_VALIDATION_SUCCESS'})
        return True


def validate_api_key(value: str) -> Tuple[bool, str]:
    """Validate API key format"""
    if len(value) < 10:
        return False, "API key too short (minimum 10 characters)"
    if value.startswith("your_") or value == "your_api_key_here":
        return False, "Please replace placeholder with actual API key"
    return True, ""


def validate_api_secret(value: str) -> Tuple[bool, str]:
    """Validate API secret format"""
    if len(value) < 10:
        return False, "API secret too short (minimum 10 characters)"
    if value.startswith("your_") or value == "your_api_secret_here":
        return False, "Please replace placeholder with actual API secret"
    return True, ""


def validate_pair_symbol(value: str) -> Tuple[bool, str]:
    """ccxt unified symbol: BASE/QUOTE"""
    base, sep, quote = value.partition("/")
    if not sep or not base or not quote:
        return False, "Pair must look like BASE/QUOTE (e.g. BTC/USDT)"
    return True, ""


def validate_exchange_id(value: str) -> Tuple[bool, str]:
    if value not in ccxt.exchanges:
        return False, f"Unknown ccxt exchange id '{value}'"
    return True, ""


def validate_decimal(value: str) -> Tuple[bool, str]:
    try:
        d = Decimal(value)
    except InvalidOperation:
        return False, "Not a decimal number"
    if not d.is_finite():
        return False, "Must be finite"
    return True, ""


def validate_int(value: str) -> Tuple[bool, str]:
    try:
        int(value)
    except ValueError:
        return False, "Not an integer"
    return True, ""


def validate_environment(strict: bool = True, environ: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """
    Main environment validation function.

    config.py silently falls back to defaults on unparsable values; this is
    where such values are reported before the bot trades with them.

    Args:
        strict: If True, raise on validation errors
        environ: Mapping to validate instead of os.environ (tests)

    Returns:
        Dictionary of validated environment variables

    Raises:
        EnvValidationError: If validation fails and strict=True
    """
    validator = EnvValidator(environ=environ)

    # Required: Exchange API Credentials
    api_key = validator.require(
        "API_KEY",
        "Exchange API Key for trading operations",
        validate_api_key
    )

    api_secret = validator.require(
        "API_SECRET",
        "Exchange API Secret for signing requests",
        validate_api_secret
    )

    # Optional: Pair & Exchange
    pair_symbol = validator.optional("PAIR_SYMBOL", "", "Traded pair (default BASE_COIN/QUOTE_COIN)",
                                     validate_pair_symbol)
    exchange_id = validator.optional("EXCHANGE_ID", "binance", "ccxt exchange id", validate_exchange_id)

    # Optional: Numbers config.py would otherwise swallow
    numeric = {}
    for name in ("PROFIT", "QUANTITY", "FEE_RATE_FALLBACK", "BUY_COMMISSION_RATE", "MIN_QUOTE_TO_BUY"):
        numeric[name] = validator.optional(name, "", validator=validate_decimal)
    for name in ("SPEED_TRADE", "BOOTSTRAP_SAMPLE_DELAY_MS", "EXCHANGE_TIMEOUT_MS"):
        numeric[name] = validator.optional(name, "", validator=validate_int)

    # Optional: Logging
    log_level = validator.optional(
        "BOT_LOG_LEVEL",
        default="",
        description="Override log level (DEBUG/INFO/WARNING/ERROR/CRITICAL)"
    )
    if log_level and log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        validator.warnings.append(f"BOT_LOG_LEVEL={log_level} is not a standard level, DEBUG is used")

    validator.validate_all(strict=strict)

    return {
        "API_KEY": api_key,
        "API_SECRET": api_secret,
        "PAIR_SYMBOL": pair_symbol,
        "EXCHANGE_ID": exchange_id,
        "BOT_LOG_LEVEL": log_level,
        **numeric,
    }
