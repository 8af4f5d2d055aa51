#!/usr/bin/env python3
"""
Tests for environment validation and runtime config helpers
"""

import unittest
from decimal import Decimal

import config
from core.utils.env_validator import EnvValidationError, EnvValidator, validate_environment

VALID = {
    "API_KEY": "abcdefghijklmnop",
    "API_SECRET": "qrstuvwxyz0123456789",
}


class TestValidateEnvironment(unittest.TestCase):

    def test_valid_credentials(self):
        env = validate_environment(strict=True, environ=dict(VALID))
        self.assertEqual(env["API_KEY"], VALID["API_KEY"])
        self.assertEqual(env["EXCHANGE_ID"], "binance")

    def test_missing_credentials(self):
        with self.assertRaises(EnvValidationError) as cm:
            validate_environment(strict=True, environ={})
        self.assertIn("API_KEY", str(cm.exception))
        self.assertIn("API_SECRET", str(cm.exception))

    def test_placeholder_key(self):
        env = dict(VALID, API_KEY="your_api_key_here")
        with self.assertRaises(EnvValidationError):
            validate_environment(strict=True, environ=env)

    def test_non_strict_does_not_raise(self):
        env = validate_environment(strict=False, environ={})
        self.assertEqual(env["API_KEY"], "")

    def test_bad_pair_symbol(self):
        with self.assertRaises(EnvValidationError):
            validate_environment(environ=dict(VALID, PAIR_SYMBOL="BTCUSDT"))

    def test_unknown_exchange(self):
        with self.assertRaises(EnvValidationError):
            validate_environment(environ=dict(VALID, EXCHANGE_ID="no_such_exchange"))

    def test_numbers_are_checked(self):
        with self.assertRaises(EnvValidationError):
            validate_environment(environ=dict(VALID, PROFIT="one percent"))
        with self.assertRaises(EnvValidationError):
            validate_environment(environ=dict(VALID, SPEED_TRADE="3s"))

        env = validate_environment(environ=dict(VALID, PROFIT="1.02", SPEED_TRADE="5000"))
        self.assertEqual(env["PROFIT"], "1.02")

    def test_optional_default(self):
        validator = EnvValidator(environ={})
        self.assertEqual(validator.optional("QUANTITY", "0"), "0")
        self.assertEqual(validator.errors, [])


class TestConfigOverrides(unittest.TestCase):

    def tearDown(self):
        config.clear_config_overrides()

    def test_override_and_clear(self):
        self.assertEqual(config.get_config("PROFIT"), config.PROFIT)
        config.set_config_override("PROFIT", Decimal("1.05"))
        self.assertEqual(config.get_config("PROFIT"), Decimal("1.05"))
        config.clear_config_overrides()
        self.assertEqual(config.get_config("PROFIT"), config.PROFIT)

    def test_unknown_key_default(self):
        self.assertEqual(config.get_config("NOT_A_SETTING", 7), 7)

    def test_defaults_are_decimal(self):
        self.assertIsInstance(config.PROFIT, Decimal)
        self.assertIsInstance(config.FEE_RATE_FALLBACK, Decimal)
        self.assertIn("/", config.PAIR_SYMBOL)

    def test_schema_validation_passes(self):
        self.assertTrue(config.validate_config_schema())

    def test_env_parsers(self):
        import os
        from unittest.mock import patch

        with patch.dict(os.environ, {"X_DEC": "garbage", "X_INT": "12", "X_FLAG": "yes"}):
            self.assertEqual(config._env_decimal("X_DEC", "1.5"), Decimal("1.5"))
            self.assertEqual(config._env_int("X_INT", 3), 12)
            self.assertTrue(config._env_flag("X_FLAG"))
        self.assertFalse(config._env_flag("X_FLAG_NOT_SET"))


if __name__ == "__main__":
    unittest.main()
