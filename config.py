# config.py – Spot Profit Bot Konfiguration
# =========================================
# ⚠️ WICHTIGE HINWEISE:
# - USER SETTINGS (Abschnitt 1-4): Häufig geänderte Parameter, per .env überschreibbar
# - SYSTEM DEFAULTS (Abschnitt 5+): Selten geänderte technische Einstellungen
# - Werte, die in Preisrechnungen landen, sind Decimal (keine Float-Rundungsfehler)

import os
import threading
import uuid
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

from dotenv import load_dotenv

load_dotenv()

# =============================================================================
# ABSCHNITT 0: RUN IDENTITY & DIRECTORIES (automatisch, nicht ändern)
# =============================================================================

# Lazily initialized by init_runtime_config() so that importing config has no
# filesystem side effects (tests, tooling).
_now_utc = None
run_timestamp = None
run_id = None
SESSION_DIR_NAME = None

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

SESSION_DIR = None
LOG_DIR = None
LOG_FILE = None


def init_runtime_config():
    """
    Initialize run identity and log paths.

    Must be called explicitly from main.py before logging is set up.
    """
    global _now_utc, run_timestamp, run_id, SESSION_DIR_NAME
    global SESSION_DIR, LOG_DIR, LOG_FILE

    if _now_utc is not None:
        return

    _now_utc = datetime.now(timezone.utc)
    run_timestamp = _now_utc.strftime('%Y%m%d_%H%M%S')
    run_id = str(uuid.uuid4())[:8]
    SESSION_DIR_NAME = f"session_{run_timestamp}"

    SESSION_DIR = os.path.join(BASE_DIR, "sessions", SESSION_DIR_NAME)
    LOG_DIR = os.path.join(SESSION_DIR, "logs")
    LOG_FILE = os.path.join(LOG_DIR, f"bot_log_{run_timestamp}.jsonl")


# Thread-safe runtime overrides
_config_overrides = {}
_config_lock = threading.RLock()


def set_config_override(key: str, value) -> None:
    """
    Thread-safe config override.

    Allows runtime config changes without mutating module globals.

    Args:
        key: Config variable name (e.g., 'SPEED_TRADE')
        value: New value
    """
    with _config_lock:
        _config_overrides[key] = value


def get_config(key: str, default=None):
    """
    Thread-safe config getter.

    Checks runtime overrides first, then falls back to module-level default.
    """
    with _config_lock:
        if key in _config_overrides:
            return _config_overrides[key]

    return globals().get(key, default)


def clear_config_overrides() -> None:
    """Clear all runtime config overrides (useful for testing)."""
    with _config_lock:
        _config_overrides.clear()


def _env_flag(name: str, default: bool = False) -> bool:
    """
    Convenience helper to parse boolean environment flags.

    Accepted truthy values: 1, true, yes, on (case-insensitive).
    """
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_decimal(name: str, default: str) -> Decimal:
    """Parse a decimal environment variable, falling back to default on garbage."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return Decimal(default)
    try:
        return Decimal(raw.strip())
    except InvalidOperation:
        return Decimal(default)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


# #############################################################################
# ###  USER SETTINGS - HÄUFIG GEÄNDERTE PARAMETER
# #############################################################################

# =============================================================================
# 1. HANDELSPAAR
# =============================================================================

BASE_COIN = os.getenv("BASE_COIN", "BTC")    # Asset, das gekauft/verkauft wird
QUOTE_COIN = os.getenv("QUOTE_COIN", "USDT")  # Asset, in dem bezahlt wird
PAIR_SYMBOL = os.getenv("PAIR_SYMBOL", f"{BASE_COIN}/{QUOTE_COIN}")

# =============================================================================
# 2. PROFIT & GEBÜHREN
# =============================================================================

PROFIT = _env_decimal("PROFIT", "1.01")  # 1.01 = +1% Ziel pro Round-Trip
FEE_RATE_FALLBACK = _env_decimal("FEE_RATE_FALLBACK", "0.001")  # falls Gebühren nicht abrufbar
BUY_COMMISSION_RATE = _env_decimal("BUY_COMMISSION_RATE", "0.001")  # Abschlag auf Quote-Budget beim Kauf
MIN_QUOTE_TO_BUY = _env_decimal("MIN_QUOTE_TO_BUY", "1")  # Start-Posture: ab hier gilt "wir halten Quote"

# =============================================================================
# 3. ORDERGRÖSSE
# =============================================================================

QUANTITY = _env_decimal("QUANTITY", "0")  # Fallback-Menge für SELL, wenn kein Base-Guthaben gemeldet wird

# =============================================================================
# 4. TAKT
# =============================================================================

SPEED_TRADE = _env_int("SPEED_TRADE", 3000)  # ms zwischen zwei Ticks
SMOOTHING_MIN_SAMPLES = 4  # Preise bis zum geglätteten Startpreis
BOOTSTRAP_SAMPLE_DELAY_MS = _env_int("BOOTSTRAP_SAMPLE_DELAY_MS", 0)  # Pause zwischen Bootstrap-Samples

# #############################################################################
# ###  SYSTEM DEFAULTS - SELTEN GEÄNDERT
# #############################################################################

# =============================================================================
# 5. EXCHANGE
# =============================================================================

EXCHANGE_ID = os.getenv("EXCHANGE_ID", "binance")  # ccxt exchange id
EXCHANGE_TIMEOUT_MS = _env_int("EXCHANGE_TIMEOUT_MS", 10000)
EXCHANGE_SANDBOX = _env_flag("EXCHANGE_SANDBOX", False)

# Backoff für Preis-/Balance-Abfragen (Netzwerkfehler)
RETRY_MAX_ATTEMPTS = 4
RETRY_BASE_DELAY_S = 0.25
RETRY_MAX_DELAY_S = 2.0
RETRY_TOTAL_TIME_CAP_S = 8.0

# =============================================================================
# 6. LOGGING
# =============================================================================

LOG_LEVEL = os.getenv("BOT_LOG_LEVEL", "DEBUG")  # File logs: vollständiges Debug-Logging
CONSOLE_LOG_LEVEL = os.getenv("BOT_CONSOLE_LOG_LEVEL", "INFO")
LOG_MAX_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5


def validate_config_schema():
    """Validiert kritische Config-Parameter für fail-fast Verhalten."""
    errors = []

    def check_range(name, value, min_val=None, max_val=None, required_type=None):
        if required_type and not isinstance(value, required_type):
            errors.append(f"{name} muss vom Typ {required_type.__name__} sein, ist aber {type(value).__name__}")
            return False
        if min_val is not None and value < min_val:
            errors.append(f"{name} = {value} ist zu klein (min: {min_val})")
            return False
        if max_val is not None and value > max_val:
            errors.append(f"{name} = {value} ist zu groß (max: {max_val})")
            return False
        return True

    check_range("PROFIT", PROFIT, Decimal("1"), Decimal("2"), Decimal)
    check_range("FEE_RATE_FALLBACK", FEE_RATE_FALLBACK, Decimal("0"), Decimal("0.999999"), Decimal)
    check_range("BUY_COMMISSION_RATE", BUY_COMMISSION_RATE, Decimal("0"), Decimal("0.999999"), Decimal)
    check_range("QUANTITY", QUANTITY, Decimal("0"), None, Decimal)
    check_range("SPEED_TRADE", SPEED_TRADE, 0, 24 * 60 * 60 * 1000, int)
    check_range("SMOOTHING_MIN_SAMPLES", SMOOTHING_MIN_SAMPLES, 1, 1000, int)
    check_range("BOOTSTRAP_SAMPLE_DELAY_MS", BOOTSTRAP_SAMPLE_DELAY_MS, 0, 60 * 1000, int)
    check_range("EXCHANGE_TIMEOUT_MS", EXCHANGE_TIMEOUT_MS, 100, 120000, int)
    if "/" not in PAIR_SYMBOL:
        errors.append(f"PAIR_SYMBOL = {PAIR_SYMBOL} muss im ccxt-Format BASE/QUOTE angegeben werden")

    if errors:
        error_msg = "[ERROR] CONFIG VALIDATION FAILED!\n" + "\n".join(f"  - {err}" for err in errors)
        raise ValueError(error_msg)
    return True


if __name__ != "__main__":
    import logging
    logger = logging.getLogger(__name__)

    try:
        validate_config_schema()
        logger.debug("Config Schema Validation: PASSED",
                     extra={'event_type': 'CONFIG_VALIDATION_SUCCESS'})
    except ValueError as e:
        logger.error(f"Config Schema Validation: FAILED\n{e}",
                     extra={'event_type': 'CONFIG_VALIDATION_FAILED', 'error': str(e)})
        raise
