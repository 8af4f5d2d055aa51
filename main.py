# main.py - Schlanker Entry Point für den Spot Profit Bot
import logging
import sys
from datetime import datetime, timezone

import config
from adapters.exchange import CcxtExchangeAdapter
from core.fsm.exceptions import ExchangeError
from core.logging.logger_setup import setup_logging, shutdown_logging
from core.utils.env_validator import EnvValidationError, validate_environment
from engine import LoopConfig, create_trade_loop
from services.shutdown_coordinator import (
    ShutdownReason,
    ShutdownRequest,
    get_shutdown_coordinator,
)
from ui.console_ui import banner, line, start_summary, status_line

logger = logging.getLogger("main")

APP_NAME = "Spot Profit Bot"


def setup_exchange(env_vars):
    """Initialisiert Exchange-Verbindung (ccxt)"""
    exchange = CcxtExchangeAdapter(
        api_key=env_vars["API_KEY"],
        secret=env_vars["API_SECRET"],
        exchange_id=config.EXCHANGE_ID,
        timeout_ms=config.EXCHANGE_TIMEOUT_MS,
        sandbox=config.EXCHANGE_SANDBOX,
    )
    logger.info(f"Exchange {config.EXCHANGE_ID} ready (sandbox={config.EXCHANGE_SANDBOX})",
                extra={'event_type': 'EXCHANGE_READY', 'exchange_id': config.EXCHANGE_ID})
    return exchange


def main() -> int:
    """Hauptfunktion - Entry Point. Returns the process exit code."""
    config.init_runtime_config()
    setup_logging()

    banner(APP_NAME, "SANDBOX" if config.EXCHANGE_SANDBOX else "LIVE", config.SESSION_DIR,
           config.run_id, datetime.now(timezone.utc).isoformat(timespec="seconds"))

    # ---- Environment (fail fast) ----
    try:
        env_vars = validate_environment(strict=True)
    except EnvValidationError:
        logger.critical("Environment validation failed, aborting", extra={'event_type': 'BOT_EXIT_ENV_INVALID'})
        return 1

    shutdown_coordinator = get_shutdown_coordinator()
    shutdown_coordinator.setup_signal_handlers()

    loop_config = LoopConfig.from_config()
    exchange = setup_exchange(env_vars)
    driver = create_trade_loop(exchange, loop_config, shutdown=shutdown_coordinator, on_tick=status_line)

    exit_code = 0
    try:
        balances = {
            loop_config.base_asset: exchange.get_balance(loop_config.base_asset),
            loop_config.quote_asset: exchange.get_balance(loop_config.quote_asset),
        }
        start_summary(loop_config, balances)
        line("ENGINE", f"Trade loop für {loop_config.symbol} startet")

        driver.run()

    except KeyboardInterrupt:
        logger.info("Shutdown requested by user (Ctrl+C)", extra={'event_type': 'USER_SHUTDOWN'})
        shutdown_coordinator.request_shutdown(ShutdownRequest(
            reason=ShutdownReason.USER_INTERRUPT,
            initiator="keyboard_interrupt_handler",
            message="KeyboardInterrupt caught in main"
        ))

    except ExchangeError as e:
        # PriceFetchError / BalanceFetchError: ohne Preis oder Guthaben kann nicht entschieden werden
        logger.critical(f"Fatal exchange error: {e}", exc_info=True,
                        extra={'event_type': 'BOT_CRITICAL_ERROR', 'error': str(e),
                               'error_class': type(e).__name__})
        shutdown_coordinator.request_shutdown(ShutdownRequest(
            reason=ShutdownReason.ENGINE_ERROR,
            initiator="exception_handler",
            message=f"Critical error: {e}"
        ))
        exit_code = 1

    finally:
        logger.info("🔚 Executing coordinated shutdown...", extra={
            'event_type': 'COORDINATED_SHUTDOWN_START',
            'successful_trades': driver.session.successful_trades,
            'ticks': driver.session.tick_count,
            'statistics': driver.machine.get_statistics(),
        })
        shutdown_coordinator.execute_graceful_shutdown()
        shutdown_coordinator.restore_signal_handlers()
        shutdown_logging()

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
