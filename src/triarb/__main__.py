"""
Entry point for the arbitrage engine.

Usage:
    python -m triarb
    triarb  # if installed via pip
"""

import asyncio
import logging
import signal
import sys


# Try to use uvloop for better performance
try:
    import uvloop

    UVLOOP_AVAILABLE = True
except ImportError:
    UVLOOP_AVAILABLE = False


logger = logging.getLogger("triarb")


def main() -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success).
    """
    from triarb import __version__
    from triarb.config.settings import get_settings
    from triarb.core.engine import create_loop
    from triarb.core.errors import ConfigurationError
    from triarb.telemetry.logger import setup_logging
    from triarb.telemetry.metrics import MetricsCollector

    # Print banner
    print(
        f"""
╔═══════════════════════════════════════════════════════════════╗
║     TRIANGULAR AMM ARBITRAGE ENGINE v{__version__:<19}      ║
║                                                               ║
║     Constant-product pool cycles on Solana                    ║
╚═══════════════════════════════════════════════════════════════╝
    """
    )

    # Load settings
    try:
        settings = get_settings()
    except Exception as e:
        print(f"Configuration error: {e}")
        print("\nMake sure you have a .env file with:")
        print("  WALLET_PUBLIC_KEY=your_wallet_address")
        print('  POOL_VAULTS={"SOL_USDC": ["<vault A>", "<vault B>"], ...}')
        return 1

    use_uvloop = settings.use_uvloop and UVLOOP_AVAILABLE

    # Print configuration summary
    print("Configuration:")
    print(f"  Mode:           {'DRY RUN' if settings.dry_run else 'LIVE TRADING'}")
    print(f"  RPC endpoint:   {settings.rpc_url}")
    print(f"  Cycle:          {settings.base_asset} -> {settings.quote_asset} -> X -> {settings.base_asset}")
    print(f"  Pools:          {', '.join(pool.value for pool in settings.pools)}")
    print(f"  Trade amount:   {settings.min_trade_amount} {settings.base_asset}")
    print(f"  Min profit:     {settings.min_profit_threshold}%")
    print(f"  Slippage:       {settings.slippage_tolerance * 100}%")
    print(f"  uvloop:         {'Enabled' if use_uvloop else 'Disabled'}")
    print()

    if not settings.dry_run:
        print("⚠️  WARNING: Live trading mode enabled!")
        print("    Real swaps will be submitted on-chain.")
        print()

    async_logger = setup_logging(level=settings.log_level, log_file=settings.log_file)
    metrics = MetricsCollector()

    async def run_loop() -> int:
        try:
            async with create_loop(settings, metrics=metrics) as loop:
                event_loop = asyncio.get_running_loop()
                for sig in (signal.SIGINT, signal.SIGTERM):
                    event_loop.add_signal_handler(sig, loop.stop)

                await loop.run()
            return 0

        except ConfigurationError as e:
            logger.error(f"Configuration error: {e}")
            return 1

        except Exception as e:
            logger.exception(f"Fatal error: {e}")
            return 1

        finally:
            for line in metrics.summary_lines():
                logger.info(line)

    try:
        if use_uvloop:
            return uvloop.run(run_loop())
        return asyncio.run(run_loop())
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 0
    finally:
        async_logger.stop()


if __name__ == "__main__":
    sys.exit(main())
