"""Entry point for running the Lark AI Bot.

This module provides the main entry point for the Lark AI Bot.
It handles:
- Configuration loading
- Logging setup with secret sanitization
- Health checks and dry runs
- Serving the webhook with uvicorn
"""

import argparse
import asyncio
import sys
from pathlib import Path

import structlog
import uvicorn

from lark_ai_bot._version import __version__

log = structlog.get_logger()


def setup_logging(
    debug: bool = False,
    log_format: str = "console",
) -> None:
    """Configure structured logging with secret sanitization.

    Args:
        debug: Enable debug logging if True
        log_format: Output format ("json" or "console")
    """
    from lark_ai_bot.utils.logging import LogFormat, LogLevel, configure_logging

    level = LogLevel.DEBUG if debug else LogLevel.INFO
    configure_logging(level=level, log_format=LogFormat(log_format.lower()))


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed argument namespace
    """
    parser = argparse.ArgumentParser(
        prog="lark-ai-bot",
        description="Lark AI Bot - relay Lark messages to Gemini models",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config/config.yaml"),
        help="Path to configuration file (default: config/config.yaml)",
    )

    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Parse config and validate without starting the server",
    )

    parser.add_argument(
        "--format",
        choices=["json", "console"],
        default="console",
        help="Log output format (default: console)",
    )

    parser.add_argument(
        "--health-check",
        action="store_true",
        help="Run health check and exit",
    )

    parser.add_argument("--host", help="Override server.host")
    parser.add_argument("--port", type=int, help="Override server.port")

    return parser.parse_args(argv)


async def run_health_check(config_path: Path) -> int:
    """Load config, run all health checks, and return an exit code."""
    from lark_ai_bot.adapters.chat.lark import LarkAdapter
    from lark_ai_bot.adapters.secrets import EnvCredentialProvider
    from lark_ai_bot.config.loader import load_config
    from lark_ai_bot.utils.health import HealthChecker

    config = load_config(config_path)
    lark = LarkAdapter(config.lark)
    try:
        checker = HealthChecker(config, lark, EnvCredentialProvider(config.credentials))
        report = await checker.run_all_checks()
    finally:
        await lark.aclose()

    if report.healthy:
        log.info("health_check_passed", details=report.to_dict())
        return 0
    log.error("health_check_failed", details=report.to_dict())
    return 1


async def run_bot(
    config_path: Path,
    dry_run: bool = False,
    host: str | None = None,
    port: int | None = None,
) -> int:
    """Run the Lark AI Bot.

    Args:
        config_path: Path to configuration file
        dry_run: If True, only validate config without starting
        host: Optional bind host override
        port: Optional bind port override

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    log.info(
        "starting_lark_ai_bot",
        version=__version__,
        config_path=str(config_path),
    )

    try:
        from lark_ai_bot.config.loader import load_config

        log.info("loading_configuration", path=str(config_path))
        config = load_config(config_path)
        log.info("configuration_loaded")

        # Reconfigure logging from config file settings
        from lark_ai_bot.utils.logging import configure_logging

        configure_logging(
            level=config.logging.level,
            log_format=config.logging.format,
            file_path=config.logging.file.path if config.logging.file.enabled else None,
            file_enabled=config.logging.file.enabled,
        )

        if dry_run:
            log.info("dry_run_mode_config_valid", tiers=config.gemini.tiers)
            return 0

        from lark_ai_bot.api.app import create_app

        app = create_app(config)
        server = uvicorn.Server(
            uvicorn.Config(
                app,
                host=host or config.server.host,
                port=port or config.server.port,
                log_config=None,
                proxy_headers=True,
            )
        )
        await server.serve()
        return 0

    except FileNotFoundError as e:
        log.error("configuration_file_not_found", path=str(config_path), error=str(e))
        return 1
    except ValueError as e:
        log.error("configuration_invalid", error=str(e))
        return 1
    except Exception as e:
        log.exception("fatal_error", error=str(e))
        return 1


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    setup_logging(
        debug=args.debug,
        log_format=args.format,
    )

    try:
        if args.health_check:
            return asyncio.run(run_health_check(args.config))
        return asyncio.run(run_bot(args.config, args.dry_run, args.host, args.port))
    except FileNotFoundError as e:
        log.error("configuration_file_not_found", path=str(args.config), error=str(e))
        return 1
    except ValueError as e:
        log.error("configuration_invalid", error=str(e))
        return 1
    except KeyboardInterrupt:
        log.info("shutting_down_gracefully")
        return 0


if __name__ == "__main__":
    sys.exit(main())
