"""Command line entry: run the Telegram bot (long polling) or the HTTP server."""

from __future__ import annotations

import argparse

from telegram import Update

from bootstrap import build_bot, build_store
from settings import Settings
from telemetry.logging_utils import configure_logging, get_logger

logger = get_logger(__name__)


def run_bot(settings: Settings) -> None:
    application = build_bot(settings, build_store(settings))
    logger.info("bot_starting", extra={"mode": "polling"})
    application.run_polling(allowed_updates=Update.ALL_TYPES)


def run_server(settings: Settings, host: str, port: int) -> None:
    import uvicorn

    from server.app import create_app

    store = build_store(settings)
    telegram_app = build_bot(settings, store) if settings.telegram_bot_token else None
    app = create_app(
        store,
        telegram_app=telegram_app,
        webhook_secret=settings.telegram_webhook_secret,
        webhook_url=settings.telegram_webhook_url,
    )
    logger.info("server_starting", extra={"host": host, "port": port, "webhook": telegram_app is not None})
    uvicorn.run(app, host=host, port=port, reload=False)


def main() -> None:
    parser = argparse.ArgumentParser(description="Ile Properties bot")
    sub = parser.add_subparsers(dest="command")
    sub.add_parser("bot", help="Run the Telegram bot with long polling (default).")
    serve = sub.add_parser("serve", help="Run the HTTP API and Telegram webhook.")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()

    settings = Settings.from_env()
    configure_logging(settings.log_level)
    if args.command == "serve":
        run_server(settings, args.host, args.port)
    else:
        run_bot(settings)


if __name__ == "__main__":
    main()
