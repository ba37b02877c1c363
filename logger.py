# logger.py
from __future__ import annotations

import asyncio
import logging
import os
import sys
import traceback
from datetime import datetime, timezone

ROOT_LOGGER = "tezca"

log_format = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"
date_format = "%Y-%m-%d %H:%M:%S"

LOG_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[38;5;88m",
}
RESET_COLOR = "\033[0m"


class ColorFormatter(logging.Formatter):
    """Colorea la línea completa según el nivel (solo consola)."""

    def format(self, record):
        color = LOG_COLORS.get(record.levelname, "")
        message = super().format(record)
        return f"{color}{message}{RESET_COLOR}" if color else message


def _today() -> str:
    return datetime.now().strftime("%Y-%m-%d")


def setup_logging(log_dir: str = "logs", level: str | int = "INFO") -> logging.Logger:
    """
    Configura el logger raíz del proyecto (y el de discord.py):
    - consola: DEBUG y superior, con color
    - archivo diario logs/app-YYYY-MM-DD.log: `level` y superior
    Se puede llamar varias veces sin duplicar handlers.
    """
    os.makedirs(log_dir, exist_ok=True)
    logger = logging.getLogger(ROOT_LOGGER)
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    console = logging.StreamHandler()
    console.setLevel(logging.DEBUG)
    console.setFormatter(ColorFormatter(log_format, datefmt=date_format))
    logger.addHandler(console)

    file_handler = logging.FileHandler(
        os.path.join(log_dir, f"app-{_today()}.log"), encoding="utf-8"
    )
    file_handler.setLevel(level if isinstance(level, int) else logging.getLevelName(level))
    file_handler.setFormatter(logging.Formatter(log_format, datefmt=date_format))
    logger.addHandler(file_handler)

    discord_log = logging.getLogger("discord")
    discord_log.setLevel(logging.INFO)
    for handler in (console, file_handler):
        discord_log.addHandler(handler)

    return logger


def write_crash_report(log_dir: str, exc: BaseException) -> str:
    os.makedirs(log_dir, exist_ok=True)
    path = os.path.join(log_dir, f"crash-{_today()}.log")
    stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    report = (
        "\n=== Application Crash Report ===\n"
        f"Timestamp: {datetime.now(timezone.utc).isoformat()}\n"
        f"Error: {exc}\n"
        f"Stack Trace: {stack}"
        "================================\n"
    )
    with open(path, "a", encoding="utf-8") as fh:
        fh.write(report)
    return path


def install_crash_handlers(log_dir: str = "logs", *, exit_on_crash: bool = True):
    """
    - Excepciones no capturadas -> crash-YYYY-MM-DD.log (+ exit(1) en modo estricto)
    - Errores de tareas asyncio sin manejar -> solo log
    """
    logger = logging.getLogger(ROOT_LOGGER)

    def handle_exception(exc_type, exc, tb):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc, tb)
            return
        if exc.__traceback__ is None:
            exc = exc.with_traceback(tb)
        path = write_crash_report(log_dir, exc)
        logger.critical("Application crashed! Crash report written to %s", path, exc_info=(exc_type, exc, tb))
        if exit_on_crash:
            logging.shutdown()
            os._exit(1)

    sys.excepthook = handle_exception
    return handle_exception


def install_loop_handler(loop: asyncio.AbstractEventLoop):
    logger = logging.getLogger(ROOT_LOGGER)

    def handle_loop_error(loop, context):
        exc = context.get("exception")
        msg = context.get("message", "Unhandled error in event loop")
        if exc:
            logger.error("Unhandled rejection: %s", msg, exc_info=exc)
        else:
            logger.error("Unhandled rejection: %s", msg)

    loop.set_exception_handler(handle_loop_error)
