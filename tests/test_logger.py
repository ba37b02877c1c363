import asyncio
import logging
import os
import sys

import pytest

import logger as tezca_logger


@pytest.fixture
def clean_logger():
    """Deja los loggers como estaban (setup_logging es idempotente y global)."""
    root = logging.getLogger(tezca_logger.ROOT_LOGGER)
    discord_log = logging.getLogger("discord")
    saved = (list(root.handlers), root.propagate, root.level, list(discord_log.handlers), discord_log.level)
    saved_hook = sys.excepthook
    root.handlers = []
    yield root
    for handler in root.handlers:
        if handler not in saved[0]:
            handler.close()
    root.handlers, root.propagate, root.level = saved[0], saved[1], saved[2]
    discord_log.handlers, discord_log.level = saved[3], saved[4]
    sys.excepthook = saved_hook


def test_setup_logging_is_idempotent(tmp_path, clean_logger):
    tezca_logger.setup_logging(str(tmp_path), "INFO")
    tezca_logger.setup_logging(str(tmp_path), "INFO")

    assert len(clean_logger.handlers) == 2
    files = os.listdir(tmp_path)
    assert any(name.startswith("app-") and name.endswith(".log") for name in files)


def test_file_handler_respects_level(tmp_path, clean_logger):
    tezca_logger.setup_logging(str(tmp_path), "WARNING")
    file_handler = next(h for h in clean_logger.handlers if isinstance(h, logging.FileHandler))
    assert file_handler.level == logging.WARNING


def test_crash_report_is_appended(tmp_path):
    try:
        raise RuntimeError("boom")
    except RuntimeError as e:
        path = tezca_logger.write_crash_report(str(tmp_path), e)
        tezca_logger.write_crash_report(str(tmp_path), e)

    with open(path, encoding="utf-8") as fh:
        content = fh.read()
    assert content.count("=== Application Crash Report ===") == 2
    assert "Error: boom" in content
    assert "RuntimeError" in content


def test_crash_handler_without_exit_only_writes_report(tmp_path, clean_logger):
    handler = tezca_logger.install_crash_handlers(str(tmp_path), exit_on_crash=False)
    assert sys.excepthook is handler

    try:
        raise ValueError("unhandled")
    except ValueError as e:
        handler(type(e), e, e.__traceback__)

    crash_files = [n for n in os.listdir(tmp_path) if n.startswith("crash-")]
    assert len(crash_files) == 1


async def test_loop_handler_logs_without_raising(caplog):
    loop = asyncio.get_running_loop()
    previous = loop.get_exception_handler()
    tezca_logger.install_loop_handler(loop)
    try:
        with caplog.at_level(logging.ERROR, logger=tezca_logger.ROOT_LOGGER):
            loop.call_exception_handler({"message": "task failed", "exception": RuntimeError("x")})
    finally:
        loop.set_exception_handler(previous)
    assert "Unhandled rejection" in caplog.text
