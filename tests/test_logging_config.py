import logging

import pytest

from hookrun.utils import logging_config
from hookrun.utils.logging_config import SyncFileHandler, setup_logging


@pytest.fixture
def restore_root():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)


def test_file_and_console_handlers(tmp_path, restore_root, monkeypatch):
    monkeypatch.delenv("HOOKRUN_LOG_FILE", raising=False)
    log_file = tmp_path / "logs" / "hookrun.log"
    logger = setup_logging(level="DEBUG", log_file=log_file)
    assert logger.name == "hookrun"
    assert len(restore_root.handlers) == 2
    logging.getLogger("hookrun.core.runner").debug("attempting to run prolog [/x]")
    for h in restore_root.handlers:
        h.flush()
    assert "attempting to run prolog [/x]" in log_file.read_text()


def test_console_only_without_file(restore_root, monkeypatch):
    monkeypatch.delenv("HOOKRUN_LOG_FILE", raising=False)
    setup_logging(level="INFO")
    assert len(restore_root.handlers) == 1
    assert restore_root.handlers[0].level == logging.WARNING


def test_log_file_from_environment(tmp_path, restore_root, monkeypatch):
    target = tmp_path / "env.log"
    monkeypatch.setenv("HOOKRUN_LOG_FILE", str(target))
    monkeypatch.setenv("HOOKRUN_LOG_FSYNC", "1")
    setup_logging(level="INFO")
    logging.getLogger("hookrun").warning("epilog done")
    for h in restore_root.handlers:
        h.flush()
    assert "epilog done" in target.read_text()


@pytest.mark.parametrize("flag,expected", [("1", True), ("0", False), (None, False)])
def test_file_handler_fsync_follows_environment(tmp_path, restore_root, monkeypatch, flag, expected):
    monkeypatch.delenv("HOOKRUN_LOG_FILE", raising=False)
    if flag is None:
        monkeypatch.delenv("HOOKRUN_LOG_FSYNC", raising=False)
    else:
        monkeypatch.setenv("HOOKRUN_LOG_FSYNC", flag)
    monkeypatch.setenv("HOOKRUN_LOG_LINE_BUFFERED", "1")
    setup_logging(level="INFO", log_file=tmp_path / "hookrun.log")
    file_handlers = [h for h in restore_root.handlers if isinstance(h, SyncFileHandler)]
    assert len(file_handlers) == 1
    assert file_handlers[0].sync is expected


def test_sync_handler_fsyncs_on_flush(tmp_path, monkeypatch):
    synced = []
    monkeypatch.setattr(logging_config.os, "fsync", lambda fd: synced.append(fd))
    handler = SyncFileHandler(tmp_path / "hookrun.log", sync=True)
    try:
        handler.emit(logging.makeLogRecord({"msg": "prolog done", "levelno": logging.INFO}))
    finally:
        handler.close()
    assert synced
    assert "prolog done" in (tmp_path / "hookrun.log").read_text()
