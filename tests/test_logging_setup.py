import logging

import pytest

from weatherdesk.logging_setup import setup_logging


@pytest.fixture
def restore_root():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for h in root.handlers[:]:
        root.removeHandler(h)
        h.close()
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)


def test_console_and_file_handlers(restore_root, tmp_path):
    log_file = tmp_path / "weatherdesk.log"
    setup_logging("debug", log_file=str(log_file))

    assert restore_root.level == logging.DEBUG
    assert len(restore_root.handlers) == 2
    logging.getLogger("weatherdesk.test").debug("dispatching forecast")
    for h in restore_root.handlers:
        h.flush()
    assert "dispatching forecast" in log_file.read_text()
    assert logging.getLogger("urllib3").level == logging.WARNING


def test_unknown_level_name_falls_back_to_info(restore_root):
    setup_logging("chatty")
    assert restore_root.level == logging.INFO


def test_console_logs_go_to_stderr(restore_root, capsys):
    setup_logging("info")
    logging.getLogger("weatherdesk.test").info("key #1 rate limited")

    captured = capsys.readouterr()
    assert "key #1 rate limited" in captured.err
    assert captured.out == ""
