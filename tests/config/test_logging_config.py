"""Tests para la configuración de logging."""

import logging

import pytest

from config.logging_config import DuplicateMessageFilter, setup_logging, shutdown_logging


def make_record(message: str, level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord("oscrelay.test", level, __file__, 1, message, None, None)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestDuplicateMessageFilter:
    """Tests para DuplicateMessageFilter."""

    def test_repeated_message_suppressed_within_ttl(self):
        clock = FakeClock()
        log_filter = DuplicateMessageFilter(ttl=5.0, clock=clock)

        assert log_filter.filter(make_record("hola")) is True
        clock.now = 1.0
        assert log_filter.filter(make_record("hola")) is False
        assert log_filter.suppressed == 1

    def test_message_allowed_after_ttl(self):
        clock = FakeClock()
        log_filter = DuplicateMessageFilter(ttl=5.0, clock=clock)

        log_filter.filter(make_record("hola"))
        clock.now = 6.0

        assert log_filter.filter(make_record("hola")) is True

    def test_different_messages_and_levels_pass(self):
        log_filter = DuplicateMessageFilter(ttl=5.0, clock=FakeClock())

        assert log_filter.filter(make_record("a")) is True
        assert log_filter.filter(make_record("b")) is True
        assert log_filter.filter(make_record("a", logging.WARNING)) is True


class TestSetupLogging:
    """Tests para setup_logging."""

    @pytest.fixture(autouse=True)
    def restore_root(self):
        root = logging.getLogger()
        level = root.level
        yield
        shutdown_logging()
        root.setLevel(level)

    def test_creates_log_file(self, tmp_path):
        log_file = setup_logging(tmp_path / "logs", level="DEBUG", console=False, prefix="osc_relay_client")

        assert log_file is not None
        assert log_file.parent == tmp_path / "logs"
        assert log_file.name.startswith("osc_relay_client_")

        logging.getLogger("oscrelay.test").info("mensaje de prueba")
        shutdown_logging()

        assert "mensaje de prueba" in log_file.read_text(encoding="utf-8")

    def test_console_handler_installed(self, tmp_path):
        from rich.logging import RichHandler

        setup_logging(tmp_path, console=True)

        handlers = [h for h in logging.getLogger().handlers if isinstance(h, RichHandler)]
        assert len(handlers) == 1

    def test_repeated_setup_does_not_duplicate_handlers(self, tmp_path):
        root = logging.getLogger()
        before = len(root.handlers)

        setup_logging(tmp_path, console=True)
        setup_logging(tmp_path, console=True)

        assert len(root.handlers) == before + 2

    def test_unwritable_dir_returns_none(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x", encoding="utf-8")

        assert setup_logging(blocker / "logs", console=False) is None

    def test_shutdown_removes_handlers(self, tmp_path):
        root = logging.getLogger()
        before = len(root.handlers)

        setup_logging(tmp_path, console=True)
        shutdown_logging()

        assert len(root.handlers) == before
