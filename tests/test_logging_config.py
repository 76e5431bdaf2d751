"""Tests for configure_logging()."""

import logging

import pytest

from netwatch.logging_config import configure_logging, resolve_level


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    level = root.level
    handlers = list(root.handlers)
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestConfigureLogging:
    """Test log level selection from the environment."""

    def test_default_level_is_info(self, monkeypatch, restore_root_logger):
        """Test INFO when NETWATCH_LOG_LEVEL is unset."""
        monkeypatch.delenv("NETWATCH_LOG_LEVEL", raising=False)

        configure_logging()

        assert restore_root_logger.level == logging.INFO

    @pytest.mark.parametrize("value, level", [("debug", logging.DEBUG), (" WARNING ", logging.WARNING)])
    def test_level_from_environment(self, monkeypatch, restore_root_logger, value, level):
        """Test level names are case and whitespace insensitive."""
        monkeypatch.setenv("NETWATCH_LOG_LEVEL", value)

        configure_logging()

        assert restore_root_logger.level == level

    def test_unknown_level_falls_back_to_info(self, monkeypatch, restore_root_logger):
        """Test an invalid level name does not break startup."""
        monkeypatch.setenv("NETWATCH_LOG_LEVEL", "LOUD")

        configure_logging()

        assert restore_root_logger.level == logging.INFO

    def test_explicit_level_overrides_environment(self, monkeypatch, restore_root_logger):
        """Test the level argument wins over NETWATCH_LOG_LEVEL."""
        monkeypatch.setenv("NETWATCH_LOG_LEVEL", "ERROR")

        configure_logging("DEBUG")

        assert restore_root_logger.level == logging.DEBUG

    def test_log_file_handler(self, monkeypatch, restore_root_logger, tmp_path):
        """Test NETWATCH_LOG_FILE adds a file handler that receives records."""
        log_file = tmp_path / "netwatch.log"
        monkeypatch.setenv("NETWATCH_LOG_FILE", str(log_file))
        monkeypatch.delenv("NETWATCH_LOG_LEVEL", raising=False)

        configure_logging()
        logging.getLogger("netwatch.test").warning("disk check")
        for handler in restore_root_logger.handlers:
            handler.flush()

        file_handlers = [h for h in restore_root_logger.handlers if isinstance(h, logging.FileHandler)]
        assert len(file_handlers) == 1
        assert "disk check" in log_file.read_text(encoding="utf-8")
        file_handlers[0].close()


class TestResolveLevel:
    """Test level name mapping."""

    @pytest.mark.parametrize(
        "name, level",
        [("info", logging.INFO), ("Critical", logging.CRITICAL), (None, logging.INFO), ("", logging.INFO)],
    )
    def test_resolve_level(self, name, level):
        """Test names map case-insensitively with INFO as fallback."""
        assert resolve_level(name) == level
