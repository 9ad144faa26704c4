import logging
from logging.handlers import RotatingFileHandler

from legarden.core.config import settings
from legarden.core.log import configure_logging


def test_configure_logging_applies_level_and_file(monkeypatch, tmp_path):
    monkeypatch.setattr(settings, "log_path", str(tmp_path / "legarden.log"))
    root = logging.getLogger()
    level, handlers = root.level, list(root.handlers)

    try:
        configure_logging("debug")
        added = [h for h in root.handlers if h not in handlers]
        assert root.level == logging.DEBUG
        assert any(isinstance(h, RotatingFileHandler) for h in added)
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        for h in root.handlers[:]:
            if h not in handlers:
                root.removeHandler(h)
                h.close()
        root.setLevel(level)
