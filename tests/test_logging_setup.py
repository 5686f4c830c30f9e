# tests/test_logging_setup.py
import logging

from rich.logging import RichHandler

from leitner_tutor.logging_setup import setup_logging


def test_setup_logging_installs_single_rich_handler(monkeypatch):
    fresh_root = logging.RootLogger(logging.WARNING)
    monkeypatch.setattr(logging, "root", fresh_root)
    setup_logging(logging.INFO)
    setup_logging(logging.DEBUG)
    assert len(fresh_root.handlers) == 1
    assert isinstance(fresh_root.handlers[0], RichHandler)
    assert fresh_root.level == logging.DEBUG
