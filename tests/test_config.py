import logging

from mpd_signals.config import SignalsConfig, setup_logging


def test_defaults():
    config = SignalsConfig()
    assert config.debounce == 0.032
    assert config.fetch_concurrency == 16
    assert config.request_timeout == 5


def test_setup_logging():
    setup_logging(SignalsConfig(), verbose=True)
    assert logging.getLogger("mpd_signals").level == logging.DEBUG
    setup_logging(SignalsConfig())
    assert logging.getLogger("mpd_signals").level == logging.INFO
