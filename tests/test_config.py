"""Unit tests for runtime settings and logging setup."""

import logging

from revenue_sentry.config import Settings
from revenue_sentry.logging_setup import configure_logging


class TestSettings:
    def test_defaults(self):
        s = Settings(_env_file=None)
        assert s.forecast_days == 30
        assert s.anomaly_lookback_days == 30
        assert s.log_to_file is False

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("REVENUE_SENTRY_FORECAST_DAYS", "14")
        monkeypatch.setenv("REVENUE_SENTRY_CURRENCY_SYMBOL", "$")
        s = Settings(_env_file=None)
        assert s.forecast_days == 14
        assert s.currency_symbol == "$"


class TestConfigureLogging:
    def test_rotating_file_handler(self, tmp_path):
        root = logging.getLogger()
        previous = root.handlers[:]
        previous_level = root.level
        try:
            configure_logging(Settings(_env_file=None, log_to_file=True, log_dir=str(tmp_path), log_level="DEBUG"))
            logging.getLogger("revenue_sentry.test").info("pipeline started")
            for handler in root.handlers:
                handler.flush()

            log_file = tmp_path / "revenue_sentry.log"
            assert log_file.exists()
            assert "[revenue_sentry.test] pipeline started" in log_file.read_text(encoding="utf-8")
            assert root.level == logging.DEBUG
        finally:
            for handler in root.handlers[:]:
                handler.close()
                root.removeHandler(handler)
            for handler in previous:
                root.addHandler(handler)
            root.setLevel(previous_level)
