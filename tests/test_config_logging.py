"""
Tests for configuration loading and structured logging
"""

import json
import logging
import sys

from lending_tracker import config as config_module
from lending_tracker.config import LendingConfig
from lending_tracker.logging_config import JSONFormatter, setup_logging, log_action


class ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


class TestLendingConfig:

    def test_defaults(self):
        settings = LendingConfig()
        assert settings.storage_backend == "sqlite"
        assert settings.notification_channel == "log"
        assert settings.currency_symbol == "₹"
        assert settings.display_precision == 2

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("LENDING_API_PORT", "8080")
        monkeypatch.setenv("LENDING_NOTIFICATION_CHANNEL", "webhook")
        monkeypatch.setenv("LENDING_SMTP_USE_TLS", "false")

        settings = LendingConfig()
        assert settings.api_port == 8080
        assert settings.notification_channel == "webhook"
        assert settings.smtp_use_tls is False

    def test_cors_origin_list(self):
        settings = LendingConfig(cors_origins="https://a.test, https://b.test,")
        assert settings.cors_origin_list == ["https://a.test", "https://b.test"]

    def test_reload_config(self, monkeypatch):
        original = config_module.config
        try:
            monkeypatch.setenv("LENDING_LOG_LEVEL", "DEBUG")
            reloaded = config_module.reload_config()
            assert reloaded.log_level == "DEBUG"
            assert config_module.get_config() is reloaded
        finally:
            config_module.config = original


class TestJSONFormatter:

    def test_structured_fields(self):
        record = logging.LogRecord("lending.loans", logging.INFO, __file__, 1, "Loan created", (), None)
        record.user_id = "USER001"
        record.action = "create_loan"
        record.details = {"tenure_months": 12}

        entry = json.loads(JSONFormatter().format(record))
        assert entry["message"] == "Loan created"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "lending.loans"
        assert entry["user_id"] == "USER001"
        assert entry["details"] == {"tenure_months": 12}
        assert "resource" not in entry

    def test_timestamp_is_record_time(self):
        record = logging.LogRecord("lending", logging.INFO, __file__, 1, "msg", (), None)
        record.created = 0

        entry = json.loads(JSONFormatter().format(record))
        assert entry["timestamp"] == "1970-01-01T00:00:00+00:00"

    def test_exception_included(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord("lending", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())

        entry = json.loads(JSONFormatter().format(record))
        assert "RuntimeError: boom" in entry["exception"]


class TestLogAction:

    def setup_method(self):
        self.logger = logging.getLogger("lending.tests.log_action")
        self.handler = ListHandler()
        self.logger.addHandler(self.handler)
        self.logger.setLevel(logging.INFO)

    def teardown_method(self):
        self.logger.removeHandler(self.handler)

    def test_attaches_structured_data(self):
        log_action(
            self.logger, "info", "Installment paid",
            user_id="USER001", action="make_payment", resource="loan:L1",
            details={"status": "active"}
        )

        record = self.handler.records[0]
        assert record.getMessage() == "Installment paid"
        assert record.action == "make_payment"
        assert record.resource == "loan:L1"
        assert record.details == {"status": "active"}

    def test_unset_fields_left_off(self):
        log_action(self.logger, "warning", "Payment rejected", action="make_payment")

        record = self.handler.records[0]
        assert record.levelno == logging.WARNING
        assert record.action == "make_payment"
        assert not hasattr(record, "user_id")
        assert not hasattr(record, "details")

    def test_respects_level(self):
        log_action(self.logger, "debug", "noise")
        assert self.handler.records == []


class TestSetupLogging:

    def test_single_handler(self):
        logger = setup_logging("WARNING", "text", logger_name="lending.tests.setup")
        logger = setup_logging("WARNING", "json", logger_name="lending.tests.setup")

        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, JSONFormatter)
        assert logger.level == logging.WARNING
