"""Tests for the logging helpers."""

import logging

from app.utils.logging_helpers import log_import_summary, log_report_generated


logger = logging.getLogger("tests.logging_helpers")


class TestLoggingHelpers:
    def test_import_summary(self, caplog):
        with caplog.at_level(logging.INFO, logger="tests.logging_helpers"):
            log_import_summary(logger, 3, 1)

        assert "Imported: 3, Skipped: 1" in caplog.text

    def test_report_generated(self, caplog):
        with caplog.at_level(logging.INFO, logger="tests.logging_helpers"):
            log_report_generated(logger, 30, 12)

        assert "(30 day window, 12 entries)" in caplog.text
