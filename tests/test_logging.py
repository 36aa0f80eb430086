"""Tests for logging setup and per-request log context."""

import structlog

from shellgate.logging import Loggers, configure_logging, log_context
from shellgate.settings import GatewaySettings


class TestLogContext:
    def test_fields_bound_inside_block(self):
        with log_context(shell="bash"):
            assert structlog.contextvars.get_contextvars()["shell"] == "bash"
        assert "shell" not in structlog.contextvars.get_contextvars()

    def test_nested_blocks_restore_outer_value(self):
        with log_context(shell="bash"):
            with log_context(shell="cmd", execution_id="42"):
                assert structlog.contextvars.get_contextvars() == {"shell": "cmd", "execution_id": "42"}
            assert structlog.contextvars.get_contextvars() == {"shell": "bash"}


class TestConfigureLogging:
    def test_json_output_goes_to_stderr(self, capsys):
        configure_logging(GatewaySettings(log_level="info", log_format="json"))
        try:
            Loggers.gateway().info("gateway_ready", shells=["bash"])
            captured = capsys.readouterr()
            assert captured.out == ""
            assert '"event": "gateway_ready"' in captured.err
        finally:
            structlog.reset_defaults()
