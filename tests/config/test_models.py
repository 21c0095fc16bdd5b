"""Tests for config models: defaults and sparse overrides."""

import pytest
from pydantic import ValidationError

from timewsync.config.models import IntegrationConfig, SyncConfig


class TestSyncConfig:
    def test_defaults(self) -> None:
        cfg = SyncConfig()
        assert cfg.poll_interval_ms == 2000
        assert cfg.command_timeout_ms == 5000
        assert cfg.history_capacity == 100
        assert cfg.event_buffer_size == 256
        assert cfg.executable == "timew"

    def test_sparse_override(self) -> None:
        """Only override fields you care about: the rest keeps defaults."""
        cfg = SyncConfig.model_validate({"poll_interval_ms": 500})
        assert cfg.poll_interval_ms == 500
        assert cfg.command_timeout_ms == 5000

    def test_camel_case_keys(self) -> None:
        cfg = SyncConfig.model_validate({"pollIntervalMs": 750, "commandTimeoutMs": 100})
        assert cfg.poll_interval_ms == 750
        assert cfg.command_timeout_ms == 100

    def test_seconds_properties(self) -> None:
        cfg = SyncConfig(poll_interval_ms=1500, command_timeout_ms=250)
        assert cfg.poll_interval == 1.5
        assert cfg.command_timeout == 0.25

    @pytest.mark.parametrize(
        "field", ["poll_interval_ms", "command_timeout_ms", "history_capacity", "event_buffer_size"]
    )
    def test_rejects_non_positive(self, field: str) -> None:
        with pytest.raises(ValidationError):
            SyncConfig.model_validate({field: 0})

    def test_frozen(self) -> None:
        cfg = SyncConfig()
        with pytest.raises(ValidationError):
            cfg.poll_interval_ms = 10  # type: ignore[misc]


class TestIntegrationConfig:
    def test_defaults(self) -> None:
        cfg = IntegrationConfig()
        assert cfg.enable_global_shortcuts is True
        assert cfg.enable_ipc_handler is True

    def test_camel_case_flags(self) -> None:
        cfg = IntegrationConfig.model_validate(
            {"enableGlobalShortcuts": False, "enableIpcHandler": False}
        )
        assert cfg.enable_global_shortcuts is False
        assert cfg.enable_ipc_handler is False
