"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, timewsync.toml only contains
overrides. Keys may be written in snake_case or camelCase
(``poll_interval_ms`` or ``pollIntervalMs``).
"""

from __future__ import annotations

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class SyncConfig(BaseModel):
    """[sync] section: consumed by the sync engine."""

    model_config = {"frozen": True, "alias_generator": to_camel, "populate_by_name": True}

    poll_interval_ms: int = Field(default=2000, gt=0)
    command_timeout_ms: int = Field(default=5000, gt=0)
    history_capacity: int = Field(default=100, gt=0)
    event_buffer_size: int = Field(default=256, gt=0)
    executable: str = "timew"

    @property
    def poll_interval(self) -> float:
        """Delay between polls, in seconds."""
        return self.poll_interval_ms / 1000

    @property
    def command_timeout(self) -> float:
        """Per-invocation timeout, in seconds."""
        return self.command_timeout_ms / 1000


class IntegrationConfig(BaseModel):
    """[integration] section.

    Feature flags read by inbound-command collaborators (global shortcut
    bindings, the IPC handler). The engine itself ignores them.
    """

    model_config = {"frozen": True, "alias_generator": to_camel, "populate_by_name": True}

    enable_global_shortcuts: bool = True
    enable_ipc_handler: bool = True

