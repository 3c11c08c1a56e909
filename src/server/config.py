"""Listening address and routes of the timer websocket server."""

from __future__ import annotations

from dataclasses import dataclass


class ServerConfigurationError(Exception):
    """Raised when UI server configuration is invalid."""


WEBSOCKET_PATH = "/ws"
HEALTHZ_PATH = "/healthz"


@dataclass(frozen=True)
class UIServerConfig:
    enabled: bool = True
    host: str = "127.0.0.1"
    port: int = 8765
    websocket_path: str = WEBSOCKET_PATH

    def __post_init__(self) -> None:
        if not self.host.strip():
            raise ServerConfigurationError("ui_server.host cannot be empty")
        if not 1 <= self.port <= 65535:
            raise ServerConfigurationError(
                f"ui_server.port must be in [1, 65535], got: {self.port}"
            )
        if not self.websocket_path.startswith("/"):
            raise ServerConfigurationError(
                f"ui_server.websocket_path must start with '/', got: {self.websocket_path!r}"
            )
        if self.websocket_path == HEALTHZ_PATH:
            raise ServerConfigurationError(
                f"ui_server.websocket_path cannot be {HEALTHZ_PATH}"
            )

    @property
    def url(self) -> str:
        return f"ws://{self.host}:{self.port}{self.websocket_path}"

    @classmethod
    def from_settings(cls, settings) -> "UIServerConfig":
        """Build from `app_config.UIServerSettings`, trimming whitespace."""
        return cls(
            enabled=bool(settings.enabled),
            host=settings.host.strip(),
            port=settings.port,
            websocket_path=settings.websocket_path.strip() or WEBSOCKET_PATH,
        )
