"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Every tunable of the service lives in one dataclass.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ Priority (highest first)                                            │
    │                                                                     │
    │   1. Command-line flags        hackapi --port 3000                  │
    │   2. Environment variables     HTTP_PORT=3000 hackapi               │
    │   3. Defaults below                                                 │
    └─────────────────────────────────────────────────────────────────────┘

Environment variables:

    HTTP_HOST             host
    HTTP_PORT             port
    HTTP_WORKERS          max_workers
    HTTP_TIMEOUT          timeout (seconds)
    HTTP_SPEC_PATH        spec_path
    HTTP_SWAGGER_UI_DIR   swagger_ui_dir
    HTTP_CACHE_MAX_AGE    cache_max_age (seconds)
    HTTP_LOG_LEVEL        log_level
    HTTP_LOG_FORMAT       log_format ("text" or "json")

validate() runs when the server is constructed, so a bad value stops the
process at startup instead of on the first request.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    """
    Server configuration.

    Examples:
        config = ServerConfig(port=3000, log_level="DEBUG")
        config = ServerConfig.from_env()
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────
    host: str = "127.0.0.1"
    port: int = 8000
    backlog: int = 128
    buffer_size: int = 8192
    timeout: Optional[float] = 30.0

    # ─────────────────────────────────────────────────────────────────────
    # HTTP
    # ─────────────────────────────────────────────────────────────────────
    keep_alive: bool = True
    keep_alive_timeout: float = 5.0
    max_request_size: int = 10 * 1024 * 1024

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL
    # ─────────────────────────────────────────────────────────────────────
    min_workers: int = 4
    max_workers: int = 16

    # ─────────────────────────────────────────────────────────────────────
    # ASSETS (None = the copies shipped in the package)
    # ─────────────────────────────────────────────────────────────────────
    spec_path: Optional[str] = None
    swagger_ui_dir: Optional[str] = None
    cache_max_age: int = 3600

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = "text"

    server_name: str = "hackapi/1.0"

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Build a config from HTTP_* environment variables.

        Unset variables keep the dataclass defaults. HTTP_WORKERS sets the
        upper bound only, and lowers min_workers with it when needed.
        """
        defaults = cls()
        max_workers = int(os.getenv("HTTP_WORKERS", str(defaults.max_workers)))
        return cls(
            host=os.getenv("HTTP_HOST", defaults.host),
            port=int(os.getenv("HTTP_PORT", str(defaults.port))),
            timeout=float(os.getenv("HTTP_TIMEOUT", str(defaults.timeout))),
            min_workers=min(defaults.min_workers, max_workers),
            max_workers=max_workers,
            spec_path=os.getenv("HTTP_SPEC_PATH") or None,
            swagger_ui_dir=os.getenv("HTTP_SWAGGER_UI_DIR") or None,
            cache_max_age=int(os.getenv("HTTP_CACHE_MAX_AGE", str(defaults.cache_max_age))),
            log_level=os.getenv("HTTP_LOG_LEVEL", defaults.log_level),
            log_format=os.getenv("HTTP_LOG_FORMAT", defaults.log_format),
        )

    def validate(self) -> None:
        """
        Raises:
            ValueError: On the first invalid setting.
        """
        if not 0 < self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 1-65535.")
        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")
        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")
        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")
        if self.cache_max_age < 0:
            raise ValueError("cache_max_age must be >= 0")
        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {', '.join(LOG_FORMATS)}, got {self.log_format!r}")
