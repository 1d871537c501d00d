"""Application configuration.

Listener and logging settings, plus the production switch for error pages.
One frozen dataclass, shared read-only by everything the app starts.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(production=True, port=3000)
    """

    # Listener
    host: str = "127.0.0.1"
    port: int = 8000
    backlog: int = 2048

    # Default terminal shows reason phrases instead of error details
    production: bool = False

    # uvicorn logging
    log_level: str = "info"
    access_log: bool = False
