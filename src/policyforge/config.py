"""Engine configuration."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from policyforge.errors import PolicyForgeError

logger = logging.getLogger(__name__)


def error_classes() -> dict[str, type[PolicyForgeError]]:
    """All taxonomy error classes by name, including subclasses defined later."""
    found: dict[str, type[PolicyForgeError]] = {}
    pending = [PolicyForgeError]
    while pending:
        cls = pending.pop()
        found[cls.__name__] = cls
        pending.extend(cls.__subclasses__())
    return found


@dataclass
class EngineConfig:
    """Default messages and log level for the engine.

    Example messages file:

        logLevel: DEBUG
        messages:
          AuthorizationDenied: You are not allowed to do that
          MissingValueError: This field is required
    """

    messages: dict[str, str] = field(default_factory=dict)
    log_level: str | None = None

    @classmethod
    def from_env(cls) -> EngineConfig:
        """Create config from environment variables.

        Resolution order:
        1. POLICYFORGE_MESSAGES_FILE env var (YAML file, see from_file)
        2. POLICYFORGE_LOG_LEVEL env var overrides the file's log level
        """
        messages_file = os.environ.get("POLICYFORGE_MESSAGES_FILE")
        config = cls.from_file(Path(messages_file)) if messages_file else cls()

        log_level = os.environ.get("POLICYFORGE_LOG_LEVEL")
        if log_level:
            config.log_level = log_level
        return config

    @classmethod
    def from_file(cls, path: Path) -> EngineConfig:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls(
            messages=dict(data.get("messages") or {}),
            log_level=data.get("logLevel"),
        )

    def apply(self) -> None:
        """Install the default messages and the log level.

        Raises:
            ValueError: If a message key is not a known error class
        """
        known = error_classes()
        unknown = sorted(set(self.messages) - set(known))
        if unknown:
            raise ValueError(
                f"Unknown error classes in messages: {', '.join(unknown)}. "
                f"Known: {', '.join(sorted(known))}"
            )

        for name, message in self.messages.items():
            known[name].default_message = message

        if self.log_level:
            logging.getLogger("policyforge").setLevel(self.log_level.upper())
            logger.info("policyforge log level set to %s", self.log_level.upper())
