"""
Bootstrap Environment and Mode State.

Holds the immutable configuration snapshot the resolvers read at startup,
and the single piece of process-wide mutable state they are allowed to
touch: the degraded-mode flag.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)


class DeploymentMode(Enum):
    """Deployment mode the process was started in."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"

    @classmethod
    def from_value(cls, value: Optional[str]) -> "DeploymentMode":
        """Only the literal ``production`` selects production mode."""
        if value is not None and value.strip().lower() == cls.PRODUCTION.value:
            return cls.PRODUCTION
        return cls.DEVELOPMENT


@dataclass(frozen=True)
class Environment:
    """
    Immutable snapshot of process configuration, read once at startup.

    Attributes:
        deployment_mode: Development or Production
        resource_uri: Database connection string, if configured
        explicit_degraded_mode_flag: Operator opted in to degraded mode
        cache_directory: Directory for downloaded binaries and the marker file
        binary_revision: Pinned revision for the fetch tier
        binary_platform: Platform identifier for the fetch tier
        connect_timeout: Upper bound for the connection probe, in seconds
        binary_executable_path_override: Escape hatch consumed by callers
    """
    deployment_mode: DeploymentMode
    resource_uri: Optional[str]
    explicit_degraded_mode_flag: bool
    cache_directory: Path
    binary_revision: str = "1134945"
    binary_platform: str = "linux"
    connect_timeout: float = 5.0
    binary_executable_path_override: Optional[str] = None

    @property
    def is_production(self) -> bool:
        return self.deployment_mode == DeploymentMode.PRODUCTION

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, omitting the connection string."""
        return {
            "deployment_mode": self.deployment_mode.value,
            "resource_uri_configured": bool(self.resource_uri),
            "explicit_degraded_mode_flag": self.explicit_degraded_mode_flag,
            "cache_directory": str(self.cache_directory),
            "binary_revision": self.binary_revision,
            "binary_platform": self.binary_platform,
            "connect_timeout": self.connect_timeout,
        }


class ModeState:
    """
    Process-wide degraded-mode flag with monotonic write access.

    The flag starts at the operator's opt-in value and can only move from
    False to True. Components that need the current mode read it from here
    instead of from ambient configuration.

    Example:
        state = ModeState.from_environment(env)
        state.enter_degraded("no URI provided")
        assert state.degraded
    """

    def __init__(self, degraded: bool = False, reason: Optional[str] = None):
        self._degraded = degraded
        self._reason = reason if degraded else None
        if degraded and self._reason is None:
            self._reason = "operator opt-in"

    @classmethod
    def from_environment(cls, environment: Environment) -> "ModeState":
        return cls(degraded=environment.explicit_degraded_mode_flag)

    @property
    def degraded(self) -> bool:
        """Current value of the degraded-mode flag."""
        return self._degraded

    @property
    def reason(self) -> Optional[str]:
        """Reason recorded when the flag first became true."""
        return self._reason

    def enter_degraded(self, reason: str) -> bool:
        """
        Set the degraded-mode flag.

        Args:
            reason: Human-readable cause, kept only if the flag was not set yet

        Returns:
            True if this call flipped the flag, False if it was already set
        """
        if self._degraded:
            return False
        self._degraded = True
        self._reason = reason
        logger.warning(f"Degraded mode enabled: {reason}")
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {"degraded": self._degraded, "reason": self._reason}
