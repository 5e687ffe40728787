"""
Tiered Acquisition.

Shared execution loop for startup resource acquisition. Tiers are tried
in strict priority order and the first one that yields a resource wins.
When every tier fails the aggregate failure list is handed back to the
resolver, which applies its own fallback policy (degrade or abort).

Mechanism lives here; policy lives in the resolvers.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence
import logging

logger = logging.getLogger(__name__)


class TierFailureKind(Enum):
    """Why a tier did not yield a resource."""
    NOT_CONFIGURED = "not_configured"            # Prerequisites absent, tier skipped
    PROBE_ERROR = "probe_error"                  # Capability reported failure
    VERIFICATION_FAILED = "verification_failed"  # Artifact failed a local sanity check


class TierFailure(Exception):
    """
    Raised by a tier probe that could not produce a resource.

    Attributes:
        kind: Failure classification
        reason: Human-readable reason
        cause: Underlying error, if any
        tier: Name of the tier that failed (filled in by TieredAcquisition)
    """

    def __init__(
        self,
        kind: TierFailureKind,
        reason: str,
        cause: Optional[BaseException] = None,
        tier: Optional[str] = None,
    ) -> None:
        super().__init__(reason)
        self.kind = kind
        self.reason = reason
        self.cause = cause
        self.tier = tier

    @classmethod
    def not_configured(cls, reason: str, cause: Optional[BaseException] = None) -> "TierFailure":
        return cls(TierFailureKind.NOT_CONFIGURED, reason, cause)

    @classmethod
    def probe_error(cls, reason: str, cause: Optional[BaseException] = None) -> "TierFailure":
        return cls(TierFailureKind.PROBE_ERROR, reason, cause)

    @classmethod
    def verification_failed(cls, reason: str, cause: Optional[BaseException] = None) -> "TierFailure":
        return cls(TierFailureKind.VERIFICATION_FAILED, reason, cause)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tier": self.tier,
            "kind": self.kind.value,
            "reason": self.reason,
            "cause": repr(self.cause) if self.cause is not None else None,
        }

    def __repr__(self) -> str:
        return f"TierFailure(tier={self.tier!r}, kind={self.kind.value}, reason={self.reason!r})"


@dataclass(frozen=True)
class AcquisitionTier:
    """
    One named strategy for acquiring a resource.

    Attributes:
        name: Tier name used in logs and failure records
        probe: Coroutine function returning the resource or raising TierFailure
    """
    name: str
    probe: Callable[[], Awaitable[Any]]


@dataclass
class AcquisitionResult:
    """
    Raw result of one TieredAcquisition pass, before policy is applied.

    Attributes:
        resource: Acquired resource, None if every tier failed
        tier: Name of the tier that produced the resource
        failures: Failures recorded for the tiers tried before success
    """
    resource: Any = None
    tier: Optional[str] = None
    failures: List[TierFailure] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.tier is not None

    def failure_of(self, tier: str) -> Optional[TierFailure]:
        """Get the recorded failure for a tier by name."""
        for failure in self.failures:
            if failure.tier == tier:
                return failure
        return None


class OutcomeKind(Enum):
    """Terminal classification of one resolution pass."""
    ACQUIRED = "acquired"
    DEGRADED = "degraded"
    FATAL = "fatal"


@dataclass
class ResolutionOutcome:
    """
    Exactly one of Acquired(resource), Degraded(reason) or Fatal(reason).

    Attributes:
        kind: Outcome classification
        resource: Acquired resource (handle or executable path)
        reason: Human-readable reason for Degraded and Fatal outcomes
        tier: Tier that acquired the resource
        failures: Tier failures observed during the pass
    """
    kind: OutcomeKind
    resource: Any = None
    reason: Optional[str] = None
    tier: Optional[str] = None
    failures: List[TierFailure] = field(default_factory=list)

    @classmethod
    def acquired(cls, resource: Any, tier: Optional[str] = None,
                 failures: Optional[List[TierFailure]] = None) -> "ResolutionOutcome":
        return cls(OutcomeKind.ACQUIRED, resource=resource, tier=tier, failures=list(failures or []))

    @classmethod
    def degraded(cls, reason: str,
                 failures: Optional[List[TierFailure]] = None) -> "ResolutionOutcome":
        return cls(OutcomeKind.DEGRADED, reason=reason, failures=list(failures or []))

    @classmethod
    def fatal(cls, reason: str,
              failures: Optional[List[TierFailure]] = None) -> "ResolutionOutcome":
        return cls(OutcomeKind.FATAL, reason=reason, failures=list(failures or []))

    @property
    def is_acquired(self) -> bool:
        return self.kind == OutcomeKind.ACQUIRED

    @property
    def is_degraded(self) -> bool:
        return self.kind == OutcomeKind.DEGRADED

    @property
    def is_fatal(self) -> bool:
        return self.kind == OutcomeKind.FATAL

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization. The resource itself is not exported."""
        return {
            "outcome": self.kind.value,
            "reason": self.reason,
            "tier": self.tier,
            "failures": [f.to_dict() for f in self.failures],
        }


class TieredAcquisition:
    """
    Executes acquisition tiers in priority order with short-circuit on success.

    Holds no state between passes. Probes signal failure by raising
    TierFailure; any other exception escaping a probe is recorded as a
    PROBE_ERROR so nothing propagates past this loop.

    Example:
        result = await TieredAcquisition().run([
            AcquisitionTier("bundled", locate_bundled),
            AcquisitionTier("system", locate_system),
        ])
        if result.succeeded:
            print(f"Acquired via {result.tier}")
    """

    async def run(self, tiers: Sequence[AcquisitionTier]) -> AcquisitionResult:
        """
        Try each tier once, in order.

        Args:
            tiers: Ordered tiers, highest priority first

        Returns:
            AcquisitionResult with the resource, or every recorded failure
        """
        failures: List[TierFailure] = []

        for tier in tiers:
            logger.debug(f"Trying acquisition tier '{tier.name}'")
            try:
                resource = await tier.probe()
            except TierFailure as failure:
                failure.tier = tier.name
                failures.append(failure)
            except Exception as e:
                failures.append(
                    TierFailure.probe_error(f"Unexpected error: {e}", cause=e)
                )
                failures[-1].tier = tier.name
            else:
                logger.info(f"Acquisition tier '{tier.name}' succeeded")
                return AcquisitionResult(resource=resource, tier=tier.name, failures=failures)

            failure = failures[-1]
            if failure.kind == TierFailureKind.NOT_CONFIGURED:
                logger.info(f"Acquisition tier '{tier.name}' skipped: {failure.reason}")
            else:
                logger.warning(
                    f"Acquisition tier '{tier.name}' failed ({failure.kind.value}): {failure.reason}"
                )

        return AcquisitionResult(failures=failures)
