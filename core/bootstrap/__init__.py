"""
Startup Bootstrap Module.

Tiered resource acquisition with fallback for the two external resources
the service needs at startup:

- Connectivity: live database handle, degraded or fatal when unavailable
- Binary: browser executable, degraded (never fatal) when unavailable

Typical usage:
    from core.bootstrap import BootstrapSequence, Environment

    report = await BootstrapSequence(environment).run()
    if report.exit_code:
        sys.exit(report.exit_code)
"""

from core.bootstrap.environment import (
    DeploymentMode,
    Environment,
    ModeState,
)

from core.bootstrap.tiers import (
    AcquisitionResult,
    AcquisitionTier,
    OutcomeKind,
    ResolutionOutcome,
    TierFailure,
    TierFailureKind,
    TieredAcquisition,
)

from core.bootstrap.shutdown import (
    InterruptGuard,
    get_interrupt_guard,
)

from core.bootstrap.connectivity import (
    AsyncpgConnector,
    Connector,
    ConnectivityResolver,
    DatabaseHandle,
    is_loopback_uri,
)

from core.bootstrap.binary import (
    BinaryFetcher,
    BinaryResolver,
    BundledBinaryLocator,
    ChromiumSnapshotFetcher,
    PlaywrightBundledLocator,
)

from core.bootstrap.sequence import (
    BootstrapReport,
    BootstrapSequence,
)

__all__ = [
    # Environment
    "DeploymentMode",
    "Environment",
    "ModeState",
    # Tiered acquisition
    "AcquisitionResult",
    "AcquisitionTier",
    "OutcomeKind",
    "ResolutionOutcome",
    "TierFailure",
    "TierFailureKind",
    "TieredAcquisition",
    # Shutdown
    "InterruptGuard",
    "get_interrupt_guard",
    # Connectivity
    "AsyncpgConnector",
    "Connector",
    "ConnectivityResolver",
    "DatabaseHandle",
    "is_loopback_uri",
    # Binary
    "BinaryFetcher",
    "BinaryResolver",
    "BundledBinaryLocator",
    "ChromiumSnapshotFetcher",
    "PlaywrightBundledLocator",
    # Sequence
    "BootstrapReport",
    "BootstrapSequence",
]
