"""
Bootstrap Sequence.

Runs the startup resolvers once, in order, and is the only place where
their outcomes are turned into a process exit status.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from core.bootstrap.binary import BinaryResolver
from core.bootstrap.connectivity import ConnectivityResolver
from core.bootstrap.environment import Environment, ModeState
from core.bootstrap.shutdown import InterruptGuard
from core.bootstrap.tiers import ResolutionOutcome

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1

REASON_ABORTED = "skipped after fatal database outcome"


@dataclass
class BootstrapReport:
    """
    Outcomes of one bootstrap run.

    Attributes:
        environment: Snapshot the resolvers ran against
        database: ConnectivityResolver outcome
        browser: BinaryResolver outcome
        degraded_mode: Degraded flag as read after both resolvers finished
        interrupt_guard: Guard owning the database handle, if one was acquired
    """
    environment: Environment
    database: ResolutionOutcome
    browser: ResolutionOutcome
    degraded_mode: bool
    interrupt_guard: Optional[InterruptGuard] = field(default=None, repr=False)

    @property
    def exit_code(self) -> int:
        """1 only when the database outcome is fatal."""
        return EXIT_FATAL if self.database.is_fatal else EXIT_OK

    @property
    def database_handle(self) -> Any:
        return self.database.resource if self.database.is_acquired else None

    @property
    def browser_executable(self) -> Optional[str]:
        return self.browser.resource if self.browser.is_acquired else None

    async def release(self) -> None:
        """Release the database handle, if still held."""
        if self.interrupt_guard is not None and self.database.is_acquired:
            await self.interrupt_guard.release()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "environment": self.environment.to_dict(),
            "database": self.database.to_dict(),
            "browser": self.browser.to_dict(),
            "degraded_mode": self.degraded_mode,
            "exit_code": self.exit_code,
        }


class BootstrapSequence:
    """
    Startup bootstrap: database first, then browser.

    Example:
        report = await BootstrapSequence(env).run()
        if report.exit_code:
            sys.exit(report.exit_code)
    """

    def __init__(
        self,
        environment: Environment,
        mode_state: Optional[ModeState] = None,
        connectivity: Optional[ConnectivityResolver] = None,
        binary: Optional[BinaryResolver] = None,
    ):
        self.environment = environment
        self.mode_state = mode_state or ModeState.from_environment(environment)
        self.connectivity = connectivity or ConnectivityResolver(environment, self.mode_state)
        self.binary = binary or BinaryResolver(environment)

    async def run(self) -> BootstrapReport:
        """
        Resolve both resources.

        Returns:
            BootstrapReport with both outcomes and the final degraded flag
        """
        logger.info(
            f"Bootstrapping in {self.environment.deployment_mode.value} mode "
            f"(degraded mode opt-in: {self.environment.explicit_degraded_mode_flag})"
        )

        database = await self.connectivity.resolve()
        if database.is_fatal:
            logger.critical(f"Database bootstrap failed: {database.reason}")
            browser = ResolutionOutcome.degraded(REASON_ABORTED)
        else:
            browser = await self.binary.resolve()

        report = BootstrapReport(
            environment=self.environment,
            database=database,
            browser=browser,
            degraded_mode=self.mode_state.degraded,
            interrupt_guard=self.connectivity.interrupt_guard,
        )

        for name, outcome in (("database", database), ("browser", browser)):
            if outcome.is_degraded:
                logger.warning(f"{name}: running degraded ({outcome.reason})")
            elif outcome.is_acquired:
                logger.info(f"{name}: acquired via {outcome.tier}")

        return report
