"""
Connectivity Resolver.

Decides at process start whether the service gets a live database
handle, runs in degraded mode without one, or must not start at all.

There is a single acquisition tier (the configured URI). The interesting
part is the fallback classification applied when that tier fails:

- Production always degrades and raises the process-wide degraded flag
- Development degrades only if the operator opted in, otherwise fatal
"""

import asyncio
import ipaddress
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional
from urllib.parse import parse_qs, unquote

from core.bootstrap.environment import Environment, ModeState
from core.bootstrap.shutdown import InterruptGuard, get_interrupt_guard
from core.bootstrap.tiers import (
    AcquisitionTier,
    ResolutionOutcome,
    TierFailure,
    TieredAcquisition,
)

logger = logging.getLogger(__name__)

CONFIGURED_URI_TIER = "configured_uri"

# Degraded/fatal reasons, kept distinct for observability
REASON_NO_URI = "no URI provided"
REASON_UNREACHABLE = "URI provided but unreachable"
REASON_UNSAFE_LOCAL_URI = "unsafe local URI in production"

_LOCAL_HOSTNAMES = {"localhost", "localhost.localdomain", "ip6-localhost", "ip6-loopback"}


def _split_hosts(uri: str) -> List[str]:
    """Extract the host names from a URI authority, multi-host aware."""
    _, sep, rest = uri.partition("://")
    if not sep:
        rest = uri
    authority = rest.split("/", 1)[0].split("?", 1)[0]
    authority = authority.rpartition("@")[2]

    hosts = []
    for entry in authority.split(","):
        entry = entry.strip()
        if not entry:
            continue
        if entry.startswith("["):
            host = entry[1:].split("]", 1)[0]
        elif entry.count(":") > 1:
            # Bare IPv6 without port
            host = entry
        else:
            host = entry.split(":", 1)[0]
        if host:
            hosts.append(unquote(host))
    return hosts


def _query_hosts(uri: str) -> List[str]:
    """Extract hosts given as ``host=`` query parameters."""
    query = uri.partition("?")[2]
    hosts = []
    for value in parse_qs(query).get("host", []):
        hosts.extend(h.strip() for h in value.split(",") if h.strip())
    return hosts


def is_loopback_uri(uri: str) -> bool:
    """
    Check whether a connection string points at the local machine.

    Hosts come from the authority and from ``host=`` query parameters. A
    URI is local if it names no host at all (the driver then falls back to
    the local socket), or if any host is a Unix socket directory, a
    localhost name, a loopback address, or the unspecified address.

    Args:
        uri: Connection string, e.g. ``postgresql://user@db.internal:5432/app``

    Returns:
        True if any host in the URI is local
    """
    hosts = _split_hosts(uri) + _query_hosts(uri)
    if not hosts:
        return True

    for host in hosts:
        if host.startswith("/"):
            return True
        name = host.lower().rstrip(".")
        if name in _LOCAL_HOSTNAMES or name.endswith(".localhost"):
            return True
        try:
            address = ipaddress.ip_address(name)
        except ValueError:
            continue
        if address.is_loopback or address.is_unspecified:
            return True
    return False


def _describe_host(uri: str) -> str:
    hosts = _split_hosts(uri)
    return ",".join(hosts) if hosts else "unknown host"


class DatabaseHandle:
    """
    Live database connection with passive observers and idempotent release.

    Wraps an asyncpg connection. Observers only log; they never change
    the resolution outcome.
    """

    def __init__(self, connection: Any, host: str = "unknown host"):
        self._connection = connection
        self.host = host
        self._closed = False

    @property
    def connection(self) -> Any:
        return self._connection

    @property
    def is_closed(self) -> bool:
        return self._closed or self._connection.is_closed()

    def add_disconnect_listener(self, callback: Callable[[], None]) -> None:
        self._connection.add_termination_listener(lambda conn: callback())

    def add_error_listener(self, callback: Callable[[Any], None]) -> None:
        """
        Observe messages the server reports on this connection.

        Backed by asyncpg's log listener, so only server NOTICE and WARNING
        messages arrive here. A lost connection is reported through
        ``add_disconnect_listener`` instead, and query errors are raised to
        the caller.
        """
        self._connection.add_log_listener(lambda conn, message: callback(message))

    async def ping(self) -> Any:
        return await self._connection.fetchval("SELECT 1")

    async def close(self) -> None:
        """Close the connection once; later calls are no-ops."""
        if self._closed:
            return
        self._closed = True
        if not self._connection.is_closed():
            await self._connection.close()


class Connector(ABC):
    """Connect capability: ``connect(uri, timeout) -> DatabaseHandle``."""

    @abstractmethod
    async def connect(self, uri: str, timeout: float) -> DatabaseHandle:
        """Open one connection, raising on any driver-level error."""


class AsyncpgConnector(Connector):
    """PostgreSQL connector backed by asyncpg."""

    async def connect(self, uri: str, timeout: float) -> DatabaseHandle:
        import asyncpg

        connection = await asyncpg.connect(dsn=uri, timeout=timeout)
        return DatabaseHandle(connection, host=_describe_host(uri))


class ConnectivityResolver:
    """
    Resolves the database handle for this process.

    Example:
        resolver = ConnectivityResolver(env, mode_state)
        outcome = await resolver.resolve()
        if outcome.is_fatal:
            sys.exit(1)
    """

    def __init__(
        self,
        environment: Environment,
        mode_state: ModeState,
        connector: Optional[Connector] = None,
        interrupt_guard: Optional[InterruptGuard] = None,
        acquisition: Optional[TieredAcquisition] = None,
    ):
        self.environment = environment
        self.mode_state = mode_state
        self.connector = connector or AsyncpgConnector()
        self.interrupt_guard = interrupt_guard or get_interrupt_guard()
        self.acquisition = acquisition or TieredAcquisition()

    def tiers(self) -> List[AcquisitionTier]:
        return [AcquisitionTier(CONFIGURED_URI_TIER, self._probe_configured_uri)]

    async def _probe_configured_uri(self) -> DatabaseHandle:
        uri = self.environment.resource_uri
        if not uri:
            raise TierFailure.not_configured(REASON_NO_URI)
        if self.environment.is_production and is_loopback_uri(uri):
            raise TierFailure.not_configured(REASON_UNSAFE_LOCAL_URI)

        timeout = self.environment.connect_timeout
        try:
            return await asyncio.wait_for(self.connector.connect(uri, timeout), timeout=timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"Database connection timed out after {timeout}s")
            raise TierFailure.probe_error(REASON_UNREACHABLE, cause=e)
        except Exception as e:
            logger.error(f"Error connecting to database: {e}")
            raise TierFailure.probe_error(REASON_UNREACHABLE, cause=e)

    async def resolve(self) -> ResolutionOutcome:
        """
        Run one resolution pass.

        Returns:
            Acquired with a DatabaseHandle, Degraded, or Fatal
        """
        result = await self.acquisition.run(self.tiers())

        if result.succeeded:
            handle = result.resource
            logger.info(f"Database connected: {handle.host}")
            self._observe(handle)
            return ResolutionOutcome.acquired(handle, tier=result.tier, failures=result.failures)

        reason = result.failures[-1].reason if result.failures else REASON_NO_URI
        return self._classify_failure(reason, result.failures)

    def _classify_failure(self, reason: str, failures: List[TierFailure]) -> ResolutionOutcome:
        if self.environment.is_production:
            logger.warning(f"Database unavailable in production ({reason})")
            self.mode_state.enter_degraded(reason)
            self._log_degraded_notice()
            return ResolutionOutcome.degraded(reason, failures)

        if self.mode_state.degraded:
            logger.warning(f"Database unavailable ({reason}), degraded mode is enabled")
            self._log_degraded_notice()
            return ResolutionOutcome.degraded(reason, failures)

        logger.error(f"Database is not available ({reason}). Please either:")
        logger.error("  1. Install and start the database locally")
        logger.error("  2. Point RESOURCE_URI at a reachable database server")
        logger.error("  3. Enable degraded mode: set DEGRADED_MODE=true")
        return ResolutionOutcome.fatal(reason, failures)

    @staticmethod
    def _log_degraded_notice() -> None:
        logger.warning("DEGRADED MODE: the service will run without its database.")
        logger.warning("Features that save or retrieve records will not work.")

    def _observe(self, handle: DatabaseHandle) -> None:
        def on_disconnect() -> None:
            logger.warning("Database disconnected")

        def on_error(message: Any) -> None:
            logger.warning(f"Database server reported: {message}")

        handle.add_disconnect_listener(on_disconnect)
        handle.add_error_listener(on_error)
        self.interrupt_guard.install(handle)
