"""
Binary Resolver.

Locates a usable browser executable at process start. Sources are tried
in priority order:

- Cached marker: path recorded by a previous start, re-verified on disk
- Bundled: the browser shipped with the automation library
- Fetch: download a pinned Chromium snapshot into the cache directory
- System: well-known executables on PATH

Failure to find a binary never aborts startup. The resolver degrades and
leaves it to callers to decide which features are unavailable.
"""

import asyncio
import logging
import os
import shutil
import zipfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import httpx

from core.bootstrap.environment import Environment
from core.bootstrap.tiers import (
    AcquisitionTier,
    ResolutionOutcome,
    TierFailure,
    TieredAcquisition,
)

logger = logging.getLogger(__name__)

MARKER_FILENAME = "binary_path.txt"
SYSTEM_BINARY_NAMES: Tuple[str, ...] = ("chromium-browser", "chromium", "google-chrome")
EXECUTABLE_MODE = 0o755

MARKER_TIER = "cached_marker"
BUNDLED_TIER = "bundled"
FETCH_TIER = "fetch"
SYSTEM_TIER = "system"

REASON_NO_BINARY = "no usable binary found"
REASON_SKIPPED = "skipped outside production"


class BundledBinaryLocator(ABC):
    """Bundling capability: reports where the bundled browser should live."""

    @abstractmethod
    async def locate(self) -> Optional[str]:
        """Return the bundled executable path, or None if there is none."""


class PlaywrightBundledLocator(BundledBinaryLocator):
    """Bundled Chromium as managed by Playwright."""

    async def locate(self) -> Optional[str]:
        from playwright.async_api import async_playwright

        async with async_playwright() as playwright:
            return playwright.chromium.executable_path or None


class BinaryFetcher(ABC):
    """Download capability: ``fetch(revision, dest_dir, platform) -> Path``."""

    @abstractmethod
    async def fetch(self, revision: str, dest_dir: Path, platform: str) -> Path:
        """Download and unpack a revision, returning the executable path."""


class ChromiumSnapshotFetcher(BinaryFetcher):
    """
    Downloads Chromium snapshot builds from the public snapshot bucket.

    Archives are unpacked into ``<dest_dir>/<platform>-<revision>``. An
    already unpacked revision is reused without downloading again; an
    interrupted unpack never lands in the install directory.
    """

    BASE_URL = "https://storage.googleapis.com/chromium-browser-snapshots"

    # platform -> (bucket folder, archive name, executable path inside the archive)
    PLATFORMS: Dict[str, Tuple[str, str, Tuple[str, ...]]] = {
        "linux": ("Linux_x64", "chrome-linux.zip", ("chrome-linux", "chrome")),
        "mac": ("Mac", "chrome-mac.zip",
                ("chrome-mac", "Chromium.app", "Contents", "MacOS", "Chromium")),
        "mac_arm": ("Mac_Arm", "chrome-mac.zip",
                    ("chrome-mac", "Chromium.app", "Contents", "MacOS", "Chromium")),
        "win64": ("Win_x64", "chrome-win.zip", ("chrome-win", "chrome.exe")),
    }

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 300.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def download_url(self, revision: str, platform: str) -> str:
        folder, archive, _ = self._platform_spec(platform)
        return f"{self.base_url}/{folder}/{revision}/{archive}"

    def _platform_spec(self, platform: str) -> Tuple[str, str, Tuple[str, ...]]:
        if platform not in self.PLATFORMS:
            raise ValueError(
                f"Unsupported platform '{platform}'. "
                f"Supported: {', '.join(sorted(self.PLATFORMS))}"
            )
        return self.PLATFORMS[platform]

    async def fetch(self, revision: str, dest_dir: Path, platform: str) -> Path:
        _, _, executable_parts = self._platform_spec(platform)
        install_dir = dest_dir / f"{platform}-{revision}"
        executable = install_dir.joinpath(*executable_parts)
        if executable.exists():
            logger.info(f"Revision {revision} already present in {install_dir}")
            return executable

        url = self.download_url(revision, platform)
        dest_dir.mkdir(parents=True, exist_ok=True)
        archive_path = dest_dir / f"{platform}-{revision}.zip"
        partial_dir = dest_dir / f".{platform}-{revision}.partial"
        logger.info(f"Downloading browser revision {revision} (this may take a few minutes)")

        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout, connect=10.0),
                follow_redirects=True,
                transport=self.transport,
            ) as client:
                async with client.stream("GET", url) as response:
                    response.raise_for_status()
                    with open(archive_path, "wb") as f:
                        async for chunk in response.aiter_bytes(chunk_size=65536):
                            f.write(chunk)

            # Unpack beside the install dir and move it in only once complete
            shutil.rmtree(partial_dir, ignore_errors=True)
            await asyncio.to_thread(self._extract, archive_path, partial_dir)
            shutil.rmtree(install_dir, ignore_errors=True)
            os.replace(partial_dir, install_dir)
        finally:
            archive_path.unlink(missing_ok=True)
            shutil.rmtree(partial_dir, ignore_errors=True)

        logger.info(f"Browser revision {revision} unpacked to {install_dir}")
        return executable

    @staticmethod
    def _extract(archive_path: Path, install_dir: Path) -> None:
        with zipfile.ZipFile(archive_path) as archive:
            archive.extractall(install_dir)


class MarkerFile:
    """Plain-text file holding the last resolved executable path."""

    def __init__(self, path: Path):
        self.path = path

    def read(self) -> Optional[str]:
        try:
            content = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        return content or None

    def write(self, executable_path: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(executable_path, encoding="utf-8")


class BinaryResolver:
    """
    Resolves the browser executable for this process.

    Only runs in production; elsewhere it reports a degraded outcome
    without probing anything.

    Example:
        resolver = BinaryResolver(env)
        outcome = await resolver.resolve()
        if outcome.is_acquired:
            launch(outcome.resource)
    """

    def __init__(
        self,
        environment: Environment,
        bundled: Optional[BundledBinaryLocator] = None,
        fetcher: Optional[BinaryFetcher] = None,
        which: Optional[Callable[[str], Optional[str]]] = None,
        system_names: Sequence[str] = SYSTEM_BINARY_NAMES,
        acquisition: Optional[TieredAcquisition] = None,
    ):
        self.environment = environment
        self.bundled = bundled or PlaywrightBundledLocator()
        self.fetcher = fetcher or ChromiumSnapshotFetcher()
        self.which = which or shutil.which
        self.system_names = tuple(system_names)
        self.acquisition = acquisition or TieredAcquisition()
        self.marker = MarkerFile(environment.cache_directory / MARKER_FILENAME)

    def tiers(self) -> List[AcquisitionTier]:
        return [
            AcquisitionTier(MARKER_TIER, self._probe_marker),
            AcquisitionTier(BUNDLED_TIER, self._probe_bundled),
            AcquisitionTier(FETCH_TIER, self._probe_fetch),
            AcquisitionTier(SYSTEM_TIER, self._probe_system),
        ]

    async def _probe_marker(self) -> str:
        try:
            recorded = self.marker.read()
        except OSError as e:
            raise TierFailure.not_configured(f"Marker file unreadable: {e}", cause=e)
        if recorded is None:
            raise TierFailure.not_configured("No marker file from a previous start")
        if not Path(recorded).exists():
            raise TierFailure.verification_failed(f"Recorded path no longer exists: {recorded}")
        return recorded

    async def _probe_bundled(self) -> str:
        try:
            path = await self.bundled.locate()
        except Exception as e:
            raise TierFailure.probe_error(f"No bundled browser found: {e}", cause=e)
        if not path:
            raise TierFailure.not_configured("Bundling library reports no executable path")
        logger.info(f"Found bundled browser at: {path}")
        if not Path(path).exists():
            raise TierFailure.verification_failed(
                f"Bundled browser path reported but file not found: {path}"
            )
        return path

    async def _probe_fetch(self) -> str:
        cache_dir = self.environment.cache_directory
        revision = self.environment.binary_revision
        try:
            cache_dir.mkdir(parents=True, exist_ok=True)
            executable = await self.fetcher.fetch(
                revision, cache_dir, self.environment.binary_platform
            )
        except Exception as e:
            raise TierFailure.probe_error(f"Failed to download browser: {e}", cause=e)

        if not Path(executable).exists():
            raise TierFailure.verification_failed(
                f"Browser executable not found after download: {executable}"
            )
        try:
            os.chmod(executable, EXECUTABLE_MODE)
        except OSError as e:
            raise TierFailure.probe_error(f"Could not make browser executable: {e}", cause=e)
        logger.info(f"Browser revision {revision} ready at: {executable}")
        return str(executable)

    async def _probe_system(self) -> str:
        for name in self.system_names:
            found = self.which(name)
            if found and Path(found).exists():
                logger.info(f"Found system browser: {found}")
                return found
        raise TierFailure.not_configured(
            f"No system browser on PATH (tried {', '.join(self.system_names)})"
        )

    async def resolve(self) -> ResolutionOutcome:
        """
        Run one resolution pass.

        Returns:
            Acquired with the executable path, or Degraded
        """
        if not self.environment.is_production:
            logger.info("Skipping browser resolution (not in production)")
            return ResolutionOutcome.degraded(REASON_SKIPPED)

        logger.info(f"Using browser cache directory: {self.environment.cache_directory}")
        result = await self.acquisition.run(self.tiers())

        if result.succeeded:
            path = os.path.abspath(result.resource)
            if result.tier != MARKER_TIER:
                self._persist(path)
            return ResolutionOutcome.acquired(path, tier=result.tier, failures=result.failures)

        logger.warning("Browser installation failed, continuing without a browser.")
        logger.warning("Features that need a browser will not work.")
        logger.warning(
            "Set BINARY_EXECUTABLE_PATH_OVERRIDE to point at an installed browser."
        )
        return ResolutionOutcome.degraded(REASON_NO_BINARY, result.failures)

    def _persist(self, path: str) -> None:
        try:
            self.marker.write(path)
            logger.info(f"Browser path saved to: {self.marker.path}")
        except OSError as e:
            logger.warning(f"Could not save browser path to {self.marker.path}: {e}")
