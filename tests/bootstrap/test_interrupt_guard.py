"""
Tests for the release-on-interrupt guard.

Tests cover:
- Handles are released exactly once across signal and normal shutdown
- Signal handlers are registered on first install only
- A termination signal releases and then exits with status 0
"""

import asyncio
import signal

import pytest

from core.bootstrap import InterruptGuard


class FakeHandle:
    def __init__(self, fail: bool = False):
        self.close_calls = 0
        self.fail = fail

    async def close(self):
        self.close_calls += 1
        if self.fail:
            raise RuntimeError("socket already gone")


class TestRelease:
    """Test idempotent release."""

    @pytest.mark.asyncio
    async def test_release_closes_once(self, interrupt_guard):
        handle = FakeHandle()
        interrupt_guard.install(handle)

        assert await interrupt_guard.release() is True
        assert await interrupt_guard.release() is False
        assert handle.close_calls == 1
        assert interrupt_guard.released

    @pytest.mark.asyncio
    async def test_concurrent_release(self, interrupt_guard):
        handle = FakeHandle()
        interrupt_guard.install(handle)

        results = await asyncio.gather(interrupt_guard.release(), interrupt_guard.release())

        assert sorted(results) == [False, True]
        assert handle.close_calls == 1

    @pytest.mark.asyncio
    async def test_close_error_is_logged_not_raised(self, interrupt_guard):
        handle = FakeHandle(fail=True)
        interrupt_guard.install(handle)

        assert await interrupt_guard.release() is False
        assert await interrupt_guard.release() is False
        assert handle.close_calls == 1

    @pytest.mark.asyncio
    async def test_release_without_handles(self, interrupt_guard):
        assert await interrupt_guard.release() is False
        assert not interrupt_guard.released


class TestInstall:
    """Test signal handler registration."""

    @pytest.mark.asyncio
    async def test_install_registers_once(self, interrupt_guard):
        first, second = FakeHandle(), FakeHandle()

        assert interrupt_guard.install(first) is True
        assert interrupt_guard.install(second) is False
        assert interrupt_guard.installed

        await interrupt_guard.release()
        assert first.close_calls == 1
        assert second.close_calls == 1

    @pytest.mark.asyncio
    async def test_uninstall_restores_loop_handlers(self, exit_recorder):
        guard = InterruptGuard(signals=(signal.SIGUSR1,), exit_process=exit_recorder)
        guard.install(FakeHandle())
        try:
            assert guard.installed
        finally:
            guard.uninstall()
        assert not guard.installed


class TestSignalHandling:
    """Test release-then-exit on a termination signal."""

    @pytest.mark.asyncio
    async def test_signal_releases_then_exits_zero(self, interrupt_guard, exit_recorder):
        handle = FakeHandle()
        interrupt_guard.install(handle)

        interrupt_guard.handle_signal(signal.SIGTERM)
        interrupt_guard.handle_signal(signal.SIGINT)
        await asyncio.sleep(0.01)

        assert handle.close_calls == 1
        assert exit_recorder.codes == [0]

    @pytest.mark.asyncio
    async def test_real_signal_delivery(self, exit_recorder):
        guard = InterruptGuard(signals=(signal.SIGUSR1,), exit_process=exit_recorder)
        handle = FakeHandle()
        guard.install(handle)
        try:
            signal.raise_signal(signal.SIGUSR1)
            for _ in range(50):
                if exit_recorder.codes:
                    break
                await asyncio.sleep(0.01)
        finally:
            guard.uninstall()

        assert handle.close_calls == 1
        assert exit_recorder.codes == [0]

    @pytest.mark.asyncio
    async def test_shutdown_after_signal_does_not_close_again(self, interrupt_guard):
        handle = FakeHandle()
        interrupt_guard.install(handle)

        interrupt_guard.handle_signal(signal.SIGTERM)
        await asyncio.sleep(0.01)
        await interrupt_guard.release()

        assert handle.close_calls == 1
