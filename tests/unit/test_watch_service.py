"""
Unit tests for WatchService using the fake file watcher.
"""

import asyncio
from pathlib import Path

import pytest

from passcan.core.config import ScanConfig
from passcan.core.errors import WatchError
from passcan.core.file_events import ChangeEvent, ChangeKind
from passcan.core.rules import builtin_rule_set
from passcan.core.watch_config import WatchConfig
from passcan.infrastructure.fakes import FakeFileWatcher
from passcan.services.scan_coordinator import ScanCoordinator
from passcan.services.scan_models import FlushResult
from passcan.services.watch_service import PathValidationError, WatchService

AWS_KEY = "AKIA1234567890ABCDEF"


def make_service(root: Path, watcher: FakeFileWatcher, **kwargs) -> WatchService:
    coordinator = ScanCoordinator(builtin_rule_set(), config=ScanConfig(redact=False, max_workers=1))
    config = WatchConfig(watch_path=root, debounce_ms=20, max_wait_ms=200)
    return WatchService(coordinator, watcher, config, **kwargs)


@pytest.fixture
def root(tmp_path: Path) -> Path:
    resolved = tmp_path.resolve()
    (resolved / "app.env").write_text(f"AWS_KEY={AWS_KEY}\n")
    return resolved


@pytest.mark.asyncio
async def test_start_runs_full_scan(root):
    watcher = FakeFileWatcher()
    service = make_service(root, watcher)

    report = await service.start()
    assert service.is_running()
    assert watcher.is_running()
    assert watcher.watch_path == root

    await service.wait_for_full_scan()
    await service.stop()

    assert str(root / "app.env") in report
    assert service.get_stats().full_scan_completed
    assert not service.is_running()
    assert not watcher.is_running()


@pytest.mark.asyncio
async def test_change_event_triggers_flush(root):
    watcher = FakeFileWatcher()
    flushed = asyncio.Event()
    results: list[FlushResult] = []

    def on_flush(result: FlushResult) -> None:
        results.append(result)
        flushed.set()

    service = make_service(root, watcher, on_flush=on_flush)
    report = await service.start()
    await service.wait_for_full_scan()

    (root / "app.env").write_text("AWS_KEY=redacted\n")
    watcher.trigger_event(ChangeEvent(path=root / "app.env", kind=ChangeKind.MODIFIED))
    assert [e.kind for e in watcher.get_triggered_events()] == [ChangeKind.MODIFIED]
    await asyncio.wait_for(flushed.wait(), timeout=5)
    await service.stop()

    assert str(root / "app.env") not in report
    stats = service.get_stats()
    assert stats.flushes == 1
    assert stats.findings_removed == 1
    assert stats.events_received == 1
    assert stats.last_flush_at is not None
    assert results[0].findings_removed == 1


@pytest.mark.asyncio
async def test_restart_after_cancelled_scan_scans_again(root):
    watcher = FakeFileWatcher()
    coordinator = ScanCoordinator(builtin_rule_set(), config=ScanConfig(redact=False, max_workers=1))
    config = WatchConfig(watch_path=root, debounce_ms=20, max_wait_ms=200)
    service = WatchService(coordinator, watcher, config)

    await service.start()
    event = ChangeEvent(path=root / "app.env", kind=ChangeKind.MODIFIED)
    watcher.trigger_event(event)
    assert watcher.get_triggered_events() == [event]
    await service.stop()
    coordinator.cancel()
    watcher.clear_events()
    assert watcher.get_triggered_events() == []

    report = await service.start()
    await service.wait_for_full_scan()
    await service.stop()

    assert not report.metadata.cancelled
    assert str(root / "app.env") in report


@pytest.mark.asyncio
async def test_watcher_failure_on_start(root):
    service = make_service(root, FakeFileWatcher(fail_on_start=True))

    with pytest.raises(WatchError):
        await service.start()
    assert not service.is_running()


@pytest.mark.asyncio
async def test_missing_path_rejected(tmp_path):
    service = make_service(tmp_path / "missing", FakeFileWatcher())

    with pytest.raises(PathValidationError):
        await service.start()


@pytest.mark.asyncio
async def test_file_path_rejected(root):
    service = make_service(root / "app.env", FakeFileWatcher())

    with pytest.raises(PathValidationError):
        await service.start()


@pytest.mark.asyncio
async def test_start_twice_fails(root):
    service = make_service(root, FakeFileWatcher())
    await service.start()

    with pytest.raises(WatchError):
        await service.start()
    await service.stop()


@pytest.mark.asyncio
async def test_watcher_death_ends_session(root):
    watcher = FakeFileWatcher()
    service = make_service(root, watcher, health_check_interval=0.01)
    await service.start()
    await service.wait_for_full_scan()

    watcher.simulate_failure()

    with pytest.raises(WatchError):
        await asyncio.wait_for(service.wait(), timeout=5)
    assert service.get_stats().errors == 1
    await service.stop()


@pytest.mark.asyncio
async def test_wait_returns_after_stop(root):
    service = make_service(root, FakeFileWatcher())
    await service.start()

    waiter = asyncio.create_task(service.wait())
    await service.stop()
    await asyncio.wait_for(waiter, timeout=5)

    assert waiter.done()
    assert waiter.exception() is None


@pytest.mark.asyncio
async def test_stop_when_not_running_is_noop(root):
    service = make_service(root, FakeFileWatcher())
    await service.stop()
    assert not service.is_running()


def test_stats_to_dict():
    service = make_service(Path("."), FakeFileWatcher())
    data = service.get_stats().to_dict()

    assert data["flushes"] == 0
    assert data["last_flush_at"] is None
    assert data["full_scan_completed"] is False
    assert "started_at" in data
