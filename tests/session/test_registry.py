import asyncio

import pytest

from plant_doctor.core.errors import SessionNotFoundError
from plant_doctor.core.models import AnalysisResult, ImageFile
from plant_doctor.diagnosis.mock import MockDiagnosisClient
from plant_doctor.diagnosis.parsing import parse_diagnosis
from plant_doctor.session.registry import SessionRegistry
from plant_doctor.session.states import Analyzing, Completed, Idle, image_of


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class GatedDiagnosisClient:
    """Blocks inside diagnose() until the test opens the gate."""

    def __init__(self):
        self.model_id = "gated-model"
        self.calls = 0
        self.gate: asyncio.Event | None = None

    async def diagnose(self, transport_text: str) -> AnalysisResult:
        self.calls += 1
        await self.gate.wait()
        return parse_diagnosis('{"disease": "Rust"}')


def _jpeg(name: str = "leaf.jpg") -> ImageFile:
    return ImageFile.from_bytes(name, "image/jpeg", b"\xff\xd8" + b"\x00" * 1024)


def _registry(client=None, **kwargs) -> SessionRegistry:
    kwargs.setdefault("clock", FakeClock())
    return SessionRegistry(client or MockDiagnosisClient(), **kwargs)


def test_live_sessions_never_exceed_cap():
    reg = _registry(max_sessions=10, ttl_seconds=None)

    for _ in range(200):
        reg.create().select_image(_jpeg())

    assert len(reg) == 10


def test_capacity_eviction_drops_least_recently_used_and_releases_preview():
    clock = FakeClock()
    reg = _registry(max_sessions=2, ttl_seconds=None, clock=clock)

    first = reg.create()
    first.select_image(_jpeg("a.jpg"))
    first_image = image_of(first.state)
    clock.now += 1
    second = reg.create()
    clock.now += 1
    reg.get(first.session_id)  # touch: second is now the oldest
    clock.now += 1

    third = reg.create()

    assert second.session_id not in reg
    assert first.session_id in reg
    assert third.session_id in reg
    assert not first_image.preview.released

    clock.now += 1
    reg.get(third.session_id)
    clock.now += 1
    reg.create()

    assert first.session_id not in reg
    assert isinstance(first.state, Idle)
    assert first_image.preview.released
    with pytest.raises(SessionNotFoundError):
        reg.get(first.session_id)


def test_idle_sessions_expire_after_ttl():
    clock = FakeClock()
    reg = _registry(ttl_seconds=60, clock=clock)

    stale = reg.create()
    stale.select_image(_jpeg())
    stale_image = image_of(stale.state)
    clock.now += 30
    fresh = reg.create()

    clock.now += 31
    reg.create()

    assert stale.session_id not in reg
    assert stale_image.preview.released
    assert fresh.session_id in reg
    assert len(reg) == 2


def test_access_refreshes_ttl():
    clock = FakeClock()
    reg = _registry(ttl_seconds=60, clock=clock)

    kept = reg.create()
    clock.now += 50
    reg.get(kept.session_id)
    clock.now += 50

    reg.create()

    assert kept.session_id in reg


def test_analyzing_session_is_never_evicted():
    client = GatedDiagnosisClient()
    clock = FakeClock()
    reg = _registry(client=client, max_sessions=1, ttl_seconds=10, clock=clock)

    busy = reg.create()
    busy.select_image(_jpeg())

    async def scenario():
        client.gate = asyncio.Event()
        task = asyncio.create_task(busy.start_analysis())
        while not client.calls:
            await asyncio.sleep(0)

        clock.now += 100
        other = reg.create()

        assert isinstance(busy.state, Analyzing)
        assert busy.session_id in reg
        assert other.session_id in reg
        assert len(reg) == 2

        client.gate.set()
        return await task

    assert isinstance(asyncio.run(scenario()), Completed)


def test_discard_releases_preview_and_forgets_session():
    reg = _registry()
    session = reg.create()
    session.select_image(_jpeg())
    image = image_of(session.state)

    reg.discard(session.session_id)

    assert image.preview.released
    assert session.session_id not in reg
    assert len(reg) == 0


def test_rejects_non_positive_cap():
    with pytest.raises(ValueError):
        _registry(max_sessions=0)
