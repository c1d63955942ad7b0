import asyncio

import pytest

from vaultguard.aggregator import VaultStateAggregator
from vaultguard.assets import DEMO_ASSETS
from vaultguard.errors import StaleSnapshotError
from vaultguard.tests.factories import BRIDGE, OWNER, hash32
from vaultguard.types import StreamStatus


def _aggregator(reader, now=400, **kwargs):
    kwargs.setdefault("bridge_address", BRIDGE)
    return VaultStateAggregator(reader, OWNER, native_token="", clock=lambda: now, **kwargs)


@pytest.mark.asyncio
async def test_refresh_builds_full_snapshot(reader):
    agg = _aggregator(reader)
    snap = await agg.refresh()

    assert snap is agg.snapshot
    assert snap.epoch == 1
    assert snap.is_contract_backed
    assert [a.symbol for a in snap.assets] == ["USDC", "WBTC"]
    assert snap.total_target_weight_bps == 10000
    assert snap.stream_count == 2
    assert snap.stream_views[0].claimable_amount == 3000
    assert snap.stream_views[0].status == StreamStatus.READY
    assert [t.index for t in snap.bridge.pending] == [2]
    assert [t.index for t in snap.bridge.missing_settlement_id] == [1]
    assert snap.bridge.recent_commitments[0] == hash32(10)
    assert len(snap.bridge.recent_commitments) == 8
    assert snap.stale_sections == ()
    assert snap.warnings == ()


@pytest.mark.asyncio
async def test_bridge_address_read_from_vault(reader):
    agg = _aggregator(reader, bridge_address=None)
    snap = await agg.refresh()
    assert snap.bridge_address == BRIDGE
    assert "zcashBridge" in reader.calls


@pytest.mark.asyncio
async def test_no_bridge_configured(reader):
    reader.bridge_address = None
    agg = _aggregator(reader, bridge_address=None)
    snap = await agg.refresh()
    assert snap.bridge_address is None
    assert snap.transfers == ()
    assert "queueLength" not in reader.calls


@pytest.mark.asyncio
async def test_epoch_increases_per_refresh(reader):
    agg = _aggregator(reader)
    first = await agg.refresh()
    second = await agg.refresh()
    assert (first.epoch, second.epoch) == (1, 2)


@pytest.mark.asyncio
async def test_stream_count_change_marks_section_stale(reader):
    agg = _aggregator(reader)
    first = await agg.refresh()

    reader.stream_counts = [2, 3]
    snap = await agg.refresh()

    assert snap.stale_sections == ("streams",)
    assert snap.streams == first.streams
    assert snap.stream_count == first.stream_count
    assert any("count changed from 2 to 3" in w for w in snap.warnings)
    with pytest.raises(StaleSnapshotError):
        snap.require_stream(0, snap.epoch)


@pytest.mark.asyncio
async def test_failed_stream_entry_is_omitted(reader):
    reader.fail_stream_index = 1
    agg = _aggregator(reader)
    snap = await agg.refresh()

    assert snap.stream_count == 2
    assert [s.id for s in snap.streams] == [0]
    assert any("streams entry 1" in w for w in snap.warnings)
    assert snap.require_stream(0).id == 0
    with pytest.raises(StaleSnapshotError):
        snap.require_stream(1)


@pytest.mark.asyncio
async def test_failed_section_keeps_previous_data(reader):
    agg = _aggregator(reader)
    first = await agg.refresh()

    reader.fail_assets = RuntimeError("rpc timeout")
    reader.fail_commitments = RuntimeError("rpc timeout")
    snap = await agg.refresh()

    assert snap.epoch == 2
    assert snap.assets == first.assets
    assert snap.commitments == first.commitments
    assert snap.stale_sections == ()
    assert len(snap.warnings) == 2


@pytest.mark.asyncio
async def test_tick_recomputes_views_without_reads(reader):
    agg = _aggregator(reader)
    snap = await agg.refresh()
    calls = len(reader.calls)

    ticked = agg.tick(now=700)

    assert len(reader.calls) == calls
    assert ticked.epoch == snap.epoch
    assert ticked.reference_time == 700
    assert ticked.fetched_at == snap.fetched_at
    assert ticked.stream_views[0].claimable_amount == 6000
    # previous snapshot is untouched
    assert snap.stream_views[0].claimable_amount == 3000


@pytest.mark.asyncio
async def test_demo_snapshot_without_reader():
    agg = VaultStateAggregator(None, None, clock=lambda: 100)
    snap = await agg.refresh()
    assert not snap.is_contract_backed
    assert snap.assets == DEMO_ASSETS
    assert snap.streams == ()
    assert snap.epoch == 1


@pytest.mark.asyncio
async def test_require_stream_rejects_old_epoch(reader):
    agg = _aggregator(reader)
    first = await agg.refresh()
    await agg.refresh()

    with pytest.raises(StaleSnapshotError) as exc:
        agg.require_stream(0, first.epoch)
    assert exc.value.current_epoch == 2
    assert agg.require_stream(0, 2).id == 0


@pytest.mark.asyncio
async def test_require_stream_rejects_out_of_range(reader):
    agg = _aggregator(reader)
    await agg.refresh()
    with pytest.raises(StaleSnapshotError):
        agg.require_stream(5)


@pytest.mark.asyncio
async def test_late_refresh_is_discarded(reader):
    agg = _aggregator(reader)
    entered, release = asyncio.Event(), asyncio.Event()
    reader.assets_gate = (entered, release)

    slow = asyncio.create_task(agg.refresh())
    await entered.wait()
    fast = await agg.refresh()

    release.set()
    late = await slow

    assert fast.epoch == 1
    assert late is fast
    assert agg.snapshot is fast


@pytest.mark.asyncio
async def test_watch_stops_on_event(reader):
    agg = _aggregator(reader)
    stop = asyncio.Event()
    seen = []

    def on_snapshot(snapshot):
        seen.append(snapshot)
        stop.set()

    await asyncio.wait_for(agg.watch(60, 60, on_snapshot=on_snapshot, stop=stop), timeout=5)
    assert len(seen) == 1
    assert seen[0].epoch == 1
