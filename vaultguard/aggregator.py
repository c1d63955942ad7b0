"""
VaultGuard - Vault State Aggregator
Reads assets, payroll streams and the bridge queue in parallel and folds
them into one immutable, timestamped VaultSnapshot.

Rules:
  - A snapshot is replaced wholesale, never patched.
  - Per-index batches are bracketed by two count reads; if the count moved,
    the batch is stale and the section keeps its previous data.
  - A failed per-index read drops that entry only.
  - A failed section read keeps the previous section.
  - A refresh that finishes after a newer refresh was applied is discarded.
"""

import sys
import time
import asyncio
from dataclasses import replace

from .assets import DEMO_ASSETS, build_vault_asset
from .bridge import reconcile_bridge_queue
from .config import (
    RECENT_LIMIT, REFRESH_INTERVAL, TICK_INTERVAL, VG_TOKEN_ADDRESS, ZCASH_BRIDGE_ADDRESS,
)
from .errors import StaleBatchError
from .streams import compute_stream_views
from .types import VaultSnapshot


def _warn(warnings, message):
    warnings.append(message)
    print(f"Warning: {message}", file=sys.stderr)


async def _sleep_or_stop(stop, seconds):
    try:
        await asyncio.wait_for(stop.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        pass


class VaultStateAggregator:

    def __init__(self, reader, owner, bridge_address=ZCASH_BRIDGE_ADDRESS or None,
                 native_token=VG_TOKEN_ADDRESS, recent_limit=RECENT_LIMIT, clock=time.time):
        self.reader = reader
        self.owner = owner
        self.bridge_address = bridge_address
        self.native_token = native_token
        self.recent_limit = recent_limit
        self.clock = clock

        self._epoch = 0
        self._refresh_seq = 0
        self._applied_seq = 0
        now = self.now()
        self._snapshot = VaultSnapshot(epoch=0, owner=owner, reference_time=now, fetched_at=now)

    @property
    def snapshot(self):
        return self._snapshot

    @property
    def is_contract_backed(self):
        return self.reader is not None and bool(self.owner)

    def now(self):
        return int(self.clock())

    def require_stream(self, stream_id, epoch=None):
        return self._snapshot.require_stream(stream_id, epoch)

    # ============================================================
    # Section reads
    # ============================================================

    async def _read_assets(self):
        records = await self.reader.get_vault_tokens(self.owner)
        return tuple(build_vault_asset(r, self.native_token) for r in records)

    async def _read_batch(self, section, count_read, item_read, warnings):
        count = await count_read()
        results = await asyncio.gather(
            *(item_read(i) for i in range(count)), return_exceptions=True
        )
        recount = await count_read()
        if recount != count:
            raise StaleBatchError(section, count, recount)

        items = []
        for index, result in enumerate(results):
            if isinstance(result, Exception):
                _warn(warnings, f"Could not read {section} entry {index}: {result}")
                continue
            items.append(result)
        return count, tuple(items)

    async def _read_streams(self, warnings):
        return await self._read_batch(
            "streams",
            lambda: self.reader.get_stream_count(self.owner),
            lambda i: self.reader.get_stream(self.owner, i),
            warnings,
        )

    async def _read_bridge(self, warnings, previous):
        bridge = self.bridge_address or await self.reader.get_bridge_address()
        if not bridge:
            return None, (), ()

        try:
            commitments = tuple(await self.reader.get_commitments(bridge))
        except Exception as e:
            _warn(warnings, f"Could not read bridge commitments: {e}")
            commitments = previous.commitments

        _, transfers = await self._read_batch(
            "bridge queue",
            lambda: self.reader.get_queue_length(bridge),
            lambda i: self.reader.get_queued_transfer(bridge, i),
            warnings,
        )
        return bridge, transfers, commitments

    # ============================================================
    # Refresh / tick
    # ============================================================

    def _demo_snapshot(self, now):
        return VaultSnapshot(
            epoch=self._epoch + 1,
            owner=self.owner,
            reference_time=now,
            fetched_at=now,
            assets=DEMO_ASSETS,
            is_contract_backed=False,
        )

    async def refresh(self):
        """Fetch everything and install a new snapshot. Returns the installed snapshot."""
        self._refresh_seq += 1
        seq = self._refresh_seq
        previous = self._snapshot

        if not self.is_contract_backed:
            return self._install(seq, self._demo_snapshot(self.now()))

        warnings = []
        stale = []
        assets_res, streams_res, bridge_res = await asyncio.gather(
            self._read_assets(),
            self._read_streams(warnings),
            self._read_bridge(warnings, previous),
            return_exceptions=True,
        )

        if isinstance(assets_res, Exception):
            _warn(warnings, f"Could not read vault assets: {assets_res}")
            assets = previous.assets
        else:
            assets = assets_res

        if isinstance(streams_res, StaleBatchError):
            stale.append("streams")
            _warn(warnings, str(streams_res))
            stream_count, streams = previous.stream_count, previous.streams
        elif isinstance(streams_res, Exception):
            _warn(warnings, f"Could not read payroll streams: {streams_res}")
            stream_count, streams = previous.stream_count, previous.streams
        else:
            stream_count, streams = streams_res

        if isinstance(bridge_res, StaleBatchError):
            stale.append("bridge")
            _warn(warnings, str(bridge_res))
            bridge_address, transfers, commitments = (
                previous.bridge_address, previous.transfers, previous.commitments)
        elif isinstance(bridge_res, Exception):
            _warn(warnings, f"Could not read bridge queue: {bridge_res}")
            bridge_address, transfers, commitments = (
                previous.bridge_address, previous.transfers, previous.commitments)
        else:
            bridge_address, transfers, commitments = bridge_res

        now = self.now()
        snapshot = VaultSnapshot(
            epoch=self._epoch + 1,
            owner=self.owner,
            reference_time=now,
            fetched_at=now,
            assets=assets,
            streams=streams,
            stream_views=compute_stream_views(streams, now, self.native_token),
            stream_count=stream_count,
            bridge_address=bridge_address,
            transfers=transfers,
            commitments=commitments,
            bridge=reconcile_bridge_queue(transfers, commitments, self.recent_limit),
            is_contract_backed=True,
            stale_sections=tuple(stale),
            warnings=tuple(warnings),
        )
        return self._install(seq, snapshot)

    def _install(self, seq, snapshot):
        if seq < self._applied_seq:
            # a newer refresh already landed
            return self._snapshot
        self._applied_seq = seq
        self._epoch = snapshot.epoch
        self._snapshot = snapshot
        return snapshot

    def tick(self, now=None):
        """Resample the reference time and rebuild stream views. No chain reads."""
        now = self.now() if now is None else int(now)
        current = self._snapshot
        self._snapshot = replace(
            current,
            reference_time=now,
            stream_views=compute_stream_views(current.streams, now, self.native_token),
        )
        return self._snapshot

    async def watch(self, refresh_interval=REFRESH_INTERVAL, tick_interval=TICK_INTERVAL,
                    on_snapshot=None, stop=None):
        """
        Run refresh and clock-tick loops until `stop` (an asyncio.Event) is set.
        `on_snapshot` is called with every newly installed snapshot.
        """
        stop = stop or asyncio.Event()

        def notify(snapshot):
            if on_snapshot is not None:
                on_snapshot(snapshot)

        async def refresher():
            while not stop.is_set():
                notify(await self.refresh())
                await _sleep_or_stop(stop, refresh_interval)

        async def ticker():
            await _sleep_or_stop(stop, tick_interval)
            while not stop.is_set():
                notify(self.tick())
                await _sleep_or_stop(stop, tick_interval)

        await asyncio.gather(refresher(), ticker())
