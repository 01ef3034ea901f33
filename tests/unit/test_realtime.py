"""
实时合并器测试
"""

import asyncio

import pytest

from shared.errors import NotAuthorized, TransientStoreError
from shared.realtime.change_feed import InMemoryChangeFeed
from services.collab_service.realtime import RealtimeReconciler, ReconcilerState

pytestmark = pytest.mark.unit

TABLE = "group_messages"
GROUP = "g1"


async def eventually(predicate, timeout=1.0):
    """等待条件成立"""
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


class Source:
    """可控的全量数据源"""

    def __init__(self, feed, rows=None):
        self.feed = feed
        self.rows = list(rows or [])
        self.fetches = 0
        self.events = []

    async def fetch(self):
        self.fetches += 1
        self.events.append("fetch")
        return [dict(r) for r in self.rows]

    async def subscribe(self):
        self.events.append("subscribe")
        return await self.feed.subscribe(TABLE, GROUP)

    async def insert(self, row):
        row = {"group_id": GROUP, **row}
        self.rows.append(row)
        await self.feed.publish(TABLE, row)


def make_reconciler(source, **kwargs):
    return RealtimeReconciler(TABLE, GROUP, source.fetch, source.subscribe, resync_delay=0, **kwargs)


def test_merge_deduplicates_and_appends():
    reconciler = RealtimeReconciler(TABLE, GROUP, None, None)
    reconciler.replace([{"id": 1}, {"id": 2}, {"id": 1}])

    assert reconciler.merge({"id": 0}) is True
    assert reconciler.merge({"id": 2}) is False
    assert [r["id"] for r in reconciler.rows] == [1, 2, 0]


async def test_subscribes_before_fetching():
    source = Source(InMemoryChangeFeed(), [{"id": "m1"}])
    reconciler = make_reconciler(source)

    await reconciler.start()
    try:
        assert source.events == ["subscribe", "fetch"]
        assert reconciler.state is ReconcilerState.LIVE
        assert [r["id"] for r in reconciler.rows] == ["m1"]
    finally:
        await reconciler.stop()


async def test_insert_during_fetch_is_not_duplicated():
    feed = InMemoryChangeFeed()
    source = Source(feed, [{"id": "m1"}])

    async def fetch_with_race():
        # 拉取期间有新行插入：既出现在快照里也出现在推送里
        await source.insert({"id": "m2"})
        return await Source.fetch(source)

    inserted = []

    async def on_insert(row):
        inserted.append(row["id"])

    reconciler = RealtimeReconciler(TABLE, GROUP, fetch_with_race, source.subscribe,
                                    on_insert=on_insert, resync_delay=0)
    async with reconciler:
        await source.insert({"id": "m3"})
        await eventually(lambda: len(reconciler.rows) == 3)

    assert [r["id"] for r in reconciler.rows] == ["m1", "m2", "m3"]
    assert inserted == ["m3"]
    assert reconciler.state is ReconcilerState.CLOSED
    assert feed.subscriber_count(TABLE, GROUP) == 0


async def test_resolve_row_enriches_pushed_rows():
    source = Source(InMemoryChangeFeed())

    async def resolve(row):
        return {**row, "profile": {"display_name": "Alice"}}

    async with make_reconciler(source, resolve_row=resolve) as reconciler:
        await source.insert({"id": "m1"})
        await eventually(lambda: reconciler.rows)

    assert reconciler.rows[0]["profile"]["display_name"] == "Alice"


async def test_disconnect_triggers_resync():
    feed = InMemoryChangeFeed()
    source = Source(feed, [{"id": "m1"}])
    snapshots = []

    async def on_snapshot(rows):
        snapshots.append([r["id"] for r in rows])

    async with make_reconciler(source, on_snapshot=on_snapshot) as reconciler:
        # 断开期间插入的行由重新拉取补齐
        await feed.disconnect(TABLE, GROUP)
        source.rows.append({"id": "m2", "group_id": GROUP})

        await eventually(lambda: source.fetches == 2 and reconciler.state is ReconcilerState.LIVE)
        assert feed.subscriber_count(TABLE, GROUP) == 1

        await source.insert({"id": "m3"})
        await eventually(lambda: len(reconciler.rows) == 3)

    assert snapshots == [["m1"], ["m1", "m2"]]
    assert [r["id"] for r in reconciler.rows] == ["m1", "m2", "m3"]


async def test_resync_retries_transient_failures():
    feed = InMemoryChangeFeed()
    source = Source(feed, [{"id": "m1"}])
    failures = [TransientStoreError("store down")]

    async def flaky_fetch():
        if source.fetches == 1 and failures:
            source.fetches += 1
            raise failures.pop()
        return await source.fetch()

    reconciler = RealtimeReconciler(TABLE, GROUP, flaky_fetch, source.subscribe, resync_delay=0)
    async with reconciler:
        await feed.disconnect(TABLE, GROUP)
        await eventually(lambda: source.fetches == 3 and reconciler.state is ReconcilerState.LIVE)
        # 失败那一轮的订阅已释放
        assert feed.subscriber_count(TABLE, GROUP) == 1


async def test_lost_access_stops_reconciler():
    feed = InMemoryChangeFeed()
    source = Source(feed, [{"id": "m1"}])

    async def fetch():
        if source.fetches >= 1:
            raise NotAuthorized("You are not a member of this group")
        return await source.fetch()

    reconciler = RealtimeReconciler(TABLE, GROUP, fetch, source.subscribe, resync_delay=0)
    await reconciler.start()
    await feed.disconnect(TABLE, GROUP)

    await eventually(lambda: reconciler.state is ReconcilerState.CLOSED)
    assert feed.subscriber_count(TABLE, GROUP) == 0


async def test_pushed_rows_are_checked_against_current_access():
    feed = InMemoryChangeFeed()
    source = Source(feed, [{"id": "m1"}])
    allowed = {"value": True}
    inserts, revoked = [], []

    async def authorize():
        if not allowed["value"]:
            raise NotAuthorized("You are not a member of this group")

    async def on_insert(row):
        inserts.append(row["id"])

    async def on_revoked(error):
        revoked.append(error.message)

    reconciler = make_reconciler(source, authorize=authorize, on_insert=on_insert, on_revoked=on_revoked)
    await reconciler.start()
    await source.insert({"id": "m2"})
    await eventually(lambda: inserts == ["m2"])

    allowed["value"] = False
    await source.insert({"id": "m3"})

    await eventually(lambda: reconciler.state is ReconcilerState.CLOSED)
    assert inserts == ["m2"]
    assert [r["id"] for r in reconciler.rows] == ["m1", "m2"]
    assert revoked == ["You are not a member of this group"]
    assert feed.subscriber_count(TABLE, GROUP) == 0


async def test_stop_discards_late_snapshot():
    feed = InMemoryChangeFeed()
    release = asyncio.Event()
    fetch_started = asyncio.Event()
    snapshots = []

    async def slow_fetch():
        fetch_started.set()
        await release.wait()
        return [{"id": "late"}]

    async def on_snapshot(rows):
        snapshots.append(rows)

    async def subscribe():
        return await feed.subscribe(TABLE, GROUP)

    reconciler = RealtimeReconciler(TABLE, GROUP, slow_fetch, subscribe,
                                    on_snapshot=on_snapshot, resync_delay=0)
    starting = asyncio.create_task(reconciler.start())
    await fetch_started.wait()

    await reconciler.stop()
    release.set()
    await starting

    assert reconciler.state is ReconcilerState.CLOSED
    assert reconciler.rows == []
    assert snapshots == []
    assert feed.subscriber_count(TABLE, GROUP) == 0


async def test_start_twice_is_rejected():
    source = Source(InMemoryChangeFeed())
    reconciler = make_reconciler(source)
    await reconciler.start()
    try:
        with pytest.raises(RuntimeError):
            await reconciler.start()
    finally:
        await reconciler.stop()
