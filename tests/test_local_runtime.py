"""Tests for the file-backed local runtime."""

import sqlite3
import threading
from pathlib import Path

import pytest

from edgedeck.errors import BindingNotFound
from edgedeck.project import parse
from edgedeck.runtime.local import (
    LocalActorNamespace,
    LocalBucket,
    LocalDatabase,
    LocalKVNamespace,
    LocalQueue,
    LocalRuntime,
)


class TestLocalDatabase:
    @pytest.fixture
    def db(self, tmp_path: Path):
        database = LocalDatabase(tmp_path / "d1" / "app.sqlite")
        yield database
        database.close()

    @pytest.mark.asyncio
    async def test_prepare_bind_run_all(self, db: LocalDatabase) -> None:
        await db.exec("CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT)")

        inserted = await db.prepare("INSERT INTO users (name) VALUES (?)").bind("Ann").run()
        assert inserted.meta["changes"] == 1
        assert inserted.meta["last_row_id"] == 1

        result = await db.prepare("SELECT * FROM users WHERE name = ?").bind("Ann").all()
        assert result.results == [{"id": 1, "name": "Ann"}]
        assert result.meta["rows_read"] == 1
        assert result.meta["changes"] == 0

    @pytest.mark.asyncio
    async def test_first_and_raw(self, db: LocalDatabase) -> None:
        await db.exec("CREATE TABLE t (a INTEGER, b TEXT); INSERT INTO t VALUES (1, 'x');")

        assert await db.prepare("SELECT * FROM t").first() == {"a": 1, "b": "x"}
        assert await db.prepare("SELECT * FROM t").first("b") == "x"
        assert await db.prepare("SELECT * FROM t WHERE a = 2").first() is None
        assert await db.prepare("SELECT a, b FROM t").raw() == [[1, "x"]]

    @pytest.mark.asyncio
    async def test_batch_is_atomic(self, db: LocalDatabase) -> None:
        await db.exec("CREATE TABLE t (id INTEGER PRIMARY KEY)")
        with pytest.raises(sqlite3.Error):
            await db.batch([
                db.prepare("INSERT INTO t (id) VALUES (?)").bind(1),
                db.prepare("INSERT INTO missing (id) VALUES (?)").bind(2),
            ])
        assert (await db.prepare("SELECT COUNT(*) AS n FROM t").first("n")) == 0

    @pytest.mark.asyncio
    async def test_errors_propagate(self, db: LocalDatabase) -> None:
        with pytest.raises(sqlite3.OperationalError, match="no such table"):
            await db.prepare("SELECT * FROM nothing").all()

    @pytest.mark.asyncio
    async def test_statements_run_off_the_event_loop(self, db: LocalDatabase, monkeypatch) -> None:
        threads = []
        run_locked = db._run_locked

        def recording(sql, params):
            threads.append(threading.get_ident())
            return run_locked(sql, params)

        monkeypatch.setattr(db, "_run_locked", recording)
        await db.prepare("SELECT 1").all()

        assert threads and threading.get_ident() not in threads


class TestLocalKVNamespace:
    @pytest.fixture
    def kv(self, tmp_path: Path):
        namespace = LocalKVNamespace(tmp_path / "kv" / "ns.sqlite")
        yield namespace
        namespace.close()

    @pytest.mark.asyncio
    async def test_put_get_delete(self, kv: LocalKVNamespace) -> None:
        await kv.put("greeting", "hello", metadata={"lang": "en"})
        assert await kv.get("greeting") == "hello"
        assert await kv.get_with_metadata("greeting") == ("hello", {"lang": "en"})

        await kv.delete("greeting")
        assert await kv.get("greeting") is None

    @pytest.mark.asyncio
    async def test_list_prefix_and_cursor(self, kv: LocalKVNamespace) -> None:
        for key in ("user:1", "user:2", "user:3", "post:1"):
            await kv.put(key, "v")

        first = await kv.list(prefix="user:", limit=2)
        assert [k.name for k in first.keys] == ["user:1", "user:2"]
        assert first.list_complete is False

        second = await kv.list(prefix="user:", limit=2, cursor=first.cursor)
        assert [k.name for k in second.keys] == ["user:3"]
        assert second.list_complete is True
        assert second.cursor is None

    @pytest.mark.asyncio
    async def test_expired_keys_are_invisible(self, kv: LocalKVNamespace, monkeypatch) -> None:
        await kv.put("temp", "v", expiration_ttl=60)
        assert await kv.get("temp") == "v"

        import edgedeck.runtime.local.kv as kv_module

        real_time = kv_module.time.time
        monkeypatch.setattr(kv_module.time, "time", lambda: real_time() + 120)
        assert await kv.get("temp") is None
        assert (await kv.list()).keys == []

    @pytest.mark.asyncio
    async def test_storage_runs_off_the_event_loop(self, kv: LocalKVNamespace, monkeypatch) -> None:
        threads = []
        purge = kv._purge_expired

        def recording():
            threads.append(threading.get_ident())
            purge()

        monkeypatch.setattr(kv, "_purge_expired", recording)
        await kv.get("missing")
        await kv.list()

        assert len(threads) == 2
        assert threading.get_ident() not in threads


class TestLocalBucket:
    @pytest.mark.asyncio
    async def test_put_head_get_delete(self, tmp_path: Path) -> None:
        bucket = LocalBucket(tmp_path / "r2" / "assets")
        info = await bucket.put("img/logo.svg", b"<svg/>", content_type="image/svg+xml")

        assert info.size == 6
        head = await bucket.head("img/logo.svg")
        assert head is not None
        assert head.content_type == "image/svg+xml"

        obj = await bucket.get("img/logo.svg")
        assert obj.body == b"<svg/>"

        await bucket.delete("img/logo.svg")
        assert await bucket.get("img/logo.svg") is None

    @pytest.mark.asyncio
    async def test_list_truncates(self, tmp_path: Path) -> None:
        bucket = LocalBucket(tmp_path / "bucket")
        for key in ("a/1", "a/2", "a/3", "b/1"):
            await bucket.put(key, key)

        page = await bucket.list(prefix="a/", limit=2)
        assert [o.key for o in page.objects] == ["a/1", "a/2"]
        assert page.truncated is True

        rest = await bucket.list(prefix="a/", limit=2, cursor=page.cursor)
        assert [o.key for o in rest.objects] == ["a/3"]
        assert rest.truncated is False


class TestLocalQueueAndActors:
    @pytest.mark.asyncio
    async def test_queue_appends_messages(self, tmp_path: Path) -> None:
        queue = LocalQueue(tmp_path / "queues" / "jobs.jsonl", "jobs")
        await queue.send({"task": "email"})
        await queue.send("plain", content_type="text")

        messages = queue.messages()
        assert [m["body"] for m in messages] == [{"task": "email"}, "plain"]
        assert [m["content_type"] for m in messages] == ["json", "text"]

    def test_actor_ids_are_deterministic(self) -> None:
        ns = LocalActorNamespace("COUNTER", "Counter")
        assert ns.id_from_name("a").hex == ns.id_from_name("a").hex
        assert ns.id_from_name("a").hex != ns.id_from_name("b").hex
        assert len(ns.new_unique_id().hex) == 64

    def test_actor_id_from_string_validates(self) -> None:
        ns = LocalActorNamespace("COUNTER", "Counter")
        with pytest.raises(ValueError):
            ns.id_from_string("not-an-id")


class TestLocalRuntime:
    @pytest.mark.asyncio
    async def test_start_creates_handles(self, sample_project: Path, tmp_path: Path) -> None:
        runtime = LocalRuntime(parse(sample_project), tmp_path / "state")
        await runtime.start()
        try:
            assert isinstance(runtime.get_binding("DB"), LocalDatabase)
            assert isinstance(runtime.get_kv_namespace("CACHE"), LocalKVNamespace)
            assert isinstance(runtime.get_object_store("ASSETS"), LocalBucket)
            assert isinstance(runtime.get_actor_namespace("COUNTER"), LocalActorNamespace)
            assert isinstance(runtime.get_queue_producer("JOBS"), LocalQueue)
            assert runtime.env["GREETING"] == "hello"
            assert (tmp_path / "state" / "d1" / "0000-1111.sqlite").exists()
            assert (tmp_path / "state" / "kv" / "kv-cache-id.sqlite").exists()
        finally:
            await runtime.dispose()

    @pytest.mark.asyncio
    async def test_unknown_binding(self, sample_project: Path, tmp_path: Path) -> None:
        runtime = LocalRuntime(parse(sample_project), tmp_path / "state")
        await runtime.start()
        try:
            assert runtime.get_binding("NOPE") is None
            with pytest.raises(BindingNotFound):
                runtime.get_database("CACHE")
        finally:
            await runtime.dispose()

    @pytest.mark.asyncio
    async def test_dispose_clears_handles(self, sample_project: Path, tmp_path: Path) -> None:
        runtime = LocalRuntime(parse(sample_project), tmp_path / "state")
        await runtime.start()
        await runtime.dispose()
        assert runtime.get_binding("DB") is None
