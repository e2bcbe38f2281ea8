"""Tests for the binding gateway HTTP API."""

from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient

from edgedeck.gateway import create_app, create_gateway_app
from edgedeck.gateway.pagination import parse_page
from edgedeck.manifest import BindingManifest, discover
from edgedeck.project import parse
from edgedeck.runtime.local import LocalRuntime
from edgedeck.shadow import USER_APP_BINDING


@pytest.fixture
def runtime(sample_project: Path) -> LocalRuntime:
    return LocalRuntime(parse(sample_project), sample_project / ".edgedeck" / "state")


@pytest.fixture
def client(sample_project: Path, runtime: LocalRuntime):
    app = create_app(runtime, discover(parse(sample_project)))
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def users_table(client: TestClient) -> None:
    response = client.post(
        "/d1/DB/query",
        json={"sql": "CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT, age INTEGER)"},
    )
    assert response.status_code == 200


class TestBindingsOverview:
    def test_lists_all_kinds(self, client: TestClient) -> None:
        data = client.get("/bindings").json()

        assert data["name"] == "shop"
        assert set(data["bindings"]) == {"d1", "kv", "r2", "do", "queues", "vars"}
        assert data["bindings"]["d1"][0]["binding"] == "DB"

    def test_health(self, client: TestClient) -> None:
        assert client.get("/health").json() == {"status": "ok"}


class TestD1Routes:
    def test_list_databases(self, client: TestClient) -> None:
        response = client.get("/d1/")
        assert response.json() == {"databases": [{"binding": "DB", "database_name": "app_db"}]}

    def test_schema_excludes_internal_tables(self, client: TestClient, users_table) -> None:
        client.post("/d1/DB/query", json={"sql": "CREATE TABLE _cf_KV (k TEXT)"})
        client.post("/d1/DB/query", json={"sql": "CREATE TABLE _mf_meta (k TEXT)"})
        client.post("/d1/DB/query", json={"sql": "CREATE TABLE cfg (k TEXT)"})

        tables = client.get("/d1/DB/schema").json()["tables"]
        assert [t["name"] for t in tables] == ["cfg", "users"]
        users = next(t for t in tables if t["name"] == "users")
        assert [c["name"] for c in users["columns"]] == ["id", "name", "age"]
        assert users["rowCount"] == 0

    def test_describe_table(self, client: TestClient, users_table) -> None:
        client.post("/d1/DB/tables/users/rows", json={"name": "Ann"})
        data = client.get("/d1/DB/tables/users").json()

        assert data["table"] == "users"
        assert data["rowCount"] == 1
        assert data["columns"][0] == {
            "name": "id",
            "type": "INTEGER",
            "notnull": False,
            "default": None,
            "primary_key": True,
        }

    def test_describe_missing_table(self, client: TestClient) -> None:
        response = client.get("/d1/DB/tables/ghost")
        assert response.status_code == 404
        assert "ghost" in response.json()["error"]

    def test_read_query(self, client: TestClient, users_table) -> None:
        client.post("/d1/DB/tables/users/rows", json={"name": "Ann", "age": 30})
        response = client.post(
            "/d1/DB/query",
            json={"sql": "  select name from users where age > ?", "params": [18]},
        )
        data = response.json()

        assert data["success"] is True
        assert data["results"] == [{"name": "Ann"}]
        assert data["meta"]["changes"] == 0

    def test_write_query(self, client: TestClient, users_table) -> None:
        response = client.post(
            "/d1/DB/query",
            json={"sql": "INSERT INTO users (name) VALUES (?)", "params": ["Bo"]},
        )
        data = response.json()

        assert data["success"] is True
        assert data["meta"]["changes"] == 1
        assert data["meta"]["last_row_id"] == 1
        assert "results" not in data

    @pytest.mark.parametrize("body", [{}, {"sql": ""}, {"sql": "   "}, {"params": [1]}])
    def test_query_requires_sql(self, client: TestClient, body) -> None:
        response = client.post("/d1/DB/query", json=body)
        assert response.status_code == 400
        assert "error" in response.json()

    def test_query_without_body(self, client: TestClient) -> None:
        response = client.post("/d1/DB/query")
        assert response.status_code == 400

    def test_backing_failure_is_500(self, client: TestClient) -> None:
        response = client.post("/d1/DB/query", json={"sql": "SELECT * FROM nothing"})
        assert response.status_code == 500
        assert "no such table" in response.json()["error"]

    def test_update_and_delete_row(self, client: TestClient, users_table) -> None:
        created = client.post("/d1/DB/tables/users/rows", json={"name": "Ann"}).json()
        row_id = created["meta"]["last_row_id"]

        updated = client.put(f"/d1/DB/tables/users/rows/{row_id}", json={"name": "Anna"})
        assert updated.json()["meta"]["changes"] == 1
        rows = client.get("/d1/DB/tables/users/rows").json()["rows"]
        assert rows[0]["name"] == "Anna"

        deleted = client.delete(f"/d1/DB/tables/users/rows/{row_id}")
        assert deleted.json()["meta"]["changes"] == 1
        assert client.get("/d1/DB/tables/users/rows").json()["rows"] == []

    def test_insert_requires_fields(self, client: TestClient, users_table) -> None:
        assert client.post("/d1/DB/tables/users/rows", json={}).status_code == 400

    @pytest.mark.parametrize("content", [None, b"[1, 2]", b"{broken"])
    def test_row_body_must_be_object(self, client: TestClient, users_table, content) -> None:
        response = client.put(
            "/d1/DB/tables/users/rows/1",
            content=content,
            headers={"content-type": "application/json"},
        )
        assert response.status_code == 400
        assert "error" in response.json()

    def test_insert_unknown_column_is_rejected_by_database(self, client: TestClient, users_table) -> None:
        response = client.post("/d1/DB/tables/users/rows", json={"nope": 1})
        assert response.status_code == 500
        assert "nope" in response.json()["error"]

    def test_pagination(self, client: TestClient, users_table) -> None:
        for i in range(5):
            client.post("/d1/DB/tables/users/rows", json={"name": f"u{i}"})

        data = client.get("/d1/DB/tables/users/rows?limit=2&offset=1").json()
        assert [r["name"] for r in data["rows"]] == ["u1", "u2"]
        assert data["meta"] == {"limit": 2, "offset": 1}

    def test_non_numeric_pagination_uses_defaults(self, client: TestClient, users_table) -> None:
        response = client.get("/d1/DB/tables/users/rows?limit=lots&offset=later")
        assert response.status_code == 200
        assert response.json()["meta"] == {"limit": 100, "offset": 0}


class TestEndToEnd:
    def test_insert_then_read(self, tmp_path: Path, write_config) -> None:
        config = parse(write_config(
            '[[d1_databases]]\nbinding = "DB"\ndatabase_name = "app_db"\n'
        ))
        runtime = LocalRuntime(config, tmp_path / "state")
        app = create_app(runtime, discover(config))

        with TestClient(app) as client:
            assert client.get("/d1/").json() == {
                "databases": [{"binding": "DB", "database_name": "app_db"}]
            }
            client.post(
                "/d1/DB/query",
                json={"sql": "CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT)"},
            )

            created = client.post("/d1/DB/tables/users/rows", json={"name": "Ann"})
            data = created.json()
            assert data["success"] is True
            assert data["meta"]["changes"] == 1
            assert isinstance(data["meta"]["last_row_id"], int)

            rows = client.get("/d1/DB/tables/users/rows?limit=10&offset=0").json()["rows"]
            assert {"id": data["meta"]["last_row_id"], "name": "Ann"} in rows


class TestUnknownBindings:
    @pytest.mark.parametrize(
        ("method", "path"),
        [
            ("get", "/d1/NOPE/schema"),
            ("get", "/d1/NOPE/tables/users"),
            ("get", "/d1/NOPE/tables/users/rows"),
            ("post", "/d1/NOPE/query"),
            ("delete", "/d1/NOPE/tables/users/rows/1"),
            ("get", "/kv/NOPE/keys"),
            ("get", "/kv/NOPE/keys/a"),
            ("delete", "/kv/NOPE/keys/a"),
            ("get", "/r2/NOPE/objects"),
            ("get", "/r2/NOPE/objects/a.txt"),
            ("get", "/r2/NOPE/meta/a.txt"),
            ("post", "/queues/NOPE/send"),
            ("get", "/do/NOPE"),
            ("get", "/do/NOPE/ids/x"),
            # Declared, but as another kind
            ("get", "/kv/DB/keys"),
            ("get", "/d1/CACHE/schema"),
            ("get", "/r2/CACHE/objects"),
        ],
    )
    def test_unknown_binding_is_404(self, client: TestClient, method: str, path: str) -> None:
        kwargs = {"json": {"sql": "SELECT 1", "message": "m"}} if method == "post" else {}
        response = getattr(client, method)(path, **kwargs)
        assert response.status_code == 404
        assert "not found" in response.json()["error"]

    @pytest.mark.parametrize(
        ("method", "path", "content"),
        [
            ("post", "/d1/NOPE/query", None),
            ("post", "/d1/NOPE/query", b"{not json"),
            ("post", "/d1/NOPE/tables/users/rows", None),
            ("put", "/d1/NOPE/tables/users/rows/1", None),
            ("put", "/d1/NOPE/tables/users/rows/1", b"[1, 2]"),
            ("put", "/kv/NOPE/keys/a", None),
            ("put", "/kv/NOPE/keys/a", b'{"expiration_ttl": "soon"}'),
            ("post", "/queues/NOPE/send", b"{not json"),
        ],
    )
    def test_unknown_binding_wins_over_bad_body(
        self, client: TestClient, method: str, path: str, content: bytes | None
    ) -> None:
        response = client.request(
            method.upper(),
            path,
            content=content,
            headers={"content-type": "application/json"},
        )
        assert response.status_code == 404
        assert "not found" in response.json()["error"]

    def test_same_identifier_across_kinds(self, tmp_path: Path, write_config) -> None:
        config = parse(write_config(
            '[[d1_databases]]\nbinding = "DATA"\ndatabase_name = "data"\n\n'
            '[[kv_namespaces]]\nbinding = "DATA"\nid = "data-kv"\n'
        ))
        app = create_app(LocalRuntime(config, tmp_path / "state"), discover(config))

        with TestClient(app) as client:
            assert client.get("/d1/DATA/schema").json() == {"tables": []}
            assert client.get("/kv/DATA/keys").json()["keys"] == []
            assert client.post("/d1/DATA/query", json={"sql": "SELECT 1 AS one"}).json()[
                "results"
            ] == [{"one": 1}]

    def test_declared_but_missing_from_runtime(self, tmp_path: Path, write_config) -> None:
        config = parse(write_config('name = "bare"\n'))
        manifest = BindingManifest.from_dict(
            {"d1": [{"binding": "GHOST", "database_name": "ghost"}]}
        )
        app = create_app(LocalRuntime(config, tmp_path / "state"), manifest)

        with TestClient(app) as client:
            assert client.get("/d1/").json()["databases"][0]["binding"] == "GHOST"
            assert client.get("/d1/GHOST/schema").status_code == 404


class TestKVRoutes:
    def test_list_namespaces(self, client: TestClient) -> None:
        assert client.get("/kv/").json() == {
            "namespaces": [{"binding": "CACHE", "id": "kv-cache-id"}]
        }

    def test_put_get_delete(self, client: TestClient) -> None:
        put = client.put("/kv/CACHE/keys/user/1", json={"value": "Ann", "metadata": {"v": 1}})
        assert put.json() == {"success": True, "key": "user/1"}

        got = client.get("/kv/CACHE/keys/user/1").json()
        assert got == {"key": "user/1", "value": "Ann", "metadata": {"v": 1}}

        client.delete("/kv/CACHE/keys/user/1")
        assert client.get("/kv/CACHE/keys/user/1").status_code == 404

    def test_list_keys(self, client: TestClient) -> None:
        for key in ("a:1", "a:2", "b:1"):
            client.put(f"/kv/CACHE/keys/{key}", json={"value": "x"})

        data = client.get("/kv/CACHE/keys?prefix=a:&limit=1").json()
        assert [k["name"] for k in data["keys"]] == ["a:1"]
        assert data["list_complete"] is False

        rest = client.get(f"/kv/CACHE/keys?prefix=a:&cursor={data['cursor']}").json()
        assert [k["name"] for k in rest["keys"]] == ["a:2"]
        assert rest["list_complete"] is True
        assert rest["keys"][0]["size"] == 1

    def test_put_requires_value(self, client: TestClient) -> None:
        response = client.put("/kv/CACHE/keys/k", json={"metadata": {}})
        assert response.status_code == 400

    def test_put_rejects_invalid_fields(self, client: TestClient) -> None:
        response = client.put("/kv/CACHE/keys/a", json={"value": "x", "expiration_ttl": "soon"})
        assert response.status_code == 400
        assert "expiration_ttl" in response.json()["error"]


class TestR2Routes:
    def test_list_buckets(self, client: TestClient) -> None:
        assert client.get("/r2/").json() == {
            "buckets": [{"binding": "ASSETS", "bucket_name": "shop-assets"}]
        }

    def test_upload_download(self, client: TestClient) -> None:
        put = client.put(
            "/r2/ASSETS/objects/docs/readme.txt",
            content=b"hello",
            headers={"content-type": "text/plain"},
        )
        assert put.json()["success"] is True
        assert put.json()["size"] == 5

        got = client.get("/r2/ASSETS/objects/docs/readme.txt")
        assert got.content == b"hello"
        assert got.headers["content-type"].startswith("text/plain")

        meta = client.get("/r2/ASSETS/meta/docs/readme.txt").json()
        assert meta["key"] == "docs/readme.txt"
        assert meta["http_metadata"]["contentType"] == "text/plain"

        listed = client.get("/r2/ASSETS/objects?prefix=docs/").json()
        assert [o["key"] for o in listed["objects"]] == ["docs/readme.txt"]
        assert listed["truncated"] is False

        client.delete("/r2/ASSETS/objects/docs/readme.txt")
        assert client.get("/r2/ASSETS/objects/docs/readme.txt").status_code == 404

    def test_missing_object_meta(self, client: TestClient) -> None:
        assert client.get("/r2/ASSETS/meta/none").status_code == 404


class TestQueueRoutes:
    def test_list_queues(self, client: TestClient) -> None:
        data = client.get("/queues/").json()
        assert data["producers"] == [{"binding": "JOBS", "queue": "jobs-queue"}]
        assert data["consumers"][0]["queue"] == "jobs-queue"

    def test_send_json(self, client: TestClient, runtime: LocalRuntime) -> None:
        response = client.post("/queues/JOBS/send", json={"message": {"task": "email"}})
        assert response.json() == {"success": True}
        assert runtime.get_queue_producer("JOBS").messages()[-1]["body"] == {"task": "email"}

    def test_send_raw_text(self, client: TestClient, runtime: LocalRuntime) -> None:
        response = client.post(
            "/queues/JOBS/send", content=b"ping", headers={"content-type": "text/plain"}
        )
        assert response.json() == {"success": True}
        last = runtime.get_queue_producer("JOBS").messages()[-1]
        assert last["body"] == "ping"
        assert last["content_type"] == "text"

    def test_json_without_message(self, client: TestClient) -> None:
        response = client.post("/queues/JOBS/send", json={"body": "x"})
        assert response.status_code == 400
        assert response.json() == {"error": "message is required"}


class TestActorRoutes:
    def test_list_and_describe(self, client: TestClient) -> None:
        listed = client.get("/do/").json()
        assert listed == {
            "namespaces": [{"binding": "COUNTER", "class_name": "Counter", "script_name": None}]
        }
        assert client.get("/do/COUNTER").json()["class_name"] == "Counter"

    def test_id_from_name_is_stable(self, client: TestClient) -> None:
        first = client.get("/do/COUNTER/ids/room-1").json()
        second = client.get("/do/COUNTER/ids/room-1").json()
        assert first["id"] == second["id"]
        assert len(first["id"]) == 64


class TestGatewayApp:
    def test_api_under_prefix(self, sample_project: Path, runtime: LocalRuntime) -> None:
        app = create_gateway_app(runtime, discover(parse(sample_project)))
        with TestClient(app) as client:
            assert client.get("/__edgedeck/d1/").json()["databases"][0]["binding"] == "DB"
            assert client.get("/__edgedeck/d1/NOPE/schema").status_code == 404

    def test_proxy_without_user_app(self, sample_project: Path, runtime: LocalRuntime) -> None:
        app = create_gateway_app(runtime, discover(parse(sample_project)))
        with TestClient(app) as client:
            response = client.get("/anything")
            assert response.status_code == 502
            assert "error" in response.json()

    def test_proxy_forwards_to_user_app(self, sample_project: Path) -> None:
        calls = []

        class _UserApp:
            async def fetch(self, method, path, *, headers=None, params=None, content=None):
                calls.append((method, path, dict(params or {}), content))
                return httpx.Response(201, content=b"from app", headers={"x-app": "1"})

        class _Runtime(LocalRuntime):
            def get_service(self, name):
                if name == USER_APP_BINDING:
                    return _UserApp()
                return super().get_service(name)

        config = parse(sample_project)
        app = create_gateway_app(_Runtime(config, sample_project / "state"), discover(config))
        with TestClient(app) as client:
            response = client.post("/api/items?x=1", content=b"payload")

        assert response.status_code == 201
        assert response.content == b"from app"
        assert response.headers["x-app"] == "1"
        assert calls == [("POST", "/api/items", {"x": "1"}, b"payload")]


class TestPagination:
    @pytest.mark.parametrize(
        ("limit", "offset", "expected"),
        [
            (None, None, (100, 0)),
            ("25", "50", (25, 50)),
            ("abc", "xyz", (100, 0)),
            ("0", "-4", (1, 0)),
            ("99999", "3", (1000, 3)),
            (" 7 ", None, (7, 0)),
        ],
    )
    def test_parse_page(self, limit, offset, expected) -> None:
        page = parse_page(limit, offset)
        assert (page.limit, page.offset) == expected

    def test_custom_page_size(self) -> None:
        assert parse_page(page_size=20).limit == 20
