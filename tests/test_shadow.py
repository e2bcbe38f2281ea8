"""Tests for shadow config generation."""

import json
import tomllib
from pathlib import Path

from edgedeck.manifest import MANIFEST_ENV_VAR, BindingManifest, discover
from edgedeck.project import parse
from edgedeck.shadow import (
    GATEWAY_NAME,
    PERSIST_SUBDIRS,
    USER_APP_BINDING,
    format_toml,
    generate,
)


def _generate(project: Path):
    config = parse(project)
    return config, generate(config, discover(config))


class TestGenerate:
    def test_layout(self, sample_project: Path) -> None:
        _, result = _generate(sample_project)

        assert result.work_dir == sample_project.resolve() / ".edgedeck"
        assert result.shadow_config_path == result.work_dir / "wrangler.toml"
        assert result.shadow_config_path.is_file()
        for sub in PERSIST_SUBDIRS:
            assert (result.persist_dir / sub).is_dir()

    def test_preserves_identifiers_and_resource_ids(self, sample_project: Path) -> None:
        config, result = _generate(sample_project)
        shadow = parse(result.shadow_config_path)

        assert shadow.name == GATEWAY_NAME
        for kind, identifiers in config.binding_identifiers().items():
            if kind in ("service", "var"):
                continue
            assert shadow.binding_identifiers()[kind] == identifiers

        assert shadow.d1_databases[0].database_id == "0000-1111"
        assert shadow.kv_namespaces[0].id == "kv-cache-id"
        assert shadow.r2_buckets[0].bucket_name == "shop-assets"

    def test_adds_service_binding_and_manifest_var(self, sample_project: Path) -> None:
        config, result = _generate(sample_project)
        shadow = parse(result.shadow_config_path)

        assert [(s.binding, s.service) for s in shadow.services] == [(USER_APP_BINDING, "shop")]
        manifest = BindingManifest.from_json(shadow.vars[MANIFEST_ENV_VAR])
        assert manifest == discover(config)
        assert shadow.vars["GREETING"] == "hello"

    def test_keeps_user_service_bindings(self, write_config, caplog) -> None:
        path = write_config(
            'name = "shop"\n\n'
            '[[services]]\nbinding = "AUTH"\nservice = "auth-worker"\n\n'
            f'[[services]]\nbinding = "{USER_APP_BINDING}"\nservice = "elsewhere"\n'
        )
        config = parse(path)

        with caplog.at_level("WARNING", logger="edgedeck.shadow"):
            result = generate(config, discover(config))
        shadow = parse(result.shadow_config_path)

        assert [(s.binding, s.service) for s in shadow.services] == [
            ("AUTH", "auth-worker"),
            (USER_APP_BINDING, "shop"),
        ]
        assert USER_APP_BINDING in caplog.text

    def test_consumers_are_excluded(self, sample_project: Path) -> None:
        _, result = _generate(sample_project)
        shadow = parse(result.shadow_config_path)
        assert shadow.queues.consumers == ()
        assert [p.binding for p in shadow.queues.producers] == ["JOBS"]

    def test_actor_bindings_point_at_user_app(self, sample_project: Path) -> None:
        _, result = _generate(sample_project)
        shadow = parse(result.shadow_config_path)
        assert shadow.durable_objects.bindings[0].script_name == "shop"

    def test_idempotent(self, sample_project: Path) -> None:
        _, first = _generate(sample_project)
        content = first.shadow_config_path.read_bytes()
        _, second = _generate(sample_project)
        assert second.shadow_config_path.read_bytes() == content

    def test_custom_work_dir(self, sample_project: Path) -> None:
        config = parse(sample_project)
        result = generate(config, discover(config), work_dir="build/dev")
        assert result.work_dir == sample_project.resolve() / "build" / "dev"


class TestFormatToml:
    def test_escapes_strings(self, write_config) -> None:
        config = parse(write_config(
            'name = "x"\n[vars]\nQUOTE = "say \\"hi\\"\\n"\n"odd key" = "v"\n'
        ))
        text = format_toml(config)
        data = tomllib.loads(text)
        assert data["vars"]["QUOTE"] == 'say "hi"\n'
        assert data["vars"]["odd key"] == "v"

    def test_manifest_var_is_valid_json(self, sample_project: Path) -> None:
        _, result = _generate(sample_project)
        data = tomllib.loads(result.shadow_config_path.read_text(encoding="utf-8"))
        json.loads(data["vars"][MANIFEST_ENV_VAR])
