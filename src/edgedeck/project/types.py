"""Project configuration types.

Typed view of a wrangler-style project config. Every binding collection is
optional in the file and defaults to empty here. Models are frozen: a
ProjectConfig is created once per run and never mutated.
"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class _ConfigModel(BaseModel):
    """Base for config records: immutable, unknown keys ignored."""

    model_config = ConfigDict(frozen=True, extra="ignore")


class D1DatabaseConfig(_ConfigModel):
    binding: str
    database_name: str
    database_id: str = ""
    migrations_dir: str | None = None


class KVNamespaceConfig(_ConfigModel):
    binding: str
    id: str = ""
    preview_id: str | None = None


class R2BucketConfig(_ConfigModel):
    binding: str
    bucket_name: str
    preview_bucket_name: str | None = None


class DurableObjectBinding(_ConfigModel):
    """An actor-namespace binding.

    Keyed by ``name`` in the config file, which is the binding identifier.
    """

    name: str
    class_name: str
    script_name: str | None = None


class DurableObjectsConfig(_ConfigModel):
    bindings: tuple[DurableObjectBinding, ...] = ()


class QueueProducerConfig(_ConfigModel):
    binding: str
    queue: str


class QueueConsumerConfig(_ConfigModel):
    queue: str
    max_batch_size: int | None = None
    max_batch_timeout: int | None = None
    max_retries: int | None = None
    dead_letter_queue: str | None = None


class QueuesConfig(_ConfigModel):
    producers: tuple[QueueProducerConfig, ...] = ()
    consumers: tuple[QueueConsumerConfig, ...] = ()


class ServiceBindingConfig(_ConfigModel):
    binding: str
    service: str
    entrypoint: str | None = None


VarValue = str | int | float | bool


class ProjectConfig(_ConfigModel):
    """Parsed project configuration.

    Attributes:
        name: Application name
        main: Entry-point path, relative to the config file
        compatibility_date: Runtime compatibility marker
        compatibility_flags: Additional runtime compatibility markers
        config_path: Where this config was read from (set by the parser)
    """

    name: str | None = None
    main: str | None = None
    compatibility_date: str | None = None
    compatibility_flags: tuple[str, ...] = ()
    d1_databases: tuple[D1DatabaseConfig, ...] = ()
    kv_namespaces: tuple[KVNamespaceConfig, ...] = ()
    r2_buckets: tuple[R2BucketConfig, ...] = ()
    durable_objects: DurableObjectsConfig = Field(default_factory=DurableObjectsConfig)
    queues: QueuesConfig = Field(default_factory=QueuesConfig)
    vars: dict[str, VarValue] = Field(default_factory=dict)
    services: tuple[ServiceBindingConfig, ...] = ()
    config_path: Path | None = Field(default=None, exclude=True)

    @property
    def root_dir(self) -> Path:
        """Directory the config lives in (cwd if unknown)."""
        return self.config_path.parent if self.config_path else Path.cwd()

    def binding_identifiers(self) -> dict[str, tuple[str, ...]]:
        """Binding identifiers per kind, in declaration order."""
        return {
            "d1": tuple(db.binding for db in self.d1_databases),
            "kv": tuple(ns.binding for ns in self.kv_namespaces),
            "r2": tuple(b.binding for b in self.r2_buckets),
            "do": tuple(d.name for d in self.durable_objects.bindings),
            "queue": tuple(p.binding for p in self.queues.producers),
            "service": tuple(s.binding for s in self.services),
            "var": tuple(self.vars),
        }

