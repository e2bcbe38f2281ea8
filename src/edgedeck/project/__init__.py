"""Project configuration: discovery, parsing and typed models."""

from edgedeck.project.parser import CONFIG_FILES, find_config, parse, strip_jsonc
from edgedeck.project.types import (
    D1DatabaseConfig,
    DurableObjectBinding,
    DurableObjectsConfig,
    KVNamespaceConfig,
    ProjectConfig,
    QueueConsumerConfig,
    QueueProducerConfig,
    QueuesConfig,
    R2BucketConfig,
    ServiceBindingConfig,
)

__all__ = [
    "CONFIG_FILES",
    "D1DatabaseConfig",
    "DurableObjectBinding",
    "DurableObjectsConfig",
    "KVNamespaceConfig",
    "ProjectConfig",
    "QueueConsumerConfig",
    "QueueProducerConfig",
    "QueuesConfig",
    "R2BucketConfig",
    "ServiceBindingConfig",
    "find_config",
    "parse",
    "strip_jsonc",
]
