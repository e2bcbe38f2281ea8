"""Actor (Durable Object) namespace, inspection only.

Object ids are 64 hex chars. Ids derived from a name are stable: the same
namespace and name always give the same id, across runs and processes.
"""

import hashlib
import secrets
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class ActorId:
    hex: str
    name: str | None = None

    def __str__(self) -> str:
        return self.hex


class LocalActorNamespace:
    """Namespace handle for one actor class binding."""

    def __init__(self, binding: str, class_name: str, script_name: str | None = None) -> None:
        self.binding = binding
        self.class_name = class_name
        self.script_name = script_name

    def close(self) -> None:
        """Stateless."""

    def id_from_name(self, name: str) -> ActorId:
        scope = f"{self.script_name or ''}:{self.class_name}:{name}"
        return ActorId(hex=hashlib.sha256(scope.encode("utf-8")).hexdigest(), name=name)

    def new_unique_id(self) -> ActorId:
        return ActorId(hex=secrets.token_hex(32))

    def id_from_string(self, value: str) -> ActorId:
        if len(value) != 64 or any(c not in "0123456789abcdef" for c in value.lower()):
            raise ValueError(f"invalid actor id: {value!r}")
        return ActorId(hex=value.lower())

    def describe(self) -> dict[str, Any]:
        return {
            "binding": self.binding,
            "class_name": self.class_name,
            "script_name": self.script_name,
        }
