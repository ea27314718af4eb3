"""Resolver definitions.

A resolver describes how to fetch and mutate one keyed resource. It is
validated once, when it is built, and turned into a fixed table: the
mandatory ``get`` capability plus a declared set of named mutations.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any

from pyquest.exceptions import QuestConfigError

#: ``capability(query) -> awaitable | [awaitable, ...] | thunk | value``
Capability = Callable[[Any], Any]


@dataclasses.dataclass(frozen=True)
class Resolver:
    """Fetch/mutate capabilities for one resource key.

    Parameters
    ----------
    key : str
        Resource key the resolver's results are stored under.
    get : callable
        ``get(query)`` fetches the resource.
    mutations : mapping of str to callable
        Named mutation capabilities with the same return shapes as ``get``.
    """

    key: str
    get: Capability
    mutations: Mapping[str, Capability] = dataclasses.field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.key, str) or not self.key.strip():
            raise QuestConfigError("resolvers must contain a valid key")
        if not callable(self.get):
            raise QuestConfigError("resolvers must contain a get() method", key=self.key)
        for name, method in self.mutations.items():
            if name == "get":
                raise QuestConfigError("'get' cannot be declared as a mutation", key=self.key)
            if not callable(method):
                raise QuestConfigError(f"mutation {name!r} is not callable", key=self.key)
        object.__setattr__(self, "key", self.key.strip())
        object.__setattr__(self, "mutations", MappingProxyType(dict(self.mutations)))

    @property
    def mutation_names(self) -> tuple[str, ...]:
        return tuple(self.mutations)

    def mutation(self, name: str) -> Capability:
        try:
            return self.mutations[name]
        except KeyError:
            raise QuestConfigError(f"resolver has no mutation {name!r}", key=self.key) from None

    @classmethod
    def from_object(cls, source: Any) -> Resolver:
        """Build a resolver from a mapping or an object exposing ``key`` and ``get``.

        Every other public callable becomes a named mutation. This is the
        only place capabilities are discovered; the result is fixed.
        """
        if isinstance(source, Resolver):
            return source
        if isinstance(source, Mapping):
            members = dict(source)
        else:
            members = {name: getattr(source, name) for name in dir(source) if not name.startswith("_")}

        if "key" not in members:
            raise QuestConfigError("resolvers must contain a valid key")
        if "get" not in members:
            raise QuestConfigError("resolvers must contain a get() method", key=str(members["key"]))

        mutations = {
            name: value
            for name, value in members.items()
            if name not in {"key", "get"} and not name.startswith("_") and callable(value)
        }
        return cls(key=members["key"], get=members["get"], mutations=mutations)
