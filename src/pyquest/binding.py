"""Lifecycle binding between a mounted UI unit and the quest engine.

A :class:`QuestBinding` decides *when* to start a quest for its resolver's key
(on mount, on prop changes) and builds the props a view renders from the
current record. It holds no resource state of its own; everything it shows
comes from the engine's store.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, InstanceOf, field_validator, model_validator

from pyquest.engine import QuestEngine
from pyquest.exceptions import QuestConfigError
from pyquest.resolver import Resolver
from pyquest.sequencer import is_sequence
from pyquest.state.events import QuestCommand
from pyquest.state.policy import has_data, has_error
from pyquest.state.record import ResourceRecord

_logger = logging.getLogger(__name__)

Props = Mapping[str, Any]

_RESERVED_ENTRY_NAMES = frozenset({"loading", "completed", "error", "data", "update"})


def _never(_prev: Props, _next: Props) -> bool:
    return False


def _is_pending_result(value: Any) -> bool:
    """True for results that need a quest: awaitables, thunks, sequences of awaitables."""
    return inspect.isawaitable(value) or callable(value) or is_sequence(value)


class QuestOptions(BaseModel):
    """When and how a binding fetches, and how it maps the record into props.

    ``query`` and ``default_data`` may be plain values or callables taking
    the current props. ``fetch_once`` may be a bool or a predicate taking
    the props.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    resolver: InstanceOf[Resolver]
    query: Any = None
    map_data: Callable[[Any], Any] | None = None
    map_to_props: Callable[[Any, dict[str, Any]], Mapping[str, Any]] | None = None
    fetch_on_server: bool = True
    fetch_once: bool | Callable[[Props], bool] | None = None
    refetch_when: Callable[[Props, Props], bool] = _never
    default_data: Any = None
    wait_for_data: bool = False
    map_direct: bool = False
    fallback: Callable[[dict[str, Any]], Any] | None = None

    @field_validator("resolver", mode="before")
    @classmethod
    def _coerce_resolver(cls, value: Any) -> Resolver:
        if value is None:
            raise QuestConfigError("quests must be passed a resolver")
        return Resolver.from_object(value)

    @model_validator(mode="after")
    def _check_mutation_names(self) -> QuestOptions:
        clashes = sorted(_RESERVED_ENTRY_NAMES.intersection(self.resolver.mutation_names))
        if clashes:
            raise QuestConfigError(
                f"mutation names clash with record fields: {', '.join(clashes)}",
                key=self.resolver.key,
            )
        return self

    @property
    def key(self) -> str:
        return self.resolver.key

    @classmethod
    def sync(cls, **kwargs: Any) -> QuestOptions:
        """Options for data that must be present before rendering.

        The key's prop becomes the data itself, and nothing (or the
        fallback) is rendered until data is available.
        """
        return cls(**{**kwargs, "map_direct": True, "wait_for_data": True})


class QuestBinding:
    """Drive one resolver's quests from a component-like lifecycle.

    Call :meth:`will_mount` before the first render (on the server too),
    :meth:`did_mount` after it (client only), and :meth:`receive_props`
    whenever the props change. :meth:`render_props` returns what to render.
    """

    def __init__(self, engine: QuestEngine, options: QuestOptions, props: Props | None = None) -> None:
        self._engine = engine
        self._options = options
        self.props: dict[str, Any] = dict(props or {})
        self._fetched = False
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def key(self) -> str:
        return self._options.key

    @property
    def record(self) -> ResourceRecord:
        return self._engine.get_record(self.key)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def will_mount(self) -> Awaitable[Any] | None:
        """Fetch eagerly if allowed; return what a server render should await."""
        if self._options.fetch_on_server and self._can_fetch_once():
            self._fetched = True
            return self.update()

        # Already loading elsewhere: hand back its task for server rendering.
        if self.record.loading:
            return self._engine.pending(self.key)
        return None

    def did_mount(self) -> None:
        if not self._options.fetch_on_server and self._can_fetch_once():
            self._fetched = True
            self.update()

    def receive_props(self, next_props: Props) -> None:
        next_props = dict(next_props)
        if self._can_fetch_once(next_props) or self._options.refetch_when(self.props, next_props):
            self._fetched = True
            self.update(None, next_props)
        self.props = next_props

    def connect(self, on_change: Callable[[dict[str, Any] | None], None]) -> Callable[[], None]:
        """Call *on_change* with fresh render props whenever this key's record changes."""
        subscribe = getattr(self._engine.store, "subscribe", None)
        if subscribe is None:
            raise QuestConfigError("store does not support subscriptions", key=self.key)

        def _listener(command: QuestCommand, _record: ResourceRecord) -> None:
            if command.key == self.key:
                on_change(self.render_props())

        self._unsubscribe = subscribe(_listener)
        return self.unmount

    def unmount(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    def update(self, next_value: Any = None, next_props: Props | None = None) -> Awaitable[Any] | None:
        """Start or resolve a quest for this binding's key.

        - ``None``: run the resolver's ``get`` with the current query.
        - a zero-argument callable: start it as the fetcher.
        - an awaitable, or a list/tuple holding awaitables: start it.
        - any other value: resolve it directly.
        """
        resolver = self._options.resolver
        if next_value is None:
            query = self._query(next_props if next_props is not None else self.props)
            return self._engine.start_quest(self.key, lambda: resolver.get(query))
        if callable(next_value) and not inspect.isawaitable(next_value):
            return self._engine.start_quest(self.key, next_value)
        return self._start_result(next_value)

    def _start_result(self, result: Any) -> Awaitable[Any] | None:
        if not _is_pending_result(result):
            self._engine.resolve_quest(self.key, result)
            return None

        in_flight = self._engine.pending(self.key)
        if in_flight is not None and not in_flight.done():
            _logger.debug("Quest in flight for key=%s; dropping update", self.key)
            for dropped in result if isinstance(result, (list, tuple)) else (result,):
                if inspect.iscoroutine(dropped):
                    dropped.close()
            return in_flight
        return self._engine.start_quest(self.key, lambda: result)

    def _bind_mutation(self, name: str) -> Callable[..., Awaitable[Any] | None]:
        method = self._options.resolver.mutation(name)

        def call(query: Mapping[str, Any] | None = None) -> Awaitable[Any] | None:
            merged = {**(query or {}), "data": self.record.data}
            result = method(merged)
            # A mutation that returns nothing asks for a fresh ``get``.
            if result is None:
                return self.update()
            return self._start_result(result)

        call.__name__ = name
        return call

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render_props(self) -> dict[str, Any] | None:
        """Props to render, or ``None`` (or the fallback's output) while waiting."""
        options = self._options
        record = self.record

        entry: dict[str, Any] = {name: self._bind_mutation(name) for name in options.resolver.mutation_names}
        entry.update(
            loading=record.loading,
            completed=record.completed,
            error=record.error,
            data=record.data,
            update=lambda next_value=None: self.update(next_value),
        )
        props: dict[str, Any] = {**self.props, self.key: entry}

        if options.map_data is not None and has_data(record):
            entry["data"] = options.map_data(record.data)

        if options.map_to_props is not None and has_data(record):
            props.update(options.map_to_props(entry["data"], props))

        if options.map_direct and has_data(record):
            props[self.key] = entry["data"]

        if options.wait_for_data and (not has_data(record) or has_error(record)):
            return options.fallback(props) if options.fallback is not None else None

        if not has_data(record) and options.default_data is not None:
            default = options.default_data
            entry["data"] = default(props) if callable(default) else default

        return props

    def _can_fetch_once(self, next_props: Props | None = None) -> bool:
        record = self.record
        # Fetch at most once per binding, and never over a hydrated store.
        if self._fetched or record.completed:
            return False

        fetch_once = self._options.fetch_once
        # A failed server-side fetch is retried on the client.
        if not fetch_once or has_error(record):
            return True
        if not callable(fetch_once):
            return bool(fetch_once)
        return bool(fetch_once(next_props if next_props is not None else self.props))

    def _query(self, props: Props) -> Any:
        query = self._options.query
        return query(props) if callable(query) else query
