"""Per-path setting state, update signals and value conversion."""

from __future__ import annotations

import copy
import enum
import logging
import threading
import typing
import weakref
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from jsonsettings.manager import SettingManager

log = logging.getLogger(__name__)


class Source(enum.Enum):
    """Where a setting update came from."""

    UNSET = enum.auto()
    SETTER = enum.auto()
    ON_CONNECT = enum.auto()


@dataclass
class SignalArgs:
    """Options and metadata travelling with a setting update."""

    source: Source = Source.UNSET
    compare_before_set: bool = False
    write_to_file: bool = True


class Connection:
    """A callback attached to a Signal; leaving a ``with`` block detaches it."""

    def __init__(self, signal: Signal, func: Callable[..., Any]) -> None:
        self._signal = signal
        self.func = func

    @property
    def connected(self) -> bool:
        return self._signal is not None and self._signal._has(self)

    def invoke(self, *args: Any) -> Any:
        """Call this connection's callback directly."""
        return self.func(*args)

    def disconnect(self) -> None:
        if self._signal is not None:
            self._signal._drop(self)
            self._signal = None

    def __enter__(self) -> Connection:
        return self

    def __exit__(self, *args: Any) -> None:
        self.disconnect()


class Signal:
    """A list of callbacks that are all called on emit."""

    def __init__(self) -> None:
        self._connections: list[Connection] = []
        self._lock = threading.Lock()

    def connect(self, func: Callable[..., Any]) -> Connection:
        connection = Connection(self, func)
        with self._lock:
            self._connections.append(connection)
        return connection

    def emit(self, *args: Any) -> None:
        with self._lock:
            connections = list(self._connections)
        for connection in connections:
            connection.func(*args)

    def _has(self, connection: Connection) -> bool:
        with self._lock:
            return connection in self._connections

    def _drop(self, connection: Connection) -> None:
        with self._lock:
            if connection in self._connections:
                self._connections.remove(connection)


_SCALAR_DEFAULTS: dict[type, Any] = {bool: False, int: 0, float: 0.0, str: ""}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _deserialize(value: Any, value_type: Any) -> tuple[Any, bool]:
    """Convert a JSON value to ``value_type``.

    Returns the converted value and whether the conversion succeeded; on
    failure the value is the type's empty default.
    """
    if value_type is None or value_type is object or value_type is Any:
        return copy.deepcopy(value), True
    origin = typing.get_origin(value_type) or value_type
    type_args = typing.get_args(value_type)
    if origin is bool:
        if isinstance(value, bool):
            return value, True
        if _is_number(value) and isinstance(value, int):
            return value == 1, True
        return False, False
    if origin is int:
        if _is_number(value):
            return int(value), True
        return 0, False
    if origin is float:
        if _is_number(value):
            return float(value), True
        return 0.0, False
    if origin is str:
        if isinstance(value, str):
            return value, True
        return "", False
    if origin is list:
        if not isinstance(value, list):
            return [], False
        item_type = type_args[0] if type_args else None
        items, ok = [], True
        for item in value:
            converted, item_ok = _deserialize(item, item_type)
            items.append(converted)
            ok = ok and item_ok
        return items, ok
    if origin is dict:
        if not isinstance(value, dict):
            return {}, False
        item_type = type_args[1] if len(type_args) == 2 else None
        result, ok = {}, True
        for key, item in value.items():
            converted, item_ok = _deserialize(item, item_type)
            result[key] = converted
            ok = ok and item_ok
        return result, ok
    raise TypeError(f"unsupported setting type {value_type!r}")


class SettingData:
    """Shared state of every setting bound to one path of a manager."""

    def __init__(self, path: str, manager: SettingManager) -> None:
        self.path = path
        self._manager = weakref.ref(manager)
        self.updated = Signal()
        self._update_iteration = 0
        self._lock = threading.Lock()

    @property
    def manager(self) -> SettingManager | None:
        return self._manager()

    @property
    def update_iteration(self) -> int:
        with self._lock:
            return self._update_iteration

    def marshal(self, value: Any, args: SignalArgs | None = None) -> bool:
        """Store ``value`` at this path; False if the manager is gone or unchanged."""
        manager = self._manager()
        if manager is None:
            log.debug("marshal on %s: manager no longer exists", self.path)
            return False
        return manager.set(self.path, value, args if args is not None else SignalArgs())

    def unmarshal_json(self) -> Any:
        """Return the raw JSON stored at this path, or None if there is none."""
        manager = self._manager()
        if manager is None:
            return None
        try:
            return manager.get(self.path)
        except KeyError:
            return None

    def unmarshal(self, value_type: Any) -> Any:
        """Return the stored value converted to ``value_type``, or None."""
        manager = self._manager()
        if manager is None:
            return None
        try:
            raw = manager.get(self.path)
        except KeyError:
            return None
        converted, ok = _deserialize(raw, value_type)
        return converted if ok else None

    def notify_update(self, value: Any, args: SignalArgs) -> None:
        with self._lock:
            self._update_iteration += 1
        self.updated.emit(value, args)