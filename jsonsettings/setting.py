"""Typed, default-aware views onto one path of a settings document."""

from __future__ import annotations

import copy
import dataclasses
import enum
import threading
import typing
import weakref
from typing import Any, Callable

from jsonsettings.data import Connection, SettingData, SignalArgs, Source, _deserialize
from jsonsettings.manager import SettingManager


class SettingOption(enum.Flag):
    """Per-setting behaviour switches."""

    DEFAULT = 0
    DO_NOT_WRITE_TO_JSON = enum.auto()
    COMPARE_BEFORE_SET = enum.auto()


def _empty_default(value_type: Any) -> Any:
    if value_type is None or value_type is object or value_type is Any:
        return None
    origin = typing.get_origin(value_type) or value_type
    if origin in (bool, int, float, str):
        return origin()
    if origin is list:
        return []
    if origin is dict:
        return {}
    raise TypeError(f"unsupported setting type {value_type!r}")


def _convert(value: Any, value_type: Any) -> Any:
    converted, _ok = _deserialize(value, value_type)
    return converted


def _on_connect_args() -> SignalArgs:
    return SignalArgs(source=Source.ON_CONNECT)


def _disconnect_all(connections: list[Connection]) -> None:
    for connection in connections:
        connection.disconnect()
    connections.clear()


class Setting:
    """A value of one type stored at one path of a SettingManager.

    The default value belongs to this object only; other settings at the same
    path keep their own defaults.
    """

    def __init__(
        self,
        path: str,
        default: Any = None,
        value_type: Any = None,
        options: SettingOption = SettingOption.DEFAULT,
        manager: SettingManager | None = None,
    ) -> None:
        if manager is None:
            manager = SettingManager.instance()
        if value_type is None and default is not None:
            value_type = type(default)
        self.path = path
        self.value_type = value_type if value_type is not None else object
        self.options = options
        if default is not None:
            self._default = copy.deepcopy(default)
        else:
            self._default = _empty_default(self.value_type)
        self._manager = weakref.ref(manager)
        self._data = weakref.ref(manager.setting_data(path))
        self._value: Any = None
        self._update_iteration = -1
        self._lock = threading.Lock()
        self._connections: list[Connection] = []
        self._finalizer = weakref.finalize(self, _disconnect_all, self._connections)

    def __repr__(self) -> str:
        return f"Setting({self.path!r}, value_type={self.value_type!r})"

    @property
    def data(self) -> SettingData | None:
        """The shared data for this path, or None once it has been removed."""
        return self._data()

    @property
    def default(self) -> Any:
        return copy.deepcopy(self._default)

    @default.setter
    def default(self, value: Any) -> None:
        self._default = copy.deepcopy(value)

    @property
    def update_iteration(self) -> int:
        with self._lock:
            return self._update_iteration

    def option_enabled(self, option: SettingOption) -> bool:
        return (self.options & option) == option

    def is_valid(self) -> bool:
        return self._data() is not None

    def get_value(self) -> Any:
        """Return the current value, refreshed from the document if it changed."""
        with self._lock:
            data = self._data()
            if data is not None:
                current = data.update_iteration
                if current != self._update_iteration:
                    self._update_iteration = current
                    loaded = data.unmarshal(self.value_type)
                    if loaded is not None:
                        self._value = loaded
            result = self._value if self._value is not None else self._default
            return copy.deepcopy(result)

    def _update_value(self, value: Any, args: SignalArgs | None) -> bool:
        args = dataclasses.replace(args) if args is not None else SignalArgs()
        if self.option_enabled(SettingOption.DO_NOT_WRITE_TO_JSON):
            args.write_to_file = False
        data = self._data()
        if data is None:
            return False
        if args.source is Source.UNSET:
            args.source = Source.SETTER
        return data.marshal(value, args)

    def set_value(self, value: Any, args: SignalArgs | None = None) -> bool:
        """Store a new value; False if it could not be or did not need to be."""
        args = dataclasses.replace(args) if args is not None else SignalArgs()
        if self.option_enabled(SettingOption.COMPARE_BEFORE_SET):
            args.compare_before_set = True
        with self._lock:
            self._value = copy.deepcopy(value)
        return self._update_value(value, args)

    def append(self, item: Any, args: SignalArgs | None = None) -> bool:
        """Append ``item`` to a list-valued setting."""
        with self._lock:
            if self._value is None:
                self._value = []
            self._value.append(copy.deepcopy(item))
            snapshot = copy.deepcopy(self._value)
        return self._update_value(snapshot, args)

    def remove_value(self, item: Any, args: SignalArgs | None = None) -> bool:
        """Remove every element equal to ``item`` from a list-valued setting."""
        with self._lock:
            if self._value is None:
                return False
            remaining = [element for element in self._value if element != item]
            if len(remaining) == len(self._value):
                return False
            self._value = remaining
            snapshot = copy.deepcopy(remaining)
        return self._update_value(snapshot, args)

    def reset_to_default_value(self, args: SignalArgs | None = None) -> bool:
        return self.set_value(copy.deepcopy(self._default), args)

    def is_default_value(self) -> bool:
        return self.get_value() == self._default

    def remove(self) -> bool:
        """Remove this path, invalidating every setting at or below it."""
        manager = self._manager()
        if manager is None:
            return False
        return manager.remove_setting(self.path)

    def _subscribe(
        self,
        handler: Callable[[Any, SignalArgs], Any],
        initial: Callable[[SettingData], Any],
        connections: list[Connection] | None,
        auto_invoke: bool,
    ) -> Connection | None:
        data = self._data()
        if data is None:
            return None
        connection = data.updated.connect(handler)
        if auto_invoke:
            initial(data)
        (connections if connections is not None else self._connections).append(connection)
        return connection

    def connect_json(
        self,
        func: Callable[[Any, SignalArgs], Any],
        connections: list[Connection] | None = None,
        auto_invoke: bool = True,
    ) -> Connection | None:
        """Call ``func(raw_json, args)`` on every update."""
        return self._subscribe(
            func,
            lambda data: func(copy.deepcopy(data.unmarshal_json()), _on_connect_args()),
            connections,
            auto_invoke,
        )

    def connect(
        self,
        func: Callable[[Any, SignalArgs], Any],
        connections: list[Connection] | None = None,
        auto_invoke: bool = True,
    ) -> Connection | None:
        """Call ``func(value, args)`` on every update."""
        value_type = self.value_type
        return self._subscribe(
            lambda value, args: func(_convert(value, value_type), args),
            lambda _data: func(self.get_value(), _on_connect_args()),
            connections,
            auto_invoke,
        )

    def connect_value(
        self,
        func: Callable[[Any], Any],
        connections: list[Connection] | None = None,
        auto_invoke: bool = True,
    ) -> Connection | None:
        """Call ``func(value)`` on every update."""
        value_type = self.value_type
        return self._subscribe(
            lambda value, _args: func(_convert(value, value_type)),
            lambda _data: func(self.get_value()),
            connections,
            auto_invoke,
        )

    def connect_no_args(
        self,
        func: Callable[[], Any],
        connections: list[Connection] | None = None,
        auto_invoke: bool = True,
    ) -> Connection | None:
        """Call ``func()`` on every update."""
        return self._subscribe(
            lambda _value, _args: func(),
            lambda _data: func(),
            connections,
            auto_invoke,
        )

    def connect_simple(
        self,
        func: Callable[[SignalArgs], Any],
        connections: list[Connection] | None = None,
        auto_invoke: bool = True,
    ) -> Connection | None:
        """Call ``func(args)`` on every update."""
        return self._subscribe(
            lambda _value, args: func(args),
            lambda _data: func(_on_connect_args()),
            connections,
            auto_invoke,
        )

    def disconnect_all(self) -> None:
        """Detach every callback this setting manages itself."""
        _disconnect_all(self._connections)

    @classmethod
    def get_at(
        cls,
        path: str,
        value_type: Any = None,
        options: SettingOption = SettingOption.DEFAULT,
    ) -> Any:
        """Read the value at ``path`` of the shared manager."""
        return cls(path, value_type=value_type, options=options).get_value()

    @classmethod
    def set_at(
        cls,
        path: str,
        value: Any,
        options: SettingOption = SettingOption.DEFAULT,
    ) -> bool:
        """Write ``value`` at ``path`` of the shared manager."""
        value_type = type(value) if value is not None else None
        return cls(path, value_type=value_type, options=options).set_value(value)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Setting):
            return self.get_value() == other.get_value()
        return self.get_value() == other

    __hash__ = None  # type: ignore[assignment]