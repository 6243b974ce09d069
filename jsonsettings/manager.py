"""The settings document, its registered paths, and file loading and saving."""

from __future__ import annotations

import copy
import enum
import json
import os
import threading
from pathlib import Path
from typing import Any

from jsonsettings.data import SettingData, SignalArgs, Source
from jsonsettings.pointer import InvalidPointerError, JsonPointer


class LoadError(Exception):
    """Base class for failures while loading a settings file."""


class FileHandleError(LoadError):
    """The settings path could not be resolved or inspected."""


class CannotOpenFileError(LoadError):
    """The settings file could not be opened."""


class JSONParseError(LoadError):
    """The settings file is not a JSON document with an object root."""


class SaveMethod(enum.Flag):
    """When the manager writes its document back to disk on its own."""

    SAVE_MANUALLY = 0
    SAVE_ON_EXIT = 1
    SAVE_ON_SETTING_CHANGE = 2


def stringify(value: Any) -> str:
    """Serialise a JSON value compactly."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, allow_nan=False)


def real_path(path: str | os.PathLike[str]) -> Path:
    """Resolve ``path`` to an absolute path with symbolic links followed."""
    return Path(os.path.realpath(os.fspath(path)))


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON constant {name}")


def _json_equal(a: Any, b: Any) -> bool:
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if isinstance(a, dict) and isinstance(b, dict):
        return a.keys() == b.keys() and all(_json_equal(a[k], b[k]) for k in a)
    if isinstance(a, list) and isinstance(b, list):
        return len(a) == len(b) and all(_json_equal(x, y) for x, y in zip(a, b))
    return a == b


def _has_path(path: Any) -> bool:
    return path is not None and os.fspath(path) != ""


class SettingManager:
    """Owns a JSON settings document and the settings registered on it."""

    _instance: SettingManager | None = None
    _instance_lock = threading.Lock()

    def __init__(self) -> None:
        self.document: Any = {}
        self.file_path: Path | None = None
        self.save_method = SaveMethod.SAVE_MANUALLY
        self._settings: dict[str, SettingData] = {}
        self._settings_lock = threading.RLock()

    @classmethod
    def instance(cls) -> SettingManager:
        """Return the process-wide shared manager."""
        with cls._instance_lock:
            if cls._instance is None:
                cls._instance = cls()
            return cls._instance

    def pretty(self) -> str:
        """Return the document as indented JSON."""
        return json.dumps(self.document, indent=4, ensure_ascii=False)

    def get(self, path: str) -> Any:
        """Return the value at ``path``.

        Raises KeyError if nothing is stored there or ``path`` is not a valid
        pointer.
        """
        try:
            pointer = JsonPointer(path)
        except InvalidPointerError:
            raise KeyError(path) from None
        return pointer.get(self.document)

    def _lookup(self, path: str) -> tuple[bool, Any]:
        try:
            return True, self.get(path)
        except KeyError:
            return False, None

    def set(self, path: str, value: Any, args: SignalArgs | None = None) -> bool:
        """Store ``value`` at ``path`` and notify the setting registered there.

        Returns False if ``compare_before_set`` found the value unchanged.
        """
        if args is None:
            args = SignalArgs()
        if args.compare_before_set:
            found, previous = self._lookup(path)
            if found and _json_equal(previous, value):
                return False
        if args.write_to_file:
            self.document = JsonPointer(path).set(self.document, copy.deepcopy(value))
            if self.save_method & SaveMethod.SAVE_ON_SETTING_CHANGE:
                self.save()
        self.notify_update(path, value, args)
        return True

    def notify_update(self, path: str, value: Any, args: SignalArgs) -> None:
        setting = self.find_setting(path)
        if setting is not None:
            setting.notify_update(value, args)

    def notify_loaded_values(self) -> None:
        """Tell every registered setting about the value now in the document."""
        with self._settings_lock:
            loaded = list(self._settings.items())
        for path, setting in loaded:
            found, value = self._lookup(path)
            if found:
                setting.notify_update(value, SignalArgs(source=Source.SETTER))

    def array_size(self, path: str) -> int:
        """Return the length of the array at ``path``, or 0 if it is not an array."""
        found, value = self._lookup(path)
        if not found or not isinstance(value, list):
            return 0
        return len(value)

    def is_null(self, path: str) -> bool:
        """True if the value at ``path`` is null or absent."""
        found, value = self._lookup(path)
        return not found or value is None

    def set_null(self, path: str) -> None:
        self.document = JsonPointer(path).set(self.document, None)

    def remove_array_value(self, array_path: str, index: int) -> bool:
        """Remove an array element: pop it if last, otherwise null it."""
        element_root = f"{array_path}/{index}/"
        self.clear_settings(element_root)
        size = self.array_size(array_path)
        if size == 0 or index >= size:
            return False
        array = self.get(array_path)
        if index == size - 1:
            array.pop()
        else:
            self.set_null(f"{array_path}/{index}")
        self.clear_settings(element_root)
        return True

    def clean_array(self, array_path: str) -> int:
        """Remove null elements above index 0; return how many were handled."""
        size = self.array_size(array_path)
        removed = 0
        for i in range(size - 1, 0, -1):
            if self.is_null(f"{array_path}/{i}"):
                self.remove_array_value(array_path, i)
                removed += 1
        return removed

    def object_keys(self, object_path: str) -> list[str]:
        found, value = self._lookup(object_path)
        if not found or not isinstance(value, dict):
            return []
        return list(value)

    def clear(self) -> None:
        """Empty the document and forget every registered setting."""
        self.document = {}
        with self._settings_lock:
            self._settings.clear()

    def remove_setting(self, path: str) -> bool:
        """Remove the value at ``path`` and every setting at or below it."""
        extended = path if path.endswith("/") else path + "/"
        with self._settings_lock:
            self._settings.pop(path, None)
            for child in [p for p in self._settings if p.startswith(extended)]:
                try:
                    JsonPointer(child).erase(self.document)
                except InvalidPointerError:
                    pass
                del self._settings[child]
            try:
                return JsonPointer(path).erase(self.document)
            except InvalidPointerError:
                return False

    def clear_settings(self, root: str) -> None:
        """Forget registered settings whose path starts with ``root``."""
        with self._settings_lock:
            for key in [p for p in self._settings if p.startswith(root)]:
                del self._settings[key]

    def load(self, path: str | os.PathLike[str] | None = None) -> None:
        """Load from ``path`` (remembered for later) or the remembered path."""
        if _has_path(path):
            self.file_path = Path(path)
        if self.file_path is None:
            raise CannotOpenFileError("no settings file path has been set")
        self.load_from(self.file_path)

    def load_from(self, path: str | os.PathLike[str]) -> None:
        """Replace the document with the JSON object stored in ``path``."""
        try:
            resolved = real_path(path)
        except OSError as exc:
            raise FileHandleError(f"cannot resolve {path}") from exc
        try:
            raw = resolved.read_bytes()
        except OSError as exc:
            raise CannotOpenFileError(f"cannot open {path}") from exc
        if not raw:
            return
        try:
            parsed = json.loads(raw.decode("utf-8"), parse_constant=_reject_constant)
        except (UnicodeDecodeError, ValueError) as exc:
            raise JSONParseError(f"{path} is not valid JSON") from exc
        if not isinstance(parsed, dict):
            raise JSONParseError(f"{path} does not hold a JSON object")
        self.document = parsed
        self.notify_loaded_values()

    def save(self, path: str | os.PathLike[str] | None = None) -> None:
        """Save to ``path`` (remembered for later) or the remembered path."""
        if _has_path(path):
            self.file_path = Path(path)
        if self.file_path is None:
            raise ValueError("no settings file path has been set")
        self.save_as(self.file_path)

    def save_as(self, path: str | os.PathLike[str]) -> None:
        """Write the document to ``path`` through a temporary file."""
        target = Path(path)
        temporary = target.with_name(target.name + ".tmp")
        try:
            self.write_to(temporary)
            os.replace(temporary, target)
        except OSError:
            temporary.unlink(missing_ok=True)
            raise

    def write_to(self, path: str | os.PathLike[str]) -> None:
        with open(path, "w", encoding="utf-8", newline="") as fh:
            fh.write(self.pretty())

    def setting_data(self, path: str) -> SettingData:
        """Return the shared data for ``path``, registering it if needed."""
        with self._settings_lock:
            data = self._settings.get(path)
            if data is None:
                data = SettingData(path, self)
                self._settings[path] = data
            return data

    def find_setting(self, path: str) -> SettingData | None:
        with self._settings_lock:
            return self._settings.get(path)

    def close(self) -> None:
        """Save the document if the save method asks for saving on exit."""
        if self.save_method & SaveMethod.SAVE_ON_EXIT:
            self.save()

    def __enter__(self) -> SettingManager:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()