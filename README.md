# jsonsettings

Application settings kept in one JSON document. Each setting sits at a
JSON pointer such as `/window/width`. It has a value type and a default
value, and every change to it is announced through a signal. The whole
document can be loaded from a file and saved back to it.

The package has no third-party dependencies.

## Installing

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Settings

```python
from jsonsettings.manager import SettingManager
from jsonsettings.setting import Setting

manager = SettingManager()

width = Setting("/window/width", 800, value_type=int, manager=manager)
title = Setting("/window/title", "Untitled", value_type=str, manager=manager)

width.get_value()         # 800, the default
width.set_value(1024)     # True
width == 1024             # True
width.is_default_value()  # False
width.reset_to_default_value()
```

If `value_type` is left out, it is taken from the type of the default.
If there is no default either, the setting holds raw JSON. Without a
default, a setting starts from the empty value of its type: `0`, `0.0`,
`False`, `""`, `[]`, `{}`, or `None` for raw JSON. Supported value types
are `bool`, `int`, `float`, `str`, `list[...]`, `dict[str, ...]`, and
`object` or `typing.Any` for raw JSON.

The default belongs to one `Setting` object. Two settings at the same
path share the stored value but each keeps its own default. The
`default` property reads the default and can replace it.

Stored JSON is converted to the value type when it is read. A JSON
integer read as `bool` is `True` only when it is `1`. A number read as
`int` is truncated. If the stored value cannot be converted at all, the
setting keeps its previous value, or its default.

If you leave out `manager`, the setting uses the process-wide manager
returned by `SettingManager.instance()`. The class methods
`Setting.get_at(path, value_type, options)` and
`Setting.set_at(path, value, options)` read or write one value on that
shared manager without keeping a `Setting` object around.

Settings that hold a list support `append(item, args)`, and
`remove_value(item, args)`, which removes every equal element.

`SettingOption` flags change how a setting writes:

- `DO_NOT_WRITE_TO_JSON` announces changes without storing them in the
  document.
- `COMPARE_BEFORE_SET` skips the write, and the signal, when the stored
  value is already equal. `set_value` then returns `False`.

`remove()` deletes the setting's path from the document. It also
invalidates every setting at that path or below it, and `is_valid()`
returns `False` for them afterwards.

## Loading and saving

```python
manager.load("settings.json")   # remembers the path for later saves
manager.save()                  # writes back to the remembered path
manager.save_as("copy.json")
```

A file must hold a JSON object at its root. Loading replaces the
document, and then every registered setting is told about its new value.
An empty file loads without error and leaves the document as it was.

Loading raises these errors, all subclasses of `LoadError`:

- `FileHandleError` if the path cannot be resolved.
- `CannotOpenFileError` if the file cannot be read, or if no path was
  given or remembered.
- `JSONParseError` if the content is not JSON, or its root is not an
  object.

`save` raises `ValueError` when no path is known. `save_as` writes
indented JSON to a temporary file beside the target and then replaces
the target with it.

`save_method` takes `SaveMethod` flags:

- `SAVE_ON_SETTING_CHANGE` saves after every stored change.
- `SAVE_ON_EXIT` makes `close()` save the document.

A manager can be used as a context manager; leaving the block calls
`close()`.

## Listening for changes

```python
conns = []
width.connect(lambda value, args: print("width is now", value), conns)
width.connect_value(lambda value: ..., conns)
width.connect_no_args(lambda: ..., conns)
width.connect_simple(lambda args: print(args.source), conns)
width.connect_json(lambda raw, args: ..., conns)
```

Each method returns the `Connection`. If a connections list is passed,
the connection is appended to it; otherwise the setting keeps it itself.
By default each callback runs once right away with the current value,
and `connect`, `connect_simple` and `connect_json` pass a `SignalArgs`
whose `source` is `Source.ON_CONNECT`. Pass `auto_invoke=False` to skip
that first call.

`Connection.disconnect()` detaches one callback. A connection also
detaches itself when used as a context manager and its block ends.
`disconnect_all()` drops every connection the setting keeps itself.

## Working with the document directly

`SettingManager` gives direct access to the document:

- `get(path)` returns the value at a pointer, raising `KeyError` if it
  is absent.
- `set(path, value, args)` stores a value at a pointer and notifies the
  setting registered there.
- `array_size`, `is_null` and `set_null` inspect a value or set it to
  null.
- `remove_array_value` pops the last element or nulls an inner one.
- `clean_array` removes the null elements above index 0.
- `object_keys` lists the keys of an object.
- `remove_setting` removes a path and forgets every setting at or below
  it.
- `clear` empties the document and forgets all settings.
- `pretty()` returns the document as indented JSON.

The manager module also has `stringify(value)`, which gives compact
JSON, and `real_path(path)`, which resolves symbolic links.

`jsonsettings.pointer.JsonPointer` is the JSON pointer type that all of
this is built on. It has `get`, `set` and `erase`. An invalid pointer
raises `InvalidPointerError`, and `is_valid_pointer(path)` checks a
pointer without raising. `jsonsettings.data` holds `SignalArgs`,
`Source`, `Signal`, `Connection`, and `SettingData`, which is the state
shared by all settings at one path.

## What it does not do

Saving keeps no backup copies of earlier files. Every save overwrites
the target, apart from the temporary file used while writing. The
package does not watch settings files for changes made by other
programs; call `load` again to pick them up.