import json
import os

import pytest

from jsonsettings.data import SignalArgs, Source
from jsonsettings.manager import (
    CannotOpenFileError,
    JSONParseError,
    SaveMethod,
    SettingManager,
    real_path,
    stringify,
)


def _write(directory, name, content):
    path = directory / name
    path.parent.mkdir(parents=True, exist_ok=True)
    text = content if isinstance(content, str) else json.dumps(content)
    path.write_text(text, encoding="utf-8")
    return path


def test_instance_is_shared():
    first = SettingManager.instance()
    first.set("/sharedInstanceCheck", 11)
    try:
        assert SettingManager.instance().get("/sharedInstanceCheck") == 11
    finally:
        first.remove_setting("/sharedInstanceCheck")
    assert SettingManager.instance().is_null("/sharedInstanceCheck") is True


def test_stringify():
    assert stringify(5) == "5"


def test_pretty_uses_four_space_indent():
    manager = SettingManager()
    manager.set("/a", 1)
    assert manager.pretty() == '{\n    "a": 1\n}'


def test_array(tmp_path):
    manager = SettingManager()
    manager.set("/array/0/int", 5)
    manager.set("/array/1/int", 10)
    manager.set("/array/2/int", 15)
    assert manager.array_size("/array") == 3
    out = tmp_path / "out.array_test.json"
    manager.save_as(out)
    assert manager.array_size("/array") == 3
    saved = json.loads(out.read_text(encoding="utf-8"))
    assert saved["array"][2]["int"] == 15


def test_array_size(tmp_path):
    manager = SettingManager()
    path = _write(
        tmp_path,
        "in.array_size.json",
        {
            "arraySize1": [1],
            "arraySize2": [1, 2],
            "arraySize3": [1, 2, 3],
            "arraySize4": [1, 2, 3, 4],
            "arraySize5": {"a": 1},
        },
    )
    manager.load_from(path)
    assert manager.array_size("/arraySize1") == 1
    assert manager.array_size("/arraySize2") == 2
    assert manager.array_size("/arraySize3") == 3
    assert manager.array_size("/arraySize4") == 4
    assert manager.array_size("/arraySize5") == 0


def test_vector(tmp_path):
    manager = SettingManager()
    manager.load_from(_write(tmp_path, "in.vector.json", {"vectorTest": [5, 10, 15]}))
    assert manager.get("/vectorTest") == [5, 10, 15]
    manager.set("/vectorTest", [1, 2, 3])
    out = tmp_path / "out.vector.json"
    manager.save_as(out)
    assert json.loads(out.read_text(encoding="utf-8")) == {"vectorTest": [1, 2, 3]}


def test_channel_files_replace_document(tmp_path):
    manager = SettingManager()
    manager.load_from(
        _write(tmp_path, "d.channels.json", {"channels": {"hemirt": {"maxMessageLength": 200}}})
    )
    assert manager.get("/channels/hemirt/maxMessageLength") == 200
    with pytest.raises(KeyError):
        manager.get("/channels/pajlada/maxMessageLength")
    manager.load_from(
        _write(
            tmp_path,
            "channels.json",
            {
                "channels": {
                    "hemirt": {"maxMessageLength": 300},
                    "pajlada": {"maxMessageLength": 500},
                }
            },
        )
    )
    assert manager.get("/channels/hemirt/maxMessageLength") == 300
    assert manager.get("/channels/pajlada/maxMessageLength") == 500


@pytest.mark.parametrize("text", ["{", "[1, 2]", "{} {}", '{"a": NaN}'])
def test_invalid_files(tmp_path, text):
    manager = SettingManager()
    manager.set("/keep", 1)
    with pytest.raises(JSONParseError):
        manager.load_from(_write(tmp_path, "bad.json", text))
    assert manager.get("/keep") == 1


def test_empty_file_loads_without_change(tmp_path):
    manager = SettingManager()
    manager.set("/keep", 1)
    manager.load_from(_write(tmp_path, "empty.json", ""))
    assert manager.document == {"keep": 1}


def test_non_existent_file(tmp_path):
    manager = SettingManager()
    with pytest.raises(CannotOpenFileError):
        manager.load_from(tmp_path / "test-non-existant-file.json")


def test_load_without_path():
    with pytest.raises(CannotOpenFileError):
        SettingManager().load()


def test_load_notifies_registered_settings(tmp_path):
    manager = SettingManager()
    data = manager.setting_data("/a")
    seen = []
    data.updated.connect(lambda value, args: seen.append((value, args.source)))
    manager.load_from(_write(tmp_path, "in.json", {"a": 5}))
    assert seen == [(5, Source.SETTER)]


def test_load_unicode_directory(tmp_path):
    manager = SettingManager()
    directory = tmp_path / "files" / "unicode" / "a"
    for path in [_write(directory, "ünïcödé.json", {"a": 5})]:
        manager.load_from(path)
    assert manager.get("/a") == 5


def test_load_space_in_name(tmp_path):
    manager = SettingManager()
    manager.load_from(_write(tmp_path, "load. .json", {"a": 5}))
    assert manager.get("/a") == 5


def test_load_symlink(tmp_path):
    target = _write(tmp_path, "correct.save.save_int.json", {"lol": 10})
    link = tmp_path / "in.symlink.json"
    os.symlink(target, link)
    manager = SettingManager()
    manager.load_from(link)
    assert manager.get("/lol") == 10
    assert real_path(link) == real_path(target)


def test_load_relative_symlink(tmp_path):
    _write(tmp_path, "correct.save.save_int.json", {"lol": 10})
    link = tmp_path / "in.relative-symlink.json"
    os.symlink("correct.save.save_int.json", link)
    manager = SettingManager()
    manager.load_from(link)
    assert manager.get("/lol") == 10


def test_remove_simple(tmp_path):
    manager = SettingManager()
    for path in ("/rs/a", "/rs/b", "/rs/c"):
        manager.setting_data(path)
    manager.load_from(_write(tmp_path, "in.removesetting.json", {"rs": {"a": 5, "b": 10}}))
    assert manager.get("/rs/a") == 5
    assert manager.get("/rs/b") == 10
    assert manager.is_null("/rs/c")
    pre = tmp_path / "out.pre.removesetting.json"
    post = tmp_path / "out.post.removesetting.json"
    manager.save_as(pre)
    assert manager.remove_setting("/rs/a") is True
    manager.save_as(post)
    assert pre.read_text(encoding="utf-8") != post.read_text(encoding="utf-8")


def test_remove_nested(tmp_path):
    manager = SettingManager()
    paths = ["/root/nested/a", "/root/nested/b", "/root/nested/c", "/root/d", "/root/e"]
    for path in paths:
        manager.setting_data(path)
    manager.load_from(
        _write(
            tmp_path,
            "in.removenestedsetting.json",
            {"root": {"nested": {"a": 6, "b": 11}, "e": 21}},
        )
    )
    assert manager.get("/root/nested/a") == 6
    assert manager.get("/root/nested/b") == 11
    assert manager.get("/root/e") == 21

    out = tmp_path / "out.json"
    manager.save_as(out)
    assert json.loads(out.read_text(encoding="utf-8")) == {
        "root": {"nested": {"a": 6, "b": 11}, "e": 21}
    }

    assert manager.remove_setting("/root/nested/a") is True
    assert manager.find_setting("/root/nested/a") is None
    assert all(manager.find_setting(p) is not None for p in paths[1:])
    manager.save_as(out)
    assert json.loads(out.read_text(encoding="utf-8")) == {"root": {"nested": {"b": 11}, "e": 21}}

    assert manager.remove_setting("/root/nested") is True
    assert manager.find_setting("/root/nested/b") is None
    assert manager.find_setting("/root/nested/c") is None
    assert manager.find_setting("/root/d") is not None
    assert manager.find_setting("/root/e") is not None
    manager.save_as(out)
    assert json.loads(out.read_text(encoding="utf-8")) == {"root": {"e": 21}}


def test_set_compare_before_set():
    manager = SettingManager()
    args = SignalArgs(compare_before_set=True)
    assert manager.set("/x", 1, args) is True
    assert manager.set("/x", 1, args) is False
    assert manager.set("/x", True, args) is True
    assert manager.set("/x", 2, args) is True


def test_set_without_writing_still_notifies():
    manager = SettingManager()
    data = manager.setting_data("/x")
    seen = []
    data.updated.connect(lambda value, args: seen.append(value))
    manager.set("/x", 7, SignalArgs(write_to_file=False))
    assert seen == [7]
    assert manager.is_null("/x")


def test_set_copies_value():
    manager = SettingManager()
    items = [1, 2]
    manager.set("/l", items)
    items.append(3)
    assert manager.get("/l") == [1, 2]


def test_get_invalid_pointer_is_key_error():
    with pytest.raises(KeyError):
        SettingManager().get("no-slash")


def test_null_handling():
    manager = SettingManager()
    manager.set("/zero", 0)
    assert manager.is_null("/missing") is True
    assert manager.is_null("/zero") is False
    manager.set_null("/zero")
    assert manager.is_null("/zero") is True
    assert manager.get("/zero") is None


def test_remove_array_value():
    manager = SettingManager()
    manager.set("/arr", [1, 2, 3])
    manager.setting_data("/arr/1/x")
    assert manager.remove_array_value("/arr", 1) is True
    assert manager.get("/arr") == [1, None, 3]
    assert manager.find_setting("/arr/1/x") is None
    assert manager.remove_array_value("/arr", 2) is True
    assert manager.get("/arr") == [1, None]
    assert manager.remove_array_value("/arr", 5) is False
    assert manager.remove_array_value("/none", 0) is False


def test_clean_array():
    manager = SettingManager()
    manager.set("/arr", [1, 2, None])
    assert manager.clean_array("/arr") == 1
    assert manager.get("/arr") == [1, 2]
    assert manager.clean_array("/missing") == 0


def test_object_keys():
    manager = SettingManager()
    manager.set("/obj/b", 1)
    manager.set("/obj/a", 2)
    manager.set("/scalar", 3)
    assert manager.object_keys("/obj") == ["b", "a"]
    assert manager.object_keys("/scalar") == []
    assert manager.object_keys("/missing") == []


def test_clear():
    manager = SettingManager()
    manager.setting_data("/a")
    manager.set("/a", 1)
    manager.clear()
    assert manager.document == {}
    assert manager.find_setting("/a") is None


def test_setting_data_is_shared_per_path():
    manager = SettingManager()
    assert manager.setting_data("/test") is manager.setting_data("/test")
    assert manager.setting_data("/test").path == "/test"
    assert manager.find_setting("/other") is None


def test_load_and_save_remember_path(tmp_path):
    path = _write(tmp_path, "settings.json", {"a": 1})
    manager = SettingManager()
    manager.load(path)
    assert manager.file_path == path
    manager.set("/a", 2)
    manager.save()
    reloaded = SettingManager()
    reloaded.load_from(path)
    assert reloaded.get("/a") == 2


def test_save_on_exit(tmp_path):
    path = tmp_path / "exit.json"
    with SettingManager() as manager:
        manager.save_method = SaveMethod.SAVE_ON_EXIT
        manager.file_path = path
        manager.set("/a", 3)
        assert not path.exists()
    assert json.loads(path.read_text(encoding="utf-8")) == {"a": 3}


def test_save_on_setting_change(tmp_path):
    path = tmp_path / "change.json"
    manager = SettingManager()
    manager.save_method = SaveMethod.SAVE_ON_SETTING_CHANGE
    manager.file_path = path
    manager.set("/a", 4)
    assert json.loads(path.read_text(encoding="utf-8")) == {"a": 4}


def test_save_as_into_missing_directory_raises(tmp_path):
    manager = SettingManager()
    with pytest.raises(OSError):
        manager.save_as(tmp_path / "no" / "such" / "dir.json")