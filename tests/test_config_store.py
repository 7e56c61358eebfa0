"""Tests for the file-backed configuration store."""

from pathlib import Path

import toml

from wcm.core.metadata import parse_string
from wcm.shared.config_store import ConfigStore, StoreOption

from conftest import AUTOSTART_XML, DEMO_XML


def demo_store(path: Path) -> ConfigStore:
    store = ConfigStore(path)
    store.register_schema(parse_string(DEMO_XML))
    return store


class TestRegistration:
    def test_schema_defaults(self, tmp_path: Path) -> None:
        section = demo_store(tmp_path / "w.ini").get_section("demo")
        delay = section.get_option("delay")
        assert delay.schema and delay.value == delay.default == "5"
        assert section.get_option("tint").default == "1.0 0.0 0.0 " + repr(128 / 255)

    def test_dynamic_list_becomes_compound(self, tmp_path: Path) -> None:
        store = ConfigStore(tmp_path / "w.ini")
        section = store.register_schema(parse_string(AUTOSTART_XML))
        assert section.get_compound("autostart").prefixes == [""]
        assert section.get_option("autostart") is None

    def test_unregister(self, tmp_path: Path) -> None:
        section = demo_store(tmp_path / "w.ini").get_section("demo")
        assert section.unregister("delay")
        assert not section.unregister("delay")


class TestLoad:
    def test_missing_file(self, tmp_path: Path) -> None:
        store = demo_store(tmp_path / "w.ini")
        assert store.load()
        assert store.load_successful

    def test_values_and_unknown_keys(self, tmp_path: Path) -> None:
        path = tmp_path / "w.ini"
        path.write_text("[demo]\ndelay = 8\nextra = hello world\n\n[unknown]\nk = v\n")
        store = demo_store(path)
        store.load()
        section = store.get_section("demo")
        assert section.get_option("delay").value == "8"
        extra = section.get_option("extra")
        assert extra.value == "hello world" and not extra.schema
        assert store.get_section("unknown").get_option("k").value == "v"

    def test_invalid_value_is_kept_verbatim(self, tmp_path: Path, read_ini) -> None:
        path = tmp_path / "w.ini"
        path.write_text("[demo]\ndelay = soon\n")
        store = demo_store(path)
        store.load()
        delay = store.get_section("demo").get_option("delay")
        assert delay.value == "soon" and delay.default == "5"
        assert store.save()
        assert read_ini(path)["demo"]["delay"] == "soon"

    def test_comments_and_escaped_hash(self, tmp_path: Path) -> None:
        path = tmp_path / "w.ini"
        path.write_text(
            "# leading comment\n[demo] # section comment\n"
            "tint = \\#00FF00FF\ndelay = 3 # slow\nlabel = a \\# b # note\n"
        )
        store = demo_store(path)
        assert store.load()
        section = store.get_section("demo")
        assert section.get_option("tint").value == "#00FF00FF"
        assert section.get_option("tint").explicit
        assert section.get_option("delay").value == "3"
        assert section.get_option("label").value == "a # b"

    def test_hash_is_escaped_on_save(self, tmp_path: Path) -> None:
        path = tmp_path / "w.ini"
        path.write_text("[demo]\ntint = \\#00FF00FF\ndelay = 3 # slow\n")
        store = demo_store(path)
        store.load()
        assert store.save()
        text = path.read_text()
        assert "tint = \\#00FF00FF" in text
        assert "delay = 3\n" in text
        reloaded = demo_store(path)
        reloaded.load()
        assert reloaded.get_section("demo").get_option("tint").value == "#00FF00FF"

    def test_backslash_continuation(self, tmp_path: Path) -> None:
        path = tmp_path / "w.ini"
        path.write_text("[autostart]\nbar = waybar \\\n    --log\npanel = wf-panel\n")
        store = ConfigStore(path)
        assert store.load()
        section = store.get_section("autostart")
        assert section.get_option("bar").value == "waybar --log"
        assert section.get_option("panel").value == "wf-panel"

    def test_malformed_lines_are_skipped(self, tmp_path: Path, caplog) -> None:
        path = tmp_path / "w.ini"
        path.write_text("stray = before any section\n[demo]\njust some words\ndelay = 4\n[\n")
        store = demo_store(path)
        with caplog.at_level("WARNING", logger="wcm.shared.config_store"):
            assert store.load()
        assert store.load_successful
        section = store.get_section("demo")
        assert section.get_option("delay").value == "4"
        assert section.get_option("stray") is None
        assert "just some words" in caplog.text
        assert store.save()

    def test_keys_keep_case(self, tmp_path: Path) -> None:
        path = tmp_path / "w.ini"
        path.write_text("[demo]\nMyKey = 1\n")
        store = demo_store(path)
        store.load()
        assert store.get_section("demo").get_option("MyKey") is not None

    def test_broken_file_blocks_save(self, tmp_path: Path) -> None:
        path = tmp_path / "w.ini"
        path.write_bytes(b"[demo]\ndelay = \xff\xfe\n")
        store = demo_store(path)
        assert not store.load()
        assert not store.save()
        assert path.read_bytes() == b"[demo]\ndelay = \xff\xfe\n"

    def test_defaults_file(self, tmp_path: Path) -> None:
        defaults = tmp_path / "defaults.ini"
        defaults.write_text("[demo]\ndelay = 3\nnot_registered = x\n")
        path = tmp_path / "w.ini"
        path.write_text("[demo]\nenabled = true\n")
        store = demo_store(path)
        store.load_defaults(defaults)
        store.load()
        section = store.get_section("demo")
        assert section.get_option("delay").value == "3"
        assert section.get_option("delay").default == "3"
        assert section.get_option("not_registered") is None


class TestSave:
    def test_only_changed_or_explicit_values_written(self, tmp_path: Path, read_ini) -> None:
        path = tmp_path / "w.ini"
        path.write_text("[demo]\nspeed = 0.5\n")
        store = demo_store(path)
        store.load()
        store.get_section("demo").get_option("delay").set("7")
        assert store.save()
        data = read_ini(path)
        assert data["demo"] == {"speed": "0.5", "delay": "7"}

    def test_reset_removes_key(self, tmp_path: Path, read_ini) -> None:
        path = tmp_path / "w.ini"
        path.write_text("[demo]\ndelay = 9\n")
        store = demo_store(path)
        store.load()
        store.get_section("demo").get_option("delay").reset()
        store.save()
        assert "demo" not in read_ini(path)

    def test_compound_rows_written_as_flat_keys(self, tmp_path: Path, read_ini) -> None:
        path = tmp_path / "w.ini"
        path.write_text("[autostart]\nautostart_wf_shell = false\nbar = waybar\nbg = swaybg\n")
        store = ConfigStore(path)
        store.register_schema(parse_string(AUTOSTART_XML))
        store.load()
        section = store.get_section("autostart")
        assert section.get_compound("autostart").rows == [["bar", "waybar"], ["bg", "swaybg"]]
        section.register(StoreOption(name="term", value="foot", explicit=True))
        store.save()
        assert read_ini(path)["autostart"] == {
            "autostart_wf_shell": "false",
            "bar": "waybar",
            "bg": "swaybg",
            "term": "foot",
        }

    def test_toml_backend(self, tmp_path: Path) -> None:
        path = tmp_path / "wayfire.toml"
        path.write_text('[demo]\ndelay = 4\nenabled = true\nlist = ["a", "b"]\n')
        store = demo_store(path)
        store.load()
        section = store.get_section("demo")
        assert section.get_option("delay").value == "4"
        assert section.get_option("enabled").value == "true"
        assert section.get_option("list").value == "a b"
        store.save()
        assert toml.load(path)["demo"]["delay"] == "4"

    def test_modification_tracking(self, tmp_path: Path) -> None:
        path = tmp_path / "w.ini"
        store = demo_store(path)
        store.load()
        store.save()
        assert not store.is_modified()
