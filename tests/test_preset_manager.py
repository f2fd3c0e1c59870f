"""
Tests for preset export/load.
"""

import gzip
import os

import pytest

from multisampler.model import ExportValidationError, MalformedDocumentError, SampleFileRef
from multisampler.presets import InstrumentSettings, PresetError, PresetManager
from tests.helpers.mapping_helpers import mapping_tuples


@pytest.fixture
def manager(preset_dir):
    return PresetManager(presets_dir=preset_dir)


class TestExport:
    """Tests for export()."""

    def test_writes_gzipped_preset(self, manager, populated_model, preset_dir):
        result = manager.export(populated_model, preset_dir / "Drums.adv")
        assert result.preset_path == preset_dir / "Drums.adv"
        data = result.preset_path.read_bytes()
        assert data[:2] == b"\x1f\x8b"
        assert b"<MultiSampler>" in gzip.decompress(data)

    def test_adds_extension(self, manager, populated_model, preset_dir):
        result = manager.export(populated_model, preset_dir / "Drums")
        assert result.preset_path.name == "Drums.adv"

    def test_copy_plan(self, manager, populated_model, preset_dir):
        result = manager.export(populated_model, preset_dir / "Drums.adv")
        imported = preset_dir / "Samples" / "Imported"
        assert result.copy_plan == [
            ("/tmp/kick.wav", str(imported / "kick.wav")),
            ("/tmp/kick_2.wav", str(imported / "kick_2.wav")),
            ("/tmp/kick_soft.wav", str(imported / "kick_soft.wav")),
            ("/tmp/snare.wav", str(imported / "snare.wav")),
        ]
        assert not imported.exists()

    def test_default_settings_named_after_file(self, manager, populated_model, preset_dir):
        result = manager.export(populated_model, preset_dir / "Kit One.adv")
        assert manager.load(result.preset_path).settings.name == "Kit One"

    def test_model_untouched(self, manager, populated_model, preset_dir):
        before = mapping_tuples(populated_model)
        manager.export(populated_model, preset_dir / "Drums.adv")
        assert mapping_tuples(populated_model) == before

    def test_no_temp_files_left(self, manager, populated_model, preset_dir):
        manager.export(populated_model, preset_dir / "Drums.adv")
        assert sorted(os.listdir(preset_dir)) == ["Drums.adv"]

    def test_overwrite(self, manager, populated_model, model, kick_ref, preset_dir):
        path = preset_dir / "Drums.adv"
        manager.export(populated_model, path)
        model.add_sample(60, kick_ref)
        manager.export(model, path)
        assert manager.load(path).model.sample_count == 1

    def test_refuses_overwrite(self, manager, populated_model, preset_dir):
        path = preset_dir / "Drums.adv"
        manager.export(populated_model, path)
        with pytest.raises(PresetError):
            manager.export(populated_model, path, allow_overwrite=False)


class TestAllOrNothing:
    """Nothing is written when export fails."""

    def test_empty_model(self, manager, model, preset_dir):
        with pytest.raises(ExportValidationError) as exc:
            manager.export(model, preset_dir / "Empty.adv")
        assert [i.code for i in exc.value.issues] == ["EmptyMapping"]
        assert not (preset_dir / "Empty.adv").exists()

    def test_duplicate_names(self, manager, model, preset_dir):
        model.add_sample(60, SampleFileRef("/a/kick.wav", 44100.0, 10))
        model.add_sample(61, SampleFileRef("/b/kick.wav", 44100.0, 10))
        with pytest.raises(ExportValidationError) as exc:
            manager.export(model, preset_dir / "Dup.adv")
        assert [i.code for i in exc.value.issues] == ["DuplicateSampleName"]
        assert os.listdir(preset_dir) == []

    def test_existing_file_kept_on_failure(self, manager, populated_model, model, preset_dir):
        path = preset_dir / "Drums.adv"
        manager.export(populated_model, path)
        before = path.read_bytes()
        with pytest.raises(ExportValidationError):
            manager.export(model, path)
        assert path.read_bytes() == before

    def test_bad_settings(self, manager, populated_model, preset_dir):
        with pytest.raises(PresetError):
            manager.export(populated_model, preset_dir / "X.adv", InstrumentSettings(num_voices=9))
        assert not (preset_dir / "X.adv").exists()


class TestLibrary:
    """Tests for save/load/list/delete in the presets directory."""

    def test_save_sanitizes_name(self, manager, populated_model, preset_dir):
        result = manager.save(populated_model, "Kick/Snare: Kit")
        assert result.preset_path == preset_dir / "Kick_Snare_ Kit.adv"

    def test_save_adds_suffix(self, manager, populated_model, preset_dir):
        manager.save(populated_model, "Kit")
        second = manager.save(populated_model, "Kit")
        assert second.preset_path.name == "Kit_1.adv"

    def test_save_overwrite(self, manager, populated_model):
        first = manager.save(populated_model, "Kit")
        second = manager.save(populated_model, "Kit", overwrite=True)
        assert first.preset_path == second.preset_path

    def test_load_round_trip(self, manager, populated_model):
        result = manager.save(populated_model, "Kit")
        decoded = manager.load(result.preset_path)
        assert mapping_tuples(decoded.model) == mapping_tuples(populated_model)
        assert decoded.settings.name == "Kit"

    def test_load_missing(self, manager, preset_dir):
        with pytest.raises(PresetError):
            manager.load(preset_dir / "nope.adv")

    def test_load_garbage(self, manager, preset_dir):
        path = preset_dir / "bad.adv"
        path.write_bytes(b"not a preset")
        with pytest.raises(MalformedDocumentError):
            manager.load(path)

    def test_list_newest_first(self, manager, populated_model):
        old = manager.save(populated_model, "Old").preset_path
        new = manager.save(populated_model, "New").preset_path
        os.utime(old, (1000, 1000))
        os.utime(new, (2000, 2000))
        assert manager.list_presets() == [new, old]

    def test_list_ignores_other_files(self, manager, preset_dir):
        (preset_dir / "notes.txt").write_text("x")
        assert manager.list_presets() == []

    def test_delete(self, manager, populated_model):
        path = manager.save(populated_model, "Kit").preset_path
        assert manager.delete(path)
        assert not path.exists()
        assert not manager.delete(path)

    def test_default_dir_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MS_PRESET_DIR", str(tmp_path / "lib"))
        manager = PresetManager()
        assert manager.presets_dir == (tmp_path / "lib").resolve()
        assert manager.presets_dir.is_dir()
