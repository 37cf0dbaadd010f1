"""Tests for configuration persistence and the typed editor settings."""

import json

import pytest

from vocaroll.core.config import DEFAULT_CONFIG, ConfigManager, EditorSettings


@pytest.fixture
def temp_config_dir(tmp_path):
    """Provide a temporary config directory for testing."""
    return tmp_path / "test_config"


@pytest.fixture
def config(temp_config_dir):
    """Provide a ConfigManager instance with temporary storage."""
    return ConfigManager(config_dir=temp_config_dir)


class TestConfigInit:
    """Test configuration initialization."""

    def test_creates_default_config_if_not_exists(self, config, temp_config_dir):
        """Should create default config.json if it doesn't exist."""
        assert (temp_config_dir / "config.json").exists()
        loaded = json.loads((temp_config_dir / "config.json").read_text(encoding="utf-8"))
        assert loaded["version"] == "1.0"
        assert "editor" in loaded
        assert "portamento" in loaded

    def test_creates_config_directory(self, temp_config_dir):
        """Should create config directory if it doesn't exist."""
        assert not temp_config_dir.exists()
        ConfigManager(config_dir=temp_config_dir)
        assert temp_config_dir.exists()


class TestConfigGet:
    """Test getting config values."""

    def test_get_top_level_key(self, config):
        """Should get top-level config section."""
        editor = config.get("editor")
        assert isinstance(editor, dict)
        assert "desync_policy" in editor

    def test_get_nested_key(self, config):
        """Should get nested config value using dot notation."""
        assert config.get("editor.default_duration_ms") == 480
        assert config.get("portamento.start_offset_ms") == -25.0

    def test_zero_value_is_not_treated_as_missing(self, config):
        """A stored 0 must come back as 0, not the fallback."""
        assert config.get("envelope.preutterance_ms", 99) == 0.0

    def test_get_nonexistent_key_returns_default(self, config):
        """Should return default value for nonexistent keys."""
        assert config.get("nonexistent.key", "default") == "default"

    def test_get_through_scalar_returns_default(self, config):
        """Should return default when a path descends into a non-dict."""
        assert config.get("editor.default_lyric.deeper", 1) == 1


class TestConfigSet:
    """Test setting config values."""

    def test_set_nested_key(self, config, temp_config_dir):
        """Should set nested config value and persist to disk."""
        config.set("editor.default_lyric", "la")
        assert config.get("editor.default_lyric") == "la"

        reloaded = ConfigManager(config_dir=temp_config_dir)
        assert reloaded.get("editor.default_lyric") == "la"

    def test_set_creates_missing_intermediate_keys(self, config):
        """Should create missing intermediate keys when setting deep path."""
        config.set("new.deep.nested.key", 42)
        assert config.get("new.deep.nested.key") == 42


class TestConfigMerge:
    """Test merging loaded config with defaults."""

    def test_merges_new_defaults_with_old_config(self, temp_config_dir):
        """Should add new default keys missing from an older file."""
        old_config = {"version": "1.0", "editor": {"desync_policy": "resync"}}
        config_file = temp_config_dir / "config.json"
        config_file.parent.mkdir(parents=True, exist_ok=True)
        config_file.write_text(json.dumps(old_config, indent=2), encoding="utf-8")

        config = ConfigManager(config_dir=temp_config_dir)

        assert config.get("editor.desync_policy") == "resync"
        assert config.get("editor.max_control_points") == 50
        assert config.get("view.min_measures") == 4

    def test_merge_leaves_defaults_untouched(self, temp_config_dir):
        """Loading overrides must not write through to DEFAULT_CONFIG."""
        config_file = temp_config_dir / "config.json"
        config_file.parent.mkdir(parents=True, exist_ok=True)
        config_file.write_text(json.dumps({"portamento": {"width_ms": 80.0}}), encoding="utf-8")

        config = ConfigManager(config_dir=temp_config_dir)

        assert config.get("portamento.width_ms") == 80.0
        assert config.get("portamento.start_offset_ms") == -25.0
        assert DEFAULT_CONFIG["portamento"]["width_ms"] == 50.0


class TestInvalidConfig:
    """Test handling of invalid config files."""

    def test_loads_defaults_on_corrupted_json(self, temp_config_dir, caplog):
        """Should load defaults (and warn) if config.json is corrupted."""
        config_file = temp_config_dir / "config.json"
        config_file.parent.mkdir(parents=True, exist_ok=True)
        config_file.write_text("{ invalid json }", encoding="utf-8")

        with caplog.at_level("WARNING"):
            config = ConfigManager(config_dir=temp_config_dir)

        assert config.get("editor.default_duration_ms") == 480
        assert "Failed to load config" in caplog.text


class TestEditorSettings:
    """Test the typed settings snapshot."""

    def test_defaults_match_default_config(self, config):
        """Settings built from a fresh config equal the dataclass defaults."""
        assert EditorSettings.from_config(config) == EditorSettings()

    def test_from_config_reads_overrides(self, config):
        config.set("editor.desync_policy", "resync")
        config.set("view.scale_x", 0.5)
        config.set("portamento.width_ms", 80)
        settings = EditorSettings.from_config(config)
        assert settings.desync_policy == "resync"
        assert settings.scale_x == 0.5
        assert settings.portamento_width_ms == 80.0

    def test_unknown_desync_policy_rejected(self):
        with pytest.raises(ValueError):
            EditorSettings(desync_policy="ignore")

    def test_is_frozen(self):
        settings = EditorSettings()
        with pytest.raises(AttributeError):
            settings.default_lyric = "o"
