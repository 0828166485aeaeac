"""Test suite for config management functionality.

This test suite validates:
- Preferences module functionality
- Config path resolution (no module-level caching)
- Config parsing and normalization into ConfigModel
- CLI commands for config management
"""
import json
from argparse import Namespace

import pytest
import yaml

from cryptenv.secrets.domains import config_loader, preferences
from cryptenv.secrets.domains.errors import ConfigMalformed, ConfigUnreadable
from cryptenv.secrets.domains.models import ProjectBinding


@pytest.fixture
def temp_config_dir(temp_home):
    """Fixture to create temporary config directory."""
    config_dir = temp_home / ".config" / "cryptenv"
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


@pytest.fixture
def sample_config_content():
    """Sample valid config content."""
    return {
        "dirs": ["~/work"],
        "profile": {
            "aws": {"AWS_ACCESS_KEY_ID": "aws_key"},
        },
        "project": {
            "api": {"vars": {"DATABASE_URL": "api_db"}, "profiles": ["aws"]},
            "scripts": ["aws"],
        },
    }


@pytest.fixture
def temp_config_file(temp_config_dir, sample_config_content):
    """Fixture to create a config file at the default location."""
    config_file = temp_config_dir / "config.yml"
    with open(config_file, 'w') as f:
        yaml.dump(sample_config_content, f)
    return config_file


class TestPreferencesModule:
    """Test suite for preferences module."""

    def test_get_preference_returns_none_when_not_set(self, temp_home):
        assert preferences.get_preference("config_path") is None

    def test_set_and_clear_preference(self, temp_home):
        preferences.set_preference("config_path", "/path/to/config.yml")
        assert preferences.get_preference("config_path") == "/path/to/config.yml"

        preferences.clear_preference("config_path")
        assert preferences.get_preference("config_path") is None

    def test_preferences_persisted_to_json_file(self, temp_home, temp_config_dir):
        preferences.set_preference("config_path", "/path/to/config.yml")

        with open(temp_config_dir / "preferences.json", 'r') as f:
            data = json.load(f)

        assert data["config_path"] == "/path/to/config.yml"

    def test_get_all_preferences(self, temp_home):
        preferences.set_preference("config_path", "/path/to/config.yml")
        preferences.set_preference("another_key", "another_value")

        all_prefs = preferences.get_all_preferences()
        assert all_prefs == {"config_path": "/path/to/config.yml", "another_key": "another_value"}

    def test_clear_nonexistent_preference(self, temp_home):
        """Clearing a preference that doesn't exist should not raise."""
        preferences.clear_preference("nonexistent_key")

    def test_corrupt_preferences_file_is_ignored(self, temp_home, temp_config_dir):
        (temp_config_dir / "preferences.json").write_text("{not json")
        assert preferences.get_preference("config_path") is None


class TestConfigPath:
    """Test suite for config path resolution."""

    def test_default_location(self, temp_home):
        assert config_loader.get_config_path() == temp_home / ".config" / "cryptenv" / "config.yml"

    def test_explicit_path_wins(self, temp_home, tmp_path, monkeypatch):
        monkeypatch.setenv("CRYPTENV_CONFIG", str(tmp_path / "env.yml"))
        assert config_loader.get_config_path(tmp_path / "explicit.yml") == tmp_path / "explicit.yml"

    def test_env_var_beats_preference(self, temp_home, temp_config_file, tmp_path, monkeypatch):
        preferences.set_preference("config_path", str(temp_config_file))
        monkeypatch.setenv("CRYPTENV_CONFIG", str(tmp_path / "env.yml"))

        assert config_loader.get_config_path() == tmp_path / "env.yml"

    def test_preference_used_when_file_exists(self, temp_home, tmp_path):
        custom = tmp_path / "custom.yml"
        custom.write_text("dirs: []\n")
        preferences.set_preference("config_path", str(custom))

        assert config_loader.get_config_path() == custom

    def test_stale_preference_falls_back_to_default(self, temp_home, tmp_path):
        preferences.set_preference("config_path", str(tmp_path / "nonexistent.yml"))

        assert config_loader.get_config_path() == temp_home / ".config" / "cryptenv" / "config.yml"

    def test_legacy_toml_used_when_default_missing(self, temp_home):
        legacy = temp_home / ".config" / "cryptenv.toml"
        legacy.parent.mkdir(parents=True, exist_ok=True)
        legacy.write_text('dirs = ["/legacy"]\n\n[project.api]\nvars = { DB_URL = "db" }\n')

        assert config_loader.get_config_path() == legacy

        config = config_loader.load_config()
        assert config.roots == ["/legacy"]
        assert config.projects["api"].vars == {"DB_URL": "DB"}

    def test_default_yaml_beats_legacy_toml(self, temp_home, temp_config_file):
        (temp_home / ".config" / "cryptenv.toml").write_text('dirs = ["/legacy"]\n')

        assert config_loader.get_config_path() == temp_config_file

    def test_preference_change_reflected_immediately(self, temp_home, tmp_path):
        """Changing preferences takes effect without reimporting anything."""
        config1 = tmp_path / "config1.yml"
        config2 = tmp_path / "config2.yml"
        config1.write_text(yaml.dump({"dirs": ["/one"]}))
        config2.write_text(yaml.dump({"dirs": ["/two"]}))

        preferences.set_preference("config_path", str(config1))
        assert config_loader.load_config().roots == ["/one"]

        preferences.set_preference("config_path", str(config2))
        assert config_loader.load_config().roots == ["/two"]


class TestConfigLoader:
    """Test suite for parsing and validation."""

    def test_load_config_success(self, temp_home, temp_config_file):
        config = config_loader.load_config()

        assert config.roots == ["~/work"]
        assert config.profiles == {"aws": {"AWS_ACCESS_KEY_ID": "AWS_KEY"}}
        assert config.source == temp_config_file

    def test_both_project_shapes_normalize_to_binding(self, temp_home, temp_config_file):
        config = config_loader.load_config()

        assert config.projects["api"] == ProjectBinding(vars={"DATABASE_URL": "API_DB"}, profiles=["aws"])
        assert config.projects["scripts"] == ProjectBinding(vars={}, profiles=["aws"])

    def test_secret_names_are_uppercased(self, temp_home, temp_config_file):
        config = config_loader.load_config()
        assert config.projects["api"].vars["DATABASE_URL"] == "API_DB"

    def test_root_paths_expand_home(self, temp_home, temp_config_file):
        config = config_loader.load_config()
        assert config.root_paths() == [temp_home / "work"]

    def test_toml_config(self, temp_home, tmp_path):
        config_file = tmp_path / "cryptenv.toml"
        config_file.write_text(
            'dirs = ["/work"]\n'
            '\n'
            '[profile.aws]\n'
            'AWS_ACCESS_KEY_ID = "aws_key"\n'
            '\n'
            '[project]\n'
            'scripts = ["aws"]\n'
            '\n'
            '[project.api]\n'
            'profiles = ["aws"]\n'
            'vars = { DATABASE_URL = "api_db" }\n'
        )

        config = config_loader.load_config(config_file)

        assert config.roots == ["/work"]
        assert config.projects["api"].vars == {"DATABASE_URL": "API_DB"}
        assert config.projects["scripts"].profiles == ["aws"]

    def test_empty_config_file_is_empty_config(self, temp_home, temp_config_dir):
        (temp_config_dir / "config.yml").write_text("")

        config = config_loader.load_config()

        assert config.roots == []
        assert config.projects == {}

    def test_missing_config_raises_unreadable(self, temp_home):
        with pytest.raises(ConfigUnreadable) as exc_info:
            config_loader.load_config()

        assert "Configuration file not found" in str(exc_info.value)
        assert exc_info.value.hint

    def test_invalid_yaml_config(self, temp_home, temp_config_dir):
        (temp_config_dir / "config.yml").write_text("invalid: yaml: content: [")

        with pytest.raises(ConfigMalformed) as exc_info:
            config_loader.load_config()

        assert "YAML" in str(exc_info.value)

    def test_invalid_toml_config(self, temp_home, tmp_path):
        config_file = tmp_path / "cryptenv.toml"
        config_file.write_text("dirs = [")

        with pytest.raises(ConfigMalformed) as exc_info:
            config_loader.load_config(config_file)

        assert "TOML" in str(exc_info.value)

    @pytest.mark.parametrize("raw", [
        ["not", "a", "mapping"],
        {"dirs": "/work"},
        {"profile": {"aws": ["AWS_KEY"]}},
        {"project": {"api": "aws"}},
        {"project": {"api": {"vars": {}, "env": {}}}},
        {"project": {"api": {"vars": {"A": 1}}}},
        {"projects": {}},
    ])
    def test_malformed_shapes_rejected(self, raw):
        with pytest.raises(ConfigMalformed):
            config_loader.parse_config(raw)

    @pytest.mark.parametrize("raw", [
        {"project": {"api": {"vars": {"X; touch /tmp/pwned #": "db"}}}},
        {"project": {"api": {"vars": {"$(id)": "db"}}}},
        {"profile": {"aws": {"AWS-KEY": "aws"}}},
        {"profile": {"aws": {"1KEY": "aws"}}},
        {"profile": {"aws": {"KEY\n": "aws"}}},
    ])
    def test_invalid_variable_names_rejected(self, raw):
        with pytest.raises(ConfigMalformed) as exc_info:
            config_loader.parse_config(raw)

        assert "Invalid variable name" in str(exc_info.value)


class TestCLICommands:
    """Test suite for config CLI commands."""

    def test_config_set_path_validates_file_exists(self, temp_home, tmp_path):
        from cryptenv.cli.main import cmd_config_set_path

        args = Namespace(path=str(tmp_path / "nonexistent.yml"))

        with pytest.raises(SystemExit) as exc_info:
            cmd_config_set_path(args)

        assert exc_info.value.code == 1

    def test_config_set_path_stores_absolute_path(self, temp_home, temp_config_file):
        from cryptenv.cli.main import cmd_config_set_path

        cmd_config_set_path(Namespace(path=str(temp_config_file)))

        assert preferences.get_preference("config_path") == str(temp_config_file.resolve())

    def test_config_show_with_preference(self, temp_home, tmp_path, capsys):
        from cryptenv.cli.main import cmd_config_show

        custom = tmp_path / "custom.yml"
        custom.write_text("dirs: []\n")
        preferences.set_preference("config_path", str(custom))

        cmd_config_show(Namespace(config=None))

        captured = capsys.readouterr()
        assert str(custom) in captured.out
        assert "preference" in captured.out.lower()

    def test_config_show_without_preference(self, temp_home, temp_config_file, capsys):
        from cryptenv.cli.main import cmd_config_show

        cmd_config_show(Namespace(config=None))

        captured = capsys.readouterr()
        assert str(temp_config_file) in captured.out
        assert "default" in captured.out.lower()

    def test_config_clear_removes_preference(self, temp_home, temp_config_file, capsys):
        from cryptenv.cli.main import cmd_config_clear

        preferences.set_preference("config_path", str(temp_config_file))

        cmd_config_clear(Namespace())

        assert preferences.get_preference("config_path") is None
        assert "cleared" in capsys.readouterr().out.lower()
