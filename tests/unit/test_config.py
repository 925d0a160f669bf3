"""
Unit tests for CLI configuration management.
"""

import json
import os

import pytest
import yaml

from cli.config import DEFAULT_CONFIG, ConfigurationManager, load_config


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep user config files and NFTREG_ variables out of the tests."""
    home = tmp_path / "home"
    work = tmp_path / "work"
    home.mkdir()
    work.mkdir()

    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(work)
    for key in list(os.environ):
        if key.startswith("NFTREG_"):
            monkeypatch.delenv(key)

    return work


class TestConfigurationLoading:
    """Test hierarchical configuration loading."""

    def test_defaults(self):
        """Test defaults are loaded with paths expanded."""
        manager = ConfigurationManager()

        assert manager.get('cli.output_format') == 'table'
        assert manager.get('storage.backup_count') == 5
        assert manager.get('storage.data_dir') == os.path.expanduser('~/.nftreg/data')
        assert manager.get_sources() == ['defaults']

    def test_defaults_not_mutated(self):
        """Test loading never changes the module defaults."""
        manager = ConfigurationManager()
        manager.set('storage.backup_count', 99)

        assert DEFAULT_CONFIG['storage']['backup_count'] == 5
        assert DEFAULT_CONFIG['storage']['data_dir'] == '~/.nftreg/data'

    def test_profile(self):
        """Test profile overrides."""
        manager = ConfigurationManager(profile='development')

        assert manager.get('logging.level') == 'DEBUG'
        assert manager.get('storage.backup_count') == 2
        assert manager.get('cli.output_format') == 'table'
        assert 'profile:development' in manager.get_sources()

    def test_unknown_profile(self):
        """Test an unknown profile is an error."""
        with pytest.raises(ValueError, match="Unknown configuration profile"):
            ConfigurationManager(profile='staging').load()

    def test_yaml_file(self, tmp_path):
        """Test explicit YAML file."""
        config_file = tmp_path / "custom.yml"
        config_file.write_text(yaml.safe_dump({'cli': {'output_format': 'json'}}))

        manager = ConfigurationManager(config_file=str(config_file))

        assert manager.get('cli.output_format') == 'json'
        assert manager.get('cli.verbose') == 0

    def test_missing_explicit_file(self, tmp_path):
        """Test a named file that does not exist."""
        with pytest.raises(FileNotFoundError):
            ConfigurationManager(config_file=str(tmp_path / "absent.yml")).load()

    def test_non_mapping_file(self, tmp_path):
        """Test a file whose top level is not a mapping."""
        config_file = tmp_path / "list.json"
        config_file.write_text(json.dumps([1, 2, 3]))

        with pytest.raises(ValueError, match="must contain a mapping"):
            ConfigurationManager(config_file=str(config_file)).load()

    def test_project_file_discovered(self, isolated_environment):
        """Test the working-directory config file is found."""
        (isolated_environment / ".nftreg.json").write_text(
            json.dumps({'storage': {'state_file': 'project.json'}})
        )

        manager = ConfigurationManager()

        assert manager.get('storage.state_file') == 'project.json'
        assert manager.get_sources()[-1].startswith('file:')

    def test_environment_overrides(self, tmp_path, monkeypatch):
        """Test NFTREG_ variables override file settings."""
        config_file = tmp_path / "custom.yml"
        config_file.write_text(yaml.safe_dump({'storage': {'backup_count': 3}}))
        monkeypatch.setenv('NFTREG_STORAGE__BACKUP_COUNT', '8')
        monkeypatch.setenv('NFTREG_CLI__OUTPUT_FORMAT', 'yaml')
        monkeypatch.setenv('NFTREG_LOGGING__LEVEL', 'INFO')

        manager = ConfigurationManager(config_file=str(config_file))

        assert manager.get('storage.backup_count') == 8
        assert manager.get('cli.output_format') == 'yaml'
        assert manager.get('logging.level') == 'INFO'
        assert manager.get_sources()[-1] == 'environment'

    @pytest.mark.parametrize("raw,expected", [
        ('42', 42),
        ('1.5', 1.5),
        ('true', True),
        ('off', False),
        ('[1, 2]', [1, 2]),
        ('plain text', 'plain text'),
    ])
    def test_parse_env_value(self, raw, expected):
        """Test environment value coercion."""
        assert ConfigurationManager()._parse_env_value(raw) == expected


class TestConfigurationAccess:
    """Test get, set, save and validate."""

    def test_get_missing_key(self):
        manager = ConfigurationManager()

        assert manager.get('storage.nothing') is None
        assert manager.get('nothing.at.all', 'fallback') == 'fallback'

    def test_set_creates_nested_keys(self):
        manager = ConfigurationManager()
        manager.set('extra.section.value', 3)

        assert manager.get('extra.section.value') == 3

    def test_save_and_reload(self, tmp_path):
        manager = ConfigurationManager()
        manager.set('cli.output_format', 'json')

        path = manager.save(str(tmp_path / "saved.yml"))
        reloaded = ConfigurationManager(config_file=str(path))

        assert reloaded.get('cli.output_format') == 'json'

    def test_save_json(self, tmp_path):
        path = ConfigurationManager().save(str(tmp_path / "saved.json"), format='json')

        assert json.loads(path.read_text())['cli']['output_format'] == 'table'

    def test_reset(self):
        manager = ConfigurationManager()
        manager.set('cli.output_format', 'json')
        manager.reset()

        assert manager.get('cli.output_format') == 'table'

    def test_validate_defaults(self):
        assert ConfigurationManager().validate() == []

    def test_validate_reports_errors(self):
        manager = ConfigurationManager()
        manager.set('cli.output_format', 'xml')
        manager.set('storage.backup_count', -1)
        manager.set('logging.level', 'LOUD')
        manager.set('collection.min_token_id', 'one')

        errors = manager.validate()

        assert len(errors) == 4
        assert "Invalid output format: xml" in errors

    def test_load_config_helper(self):
        assert load_config(profile='production')['storage']['backup_count'] == 10
