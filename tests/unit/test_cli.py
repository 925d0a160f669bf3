"""
Unit tests for the command line interface.
"""

import json
import os

import pytest
from click.testing import CliRunner

from cli.main import cli
from registry.schema import ZERO_ADDRESS

from conftest import ADMIN, ALICE, BOB, MALLORY


@pytest.fixture
def runner(tmp_path, monkeypatch):
    """CLI runner isolated from user configuration."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith("NFTREG_"):
            monkeypatch.delenv(key)
    return CliRunner()


@pytest.fixture
def data_dir(tmp_path):
    return str(tmp_path / "data")


@pytest.fixture
def invoke(runner, data_dir):
    """Invoke the CLI against the temporary data directory with JSON output."""
    def _invoke(*args):
        return runner.invoke(cli, ['-d', data_dir, '-o', 'json', *args])
    return _invoke


@pytest.fixture
def initialized(invoke):
    """Create a five-token collection."""
    result = invoke(
        'init', '--name', 'CLI Test', '--symbol', 'CLI', '--max-supply', '5',
        '--admin', ADMIN, '--base-uri', 'ipfs://base/'
    )
    assert result.exit_code == 0, result.output
    return invoke


class TestInit:
    """Test collection creation."""

    def test_init_outputs_summary(self, invoke):
        result = invoke(
            'init', '--name', 'CLI Test', '--symbol', 'cli', '--max-supply', '5', '--admin', ADMIN
        )

        assert result.exit_code == 0, result.output
        info = json.loads(result.output)
        assert info['symbol'] == 'CLI'
        assert info['max_supply'] == 5
        assert info['max_token_id'] == 5
        assert len(info['checksum']) == 64

    def test_init_refuses_overwrite(self, initialized):
        result = initialized(
            'init', '--name', 'Again', '--symbol', 'AGN', '--max-supply', '1', '--admin', ADMIN
        )

        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_init_force(self, initialized):
        result = initialized(
            'init', '--name', 'Again', '--symbol', 'AGN', '--max-supply', '1',
            '--admin', ADMIN, '--force'
        )

        assert result.exit_code == 0
        assert json.loads(result.output)['symbol'] == 'AGN'

    def test_init_invalid_parameters(self, invoke):
        result = invoke(
            'init', '--name', 'Bad', '--symbol', 'BAD', '--max-supply', '0', '--admin', ADMIN
        )

        assert result.exit_code == 1
        assert "invalid collection parameters" in result.output

    def test_commands_require_collection(self, invoke):
        result = invoke('info')

        assert result.exit_code == 1
        assert "No collection stored" in result.output


class TestTokenCommands:
    """Test mint, transfer, approve and burn."""

    def test_mint_and_query(self, initialized):
        result = initialized('mint', '--caller', ADMIN, '--to', ALICE, '--token-id', '1')

        assert result.exit_code == 0, result.output
        minted = json.loads(result.output)
        assert minted['owner'] == ALICE
        assert minted['token_uri'] == 'ipfs://base/1.json'

        owner = json.loads(initialized('owner-of', '1').output)
        assert owner == {'token_id': 1, 'owner': ALICE}

        balance = json.loads(initialized('balance-of', ALICE).output)
        assert balance['balance'] == 1
        assert balance['tokens'] == [1]

    def test_mint_with_uri(self, initialized):
        initialized('mint', '--caller', ADMIN, '--to', ALICE, '--token-id', '2', '--uri', 'ar://two')

        result = initialized('token-uri', '2')
        assert json.loads(result.output)['token_uri'] == 'ar://two'

    def test_mint_unauthorized(self, initialized):
        result = initialized('mint', '--caller', MALLORY, '--to', MALLORY, '--token-id', '1')

        assert result.exit_code == 1
        assert "Ownable: caller is not the owner" in result.output

    def test_transfer_and_approve(self, initialized):
        initialized('mint', '--caller', ADMIN, '--to', ALICE, '--token-id', '1')

        result = initialized('approve', '--caller', ALICE, '--delegate', BOB, '--token-id', '1')
        assert json.loads(result.output)['approved'] == BOB

        result = initialized('transfer', '--caller', BOB, '--from', ALICE, '--to', BOB, '--token-id', '1')
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)['owner'] == BOB

        result = initialized('transfer', '--caller', ALICE, '--from', BOB, '--to', ALICE, '--token-id', '1')
        assert result.exit_code == 1
        assert "caller is not token owner or approved" in result.output

    def test_approve_all_and_revoke(self, initialized):
        result = initialized('approve-all', '--caller', ALICE, '--operator', BOB)
        assert json.loads(result.output)['approved'] is True

        result = initialized('approve-all', '--caller', ALICE, '--operator', BOB, '--revoke')
        assert json.loads(result.output)['approved'] is False

    def test_burn(self, initialized):
        initialized('mint', '--caller', ADMIN, '--to', ALICE, '--token-id', '3')

        result = initialized('burn', '--caller', ALICE, '--token-id', '3')
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)['total_supply'] == 0

        result = initialized('owner-of', '3')
        assert result.exit_code == 1
        assert "ERC721: invalid token ID" in result.output


class TestAdminCommands:
    """Test pause, base URI and administrator hand-over."""

    def test_pause_blocks_mint(self, initialized):
        result = initialized('pause', '--caller', ADMIN)
        assert json.loads(result.output) == {'mint_paused': True}

        result = initialized('mint', '--caller', ADMIN, '--to', ALICE, '--token-id', '1')
        assert result.exit_code == 1
        assert "Minting is currently paused" in result.output

        initialized('unpause', '--caller', ADMIN)
        result = initialized('mint', '--caller', ADMIN, '--to', ALICE, '--token-id', '1')
        assert result.exit_code == 0

    def test_set_base_uri(self, initialized):
        initialized('mint', '--caller', ADMIN, '--to', ALICE, '--token-id', '4')
        initialized('set-base-uri', '--caller', ADMIN, 'https://meta/')

        result = initialized('token-uri', '4')
        assert json.loads(result.output)['token_uri'] == 'https://meta/4.json'

    def test_transfer_ownership(self, initialized):
        result = initialized('transfer-ownership', '--caller', ADMIN, BOB)
        assert json.loads(result.output) == {'administrator': BOB}

        result = initialized('transfer-ownership', '--caller', BOB, ZERO_ADDRESS)
        assert result.exit_code == 1


class TestQueryCommands:
    """Test info and events output."""

    def test_info(self, initialized):
        initialized('mint', '--caller', ADMIN, '--to', ALICE, '--token-id', '1')

        info = json.loads(initialized('info').output)

        assert info['name'] == 'CLI Test'
        assert info['total_supply'] == 1
        assert info['remaining_supply'] == 4

    def test_events_filtering(self, initialized):
        initialized('mint', '--caller', ADMIN, '--to', ALICE, '--token-id', '1')
        initialized('mint', '--caller', ADMIN, '--to', ALICE, '--token-id', '2')
        initialized('pause', '--caller', ADMIN)

        all_events = json.loads(initialized('events').output)
        assert [e['event'] for e in all_events] == ['Transfer', 'Transfer', 'MintPaused']

        paused = json.loads(initialized('events', '--type', 'MintPaused').output)
        assert paused[0]['paused'] is True

        token_two = json.loads(initialized('events', '--token-id', '2').output)
        assert len(token_two) == 1

    def test_table_output(self, runner, data_dir, initialized):
        result = runner.invoke(cli, ['-d', data_dir, 'info'])

        assert result.exit_code == 0
        assert 'CLI Test' in result.output
        assert 'max_supply' in result.output

    def test_events_table_output(self, runner, data_dir, initialized):
        result = runner.invoke(cli, ['-d', data_dir, 'events'])
        assert "No data available" in result.output

        initialized('mint', '--caller', ADMIN, '--to', ALICE, '--token-id', '1')
        initialized('pause', '--caller', ADMIN)
        result = runner.invoke(cli, ['-d', data_dir, 'events'])

        assert result.exit_code == 0
        assert 'Transfer' in result.output
        assert 'MintPaused' in result.output
        assert 'paused' in result.output

    def test_yaml_output(self, runner, data_dir, initialized):
        result = runner.invoke(cli, ['-d', data_dir, '-o', 'yaml', 'info'])

        assert result.exit_code == 0
        assert 'symbol: CLI' in result.output


class TestConfigCommands:
    """Test configuration commands."""

    def test_config_show_key(self, runner):
        result = runner.invoke(cli, ['-o', 'json', 'config', 'show', '--key', 'storage.backup_count'])

        assert result.exit_code == 0
        assert json.loads(result.output) == {'storage.backup_count': 5}

    def test_config_show_unknown_key(self, runner):
        result = runner.invoke(cli, ['config', 'show', '--key', 'nope'])

        assert result.exit_code != 0
        assert "Unknown configuration key" in result.output

    def test_config_validate(self, runner):
        result = runner.invoke(cli, ['config', 'validate'])

        assert result.exit_code == 0
        assert "Configuration is valid" in result.output

    def test_config_validate_reports_errors(self, runner, monkeypatch):
        monkeypatch.setenv('NFTREG_LOGGING__LEVEL', 'LOUD')

        result = runner.invoke(cli, ['config', 'validate'])

        assert result.exit_code == 1
        assert "Invalid log level" in result.output

    def test_unknown_profile(self, runner):
        result = runner.invoke(cli, ['-p', 'staging', 'config', 'show'])

        assert result.exit_code != 0
        assert "Unknown configuration profile" in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ['--version'])

        assert result.exit_code == 0
        assert "1.0.0" in result.output
