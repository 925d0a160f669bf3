#!/usr/bin/env python3
"""
NFT Collection Registry - Command Line Interface

A CLI for creating a bounded NFT collection, minting, transferring,
approving and burning tokens, and querying ownership and metadata.
"""

import json
import logging
import sys
from functools import wraps
from pathlib import Path
from typing import Any, Dict, Optional

import click
import yaml
from pydantic import ValidationError
from tabulate import tabulate

from cli import __version__
from cli.config import ConfigurationManager, VALID_OUTPUT_FORMATS
from registry import NFTCollection, RegistryError
from registry.schema import EventType
from registry.storage import CollectionStorage, StorageError


class CLIContext:
    """Global CLI context for sharing state across commands."""

    def __init__(self):
        self.config_file: Optional[str] = None
        self.profile: Optional[str] = None
        self.output_format: Optional[str] = None
        self.verbose: int = 0
        self.data_dir: Optional[str] = None
        self.config_manager: Optional[ConfigurationManager] = None
        self.logger: logging.Logger = logging.getLogger('nftreg-cli')

    def load_config(self) -> None:
        self.config_manager = ConfigurationManager(self.config_file, self.profile)
        self.config_manager.load()

        if self.output_format is None:
            self.output_format = self.config_manager.get('cli.output_format', 'table')
        self.verbose = max(self.verbose, self.config_manager.get('cli.verbose', 0))

    def setup_logging(self) -> None:
        """Configure logging based on verbosity level."""
        log_levels = {
            0: logging.WARNING,
            1: logging.INFO,
            2: logging.DEBUG
        }
        level = log_levels.get(min(self.verbose, 2), logging.DEBUG)

        if self.config_manager is not None and self.verbose == 0:
            configured = str(self.config_manager.get('logging.level', 'WARNING')).upper()
            level = logging.getLevelName(configured)
            if not isinstance(level, int):
                level = logging.WARNING

        log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        if self.config_manager is not None:
            log_format = self.config_manager.get('logging.format', log_format)

        logging.basicConfig(level=level, format=log_format, stream=sys.stderr, force=True)

    def get_storage(self) -> CollectionStorage:
        data_dir = self.data_dir or self.config_manager.get('storage.data_dir')
        return CollectionStorage(
            storage_dir=Path(data_dir),
            state_file=self.config_manager.get('storage.state_file', 'collection.json'),
            backup_count=self.config_manager.get('storage.backup_count', 5)
        )

    def load_collection(self) -> NFTCollection:
        return self.get_storage().load_collection()

    def save_collection(self, collection: NFTCollection) -> str:
        return self.get_storage().save_collection(collection)

    def output(self, data: Any) -> None:
        """Output data in the selected format."""
        if self.output_format == "json":
            click.echo(json.dumps(data, indent=2, default=str))
        elif self.output_format == "yaml":
            click.echo(yaml.safe_dump(data, default_flow_style=False, sort_keys=False).rstrip())
        else:
            self._output_table(data)

    def _output_table(self, data: Any) -> None:
        if isinstance(data, dict):
            click.echo(tabulate([[key, value] for key, value in data.items()], tablefmt='plain'))
        elif isinstance(data, list) and not data:
            click.echo("No data available")
        elif isinstance(data, list) and isinstance(data[0], dict):
            # Events carry different argument keys; collect them all in first-seen order
            headers = []
            for item in data:
                headers.extend(h for h in item if h not in headers)
            rows = [[item.get(h, '') for h in headers] for item in data]
            click.echo(tabulate(rows, headers=headers, tablefmt='grid'))
        elif isinstance(data, list):
            for item in data:
                click.echo(item)
        else:
            click.echo(str(data))


pass_context = click.make_pass_decorator(CLIContext, ensure=True)


def handle_cli_error(func):
    """Report registry and storage failures as a one-line error with exit code 1."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (RegistryError, StorageError) as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
        except ValidationError as e:
            click.echo(f"Error: invalid collection parameters\n{e}", err=True)
            sys.exit(1)

    return wrapper


@click.group(context_settings={'help_option_names': ['-h', '--help']})
@click.option('--config-file', '-c', help='Path to configuration file')
@click.option('--profile', '-p', help='Configuration profile (production, development)')
@click.option('--output-format', '-o', type=click.Choice(VALID_OUTPUT_FORMATS),
              default=None, help='Output format')
@click.option('--verbose', '-v', count=True,
              help='Increase verbosity (-v for INFO, -vv for DEBUG)')
@click.option('--data-dir', '-d', help='Directory holding the collection state')
@click.version_option(version=__version__, prog_name='nftreg')
@pass_context
def cli(ctx: CLIContext, config_file: Optional[str], profile: Optional[str],
        output_format: Optional[str], verbose: int, data_dir: Optional[str]):
    """
    NFT Collection Registry

    Manage a bounded NFT collection with a single administrator.

    Examples:
        nftreg init --name "Test NFT" --symbol TNFT --max-supply 100 --admin 0xadmin
        nftreg mint --caller 0xadmin --to 0xalice --token-id 1
        nftreg transfer --caller 0xalice --from 0xalice --to 0xbob --token-id 1
        nftreg owner-of 1
    """
    ctx.config_file = config_file
    ctx.profile = profile
    ctx.output_format = output_format
    ctx.verbose = verbose
    ctx.data_dir = data_dir

    try:
        ctx.load_config()
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise click.ClickException(f"Failed to load configuration: {e}")

    ctx.setup_logging()
    ctx.logger.debug(f"CLI initialized with config sources {ctx.config_manager.get_sources()}")


# ==================== Collection Setup ====================

@cli.command()
@click.option('--name', required=True, help='Collection name')
@click.option('--symbol', required=True, help='Collection symbol')
@click.option('--max-supply', required=True, type=int, help='Maximum number of live tokens')
@click.option('--admin', 'administrator', required=True, help='Administrator identity')
@click.option('--base-uri', default=None, help='Base URI for token metadata')
@click.option('--min-token-id', default=None, type=int, help='Lowest valid token ID')
@click.option('--max-token-id', default=None, type=int, help='Highest valid token ID')
@click.option('--uri-suffix', default=None, help='Suffix appended to derived token URIs')
@click.option('--force', is_flag=True, help='Overwrite an existing collection')
@pass_context
@handle_cli_error
def init(ctx: CLIContext, name: str, symbol: str, max_supply: int, administrator: str,
         base_uri: Optional[str], min_token_id: Optional[int], max_token_id: Optional[int],
         uri_suffix: Optional[str], force: bool):
    """Create a new collection."""
    storage = ctx.get_storage()
    if storage.exists() and not force:
        raise StorageError("A collection already exists here (use --force to overwrite)")

    defaults = ctx.config_manager.get('collection', {})
    collection = NFTCollection.create(
        name=name,
        symbol=symbol,
        max_supply=max_supply,
        administrator=administrator,
        base_uri=defaults.get('base_uri', '') if base_uri is None else base_uri,
        min_token_id=defaults.get('min_token_id', 1) if min_token_id is None else min_token_id,
        max_token_id=max_token_id,
        uri_suffix=defaults.get('uri_suffix', '.json') if uri_suffix is None else uri_suffix
    )
    checksum = storage.save_collection(collection)

    info = collection.collection_info()
    info['checksum'] = checksum
    ctx.output(info)


# ==================== Token Operations ====================

@cli.command()
@click.option('--caller', required=True, help='Identity performing the mint (administrator)')
@click.option('--to', 'to_addr', required=True, help='Recipient identity')
@click.option('--token-id', required=True, type=int, help='Token ID to mint')
@click.option('--uri', default=None, help='Per-token metadata URI')
@pass_context
@handle_cli_error
def mint(ctx: CLIContext, caller: str, to_addr: str, token_id: int, uri: Optional[str]):
    """Mint a token to a recipient."""
    collection = ctx.load_collection()
    if uri:
        collection.safe_mint_with_uri(caller, to_addr, token_id, uri)
    else:
        collection.safe_mint(caller, to_addr, token_id)
    ctx.save_collection(collection)

    ctx.output({
        'token_id': token_id,
        'owner': collection.owner_of(token_id),
        'token_uri': collection.token_uri(token_id),
        'total_supply': collection.total_supply
    })


@cli.command()
@click.option('--caller', required=True, help='Owner, approved delegate or operator')
@click.option('--from', 'from_addr', required=True, help='Current owner')
@click.option('--to', 'to_addr', required=True, help='New owner')
@click.option('--token-id', required=True, type=int, help='Token ID')
@pass_context
@handle_cli_error
def transfer(ctx: CLIContext, caller: str, from_addr: str, to_addr: str, token_id: int):
    """Transfer a token."""
    collection = ctx.load_collection()
    collection.transfer_from(caller, from_addr, to_addr, token_id)
    ctx.save_collection(collection)

    ctx.output({'token_id': token_id, 'owner': collection.owner_of(token_id)})


@cli.command()
@click.option('--caller', required=True, help='Owner or operator')
@click.option('--delegate', required=True, help='Identity to approve (zero address clears)')
@click.option('--token-id', required=True, type=int, help='Token ID')
@pass_context
@handle_cli_error
def approve(ctx: CLIContext, caller: str, delegate: str, token_id: int):
    """Approve a delegate for one token."""
    collection = ctx.load_collection()
    collection.approve(caller, delegate, token_id)
    ctx.save_collection(collection)

    ctx.output({'token_id': token_id, 'approved': collection.get_approved(token_id)})


@cli.command('approve-all')
@click.option('--caller', required=True, help='Token owner')
@click.option('--operator', required=True, help='Operator identity')
@click.option('--revoke', is_flag=True, help='Revoke instead of grant')
@pass_context
@handle_cli_error
def approve_all(ctx: CLIContext, caller: str, operator: str, revoke: bool):
    """Grant or revoke an operator for all of the caller's tokens."""
    collection = ctx.load_collection()
    collection.set_approval_for_all(caller, operator, not revoke)
    ctx.save_collection(collection)

    ctx.output({
        'owner': caller,
        'operator': operator,
        'approved': collection.is_approved_for_all(caller, operator)
    })


@cli.command()
@click.option('--caller', required=True, help='Owner, approved delegate or operator')
@click.option('--token-id', required=True, type=int, help='Token ID')
@pass_context
@handle_cli_error
def burn(ctx: CLIContext, caller: str, token_id: int):
    """Burn a token."""
    collection = ctx.load_collection()
    collection.burn(caller, token_id)
    ctx.save_collection(collection)

    ctx.output({'token_id': token_id, 'burned': True, 'total_supply': collection.total_supply})


# ==================== Admin Operations ====================

@cli.command()
@click.option('--caller', required=True, help='Administrator identity')
@pass_context
@handle_cli_error
def pause(ctx: CLIContext, caller: str):
    """Pause minting."""
    _set_paused(ctx, caller, True)


@cli.command()
@click.option('--caller', required=True, help='Administrator identity')
@pass_context
@handle_cli_error
def unpause(ctx: CLIContext, caller: str):
    """Resume minting."""
    _set_paused(ctx, caller, False)


def _set_paused(ctx: CLIContext, caller: str, paused: bool) -> None:
    collection = ctx.load_collection()
    collection.pause_minting(caller, paused)
    ctx.save_collection(collection)
    ctx.output({'mint_paused': collection.mint_paused})


@cli.command('set-base-uri')
@click.option('--caller', required=True, help='Administrator identity')
@click.argument('base_uri')
@pass_context
@handle_cli_error
def set_base_uri(ctx: CLIContext, caller: str, base_uri: str):
    """Set the collection base URI."""
    collection = ctx.load_collection()
    collection.set_base_uri(caller, base_uri)
    ctx.save_collection(collection)
    ctx.output({'base_uri': collection.base_uri})


@cli.command('transfer-ownership')
@click.option('--caller', required=True, help='Current administrator identity')
@click.argument('new_administrator')
@pass_context
@handle_cli_error
def transfer_ownership(ctx: CLIContext, caller: str, new_administrator: str):
    """Hand the administrator role to another identity."""
    collection = ctx.load_collection()
    collection.transfer_ownership(caller, new_administrator)
    ctx.save_collection(collection)
    ctx.output({'administrator': collection.administrator})


# ==================== Queries ====================

@cli.command('token-uri')
@click.argument('token_id', type=int)
@pass_context
@handle_cli_error
def token_uri(ctx: CLIContext, token_id: int):
    """Show the metadata URI of a token."""
    ctx.output({'token_id': token_id, 'token_uri': ctx.load_collection().token_uri(token_id)})


@cli.command('owner-of')
@click.argument('token_id', type=int)
@pass_context
@handle_cli_error
def owner_of(ctx: CLIContext, token_id: int):
    """Show the owner of a token."""
    ctx.output({'token_id': token_id, 'owner': ctx.load_collection().owner_of(token_id)})


@cli.command('balance-of')
@click.argument('owner')
@pass_context
@handle_cli_error
def balance_of(ctx: CLIContext, owner: str):
    """Show how many tokens an identity holds."""
    collection = ctx.load_collection()
    ctx.output({
        'owner': owner,
        'balance': collection.balance_of(owner),
        'tokens': collection.tokens_of_owner(owner)
    })


@cli.command()
@pass_context
@handle_cli_error
def info(ctx: CLIContext):
    """Show collection summary."""
    ctx.output(ctx.load_collection().collection_info())


@cli.command()
@click.option('--type', 'event_type', type=click.Choice([e.value for e in EventType]),
              default=None, help='Only show events of this type')
@click.option('--token-id', type=int, default=None, help='Only show events for this token')
@pass_context
@handle_cli_error
def events(ctx: CLIContext, event_type: Optional[str], token_id: Optional[int]):
    """Show the audit event trail."""
    collection = ctx.load_collection()
    selected = collection.get_events(
        event_type=EventType(event_type) if event_type else None,
        token_id=token_id
    )
    ctx.output([event.to_dict() for event in selected])


# ==================== Configuration ====================

@cli.group()
@pass_context
def config(ctx: CLIContext):
    """Configuration management commands."""
    ctx.logger.debug("Config command group invoked")


@config.command('show')
@click.option('--key', default=None, help='Dot-separated key to show')
@pass_context
def config_show(ctx: CLIContext, key: Optional[str]):
    """Show the effective configuration."""
    if key:
        value = ctx.config_manager.get(key)
        if value is None:
            raise click.ClickException(f"Unknown configuration key: {key}")
        ctx.output({key: value} if not isinstance(value, dict) else value)
    else:
        data: Dict[str, Any] = dict(ctx.config_manager.load())
        data['sources'] = ctx.config_manager.get_sources()
        click.echo(json.dumps(data, indent=2, default=str))


@config.command('validate')
@pass_context
def config_validate(ctx: CLIContext):
    """Validate the effective configuration."""
    errors = ctx.config_manager.validate()
    if errors:
        for error in errors:
            click.echo(f"Error: {error}", err=True)
        sys.exit(1)
    click.echo("Configuration is valid")


def main():
    """Console script entry point."""
    cli()


if __name__ == '__main__':
    main()
