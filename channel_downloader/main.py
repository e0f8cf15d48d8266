"""
Main CLI interface for Channel-Downloader

This module provides the command-line interface: channel synchronization,
inspection of the channel tree and configuration display. It is the
primary entry point for user interactions with the application.

The CLI is built using Click framework and provides:
- sync: synchronize the selected channels
- list: show the channel tree
- show: show one channel's effective configuration
- config show / config validate: inspect the application settings
"""

import sys
import click
import functools
from dataclasses import replace
from pathlib import Path

from . import __version__
from .channel.tree import Group, GlobalLocations, load_tree, resolve, select_leaves
from .config.settings import get_settings, reload_settings
from .exceptions import ConfigurationError
from .sync.hooks import HookRegistry
from .sync.synchronizer import create_synchronizer
from .utils.helpers import format_identifier
from .utils.logger import configure_from_settings, get_logger, get_current_log_file
from .utils.validation import validate_channel_key


# Initialize logging system from configuration settings
configure_from_settings()
logger = get_logger(__name__)


def print_banner():
    """
    Print application banner to console

    Displays a styled banner with application title and brief description.
    """
    banner = """
╔═══════════════════════════════════════════════════════════════╗
║                      Channel-Downloader                       ║
║                                                               ║
║     Keep local folders in sync with YouTube channels          ║
║                                                               ║
╚═══════════════════════════════════════════════════════════════╝
    """
    click.echo(click.style(banner, fg='green', bold=True))


def handle_error(func):
    """
    Decorator to handle common CLI errors gracefully

    Wraps CLI command functions to provide consistent error handling across
    all commands. Catches common exceptions and provides user-friendly error
    messages while ensuring proper logging and exit codes.

    Args:
        func: The CLI command function to wrap

    Returns:
        Wrapped function with error handling
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt:
            click.echo(click.style("\n\nOperation cancelled by user", fg='yellow'))
            sys.exit(130)  # Standard exit code for SIGINT
        except Exception as e:
            logger.error(f"Command failed: {e}")
            click.echo(click.style(f"Error: {e}", fg='red'), err=True)
            sys.exit(1)
    return wrapper


def _load_channels(ctx):
    """Load the channel tree and resolve it against the global locations"""
    settings = get_settings()
    channels_file = ctx.obj.get('channels') or settings.get_channels_file()
    tree = load_tree(channels_file)
    leaves = resolve(tree, GlobalLocations.from_settings(settings))
    return tree, leaves


# Main CLI group - root command that all subcommands attach to
@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version information')
@click.option('--verbose', '-v', is_flag=True, help='Show info messages and per-channel outcomes, log debug messages')
@click.option('--config', type=click.Path(), help='Path to config file')
@click.option('--channels', type=click.Path(), help='Path to channel document (overrides the config)')
@click.pass_context
def cli(ctx, version, verbose, config, channels):
    """
    Channel-Downloader - Keep local folders in sync with YouTube channels

    Channels and playlists are described once in a channel document; every
    run downloads what is new, follows renamed titles and keeps an .m3u
    playlist per channel.
    """
    ctx.ensure_object(dict)

    if version:
        click.echo(f"Channel-Downloader v{__version__}")
        return

    if config:
        reload_settings(config)
        click.echo(f"Loaded config: {config}")

    # Reconfigure logging for a new config file or verbose output
    if config or verbose:
        configure_from_settings(verbose=verbose)

    if channels:
        ctx.obj['channels'] = Path(channels)

    if verbose:
        ctx.obj['verbose'] = True
        logger.debug("Verbose mode enabled")

    if ctx.invoked_subcommand is None:
        print_banner()
        click.echo(ctx.get_help())


@cli.command()
@click.option('--channel', '-c', 'channels', multiple=True, help='Only this channel key (repeatable)')
@click.option('--group', '-g', 'groups', multiple=True, help='Only channels of this group (repeatable)')
@click.option('--start-at', help='First channel key of the range to process')
@click.option('--stop-at', help='Last channel key of the range to process')
@click.option('--retry-failures', is_flag=True, help='Retry items that failed permanently before')
@click.option('--dry-run', is_flag=True, help='Only report downloads, renames, deletions and playlist edits')
@click.pass_context
@handle_error
def sync(ctx, channels, groups, start_at, stop_at, retry_failures, dry_run):
    """
    Synchronize channels with their remote lists

    Selection options override the filter section of the configuration.
    With --dry-run nothing on disk is changed: every download, rename,
    deletion and playlist edit is only logged.
    """
    settings = get_settings()
    tree, leaves = _load_channels(ctx)

    filters = settings.filter
    selected = select_leaves(
        leaves,
        channel=list(channels) or filters.channel,
        group=list(groups) or filters.group,
        start_at=start_at or filters.start_at,
        stop_at=stop_at or filters.stop_at,
    )
    if not selected:
        click.echo(click.style("No active channels match the selection", fg='yellow'))
        return

    flags = settings.flags
    if retry_failures:
        flags = replace(flags, retry_previous_failures=True)
    if dry_run:
        flags = replace(flags, prevent_download=True, prevent_deletion=True,
                        prevent_renaming=True, prevent_playlist_edit=True)
        click.echo(click.style("Dry run: no changes will be made", fg='yellow'))

    synchronizer = create_synchronizer(settings, HookRegistry.from_config(tree.hooks), flags)
    result = synchronizer.run(selected, all_keys=[leaf.key for leaf in leaves])

    if ctx.obj.get('verbose'):
        for outcome in result.outcomes:
            click.echo(f"   {outcome.key}: {outcome.status.value} "
                       f"({outcome.remote_items} remote, {outcome.queued} queued, {outcome.renamed} renamed)"
                       f"{' - ' + outcome.message if outcome.message else ''}")

    click.echo()
    click.echo(click.style(result.summary(), fg='green' if result.success else 'yellow'))

    current_log = get_current_log_file()
    if current_log:
        click.echo(f"Log: {current_log}")

    if not result.success:
        sys.exit(1)


@cli.command(name='list')
@click.option('--all', 'show_all', is_flag=True, help='Include inactive groups and channels')
@click.pass_context
@handle_error
def list_channels(ctx, show_all):
    """
    Show the channel tree

    Groups are shown in bold with their channels indented below them.
    Channels that cannot be processed are flagged with the reason.
    """
    tree, leaves = _load_channels(ctx)
    resolved = {leaf.key: leaf for leaf in leaves}

    for node, depth, active in tree.walk():
        if not active and not show_all:
            continue
        indent = "   " * depth
        if isinstance(node, Group):
            click.echo(indent + click.style(node.key, fg='cyan' if active else 'white', bold=True, dim=not active))
            continue

        leaf = resolved[node.key]
        line = f"{indent}{leaf.key}"
        if leaf.name:
            line += f" - {leaf.name}"
        if leaf.error:
            click.echo(click.style(f"{line} ({leaf.error})", fg='yellow'))
        else:
            click.echo(click.style(line, dim=not active))

    processable = sum(1 for leaf in leaves if leaf.is_processable)
    click.echo(f"\n{processable} of {len(leaves)} channels ready to sync")


@cli.command()
@click.argument('key')
@click.pass_context
@handle_error
def show(ctx, key):
    """
    Show the effective configuration of one channel

    Displays every setting after inheritance from the enclosing groups, with
    the output folder and playlist file fully resolved.
    """
    is_valid, error = validate_channel_key(key)
    if not is_valid:
        raise ConfigurationError(error)

    _, leaves = _load_channels(ctx)
    key = format_identifier(key)
    leaf = next((leaf for leaf in leaves if leaf.key == key), None)
    if leaf is None:
        raise ConfigurationError(f"Unknown channel key: {key}")

    click.echo(click.style(f"{leaf.display_name}\n", bold=True))
    for name, value in leaf.effective_config().items():
        if value is not None:
            click.echo(f"   {name}: {value}")
    if leaf.ancestors:
        click.echo(f"   groups: {' > '.join(leaf.ancestors)}")
    if leaf.error:
        click.echo(click.style(f"\n   Cannot be processed: {leaf.error}", fg='yellow'))


# Configuration commands group
@cli.group()
def config():
    """
    Configuration management

    Command group for viewing and checking the application configuration.
    """
    pass


@config.command(name='show')
@handle_error
def config_show():
    """
    Show current configuration

    Displays the configuration settings grouped by section.
    """
    settings = get_settings()

    click.echo("Current Configuration:\n")
    if settings.loaded_from:
        click.echo(f"Loaded from: {settings.loaded_from}\n")

    click.echo("Locations:")
    for name, path in settings.get_global_locations().items():
        click.echo(f"   {name}: {path}")

    click.echo("\nData:")
    click.echo(f"   Data directory: {settings.get_data_directory()}")
    click.echo(f"   Channel document: {settings.get_channels_file()}")
    click.echo(f"   Identifier store: {settings.get_identifier_store_path()}")

    click.echo("\nFlags:")
    for name, value in vars(settings.flags).items():
        click.echo(f"   {name}: {value}")

    click.echo("\nDownload:")
    click.echo(f"   Timeout: {settings.download.timeout}s")
    click.echo(f"   Retries: {settings.download.retry_attempts}")
    click.echo(f"   Audio bitrate: {settings.download.audio_bitrate}kbps")

    if settings.sponsorblock:
        click.echo("\nSponsorBlock:")
        for name, value in settings.sponsorblock.items():
            click.echo(f"   {name}: {value}")


@config.command(name='validate')
@click.pass_context
@handle_error
def config_validate(ctx):
    """Check the configuration and the channel document for problems"""
    settings = get_settings()
    _, errors = settings.validate()

    try:
        tree, leaves = _load_channels(ctx)
        HookRegistry.from_config(tree.hooks)
        errors.extend(f"{leaf.key}: {leaf.error}" for leaf in leaves if leaf.active and leaf.error)
    except ConfigurationError as e:
        errors.append(str(e))

    if errors:
        click.echo(f"Found {len(errors)} issues:")
        for error in errors:
            click.echo(f"   • {error}")
        sys.exit(1)

    click.echo(click.style("Configuration is valid", fg='green'))


# Entry point for module execution
if __name__ == '__main__':
    cli()
