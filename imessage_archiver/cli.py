"""Command-line interface for the iMessage archiver."""

import logging
import logging.handlers
import os
import shutil
import signal
import subprocess
import sys
import time
from xml.sax.saxutils import escape
import click
from typing import Optional

from .core.archiver import Archiver
from .core.cancellation import CancellationToken
from .core.exceptions import ArchiverError, ExportError, RunInterrupted, SyncError
from .config.config_manager import ConfigManager
from .utils.formatters import format_date_list, format_duration, truncate_string

EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

PLIST_NAME = "com.imessagearchiver.plist"
TEMPLATE_DIR = os.path.join(os.path.dirname(__file__), "templates")

LEVEL_ALIASES = {'warn': 'WARNING'}


def setup_logging(level: str, log_file: Optional[str] = None,
                  max_size_mb: int = 10, backup_count: int = 5):
    """Set up logging configuration."""
    level_name = LEVEL_ALIASES.get(level.lower(), level.upper())
    numeric_level = getattr(logging, level_name, None)
    if not isinstance(numeric_level, int):
        raise ValueError(f'Invalid log level: {level}')

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    # Clear existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.handlers.RotatingFileHandler(
                os.path.expanduser(log_file),
                maxBytes=max_size_mb * 1024 * 1024,
                backupCount=backup_count
            )
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
        except OSError as e:
            click.echo(f"Warning: Could not set up file logging: {e}", err=True)


def install_signal_handlers(token: CancellationToken):
    """Route SIGINT and SIGTERM into the run's cancellation token.

    The first signal cancels the token and raises RunInterrupted in the
    main thread, which unwinds the run through its cleanup. Signals that
    arrive while the token is shielded (cleanup running), or after the
    first one, only mark the token.

    Returns:
        Mapping of signal number to the previous handler.
    """
    def handler(signum, frame):
        name = signal.Signals(signum).name
        first = not token.cancelled
        token.cancel(f"received {name}")
        if first and not token.shielded:
            raise RunInterrupted(token.reason)

    previous = {}
    for sig in (signal.SIGINT, signal.SIGTERM):
        previous[sig] = signal.signal(sig, handler)
    return previous


def restore_signal_handlers(previous):
    for sig, handler in previous.items():
        signal.signal(sig, handler)


def _load_config(ctx) -> ConfigManager:
    """Load configuration and apply its logging settings."""
    config_manager = ConfigManager(ctx.obj.get('config_path'))
    config_manager.load_config()

    logging_config = config_manager.get_logging_config()
    setup_logging(
        ctx.obj.get('log_level') or logging_config['level'],
        ctx.obj.get('log_file') or logging_config.get('file'),
        max_size_mb=logging_config.get('max_size_mb', 10),
        backup_count=logging_config.get('backup_count', 5)
    )
    logging.getLogger(__name__).debug(f"Configuration loaded from: {config_manager.loaded_from}")
    return config_manager


@click.group()
@click.option('--config', '-c', 'config_path',
              help='Path to configuration file')
@click.option('--log-level',
              type=click.Choice(['DEBUG', 'INFO', 'WARN', 'WARNING', 'ERROR'], case_sensitive=False),
              help='Logging level (overrides logging_level in the config)')
@click.option('--log-file',
              help='Log file path')
@click.pass_context
def cli(ctx, config_path: Optional[str], log_level: Optional[str], log_file: Optional[str]):
    """iMessage Archiver - export missing days and sync them to a backup host."""
    ctx.ensure_object(dict)

    # Basic logging until the config supplies its own settings
    setup_logging(log_level or 'INFO', log_file)

    ctx.obj['config_path'] = config_path
    ctx.obj['log_level'] = log_level
    ctx.obj['log_file'] = log_file


@cli.command()
@click.pass_context
def run(ctx):
    """Export missing dates and sync them to the remote archive."""
    try:
        config_manager = _load_config(ctx)
    except (FileNotFoundError, ValueError) as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        sys.exit(EXIT_FAILURE)

    logger = logging.getLogger(__name__)
    logger.info("iMessage Archiver starting up")

    token = CancellationToken()
    archiver = Archiver.from_config(config_manager, token=token)
    started = time.monotonic()
    previous_handlers = install_signal_handlers(token)

    try:
        result = archiver.run()

    except RunInterrupted as e:
        click.echo(f"Interrupted: {e}", err=True)
        sys.exit(EXIT_INTERRUPTED)

    except ArchiverError as e:
        logger.error(f"Archiving process failed: {e}")
        click.echo(f"Archiving process failed: {e}", err=True)
        cause = getattr(e, 'cause', e)
        output = getattr(cause, 'output', '')
        if isinstance(cause, (ExportError, SyncError)) and output:
            click.echo(f"Tool output: {truncate_string(output.strip(), 500)}", err=True)
        sys.exit(EXIT_FAILURE)

    finally:
        # No-op unless cleanup inside the run was cut short
        archiver.cleanup()
        restore_signal_handlers(previous_handlers)

    click.echo(f"Dates checked missing: {format_date_list(result.missing_dates)}")
    if result.probe_failed:
        click.echo("  ⚠️  Remote listing failed - every date in the window was processed")
    click.echo(f"Archived: {format_date_list(result.retained_dates)}")
    click.echo(f"Empty (skipped): {format_date_list(result.discarded_dates)}")
    click.echo(f"Synced to remote: {'yes' if result.synced else 'no'}")
    click.echo(f"Completed in {format_duration(time.monotonic() - started)}")


@cli.command()
@click.pass_context
def plan(ctx):
    """Show which dates a run would export, without exporting."""
    try:
        config_manager = _load_config(ctx)
        archiver = Archiver.from_config(config_manager)
        missing = archiver.plan()
    except (FileNotFoundError, ValueError) as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        sys.exit(EXIT_FAILURE)

    if archiver.gap_analyzer.probe_failed:
        click.echo("⚠️  Remote listing failed - a run would process the whole window")

    if not missing:
        click.echo("No missing archives found within the specified range")
        return

    click.echo(f"{len(missing)} dates to archive:")
    for target_date in missing:
        click.echo(f"  {target_date.isoformat()}")


@cli.command()
@click.pass_context
def validate_config(ctx):
    """Validate configuration file."""
    try:
        config_manager = ConfigManager(ctx.obj.get('config_path'))
        config_manager.load_config()
    except (FileNotFoundError, ValueError) as e:
        click.echo(f"❌ Configuration validation failed: {e}", err=True)
        sys.exit(EXIT_FAILURE)

    click.echo(f"✅ Configuration loaded successfully from {config_manager.loaded_from}")

    remote = config_manager.get_remote_config()
    export = config_manager.get_export_config()

    click.echo(f"\n📊 Configuration Summary:")
    click.echo(f"   Remote: {remote['remote_user']}@{remote['remote_host']}:{remote['remote_archive_path']}")
    click.echo(f"   SSH key: {remote['ssh_private_key_path']}")
    click.echo(f"   Days to check: {export['days_to_check']}")
    click.echo(f"   Export format: {export['export_format']} (copy method: {export['copy_method']})")

    if shutil.which(export['exporter_binary']) is None:
        click.echo(f"\n⚠️  {export['exporter_binary']} not found on PATH")


@cli.command()
@click.option('--executable', help='Path to the imessage-archiver executable')
@click.option('--hour', type=click.IntRange(0, 23), default=2, help='Hour to run each day')
@click.option('--minute', type=click.IntRange(0, 59), default=0, help='Minute to run')
@click.option('--output', '-o', help='Where to write the plist')
@click.option('--load/--no-load', default=False, help='Load the agent with launchctl')
@click.pass_context
def install_agent(ctx, executable: Optional[str], hour: int, minute: int,
                  output: Optional[str], load: bool):
    """Install a launchd agent that runs the archiver daily."""
    executable = executable or shutil.which('imessage-archiver') or sys.argv[0]
    config_path = os.path.abspath(os.path.expanduser(
        ctx.obj.get('config_path') or ConfigManager.DEFAULT_CONFIG_LOCATIONS[0]
    ))
    if not os.path.exists(config_path):
        click.echo(f"⚠️  Config file not found at {config_path}; the agent will fail until it exists")

    plist = render_agent_plist(
        executable=os.path.abspath(executable),
        config_path=config_path,
        hour=hour,
        minute=minute,
        log_dir=os.path.expanduser("~/Library/Logs")
    )

    dest = os.path.expanduser(output or os.path.join("~/Library/LaunchAgents", PLIST_NAME))
    try:
        os.makedirs(os.path.dirname(os.path.abspath(dest)), exist_ok=True)
        with open(dest, 'w', encoding='utf-8') as f:
            f.write(plist)
        os.chmod(dest, 0o644)
    except OSError as e:
        click.echo(f"❌ Failed to write {dest}: {e}", err=True)
        sys.exit(EXIT_FAILURE)

    click.echo(f"✅ Launch agent written to {dest}")

    if load:
        # Unload first so changes are picked up; failure just means it was not loaded
        subprocess.run(['launchctl', 'unload', dest], capture_output=True, text=True)
        result = subprocess.run(['launchctl', 'load', dest], capture_output=True, text=True)
        if result.returncode != 0:
            click.echo(f"❌ Failed to load launch agent: {result.stderr.strip()}", err=True)
            sys.exit(EXIT_FAILURE)
        click.echo(f"✅ Scheduled daily at {hour:02d}:{minute:02d}")


def render_agent_plist(executable: str, config_path: str, hour: int, minute: int, log_dir: str) -> str:
    """Fill the launchd plist template."""
    with open(os.path.join(TEMPLATE_DIR, PLIST_NAME), 'r', encoding='utf-8') as f:
        template = f.read()

    return template.format(
        executable=escape(executable),
        config_path=escape(config_path),
        hour=hour,
        minute=minute,
        log_dir=escape(log_dir)
    )


def main():
    """Main CLI entry point."""
    cli()


if __name__ == '__main__':
    main()
