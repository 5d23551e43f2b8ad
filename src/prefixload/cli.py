"""Command-line interface for prefixload."""

import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from . import __version__
from .auth.cloud_auth import S3Auth
from .config.settings import CredentialsConfig, PrefixloadConfig
from .destinations.base import BucketAccess
from .destinations.s3_bucket import S3Destination
from .errors import PrefixloadError, SyncAborted
from .sync.backup_manager import BackupManager, RunSummary
from .utils.file_utils import FileHelper
from .utils.logging import setup_logging

console = Console()

config_option = click.option(
    '--config', '-c', 'config_path',
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help='Path to configuration file (default: platform config dir)'
)
credentials_option = click.option(
    '--credentials', 'credentials_path',
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help='Path to credentials file (default: platform config dir)'
)


def _config_path(config_path: Optional[Path]) -> Path:
    """Resolve the config path, writing the default config on first use."""
    path = config_path or PrefixloadConfig.default_path()
    if PrefixloadConfig.ensure_exists(path):
        console.print(f"📝 Default config written to {path}", style="yellow")
    return path


def _load_credentials(credentials_path: Optional[Path]) -> CredentialsConfig:
    path = credentials_path or CredentialsConfig.default_path()
    return CredentialsConfig.from_yaml(path).merged_with(CredentialsConfig.from_env())


def _fail(message: str):
    console.print(f"❌ Error: {message}", style="red bold")
    sys.exit(1)


@click.group()
@click.version_option(version=__version__)
def cli():
    """prefixload - S3 backup by file name prefix

    Uploads files from a local directory to an S3-compatible bucket. Upload
    rules map file name prefixes to directories in the bucket; files whose
    ETag already matches the stored object are skipped.
    """
    pass


@cli.command()
@config_option
@credentials_option
@click.option('--quiet', '-q', is_flag=True, help='Only log warnings and errors')
@click.option('--log-file', type=click.Path(dir_okay=False, path_type=Path),
              help='Also write a rotating debug log to this file')
@click.option('--workers', type=click.IntRange(min=1),
              help='Threads used to hash the parts of a large file (default: CPU count)')
def run(config_path: Optional[Path], credentials_path: Optional[Path], quiet: bool,
        log_file: Optional[Path], workers: Optional[int]):
    """Upload changed files to the bucket."""
    setup_logging(log_level="WARNING" if quiet else "INFO", log_file=log_file)

    try:
        path = _config_path(config_path)
        config = PrefixloadConfig.from_yaml(path)
        credentials = _load_credentials(credentials_path)

        manager = BackupManager.from_config(config, credentials, max_workers=workers)
        summary = manager.run()

    except SyncAborted as e:
        _fail(f"{e.__cause__ or e}\n   Files processed before failure: {e.files_processed}")
    except PrefixloadError as e:
        _fail(str(e))

    if not quiet:
        _display_summary(summary)


def _display_summary(summary: RunSummary):
    """Display run results in a table."""
    table = Table(title="Backup Results")
    table.add_column("Matched", justify="right", style="cyan")
    table.add_column("Uploaded", justify="right", style="green")
    table.add_column("Skipped", justify="right", style="yellow")
    table.add_column("Data Transferred", justify="right")
    table.add_column("Duration", justify="right")

    table.add_row(
        str(summary.matched),
        str(summary.uploaded),
        str(summary.skipped),
        FileHelper.format_file_size(summary.bytes_transferred),
        f"{summary.duration:.1f}s"
    )
    console.print(table)


@cli.command()
@config_option
@credentials_option
def check(config_path: Optional[Path], credentials_path: Optional[Path]):
    """Check that the configured bucket is reachable."""
    setup_logging(log_level="WARNING")

    try:
        config = PrefixloadConfig.from_yaml(_config_path(config_path))
        credentials = _load_credentials(credentials_path)

        auth = S3Auth.from_config(config, credentials)
        destination = S3Destination(auth.get_s3_client(), part_size=config.part_size)

        with console.status(f"Checking s3://{config.bucket}..."):
            access = destination.check_bucket_access(config.bucket)

    except PrefixloadError as e:
        _fail(str(e))

    if access == BucketAccess.ACCESSIBLE:
        console.print(f"✅ Bucket s3://{config.bucket} is accessible", style="green")
    else:
        console.print(
            f"⚠️ Bucket s3://{config.bucket} exists but these credentials have no access to it",
            style="yellow bold"
        )


@cli.command()
@credentials_option
@click.option('--access-key', prompt='S3 Access Key ID', help='Access key ID')
@click.option('--secret-key', prompt='S3 Secret Access Key', hide_input=True, help='Secret access key')
def login(credentials_path: Optional[Path], access_key: str, secret_key: str):
    """Store S3 credentials."""
    path = credentials_path or CredentialsConfig.default_path()
    try:
        CredentialsConfig(access_key=access_key, secret_key=secret_key).to_yaml(path)
    except OSError as e:
        _fail(f"Cannot write {path}: {e}")

    console.print(f"✅ Credentials stored in {path}", style="green")


@cli.group('config')
def config_group():
    """Show and edit the configuration file."""
    pass


@config_group.command('path')
@config_option
def config_path_cmd(config_path: Optional[Path]):
    """Print the configuration file location."""
    click.echo(str(_config_path(config_path)))


@config_group.command('show')
@config_option
def config_show(config_path: Optional[Path]):
    """Show the configuration file with syntax highlighting."""
    path = _config_path(config_path)
    try:
        content = path.read_text(encoding='utf-8')
    except OSError as e:
        _fail(f"Cannot read {path}: {e}")

    console.print(Syntax(content, "yaml", theme="monokai", background_color="default"))


@config_group.command('edit')
@config_option
def config_edit(config_path: Optional[Path]):
    """Open the configuration file in $EDITOR."""
    path = _config_path(config_path)
    backup_path = PrefixloadConfig.backup(path)
    if backup_path:
        console.print(f"💾 Backup created at {backup_path}")

    click.edit(filename=str(path))


@config_group.command('set')
@config_option
@click.option('--endpoint', help='S3 endpoint URL (e.g. https://s3.amazonaws.com)')
@click.option('--bucket', help='Bucket to upload to')
@click.option('--region', help='Bucket region')
@click.option('--force-path-style/--no-force-path-style', default=None,
              help='Use path-style bucket addressing')
@click.option('--part-size', type=int, help='Multipart part size in bytes')
@click.option('--local-directory-path', help='Local directory to scan for files')
def config_set(config_path: Optional[Path], **fields):
    """Update one or more top-level configuration fields."""
    path = _config_path(config_path)
    try:
        config = PrefixloadConfig.from_yaml(path)
        changed = config.update(**fields)
        if not changed:
            console.print("Nothing to change.", style="yellow")
            return
        config.to_yaml(path)
    except PrefixloadError as e:
        _fail(str(e))

    console.print(f"✅ Config updated: {', '.join(changed)}", style="green")


@config_group.command('dir-add')
@config_option
@click.argument('prefix_file')
@click.argument('cloud_dir')
def config_dir_add(config_path: Optional[Path], prefix_file: str, cloud_dir: str):
    """Add an upload rule mapping PREFIX_FILE to CLOUD_DIR."""
    path = _config_path(config_path)
    try:
        config = PrefixloadConfig.from_yaml(path)
        if not config.add_rule(prefix_file, cloud_dir):
            console.print(f"⚠️ A rule for prefix '{prefix_file}' already exists.", style="yellow")
            return
        config.to_yaml(path)
    except PrefixloadError as e:
        _fail(str(e))

    console.print(f"✅ Added rule: {prefix_file} -> {cloud_dir}", style="green")


@config_group.command('dir-rm')
@config_option
@click.argument('prefix_file')
def config_dir_rm(config_path: Optional[Path], prefix_file: str):
    """Remove the upload rule for PREFIX_FILE."""
    path = _config_path(config_path)
    try:
        config = PrefixloadConfig.from_yaml(path)
        if not config.remove_rule(prefix_file):
            console.print(f"⚠️ No rule for prefix '{prefix_file}'.", style="yellow")
            return
        config.to_yaml(path)
    except PrefixloadError as e:
        _fail(str(e))

    console.print(f"✅ Removed rule: {prefix_file}", style="green")


if __name__ == '__main__':
    cli()
