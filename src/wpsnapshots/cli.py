"""Command-line interface for wpsnapshots.

Usage:
    wpsnapshots create --slug my-site --description "Local" --db-name wp --db-user wp
    wpsnapshots status                       # List cached snapshots
    wpsnapshots status 3f2a...               # Check one snapshot
    wpsnapshots download-url 6.4.2 --locale de_DE
    wpsnapshots write-config wp-config.php --template wp-config-sample.php -d DB_NAME=wp
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Callable
from pathlib import Path
from typing import NoReturn

import click
from pydantic import ValidationError

from wpsnapshots import (
    CacheDirectoryManager,
    DownloadUrlLookupError,
    InputValidationError,
    Settings,
    SnapshotError,
    SnapshotRequest,
    __version__,
    constants,
    create_snapshot,
)
from wpsnapshots._logging import configure_logging
from wpsnapshots.download_urls import get_download_url, get_download_url_with_retry
from wpsnapshots.exceptions import CommandError
from wpsnapshots.models import expected_artifacts
from wpsnapshots.mysql import MysqlCliTableSource, MysqlConnection, check_mysql_connection
from wpsnapshots.paths import locate_wp_config, normalize_path
from wpsnapshots.snapshot import load_meta, request_connection
from wpsnapshots.validation import not_empty_validator, sanitize_slug, slug_validator
from wpsnapshots.wp_config import ConstantValue, create_config_file, read_db_settings

# Exit codes following Unix conventions
EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_CLI_ERROR = 2

UPLOADS_DIR = "./wp-content/uploads"


def format_error(title: str, message: str, suggestions: list[str] | None = None) -> str:
    """Format an error message following What → Why → Fix pattern."""
    lines = [
        click.style(f"Error: {title}", fg="red", bold=True),
        "",
        f"  {message}",
    ]

    if suggestions:
        lines.extend(["", "  Suggestions:"])
        lines.extend(f"    • {suggestion}" for suggestion in suggestions)

    return "\n".join(lines)


def format_bytes(size: int, precision: int = 2) -> str:
    """Human-readable byte count (1024-based)."""
    value = float(size)
    for suffix in ("B", "KB", "MB", "GB"):
        if value < 1024:
            return f"{round(value, precision)} {suffix}"
        value /= 1024
    return f"{round(value, precision)} TB"


def fail(error: SnapshotError) -> NoReturn:
    """Report a fatal error and exit with its status."""
    suggestions: list[str] = []
    if isinstance(error, CommandError):
        suggestions = [
            "Check that mysqldump, mysql and tar are installed and on PATH",
            "Verify the database host and credentials",
        ]
    click.echo(format_error(type(error).__name__, error.message, suggestions), err=True)
    sys.exit(error.exit_code)


def as_click_validator(validator: Callable[[str], str]) -> Callable[[str], str]:
    """Adapt a core validator for click.prompt (re-prompts on failure)."""

    def _validate(value: str) -> str:
        try:
            return validator(value)
        except InputValidationError as e:
            raise click.BadParameter(e.message) from e

    return _validate


def parse_constant(raw: str) -> tuple[str, ConstantValue]:
    """Parse NAME=VALUE. true/false become booleans, integers become ints."""
    if "=" not in raw:
        raise click.BadParameter(f"Invalid format: '{raw}'. Use NAME=VALUE format.", param_hint="'-d' / '--define'")
    name, value = raw.split("=", 1)
    if value.lower() in {"true", "false"}:
        return name, value.lower() == "true"
    if value.lstrip("-").isdigit():
        return name, int(value)
    return name, value


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-q", "--quiet", is_flag=True, help="Only log errors")
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
@click.version_option(__version__, "-V", "--version", prog_name="wpsnapshots")
def main(quiet: bool, verbose: bool) -> None:
    """Create and inspect WordPress snapshots."""
    configure_logging(quiet=quiet, level="DEBUG" if verbose else "INFO")


@main.command()
@click.option("--path", default=None, help="Path to WordPress files (default: current directory)")
@click.option("--slug", default=None, help="Project slug for snapshot")
@click.option("--description", default=None, help="Description of snapshot")
@click.option(
    "--db-host", default=None, help="Database host (host, host:port or host:socket; default: localhost)"
)
@click.option("--db-name", default=None, help="Database name")
@click.option("--db-user", default=None, help="Database user")
@click.option("--db-password", default="", envvar="WPSNAPSHOTS_DB_PASSWORD", help="Database password")
@click.option("--table-prefix", default="wp_", show_default=True, help="Only export tables with this prefix")
@click.option("--include-db", is_flag=True, help="Include database in snapshot")
@click.option("--include-files", is_flag=True, help="Include files in snapshot")
@click.option("--exclude", multiple=True, help="Exclude a file or directory (repeatable)")
@click.option("--exclude-uploads", is_flag=True, help="Exclude uploads from the snapshot")
@click.option("--small", is_flag=True, help="Trim data and files to create a small snapshot")
@click.option("--no-scrub", is_flag=True, help="Don't scrub personal user data")
@click.option("--repository", default="default", show_default=True, help="Repository the snapshot is meant for")
def create(
    path: str | None,
    slug: str | None,
    description: str | None,
    db_host: str | None,
    db_name: str | None,
    db_user: str | None,
    db_password: str,
    table_prefix: str,
    include_db: bool,
    include_files: bool,
    exclude: tuple[str, ...],
    exclude_uploads: bool,
    small: bool,
    no_scrub: bool,
    repository: str,
) -> None:
    """Create a snapshot locally in the ~/.wpsnapshots cache."""
    resolved_path = normalize_path(path or ".")

    project = sanitize_slug(slug)
    if not project:
        project = click.prompt(
            "Project Slug (letters, numbers, _, and - only)",
            value_proc=as_click_validator(slug_validator),
        )

    if description is None:
        description = click.prompt(
            "Snapshot Description (e.g. Local environment)",
            value_proc=as_click_validator(not_empty_validator),
        )

    excluded = set(exclude)
    if exclude_uploads:
        excluded.add(UPLOADS_DIR)

    if not include_files:
        include_files = click.confirm("Include files in snapshot?", default=True)
    if not include_db:
        include_db = click.confirm("Include database in snapshot?", default=True)

    if include_db and not (db_name and db_user):
        # Fall back to the site's own wp-config.php for missing credentials
        config_path = locate_wp_config(resolved_path)
        if config_path is None:
            click.echo(
                format_error(
                    "Database credentials missing",
                    "No --db-name/--db-user given and no wp-config.php found.",
                    ["Pass --db-name and --db-user", "Run from the WordPress root or pass --path"],
                ),
                err=True,
            )
            sys.exit(EXIT_CLI_ERROR)
        site_db = read_db_settings(config_path)
        db_name = db_name or site_db.get("DB_NAME")
        db_user = db_user or site_db.get("DB_USER")
        db_password = db_password or site_db.get("DB_PASSWORD", "")
        db_host = db_host or site_db.get("DB_HOST")
        table_prefix = site_db.get("table_prefix", table_prefix)

    db_host = db_host or constants.DEFAULT_DB_HOST

    try:
        request = SnapshotRequest(
            project=project,
            description=description,
            path=resolved_path,
            db_host=db_host,
            db_name=db_name,
            db_user=db_user,
            db_password=db_password,
            table_prefix=table_prefix or None,
            contains_db=include_db,
            contains_files=include_files,
            exclude=frozenset(excluded),
            small=small,
            no_scrub=no_scrub,
            repository=repository,
        )
    except ValidationError as e:
        messages = "; ".join(err["msg"] for err in e.errors())
        raise click.UsageError(messages) from e

    settings = Settings()
    table_source = None
    if request.contains_db and request.table_prefix:
        table_source = MysqlCliTableSource(
            request_connection(request),
            mysql_bin=settings.mysql_bin,
            timeout=settings.command_timeout_seconds,
        )

    try:
        entry = asyncio.run(create_snapshot(request, settings=settings, table_source=table_source))
    except SnapshotError as e:
        fail(e)

    click.echo(click.style(f"Create finished! Snapshot ID is {entry.id}", fg="green"))


@main.command()
@click.argument("snapshot_id", required=False)
def status(snapshot_id: str | None) -> None:
    """Show cached snapshots, or whether one snapshot is complete."""
    cache = CacheDirectoryManager(Settings().cache_dir)

    ids = [snapshot_id] if snapshot_id else cache.list_ids()
    if not ids:
        click.echo("No snapshots cached.")
        return

    incomplete = False
    for sid in ids:
        meta = load_meta(cache, sid)
        artifacts = (
            expected_artifacts(contains_db=meta.contains_db, contains_files=meta.contains_files) if meta else None
        )
        complete = cache.is_complete(sid, artifacts)
        incomplete = incomplete or not complete
        state = click.style("complete", fg="green") if complete else click.style("incomplete", fg="red")
        line = f"{sid}  {state}"
        if meta:
            size = format_bytes(sum(meta.artifact_sizes.values()))
            line += f"  {meta.project}  {meta.description}  {size}"
        click.echo(line)

    if snapshot_id and incomplete:
        sys.exit(EXIT_FAILURE)


@main.command("download-url")
@click.argument("version", default="latest")
@click.option("--locale", default="en_US", show_default=True, help="WordPress locale")
@click.option("--retry/--no-retry", default=True, show_default=True, help="Retry the latest-version lookup")
def download_url(version: str, locale: str, retry: bool) -> None:
    """Print the download URL for a WordPress VERSION (latest, nightly or x.y.z)."""
    settings = Settings()
    try:
        if retry:
            url = asyncio.run(
                get_download_url_with_retry(
                    version,
                    locale,
                    attempts=settings.lookup_attempts,
                    version_check_url=settings.version_check_url,
                    timeout=settings.http_timeout_seconds,
                )
            )
        else:
            url = asyncio.run(
                get_download_url(
                    version,
                    locale,
                    version_check_url=settings.version_check_url,
                    timeout=settings.http_timeout_seconds,
                )
            )
    except DownloadUrlLookupError as e:
        click.echo(
            format_error("Could not resolve download URL", e.message, ["Check your network connection"]),
            err=True,
        )
        sys.exit(EXIT_FAILURE)
    click.echo(url)


@main.command("write-config")
@click.argument("destination", type=click.Path(dir_okay=False, path_type=Path))
@click.option(
    "--template",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Config template (e.g. wp-config-sample.php)",
)
@click.option("-d", "--define", "defines", multiple=True, help="Constant to define (NAME=VALUE, repeatable)")
def write_config(destination: Path, template: Path, defines: tuple[str, ...]) -> None:
    """Write DESTINATION from a wp-config template with constants defined."""
    config_constants = dict(parse_constant(raw) for raw in defines)
    try:
        asyncio.run(create_config_file(destination, template, config_constants))
    except ValueError as e:
        raise click.UsageError(str(e)) from e
    except SnapshotError as e:
        fail(e)
    click.echo(f"Wrote {destination}")


@main.command("check-db")
@click.option("--db-host", default=constants.DEFAULT_DB_HOST, show_default=True)
@click.option("--db-name", default=None)
@click.option("--db-user", required=True)
@click.option("--db-password", default="", envvar="WPSNAPSHOTS_DB_PASSWORD")
def check_db(db_host: str, db_name: str | None, db_user: str, db_password: str) -> None:
    """Check that the database credentials work."""
    settings = Settings()
    connection = MysqlConnection(host=db_host, user=db_user, password=db_password, database=db_name)
    ok = asyncio.run(
        check_mysql_connection(connection, mysql_bin=settings.mysql_bin, timeout=settings.command_timeout_seconds)
    )
    if not ok:
        click.echo(click.style("Could not connect to database.", fg="red"), err=True)
        sys.exit(EXIT_FAILURE)
    click.echo(click.style("Database connection OK.", fg="green"))


if __name__ == "__main__":
    main()
