"""
Command-line interface for spot-exporter.

This module implements the CLI using Click, providing all commands
for exporting Spotify playlists to CSV and HTML reports.
rich-click is used for the output colors.

Commands:
    spot-export --login                     Sign in with Spotify (PKCE)
    spot-export --logout                    Forget the stored session
    spot-export --list                      List Liked Songs and playlists
    spot-export --export <id|name>          Export one playlist to CSV
    spot-export --all                       Export every playlist into a zip
    spot-export --analyze <id|name>         HTML analysis report of a playlist
    spot-export --from-csv <file.csv>       HTML analysis report of an exported CSV

Options:
    --simple                                Report without audio features
    --sort <column> [--desc]                Sort the report's track table
    --filter <text>                         Filter the report's track table
    --config <config.yaml>                  Use another configuration file

Usage:
    # First run: sign in, the session stays valid for one hour
    spot-export --login

    # See what can be exported
    spot-export --list

    # Export a playlist by name or id
    spot-export --export "Road Trip"

    # Export everything into spotify_playlists.zip
    spot-export --all

    # Analysis report, tracks sorted by popularity
    spot-export --analyze "Liked Songs" --sort Popularity --desc

    # Analysis of a previously exported file, no Spotify login needed
    spot-export --from-csv Road_Trip.csv --simple

Configuration:
    The CLI requires a config.yaml file in the current directory with:
    - Spotify application client id (or SPOTIFY_CLIENT_ID in .env)
    - Output directory path
    - Optional fetch and pacing settings
"""

import asyncio
import sys
from pathlib import Path
from typing import Optional

import rich_click as click
from rich.console import Console
from rich.table import Table

# Configure rich-click for better help formatting
click.rich_click.USE_RICH_MARKUP = True
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.ERRORS_SUGGESTION = ""
click.rich_click.MAX_WIDTH = 100
click.rich_click.OPTION_GROUPS = {
    "cli": [
        {
            "name": "Session",
            "options": ["--login", "--logout"],
        },
        {
            "name": "Export",
            "options": ["--list", "--export", "--all"],
        },
        {
            "name": "Analysis",
            "options": ["--analyze", "--from-csv", "--simple", "--sort", "--desc", "--filter"],
        },
        {
            "name": "Advanced Options",
            "options": ["--config", "--verbose"],
        },
        {
            "name": "Info",
            "options": ["--version", "--help"],
        },
    ],
}

from spot_exporter.core import (
    AuthenticationError,
    Config,
    ConfigError,
    SessionContext,
    SessionStore,
    SESSION_FILENAME,
    SpotExporterError,
    SpotifyError,
    get_logger,
    load_config,
    setup_logging,
    shutdown_logging,
)
from spot_exporter.core.progress import ExportProgressBar
from spot_exporter.export import (
    TableView,
    export_all,
    export_playlist,
    load_csv_file,
    write_report,
)
from spot_exporter.export.report import resolve_mode
from spot_exporter.export.table import SIMPLE_COLUMNS
from spot_exporter.spotify import (
    EXPORT_COLUMNS,
    ExportRow,
    Playlist,
    PlaylistEnumerator,
    RateLimitedFetcher,
    TrackAggregator,
    find_playlist,
    login,
)
from spot_exporter.utils import ensure_directory

logger = get_logger(__name__)


# Version string (if updated, update also in setup.py)
__version__ = "0.1.0"


@click.group(invoke_without_command=True)
@click.option(
    "--login", "do_login",
    is_flag=True,
    help="Sign in with Spotify in the browser"
)
@click.option(
    "--logout",
    is_flag=True,
    help="Remove the stored session"
)
@click.option(
    "--list", "list_playlists",
    is_flag=True,
    help="List Liked Songs and your playlists"
)
@click.option(
    "--export", "export_query",
    type=str,
    default=None,
    metavar="<id|name>",
    help="Export one playlist to CSV"
)
@click.option(
    "--all", "export_everything",
    is_flag=True,
    help="Export every playlist into spotify_playlists.zip"
)
@click.option(
    "--analyze", "analyze_query",
    type=str,
    default=None,
    metavar="<id|name>",
    help="Write an HTML analysis report of a playlist"
)
@click.option(
    "--from-csv", "csv_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    metavar="<file.csv>",
    help="Write an HTML analysis report of an exported CSV"
)
@click.option(
    "--simple",
    is_flag=True,
    help="Report without audio feature statistics"
)
@click.option(
    "--sort", "sort_column",
    type=str,
    default=None,
    metavar="<column>",
    help="Sort the report's track table by a column"
)
@click.option(
    "--desc",
    is_flag=True,
    help="Sort in descending order (with --sort)"
)
@click.option(
    "--filter", "filter_term",
    type=str,
    default=None,
    metavar="<text>",
    help="Only keep tracks containing text in the report's table"
)
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    metavar="<config.yaml>",
    help="Configuration file (default: ./config.yaml)"
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Show debug messages on the console"
)
@click.option(
    "--version",
    is_flag=True,
    help="Show version and exit."
)
@click.pass_context
def cli(
    ctx: click.Context,
    do_login: bool,
    logout: bool,
    list_playlists: bool,
    export_query: Optional[str],
    export_everything: bool,
    analyze_query: Optional[str],
    csv_file: Optional[Path],
    simple: bool,
    sort_column: Optional[str],
    desc: bool,
    filter_term: Optional[str],
    config_path: Optional[Path],
    verbose: bool,
    version: bool
) -> None:
    """
    spot-export: Export Spotify playlists to CSV and HTML reports.

    Every track becomes one row with its metadata, artist genres,
    album record label and audio features.

    \b
    BASIC USAGE:
        spot-export --login                     # Sign in (valid for 1 hour)
        spot-export --list                      # Show exportable playlists
        spot-export --export "Road Trip"        # One playlist -> CSV
        spot-export --all                       # Everything -> zip

    \b
    ANALYSIS:
        spot-export --analyze "Liked Songs"             # HTML report
        spot-export --analyze <id> --simple             # Without audio features
        spot-export --from-csv Road_Trip.csv            # Report from a CSV
        spot-export --analyze <id> --sort Popularity --desc --filter rock
    """
    # Handle --version
    if version:
        click.echo(f"spot-export {__version__}")
        ctx.exit(0)

    actions = [
        do_login,
        logout,
        list_playlists,
        export_query is not None,
        export_everything,
        analyze_query is not None,
        csv_file is not None,
    ]

    if not any(actions):
        # No arguments at all - show help
        click.echo(ctx.get_help())
        ctx.exit(0)

    if sum(actions) > 1:
        raise click.UsageError(
            "Use only one of --login, --logout, --list, --export, --all, --analyze, --from-csv"
        )

    is_report = analyze_query is not None or csv_file is not None
    if (simple or sort_column or desc or filter_term) and not is_report:
        raise click.UsageError("--simple, --sort, --desc and --filter only apply to --analyze and --from-csv")

    if desc and not sort_column:
        raise click.UsageError("--desc requires --sort")

    sortable = SIMPLE_COLUMNS if simple else EXPORT_COLUMNS
    if sort_column:
        _check_sort_column(sort_column, sortable)

    # Store in context for the command
    ctx.ensure_object(dict)
    ctx.obj["login"] = do_login
    ctx.obj["logout"] = logout
    ctx.obj["list"] = list_playlists
    ctx.obj["export_query"] = export_query
    ctx.obj["export_all"] = export_everything
    ctx.obj["analyze_query"] = analyze_query
    ctx.obj["csv_file"] = csv_file
    ctx.obj["mode"] = "simple" if simple else "auto"
    ctx.obj["sort_column"] = sort_column
    ctx.obj["descending"] = desc
    ctx.obj["filter_term"] = filter_term
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    _run(ctx.obj)


def _check_sort_column(column: str, columns) -> None:
    """Raise a usage error unless column is one of columns (case-insensitive)."""
    if column.strip().lower() not in {c.lower() for c in columns}:
        raise click.UsageError(
            f"Unknown column '{column}' for this report. Columns: {', '.join(columns)}"
        )


def _run(options: dict) -> None:
    """
    Execute the selected workflow.

    This is the main orchestration function that:
    1. Loads configuration
    2. Sets up logging
    3. Runs the selected action
    4. Maps errors to exit codes

    Args:
        options: Dictionary with CLI options from click context.

    Raises:
        SystemExit: On fatal errors (with appropriate exit code).
    """
    try:
        config = load_config(options["config_path"])

        setup_logging(config.output.directory, verbose=options["verbose"])
        logger.info("spot-export starting")

        ensure_directory(config.output.directory)
        store = SessionStore(config.output.directory / SESSION_FILENAME)

        if options["login"]:
            _run_login(config, store)
        elif options["logout"]:
            store.clear()
            click.echo("Logged out")
        elif options["csv_file"] is not None:
            _run_csv_report(config, options)
        else:
            session = _require_session(store)
            asyncio.run(_run_spotify_action(config, session, options))

        logger.info("spot-export completed successfully")

    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)

    except SpotifyError as e:
        click.echo(f"Spotify error: {e.message}", err=True)
        if e.is_auth_error:
            click.echo("Run 'spot-export --login' to sign in again", err=True)
        logger.error(f"Spotify error: {e.message}", exc_info=True)
        sys.exit(3)

    except SpotExporterError as e:
        click.echo(f"Error: {e.message}", err=True)
        logger.error(f"Error: {e.message}", exc_info=True)
        sys.exit(4)

    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        logger.info("Interrupted by user")
        sys.exit(130)

    except click.ClickException:
        # Usage errors found after the rows are known
        raise

    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        logger.exception("Unexpected error")
        sys.exit(1)

    finally:
        shutdown_logging()


def _require_session(store: SessionStore) -> SessionContext:
    """
    Load the stored session.

    Raises:
        AuthenticationError: If there is no session or it has expired.
    """
    session = store.load()
    if session is None:
        raise AuthenticationError(
            "Not logged in or session expired",
            details={"session_file": str(store.path)},
        )
    return session


def _run_login(config: Config, store: SessionStore) -> None:
    """Run the PKCE login and store the resulting session."""
    session = login(config.spotify.client_id, config.spotify.redirect_uri)
    store.save(session)
    click.echo("Logged in to Spotify (session valid for one hour)")


async def _run_spotify_action(config: Config, session: SessionContext, options: dict) -> None:
    """
    Run the actions that talk to Spotify.

    One fetcher (and one HTTP connection pool) serves the whole action.
    """
    async with RateLimitedFetcher(session, config.fetch) as fetcher:
        enumerator = PlaylistEnumerator(fetcher, config.pacing)
        aggregator = TrackAggregator(fetcher, config.pacing)

        playlists = await enumerator.list_playlists()
        logger.debug(f"Found {len(playlists)} exportable playlists")

        if options["list"]:
            _print_playlists(playlists)

        elif options["export_all"]:
            await _run_export_all(config, aggregator, playlists)

        elif options["export_query"] is not None:
            playlist = find_playlist(playlists, options["export_query"])
            path = await export_playlist(aggregator, playlist, config.output.directory)
            click.echo(f"Exported {playlist.name} to {path}")

        elif options["analyze_query"] is not None:
            playlist = find_playlist(playlists, options["analyze_query"])
            rows = await aggregator.build_rows(playlist)
            _write_report(
                config,
                playlist.name,
                rows,
                options,
                cover_url=playlist.cover_url,
                owner=playlist.owner_id,
            )

        logger.debug(f"Requests sent: {fetcher.request_count}")


async def _run_export_all(
    config: Config,
    aggregator: TrackAggregator,
    playlists: list[Playlist]
) -> None:
    """
    Export every playlist into one zip.

    Prints a summary of exported and failed playlists; the failures
    are also written to export_failures.log.
    """
    logger.info("=" * 60)
    logger.info(f"EXPORT ALL: {len(playlists)} playlists")
    logger.info("=" * 60)

    with ExportProgressBar(total=len(playlists)) as progress:
        summary = await export_all(aggregator, playlists, config.output.directory, progress)

    logger.info("=" * 60)
    logger.info("EXPORT SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Exported:          {len(summary.succeeded)}")
    logger.info(f"Failed:            {len(summary.failed)}")
    for name in summary.failed:
        logger.info(f"  - {name}")
    if summary.archive is not None:
        logger.info(f"Archive:           {summary.archive}")
    logger.info("=" * 60)


def _run_csv_report(config: Config, options: dict) -> None:
    """Analyze a previously exported CSV. No Spotify session needed."""
    name, rows = load_csv_file(options["csv_file"])
    _write_report(config, name, rows, options)


def _write_report(
    config: Config,
    name: str,
    rows: list[ExportRow],
    options: dict,
    cover_url: str | None = None,
    owner: str | None = None,
) -> None:
    """Apply --sort/--filter to the track table and write the report."""
    mode = resolve_mode(options["mode"], rows)

    view = None
    if options["sort_column"] or options["filter_term"]:
        view = TableView.from_rows(rows, include_features=mode == "full")
        if options["filter_term"]:
            view = view.filter(options["filter_term"])
        if options["sort_column"]:
            _check_sort_column(options["sort_column"], view.header)
            view = view.sort_by(options["sort_column"], descending=options["descending"])
        logger.info(f"Track table: {len(view)} of {len(rows)} tracks")

    path = write_report(
        name,
        rows,
        config.output.directory,
        mode=mode,
        cover_url=cover_url,
        owner=owner,
        view=view,
    )
    click.echo(f"{mode.capitalize()} analysis of {name} written to {path}")


def _print_playlists(playlists: list[Playlist]) -> None:
    """
    Print the exportable playlists as a table.

    Output:
        One line per playlist with its position, name, track count,
        owner and id (the id or the name can be passed to --export).
    """
    table = Table(title="Exportable playlists", header_style="bold green")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Name", style="white")
    table.add_column("Tracks", justify="right")
    table.add_column("Owner", style="cyan")
    table.add_column("ID", style="dim")

    for position, playlist in enumerate(playlists, 1):
        table.add_row(
            str(position),
            playlist.name,
            str(playlist.total_tracks),
            playlist.owner_id,
            playlist.id or "",
        )

    Console().print(table)


def main() -> None:
    """
    Entry point for the CLI.

    This function is called when running `spot-export` from the command line.
    It invokes the Click CLI group.
    """
    cli()


if __name__ == "__main__":
    main()
