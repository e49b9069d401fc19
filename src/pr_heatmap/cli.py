"""Command-line entry point for the heatmap pipeline."""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager

import click
from dotenv import load_dotenv
from pymongo.errors import PyMongoError

from pr_heatmap.config import HeatmapConfig
from pr_heatmap.exceptions import HeatmapError
from pr_heatmap.utils.env import is_env_truthy
from pr_heatmap.utils.logging import setup_logging

logger = logging.getLogger(__name__)


@click.group()
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="Increase verbosity (can be used multiple times)",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    help="Config file (default is $HOME/.heatmap.json, then ./.heatmap.json)",
)
@click.option(
    "--env-file",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to .env file",
)
@click.pass_context
def heatmap_cli(
    ctx: click.Context, verbose: int, config_path: str | None, env_file: str | None
) -> None:
    """A heatmap for tracking the files most often fixed by bug PRs.

    Finds the bugs in a Jira project and the GitHub PRs that fixed them, then
    collects per-file change statistics for those PRs into MongoDB.
    """
    ctx.ensure_object(dict)

    if verbose == 1:
        logging_level = logging.INFO
    elif verbose >= 2:
        logging_level = logging.DEBUG
    else:
        if is_env_truthy("HEATMAP_VERY_VERBOSE", "false"):
            logging_level = logging.DEBUG
        elif is_env_truthy("HEATMAP_VERBOSE", "false"):
            logging_level = logging.INFO
        else:
            logging_level = logging.WARNING

    logging_stream = sys.stdout if is_env_truthy("HEATMAP_LOGGING_STDOUT") else sys.stderr
    setup_logging(logging_level, logging_stream)

    if env_file:
        load_dotenv(env_file, override=True)
    else:
        load_dotenv()

    ctx.obj["config_path"] = config_path


def _load_config(ctx: click.Context) -> HeatmapConfig:
    config = HeatmapConfig.load(ctx.obj.get("config_path"))
    if config.source:
        click.echo(f"Using config file: {config.source}")
    return config


@contextmanager
def _stores(config: HeatmapConfig) -> Iterator[tuple]:
    """Connect to MongoDB and yield (mapping store, diff store)."""
    from pr_heatmap.store import DiffStore, MappingStore, connect
    from pr_heatmap.store.mongo import get_database

    client = connect(config)
    try:
        db = get_database(client, config)
        yield (
            MappingStore.from_database(db, config.mappings_collection),
            DiffStore.from_database(db, config.diffs_collection),
        )
    finally:
        client.close()


@heatmap_cli.command("backfill")
@click.option(
    "--project",
    type=str,
    help="Jira project key (overrides jira.project)",
)
@click.pass_context
def backfill_command(ctx: click.Context, project: str | None) -> None:
    """Generate mappings of Jira bugs to merged GitHub PRs.

    Finds all current bugs in the Jira project that have no mapping yet,
    looks up their linked PRs and writes the merged ones to MongoDB.
    """
    from pr_heatmap.jira import JiraClient
    from pr_heatmap.sync import BackfillEngine

    try:
        config = _load_config(ctx)
        if project:
            config.jira_project = project
        config.require_backfill()

        with _stores(config) as (mappings, _):
            engine = BackfillEngine(
                JiraClient.from_config(config), mappings, project=config.jira_project
            )
            result = engine.run()
    except (HeatmapError, PyMongoError) as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        raise SystemExit(1) from e

    click.echo("")
    click.echo(f"Backfill completed for {config.jira_project}:")
    click.echo(f"  Bugs found:          {result.issues_found}")
    click.echo(f"  Already mapped:      {result.issues_already_mapped}")
    click.echo(f"  Checked:             {result.issues_checked}")
    click.echo(f"  Without linked PRs:  {result.issues_without_prs}")
    click.echo(f"  Unmerged PRs:        {result.prs_not_merged}")
    click.echo(f"  Mappings created:    {result.mappings_created}")
    click.echo(f"  Duration:            {result.duration_seconds:.1f}s")
    if not result.mappings:
        click.echo("No new mappings found")

    _report_problems("Skipped malformed PRs", result.data_quality_errors)
    _report_problems("Errors", result.errors)


@heatmap_cli.command("collect-diffs")
@click.option(
    "--fail-fast",
    is_flag=True,
    help="Abort without writing anything if any PR cannot be fetched",
)
@click.pass_context
def collect_diffs_command(ctx: click.Context, fail_fast: bool) -> None:
    """Collect per-file diff statistics for mapped PRs.

    Only PRs that have a mapping but no diff record yet are fetched.
    """
    from pr_heatmap.github import GitHubClient
    from pr_heatmap.sync import DiffEnrichmentEngine

    try:
        config = _load_config(ctx)
        config.require_diffs()

        with _stores(config) as (mappings, diffs):
            engine = DiffEnrichmentEngine(
                GitHubClient.from_config(config),
                mappings,
                diffs,
                fail_fast=fail_fast,
            )
            result = engine.run()
    except (HeatmapError, PyMongoError) as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        raise SystemExit(1) from e

    click.echo(f"New PRs found: {result.prs_pending}")
    if result.prs_pending:
        click.echo(f"  PRs processed:    {result.prs_processed}")
        click.echo(f"  Files collected:  {result.files_collected}")
        click.echo(f"  Records written:  {len(result.inserted_ids)}")
        click.echo(f"  Duration:         {result.duration_seconds:.1f}s")

    if result.errors:
        _report_problems("Errors", result.errors)
        raise SystemExit(1)


@heatmap_cli.command("status")
@click.pass_context
def status_command(ctx: click.Context) -> None:
    """Show how many mappings and diff records are stored."""
    from pr_heatmap.sync import find_pending_prs

    try:
        config = _load_config(ctx)
        with _stores(config) as (mappings, diffs):
            mapping_count = mappings.count()
            diff_count = diffs.count()
            pending = len(find_pending_prs(mappings, diffs))
    except (HeatmapError, PyMongoError) as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        raise SystemExit(1) from e

    click.echo("Heatmap Store Status")
    click.echo("=" * 40)
    click.echo(f"Database:         {config.mongo_dbname}")
    click.echo(f"Mappings ({config.mappings_collection}): {mapping_count}")
    click.echo(f"Diffs ({config.diffs_collection}):    {diff_count}")
    click.echo(f"PRs pending diffs: {pending}")


@heatmap_cli.command("hotspots")
@click.option(
    "--limit",
    type=click.IntRange(min=1),
    default=20,
    help="Maximum files to list (default: 20)",
)
@click.option(
    "--repo",
    type=str,
    help="Only rank files of this repository (owner/name)",
)
@click.pass_context
def hotspots_command(ctx: click.Context, limit: int, repo: str | None) -> None:
    """List the files touched by the most bug-fixing PRs.

    Example: pr-heatmap hotspots --repo acme/widgets --limit 10
    """
    from pr_heatmap.sync.parsing import parse_repo_full_name

    try:
        repo_ref = parse_repo_full_name(repo) if repo else None
        config = _load_config(ctx)
        with _stores(config) as (_, diffs):
            hotspots = diffs.file_hotspots(limit=limit, repo=repo_ref)
    except (HeatmapError, PyMongoError) as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        raise SystemExit(1) from e

    if not hotspots:
        click.secho("No diff records yet. Run 'pr-heatmap collect-diffs' first.", fg="yellow")
        return

    click.echo(f"{'PRs':>5} {'+':>7} {'-':>7}  File")
    click.echo("-" * 60)
    for h in hotspots:
        click.echo(
            f"{h.pr_count:>5} {h.additions:>7} {h.deletions:>7}  {h.repo.full_name}/{h.file}"
        )


def _report_problems(title: str, problems: list[str]) -> None:
    if not problems:
        return
    click.echo("")
    click.secho(f"{title} ({len(problems)}):", fg="yellow")
    for problem in problems[:5]:
        click.echo(f"  - {problem}")
    if len(problems) > 5:
        click.echo(f"  ... and {len(problems) - 5} more")


def main() -> None:
    """Entry point for the heatmap CLI."""
    heatmap_cli()


if __name__ == "__main__":
    main()
