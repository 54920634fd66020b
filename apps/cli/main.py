"""CLI application for BumpGate."""

import asyncio
import json
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from core.config import (
    load_event,
    load_settings,
    parse_allowed_update_types,
    parse_list,
)
from core.diff import diff_manifests
from core.errors import BumpGateError, ManifestError
from core.github import GitHubClient, TransportConfig
from core.models import ChangedFile, Result
from core.parse_node import parse_package_json
from core.policy import evaluate
from core.run import run as run_evaluation
from core.run import supported_trigger
from core.scope import validate_scope

console = Console()
err_console = Console(stderr=True)


def configure_logging(verbose: bool = False) -> None:
    """Send library logs to stderr through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def action_input(name: str) -> list[str]:
    """Environment names an Actions runner may use for an input.

    The runner keeps hyphens (``INPUT_GITHUB-TOKEN``); the underscore
    spelling is accepted for shells that cannot export such names.
    """
    upper = name.upper()
    return [f"INPUT_{upper}", f"INPUT_{upper.replace('-', '_')}"]


def read_manifest(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ManifestError(f"{path} is not valid UTF-8") from e


def format_result(result: Result) -> str:
    """Render a result the way it is reported on the console."""
    if result is Result.SUCCESS:
        return "[green]SUCCESS[/green]"
    return f"[red]{result.name}[/red] (exit {result.value})"


def parse_changed_files(value: str | None) -> list[ChangedFile]:
    """Parse ``name[:status]`` entries; status defaults to modified."""
    files = []
    for item in parse_list(value):
        name, _, status = item.partition(":")
        files.append(ChangedFile(name=name.strip(), status=status.strip() or "modified"))
    return files


async def _run_against_github(settings, context) -> Result:
    owner, repo = context.owner_and_repo
    async with GitHubClient(owner, repo, settings.token, TransportConfig()) as client:
        return await run_evaluation(context, settings, client)


app = typer.Typer(
    name="bumpgate",
    help="BumpGate - Merge dependency bump pull requests that stay within policy",
    add_completion=False,
)


@app.command()
def run(
    github_token: str = typer.Option(..., "--github-token", envvar=action_input("github-token"), help="Hosting API token"),
    allowed_actors: str = typer.Option(..., "--allowed-actors", envvar=action_input("allowed-actors"), help="Comma-separated PR authors"),
    allowed_update_types: str = typer.Option(..., "--allowed-update-types", envvar=action_input("allowed-update-types"), help="e.g. devDependencies:minor, dependencies:patch"),
    package_block_list: str | None = typer.Option(None, "--package-block-list", envvar=action_input("package-block-list"), help="Packages never merged unattended"),
    merge_method: str = typer.Option("SQUASH", "--merge-method", envvar=action_input("merge-method"), help="MERGE, SQUASH or REBASE"),
    merge_author_email: str | None = typer.Option(None, "--merge-author-email", envvar=action_input("merge-author-email"), help="Author email for the merge commit"),
    merge_strategy: str = typer.Option("auto-merge", "--merge-strategy", envvar=action_input("merge-strategy"), help="auto-merge or poll"),
    event_name: str = typer.Option("", "--event-name", envvar="GITHUB_EVENT_NAME", help="Triggering event name"),
    event_path: str | None = typer.Option(None, "--event-path", envvar="GITHUB_EVENT_PATH", help="Path to the event payload"),
    actor: str = typer.Option("", "--actor", envvar="GITHUB_ACTOR", help="Actor that triggered the event"),
    repository: str = typer.Option("", "--repository", envvar="GITHUB_REPOSITORY", help="owner/repo"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output"),
) -> None:
    """Evaluate the triggering pull request and merge it if allowed."""
    configure_logging(verbose)

    try:
        context = load_event(event_name, actor, repository, event_path)
        if not supported_trigger(context):
            console.print(format_result(Result.UNSUPPORTED_TRIGGER))
            raise typer.Exit(Result.UNSUPPORTED_TRIGGER.value)

        settings = load_settings(
            token=github_token,
            allowed_actors=allowed_actors,
            allowed_update_types=allowed_update_types,
            package_block_list=package_block_list,
            merge_method=merge_method,
            merge_author_email=merge_author_email,
            merge_strategy=merge_strategy,
        )
        result = asyncio.run(_run_against_github(settings, context))
    except BumpGateError as e:
        err_console.print(f"Error: {e}", style="red")
        raise typer.Exit(e.exit_code)

    console.print(format_result(result))
    raise typer.Exit(result.value)


@app.command()
def check(
    base: Path = typer.Argument(help="package.json on the target branch"),
    head: Path = typer.Argument(help="package.json on the pull request branch"),
    allowed_update_types: str = typer.Option("", "--allowed-update-types", "-a", envvar=action_input("allowed-update-types"), help="e.g. devDependencies:minor"),
    package_block_list: str | None = typer.Option(None, "--package-block-list", "-b", envvar=action_input("package-block-list"), help="Packages never merged unattended"),
    files: str | None = typer.Option(None, "--files", "-f", help="Changed files as name[:status], comma-separated"),
    format_type: str = typer.Option("text", "--format", help="Output format: text or json"),
) -> None:
    """Evaluate two local package.json files without contacting GitHub."""
    configure_logging()

    try:
        for path in (base, head):
            if not path.exists():
                err_console.print(f"Error: File {path} not found", style="red")
                raise typer.Exit(2)

        policy = parse_allowed_update_types(allowed_update_types)
        block_list = parse_list(package_block_list)

        if files is not None and not validate_scope(parse_changed_files(files)):
            result = Result.FILE_NOT_ALLOWED
            diff = None
        else:
            base_manifest = parse_package_json(read_manifest(base))
            head_manifest = parse_package_json(read_manifest(head))
            diff = diff_manifests(base_manifest, head_manifest)
            result = evaluate(diff, base_manifest, head_manifest, policy, block_list).reason
    except BumpGateError as e:
        err_console.print(f"Error: {e}", style="red")
        raise typer.Exit(e.exit_code)

    if format_type == "json":
        report = {"result": result.name, "allowed": result is Result.SUCCESS}
        if diff is not None:
            report["diff"] = {
                "added": diff.added,
                "removed": diff.removed,
                "updated": diff.updated,
            }
        console.print_json(json.dumps(report))
    else:
        console.print(format_result(result))
    raise typer.Exit(result.value)


if __name__ == "__main__":
    app()
