import asyncio
import sys
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from config.logic import load_and_merge_configs
from config.models import Config
from core.contracts.models import ModelName, RepoPath
from core.contracts.provider import ModelLister
from core.llm.generator import CommitMessageGenerator
from core.pipeline import ChangeProcessingPipeline
from server.dispatcher import RequestDispatcher
from server.loop import ProtocolLoop
from utils.errors import AICommitException
from utils.git import GitClient
from utils.logger import setup_logger, logger

# stdout is reserved for protocol responses
console = Console(stderr=True)


def build_pipeline(config: Config) -> Tuple[ChangeProcessingPipeline, GitClient, CommitMessageGenerator]:
    """Wires the git client and message generator into a pipeline."""
    vcs = GitClient(command_timeout_sec=config.git.command_timeout_sec)
    generator = CommitMessageGenerator(config)
    return ChangeProcessingPipeline(vcs, generator, config), vcs, generator


def build_dispatcher(config: Config) -> RequestDispatcher:
    pipeline, vcs, generator = build_pipeline(config)
    return RequestDispatcher(config, pipeline, vcs, generator.formatter)


def load_config(ctx: click.Context) -> Config:
    try:
        config = load_and_merge_configs(custom_config_path=ctx.obj.get("config_path"))
    except AICommitException as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e}")
        sys.exit(1)
    level = "DEBUG" if ctx.obj.get("verbose") else config.logging.level
    setup_logger(log_level=level, log_file=config.logging.file)
    return config


@click.group(invoke_without_command=True)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option(
    "-c", "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to a custom configuration file",
)
@click.pass_context
def cli(ctx, verbose: bool, config_path: Optional[str]):
    """
    AI-powered git commit server.

    Runs 'serve' when no subcommand is given.
    """
    setup_logger(log_level="DEBUG" if verbose else "INFO")
    ctx.obj = {"verbose": verbose, "config_path": config_path}

    if ctx.invoked_subcommand is None:
        ctx.invoke(serve)


@cli.command("serve")
@click.pass_context
def serve(ctx):
    """
    Serve JSON-RPC requests on stdin/stdout until end of input.
    """
    config = load_config(ctx)
    loop = ProtocolLoop(build_dispatcher(config), sys.stdin, sys.stdout)
    logger.info(f"{config.server.name} {config.server.version} starting...")
    asyncio.run(loop.run())


@cli.command("commit")
@click.argument("repository", type=click.Path(exists=True, file_okay=False))
@click.option("--model", type=str, help="Override the model name (e.g. 'llama3.2:latest')")
@click.option("--batch", is_flag=True, default=False, help="Commit all changes in a single commit")
@click.pass_context
def commit(ctx, repository: str, model: Optional[str], batch: bool):
    """
    Commit the changes in REPOSITORY with generated messages.
    """
    config = load_config(ctx)
    try:
        repo_path = RepoPath.parse(repository)
        model_name = ModelName.parse(model or config.model.name)
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(2)

    pipeline, _, generator = build_pipeline(config)
    with console.status("[bold green]Generating commit messages...[/bold green]"):
        result = asyncio.run(pipeline.process(repo_path, model_name, commit_individually=not batch))

    console.print(Panel(
        generator.formatter.render_summary(result).strip(),
        title="[bold cyan]Commit summary[/bold cyan]",
        border_style="red" if result.errors else "cyan",
        expand=False,
    ))
    if result.errors:
        sys.exit(1)


@cli.command("models")
@click.option("--check", "check_model", type=str, help="Only report whether this model is available")
@click.pass_context
def models(ctx, check_model: Optional[str]):
    """
    List the models served by the configured provider.
    """
    config = load_config(ctx)
    generator = CommitMessageGenerator(config)

    async def fetch():
        provider = generator.provider
        if not isinstance(provider, ModelLister):
            raise AICommitException(f"Provider '{config.model.provider}' cannot list models.")
        return await provider.list_models()

    try:
        names = asyncio.run(fetch())
    except AICommitException as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)

    if check_model:
        if check_model in names:
            console.print(f"[bold green]{check_model} is available[/bold green]")
        else:
            console.print(f"[yellow]{check_model} is not available[/yellow]")
            sys.exit(1)
        return

    table = Table(title=f"Models ({config.model.provider})")
    table.add_column("Name", style="cyan")
    for name in names:
        table.add_row(name)
    console.print(table)


if __name__ == "__main__":
    cli()
