"""Command-line interface for Blocksmith."""

import json
import logging
import threading
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError

from blocksmith.code_generator import CodeGeneratorAgent
from blocksmith.components.models import ModelRegistry
from blocksmith.components.types import GenerationRequest, TargetProfile
from blocksmith.config import load_settings
from blocksmith.gateway import CancelToken, GenerationCancelled, LangChainGateway, TransportError
from blocksmith.validator import validate as validate_code


def setup_logging(log_level: str) -> None:
    """Set up logging configuration."""
    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {log_level}")

    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


TARGET_CHOICE = click.Choice([t.value for t in TargetProfile], case_sensitive=False)


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default="WARNING",
    help="Set the logging level.",
)
@click.option("--config", "config_path", type=click.Path(path_type=Path), default=None, help="Provider config YAML.")
@click.pass_context
def cli(ctx: click.Context, log_level: str, config_path: Optional[Path]) -> None:
    """Blocksmith - block-safe MakeCode generation.

    Generate MakeCode programs that decompile to blocks, or check existing code.
    """
    setup_logging(log_level)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


def _registry(ctx: click.Context) -> ModelRegistry:
    if "registry" not in ctx.obj:
        try:
            ctx.obj["registry"] = ModelRegistry(load_settings(ctx.obj["config_path"]))
        except (FileNotFoundError, ValueError) as e:
            raise click.ClickException(str(e)) from e
    return ctx.obj["registry"]


@cli.command()
@click.argument("instruction", required=True)
@click.option("--target", type=TARGET_CHOICE, default=TargetProfile.MICROBIT.value, show_default=True)
@click.option("--provider", default=None, help="Provider override.")
@click.option("--model", default=None, help="Model override.")
@click.option("--code-file", type=click.File("r"), default=None, help="Code currently in the editor.")
@click.option("--page-error", "page_errors", multiple=True, help="Editor diagnostic (repeatable).")
@click.pass_context
def generate(
    ctx: click.Context,
    instruction: str,
    target: str,
    provider: Optional[str],
    model: Optional[str],
    code_file,
    page_errors: tuple[str, ...],
):
    """Generate block-safe code for INSTRUCTION."""
    registry = _registry(ctx)
    agent = CodeGeneratorAgent.from_settings(registry.settings, LangChainGateway(registry))
    try:
        request = GenerationRequest(
            target=target,
            instruction=instruction,
            existing_code=code_file.read() if code_file else "",
            page_errors=list(page_errors),
            provider_override=provider,
            model_override=model,
        )
    except ValidationError as e:
        raise click.ClickException(f"Invalid request: {e}") from e

    cancel_token = CancelToken()
    outcome = {}

    def run():
        try:
            outcome["result"] = agent.generate(request, cancel_token=cancel_token)
        except Exception as e:
            outcome["error"] = e

    worker = threading.Thread(target=run, daemon=True)
    worker.start()
    try:
        while worker.is_alive():
            worker.join(timeout=0.2)
    except KeyboardInterrupt:
        cancel_token.cancel()
        worker.join()

    error = outcome.get("error")
    if isinstance(error, GenerationCancelled):
        click.echo("Cancelled.", err=True)
        ctx.exit(130)
    if error is not None:
        click.echo(f"Error: {error}", err=True)
        ctx.exit(1)
    click.echo(json.dumps(outcome["result"].model_dump(), indent=2))


@cli.command()
@click.argument("source", type=click.File("r"))
@click.option("--target", type=TARGET_CHOICE, default=TargetProfile.MICROBIT.value, show_default=True)
@click.pass_context
def validate(ctx: click.Context, source, target: str):
    """Check whether SOURCE decompiles to blocks for TARGET."""
    result = validate_code(source.read(), TargetProfile.resolve(target))
    click.echo(json.dumps(result.model_dump(), indent=2))
    if not result.compliant:
        ctx.exit(1)


@cli.group()
def provider():
    """Inspect provider configuration."""
    pass


@provider.command(name="list")
@click.pass_context
def list_providers(ctx: click.Context):
    """List enabled providers."""
    providers = _registry(ctx).list_providers()

    max_name_length = max(len(name) for name in providers)

    click.echo("\nEnabled Providers:")
    click.echo("=" * (max_name_length + 40))
    for name, info in providers.items():
        marker = " (default)" if info["default"] else ""
        click.echo(f"{name:<{max_name_length}}    {info['default_model']}{marker}")


if __name__ == "__main__":
    cli()
