"""Command-line interface for Lumen.

Thin layer over :class:`lumen.core.service.LumenService`; classified errors
are printed with their remediation hint and mapped to stable exit codes.
"""

import asyncio
import json
import mimetypes
import sys
from pathlib import Path
from typing import Any, Callable, Coroutine, Dict, List, Optional, Sequence, TypeVar

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from lumen import __version__
from lumen.core.config import ConfigManager
from lumen.core.errors import LumenError
from lumen.core.service import LumenService
from lumen.core.types import Attachment, ModelDescriptor, ScanResult
from lumen.utils.formatting import format_bytes, format_date
from lumen.utils.log import get_logger, init_logger, mask_secret

console = Console()
logger = get_logger()

T = TypeVar("T")


def _build_service() -> LumenService:
    return LumenService(ConfigManager().get_settings())


def _service(ctx: click.Context) -> LumenService:
    if ctx.obj is None:
        ctx.obj = _build_service()
    return ctx.obj


def _fail(exc: LumenError) -> None:
    console.print(f"[red]Error: {escape(exc.message)}[/red]")
    if exc.remediation:
        console.print(f"[dim]{escape(exc.remediation)}[/dim]")
    logger.debug(
        "[cli] Command failed",
        extra={"error_code": exc.error_code.value, "exit_code": exc.exit_code},
    )
    sys.exit(exc.exit_code)


def _call(fn: Callable[[], T]) -> T:
    try:
        return fn()
    except LumenError as exc:
        _fail(exc)
        raise


def _run(make_coro: Callable[[], Coroutine[Any, Any, T]]) -> T:
    return _call(lambda: asyncio.run(make_coro()))


def _models_table(title: str, models: Sequence[ModelDescriptor]) -> Table:
    table = Table(title=title)
    table.add_column("Model")
    table.add_column("Name")
    table.add_column("Size", justify="right")
    table.add_column("Modified")
    for model in models:
        table.add_row(
            escape(model.id),
            escape(model.display_name if model.display_name != model.id else ""),
            format_bytes(model.size_bytes),
            format_date(model.last_modified),
        )
    return table


def _read_attachment(path: Path) -> Attachment:
    mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    data = path.read_bytes()
    try:
        text: Optional[str] = data.decode("utf-8")
    except UnicodeDecodeError:
        text = None
    return Attachment(name=path.name, mime_type=mime_type, text_content=text)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--log-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Also write a structured debug log to this directory",
)
@click.pass_context
def cli(ctx: click.Context, log_dir: Optional[Path]) -> None:
    """Lumen - discover, configure and chat with local and cloud LLM providers."""
    if log_dir is not None:
        init_logger(log_dir)


@cli.command(name="providers")
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of a table")
@click.pass_context
def providers_cmd(ctx: click.Context, as_json: bool) -> None:
    """List the providers Lumen can talk to"""
    service = _service(ctx)
    providers = service.list_providers()
    if as_json:
        click.echo(json.dumps([p.model_dump(mode="json") for p in providers], indent=2))
        return
    table = Table(title="Providers")
    table.add_column("Id")
    table.add_column("Name")
    table.add_column("Class")
    table.add_column("Endpoint")
    for provider in providers:
        table.add_row(
            provider.id,
            provider.display_name,
            provider.provider_class.value,
            service.settings.endpoint_for(provider.id),
        )
    console.print(table)


@cli.command(name="scan")
@click.argument("provider", required=False)
@click.option("--force", is_flag=True, help="Bypass any HTTP caches between Lumen and the runtime")
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of tables")
@click.pass_context
def scan_cmd(ctx: click.Context, provider: Optional[str], force: bool, as_json: bool) -> None:
    """Scan local runtimes for models (all of them when PROVIDER is omitted)"""
    service = _service(ctx)
    results: Dict[str, ScanResult]
    if provider:
        result = _run(lambda: service.scan_local_models(provider, force_refresh=force))
        results = {provider.strip().lower(): result}
    else:
        results = _run(lambda: service.scan_all_local_models(force_refresh=force))

    if as_json:
        click.echo(
            json.dumps({pid: r.model_dump(mode="json") for pid, r in results.items()}, indent=2)
        )
    else:
        for provider_id, result in results.items():
            if result.success:
                console.print(_models_table(provider_id, result.models))
            else:
                console.print(f"[yellow]{provider_id}:[/yellow] {escape(result.error or '')}")

    if provider and not all(r.success for r in results.values()):
        sys.exit(1)


@cli.command(name="models")
@click.argument("provider")
@click.option("--api-key", default=None, help="Key to use instead of the stored one")
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of a table")
@click.pass_context
def models_cmd(ctx: click.Context, provider: str, api_key: Optional[str], as_json: bool) -> None:
    """List the models a cloud provider offers"""
    service = _service(ctx)
    models = _run(lambda: service.list_cloud_models(provider, api_key))
    if as_json:
        click.echo(json.dumps([m.model_dump(mode="json") for m in models], indent=2))
        return
    console.print(_models_table(provider, models))


@cli.group(name="key")
def key_group() -> None:
    """Manage cloud provider API keys"""


@key_group.command(name="set")
@click.argument("provider")
@click.argument("key", required=False)
@click.option("--test", "test_first", is_flag=True, help="Validate the key before saving it")
@click.pass_context
def key_set_cmd(ctx: click.Context, provider: str, key: Optional[str], test_first: bool) -> None:
    """Store an API key (prompted for when KEY is omitted)"""
    service = _service(ctx)
    if key is None:
        key = click.prompt("API key", hide_input=True)
    if test_first:
        result = _run(lambda: service.test_cloud_connection(provider, key))
        console.print(f"[green]Key accepted[/green] ({result.model_count} models)")
    _call(lambda: service.save_api_key(provider, key))
    console.print(f"Saved API key for {escape(provider)}: {mask_secret(key)}")


@key_group.command(name="show")
@click.argument("provider")
@click.pass_context
def key_show_cmd(ctx: click.Context, provider: str) -> None:
    """Show the stored key, masked"""
    key = _call(lambda: _service(ctx).get_api_key(provider))
    console.print(mask_secret(key) if key else "Not set")


@key_group.command(name="clear")
@click.argument("provider")
@click.pass_context
def key_clear_cmd(ctx: click.Context, provider: str) -> None:
    """Remove the stored key"""
    _call(lambda: _service(ctx).clear_api_key(provider))
    console.print(f"Cleared API key for {escape(provider)}")


@cli.group(name="config")
def config_group() -> None:
    """Show and edit per-model generation parameters"""


@config_group.command(name="show")
@click.argument("provider")
@click.argument("model")
@click.pass_context
def config_show_cmd(ctx: click.Context, provider: str, model: str) -> None:
    """Print the effective config as JSON"""
    config = _call(lambda: _service(ctx).get_model_config(provider, model))
    click.echo(config.model_dump_json(indent=2))


@config_group.command(name="set")
@click.argument("provider")
@click.argument("model")
@click.option("--temperature", type=float)
@click.option("--top-p", type=float)
@click.option("--top-k", type=int)
@click.option("--repeat-penalty", type=float)
@click.option("--num-ctx", type=int)
@click.option("--stop", multiple=True, help="Stop sequence; repeat for several")
@click.pass_context
def config_set_cmd(
    ctx: click.Context,
    provider: str,
    model: str,
    temperature: Optional[float],
    top_p: Optional[float],
    top_k: Optional[int],
    repeat_penalty: Optional[float],
    num_ctx: Optional[int],
    stop: Sequence[str],
) -> None:
    """Update one or more parameters, keeping the rest"""
    service = _service(ctx)
    current = _call(lambda: service.get_model_config(provider, model))
    updates: Dict[str, Any] = {
        "temperature": temperature,
        "top_p": top_p,
        "top_k": top_k,
        "repeat_penalty": repeat_penalty,
        "num_ctx": num_ctx,
    }
    merged = current.model_dump()
    merged.update({name: value for name, value in updates.items() if value is not None})
    if stop:
        merged["stop"] = list(stop)
    ack = _call(lambda: service.save_model_config(provider, model, merged))
    console.print(f"Config {ack} for {escape(provider)}/{escape(model)}")


@config_group.command(name="reset")
@click.argument("provider")
@click.argument("model")
@click.pass_context
def config_reset_cmd(ctx: click.Context, provider: str, model: str) -> None:
    """Drop the saved config and go back to the provider defaults"""
    removed = _call(lambda: _service(ctx).reset_model_config(provider, model))
    if removed:
        console.print(f"Reset {escape(provider)}/{escape(model)} to defaults")
    else:
        console.print(f"{escape(provider)}/{escape(model)} already uses defaults")


@cli.command(name="chat")
@click.argument("provider")
@click.argument("model")
@click.argument("message")
@click.option(
    "--attach",
    "attachments",
    multiple=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="File to append to the message; repeat for several",
)
@click.pass_context
def chat_cmd(
    ctx: click.Context, provider: str, model: str, message: str, attachments: List[Path]
) -> None:
    """Send MESSAGE to MODEL and print the reply"""
    service = _service(ctx)
    files = [_read_attachment(path) for path in attachments]
    reply = _run(lambda: service.chat_with_model(provider, model, message, files))
    click.echo(reply)


def main() -> None:
    """Main entry point."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
