# llm_rotator/cli.py
"""
CLI entry point for llm-rotator.

Available commands:
  llm-rotator models [--provider groq] [--all]
  llm-rotator status [--config rotator.yaml] [--watch] [--interval N]
  llm-rotator chat "PROMPT" [--model ID] [--strategy least-used] [--config rotator.yaml]

Requires: pip install "llm-rotator[cli]"
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Optional

try:
    import typer
    from rich.console import Console
    from rich.live import Live
    from rich.logging import RichHandler
    from rich.table import Table
except ImportError as exc:  # pragma: no cover
    raise ImportError(
        "CLI dependencies missing. Install with: pip install 'llm-rotator[cli]'"
    ) from exc

from .catalog import default_models
from .client import RotatorClient
from .config import RouterConfig
from .exceptions import RotatorError
from .state.budget import format_duration

app = typer.Typer(
    name="llm-rotator",
    help="Rotate chat requests across free-tier Groq and Cerebras models.",
    add_completion=False,
)
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
    )


def _load_config(config_path: Optional[str], **overrides: Any) -> RouterConfig:
    cfg = RouterConfig.from_yaml(config_path) if config_path else RouterConfig.from_env()
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if overrides:
        cfg = RouterConfig.from_dict({**cfg.model_dump(), **overrides})
    return cfg


def _limit(value: int | None) -> str:
    return f"{value:,}" if value is not None else "-"


def _build_status_table(status: list[dict[str, Any]]) -> Table:
    """Render model status as a Rich table."""
    table = Table(title="llm-rotator | Model Status", show_lines=True)
    table.add_column("Model", style="bold cyan", no_wrap=True)
    table.add_column("Provider")
    table.add_column("Requests")
    table.add_column("Tokens")
    table.add_column("Resets")
    table.add_column("Today")
    table.add_column("Uses")
    table.add_column("State")

    for entry in status:
        model = entry["model"]
        info = entry["rate_limit"]

        if entry["available"]:
            state = "[green]available[/green]"
        else:
            state = f"[red]{entry['reason']}[/red]"

        table.add_row(
            model.id,
            model.provider,
            f"{_limit(info.remaining_requests)}/{_limit(info.limit_requests)}",
            f"{_limit(info.remaining_tokens)}/{_limit(info.limit_tokens)}",
            info.reset_info,
            f"{info.requests_today} req, {info.tokens_today:,} tok",
            str(entry["usage_count"]),
            state,
        )

    return table


@app.command()
def models(
    provider: Optional[str] = typer.Option(None, "--provider", "-p", help="Only this provider"),
    show_all: bool = typer.Option(False, "--all", "-a", help="Include disabled models"),
) -> None:
    """List the built-in model catalog with its free-tier limits."""
    table = Table(title="llm-rotator | Model Catalog")
    table.add_column("Model", style="bold cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Provider")
    table.add_column("RPM")
    table.add_column("RPH")
    table.add_column("RPD")
    table.add_column("TPM")
    table.add_column("TPD")

    for model in default_models():
        if provider and model.provider != provider:
            continue
        if not model.enabled and not show_all:
            continue
        lim = model.limits
        table.add_row(
            model.id if model.enabled else f"[dim]{model.id}[/dim]",
            model.name,
            model.provider,
            _limit(lim.requests_per_minute),
            _limit(lim.requests_per_hour),
            _limit(lim.requests_per_day),
            _limit(lim.tokens_per_minute),
            _limit(lim.tokens_per_day),
        )

    console.print(table)


@app.command()
def status(
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to rotator.yaml"),
    watch: bool = typer.Option(False, "--watch", "-w", help="Live-refresh like htop"),
    interval: int = typer.Option(3, "--interval", "-i", help="Refresh interval in seconds"),
) -> None:
    """Show remaining requests, tokens and reset times per model."""
    try:
        client = RotatorClient(_load_config(config))
    except (RotatorError, ValueError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)

    if watch:
        with Live(console=console, refresh_per_second=1) as live:
            while True:
                try:
                    live.update(_build_status_table(client.status()))
                    time.sleep(interval)
                except KeyboardInterrupt:
                    break
    else:
        console.print(_build_status_table(client.status()))


async def _chat(client: RotatorClient, prompt: str, model: Optional[str]) -> None:
    async with client:
        result = await client.chat([{"role": "user", "content": prompt}], model=model)
        for skip in result.skipped:
            console.print(f"[yellow]skipped[/yellow] {skip}", highlight=False)
        console.print(f"[dim]{result.model.label}[/dim]")

        started = time.monotonic()
        async for chunk in result:
            console.print(chunk, end="", markup=False, highlight=False)
        console.print()

        usage = await result.stream.usage
        console.print(
            f"[dim]{usage.input_tokens} in / {usage.output_tokens} out, "
            f"{format_duration(time.monotonic() - started)}[/dim]"
        )


@app.command()
def chat(
    prompt: str = typer.Argument(..., help="User message to send"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Use this model id"),
    strategy: Optional[str] = typer.Option(
        None, "--strategy", "-s", help="round-robin | random | least-used"
    ),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to rotator.yaml"),
) -> None:
    """Send one prompt to the next available model and stream the answer."""
    try:
        client = RotatorClient(_load_config(config, strategy=strategy))
        asyncio.run(_chat(client, prompt, model))
    except (RotatorError, ValueError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)
