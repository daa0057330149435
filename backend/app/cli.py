"""Terminal front-end for the moderated chat pipeline."""

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text

from .config import ChatConfig, get_settings
from .core.logging import configure_logging
from .orchestration.graph import ChatTurnResult, Orchestrator, TurnOutcome

console = Console()
err_console = Console(stderr=True)

EXIT_WORDS = {"exit", "quit"}


def _get_orchestrator(ctx: click.Context) -> Orchestrator:
    obj = ctx.ensure_object(dict)
    if "orchestrator" not in obj:
        try:
            settings = get_settings()
        except ValueError as e:
            raise click.ClickException(str(e)) from e
        configure_logging(settings.LOG_LEVEL, settings.LOG_FILE)
        obj["orchestrator"] = Orchestrator(ChatConfig.from_settings(settings))
    return obj["orchestrator"]


def _render(result: ChatTurnResult) -> bool:
    """Print one turn's result; return True if it was delivered."""
    if result.outcome is TurnOutcome.DELIVERED:
        if result.warning:
            console.print(f"[yellow]![/] Warning: {escape(result.warning)}")
        console.print(Panel(Text(result.text or ""), title="AI Response", expand=False))
        return True
    if result.outcome is TurnOutcome.BLOCKED:
        err_console.print(f"[red]x[/] {escape(result.detail or '')}")
    else:
        kind = result.error_kind.value if result.error_kind else "error"
        line = "[%s] %s" % (kind, result.detail or "")
        err_console.print(f"[red]x[/] {escape(line)}")
    return False


@click.group()
def cli():
    """Moderated Chat: denylist-screened proxy in front of a chat-completion API."""


# ── Ask ──────────────────────────────────────────────────────────────


@cli.command()
@click.argument("message")
@click.pass_context
def ask(ctx: click.Context, message: str):
    """Send a single MESSAGE and print the moderated reply.

    Exits non-zero when the message is blocked or the upstream call fails.
    """
    result = _get_orchestrator(ctx).run(message)
    if not _render(result):
        ctx.exit(1)


# ── Chat ─────────────────────────────────────────────────────────────


@cli.command()
@click.pass_context
def chat(ctx: click.Context):
    """Interactive loop. Type 'exit' or 'quit' (or send EOF) to leave."""
    orchestrator = _get_orchestrator(ctx)
    console.print("[bold blue]Moderated Chat[/] - ask me anything (type 'exit' to quit)\n")
    while True:
        try:
            message = click.prompt("You", default="", show_default=False)
        except (EOFError, click.exceptions.Abort):
            break
        if message.strip().lower() in EXIT_WORDS:
            break
        _render(orchestrator.run(message))
    console.print("Goodbye.")


# ── Serve ────────────────────────────────────────────────────────────


@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=3000, type=int, show_default=True, envvar="PORT")
@click.option("--reload", is_flag=True, help="Reload on code changes (development)")
def serve(host: str, port: int, reload: bool):
    """Run the HTTP API under uvicorn."""
    import uvicorn

    console.print(f"[bold blue]Moderated Chat[/] - serving on http://{host}:{port}")
    uvicorn.run("backend.app.main:app", host=host, port=port, reload=reload)


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
