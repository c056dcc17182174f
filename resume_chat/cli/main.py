"""
CLI interface for Resume Chat.

Runs the HTTP server and gives command-line access to the routing policy.
"""

import sys
from typing import Optional

import typer
import uvicorn
from rich.console import Console
from rich.table import Table

from resume_chat.api.app import build_router
from resume_chat.config.settings import configure_logging, get_settings

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context):
    """Resume Chat CLI."""
    if ctx.invoked_subcommand is None:
        console.print("Resume Chat - Use --help to see available commands")


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Interface to bind"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port to listen on"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Run the HTTP backend."""
    settings = get_settings()
    configure_logging(settings)
    bind_host = host or settings.host
    bind_port = port or settings.port
    console.print(f"[green]✓[/] Resume Chat backend on http://{bind_host}:{bind_port}")
    console.print(f"  Health check: http://{bind_host}:{bind_port}/health")
    console.print(f"  Chat endpoint: http://{bind_host}:{bind_port}/api/chat")
    uvicorn.run(
        "resume_chat.api.app:create_app",
        factory=True,
        host=bind_host,
        port=bind_port,
        reload=reload,
    )


@app.command()
def status():
    """Show the configured model and usage limits."""
    try:
        router = build_router(get_settings())
    except Exception as e:
        console.print(f"[red]Configuration error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    limits = router.governor.limits
    table = Table(title="Resume Chat Limits")
    table.add_column("Setting")
    table.add_column("Value", justify="right")
    table.add_row("Model", router.upstream.model)
    table.add_row("API key configured", "yes" if router.upstream.configured else "no")
    table.add_row("Daily requests", f"{limits.daily_request_limit:,}")
    table.add_row("Monthly requests", f"{limits.monthly_request_limit:,}")
    table.add_row("Max tokens/request", f"{limits.max_tokens_per_request:,}")
    table.add_row("Cost per 1K tokens", _format_currency(limits.cost_per_1k_tokens, places=4))
    table.add_row("Monthly cost limit", _format_currency(limits.monthly_cost_limit))
    table.add_row("Lifetime cost limit", _format_currency(limits.lifetime_cost_limit))
    console.print(table)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def ask(question: str = typer.Argument(..., help="Question about the resume")):
    """Answer one question the way the chat endpoint would."""
    question = question.strip()
    if not question:
        console.print("[red]Error:[/] question must not be empty")
        sys.exit(EXIT_CODE_FAIL)

    try:
        router = build_router(get_settings())
    except Exception as e:
        console.print(f"[red]Configuration error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    answer = router.route(question)
    console.print(answer.text, markup=False)
    console.print(f"\n[dim]Note: {answer.note}[/]")
    sys.exit(EXIT_CODE_PASS)


def _format_currency(amount: float, places: int = 2) -> str:
    """Format currency with proper symbols and formatting."""
    return f"${abs(amount):,.{places}f}"


if __name__ == "__main__":
    app()
