"""Command-line interface for ucibridge."""

import time
from collections.abc import Callable
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from ucibridge import __version__
from ucibridge.core.configs import BridgeConfig, load_bridge_config
from ucibridge.core.utils.logging import setup_logging
from ucibridge.uci.events import EventKind
from ucibridge.uci.manager import EngineManager
from ucibridge.uci.messages import parse_info

app = typer.Typer(
    name="ucibridge",
    help="ucibridge: drive a UCI chess engine subprocess",
    add_completion=False,
)
console = Console()


def run_until(
    manager: EngineManager,
    done: Callable[[], bool],
    timeout: float,
    interval: float = 0.02,
) -> bool:
    """Tick the manager until `done()` is true or `timeout` seconds pass."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        manager.update()
        if done():
            return True
        time.sleep(interval)
    manager.update()
    return done()


def _build_config(
    engine: str | None,
    config: Path | None,
    overrides: list[str] | None,
    verbose: bool,
) -> BridgeConfig:
    cfg = load_bridge_config(config, overrides)
    if engine:
        cfg.engine.engine_path = engine
    if verbose:
        cfg.engine.enable_verbose_logging = True
        cfg.logging.level = "DEBUG"
    setup_logging(
        cfg.logging.level,
        cfg.logging.log_file,
        rotation=cfg.logging.rotation,
        retention=cfg.logging.retention,
    )
    return cfg


def _report_errors(manager: EngineManager) -> None:
    manager.on(
        EventKind.ENGINE_ERROR,
        lambda message: console.print(f"[red]error:[/red] {message}"),
    )
    manager.on(
        EventKind.ENGINE_WARNING,
        lambda message: console.print(f"[yellow]warning:[/yellow] {message}"),
    )


def _wait_ready(manager: EngineManager, timeout: float) -> None:
    run_until(
        manager,
        lambda: manager.is_ready or manager.protocol.handshake_failed or not manager.is_initialized,
        timeout,
    )
    if not manager.is_ready:
        console.print("[bold red]Engine did not become ready[/bold red]")
        raise typer.Exit(code=1)


@app.command()
def version() -> None:
    """Print version information."""
    console.print(f"[bold blue]ucibridge[/bold blue] v{__version__}")


@app.command()
def analyse(
    engine: str | None = typer.Option(None, "--engine", "-e", help="Engine executable or name"),
    fen: str = typer.Option("startpos", "--fen", help="Position to analyse (FEN or 'startpos')"),
    moves: str = typer.Option("", "--moves", help="Space-separated moves from the position"),
    movetime: int = typer.Option(0, "--movetime", "-t", help="Search time in ms (beats depth)"),
    depth: int = typer.Option(12, "--depth", "-d", help="Search depth when no movetime is given"),
    config: Path | None = typer.Option(None, "--config", "-c", help="YAML config file"),
    override: list[str] | None = typer.Option(
        None, "--set", help="Config override, e.g. handshake.uci_timeout=5"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Trace every UCI line"),
    timeout: float = typer.Option(60.0, "--timeout", help="Overall timeout in seconds"),
) -> None:
    """Start the engine, analyse one position and print the best move."""
    cfg = _build_config(engine, config, override, verbose)
    manager = EngineManager(cfg)
    _report_errors(manager)

    best: list[str] = []

    def show_info(line: str) -> None:
        info = parse_info(line)
        if info.depth is None or not info.pv:
            return
        if info.score_mate is not None:
            score = f"#{info.score_mate}"
        elif info.score_cp is not None:
            score = f"{info.score_cp / 100:+.2f}"
        else:
            score = "?"
        pv = " ".join(info.pv[:8])
        console.print(f"[dim]depth {info.depth:>3}  score {score:>7}  pv {pv}[/dim]")

    manager.on(EventKind.INFO_RECEIVED, show_info)
    manager.on(EventKind.BEST_MOVE_RECEIVED, best.append)

    with manager:
        manager.start()
        _wait_ready(manager, timeout)

        manager.set_position(fen, moves)
        manager.start_calculation(depth=depth, move_time_ms=movetime)
        if not run_until(manager, lambda: bool(best), timeout):
            manager.stop_calculation()
            run_until(manager, lambda: bool(best), cfg.engine.shutdown_grace_period)

        result = manager.protocol.last_best_move
        if not best or result is None:
            console.print("[bold red]No best move received[/bold red]")
            raise typer.Exit(code=1)

        body = f"[bold green]{result.move}[/bold green]"
        if result.ponder:
            body += f"  (ponder {result.ponder})"
        console.print(Panel(body, title="Best move", expand=False))


@app.command()
def selftest(
    engine: str | None = typer.Option(None, "--engine", "-e", help="Engine executable or name"),
    config: Path | None = typer.Option(None, "--config", "-c", help="YAML config file"),
    override: list[str] | None = typer.Option(None, "--set", help="Config override"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Trace every UCI line"),
    timeout: float = typer.Option(60.0, "--timeout", help="Overall timeout in seconds"),
) -> None:
    """Run the handshake and scripted communication test."""
    cfg = _build_config(engine, config, override, verbose)
    cfg.engine.auto_run_handshake_test = True
    manager = EngineManager(cfg)
    _report_errors(manager)

    outcome: dict[str, object] = {}
    manager.on(
        EventKind.COMMUNICATION_TEST_COMPLETE,
        lambda success, message: outcome.update(success=success, message=message),
    )

    with manager:
        manager.start()
        _wait_ready(manager, timeout)
        run_until(manager, lambda: bool(outcome) or not manager.is_initialized, timeout)

    if not outcome:
        console.print("[bold red]Communication test did not complete[/bold red]")
        raise typer.Exit(code=1)
    if outcome["success"]:
        console.print(f"[bold green]{outcome['message']}[/bold green]")
    else:
        console.print(f"[bold red]{outcome['message']}[/bold red]")
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
