"""bufrank CLI — record visits, rank files, manage per-project histories."""

from __future__ import annotations

import contextlib
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, get_origin

import typer
from pydantic import BaseModel
from rich import box
from rich.console import Console
from rich.table import Table

from bufrank.config import (
    BufrankConfig,
    DisplayConfig,
    ProjectConfig,
    ScoringConfig,
    loadConfig,
)
from bufrank.hooks import BUF_ENTER, DIR_CHANGED, EVENTS, HookRegistry, registerHooks
from bufrank.models import BufferInfo, RankedEntry
from bufrank.service import (
    svcPrune,
    svcRankedList,
    svcRecordAccess,
    svcResetScore,
    svcSave,
    svcScore,
)
from bufrank.state import AppState, createAppState, runDeferred

logger = logging.getLogger("bufrank")

_cli = typer.Typer(
    name="bufrank",
    help="Frecency ranking for editor buffers, with per-project history.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
_config_cli = typer.Typer(help="Read/write [bold]~/.bufrank/config.json[/bold].")
_cli.add_typer(_config_cli, name="config")

_console = Console()


# ============================================================
# Helpers
# ============================================================


def _checkFormat(format: str) -> None:
    if format not in ("human", "json"):
        raise typer.BadParameter(f"Invalid format {format!r}; choose human or json")


def _getState(cwd: str | None) -> AppState:
    cfg = loadConfig()
    if logger.level == logging.NOTSET:
        logger.setLevel(cfg.log_level.upper())
    return createAppState(cfg, cwd)


def _absPath(path: str, cwd: str | None) -> str:
    """Histories are keyed by absolute path."""
    if not path:
        return path
    p = Path(path).expanduser()
    if not p.is_absolute():
        p = Path(cwd or os.getcwd()) / p
    # Symlinks stay unresolved so keys match the paths the editor reports
    return os.path.normpath(p)


def _displayPath(path: str, cwd: str | None, shorten: bool) -> str:
    """Relative to cwd when inside it, else with ~ for home."""
    if not shorten:
        return path
    p = Path(path)
    with contextlib.suppress(ValueError):
        return str(p.relative_to(cwd or os.getcwd()))
    with contextlib.suppress(ValueError):
        return str(Path("~") / p.relative_to(Path.home()))
    return path


def _renderRanked(entries: list[RankedEntry], display: DisplayConfig, cwd: str | None) -> None:
    if not entries:
        _console.print("[dim]No tracked files.[/dim]")
        return
    t = Table(box=box.SIMPLE, padding=(0, 1))
    t.add_column("#", style="dim", justify="right")
    if display.show_scores:
        t.add_column("score", justify="right")
    t.add_column("file")
    t.add_column("", style="yellow")
    for i, e in enumerate(entries, start=1):
        row = [str(i)]
        if display.show_scores:
            row.append(display.score_format % e.score)
        row.append(_displayPath(e.path, cwd, display.shorten_paths))
        row.append("[+]" if e.modified else "")
        t.add_row(*row)
    _console.print(t)


# ============================================================
# Config CLI helpers
# ============================================================


_SECTIONS: dict[str, type[BaseModel]] = {
    "scoring": ScoringConfig,
    "project": ProjectConfig,
    "display": DisplayConfig,
}


def _fmtVal(v: Any) -> str:
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, list):
        return ", ".join(str(x) for x in v)
    return str(v)


def _fieldType(dotpath: str) -> Any:
    """Annotation of a settable key: "log_level" or "<section>.<field>". None if unknown."""
    parts = dotpath.split(".")
    if len(parts) == 1:
        model: type[BaseModel] = BufrankConfig
    elif len(parts) == 2 and parts[0] in _SECTIONS:
        model = _SECTIONS[parts[0]]
    else:
        return None
    f = model.model_fields.get(parts[-1])
    if f is None or (model is BufrankConfig and parts[-1] in _SECTIONS):
        return None
    return f.annotation


def _typeName(ann: Any) -> str:
    return "list[str]" if get_origin(ann) is list else ann.__name__


def _parseValue(value: str, ann: Any) -> Any:
    """Coerce CLI text to the field's type. Lists are comma-separated."""
    if get_origin(ann) is list:
        return [v.strip() for v in value.split(",") if v.strip()]
    if ann is bool:
        if value.lower() in ("true", "yes", "1"):
            return True
        if value.lower() in ("false", "no", "0"):
            return False
        raise ValueError(f"Expected bool, got {value!r}")
    if ann in (int, float):
        return ann(value)
    return value


def _renderSection(title: str, current: BaseModel, defaults: BaseModel, keys: list[str]) -> None:
    """Key/value table for one config section; values differing from defaults in yellow."""
    _console.print(f"\n[bold]{title}[/bold]")
    t = Table(show_header=False, box=box.SIMPLE, padding=(0, 1))
    t.add_column("key", style="dim")
    t.add_column("val")
    for key in keys:
        val = getattr(current, key)
        fmt = _fmtVal(val)
        if val != getattr(defaults, key):
            fmt = f"[yellow]{fmt}[/yellow]"
        t.add_row(key, fmt)
    _console.print(t)


def _fail(format: str, message: str) -> None:
    if format == "json":
        print(json.dumps({"ok": False, "error": message}))
    else:
        _console.print(f"[red]Error:[/red] {message}")


# ============================================================
# CLI (typer)
# ============================================================


@_cli.callback()
def _default(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging to stderr"),
) -> None:
    """Frecency ranking for editor buffers."""
    logger.setLevel(logging.DEBUG if verbose else logging.NOTSET)
    if verbose:
        logging.basicConfig(format="%(name)s | %(message)s")


@_cli.command()
def record(
    path: str = typer.Argument(help="File that was visited"),
    cwd: str | None = typer.Option(None, "--cwd", help="Working directory (default: current)"),
    format: str = typer.Option("human", "--format", "-f", help="Output format: human|json"),
) -> None:
    """Record one visit to a file and save the project history."""
    _checkFormat(format)
    state = _getState(cwd)
    result = svcRecordAccess(state, _absPath(path, cwd))
    result["saved"] = svcSave(state) if result["recorded"] else False
    if format == "json":
        print(json.dumps(result))
        return
    if not result["recorded"]:
        _console.print("[yellow]Nothing recorded[/yellow] (empty path)")
        return
    _console.print(
        f"[green]Recorded[/green] {result['path']}  "
        f"count={result['count']} score={result['total_score']:.4f}"
    )


@_cli.command("list")
def list_files(
    paths: list[str] | None = typer.Argument(
        None, help="Candidate files (default: all tracked)"
    ),
    limit: int = typer.Option(0, "--limit", "-n", help="Show at most N entries (0 = all)"),
    cwd: str | None = typer.Option(None, "--cwd", help="Working directory (default: current)"),
    format: str = typer.Option("human", "--format", "-f", help="Output format: human|json"),
) -> None:
    """Rank files by frecency, highest first."""
    _checkFormat(format)
    state = _getState(cwd)
    buffers = None
    if paths:
        buffers = [BufferInfo(id=i, path=_absPath(p, cwd)) for i, p in enumerate(paths, start=1)]
    entries = svcRankedList(state, buffers)
    if limit > 0:
        entries = entries[:limit]
    if format == "json":
        print(json.dumps([e.model_dump() for e in entries]))
        return
    _renderRanked(entries, state.config.display, cwd)


@_cli.command()
def score(
    path: str = typer.Argument(help="File to look up"),
    cwd: str | None = typer.Option(None, "--cwd", help="Working directory (default: current)"),
    format: str = typer.Option("human", "--format", "-f", help="Output format: human|json"),
) -> None:
    """Show the cached score of one file."""
    _checkFormat(format)
    state = _getState(cwd)
    result = svcScore(state, _absPath(path, cwd))
    if format == "json":
        print(json.dumps(result))
        return
    _console.print(
        f"[bold]{result['path']}[/bold]  score={result['score']:.4f} "
        f"count={result['count']} last_access={result['last_access']}"
    )


@_cli.command()
def reset(
    path: str = typer.Argument(help="File whose history to zero"),
    cwd: str | None = typer.Option(None, "--cwd", help="Working directory (default: current)"),
    format: str = typer.Option("human", "--format", "-f", help="Output format: human|json"),
) -> None:
    """Zero a file's access history."""
    _checkFormat(format)
    state = _getState(cwd)
    target = _absPath(path, cwd)
    was_reset = svcResetScore(state, target)
    if format == "json":
        print(json.dumps({"reset": was_reset, "path": target}))
        return
    if was_reset:
        _console.print(f"[green]Reset[/green] {target}")
    else:
        _console.print(f"[dim]No history for[/dim] {target}")


@_cli.command()
def prune(
    max_count: int | None = typer.Option(
        None, "--max", min=0, help="Project histories to keep (default: project.max_histories)"
    ),
    cwd: str | None = typer.Option(None, "--cwd", help="Working directory (default: current)"),
    format: str = typer.Option("human", "--format", "-f", help="Output format: human|json"),
) -> None:
    """Delete the least recently used project histories."""
    _checkFormat(format)
    state = _getState(cwd)
    removed = svcPrune(state, max_count)
    if format == "json":
        print(json.dumps({"ok": True, "removed": removed}))
    else:
        _console.print(f"Removed [bold]{removed}[/bold] project histories")


@_cli.command()
def where(
    cwd: str | None = typer.Option(None, "--cwd", help="Working directory (default: current)"),
    format: str = typer.Option("human", "--format", "-f", help="Output format: human|json"),
) -> None:
    """Show the detected project root and its history file."""
    _checkFormat(format)
    state = _getState(cwd)
    ctx = state.context
    if format == "json":
        print(json.dumps({**ctx.model_dump(), "records": len(state.store)}))
        return
    _console.print(f"[bold]project[/bold]  {ctx.project_root or '[dim](none, using global)[/dim]'}")
    _console.print(f"[bold]history[/bold]  {ctx.storage_path}")
    _console.print(f"[bold]records[/bold]  {len(state.store)}")


@_cli.command()
def hook(
    event: str = typer.Argument(help=f"Event: {'|'.join(EVENTS)}"),
    cwd: str | None = typer.Option(None, "--cwd", help="Working directory (default: payload cwd)"),
) -> None:
    """Handle an editor lifecycle event. Reads a JSON payload from stdin."""
    if event not in EVENTS:
        raise typer.BadParameter(f"Unknown event {event!r}; choose {'|'.join(EVENTS)}")
    raw = sys.stdin.read()
    try:
        data = json.loads(raw) if raw.strip() else {}
    except json.JSONDecodeError as e:
        print(json.dumps({"ok": False, "error": f"Invalid JSON payload: {e}"}))
        raise typer.Exit(1) from e
    if not isinstance(data, dict):
        print(json.dumps({"ok": False, "error": "Payload must be a JSON object"}))
        raise typer.Exit(1)

    if data.get("path"):
        data["path"] = _absPath(data["path"], cwd or data.get("cwd"))
    # dir_changed starts from the old project; the payload cwd is the destination
    if event == DIR_CHANGED:
        start = cwd or data.get("old_cwd")
    else:
        start = cwd or data.get("cwd")
    state = _getState(start)
    registry = registerHooks(HookRegistry(), state)
    results = registry.dispatch(event, data)
    runDeferred(state)
    # Each invocation is its own short session
    if event == BUF_ENTER:
        svcSave(state)
    print(json.dumps(results[0] if results else {}))


@_config_cli.command("list")
def config_list(
    format: str = typer.Option("human", "--format", "-f", help="Output format: human|json"),
) -> None:
    """Pretty-print the current config grouped by section."""
    _checkFormat(format)
    cfg = loadConfig()

    if format == "json":
        print(json.dumps(cfg.model_dump()))
        raise typer.Exit()

    defaults = BufrankConfig()
    _renderSection("General", cfg, defaults, ["data_dir", "log_level"])
    for name, model in _SECTIONS.items():
        _renderSection(
            name.capitalize(), getattr(cfg, name), getattr(defaults, name), list(model.model_fields)
        )


@_config_cli.command("get")
def config_get(
    dotpath: str = typer.Argument(help="Dot-separated key, e.g. scoring.recency_decay"),
    format: str = typer.Option("human", "--format", "-f", help="Output format: human|json"),
) -> None:
    """Get a single config value."""
    _checkFormat(format)
    node: Any = loadConfig().model_dump()
    for part in dotpath.split("."):
        if isinstance(node, dict) and part in node:
            node = node[part]
        else:
            _fail(format, f"Key not found: {dotpath}")
            raise typer.Exit(1)
    ann = _fieldType(dotpath)
    if format == "json":
        type_name = _typeName(ann) if ann else "unknown"
        print(json.dumps({"key": dotpath, "value": node, "type": type_name}))
    else:
        type_hint = f"  [dim]({_typeName(ann)})[/dim]" if ann else ""
        _console.print(f"[bold]{dotpath}[/bold] = {_fmtVal(node)}{type_hint}")


@_config_cli.command("set")
def config_set(
    dotpath: str = typer.Argument(help="Dot-separated key path"),
    value: str = typer.Argument(help="Value (type-coerced via schema; lists comma-separated)"),
    format: str = typer.Option("human", "--format", "-f", help="Output format: human|json"),
) -> None:
    """Set a config value."""
    _checkFormat(format)
    from bufrank.config import CONFIG_PATH

    ann = _fieldType(dotpath)
    if ann is None:
        _fail(format, f"Key not found: {dotpath}")
        raise typer.Exit(1)
    try:
        coerced = _parseValue(value, ann)
    except ValueError as e:
        _fail(format, str(e))
        raise typer.Exit(1) from e

    raw: dict = {}
    if CONFIG_PATH.exists():
        with contextlib.suppress(json.JSONDecodeError):
            raw = json.loads(CONFIG_PATH.read_text())

    parts = dotpath.split(".")
    node = raw
    for part in parts[:-1]:
        if part not in node or not isinstance(node[part], dict):
            node[part] = {}
        node = node[part]
    node[parts[-1]] = coerced

    try:
        BufrankConfig(**raw)
    except Exception as e:
        _fail(format, str(e))
        raise typer.Exit(1) from e

    CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
    CONFIG_PATH.write_text(json.dumps(raw, indent=2) + "\n")
    if format == "json":
        print(json.dumps({"ok": True, "key": dotpath, "value": coerced}))
    else:
        _console.print(f"[green]Set[/green] {dotpath} = {coerced!r}")


def main() -> None:
    _cli()


if __name__ == "__main__":
    main()
