from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from pydantic import ValidationError

from eventmap.config import settings
from eventmap.errors import EventmapError
from eventmap.modules.alterations.service import alterations_by_unit, default_alterations, load_alterations_file
from eventmap.modules.ink.engine import load_engine_factory
from eventmap.modules.pipeline.io import load_trees, load_units, write_trees
from eventmap.modules.pipeline.service import run_pipeline
from eventmap.modules.tree.index import count_nodes, max_depth
from eventmap.modules.validation.engine import find_invalid_refs
from eventmap.utils.log import setup_logging

app = typer.Typer(help="Compile ink story bytecode into deduplicated event trees")


def _fail(exc: EventmapError) -> None:
    typer.echo(f"error [{exc.code}]: {exc.message}", err=True)
    raise typer.Exit(code=1) from exc


@app.command()
def build(
    events: Path | None = typer.Option(None, "--events", help="Units JSON file (defaults to settings)"),
    output: Path | None = typer.Option(None, "--output", help="Where to write the event trees"),
    engine: str | None = typer.Option(None, "--engine", help="Story engine factory as module:callable"),
    alterations: Path | None = typer.Option(None, "--alterations", help="Alterations JSON replacing the defaults"),
    skip_lookup: bool = typer.Option(False, "--skip-lookup", help="Do not fetch card/talent names"),
    log_file: Path | None = typer.Option(None, "--log-file", help="Also log to this file"),
    verbose: bool = typer.Option(False, "--verbose", help="Log debug output"),
) -> None:
    setup_logging(log_path=log_file or settings.log_path, level="DEBUG" if verbose else settings.log_level)
    events_path = events or settings.events_path
    output_path = output or settings.output_path
    alterations_path = alterations or settings.alterations_path
    try:
        engine_factory = load_engine_factory(engine or settings.story_engine_factory)
        units = load_units(events_path)
        entries = load_alterations_file(alterations_path) if alterations_path else default_alterations()
        trees, report = asyncio.run(
            run_pipeline(
                units,
                engine_factory=engine_factory,
                settings=settings,
                alterations=alterations_by_unit(entries),
                skip_lookup=skip_lookup,
            )
        )
    except EventmapError as exc:
        _fail(exc)
        return
    except ValidationError as exc:
        typer.echo(f"error [ALTERATIONS_INVALID]: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    write_trees(trees, output_path)
    typer.echo(f"trees: {len(trees)} (failed {len(report.failed)}, no content {report.empty})")
    typer.echo(f"nodes: {report.nodes_final} (built {report.nodes_built})")
    if report.failed:
        typer.echo(f"failed units: {', '.join(report.failed)}")
    if report.invalid_refs:
        typer.echo(f"invalid refs: {len(report.invalid_refs)}")
    typer.echo(f"written: {output_path}")


@app.command()
def check(output: Path = typer.Argument(..., help="Event trees JSON to validate")) -> None:
    try:
        trees = load_trees(output)
    except EventmapError as exc:
        _fail(exc)
        return
    invalid = []
    for tree in trees:
        if tree.root is not None:
            invalid.extend(find_invalid_refs(tree.root, unit_name=tree.name))
    for item in invalid:
        typer.echo(item.describe())
    if invalid:
        raise typer.Exit(code=1)
    typer.echo(f"ok: {len(trees)} trees, no invalid refs")


@app.command()
def stats(output: Path = typer.Argument(..., help="Event trees JSON to summarize")) -> None:
    try:
        trees = load_trees(output)
    except EventmapError as exc:
        _fail(exc)
        return
    total = 0
    for tree in trees:
        if tree.root is None:
            typer.echo(f"{tree.name}: empty")
            continue
        nodes = count_nodes(tree.root)
        total += nodes
        typer.echo(f"{tree.name}: nodes={nodes} depth={max_depth(tree.root)}")
    typer.echo(f"total: {len(trees)} trees, {total} nodes")


if __name__ == "__main__":
    app()
