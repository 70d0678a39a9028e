from __future__ import annotations
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional
import typer
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from .config import setup_logging
from .markup import render
from .models import Note
from .storage import decode_notes, encode_notes
from .store import NoteStore

app = typer.Typer(help="Simple Notes — local notes with pinning, search and preview")
console = Console()


@app.callback()
def _boot(log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG|INFO|WARNING|ERROR")):
    setup_logging(log_level)


@contextmanager
def _store() -> Iterator[NoteStore]:
    # one store per invocation; closing flushes the pending write
    with NoteStore.open() as store:
        yield store


def _require(store: NoteStore, identifier: str) -> Note:
    n = store.get(identifier)
    if not n:
        console.print(f"[red]Not found[/]: {identifier}")
        raise typer.Exit(1)
    return n


@app.command()
def add(
    title: str = typer.Option("", "--title", "-t"),
    content: str = typer.Option("", "--content", "-c"),
):
    with _store() as store:
        n = store.create_note()
        if title or content:
            store.update_note(n.id, title=title, content=content)
        n = store.get(n.id)
    console.print(f"[green]Created[/] {n.id}: {n.display_title}")


@app.command("list")
def _list(search: Optional[str] = typer.Option(None, "--search", "-s")):
    with _store() as store:
        store.set_search_query(search)
        notes = store.visible_notes()
    table = Table(title="Simple Notes")
    table.add_column("ID", style="cyan")
    table.add_column("Title", style="bold")
    table.add_column("Pinned")
    table.add_column("Updated")
    for n in notes:
        table.add_row(
            n.id, n.display_title,
            "📌" if n.pinned else "",
            n.updated_at.isoformat(timespec="minutes"),
        )
    console.print(table)
    if not notes:
        console.print("[dim]No notes yet. Create your first note![/]")


@app.command()
def show(identifier: str):
    with _store() as store:
        n = _require(store, identifier)
    console.rule(f"{'📌 ' if n.pinned else ''}{n.display_title}")
    console.print(n.content or "[dim]<empty>[/]", markup=not n.content, highlight=False)


@app.command()
def preview(identifier: str):
    with _store() as store:
        n = _require(store, identifier)
    console.rule(n.display_title)
    console.print(Syntax(render(n.content), "html", word_wrap=True))


@app.command()
def edit(
    identifier: str,
    title: Optional[str] = typer.Option(None, "--title", "-t"),
    content: Optional[str] = typer.Option(None, "--content", "-c"),
    color: Optional[str] = typer.Option(None, "--color"),
):
    changes = {k: v for k, v in {"title": title, "content": content, "color": color}.items() if v is not None}
    with _store() as store:
        _require(store, identifier)
        store.update_note(identifier, changes)
        n = store.get(identifier)
    console.print(f"[green]Updated[/] {n.id}: {n.display_title}")


@app.command()
def pin(identifier: str):
    with _store() as store:
        _require(store, identifier)
        store.toggle_pin(identifier)
        n = store.get(identifier)
    if n.pinned:
        console.print(f"[green]Pinned[/] {n.id}: {n.display_title}")
    else:
        console.print(f"[yellow]Unpinned[/] {n.id}: {n.display_title}")


@app.command()
def delete(identifier: str, yes: bool = typer.Option(False, "--yes", "-y", help="skip confirmation")):
    with _store() as store:
        n = _require(store, identifier)
        if not yes and not typer.confirm(f"Delete '{n.display_title}'? This cannot be undone."):
            console.print("[dim]Kept[/]")
            return
        store.delete_note(identifier)
    console.print(f"[red]Deleted[/]: {identifier}")


@app.command()
def save():
    with _store() as store:
        ok = store.manual_save()
    if ok:
        console.print(f"[green]Saved[/] {len(store.notes)} notes")
    else:
        console.print("[red]Save failed[/] (see log)")
        raise typer.Exit(1)


@app.command()
def export(to: Path = typer.Option(..., "--to")):
    with _store() as store:
        notes = store.notes
    to.write_text(encode_notes(notes), encoding="utf-8")
    console.print(f"[green]Exported[/] {len(notes)} notes → {to}")


@app.command("import")
def import_(from_: Path = typer.Option(..., "--from", exists=True, dir_okay=False, readable=True)):
    try:
        raw = from_.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        console.print(f"[red]Cannot import[/]: {from_} is not UTF-8 text")
        raise typer.Exit(1)
    result = decode_notes(raw)
    if not result.ok:
        console.print(f"[red]Cannot import[/]: {result.error}")
        raise typer.Exit(1)
    with _store() as store:
        added = store.import_notes(result.notes)
    console.print(f"[green]Imported[/] {added} notes")
    if result.skipped:
        console.print(f"[yellow]Skipped[/] {result.skipped} invalid records")


def main():
    app()


if __name__ == "__main__":
    main()
