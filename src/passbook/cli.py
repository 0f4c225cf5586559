"""passbook — a local credential book for the command line.

Commands
--------
  init      Create the database
  add       Add an entry
  get       Show one entry (password masked unless --show)
  list      List entries in a rich table, with search and sorting
  update    Change fields on an existing entry
  delete    Remove an entry
  generate  Generate random passwords
  export    Dump entries to JSON or CSV (plaintext — handle with care)
  import    Load entries from a JSON export
  info      Show database metadata
"""

from __future__ import annotations

import csv
import json
import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated, Iterator, Optional

import typer
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

from . import __version__
from .config import get_db_path
from .models import CredentialRecord, DisplayRecord, SortField, SortOrder
from .passwords import PASSWORD_LENGTH, generate_password
from .session import FormSession
from .store import RecordRepository, SqliteClient, StorageError

# ---------------------------------------------------------------------------
# App & consoles
# ---------------------------------------------------------------------------

_THEME = Theme(
    {
        "success": "bold green",
        "warning": "bold yellow",
        "danger": "bold red",
        "muted": "dim",
        "label": "cyan",
        "highlight": "bold white",
    }
)

console = Console(theme=_THEME)
err = Console(stderr=True, theme=_THEME)

app = typer.Typer(
    name="passbook",
    help="[bold cyan]passbook[/bold cyan] — a local credential book.",
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
    rich_markup_mode="rich",
    add_completion=True,
)

_EXPORT_FIELDS = ("title", "username", "password", "website", "email", "created_at", "updated_at")


@app.callback()
def root(
    ctx: typer.Context,
    db: Annotated[
        Optional[Path],
        typer.Option("--db", help="Database file (overrides $PASSBOOK_DB).", show_default=False),
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-V", help="Log debug output.")] = False,
) -> None:
    """[bold cyan]passbook[/bold cyan] — a local credential book."""
    ctx.obj = {"db": db}
    _configure_logging(verbose)


def _configure_logging(verbose: bool) -> None:
    logger = logging.getLogger("passbook")
    logger.handlers[:] = [RichHandler(console=err, show_path=False, show_time=False)]
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _fail(message: str) -> typer.Exit:
    err.print(f"[danger]{message}[/danger]")
    return typer.Exit(1)


def _db_path(ctx: typer.Context) -> Path:
    """Database file from the root `--db` option, else the configured default."""
    return (ctx.obj or {}).get("db") or get_db_path()


@contextmanager
def _session(ctx: typer.Context, require_db: bool = True) -> Iterator[FormSession]:
    """Open the database and yield a loaded :class:`FormSession`."""
    path = _db_path(ctx)
    if require_db and not path.exists():
        err.print("[danger]No database found.[/danger] Run [bold]passbook init[/bold] first.")
        raise typer.Exit(1)

    with SqliteClient(path) as client:
        session = FormSession(RecordRepository(client))
        try:
            session.refresh()
            yield session
        except StorageError as exc:
            raise _fail(str(exc)) from exc


def _find_one(session: FormSession, query: str) -> CredentialRecord:
    """Return the unique entry matching *query* by id, exact title, then partial title."""
    by_id = session.repository.get(query)
    if by_id is not None:
        return by_id

    q = query.lower()
    exact = [r for r in session.records if r.title.lower() == q]
    if len(exact) == 1:
        return exact[0]
    if len(exact) > 1:
        err.print(f"[warning]Multiple entries titled '{query}' — pass the id instead.[/warning]")
        for r in exact:
            err.print(f"  • {r.title} ({r.id})")
        raise typer.Exit(1)

    partial = [r for r in session.records if q in r.title.lower()]
    if len(partial) == 1:
        return partial[0]
    if len(partial) > 1:
        err.print(f"[warning]Multiple partial matches for '{query}':[/warning]")
        for r in partial:
            err.print(f"  • {r.title} ({r.id})")
        raise typer.Exit(1)

    raise _fail(f"No entry found matching '[bold]{query}[/bold]'.")


def _format_timestamp(value: str) -> str:
    return value[:16].replace("T", " ")


def _render_record(record: DisplayRecord) -> None:
    body = Text()

    def row(label: str, value: str, style: str = "highlight") -> None:
        body.append(f"  {label:<12}", style="label")
        body.append(value + "\n", style=style)

    row("Username", record.username)
    row("Password", record.masked_password, style="bold green" if record.password_visible else "muted")
    if record.website:
        row("Website", record.website, style="blue underline")
    if record.email:
        row("Email", record.email)
    row("Created", _format_timestamp(record.created_at), style="muted")
    row("Updated", _format_timestamp(record.updated_at), style="muted")
    row("ID", record.id, style="muted")

    console.print(
        Panel(body, title=f"[bold cyan]{record.title}[/bold cyan]", expand=False, border_style="cyan")
    )


def _render_table(records: list[DisplayRecord], title: str) -> None:
    table = Table(
        title=title,
        box=box.ROUNDED,
        header_style="bold cyan",
        show_lines=False,
        highlight=True,
        title_style="bold",
    )
    table.add_column("#", style="muted", justify="right", no_wrap=True)
    table.add_column("Title", style="bold white", min_width=16)
    table.add_column("Username", style="dim", min_width=14)
    table.add_column("Password", no_wrap=True)
    table.add_column("Website", style="blue", max_width=35)
    table.add_column("Email", max_width=30)
    table.add_column("Updated", style="muted", no_wrap=True)

    for i, r in enumerate(records, 1):
        table.add_row(
            str(i),
            r.title,
            r.username,
            r.masked_password,
            r.website or "",
            r.email or "",
            _format_timestamp(r.updated_at),
        )
    console.print(table)


def _display(session: FormSession, record: CredentialRecord) -> DisplayRecord:
    for shown in session.view():
        if shown.id == record.id:
            return shown
    return DisplayRecord(**record.model_dump(), password_visible=session.is_visible(record.id))


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def init(ctx: typer.Context) -> None:
    """Create the database and its table."""
    with _session(ctx, require_db=False) as session:
        path = session.repository.client.path
    console.print(f"[success]Database ready →[/success] [bold]{path}[/bold]")
    console.print("[muted]Entries are stored unencrypted — keep this file private.[/muted]")


@app.command()
def add(
    ctx: typer.Context,
    title: Annotated[str, typer.Argument(help="Title / label for this entry.")],
    username: Annotated[Optional[str], typer.Option("--username", "-u", help="Username.")] = None,
    website: Annotated[Optional[str], typer.Option("--website", "-w", help="Associated website.")] = None,
    email: Annotated[Optional[str], typer.Option("--email", "-e", help="Associated email address.")] = None,
    password: Annotated[Optional[str], typer.Option("--password", "-p", help="Password (prompted if omitted).")] = None,
    generate: Annotated[bool, typer.Option("--generate", "-g", help="Auto-generate a password.")] = False,
) -> None:
    """Add a new entry."""
    with _session(ctx) as session:
        session.begin_create()
        console.print(f"\n[bold cyan]Adding[/bold cyan] [bold]{title}[/bold]\n")

        if username is None:
            username = Prompt.ask("  Username", default="", console=console)
        if generate:
            password = session.fill_generated_password()
            console.print(f"  [muted]Generated:[/muted] [bold green]{password}[/bold green]")
        elif password is None:
            password = Prompt.ask("  Password", password=True, default="", console=console)
        if website is None:
            website = Prompt.ask("  Website  [muted](blank to skip)[/muted]", default="", console=console)
        if email is None:
            email = Prompt.ask("  Email    [muted](blank to skip)[/muted]", default="", console=console)

        session.update_draft(title=title, username=username, password=password, website=website, email=email)
        record = session.submit()

    console.print(f"\n[success]Entry '[bold]{title}[/bold]' saved.[/success] [muted]({record.id if record else '?'})[/muted]")


@app.command()
def get(
    ctx: typer.Context,
    query: Annotated[str, typer.Argument(help="Entry id or title (exact or partial).")],
    show: Annotated[bool, typer.Option("--show", "-s", help="Display password in plain text.")] = False,
) -> None:
    """Show one entry."""
    with _session(ctx) as session:
        record = _find_one(session, query)
        if show:
            session.toggle_visibility(record.id)
        _render_record(_display(session, record))


@app.command("list")
def list_entries(
    ctx: typer.Context,
    search: Annotated[str, typer.Option("--search", "-s", help="Filter by title, username, website or email.")] = "",
    sort: Annotated[SortField, typer.Option("--sort", help="Sort field.", case_sensitive=False)] = SortField.CREATED_AT,
    desc: Annotated[Optional[bool], typer.Option("--desc/--asc", help="Sort direction.", show_default=False)] = None,
    show: Annotated[bool, typer.Option("--show", help="Display passwords in plain text.")] = False,
) -> None:
    """List entries in a formatted table."""
    with _session(ctx) as session:
        session.set_search(search)
        session.sort_by(sort)
        if desc is None:
            desc = sort is SortField.CREATED_AT
        if (session.sort_order is SortOrder.DESC) != desc:
            session.sort_by(sort)
        if show:
            for r in session.records:
                session.toggle_visibility(r.id)
        records = session.view()

    if not records:
        console.print("[muted]No entries match your query.[/muted]")
        return

    _render_table(records, title=f"Entries ({len(records)} shown)")


@app.command()
def update(
    ctx: typer.Context,
    query: Annotated[str, typer.Argument(help="Entry id or title (exact or partial).")],
    title: Annotated[Optional[str], typer.Option("--title", help="Rename the entry.")] = None,
    username: Annotated[Optional[str], typer.Option("--username", "-u", help="New username.")] = None,
    website: Annotated[Optional[str], typer.Option("--website", "-w", help="New website (empty to clear).")] = None,
    email: Annotated[Optional[str], typer.Option("--email", "-e", help="New email (empty to clear).")] = None,
    password: Annotated[Optional[str], typer.Option("--password", "-p", help="New password.")] = None,
    generate: Annotated[bool, typer.Option("--generate", "-g", help="Auto-generate a new password.")] = False,
) -> None:
    """Update an existing entry."""
    with _session(ctx) as session:
        record = _find_one(session, query)
        session.begin_edit(record.id)

        changes = {
            name: value
            for name, value in (("title", title), ("username", username), ("website", website), ("email", email))
            if value is not None
        }

        if generate:
            password = session.fill_generated_password()
            console.print(f"  [muted]New password:[/muted] [bold green]{password}[/bold green]")
        elif password is not None:
            changes["password"] = password
        else:
            new_pw = Prompt.ask(
                "  New password [muted](blank to keep current)[/muted]",
                password=True,
                default="",
                console=console,
            )
            if new_pw:
                changes["password"] = new_pw

        if not changes and not generate:
            session.cancel()
            console.print("[muted]No changes made.[/muted]")
            return

        session.update_draft(**changes)
        updated = session.submit()

    if updated is None:
        raise _fail(f"Entry '{record.title}' disappeared before it could be updated.")
    console.print(f"[success]Entry '[bold]{updated.title}[/bold]' updated.[/success]")


@app.command()
def delete(
    ctx: typer.Context,
    query: Annotated[str, typer.Argument(help="Entry id or title (exact or partial).")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation prompt.")] = False,
) -> None:
    """Permanently delete an entry."""
    with _session(ctx) as session:
        record = _find_one(session, query)
        session.request_delete(record.id)

        if not yes:
            confirmed = Confirm.ask(
                f"  Delete '[bold]{record.title}[/bold]'? [muted]This cannot be undone.[/muted]",
                default=False,
                console=console,
            )
            if not confirmed:
                session.cancel_delete()
                raise typer.Exit(0)

        session.confirm_delete()

    console.print(f"[danger]Entry '[bold]{record.title}[/bold]' deleted.[/danger]")


@app.command()
def generate(
    count: Annotated[int, typer.Option("--count", "-c", min=1, help="Number of passwords to generate.")] = 1,
) -> None:
    """Generate random passwords."""
    passwords = [generate_password() for _ in range(count)]

    if count == 1:
        console.print(
            Panel(
                f"[bold green]{passwords[0]}[/bold green]",
                title=f"[bold]Generated password ({PASSWORD_LENGTH} chars)[/bold]",
                border_style="green",
                expand=False,
            )
        )
    else:
        console.print(f"\n[bold]Generated {count} passwords ({PASSWORD_LENGTH} chars each)[/bold]\n")
        for i, pw in enumerate(passwords, 1):
            console.print(f"  [muted]{i:>3}.[/muted]  [bold green]{pw}[/bold green]")
        console.print()


@app.command("export")
def export_cmd(
    ctx: typer.Context,
    output: Annotated[Path, typer.Option("--output", "-o", help="Output file path.")],
    fmt: Annotated[str, typer.Option("--format", "-f", help="Output format: json or csv.")] = "json",
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation prompt.")] = False,
) -> None:
    """Export entries to a file (plaintext — handle with care)."""
    if fmt not in ("json", "csv"):
        raise _fail(f"Unknown format '{fmt}'. Use json or csv.")

    with _session(ctx) as session:
        rows = [
            {name: getattr(r, name) or "" for name in _EXPORT_FIELDS}
            for r in session.view()
        ]

    if not yes:
        console.print("[warning]WARNING:[/warning] The exported file will contain [bold]plaintext[/bold] passwords.")
        if not Confirm.ask("  Continue?", default=False, console=console):
            raise typer.Exit(0)

    if fmt == "json":
        output.write_text(json.dumps(rows, indent=2))
    else:
        with output.open("w", newline="") as fh:
            writer = csv.DictWriter(fh, fieldnames=list(_EXPORT_FIELDS))
            writer.writeheader()
            writer.writerows(rows)

    os.chmod(output, 0o600)
    console.print(f"\n[success]Exported {len(rows)} entr{'y' if len(rows) == 1 else 'ies'} →[/success] [bold]{output}[/bold]")


@app.command("import")
def import_cmd(
    ctx: typer.Context,
    source: Annotated[Path, typer.Argument(help="JSON file to import (from 'passbook export').")],
) -> None:
    """Import entries from a JSON export file. Each becomes a new entry."""
    if not source.exists():
        raise _fail(f"File not found: {source}")

    try:
        data: list[dict] = json.loads(source.read_text())
    except json.JSONDecodeError as exc:
        raise _fail(f"Invalid JSON: {exc}") from exc

    added = skipped = 0
    with _session(ctx) as session:
        for item in data:
            if not isinstance(item, dict) or not str(item.get("title") or "").strip():
                skipped += 1
                continue
            session.begin_create()
            session.update_draft(
                **{name: str(item.get(name) or "") for name in ("title", "username", "password", "website", "email")}
            )
            session.submit()
            added += 1

    console.print(f"[success]Import complete:[/success] {added} added, {skipped} skipped.")


@app.command()
def info(ctx: typer.Context) -> None:
    """Show database metadata and location."""
    path = _db_path(ctx)

    table = Table(box=box.SIMPLE, show_header=False, padding=(0, 2))
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Version", __version__)
    table.add_row("Database", str(path))
    table.add_row("Exists", "[green]yes[/green]" if path.exists() else "[red]no[/red]")

    if path.exists():
        size_kb = path.stat().st_size / 1024
        table.add_row("Size", f"{size_kb:.1f} KB")
        with _session(ctx) as session:
            table.add_row("Entries", str(len(session.records)))

    console.print(Panel(table, title="[bold cyan]passbook info[/bold cyan]", border_style="cyan", expand=False))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main() -> None:
    app()


if __name__ == "__main__":
    main()
