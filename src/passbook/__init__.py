"""passbook — a local credential book on SQLite, driven from the command line."""

__version__ = "0.1.0"


def get_password(title: str, db_path=None) -> str:
    """Look up a stored password by entry title — the one-liner for scripts.

    Matches the title case-insensitively, exact match first, then a unique
    partial match.

    Args:
        title:   Entry title (exact or partial).
        db_path: Database file. Defaults to :func:`passbook.config.get_db_path`.

    Returns:
        The stored password as a plain string.

    Raises:
        KeyError: If no entry, or more than one, matches *title*.
        passbook.store.StorageError: If the database is missing or cannot be read.

    Example::

        from passbook import get_password

        password = get_password("Mail")
    """
    from .config import get_db_path
    from .store import RecordRepository, SqliteClient, StorageError

    with SqliteClient(db_path or get_db_path()) as client:
        if not client.exists():
            raise StorageError(f"No database at {client.path}.")
        records = RecordRepository(client).load_all()

    wanted = title.lower()
    exact = [r for r in records if r.title.lower() == wanted]
    candidates = exact or [r for r in records if wanted in r.title.lower()]
    if len(candidates) != 1:
        problem = "No entry" if not candidates else "More than one entry"
        raise KeyError(f"{problem} matches {title!r}.")
    return candidates[0].password
