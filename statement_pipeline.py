from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from statement_engine import TraceSink, extract_statements
from statement_errors import NoFilesFoundError, StatementParserError
from statement_formats import resolve_format
from statement_models import Document, Statement
from statement_text import load_document

logger = logging.getLogger(__name__)

Loader = Callable[[Path], Document]


def collect_files(path: str | Path) -> list[Path]:
    """All statement PDFs under *path*, or *path* itself when it is a file."""
    path = Path(path)
    if path.is_dir():
        files = sorted(p for p in path.rglob("*") if p.is_file() and p.suffix.lower() == ".pdf")
    elif path.is_file():
        files = [path]
    else:
        files = []
    if not files:
        raise NoFilesFoundError(str(path))
    return files


def process_file(
    path: str | Path,
    bank: str,
    loader: Loader | None = None,
    trace: TraceSink | None = None,
) -> list[Statement]:
    path = Path(path)
    document = (loader or load_document)(path)
    statement_format = resolve_format(bank, document)
    logger.info("Processing %s as %s statement", path, statement_format.name)
    try:
        statements = extract_statements(document, statement_format, trace)
    except StatementParserError as exc:
        exc.details.setdefault("path", str(path))
        raise
    logger.info(
        "%s: %d statement(s), %d transaction(s)",
        path.name, len(statements), sum(len(s.transactions) for s in statements),
    )
    return statements


def process(
    path: str | Path,
    bank: str,
    loader: Loader | None = None,
    trace: TraceSink | None = None,
) -> list[Statement]:
    """Extract the statements of one file, or of every PDF below a directory.

    Files are processed in path order; a failing file aborts the batch.
    """
    statements: list[Statement] = []
    for file in collect_files(path):
        statements.extend(process_file(file, bank, loader, trace))
    return statements
