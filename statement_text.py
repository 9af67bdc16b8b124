from __future__ import annotations

import logging
import warnings
from collections import defaultdict
from pathlib import Path

import pdfplumber

from statement_models import Document, Page, PositionedToken

logging.getLogger("pdfminer").setLevel(logging.ERROR)
warnings.filterwarnings("ignore", module="pdfminer")

_PHRASE_GAP_FACTOR = 2.0
_MIN_PHRASE_GAP = 6.0


def _flush(run: list[dict], page_index: int, tokens: list[PositionedToken]) -> None:
    glyphs = [c for c in run if not c["text"].isspace()]
    if not glyphs:
        return
    text = "".join(c["text"] for c in run).strip()
    tokens.append(
        PositionedToken(
            text=" ".join(text.split()),
            left=float(glyphs[0]["x0"]),
            right=float(glyphs[-1]["x1"]),
            top=float(min(c["top"] for c in glyphs)),
            bottom=float(max(c["bottom"] for c in glyphs)),
            page_index=page_index,
        )
    )


def chars_to_tokens(chars: list[dict], page_index: int = 0) -> list[PositionedToken]:
    """Group page.chars into phrases: runs of text on one row split at wide gaps.

    Single spaces stay inside a phrase, so a label such as "Account Number"
    becomes one token, while cells of neighbouring columns become separate
    tokens.
    """
    by_y: dict[int, list[dict]] = defaultdict(list)
    for c in chars:
        by_y[round(c["top"])].append(c)

    tokens: list[PositionedToken] = []
    for y_key in sorted(by_y.keys()):
        row = sorted(by_y[y_key], key=lambda c: c["x0"])
        run: list[dict] = []
        last_x1 = 0.0
        glyph_width = 0.0
        glyph_count = 0

        for c in row:
            if run:
                avg_char_width = glyph_width / glyph_count if glyph_count else 5.0
                gap = c["x0"] - last_x1
                if gap > max(avg_char_width * _PHRASE_GAP_FACTOR, _MIN_PHRASE_GAP):
                    _flush(run, page_index, tokens)
                    run = []
                    glyph_width = 0.0
                    glyph_count = 0

            run.append(c)
            last_x1 = c["x1"]
            if not c["text"].isspace():
                glyph_width += c["x1"] - c["x0"]
                glyph_count += 1

        if run:
            _flush(run, page_index, tokens)

    return tokens


def load_document(path: str | Path) -> Document:
    """Read a PDF into pages of positioned tokens in reading order."""
    pages: list[Page] = []
    with pdfplumber.open(path) as pdf:
        for page in pdf.pages:
            index = page.page_number - 1
            pages.append(Page(number=index, tokens=tuple(chars_to_tokens(page.chars, index))))
    return Document(pages=tuple(pages), source=str(path))
