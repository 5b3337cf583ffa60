"""Shared pytest fixtures."""

from __future__ import annotations

import zipfile
from pathlib import Path
from xml.sax.saxutils import escape

import pytest

from lookr.store.crypto import UserScopedCipher
from lookr.store.secure_store import SecureSnippetStore

TEST_IDENTITY = "tester|1000|/home/tester"

_CONTENT_TYPES = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
    '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
    '<Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>'
    '<Default Extension="xml" ContentType="application/xml"/>'
    "</Types>"
)

_ROOT_RELS = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
    '<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">'
    '<Relationship Id="rId1" '
    'Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/officeDocument" '
    'Target="xl/workbook.xml"/>'
    "</Relationships>"
)

_WORKBOOK = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
    '<workbook xmlns="http://schemas.openxmlformats.org/spreadsheetml/2006/main" '
    'xmlns:r="http://schemas.openxmlformats.org/officeDocument/2006/relationships">'
    '<sheets><sheet name="QuickTexts" sheetId="1" r:id="rId1"/></sheets>'
    "</workbook>"
)

_WORKBOOK_RELS = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
    '<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">'
    '<Relationship Id="rId1" '
    'Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/worksheet" '
    'Target="worksheets/sheet1.xml"/>'
    '<Relationship Id="rId2" '
    'Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/sharedStrings" '
    'Target="sharedStrings.xml"/>'
    "</Relationships>"
)

_SHEET_NS = "http://schemas.openxmlformats.org/spreadsheetml/2006/main"


def _column_letter(index: int) -> str:
    letters = ""
    index += 1
    while index:
        index, rem = divmod(index - 1, 26)
        letters = chr(ord("A") + rem) + letters
    return letters


def build_workbook(
    path: Path,
    rows: list[list[str]],
    *,
    inline: bool = False,
    parts: dict[str, str | None] | None = None,
) -> Path:
    """Write a minimal .xlsx with *rows* on its first worksheet.

    Cells are shared strings by default, inline strings with *inline*.
    *parts* overrides (or, with None, drops) individual package parts.
    """
    shared: list[str] = []
    index: dict[str, int] = {}
    row_xml: list[str] = []

    for r, row in enumerate(rows, start=1):
        cells: list[str] = []
        for c, value in enumerate(row):
            ref = f"{_column_letter(c)}{r}"
            if inline:
                cells.append(
                    f'<c r="{ref}" t="inlineStr"><is><t>{escape(value)}</t></is></c>'
                )
            else:
                if value not in index:
                    index[value] = len(shared)
                    shared.append(value)
                cells.append(f'<c r="{ref}" t="s"><v>{index[value]}</v></c>')
        row_xml.append(f'<row r="{r}">{"".join(cells)}</row>')

    sheet = (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
        f'<worksheet xmlns="{_SHEET_NS}"><sheetData>{"".join(row_xml)}</sheetData></worksheet>'
    )
    shared_xml = (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
        f'<sst xmlns="{_SHEET_NS}" count="{len(shared)}" uniqueCount="{len(shared)}">'
        + "".join(f"<si><t>{escape(s)}</t></si>" for s in shared)
        + "</sst>"
    )

    contents: dict[str, str | None] = {
        "[Content_Types].xml": _CONTENT_TYPES,
        "_rels/.rels": _ROOT_RELS,
        "xl/workbook.xml": _WORKBOOK,
        "xl/_rels/workbook.xml.rels": _WORKBOOK_RELS,
        "xl/worksheets/sheet1.xml": sheet,
        "xl/sharedStrings.xml": shared_xml,
    }
    contents.update(parts or {})

    with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, data in contents.items():
            if data is not None:
                zf.writestr(name, data)
    return path


@pytest.fixture
def cipher(tmp_path):
    """Cipher with a fixed identity and a key file in tmp_path."""
    return UserScopedCipher(tmp_path / "vault.key", identity=TEST_IDENTITY)


@pytest.fixture
def store(tmp_path, cipher):
    return SecureSnippetStore(tmp_path / "snippets.bin", cipher)


@pytest.fixture
def lookr_home(tmp_path, monkeypatch):
    """Point LOOKR_HOME at an empty directory for the duration of the test."""
    home = tmp_path / "home"
    monkeypatch.setenv("LOOKR_HOME", str(home))
    return home


@pytest.fixture
def make_workbook(tmp_path):
    """Factory: make_workbook(rows, name="snippets.xlsx", **kwargs) -> Path."""

    def _make(rows: list[list[str]], name: str = "snippets.xlsx", **kwargs) -> Path:
        return build_workbook(tmp_path / name, rows, **kwargs)

    return _make
