"""Excel importer: first worksheet of an .xlsx/.xlsm workbook as snippets.

Strategy:
- Open the workbook (an OOXML ZIP package) with stdlib ``zipfile``.
- Follow ``_rels/.rels`` to the workbook part, then the workbook's first
  ``<sheet>`` and its relationship id to the worksheet part. These small
  structural parts are read with ``beautifulsoup4``.
- Stream the shared-string table and the worksheet with
  ``ElementTree.iterparse`` so the row and cell limits fail fast instead of
  after the whole sheet is materialized.

Safety limits (adversarial or corrupted workbooks):
- file size > 20 MiB → hard fail before the archive is opened
- uncompressed sheet / shared-string part > 200 MiB → hard fail
- > 10,000 data rows → hard fail mid-parse
- any cell > 10,000 characters → hard fail mid-parse
- damaged archive members (bad CRC, corrupt deflate stream, truncation)
  → WorkbookStructureError, never a raw zipfile/zlib error

The shared-string table is read before the worksheet, so its memory is
bounded by the part limit rather than the row limit; each string is held to
the cell limit as it is read.
"""

from __future__ import annotations

import os
import posixpath
import xml.etree.ElementTree as ET
import zipfile
import zlib
from collections.abc import Iterator
from pathlib import Path

from bs4 import BeautifulSoup

from lookr.models import DEFAULT_CATEGORY, Snippet, utcnow

_SUPPORTED_EXTENSIONS = {".xlsx", ".xlsm"}
_MAX_FILE_BYTES = 20 * 1024 * 1024  # 20 MiB
_MAX_PART_BYTES = 200 * 1024 * 1024  # 200 MiB uncompressed
_MAX_DATA_ROWS = 10_000
_MAX_CELL_CHARS = 10_000

_TITLE_HEADERS = ("title", "name", "snippet", "subject")
_CONTENT_HEADERS = ("content", "text", "body", "quicktext", "message", "template")
_CATEGORY_HEADERS = ("category", "group", "folder", "section")
_KEYWORDS_HEADERS = ("keywords", "keyword", "tags", "tag")

_TITLE_CHARS = 50
_FALLBACK_TITLE = "Imported Snippet"

_REL_OFFICE_DOCUMENT = "/officeDocument"
_REL_SHARED_STRINGS = "/sharedStrings"
_DEFAULT_WORKBOOK = "xl/workbook.xml"
_DEFAULT_SHARED_STRINGS = "xl/sharedStrings.xml"

# Raised by zipfile while inflating a member with a bad CRC, stream or length.
_DAMAGED_MEMBER_ERRORS = (zipfile.BadZipFile, zlib.error, EOFError)


# ------------------------------------------------------------------
# Errors
# ------------------------------------------------------------------


class SpreadsheetImportError(ValueError):
    """Base class for workbook validation failures; the import is aborted."""


class FileTooLargeError(SpreadsheetImportError):
    """The workbook, or one of its parts, exceeds the size limit."""


class WorkbookStructureError(SpreadsheetImportError):
    """The package lacks a workbook, a sheet, or a resolvable worksheet part."""


class MissingHeadersError(SpreadsheetImportError):
    """Neither a title nor a content column could be identified."""


class RowLimitError(SpreadsheetImportError):
    """The first worksheet has more data rows than allowed."""


class CellLimitError(SpreadsheetImportError):
    """A single cell holds more text than allowed."""


# ------------------------------------------------------------------
# Importer
# ------------------------------------------------------------------


class ExcelSnippetImporter:
    """Turn the first worksheet of a workbook into import candidates.

    The first row is the header row. Headers are matched (trimmed, lowercased,
    spaces and underscores removed) against synonym sets for title, content,
    category and keywords; at least title or content must be present.

    Each non-blank row becomes a :class:`Snippet` with a fresh id and the
    current timestamp. Nothing is merged or deduplicated here; that is the
    library engine's job.
    """

    def __init__(
        self,
        max_file_bytes: int = _MAX_FILE_BYTES,
        max_rows: int = _MAX_DATA_ROWS,
        max_cell_chars: int = _MAX_CELL_CHARS,
    ) -> None:
        self.max_file_bytes = max_file_bytes
        self.max_rows = max_rows
        self.max_cell_chars = max_cell_chars

    def import_file(self, path: str | Path) -> list[Snippet]:
        """Parse *path* and return one snippet per non-blank data row.

        Raises:
            ValueError: If *path* is blank.
            FileNotFoundError: If the file does not exist.
            SpreadsheetImportError: For size, structure, header, row or cell
                limit violations (see subclasses).
        """
        file_path = self._validate_path(path)

        try:
            archive = zipfile.ZipFile(file_path, "r")
        except zipfile.BadZipFile as exc:
            raise WorkbookStructureError(
                f"'{file_path.name}' is not a valid Excel workbook package."
            ) from exc

        with archive as zf:
            names = set(zf.namelist())
            workbook_path = _find_workbook_path(zf, names)
            sheet_path, shared_path = _resolve_parts(zf, workbook_path, names)
            shared_strings = (
                self._read_shared_strings(zf, shared_path) if shared_path else []
            )
            return self._read_snippets(zf, sheet_path, shared_strings)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _validate_path(self, path: str | Path) -> Path:
        if not str(path).strip():
            raise ValueError("File path is required.")

        p = Path(path)
        if not p.is_file():
            raise FileNotFoundError(f"Excel file not found: {p}")

        ext = p.suffix.lower()
        if ext not in _SUPPORTED_EXTENSIONS:
            raise SpreadsheetImportError(
                f"Unsupported spreadsheet format '{ext}'. "
                f"Supported: {', '.join(sorted(_SUPPORTED_EXTENSIONS))}"
            )

        size = os.path.getsize(p)
        if size > self.max_file_bytes:
            raise FileTooLargeError(
                f"Excel file '{p.name}' exceeds the "
                f"{self.max_file_bytes / (1024 * 1024):.0f} MiB limit "
                f"({size / (1024 * 1024):.1f} MiB)."
            )
        return p

    def _check_part_size(self, zf: zipfile.ZipFile, name: str) -> None:
        size = zf.getinfo(name).file_size
        if size > _MAX_PART_BYTES:
            raise FileTooLargeError(
                f"Workbook part '{name}' is too large when uncompressed "
                f"({size / (1024 * 1024):.0f} MiB)."
            )

    # ------------------------------------------------------------------
    # Streaming parts
    # ------------------------------------------------------------------

    def _read_shared_strings(self, zf: zipfile.ZipFile, name: str) -> list[str]:
        self._check_part_size(zf, name)
        strings: list[str] = []
        for elem in _iter_elements(zf, name, "si"):
            text = _rich_text(elem)
            elem.clear()
            if len(text) > self.max_cell_chars:
                raise CellLimitError(
                    f"Shared string {len(strings)} holds {len(text):,} characters; "
                    f"the limit is {self.max_cell_chars:,}."
                )
            strings.append(text)
        return strings

    def _read_snippets(
        self, zf: zipfile.ZipFile, sheet_path: str, shared_strings: list[str]
    ) -> list[Snippet]:
        self._check_part_size(zf, sheet_path)

        headers: dict[str, str] | None = None
        columns: dict[str, str | None] = {}
        data_rows = 0
        snippets: list[Snippet] = []

        for row in _iter_elements(zf, sheet_path, "row"):
            values = self._read_row(row, shared_strings)
            row.clear()

            if headers is None:
                headers = {col: _normalize_header(text) for col, text in values.items()}
                continue

            data_rows += 1
            if data_rows > self.max_rows:
                raise RowLimitError(
                    f"Worksheet has more than {self.max_rows:,} data rows. "
                    "Split the workbook and import each part separately."
                )
            if data_rows == 1:
                columns = _resolve_columns(headers)

            snippet = _row_to_snippet(values, columns)
            if snippet is not None:
                snippets.append(snippet)

        return snippets

    def _read_row(self, row: ET.Element, shared_strings: list[str]) -> dict[str, str]:
        values: dict[str, str] = {}
        for cell in row:
            if _local(cell.tag) != "c":
                continue
            reference = cell.get("r") or ""
            column = _column_name(reference)
            if not column:
                continue
            text = _cell_text(cell, shared_strings)
            if len(text) > self.max_cell_chars:
                raise CellLimitError(
                    f"Cell {reference} holds {len(text):,} characters; "
                    f"the limit is {self.max_cell_chars:,}."
                )
            values[column] = text
        return values


# ------------------------------------------------------------------
# Package structure
# ------------------------------------------------------------------


def _find_workbook_path(zf: zipfile.ZipFile, names: set[str]) -> str:
    """Locate the workbook part via the package relationships."""
    if "_rels/.rels" in names:
        for rel in _relationships(zf, "_rels/.rels"):
            if rel["type"].endswith(_REL_OFFICE_DOCUMENT):
                target = _resolve_target("", rel["target"])
                if target in names:
                    return target
    if _DEFAULT_WORKBOOK in names:
        return _DEFAULT_WORKBOOK
    raise WorkbookStructureError("Workbook data is missing.")


def _resolve_parts(
    zf: zipfile.ZipFile, workbook_path: str, names: set[str]
) -> tuple[str, str | None]:
    """Return (first worksheet part, shared-strings part or None)."""
    soup = _soup(zf, workbook_path)
    sheet = next(iter(_find_all_local(soup, "sheet")), None)
    if sheet is None:
        raise WorkbookStructureError("Workbook has no sheets.")

    rel_id = next(
        (v for k, v in sheet.attrs.items() if k == "id" or k.endswith(":id")), ""
    )
    if not str(rel_id).strip():
        raise WorkbookStructureError("Worksheet id is missing.")

    base_dir = posixpath.dirname(workbook_path)
    rels_path = posixpath.join(base_dir, "_rels", posixpath.basename(workbook_path) + ".rels")
    rels = _relationships(zf, rels_path) if rels_path in names else []

    sheet_path = next(
        (_resolve_target(base_dir, r["target"]) for r in rels if r["id"] == rel_id),
        None,
    )
    if sheet_path is None or sheet_path not in names:
        sheet_name = sheet.get("name", "")
        raise WorkbookStructureError(f"Worksheet part for sheet '{sheet_name}' is missing.")

    shared_path = next(
        (
            _resolve_target(base_dir, r["target"])
            for r in rels
            if r["type"].endswith(_REL_SHARED_STRINGS)
        ),
        None,
    )
    if shared_path is None and _DEFAULT_SHARED_STRINGS in names:
        shared_path = _DEFAULT_SHARED_STRINGS
    if shared_path is not None and shared_path not in names:
        shared_path = None

    return sheet_path, shared_path


def _damaged(name: str, exc: Exception) -> WorkbookStructureError:
    return WorkbookStructureError(f"Workbook part '{name}' is damaged: {exc}")


def _soup(zf: zipfile.ZipFile, name: str) -> BeautifulSoup:
    try:
        data = zf.read(name)
    except _DAMAGED_MEMBER_ERRORS as exc:
        raise _damaged(name, exc) from exc
    xml = data.decode("utf-8", errors="replace")
    return BeautifulSoup(xml, "html.parser")


def _relationships(zf: zipfile.ZipFile, name: str) -> list[dict[str, str]]:
    soup = _soup(zf, name)
    return [
        {
            "id": rel.get("id", ""),
            "type": rel.get("type", ""),
            "target": rel.get("target", ""),
        }
        for rel in _find_all_local(soup, "relationship")
    ]


def _find_all_local(soup: BeautifulSoup, name: str) -> list:
    """find_all() by local tag name, ignoring any namespace prefix."""
    return soup.find_all(lambda tag: tag.name.rsplit(":", 1)[-1] == name)


def _resolve_target(base_dir: str, target: str) -> str:
    if target.startswith("/"):
        return target.lstrip("/")
    return posixpath.normpath(posixpath.join(base_dir, target))


def _iter_elements(zf: zipfile.ZipFile, name: str, local_name: str) -> Iterator[ET.Element]:
    """Yield completed elements named *local_name* while streaming part *name*."""
    try:
        with zf.open(name) as fh:
            for _event, elem in ET.iterparse(fh, events=("end",)):
                if _local(elem.tag) == local_name:
                    yield elem
    except ET.ParseError as exc:
        raise WorkbookStructureError(f"Workbook part '{name}' is not valid XML: {exc}") from exc
    except _DAMAGED_MEMBER_ERRORS as exc:
        raise _damaged(name, exc) from exc


# ------------------------------------------------------------------
# Cells and rows
# ------------------------------------------------------------------


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child(elem: ET.Element, local_name: str) -> ET.Element | None:
    for child in elem:
        if _local(child.tag) == local_name:
            return child
    return None


def _rich_text(elem: ET.Element) -> str:
    """Text of a shared-string item or inline string: ``<t>`` plus ``<r><t>`` runs.

    Phonetic runs (``<rPh>``) are not part of the visible text.
    """
    parts: list[str] = []
    for child in elem:
        tag = _local(child.tag)
        if tag == "t":
            parts.append(child.text or "")
        elif tag == "r":
            t = _child(child, "t")
            if t is not None:
                parts.append(t.text or "")
    return "".join(parts)


def _cell_text(cell: ET.Element, shared_strings: list[str]) -> str:
    cell_type = cell.get("t", "")
    value = _child(cell, "v")
    raw = value.text if value is not None and value.text is not None else None

    if cell_type == "s":
        if raw is None:
            return ""
        try:
            index = int(raw.strip())
        except ValueError:
            return ""
        return shared_strings[index] if 0 <= index < len(shared_strings) else ""

    if cell_type == "inlineStr":
        inline = _child(cell, "is")
        return _rich_text(inline) if inline is not None else ""

    if cell_type == "b":
        return "TRUE" if (raw or "").strip() == "1" else "FALSE"

    return raw or ""


def _column_name(reference: str) -> str:
    """Leading letters of a cell reference, uppercased ("b12" → "B")."""
    letters: list[str] = []
    for ch in reference:
        if not ch.isalpha():
            break
        letters.append(ch.upper())
    return "".join(letters)


def _normalize_header(header: str) -> str:
    return header.strip().replace("_", "").replace(" ", "").lower()


def _find_column(headers: dict[str, str], names: tuple[str, ...]) -> str | None:
    for column, header in headers.items():
        if header in names:
            return column
    return None


def _resolve_columns(headers: dict[str, str]) -> dict[str, str | None]:
    columns = {
        "title": _find_column(headers, _TITLE_HEADERS),
        "content": _find_column(headers, _CONTENT_HEADERS),
        "category": _find_column(headers, _CATEGORY_HEADERS),
        "keywords": _find_column(headers, _KEYWORDS_HEADERS),
    }
    if columns["title"] is None and columns["content"] is None:
        raise MissingHeadersError(
            "Excel headers must include at least 'Title' or 'Content'. "
            "Accepted title headers: " + ", ".join(_TITLE_HEADERS) + "; "
            "content headers: " + ", ".join(_CONTENT_HEADERS) + "."
        )
    return columns


def _row_to_snippet(values: dict[str, str], columns: dict[str, str | None]) -> Snippet | None:
    def get(field: str) -> str:
        column = columns.get(field)
        return values.get(column, "") if column else ""

    title = get("title").strip()
    content = get("content").strip()
    if not title and not content:
        return None

    category = get("category").strip()
    return Snippet(
        title=title or build_title_from_content(content),
        content=content,
        category=category or DEFAULT_CATEGORY,
        keywords=get("keywords").strip(),
        last_used_utc=utcnow(),
    )


def build_title_from_content(content: str) -> str:
    """Single-line title from *content*, truncated to 50 chars plus "..."."""
    if not content.strip():
        return _FALLBACK_TITLE
    compact = content.replace("\r", " ").replace("\n", " ").strip()
    return compact if len(compact) <= _TITLE_CHARS else compact[:_TITLE_CHARS] + "..."
