"""Table extraction from layout tables.

Converts header and body rows of layout cells into string matrices,
optionally enriched with per-cell confidences, the table bounding box
and a structural consistency flag.
"""

from docstruct.layout.resolver import LayoutTextResolver, bounding_box
from docstruct.layout.schemas import Table, TableRow
from docstruct.utils.logger import get_logger

from .schemas import TableContent

logger = get_logger(__name__)


def is_structured(headers: list[str], rows: list[list[str]]) -> bool:
    """Check whether every row has exactly as many cells as the header."""
    return bool(headers) and bool(rows) and all(len(r) == len(headers) for r in rows)


class TableExtractor:
    """Builds normalized tables from layout tables.

    Args:
        table_confidence: Confidence reported for each table; the layout
            service does not score tables as a whole.
        cell_confidence: Fallback for cells without their own confidence.
    """

    def __init__(
        self, table_confidence: float = 0.9, cell_confidence: float = 0.8
    ) -> None:
        self.table_confidence = table_confidence
        self.cell_confidence = cell_confidence

    def extract(
        self, table: Table, resolver: LayoutTextResolver, page: int
    ) -> TableContent | None:
        """Extract headers and non-empty body rows.

        Header cells of all header rows are flattened into one list. Body
        rows whose cells are all blank are dropped.

        Args:
            table: Layout table.
            resolver: Resolver bound to the document text.
            page: 1-based page number.

        Returns:
            The table, or ``None`` if it has neither header nor body rows.
        """
        if not table.header_rows and not table.body_rows:
            return None

        headers: list[str] = []
        for header_row in table.header_rows:
            headers.extend(self._row_text(header_row, resolver))

        rows = [
            cells
            for cells in (self._row_text(r, resolver) for r in table.body_rows)
            if any(cells)
        ]

        return TableContent(
            headers=headers,
            rows=rows,
            page=page,
            confidence=self.table_confidence,
        )

    def extract_enhanced(
        self, table: Table, resolver: LayoutTextResolver, page: int
    ) -> TableContent | None:
        """Extract a table with structure flag, cell confidences and box.

        Cell confidences are reported for the same body rows that are
        kept in ``rows``, so both matrices line up.

        Args:
            table: Layout table.
            resolver: Resolver bound to the document text.
            page: 1-based page number.

        Returns:
            The enriched table, or ``None`` if there is nothing to extract.
        """
        basic = self.extract(table, resolver, page)
        if basic is None:
            return None

        cell_confidences: list[list[float]] = []
        for row in table.body_rows:
            if not any(self._row_text(row, resolver)):
                continue
            cell_confidences.append(
                [
                    (cell.layout.confidence if cell.layout else None)
                    or self.cell_confidence
                    for cell in row.cells
                ]
            )

        basic.is_structured = is_structured(basic.headers, basic.rows)
        basic.cell_confidences = cell_confidences or None
        basic.bounding_box = bounding_box(
            table.layout.bounding_poly if table.layout else None
        )

        logger.debug(
            "Table on page %d: %d headers, %d rows, structured=%s",
            page,
            len(basic.headers),
            len(basic.rows),
            basic.is_structured,
        )
        return basic

    def _row_text(self, row: TableRow, resolver: LayoutTextResolver) -> list[str]:
        return [resolver.resolve(cell.layout).strip() for cell in row.cells]


def render_table(table: TableContent) -> str:
    """Render a table as a bracketed plain-text block for the text stream."""
    tag = "STRUCTURED_TABLE" if table.is_structured else "TABLE"
    lines = [" | ".join(table.headers)]
    lines.extend(" | ".join(row) for row in table.rows)
    body = "\n".join(lines)
    return f"\n[{tag}]\n{body}\n[/{tag}]\n\n"
