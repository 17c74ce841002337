"""Form extraction: key/value fields, form tables and checkboxes."""

from docstruct.layout.resolver import LayoutTextResolver
from docstruct.layout.schemas import Layout, LayoutDocument, Page
from docstruct.utils.logger import get_logger

from .schemas import (
    CheckboxContent,
    FormData,
    FormFieldContent,
    FormTable,
    TableContent,
    TableType,
)
from .table_extractor import TableExtractor

logger = get_logger(__name__)

CHECKBOX_GLYPHS = {"☐": False, "☑": True, "○": False, "●": True}

# Checked in order; the first keyword group found decides the type.
_TABLE_KEYWORDS: list[tuple[TableType, tuple[str, ...]]] = [
    (TableType.INVOICE, ("invoice", "bill", "amount")),
    (TableType.FORM, ("name", "address", "signature")),
]

_DATA_TABLE_MIN_ROWS = 5


def _confidence_or_zero(layout: Layout | None) -> float:
    if layout is None or layout.confidence is None:
        return 0.0
    return layout.confidence


def classify_table(table: TableContent) -> TableType:
    """Classify a table by keywords in its header and cell text.

    Args:
        table: Extracted table.

    Returns:
        ``invoice`` or ``form`` on a keyword hit, ``data`` for tables with
        more than five rows and no hit, otherwise ``unknown``.
    """
    all_text = " ".join(
        [*table.headers, *(cell for row in table.rows for cell in row)]
    ).lower()

    for table_type, keywords in _TABLE_KEYWORDS:
        if any(k in all_text for k in keywords):
            return table_type
    if len(table.rows) > _DATA_TABLE_MIN_ROWS:
        return TableType.DATA
    return TableType.UNKNOWN


class FormExtractor:
    """Extracts per-page form data from a layout document.

    Args:
        table_extractor: Extractor used for form tables.
        checkbox_confidence: Fallback confidence for checkbox glyphs.
    """

    def __init__(
        self,
        table_extractor: TableExtractor | None = None,
        checkbox_confidence: float = 0.8,
    ) -> None:
        self.table_extractor = table_extractor or TableExtractor()
        self.checkbox_confidence = checkbox_confidence

    def extract(self, document: LayoutDocument) -> list[FormData]:
        """Extract form data for every page that has any.

        Args:
            document: Validated layout document.

        Returns:
            One ``FormData`` per page with at least one field, table or
            checkbox.
        """
        resolver = LayoutTextResolver(document.text)
        forms: list[FormData] = []

        for page_number, page in enumerate(document.pages, start=1):
            form = FormData(
                fields=self._extract_fields(page, resolver, page_number),
                tables=self._extract_tables(page, resolver, page_number),
                checkboxes=self._extract_checkboxes(page, resolver, page_number),
            )
            if not form.is_empty():
                forms.append(form)

        logger.debug("Extracted form data from %d pages", len(forms))
        return forms

    def _extract_fields(
        self, page: Page, resolver: LayoutTextResolver, page_number: int
    ) -> list[FormFieldContent]:
        fields: list[FormFieldContent] = []
        for form_field in page.form_fields:
            name = resolver.resolve(form_field.field_name).strip()
            value = resolver.resolve(form_field.field_value).strip()
            if not name and not value:
                continue

            name_conf = _confidence_or_zero(form_field.field_name)
            value_conf = _confidence_or_zero(form_field.field_value)
            fields.append(
                FormFieldContent(
                    field_name=name,
                    field_value=value,
                    confidence=min(name_conf, value_conf),
                    page=page_number,
                )
            )
        return fields

    def _extract_tables(
        self, page: Page, resolver: LayoutTextResolver, page_number: int
    ) -> list[FormTable]:
        tables: list[FormTable] = []
        for table in page.tables:
            basic = self.table_extractor.extract(table, resolver, page_number)
            if basic is None:
                continue
            tables.append(
                FormTable(
                    headers=basic.headers,
                    rows=basic.rows,
                    page=page_number,
                    confidence=basic.confidence,
                    table_type=classify_table(basic),
                )
            )
        return tables

    def _extract_checkboxes(
        self, page: Page, resolver: LayoutTextResolver, page_number: int
    ) -> list[CheckboxContent]:
        checkboxes: list[CheckboxContent] = []
        for symbol in page.symbols:
            glyph = symbol.text
            if glyph is None:
                glyph = resolver.resolve(symbol.layout).strip()
            if glyph not in CHECKBOX_GLYPHS:
                continue

            layout_conf = symbol.layout.confidence if symbol.layout else None
            checkboxes.append(
                CheckboxContent(
                    name=f"checkbox_{page_number - 1}_{len(checkboxes)}",
                    is_checked=CHECKBOX_GLYPHS[glyph],
                    confidence=layout_conf or self.checkbox_confidence,
                    page=page_number,
                )
            )
        return checkboxes
