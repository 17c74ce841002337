"""Tests for table extraction and rendering."""

from typing import Any

import pytest

from docstruct.extraction.schemas import TableContent
from docstruct.extraction.table_extractor import (
    TableExtractor,
    is_structured,
    render_table,
)
from docstruct.layout.resolver import LayoutTextResolver
from docstruct.layout.schemas import LayoutDocument, Table


@pytest.fixture
def document(layout_payload: dict[str, Any]) -> LayoutDocument:
    return LayoutDocument.model_validate(layout_payload)


@pytest.fixture
def table(document: LayoutDocument) -> Table:
    return document.pages[0].tables[0]


@pytest.fixture
def resolver(document: LayoutDocument) -> LayoutTextResolver:
    return LayoutTextResolver(document.text)


class TestIsStructured:
    """Tests for the structural consistency check."""

    def test_consistent_rows(self) -> None:
        assert is_structured(["a", "b"], [["1", "2"], ["3", "4"]]) is True

    def test_ragged_rows(self) -> None:
        assert is_structured(["a", "b"], [["1", "2"], ["3"]]) is False

    def test_needs_headers_and_rows(self) -> None:
        assert is_structured([], [["1"]]) is False
        assert is_structured(["a"], []) is False


class TestTableExtractor:
    """Tests for basic and enhanced table extraction."""

    def test_extract_headers_and_rows(
        self, table: Table, resolver: LayoutTextResolver
    ) -> None:
        result = TableExtractor().extract(table, resolver, page=1)
        assert result is not None
        assert result.headers == ["Item", "Qty"]
        assert result.rows == [["Widget", "2"], ["Gadget", "5"]]
        assert result.page == 1
        assert result.confidence == 0.9
        assert result.is_structured is False

    def test_enhanced_sets_structure_and_confidences(
        self, table: Table, resolver: LayoutTextResolver
    ) -> None:
        result = TableExtractor().extract_enhanced(table, resolver, page=1)
        assert result.is_structured is True
        assert result.cell_confidences == [[0.9, 0.8], [0.92, 0.93]]
        assert result.bounding_box is not None
        assert result.bounding_box.x == pytest.approx(0.1)
        assert result.bounding_box.height == pytest.approx(0.2)

    def test_empty_rows_are_dropped_with_their_confidences(
        self, resolver: LayoutTextResolver
    ) -> None:
        table = Table.model_validate(
            {
                "headerRows": [{"cells": [{}]}],
                "bodyRows": [
                    {"cells": [{"layout": {"confidence": 0.1}}]},
                    {
                        "cells": [
                            {
                                "layout": {
                                    "confidence": 0.7,
                                    "textAnchor": {
                                        "textSegments": [
                                            {"startIndex": 0, "endIndex": 7}
                                        ]
                                    },
                                }
                            }
                        ]
                    },
                ],
            }
        )
        result = TableExtractor().extract_enhanced(table, resolver, page=3)
        assert result.rows == [["INVOICE"]]
        assert result.cell_confidences == [[0.7]]

    def test_table_without_rows_is_skipped(
        self, resolver: LayoutTextResolver
    ) -> None:
        extractor = TableExtractor()
        assert extractor.extract(Table(), resolver, page=1) is None
        assert extractor.extract_enhanced(Table(), resolver, page=1) is None

    def test_structured_invariant_holds(
        self, table: Table, resolver: LayoutTextResolver
    ) -> None:
        result = TableExtractor().extract_enhanced(table, resolver, page=1)
        expected = len(result.headers) > 0 and all(
            len(r) == len(result.headers) for r in result.rows
        )
        assert result.is_structured == expected

    def test_confidences_are_configurable(
        self, table: Table, resolver: LayoutTextResolver
    ) -> None:
        result = TableExtractor(table_confidence=0.5, cell_confidence=0.4).extract_enhanced(
            table, resolver, page=1
        )
        assert result.confidence == 0.5
        assert result.cell_confidences[0][1] == 0.4


class TestRenderTable:
    """Tests for the bracketed plain-text table rendering."""

    def test_structured_tag(self) -> None:
        table = TableContent(
            headers=["A", "B"],
            rows=[["1", "2"]],
            page=1,
            confidence=0.9,
            is_structured=True,
        )
        assert render_table(table) == (
            "\n[STRUCTURED_TABLE]\nA | B\n1 | 2\n[/STRUCTURED_TABLE]\n\n"
        )

    def test_plain_tag(self) -> None:
        table = TableContent(headers=["A"], rows=[["1", "2"]], page=1, confidence=0.9)
        rendered = render_table(table)
        assert rendered.startswith("\n[TABLE]\n")
        assert rendered.endswith("[/TABLE]\n\n")
