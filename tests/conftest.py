"""Shared test fixtures for the structured extraction test suite."""

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

DOC_TEXT = (
    "INVOICE SUMMARY\n"
    "The total is 3 + 4 = 7 units.\n"
    "Item\nQty\nWidget\n2\nGadget\n5\n"
    "Name\nJohn Doe\n"
    "☑\n"
    "Bonjour tout le monde\n"
)

LayoutFactory = Callable[..., dict[str, Any]]


def _box(x1: float, y1: float, x2: float, y2: float) -> dict[str, Any]:
    return {
        "normalizedVertices": [
            {"x": x1, "y": y1},
            {"x": x2, "y": y1},
            {"x": x2, "y": y2},
            {"x": x1, "y": y2},
        ]
    }


@pytest.fixture
def doc_text() -> str:
    return DOC_TEXT


@pytest.fixture
def make_layout() -> LayoutFactory:
    """Build a layout dict whose anchor points at a fragment of DOC_TEXT.

    Indices are encoded as strings, the way int64 values arrive in JSON.
    """

    def _make(
        fragment: str,
        confidence: float | None = None,
        box: tuple[float, float, float, float] | None = None,
        text: str = DOC_TEXT,
    ) -> dict[str, Any]:
        start = text.index(fragment)
        layout: dict[str, Any] = {
            "textAnchor": {
                "textSegments": [
                    {"startIndex": str(start), "endIndex": str(start + len(fragment))}
                ]
            }
        }
        if confidence is not None:
            layout["confidence"] = confidence
        if box is not None:
            layout["boundingPoly"] = _box(*box)
        return layout

    return _make


@pytest.fixture
def layout_payload(make_layout: LayoutFactory) -> dict[str, Any]:
    """A two-page layout document with every supported element type."""
    return {
        "text": DOC_TEXT,
        "pages": [
            {
                "pageNumber": 1,
                "dimension": {"width": 612, "height": 792, "unit": "points"},
                "detectedLanguages": [{"languageCode": "en", "confidence": 0.98}],
                "paragraphs": [
                    {
                        "layout": make_layout(
                            "INVOICE SUMMARY", 0.99, (0.1, 0.05, 0.9, 0.1)
                        )
                    },
                    {
                        "layout": make_layout(
                            "The total is 3 + 4 = 7 units.", 0.97, (0.1, 0.12, 0.9, 0.2)
                        )
                    },
                ],
                "tables": [
                    {
                        "layout": {"boundingPoly": _box(0.1, 0.3, 0.9, 0.5)},
                        "headerRows": [
                            {
                                "cells": [
                                    {"layout": make_layout("Item", 0.95)},
                                    {"layout": make_layout("Qty")},
                                ]
                            }
                        ],
                        "bodyRows": [
                            {
                                "cells": [
                                    {"layout": make_layout("Widget", 0.9)},
                                    {"layout": make_layout("2\n")},
                                ]
                            },
                            {
                                "cells": [
                                    {"layout": make_layout("Gadget", 0.92)},
                                    {"layout": make_layout("5", 0.93)},
                                ]
                            },
                        ],
                    }
                ],
                "formFields": [
                    {
                        "fieldName": make_layout("Name", 0.9),
                        "fieldValue": make_layout("John Doe", 0.85),
                    }
                ],
                "symbols": [{"layout": make_layout("☑", 0.7)}],
                "visualElements": [
                    {
                        "type": "logo",
                        "layout": {
                            "confidence": 0.88,
                            "boundingPoly": _box(0.5, 0.0, 0.75, 0.1),
                        },
                    }
                ],
            },
            {
                "pageNumber": 2,
                "paragraphs": [
                    {
                        "layout": make_layout("Bonjour tout le monde", 0.9),
                        "detectedLanguages": [
                            {"languageCode": "fr", "confidence": 0.9}
                        ],
                    }
                ],
            },
        ],
        "entities": [
            {"type": "total_amount", "mentionText": "7", "confidence": 0.8}
        ],
    }


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the configs directory path."""
    return project_root / "configs"
