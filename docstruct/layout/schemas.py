"""Typed schema for the layout service's document output.

Mirrors the JSON returned by Document AI style processors: a flat
``text`` buffer plus pages whose paragraphs, tables and form fields point
back into that buffer through text anchors. Every nested piece is
optional so that partial responses validate and degrade to defaults.
Unknown keys are ignored.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class LayoutModel(BaseModel):
    """Base for all layout models: camelCase input, extra keys ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # JSON null means absent, so field defaults apply.
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class TextSegment(LayoutModel):
    """Half-open ``[start_index, end_index)`` slice of the document text.

    Indices arrive as strings (int64 in JSON) and are coerced to ``int``.
    """

    start_index: int | None = None
    end_index: int | None = None


class TextAnchor(LayoutModel):
    text_segments: list[TextSegment] = Field(default_factory=list)


class Vertex(LayoutModel):
    x: float | None = None
    y: float | None = None


class BoundingPoly(LayoutModel):
    vertices: list[Vertex] = Field(default_factory=list)
    normalized_vertices: list[Vertex] = Field(default_factory=list)


class Layout(LayoutModel):
    """A region of the page referring to text in the document buffer."""

    text_anchor: TextAnchor | None = None
    confidence: float | None = None
    bounding_poly: BoundingPoly | None = None


class DetectedLanguage(LayoutModel):
    language_code: str | None = None
    confidence: float | None = None


class Paragraph(LayoutModel):
    layout: Layout | None = None
    detected_languages: list[DetectedLanguage] = Field(default_factory=list)


class TableCell(LayoutModel):
    layout: Layout | None = None
    row_span: int | None = None
    col_span: int | None = None


class TableRow(LayoutModel):
    cells: list[TableCell] = Field(default_factory=list)


class Table(LayoutModel):
    layout: Layout | None = None
    header_rows: list[TableRow] = Field(default_factory=list)
    body_rows: list[TableRow] = Field(default_factory=list)


def _unwrap_layout(value: Any) -> Any:
    # Some producers nest the layout one level deeper: {"layout": {...}}.
    if isinstance(value, dict) and "layout" in value and "textAnchor" not in value:
        return value["layout"]
    return value


class FormField(LayoutModel):
    """A key/value pair detected by a form-parsing processor."""

    field_name: Layout | None = None
    field_value: Layout | None = None

    @model_validator(mode="before")
    @classmethod
    def _accept_wrapped_layouts(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for key in ("fieldName", "field_name", "fieldValue", "field_value"):
            if key in data:
                data[key] = _unwrap_layout(data[key])
        return data


class VisualElement(LayoutModel):
    layout: Layout | None = None
    type: str | None = None
    detected_languages: list[DetectedLanguage] = Field(default_factory=list)


class Symbol(LayoutModel):
    """A single glyph; ``text`` is filled by some producers directly."""

    layout: Layout | None = None
    text: str | None = None


class Dimension(LayoutModel):
    width: float | None = None
    height: float | None = None
    unit: str | None = None


class Page(LayoutModel):
    page_number: int | None = None
    dimension: Dimension | None = None
    layout: Layout | None = None
    detected_languages: list[DetectedLanguage] = Field(default_factory=list)
    paragraphs: list[Paragraph] = Field(default_factory=list)
    tables: list[Table] = Field(default_factory=list)
    form_fields: list[FormField] = Field(default_factory=list)
    visual_elements: list[VisualElement] = Field(default_factory=list)
    symbols: list[Symbol] = Field(default_factory=list)


class DocumentEntity(LayoutModel):
    type: str | None = None
    mention_text: str | None = None
    confidence: float | None = None


class LayoutDocument(LayoutModel):
    """Root object returned by a layout processor."""

    text: str = ""
    pages: list[Page] = Field(default_factory=list)
    entities: list[DocumentEntity] = Field(default_factory=list)
