"""Pydantic models for the normalized extraction output.

Models serialize with camelCase keys. Optional collections are stored
as ``None`` when empty so that ``to_dict`` omits them entirely instead
of emitting empty arrays.
"""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class OutputModel(BaseModel):
    """Base for output models: camelCase aliases on serialization."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-ready dict, omitting absent optional fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class MathType(StrEnum):
    EQUATION = "equation"
    FORMULA = "formula"
    SYMBOL = "symbol"


class TableType(StrEnum):
    FORM = "form"
    DATA = "data"
    INVOICE = "invoice"
    UNKNOWN = "unknown"


class QualityLevel(StrEnum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class BoundingBox(OutputModel):
    x: float
    y: float
    width: float
    height: float


class Size(OutputModel):
    width: float
    height: float


class TableContent(OutputModel):
    headers: list[str]
    rows: list[list[str]]
    page: int
    confidence: float
    is_structured: bool = False
    cell_confidences: list[list[float]] | None = None
    bounding_box: BoundingBox | None = None


class FormTable(OutputModel):
    headers: list[str]
    rows: list[list[str]]
    page: int
    confidence: float
    table_type: TableType = TableType.UNKNOWN


class MathematicalContent(OutputModel):
    """Mathematical notation found in text.

    ``bounding_box`` is left unset: pattern detection runs on text and
    has no page geometry to report.
    """

    content: str
    type: MathType
    page: int
    confidence: float
    bounding_box: BoundingBox | None = None
    latex: str | None = None


class ImageContent(OutputModel):
    description: str
    page: int
    bounding_box: BoundingBox
    confidence: float
    size: Size
    extracted_text: str | None = None


class ParagraphContent(OutputModel):
    text: str
    style: str
    page: int
    alignment: str


class HeaderContent(OutputModel):
    text: str
    level: int
    page: int
    style: str


class ListContent(OutputModel):
    items: list[str]
    type: str
    page: int


class DocumentStructure(OutputModel):
    tables: list[TableContent] = Field(default_factory=list)
    paragraphs: list[ParagraphContent] = Field(default_factory=list)
    headers: list[HeaderContent] = Field(default_factory=list)
    lists: list[ListContent] = Field(default_factory=list)


class FontInfo(OutputModel):
    name: str
    size: float
    bold: bool
    italic: bool


class StyleInfo(OutputModel):
    color: str
    background_color: str | None = None
    underlined: bool = False
    strikethrough: bool = False


class Margins(OutputModel):
    top: float
    bottom: float
    left: float
    right: float


class LayoutInfo(OutputModel):
    columns: int
    margins: Margins
    page_size: Size


class FormattingInfo(OutputModel):
    fonts: list[FontInfo] = Field(default_factory=list)
    styles: list[StyleInfo] = Field(default_factory=list)
    layout: LayoutInfo


class DetectedLanguageInfo(OutputModel):
    language_code: str
    confidence: float
    page_numbers: list[int]


class LanguageInfo(OutputModel):
    primary_language: str
    detected_languages: list[DetectedLanguageInfo]
    is_multilingual: bool


class OCRQualityInfo(OutputModel):
    overall_quality: QualityLevel
    average_confidence: float
    low_confidence_pages: list[int]
    readability_score: float


class FormFieldContent(OutputModel):
    field_name: str
    field_value: str
    confidence: float
    page: int


class CheckboxContent(OutputModel):
    name: str
    is_checked: bool
    confidence: float
    page: int


class FormData(OutputModel):
    fields: list[FormFieldContent] = Field(default_factory=list)
    tables: list[FormTable] = Field(default_factory=list)
    checkboxes: list[CheckboxContent] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.fields or self.tables or self.checkboxes)


class Entity(OutputModel):
    type: str
    mention_text: str
    confidence: float


class ProcessedDocument(OutputModel):
    """Application-ready representation of one processed document."""

    text: str
    page_count: int
    confidence: float
    processing_time_ms: float
    language: LanguageInfo | None = None
    ocr_quality: OCRQualityInfo | None = None
    entities: list[Entity] | None = None
    structure: DocumentStructure | None = None
    mathematics: list[MathematicalContent] | None = None
    images: list[ImageContent] | None = None
    formatting: FormattingInfo | None = None
    forms: list[FormData] | None = None
