"""Structured extraction pipeline.

Walks every page of a layout document, resolving paragraphs, tables and
visual elements into one text stream plus structured side outputs, then
runs document-wide language, quality and form analysis.
"""

import time

from pydantic import ValidationError

from docstruct.analysis.language import LanguageDetector
from docstruct.analysis.quality import OCRQualityAssessor, PageSample
from docstruct.analysis.structure import ParagraphBlock, StructureClassifier
from docstruct.extraction.form_extractor import FormExtractor
from docstruct.extraction.math_detector import MathPatternExtractor
from docstruct.extraction.sanitizer import ContentSanitizer
from docstruct.extraction.schemas import (
    DocumentStructure,
    Entity,
    FontInfo,
    FormattingInfo,
    ImageContent,
    LayoutInfo,
    Margins,
    MathematicalContent,
    ParagraphContent,
    ProcessedDocument,
    Size,
    StyleInfo,
)
from docstruct.extraction.table_extractor import TableExtractor, render_table
from docstruct.layout.resolver import LayoutTextResolver, bounding_box
from docstruct.layout.schemas import LayoutDocument, Page, Paragraph, VisualElement
from docstruct.utils.config import ExtractionConfig
from docstruct.utils.logger import get_logger, log_timing

from .errors import ErrorKind, ProcessingError

logger = get_logger(__name__)

HIGH_CONFIDENCE_STYLE = 0.95

# Layout output has no typography; these are the values reported for it.
DEFAULT_FONT = FontInfo(name="Unknown", size=12, bold=False, italic=False)
DEFAULT_STYLE = StyleInfo(color="#000000", underlined=False, strikethrough=False)


class ExtractionPipeline:
    """Turns one layout document into a ``ProcessedDocument``.

    Args:
        config: Extraction defaults and thresholds.
    """

    def __init__(self, config: ExtractionConfig | None = None) -> None:
        self.config = config or ExtractionConfig()
        self.table_extractor = TableExtractor(
            table_confidence=self.config.table_confidence,
            cell_confidence=self.config.cell_confidence,
        )
        self.math_extractor = MathPatternExtractor(self.config.math_confidence)
        self.form_extractor = FormExtractor(
            self.table_extractor, self.config.checkbox_confidence
        )
        self.language_detector = LanguageDetector()
        self.quality_assessor = OCRQualityAssessor(
            self.config.low_confidence_threshold
        )
        self.structure_classifier = StructureClassifier()
        self.sanitizer = ContentSanitizer()

    def process(self, document: LayoutDocument | dict) -> ProcessedDocument:
        """Run the full extraction over a layout document.

        Args:
            document: Validated layout document, or its raw JSON dict.

        Returns:
            The normalized document.

        Raises:
            ProcessingError: If a raw dict does not match the layout schema.
        """
        start_time = time.time()
        document = self._validate(document)
        resolver = LayoutTextResolver(document.text)

        text_parts: list[str] = []
        structure = DocumentStructure()
        mathematics: list[MathematicalContent] = []
        images: list[ImageContent] = []
        blocks: list[ParagraphBlock] = []
        samples: list[PageSample] = []
        fonts: list[FontInfo] = []
        styles: list[StyleInfo] = []

        with log_timing(logger, "Page extraction"):
            for page_number, page in enumerate(document.pages, start=1):
                sample = PageSample()
                samples.append(sample)

                for paragraph in page.paragraphs:
                    self._extract_paragraph(
                        paragraph,
                        resolver,
                        page_number,
                        text_parts,
                        structure,
                        mathematics,
                        blocks,
                        sample,
                    )

                for table in page.tables:
                    extracted = self.table_extractor.extract_enhanced(
                        table, resolver, page_number
                    )
                    if extracted is not None:
                        structure.tables.append(extracted)
                        text_parts.append(render_table(extracted))

                for element in page.visual_elements:
                    image = self._extract_image(element, resolver, page_number)
                    if image is not None:
                        images.append(image)
                        text_parts.append(f"\n[IMAGE: {image.description}]\n")

                if page.paragraphs:
                    if DEFAULT_FONT not in fonts:
                        fonts.append(DEFAULT_FONT)
                    if DEFAULT_STYLE not in styles:
                        styles.append(DEFAULT_STYLE)

        full_text = "".join(text_parts)
        if not full_text and document.text:
            full_text = document.text
            mathematics.extend(self.math_extractor.extract(document.text, 1))

        all_confidences = [c for s in samples for c in s.confidences]
        average_confidence = (
            sum(all_confidences) / len(all_confidences)
            if all_confidences
            else self.config.default_document_confidence
        )

        structure.headers = self.structure_classifier.headers(blocks)
        structure.lists = self.structure_classifier.lists(blocks)

        language = self.language_detector.detect(document.pages)
        quality = self.quality_assessor.assess(
            samples, average_confidence, fallback_text=document.text
        )
        forms = self.form_extractor.extract(document)
        entities = [
            Entity(
                type=e.type or "unknown",
                mention_text=e.mention_text or "",
                confidence=e.confidence or 0.0,
            )
            for e in document.entities
        ]

        formatting = FormattingInfo(
            fonts=fonts,
            styles=styles,
            layout=self._layout_info(document.pages, blocks),
        )

        processing_time = (time.time() - start_time) * 1000
        logger.info(
            "Extracted %d pages: %d paragraphs, %d tables, %d math, %d images",
            len(document.pages),
            len(structure.paragraphs),
            len(structure.tables),
            len(mathematics),
            len(images),
        )

        return ProcessedDocument(
            text=self.sanitizer.sanitize(full_text),
            page_count=len(document.pages) or 1,
            confidence=round(average_confidence, 2),
            processing_time_ms=processing_time,
            language=language,
            ocr_quality=quality,
            entities=entities or None,
            structure=(
                structure if structure.tables or structure.paragraphs else None
            ),
            mathematics=mathematics or None,
            images=images or None,
            formatting=formatting,
            forms=forms or None,
        )

    def _validate(self, document: LayoutDocument | dict) -> LayoutDocument:
        if isinstance(document, LayoutDocument):
            return document
        try:
            return LayoutDocument.model_validate(document)
        except ValidationError as exc:
            raise ProcessingError(
                ErrorKind.INVALID_DOCUMENT,
                "Layout document does not match the expected schema",
                details={"errors": exc.errors(include_url=False)},
            ) from exc

    def _extract_paragraph(
        self,
        paragraph: Paragraph,
        resolver: LayoutTextResolver,
        page_number: int,
        text_parts: list[str],
        structure: DocumentStructure,
        mathematics: list[MathematicalContent],
        blocks: list[ParagraphBlock],
        sample: PageSample,
    ) -> None:
        layout = paragraph.layout
        if layout is not None and layout.confidence:
            sample.confidences.append(layout.confidence)
        if layout is None or layout.text_anchor is None:
            return

        text = resolver.resolve(layout)
        text_parts.append(text)
        sample.texts.append(text)
        mathematics.extend(self.math_extractor.extract(text, page_number))

        if not text.strip():
            return

        structure.paragraphs.append(
            ParagraphContent(
                text=text.strip(),
                style=self._paragraph_style(paragraph),
                page=page_number,
                alignment="left",
            )
        )
        blocks.append(
            ParagraphBlock(
                text=text.strip(),
                page=page_number,
                bbox=bounding_box(layout.bounding_poly),
            )
        )
        text_parts.append("\n")

    def _paragraph_style(self, paragraph: Paragraph) -> str:
        confidence = paragraph.layout.confidence if paragraph.layout else None
        if confidence and confidence > HIGH_CONFIDENCE_STYLE:
            return "high-confidence"
        return "normal"

    def _extract_image(
        self, element: VisualElement, resolver: LayoutTextResolver, page_number: int
    ) -> ImageContent | None:
        if element.layout is None:
            return None
        box = bounding_box(element.layout.bounding_poly)
        if box is None:
            return None

        extracted = resolver.resolve(element.layout).strip()
        # Any located element is kept, described by its type rather than
        # by its detected language.
        return ImageContent(
            description=element.type or "Unknown visual element",
            page=page_number,
            bounding_box=box,
            confidence=element.layout.confidence or self.config.image_confidence,
            size=Size(
                width=box.width * self.config.page_width,
                height=box.height * self.config.page_height,
            ),
            extracted_text=extracted or None,
        )

    def _layout_info(self, pages: list[Page], blocks: list[ParagraphBlock]) -> LayoutInfo:
        width, height = self.config.page_width, self.config.page_height
        if pages and pages[0].dimension is not None:
            dimension = pages[0].dimension
            width = dimension.width or width
            height = dimension.height or height

        margin = self.config.page_margin
        return LayoutInfo(
            columns=self.structure_classifier.column_count(blocks),
            margins=Margins(top=margin, bottom=margin, left=margin, right=margin),
            page_size=Size(width=width, height=height),
        )
