"""Heuristic classification of paragraphs into headers, lists and columns.

Layout output carries no typographic detail, so these rules look only at
the paragraph text and its normalized position on the page.
"""

import re
from dataclasses import dataclass

from docstruct.extraction.schemas import BoundingBox, HeaderContent, ListContent


_LIST_MARKER = re.compile(r"^\s*(?:[•◦▪‣*\-–]|\d{1,3}[.)]|[a-zA-Z][.)])\s+")
_ORDERED_MARKER = re.compile(r"^\s*(?:\d{1,3}|[a-zA-Z])[.)]\s+")
_TERMINAL_PUNCTUATION = (".", ",", ";", ":", "!", "?")


@dataclass
class ParagraphBlock:
    """A resolved paragraph with its page and normalized geometry."""

    text: str
    page: int
    bbox: BoundingBox | None = None


class StructureClassifier:
    """Detects headers, bullet/numbered lists and multi-column pages.

    Args:
        max_header_words: Longest paragraph, in words, treated as a header.
        min_list_items: Shortest run of marked paragraphs reported as a list.
    """

    def __init__(self, max_header_words: int = 10, min_list_items: int = 2) -> None:
        self.max_header_words = max_header_words
        self.min_list_items = min_list_items

    def headers(self, blocks: list[ParagraphBlock]) -> list[HeaderContent]:
        """Find short, unpunctuated, capitalized paragraphs.

        All-caps headers are level 1, the rest level 2.
        """
        headers: list[HeaderContent] = []
        for block in blocks:
            text = block.text.strip()
            if not self._looks_like_header(text):
                continue
            level = 1 if text.isupper() else 2
            headers.append(
                HeaderContent(
                    text=text,
                    level=level,
                    page=block.page,
                    style="title" if level == 1 else "heading",
                )
            )
        return headers

    def lists(self, blocks: list[ParagraphBlock]) -> list[ListContent]:
        """Group consecutive marker-prefixed paragraphs of a page into lists."""
        lists: list[ListContent] = []
        run: list[ParagraphBlock] = []

        for block in [*blocks, None]:
            continues = (
                block is not None
                and _LIST_MARKER.match(block.text)
                and (not run or run[-1].page == block.page)
            )
            if continues:
                run.append(block)
                continue

            if len(run) >= self.min_list_items:
                lists.append(self._make_list(run))
            run = []
            if block is not None and _LIST_MARKER.match(block.text):
                run.append(block)

        return lists

    def column_count(self, blocks: list[ParagraphBlock]) -> int:
        """Estimate the number of text columns.

        A page is two-column when it has narrow paragraphs confined to
        both the left and the right half. Defaults to one column.
        """
        columns = 1
        pages: dict[int, list[BoundingBox]] = {}
        for block in blocks:
            if block.bbox is not None:
                pages.setdefault(block.page, []).append(block.bbox)

        for boxes in pages.values():
            narrow = [b for b in boxes if b.width < 0.5]
            has_left = any(b.x + b.width <= 0.5 for b in narrow)
            has_right = any(b.x >= 0.5 for b in narrow)
            if has_left and has_right:
                columns = 2
        return columns

    def _looks_like_header(self, text: str) -> bool:
        if not text or "\n" in text or _LIST_MARKER.match(text):
            return False
        if len(text.split()) > self.max_header_words:
            return False
        if text.endswith(_TERMINAL_PUNCTUATION):
            return False
        return text[0].isupper()

    def _make_list(self, run: list[ParagraphBlock]) -> ListContent:
        ordered = bool(_ORDERED_MARKER.match(run[0].text))
        items = [_LIST_MARKER.sub("", b.text, count=1).strip() for b in run]
        return ListContent(
            items=items,
            type="ordered" if ordered else "unordered",
            page=run[0].page,
        )
