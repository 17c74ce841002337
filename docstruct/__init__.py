"""Structured document extraction.

Turns page/paragraph/table/form layouts returned by an external
document-understanding service into a normalized ``ProcessedDocument``,
coordinates which processors to call for a document, and tracks
extraction jobs in a priority queue.
"""

__version__ = "1.0.0"
