"""
Detail-page parsing exports.
"""

from app.crawling.parsing.document import ParsedDocument
from app.crawling.parsing.extractor import AttributeExtractor

__all__ = ["AttributeExtractor", "ParsedDocument"]
