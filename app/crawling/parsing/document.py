"""
Parsed detail-page document with cached views used by extraction strategies.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterator
from typing import Any

from bs4 import BeautifulSoup, Comment, Tag

_HIDDEN_PARENTS = frozenset({"script", "style", "noscript", "template", "head", "title"})
_LABEL_VALUE_REGEX = re.compile(r"^\s*([A-Za-z][A-Za-z /()-]{1,40}?)\s*:\s*(.+?)\s*$")


def clean_text(value: str) -> str:
    return re.sub(r"\s+", " ", value).strip()


class ParsedDocument:
    """
    One HTML document parsed once and shared by every field strategy.
    """

    def __init__(self, html: str, url: str) -> None:
        self.url = url
        self.soup = BeautifulSoup(html, "html.parser")
        self._visible_text: str | None = None
        self._labelled_values: dict[str, str] | None = None
        self._json_ld: list[dict[str, Any]] | None = None

    @property
    def visible_text(self) -> str:
        """
        Body text in document order, whitespace collapsed.
        """

        if self._visible_text is None:
            chunks: list[str] = []
            for node in self.soup.find_all(string=True):
                if isinstance(node, Comment):
                    continue
                if any(parent.name in _HIDDEN_PARENTS for parent in node.parents if parent.name):
                    continue
                text = str(node).strip()
                if text:
                    chunks.append(text)
            self._visible_text = clean_text(" ".join(chunks))
        return self._visible_text

    def meta_content(self, *keys: str) -> str | None:
        """
        First non-empty <meta> content whose property, name or itemprop is in `keys`.
        """

        wanted = {key.lower() for key in keys}
        for meta in self.soup.find_all("meta"):
            identifiers = {
                str(meta.get(attr, "")).strip().lower() for attr in ("property", "name", "itemprop")
            }
            if identifiers & wanted:
                content = clean_text(str(meta.get("content", "")))
                if content:
                    return content
        return None

    def labelled_values(self) -> dict[str, str]:
        """
        Spec-table style label -> value pairs, labels lowercased.

        Reads <dt>/<dd>, two-cell table rows and "Label: value" list items.
        The first occurrence of a label wins.
        """

        if self._labelled_values is None:
            pairs: dict[str, str] = {}
            for label, value in self._iter_label_pairs():
                key = clean_text(label).rstrip(":").strip().lower()
                text = clean_text(value)
                if key and text and key not in pairs:
                    pairs[key] = text
            self._labelled_values = pairs
        return self._labelled_values

    def labelled_value(self, *fragments: str) -> str | None:
        """
        Value of the first label containing any of `fragments`.
        """

        for label, value in self.labelled_values().items():
            if any(fragment in label for fragment in fragments):
                return value
        return None

    def json_ld_objects(self) -> list[dict[str, Any]]:
        """
        Flattened JSON-LD objects; invalid blocks are skipped.
        """

        if self._json_ld is None:
            objects: list[dict[str, Any]] = []
            for script in self.soup.find_all("script", attrs={"type": "application/ld+json"}):
                raw = script.string or script.get_text()
                try:
                    data = json.loads(raw)
                except (TypeError, ValueError):
                    continue
                objects.extend(_flatten_json_ld(data))
            self._json_ld = objects
        return self._json_ld

    def _iter_label_pairs(self) -> Iterator[tuple[str, str]]:
        for term in self.soup.find_all("dt"):
            definition = term.find_next_sibling("dd")
            if isinstance(definition, Tag):
                yield term.get_text(" ", strip=True), definition.get_text(" ", strip=True)
        for row in self.soup.find_all("tr"):
            cells = row.find_all(["th", "td"], recursive=False)
            if len(cells) == 2:
                yield cells[0].get_text(" ", strip=True), cells[1].get_text(" ", strip=True)
        for item in self.soup.find_all("li"):
            match = _LABEL_VALUE_REGEX.match(item.get_text(" ", strip=True))
            if match is not None:
                yield match.group(1), match.group(2)


def _flatten_json_ld(data: object) -> Iterator[dict[str, Any]]:
    if isinstance(data, list):
        for item in data:
            yield from _flatten_json_ld(item)
    elif isinstance(data, dict):
        yield data
        graph = data.get("@graph")
        if graph is not None:
            yield from _flatten_json_ld(graph)
