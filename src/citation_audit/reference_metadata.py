"""Best-effort title/author/year/DOI extraction from raw reference text."""
from __future__ import annotations

import re
from typing import Optional

from .models import ReferenceMetadata


class ReferenceMetadataExtractor:
    """Base interface; swap in a real bibliographic parser by subclassing."""

    def extract(self, raw_text: str) -> ReferenceMetadata:  # pragma: no cover - interface
        raise NotImplementedError


class HeuristicMetadataExtractor(ReferenceMetadataExtractor):
    """String heuristics covering common APA, MLA and IEEE entry shapes."""

    INDEX_PREFIX = re.compile(r"^\s*(?:\[\d+\]|\d+\.)\s*")
    QUOTED_TITLE = re.compile(r"[\"“]([^\"”]+)[\"”]")
    DATED_TITLE = re.compile(r"\(\d{4}[a-z]?\)\.\s*([^.]+)")
    YEAR_PATTERN = re.compile(r"\b(?:19|20)\d{2}\b")
    DOI_PATTERN = re.compile(r"10\.\d{4,9}/\S+", re.IGNORECASE)

    def extract(self, raw_text: str) -> ReferenceMetadata:
        text = self._strip_index(raw_text or "")
        return ReferenceMetadata(
            title=self.extract_title(text),
            author=self.extract_author(text),
            year=self.extract_year(text),
            doi=self.extract_doi(text),
        )

    def _strip_index(self, text: str) -> str:
        return self.INDEX_PREFIX.sub("", text, count=1)

    def extract_title(self, text: str) -> Optional[str]:
        quoted = self.QUOTED_TITLE.search(text)
        if quoted:
            title = quoted.group(1).strip().rstrip(",")
            return title or None
        dated = self.DATED_TITLE.search(text)
        if dated:
            title = dated.group(1).strip()
            return title or None
        return None

    def extract_author(self, text: str) -> Optional[str]:
        candidate = text
        for marker in ("(", '"', "“"):
            head = text.split(marker, 1)[0]
            if 5 < len(head) < len(candidate):
                candidate = head
        author = candidate.strip().rstrip(",.").strip()
        return author or None

    def extract_year(self, text: str) -> Optional[int]:
        match = self.YEAR_PATTERN.search(text)
        return int(match.group(0)) if match else None

    def extract_doi(self, text: str) -> Optional[str]:
        match = self.DOI_PATTERN.search(text)
        if not match:
            return None
        return match.group(0).rstrip(".,;)")


__all__ = ["ReferenceMetadataExtractor", "HeuristicMetadataExtractor"]
