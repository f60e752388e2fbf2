"""Logic for linking inline citations to reference list entries."""
from __future__ import annotations

import logging
import re
from typing import List, Optional, Sequence

from .models import (
    CitationPair,
    CitationStyle,
    ExtractedPattern,
    MatchedReference,
    ReferenceEntry,
    UnmatchedReason,
)
from .reference_metadata import HeuristicMetadataExtractor, ReferenceMetadataExtractor

log = logging.getLogger(__name__)


class CitationMatcher:
    """Match inline citations to reference entries with style-specific heuristics.

    Numeric styles match on the bracketed number; author-based styles match on
    surname (and year when present). The first matching entry wins; candidates
    are not scored against each other.
    """

    INLINE_NUMBER = re.compile(r"\[(\d+)\]")
    ENTRY_BRACKET_NUMBER = re.compile(r"^\s*\[(\d+)\]")
    ENTRY_DOT_NUMBER = re.compile(r"^\s*(\d+)\.")
    INLINE_YEAR = re.compile(r"\b(?:19|20)\d{2}\b")
    ET_AL = re.compile(r"\s+et al\.?")
    SURNAME_HEURISTICS = (
        re.compile(r"^([A-Z][a-z]+(?:\s+(?:et al\.|et al))?)(?:,|\s)\s*\d{4}"),
        re.compile(r"^([A-Z][a-z]+)(?:,|\s)\s*\d+"),
        re.compile(r"^([A-Z][a-z]+)"),
    )

    def __init__(self, extractor: ReferenceMetadataExtractor | None = None):
        self.extractor = extractor or HeuristicMetadataExtractor()

    def match_citations(
        self,
        inline_citations: Sequence[ExtractedPattern],
        reference_entries: Optional[Sequence[ReferenceEntry]],
        style: "CitationStyle | str",
    ) -> List[CitationPair]:
        """Return one pair per inline citation, in input order."""
        resolved = CitationStyle.parse(style)
        pairs: List[CitationPair] = []
        for inline in inline_citations:
            if reference_entries is None:
                pairs.append(CitationPair(inline, None, UnmatchedReason.NO_REFERENCE_LIST))
                continue

            if resolved == CitationStyle.IEEE:
                entry = self.match_numeric(inline, reference_entries)
            elif resolved in (CitationStyle.APA, CitationStyle.MLA):
                entry = self.match_author_year(inline, reference_entries)
            else:
                # Chicago author-date needs footnote support first.
                pairs.append(CitationPair(inline, None, UnmatchedReason.STYLE_NOT_SUPPORTED))
                continue

            if entry is None:
                pairs.append(CitationPair(inline, None, UnmatchedReason.NO_MATCHING_ENTRY))
            else:
                pairs.append(CitationPair(inline, self._matched(entry)))

        log.debug(
            "Matched %d of %d inline citations",
            sum(1 for pair in pairs if pair.reference is not None),
            len(pairs),
        )
        return pairs

    def match_numeric(
        self, inline: ExtractedPattern, references: Sequence[ReferenceEntry]
    ) -> Optional[ReferenceEntry]:
        number_match = self.INLINE_NUMBER.search(inline.text)
        if not number_match:
            return None
        number = int(number_match.group(1))
        for ref in references:
            label = self.ENTRY_BRACKET_NUMBER.match(ref.raw_text) or self.ENTRY_DOT_NUMBER.match(
                ref.raw_text
            )
            if label and int(label.group(1)) == number:
                return ref
        return None

    def match_author_year(
        self, inline: ExtractedPattern, references: Sequence[ReferenceEntry]
    ) -> Optional[ReferenceEntry]:
        author = self.extract_inline_author(inline.text)
        if not author:
            return None
        year = self.extract_inline_year(inline.text)
        author_key = author.lower()
        for ref in references:
            ref_text = ref.raw_text.lower()
            if author_key not in ref_text:
                continue
            if year is None or str(year) in ref_text:
                return ref
        return None

    def extract_inline_author(self, text: str) -> Optional[str]:
        cleaned = re.sub(r"[()\[\]]", "", text).strip()
        for heuristic in self.SURNAME_HEURISTICS:
            match = heuristic.match(cleaned)
            if match:
                return self.ET_AL.sub("", match.group(1)).strip()
        return None

    def extract_inline_year(self, text: str) -> Optional[int]:
        match = self.INLINE_YEAR.search(text)
        return int(match.group(0)) if match else None

    def _matched(self, entry: ReferenceEntry) -> MatchedReference:
        return MatchedReference(
            raw_text=entry.raw_text,
            index=entry.index,
            metadata=self.extractor.extract(entry.raw_text),
        )


__all__ = ["CitationMatcher"]
