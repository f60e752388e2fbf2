"""Structural checks for reference lists and citation linkage."""
from __future__ import annotations

import re
from typing import List, Sequence

from .models import (
    CitationFlag,
    CitationPair,
    CitationStyle,
    ReferenceEntry,
    ReferenceListExtraction,
    TextAnchor,
    ViolationType,
)
from .style_rules import (
    NUMBERED_ENTRIES_DISALLOWED,
    NUMBERED_ENTRIES_REQUIRED,
    SHARED_MESSAGES,
    WRONG_SECTION_TITLE,
    NumberingPolicy,
    StyleRuleRegistry,
)

NUMBERED_ENTRY_PATTERN = re.compile(r"^\s*(?:\[\d+\]|\d+\.)")


class ReferenceListValidator:
    """Validate the reference section title and entry numbering for a style."""

    def __init__(self, registry: StyleRuleRegistry | None = None):
        self.registry = registry or StyleRuleRegistry()

    def validate(
        self, reference_list: ReferenceListExtraction, style: "CitationStyle | str"
    ) -> List[CitationFlag]:
        flags = self.validate_section_title(reference_list.section_title, style)
        flags.extend(self.validate_numbering(reference_list.entries, style))
        return flags

    def validate_section_title(
        self, section_title: str, style: "CitationStyle | str"
    ) -> List[CitationFlag]:
        rules = self.registry.get_rules(style)
        found = (section_title or "").strip().lower()
        accepted = {title.lower() for title in rules.reference_list.accepted_titles}
        if found in accepted:
            return []
        return [
            CitationFlag(
                type=ViolationType.STRUCTURAL,
                rule_id=f"{rules.style.value}.WRONG_REF_SECTION_TITLE",
                message=rules.message_for(WRONG_SECTION_TITLE),
                section="Reference List",
                expected=rules.canonical_title,
            )
        ]

    def validate_numbering(
        self, entries: Sequence[ReferenceEntry], style: "CitationStyle | str"
    ) -> List[CitationFlag]:
        """Compare the first entry's numbering against the style's policy.

        Only the first entry is inspected, so lists that switch numbering
        part-way through are not caught.
        """
        if not entries:
            return []
        rules = self.registry.get_rules(style)
        first = entries[0]
        numbered = bool(NUMBERED_ENTRY_PATTERN.match(first.raw_text))
        policy = rules.reference_list.numbering

        if numbered and policy == NumberingPolicy.FORBIDDEN:
            key = NUMBERED_ENTRIES_DISALLOWED
        elif not numbered and policy == NumberingPolicy.REQUIRED:
            key = NUMBERED_ENTRIES_REQUIRED
        else:
            return []
        return [
            CitationFlag(
                type=ViolationType.REF_LIST_ENTRY,
                rule_id=f"{rules.style.value}.{key}",
                message=rules.message_for(key),
                anchor=_entry_anchor(first),
                section="Reference List",
            )
        ]


def validate_citation_linkage(
    pairs: Sequence[CitationPair], entries: Sequence[ReferenceEntry]
) -> List[CitationFlag]:
    """Flag inline citations with no entry and entries no citation points to."""
    flags: List[CitationFlag] = []
    linked = set()
    for pair in pairs:
        if pair.reference is None:
            flags.append(
                CitationFlag(
                    type=ViolationType.STRUCTURAL,
                    rule_id="UNMATCHED_CITATION",
                    message=SHARED_MESSAGES["UNMATCHED_CITATION"],
                    anchor=TextAnchor(pair.inline.start, pair.inline.end, pair.inline.text),
                )
            )
        else:
            linked.add(pair.reference.index)

    for entry in entries:
        if entry.index not in linked:
            flags.append(
                CitationFlag(
                    type=ViolationType.STRUCTURAL,
                    rule_id="ORPHAN_REFERENCE",
                    message=SHARED_MESSAGES["ORPHAN_REFERENCE"],
                    anchor=_entry_anchor(entry),
                    section="Reference List",
                )
            )
    return flags


def _entry_anchor(entry: ReferenceEntry) -> TextAnchor:
    return TextAnchor(start=entry.start, end=entry.end, text=entry.raw_text)


__all__ = ["ReferenceListValidator", "validate_citation_linkage"]
