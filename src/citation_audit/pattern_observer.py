"""Deterministic detection of inline citation style violations."""
from __future__ import annotations

import re
from typing import Dict, Iterable, List, Pattern

from .models import (
    CitationFlag,
    CitationStyle,
    ExtractedPattern,
    PatternType,
    TextAnchor,
    ViolationType,
)
from .style_rules import SHARED_MESSAGES, StyleRuleConfig, StyleRuleRegistry


class PatternObserver:
    """Scan text or extracted patterns for markers a style does not allow."""

    PATTERNS: Dict[PatternType, Pattern[str]] = {
        # [1], [1, 2], [1-3]
        PatternType.NUMERIC_BRACKET: re.compile(r"\[\s*\d+(?:[\s,–-]+\d+)*\s*\]"),
        # (Smith, 2020), (Smith et al., 2020a)
        PatternType.AUTHOR_YEAR: re.compile(r"\([A-Z][a-z]+(?: et al\.?)?,?\s*\d{4}[a-z]?\)"),
        # (Smith 24), (Smith, p. 24); years are left to AUTHOR_YEAR
        PatternType.AUTHOR_PAGE: re.compile(
            r"\([A-Z][a-z]+(?: et al\.?)?(?:,|\s)\s*(?:pp?\.\s*)?"
            r"(?!(?:19|20)\d{2}[a-z]?\))\d+(?:[–-]\d+)?\)"
        ),
        PatternType.ET_AL_NO_PERIOD: re.compile(r"\bet al(?!\.)\b"),
        PatternType.ET_AL_WITH_PERIOD: re.compile(r"\bet al\."),
        PatternType.AND_IN_PAREN: re.compile(r"\([^)]*\band\b[^)]*\)"),
        PatternType.AMPERSAND_IN_PAREN: re.compile(r"\([^)]*&[^)]*\)"),
    }

    # Fingerprints used for advisory style detection. Chicago has none yet.
    STYLE_FINGERPRINTS = (
        (CitationStyle.IEEE, {PatternType.NUMERIC_BRACKET}),
        (
            CitationStyle.MLA,
            {PatternType.AUTHOR_PAGE, PatternType.ET_AL_WITH_PERIOD, PatternType.ET_AL_NO_PERIOD},
        ),
        (CitationStyle.APA, {PatternType.AUTHOR_YEAR, PatternType.AMPERSAND_IN_PAREN}),
    )

    def __init__(self, registry: StyleRuleRegistry | None = None):
        self.registry = registry or StyleRuleRegistry()

    def observe(self, text: str, style: "CitationStyle | str") -> List[CitationFlag]:
        """Return one flag per disallowed pattern occurrence in ``text``."""
        rules = self.registry.get_rules(style)
        flags: List[CitationFlag] = []
        for pattern_type in rules.disallowed_patterns:
            regex = self.PATTERNS.get(pattern_type)
            if regex is None:
                continue
            for match in regex.finditer(text):
                flags.append(
                    _inline_flag(rules, pattern_type, match.start(), match.end(), match.group(0))
                )
        return flags

    def flag_patterns(
        self, patterns: Iterable[ExtractedPattern], style: "CitationStyle | str"
    ) -> List[CitationFlag]:
        """Apply the same rule check to patterns an upstream extractor already found."""
        rules = self.registry.get_rules(style)
        return [
            _inline_flag(rules, pattern.pattern_type, pattern.start, pattern.end, pattern.text)
            for pattern in patterns
            if rules.disallows(pattern.pattern_type)
        ]

    def detect_mixed_styles(self, text: str) -> List[CitationFlag]:
        numeric = sum(1 for _ in self.PATTERNS[PatternType.NUMERIC_BRACKET].finditer(text))
        author_year = sum(1 for _ in self.PATTERNS[PatternType.AUTHOR_YEAR].finditer(text))
        return _mixed_flags(numeric, author_year)

    def detect_mixed_patterns(self, patterns: Iterable[ExtractedPattern]) -> List[CitationFlag]:
        numeric = 0
        author_year = 0
        for pattern in patterns:
            if pattern.pattern_type == PatternType.NUMERIC_BRACKET:
                numeric += 1
            elif pattern.pattern_type == PatternType.AUTHOR_YEAR:
                author_year += 1
        return _mixed_flags(numeric, author_year)

    def detect_styles(self, patterns: Iterable[ExtractedPattern]) -> List[CitationStyle]:
        """Best-effort guess of the styles in use; never overrides the declared one."""
        present = {pattern.pattern_type for pattern in patterns}
        return [style for style, markers in self.STYLE_FINGERPRINTS if present & markers]


def _inline_flag(
    rules: StyleRuleConfig, pattern_type: PatternType, start: int, end: int, text: str
) -> CitationFlag:
    return CitationFlag(
        type=ViolationType.INLINE_STYLE,
        rule_id=f"{rules.style.value}.NO_{pattern_type.value}",
        message=rules.message_for(pattern_type),
        anchor=TextAnchor(start=start, end=end, text=text),
    )


def _mixed_flags(numeric: int, author_year: int) -> List[CitationFlag]:
    if numeric < 1 or author_year < 1:
        return []
    message = SHARED_MESSAGES["MIXED_STYLE"].format(numeric=numeric, author_year=author_year)
    return [
        CitationFlag(
            type=ViolationType.INLINE_STYLE,
            rule_id=PatternType.MIXED_STYLE.value,
            message=message,
        )
    ]


__all__ = ["PatternObserver"]
