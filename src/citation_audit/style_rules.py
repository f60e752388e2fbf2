"""Per-style citation rules and the registry that serves them."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from .models import CitationStyle, PatternType

log = logging.getLogger(__name__)


class NumberingPolicy(str, Enum):
    REQUIRED = "REQUIRED"
    FORBIDDEN = "FORBIDDEN"


WRONG_SECTION_TITLE = "WRONG_SECTION_TITLE"
NUMBERED_ENTRIES_DISALLOWED = "NUMBERED_ENTRIES_DISALLOWED"
NUMBERED_ENTRIES_REQUIRED = "NUMBERED_ENTRIES_REQUIRED"

# Style-independent messages. Placeholders are filled with counts or marker text.
SHARED_MESSAGES: Mapping[str, str] = MappingProxyType(
    {
        "MIXED_STYLE": (
            "Mixed citation styles detected: {numeric} numeric vs {author_year} "
            "author-year citations. Stick to one style."
        ),
        "UNMATCHED_CITATION": "This citation is not linked to any entry in the bibliography.",
        "ORPHAN_REFERENCE": "This reference is not cited anywhere in the document.",
        "DEFAULT_PATTERN": "Invalid citation format for this style.",
    }
)


@dataclass(frozen=True)
class ReferenceListPolicy:
    accepted_titles: Tuple[str, ...]
    numbering: NumberingPolicy
    alphabetical_required: bool


@dataclass(frozen=True)
class StyleRuleConfig:
    style: CitationStyle
    version: str
    allowed_patterns: Tuple[PatternType, ...]
    disallowed_patterns: Tuple[PatternType, ...]
    reference_list: ReferenceListPolicy
    messages: Mapping[str, str]

    def message_for(self, key: "PatternType | str") -> str:
        name = key.value if isinstance(key, PatternType) else key
        return self.messages.get(name) or SHARED_MESSAGES["DEFAULT_PATTERN"]

    def disallows(self, pattern_type: PatternType) -> bool:
        return pattern_type in self.disallowed_patterns

    @property
    def canonical_title(self) -> str:
        return self.reference_list.accepted_titles[0]


def _messages(**entries: str) -> Mapping[str, str]:
    return MappingProxyType(dict(entries))


def _build_default_rules() -> Mapping[CitationStyle, StyleRuleConfig]:
    rules = {
        CitationStyle.MLA: StyleRuleConfig(
            style=CitationStyle.MLA,
            version="9.0",
            allowed_patterns=(PatternType.AUTHOR_PAGE, PatternType.ET_AL_WITH_PERIOD),
            disallowed_patterns=(
                PatternType.NUMERIC_BRACKET,
                PatternType.AUTHOR_YEAR,
                PatternType.ET_AL_NO_PERIOD,
                PatternType.AND_IN_PAREN,
            ),
            reference_list=ReferenceListPolicy(
                accepted_titles=("Works Cited",),
                numbering=NumberingPolicy.FORBIDDEN,
                alphabetical_required=True,
            ),
            messages=_messages(
                NUMERIC_BRACKET="Numeric bracket citation detected. MLA requires Author-Page format.",
                AUTHOR_YEAR="Author-Year citation detected. MLA requires Author-Page format.",
                et_al_no_period="'et al' missing period. MLA requires 'et al.'",
                AND_IN_PAREN="MLA does not use parenthetical 'and'. Use Author-Page format.",
                WRONG_SECTION_TITLE="Incorrect section title. MLA requires 'Works Cited'.",
                NUMBERED_ENTRIES_DISALLOWED=(
                    "Numbered reference entries detected. MLA requires unnumbered, "
                    "alphabetical entries."
                ),
            ),
        ),
        CitationStyle.APA: StyleRuleConfig(
            style=CitationStyle.APA,
            version="7.0",
            allowed_patterns=(
                PatternType.AUTHOR_YEAR,
                PatternType.ET_AL_WITH_PERIOD,
                PatternType.AMPERSAND_IN_PAREN,
            ),
            disallowed_patterns=(
                PatternType.NUMERIC_BRACKET,
                PatternType.AUTHOR_PAGE,
                PatternType.ET_AL_NO_PERIOD,
                PatternType.AND_IN_PAREN,
            ),
            reference_list=ReferenceListPolicy(
                accepted_titles=("References",),
                numbering=NumberingPolicy.FORBIDDEN,
                alphabetical_required=True,
            ),
            messages=_messages(
                NUMERIC_BRACKET="Numeric bracket citation detected. APA requires Author-Year format.",
                AUTHOR_PAGE="Author-Page citation detected. APA requires Author-Year format.",
                et_al_no_period="'et al' missing period. APA requires 'et al.'",
                AND_IN_PAREN="Use '&' instead of 'and' inside parenthetical citations.",
                WRONG_SECTION_TITLE="Incorrect section title. APA requires 'References'.",
                NUMBERED_ENTRIES_DISALLOWED=(
                    "Numbered reference entries detected. APA requires unnumbered, "
                    "alphabetical entries."
                ),
            ),
        ),
        CitationStyle.IEEE: StyleRuleConfig(
            style=CitationStyle.IEEE,
            version="2020",
            allowed_patterns=(PatternType.NUMERIC_BRACKET,),
            disallowed_patterns=(PatternType.AUTHOR_YEAR, PatternType.AUTHOR_PAGE),
            reference_list=ReferenceListPolicy(
                accepted_titles=("References",),
                numbering=NumberingPolicy.REQUIRED,
                alphabetical_required=False,
            ),
            messages=_messages(
                AUTHOR_YEAR="Author-Year citation detected. IEEE requires numeric bracket format [1].",
                AUTHOR_PAGE="Author-Page citation detected. IEEE requires numeric bracket format [1].",
                WRONG_SECTION_TITLE="Incorrect section title. IEEE requires 'References'.",
                NUMBERED_ENTRIES_REQUIRED="Reference entries must be numbered [1] in IEEE style.",
            ),
        ),
        CitationStyle.CHICAGO: StyleRuleConfig(
            style=CitationStyle.CHICAGO,
            version="17 (Author-Date)",
            allowed_patterns=(PatternType.AUTHOR_YEAR,),
            disallowed_patterns=(PatternType.NUMERIC_BRACKET,),
            reference_list=ReferenceListPolicy(
                accepted_titles=("Bibliography", "References"),
                numbering=NumberingPolicy.FORBIDDEN,
                alphabetical_required=True,
            ),
            messages=_messages(
                NUMERIC_BRACKET=(
                    "Numeric bracket citation detected. Chicago (Author-Date) requires "
                    "Author-Year format."
                ),
                WRONG_SECTION_TITLE=(
                    "Incorrect section title. Chicago requires 'Bibliography' or 'References'."
                ),
                NUMBERED_ENTRIES_DISALLOWED=(
                    "Numbered reference entries detected. Chicago requires unnumbered entries."
                ),
            ),
        ),
    }
    return MappingProxyType(rules)


DEFAULT_STYLE_RULES: Mapping[CitationStyle, StyleRuleConfig] = _build_default_rules()


class StyleRuleRegistry:
    """Read-only lookup of style rules with a fallback style for unknown input."""

    def __init__(
        self,
        rules: Optional[Mapping[CitationStyle, StyleRuleConfig]] = None,
        default_style: "CitationStyle | str" = CitationStyle.MLA,
    ) -> None:
        self._rules = MappingProxyType(dict(rules)) if rules is not None else DEFAULT_STYLE_RULES
        fallback = CitationStyle.parse(default_style)
        if fallback is None or fallback not in self._rules:
            raise ValueError(f"Default style {default_style!r} has no rules")
        self.default_style = fallback

    def get_rules(self, style: "CitationStyle | str | None") -> StyleRuleConfig:
        resolved = CitationStyle.parse(style)
        if resolved is None or resolved not in self._rules:
            log.warning(
                "Unrecognized citation style %r, falling back to %s",
                style,
                self.default_style.value,
            )
            resolved = self.default_style
        return self._rules[resolved]

    def styles(self) -> Tuple[CitationStyle, ...]:
        return tuple(self._rules)


__all__ = [
    "NumberingPolicy",
    "ReferenceListPolicy",
    "StyleRuleConfig",
    "StyleRuleRegistry",
    "DEFAULT_STYLE_RULES",
    "SHARED_MESSAGES",
]
