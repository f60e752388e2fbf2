"""Data models for citation audit workflows."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class CitationStyle(str, Enum):
    APA = "APA"
    MLA = "MLA"
    IEEE = "IEEE"
    CHICAGO = "Chicago"

    @classmethod
    def parse(cls, value: "str | CitationStyle | None") -> Optional["CitationStyle"]:
        """Return the matching style (case-insensitive) or None."""
        if isinstance(value, cls):
            return value
        if not value:
            return None
        key = str(value).strip().lower()
        for style in cls:
            if style.value.lower() == key:
                return style
        return None


class PatternType(str, Enum):
    NUMERIC_BRACKET = "NUMERIC_BRACKET"
    AUTHOR_YEAR = "AUTHOR_YEAR"
    AUTHOR_PAGE = "AUTHOR_PAGE"
    ET_AL_NO_PERIOD = "et_al_no_period"
    ET_AL_WITH_PERIOD = "et_al_with_period"
    AMPERSAND_IN_PAREN = "AMPERSAND_IN_PAREN"
    AND_IN_PAREN = "AND_IN_PAREN"
    MIXED_STYLE = "MIXED_STYLE"


class SectionType(str, Enum):
    BODY = "BODY"
    REFERENCE_SECTION = "REFERENCE_SECTION"


class ViolationType(str, Enum):
    INLINE_STYLE = "INLINE_STYLE"
    REF_LIST_ENTRY = "REF_LIST_ENTRY"
    STRUCTURAL = "STRUCTURAL"
    VERIFICATION = "VERIFICATION"


class ExistenceStatus(str, Enum):
    CONFIRMED = "CONFIRMED"
    NOT_FOUND = "NOT_FOUND"
    SERVICE_ERROR = "SERVICE_ERROR"
    PENDING = "PENDING"


class SupportStatus(str, Enum):
    SUPPORTED = "SUPPORTED"
    PLAUSIBLE = "PLAUSIBLE"
    UNRELATED = "UNRELATED"
    CONTRADICTORY = "CONTRADICTORY"
    NOT_EVALUATED = "NOT_EVALUATED"


class ProvenanceSource(str, Enum):
    CROSSREF = "CrossRef"
    PUBMED = "PubMed"
    ARXIV = "arXiv"
    MANUAL = "Manual"
    OTHER = "Other"


class ProvenanceStatus(str, Enum):
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


class ConfidenceTier(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class UnmatchedReason(str, Enum):
    NO_REFERENCE_LIST = "NO_REFERENCE_LIST"
    NO_MATCHING_ENTRY = "NO_MATCHING_ENTRY"
    STYLE_NOT_SUPPORTED = "STYLE_NOT_SUPPORTED"


class RiskType(str, Enum):
    FUNDING_BIAS = "FUNDING_BIAS"
    RETRACTED = "RETRACTED"


class RiskSeverity(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


@dataclass(frozen=True)
class DocumentMeta:
    language: str = "en"
    editor: str = ""


@dataclass(frozen=True)
class DocumentSection:
    title: str
    type: SectionType = SectionType.BODY
    range: Optional[Tuple[int, int]] = None


@dataclass(frozen=True)
class ExtractedPattern:
    """An inline citation marker produced by the upstream extractor."""

    pattern_type: PatternType
    text: str
    start: int
    end: int
    section: SectionType = SectionType.BODY
    context: Optional[str] = None
    confidence: Optional[float] = None


@dataclass(frozen=True)
class ReferenceEntry:
    """One item of the document's reference list."""

    index: int
    raw_text: str
    start: int = 0
    end: int = 0


@dataclass(frozen=True)
class ReferenceListExtraction:
    section_title: str
    entries: Tuple[ReferenceEntry, ...] = ()


@dataclass(frozen=True)
class AuditRequest:
    """Structured input for one audit; produced by the upstream extractor."""

    declared_style: str
    patterns: Tuple[ExtractedPattern, ...] = ()
    reference_list: Optional[ReferenceListExtraction] = None
    document_meta: DocumentMeta = field(default_factory=DocumentMeta)
    sections: Tuple[DocumentSection, ...] = ()
    word_count: Optional[int] = None


@dataclass(frozen=True)
class TextAnchor:
    start: int
    end: int
    text: str


@dataclass(frozen=True)
class CitationFlag:
    """A style or structural finding."""

    type: ViolationType
    rule_id: str
    message: str
    anchor: Optional[TextAnchor] = None
    section: Optional[str] = None
    expected: Optional[str] = None


@dataclass(frozen=True)
class ReferenceMetadata:
    title: Optional[str] = None
    author: Optional[str] = None
    year: Optional[int] = None
    doi: Optional[str] = None


@dataclass(frozen=True)
class MatchedReference:
    raw_text: str
    index: int
    metadata: ReferenceMetadata = field(default_factory=ReferenceMetadata)

    @property
    def word_count(self) -> int:
        return len(self.raw_text.split())


@dataclass(frozen=True)
class CitationPair:
    """One inline pattern and the reference entry it was linked to, if any."""

    inline: ExtractedPattern
    reference: Optional[MatchedReference] = None
    unmatched_reason: Optional[UnmatchedReason] = None


@dataclass
class Provenance:
    """Record of one external lookup attempt."""

    source: ProvenanceSource
    status: ProvenanceStatus
    latency_ms: Optional[int] = None
    error: Optional[str] = None

    @property
    def is_service_error(self) -> bool:
        return self.error is not None


@dataclass
class FoundWork:
    title: str
    url: str = ""
    database: str = ""
    authors: List[str] = field(default_factory=list)
    year: Optional[int] = None
    doi: Optional[str] = None
    abstract: Optional[str] = None
    is_retracted: bool = False
    similarity: float = 0.0


@dataclass
class SemanticAnalysis:
    reasoning: str
    confidence: float


@dataclass
class Suggestion:
    """An alternative source offered for a citation that could not be backed."""

    title: str
    url: str = ""
    database: str = ""
    year: Optional[int] = None
    relevance_score: int = 0
    why_match: str = ""


@dataclass
class VerificationResult:
    """Existence and support verdict for one inline citation."""

    inline_location: TextAnchor
    existence_status: ExistenceStatus
    support_status: SupportStatus
    provenance: List[Provenance] = field(default_factory=list)
    message: str = ""
    similarity: Optional[float] = None
    found_work: Optional[FoundWork] = None
    semantic_analysis: Optional[SemanticAnalysis] = None
    reason: Optional[str] = None
    action: Optional[str] = None
    suggestions: List[Suggestion] = field(default_factory=list)

    @property
    def has_service_error(self) -> bool:
        if self.existence_status == ExistenceStatus.SERVICE_ERROR:
            return True
        return any(entry.is_service_error for entry in self.provenance)


@dataclass
class IntegrityIndex:
    total_score: int
    confidence: ConfidenceTier
    style_score: int
    verification_score: int
    reference_score: int
    semantic_score: int
    verification_limits: List[str] = field(default_factory=list)


@dataclass
class RiskFactor:
    """An advisory risk signal; never changes the integrity score."""

    type: RiskType
    description: str
    severity: RiskSeverity
    anchor: Optional[TextAnchor] = None


@dataclass
class AuditReport:
    style: CitationStyle
    timestamp: str
    flags: List[CitationFlag]
    verification_results: List[VerificationResult]
    detected_styles: List[CitationStyle]
    integrity_index: IntegrityIndex
    risk_factors: List[RiskFactor] = field(default_factory=list)
