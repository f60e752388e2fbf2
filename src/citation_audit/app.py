"""High-level orchestrator for citation audits."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, List, Mapping

from .config import Settings
from .exceptions import AuditInputError
from .matcher import CitationMatcher
from .models import AuditReport, AuditRequest, CitationFlag
from .pattern_observer import PatternObserver
from .risk import RiskAnalyzer
from .schema import parse_audit_request
from .scoring import IntegrityScorer
from .style_rules import StyleRuleRegistry
from .validation import ReferenceListValidator, validate_citation_linkage
from .verification import ExternalVerificationService

log = logging.getLogger(__name__)


class CitationAuditApp:
    """Coordinates style checks, matching, verification and scoring for one audit.

    Holds no per-request state, so one instance can serve many audits.
    """

    def __init__(
        self,
        registry: StyleRuleRegistry | None = None,
        verifier: ExternalVerificationService | None = None,
        matcher: CitationMatcher | None = None,
        scorer: IntegrityScorer | None = None,
        settings: Settings | None = None,
        risk_analyzer: RiskAnalyzer | None = None,
    ):
        self.settings = settings or Settings()
        self.registry = registry or StyleRuleRegistry(default_style=self.settings.default_style)
        self.observer = PatternObserver(self.registry)
        self.validator = ReferenceListValidator(self.registry)
        self.matcher = matcher or CitationMatcher()
        self.verifier = verifier or ExternalVerificationService(settings=self.settings)
        self.scorer = scorer or IntegrityScorer()
        self.risk_analyzer = risk_analyzer or RiskAnalyzer()

    @classmethod
    def from_settings(cls, settings: Settings) -> "CitationAuditApp":
        return cls(verifier=ExternalVerificationService.from_settings(settings), settings=settings)

    def audit_payload(self, payload: Mapping[str, Any]) -> AuditReport:
        """Validate a JSON-style payload and audit it."""
        return self.audit(parse_audit_request(payload))

    def audit(self, request: AuditRequest) -> AuditReport:
        self._check_request(request)
        rules = self.registry.get_rules(request.declared_style)
        style = rules.style
        patterns = list(request.patterns)
        reference_list = request.reference_list

        flags: List[CitationFlag] = []
        flags.extend(self.observer.flag_patterns(patterns, style))
        flags.extend(self.observer.detect_mixed_patterns(patterns))
        if reference_list is not None:
            flags.extend(self.validator.validate(reference_list, style))

        entries = list(reference_list.entries) if reference_list is not None else None
        pairs = self.matcher.match_citations(patterns, entries, style)
        if entries is not None:
            flags.extend(validate_citation_linkage(pairs, entries))

        results = self.verifier.verify_citation_pairs(pairs)
        if len(results) != len(patterns):
            raise RuntimeError(
                f"Verifier returned {len(results)} results for {len(patterns)} citations"
            )

        word_count = request.word_count
        if word_count is None:
            word_count = self.settings.default_word_count
        index = self.scorer.score(flags, results, word_count, reference_list)
        log.info(
            "Audited %d citations (%s): %d flags, CII %d (%s)",
            len(patterns),
            style.value,
            len(flags),
            index.total_score,
            index.confidence.value,
        )
        return AuditReport(
            style=style,
            timestamp=datetime.now(timezone.utc).isoformat(),
            flags=flags,
            verification_results=results,
            detected_styles=self.observer.detect_styles(patterns),
            integrity_index=index,
            risk_factors=self.risk_analyzer.analyze(patterns, results),
        )

    @staticmethod
    def _check_request(request: AuditRequest) -> None:
        if request is None:
            raise AuditInputError("Audit request is required")
        if not request.declared_style or not str(request.declared_style).strip():
            raise AuditInputError("Audit request is missing declaredStyle")
        if request.patterns is None:
            raise AuditInputError("Audit request is missing patterns")
        if request.reference_list is not None and request.reference_list.entries is None:
            raise AuditInputError("Reference list is missing entries")


__all__ = ["CitationAuditApp"]
