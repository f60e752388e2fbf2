"""Citation Integrity Index (CII) scoring."""
from __future__ import annotations

import math
from typing import List, Optional, Sequence

from .models import (
    CitationFlag,
    ConfidenceTier,
    ExistenceStatus,
    IntegrityIndex,
    ReferenceListExtraction,
    SupportStatus,
    VerificationResult,
)

WEIGHTS = {"style": 0.30, "verification": 0.30, "reference": 0.20, "semantic": 0.20}
WORDS_PER_TOLERATED_VIOLATION = 500
VIOLATION_PENALTY = 5
PLAUSIBLE_CREDIT = 0.8

LIMIT_NO_CITATIONS = "No inline citations were found, so there was nothing to verify."
LIMIT_SERVICE_ERROR = (
    "One or more bibliographic services were unavailable; some citations could not be checked."
)
LIMIT_NO_REFERENCE_LIST = "No reference list was supplied; citations could not be linked to sources."
LIMIT_RETRACTED = "{count} cited work(s) have been retracted."


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class IntegrityScorer:
    """Combine flags and verification results into a 0-100 integrity score."""

    def style_score(self, flags: Sequence[CitationFlag], word_count: int) -> float:
        """Longer documents tolerate proportionally more incidental violations."""
        tolerance = max(1, math.ceil(word_count / WORDS_PER_TOLERATED_VIOLATION))
        excess = max(0, len(flags) - tolerance)
        return _clamp(100 - VIOLATION_PENALTY * excess)

    def verification_score(self, results: Sequence[VerificationResult]) -> float:
        if not results:
            return 100.0
        confirmed = sum(1 for r in results if r.existence_status == ExistenceStatus.CONFIRMED)
        return _clamp(100.0 * confirmed / len(results))

    def reference_score(
        self,
        reference_list: Optional[ReferenceListExtraction],
        results: Sequence[VerificationResult],
    ) -> float:
        if reference_list is None:
            return 0.0
        if not reference_list.entries and results:
            return 50.0
        return 100.0

    def semantic_score(self, results: Sequence[VerificationResult]) -> float:
        confirmed = [r for r in results if r.existence_status == ExistenceStatus.CONFIRMED]
        if not confirmed:
            return 100.0
        supported = sum(1 for r in confirmed if r.support_status == SupportStatus.SUPPORTED)
        contradictory = sum(
            1 for r in confirmed if r.support_status == SupportStatus.CONTRADICTORY
        )
        plausible = sum(1 for r in confirmed if r.support_status == SupportStatus.PLAUSIBLE)
        net = max(0.0, supported - contradictory + PLAUSIBLE_CREDIT * plausible)
        return _clamp(100.0 * net / len(confirmed))

    def combine(self, style: float, verification: float, reference: float, semantic: float) -> int:
        total = (
            WEIGHTS["style"] * style
            + WEIGHTS["verification"] * verification
            + WEIGHTS["reference"] * reference
            + WEIGHTS["semantic"] * semantic
        )
        return _round_half_up(_clamp(total))

    def confidence(self, results: Sequence[VerificationResult], total: int) -> ConfidenceTier:
        # Order matters: a document without citations is never MEDIUM.
        if not results:
            return ConfidenceTier.LOW
        if any(r.has_service_error for r in results):
            return ConfidenceTier.MEDIUM
        if total < 50:
            return ConfidenceTier.LOW
        return ConfidenceTier.HIGH

    def verification_limits(
        self,
        results: Sequence[VerificationResult],
        reference_list: Optional[ReferenceListExtraction],
    ) -> List[str]:
        limits: List[str] = []
        if not results:
            limits.append(LIMIT_NO_CITATIONS)
        if any(r.has_service_error for r in results):
            limits.append(LIMIT_SERVICE_ERROR)
        if reference_list is None:
            limits.append(LIMIT_NO_REFERENCE_LIST)
        retracted = sum(
            1 for r in results if r.found_work is not None and r.found_work.is_retracted
        )
        if retracted:
            limits.append(LIMIT_RETRACTED.format(count=retracted))
        return limits

    def score(
        self,
        flags: Sequence[CitationFlag],
        results: Sequence[VerificationResult],
        word_count: int,
        reference_list: Optional[ReferenceListExtraction],
    ) -> IntegrityIndex:
        style = self.style_score(flags, word_count)
        verification = self.verification_score(results)
        reference = self.reference_score(reference_list, results)
        semantic = self.semantic_score(results)
        total = self.combine(style, verification, reference, semantic)
        return IntegrityIndex(
            total_score=total,
            confidence=self.confidence(results, total),
            style_score=_round_half_up(style),
            verification_score=_round_half_up(verification),
            reference_score=_round_half_up(reference),
            semantic_score=_round_half_up(semantic),
            verification_limits=self.verification_limits(results, reference_list),
        )


__all__ = ["IntegrityScorer", "WEIGHTS"]
