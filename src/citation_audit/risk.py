"""Advisory risk signals: retracted sources and possible funding bias."""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from .models import (
    ExtractedPattern,
    RiskFactor,
    RiskSeverity,
    RiskType,
    TextAnchor,
    VerificationResult,
)

log = logging.getLogger(__name__)

FUNDING_MARKERS = ("funded by", "sponsored by")
COMMERCIAL_MARKERS = ("pharma", "corporation", "industry")


class RiskAnalyzer:
    """Heuristic risk review over citation contexts and verified works."""

    def analyze(
        self, patterns: Iterable[ExtractedPattern], results: Iterable[VerificationResult]
    ) -> List[RiskFactor]:
        risks: List[RiskFactor] = []
        for pattern in patterns:
            risk = self._funding_bias(pattern)
            if risk is not None:
                risks.append(risk)

        for result in results:
            work = result.found_work
            if work is not None and work.is_retracted:
                risks.append(
                    RiskFactor(
                        type=RiskType.RETRACTED,
                        description=f'Cited work has been retracted: "{work.title}"',
                        severity=RiskSeverity.HIGH,
                        anchor=result.inline_location,
                    )
                )
        if risks:
            log.info("Risk review raised %d signal(s)", len(risks))
        return risks

    @staticmethod
    def _funding_bias(pattern: ExtractedPattern) -> Optional[RiskFactor]:
        context = (pattern.context or "").lower()
        if not any(marker in context for marker in FUNDING_MARKERS):
            return None
        if not any(marker in context for marker in COMMERCIAL_MARKERS):
            return None
        return RiskFactor(
            type=RiskType.FUNDING_BIAS,
            description=(
                f'Potential funding bias detected in citation context: "{pattern.context[:50]}..."'
            ),
            severity=RiskSeverity.MEDIUM,
            anchor=TextAnchor(pattern.start, pattern.end, pattern.text),
        )


__all__ = ["RiskAnalyzer"]
