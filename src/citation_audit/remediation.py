"""Alternative-source suggestions for citations that could not be backed."""
from __future__ import annotations

import logging
from typing import List, Optional

from .models import (
    CitationPair,
    ExistenceStatus,
    FoundWork,
    Suggestion,
    SupportStatus,
    VerificationResult,
)
from .providers import SearchProvider

log = logging.getLogger(__name__)

NOT_FOUND_REASON = "Source could not be located in academic databases."
UNSUPPORTED_REASON = "The source abstract does not explicitly support this claim."
REMEDIATION_ACTION = "Review the suggested alternatives below or refine your claim."
CONFIRMED_REASON = "Source confirmed and aligned with claim context."
NO_ACTION = "No action required."
WHY_MATCH = "Contains terminology closely related to your claim."

UNSUPPORTED = (SupportStatus.UNRELATED, SupportStatus.CONTRADICTORY)


def needs_remediation(result: VerificationResult) -> bool:
    return (
        result.existence_status == ExistenceStatus.NOT_FOUND
        or result.support_status in UNSUPPORTED
    )


def suggestion_query(pair: CitationPair) -> Optional[str]:
    """Search text for alternatives: the claim context, else the cited title."""
    if pair.inline.context and pair.inline.context.strip():
        return pair.inline.context.strip()
    if pair.reference is not None and pair.reference.metadata.title:
        return pair.reference.metadata.title
    return None


class RemediationService:
    """Attach a reason, an action and up to ``limit`` alternative sources to results.

    Suggestions are advisory: a failing search leaves the result without
    suggestions and never changes its existence or support status.
    """

    def __init__(self, aggregator: Optional[SearchProvider] = None, limit: int = 5):
        self.aggregator = aggregator
        self.limit = limit

    def remediate(self, pair: CitationPair, result: VerificationResult) -> VerificationResult:
        if needs_remediation(result):
            if result.existence_status == ExistenceStatus.NOT_FOUND:
                result.reason = NOT_FOUND_REASON
            else:
                result.reason = UNSUPPORTED_REASON
            result.action = REMEDIATION_ACTION
            result.suggestions = self.suggest(suggestion_query(pair), exclude=result.found_work)
        elif result.existence_status == ExistenceStatus.CONFIRMED:
            result.reason = CONFIRMED_REASON
            result.action = NO_ACTION
        return result

    def suggest(self, query: Optional[str], exclude: Optional[FoundWork] = None) -> List[Suggestion]:
        if self.aggregator is None or not query or self.limit <= 0:
            return []
        try:
            hits = self.aggregator.search(query)
        except Exception as exc:
            log.warning("Alternative source search for %r failed: %s", query[:60], exc)
            return []

        suggestions: List[Suggestion] = []
        for hit in hits:
            if exclude is not None and _same_work(hit, exclude):
                continue
            suggestions.append(
                Suggestion(
                    title=hit.title,
                    url=hit.url,
                    database=hit.database,
                    year=hit.year,
                    relevance_score=int(round((hit.similarity or 0) * 100)),
                    why_match=WHY_MATCH,
                )
            )
            if len(suggestions) >= self.limit:
                break
        return suggestions


def _same_work(first: FoundWork, second: FoundWork) -> bool:
    if first.doi and second.doi:
        return first.doi.lower() == second.doi.lower()
    return first.title.strip().lower() == second.title.strip().lower()


__all__ = ["RemediationService", "needs_remediation", "suggestion_query"]
