"""Existence and support verification of matched citations."""
from __future__ import annotations

import logging
import time
from typing import Callable, Iterable, List, Optional

from .config import Settings
from .models import (
    CitationPair,
    ExistenceStatus,
    FoundWork,
    MatchedReference,
    Provenance,
    ProvenanceSource,
    ProvenanceStatus,
    SemanticAnalysis,
    SupportStatus,
    TextAnchor,
    UnmatchedReason,
    VerificationResult,
)
from .providers import BibliographicSearchAggregator, CrossrefClient, SearchProvider
from .remediation import RemediationService
from .semantic import OpenAICompletionProvider, SemanticClaimService

log = logging.getLogger(__name__)

UNMATCHED_MESSAGES = {
    UnmatchedReason.NO_REFERENCE_LIST: (
        'No reference list was supplied, so citation "{text}" could not be linked to a source.'
    ),
    UnmatchedReason.STYLE_NOT_SUPPORTED: (
        'Automatic matching is not available for this citation style; "{text}" was not linked.'
    ),
    UnmatchedReason.NO_MATCHING_ENTRY: 'No matching reference found for citation "{text}".',
}
PENDING_MESSAGE = "Citation lacks title information for automatic verification."
OFFLINE_MESSAGE = "External lookups are disabled; citation was not checked."
DEADLINE_MESSAGE = "Verification deadline reached before this citation was checked."
SERVICE_ERROR_MESSAGE = "Bibliographic services were unavailable; citation could not be checked."
UNEXPECTED_ERROR_MESSAGE = "Verification error occurred."


class VerificationWorklist:
    """Stack of citation pairs: the pair added last is verified first."""

    def __init__(self, pairs: Iterable[CitationPair] = ()):
        self._stack: List[CitationPair] = list(pairs)

    def push(self, pair: CitationPair) -> None:
        self._stack.append(pair)

    def pop(self) -> CitationPair:
        return self._stack.pop()

    def __len__(self) -> int:
        return len(self._stack)

    def __bool__(self) -> bool:
        return bool(self._stack)


class ExternalVerificationService:
    """Resolve matched references against external registries, one pair at a time.

    Each pair is tried by DOI first, then by an aggregated title/author/year
    search. Every attempt is recorded as provenance, and a failure in one pair
    never stops the batch: the output always has one result per input pair,
    ordered as verified (last citation first).
    """

    def __init__(
        self,
        resolver: Optional[CrossrefClient] = None,
        aggregator: Optional[SearchProvider] = None,
        semantic: Optional[SemanticClaimService] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.monotonic,
        remediation: Optional[RemediationService] = None,
    ):
        self.resolver = resolver
        self.aggregator = aggregator
        self.semantic = semantic
        self.remediation = remediation
        self.settings = settings or Settings()
        self.clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> "ExternalVerificationService":
        semantic = None
        if settings.openai_api_key:
            provider = OpenAICompletionProvider(
                api_key=settings.openai_api_key,
                model=settings.openai_model,
                timeout=settings.completion_timeout,
            )
            semantic = SemanticClaimService(provider)
        else:
            log.info("No completion API key configured; claim support will not be evaluated")
        aggregator = BibliographicSearchAggregator.default(
            timeout=settings.http_timeout, mailto=settings.crossref_mailto
        )
        return cls(
            resolver=CrossrefClient(timeout=settings.http_timeout, mailto=settings.crossref_mailto),
            aggregator=aggregator,
            semantic=semantic,
            settings=settings,
            remediation=RemediationService(aggregator, limit=settings.suggestion_limit),
        )

    def verify_citation_pairs(self, pairs: Iterable[CitationPair]) -> List[VerificationResult]:
        worklist = VerificationWorklist(pairs)
        deadline = None
        if self.settings.deadline_seconds:
            deadline = self.clock() + self.settings.deadline_seconds

        results: List[VerificationResult] = []
        while worklist:
            pair = worklist.pop()
            if deadline is not None and self.clock() >= deadline:
                results.append(
                    _result(pair, ExistenceStatus.PENDING, message=DEADLINE_MESSAGE)
                )
                continue

            provenance: List[Provenance] = []
            try:
                result = self._verify_pair(pair, provenance)
            except Exception as exc:
                log.error("Verification error for citation %r: %s", pair.inline.text, exc)
                result = _result(
                    pair,
                    ExistenceStatus.SERVICE_ERROR,
                    provenance=provenance,
                    message=UNEXPECTED_ERROR_MESSAGE,
                )
            results.append(self._remediate(pair, result))
        return results

    def verify_pair(self, pair: CitationPair) -> VerificationResult:
        return self._remediate(pair, self._verify_pair(pair, []))

    def _remediate(self, pair: CitationPair, result: VerificationResult) -> VerificationResult:
        if self.remediation is None:
            return result
        try:
            return self.remediation.remediate(pair, result)
        except Exception as exc:
            log.warning("Could not suggest alternatives for %r: %s", pair.inline.text, exc)
            return result

    def _verify_pair(
        self, pair: CitationPair, provenance: List[Provenance]
    ) -> VerificationResult:
        reference = pair.reference
        if reference is None:
            reason = pair.unmatched_reason or UnmatchedReason.NO_MATCHING_ENTRY
            return _result(
                pair,
                ExistenceStatus.NOT_FOUND,
                message=UNMATCHED_MESSAGES[reason].format(text=pair.inline.text),
            )

        if (
            reference.word_count < self.settings.min_reference_words
            or not reference.metadata.title
        ):
            return _result(pair, ExistenceStatus.PENDING, message=PENDING_MESSAGE)

        best = self._resolve_by_identifier(reference, provenance)
        if best is None:
            best = self._search(reference, provenance)

        if best is None:
            return self._unresolved(pair, reference, provenance)

        similarity = best.similarity
        if not self._is_confirmed(best):
            return _result(
                pair,
                ExistenceStatus.NOT_FOUND,
                provenance=provenance,
                message=_not_found_message(reference),
                similarity=similarity,
            )

        support = SupportStatus.NOT_EVALUATED
        analysis = None
        if self.semantic and best.abstract and pair.inline.context:
            try:
                verdict = self.semantic.verify_claim(pair.inline.context, best.abstract)
            except Exception as exc:
                # Support judgments are advisory; the existence verdict stands.
                log.error("Claim support check failed for %r: %s", pair.inline.text, exc)
            else:
                support = verdict.status
                analysis = SemanticAnalysis(
                    reasoning=verdict.reasoning, confidence=verdict.confidence
                )

        return VerificationResult(
            inline_location=_anchor(pair),
            existence_status=ExistenceStatus.CONFIRMED,
            support_status=support,
            provenance=provenance,
            message=_found_message(best, support),
            similarity=similarity,
            found_work=best,
            semantic_analysis=analysis,
        )

    def _is_confirmed(self, work: FoundWork) -> bool:
        if work.is_retracted:
            return True
        if work.similarity > self.settings.high_similarity:
            return True
        # Likely match; reported the same as a confident one for now.
        return work.similarity > self.settings.low_similarity

    def _resolve_by_identifier(
        self, reference: MatchedReference, provenance: List[Provenance]
    ) -> Optional[FoundWork]:
        doi = reference.metadata.doi
        if not doi:
            return None
        if self.resolver is None:
            provenance.append(Provenance(ProvenanceSource.CROSSREF, ProvenanceStatus.SKIPPED))
            return None

        started = self.clock()
        try:
            work = self.resolver.lookup_doi(doi)
        except Exception as exc:
            log.warning("DOI lookup for %s failed: %s", doi, exc)
            provenance.append(
                Provenance(
                    ProvenanceSource.CROSSREF,
                    ProvenanceStatus.FAILED,
                    self._elapsed_ms(started),
                    error=str(exc),
                )
            )
            return None

        status = ProvenanceStatus.SUCCESS if work else ProvenanceStatus.FAILED
        provenance.append(Provenance(ProvenanceSource.CROSSREF, status, self._elapsed_ms(started)))
        if work is not None:
            work.similarity = 1.0
        return work

    def _search(
        self, reference: MatchedReference, provenance: List[Provenance]
    ) -> Optional[FoundWork]:
        if self.aggregator is None:
            provenance.append(Provenance(ProvenanceSource.OTHER, ProvenanceStatus.SKIPPED))
            return None

        query = build_search_query(reference)
        started = self.clock()
        try:
            hits = self.aggregator.search(query, title=reference.metadata.title)
        except Exception as exc:
            log.warning("Bibliographic search for %r failed: %s", query[:60], exc)
            provenance.append(
                Provenance(
                    ProvenanceSource.OTHER,
                    ProvenanceStatus.FAILED,
                    self._elapsed_ms(started),
                    error=str(exc),
                )
            )
            return None

        provenance.append(
            Provenance(ProvenanceSource.OTHER, ProvenanceStatus.SUCCESS, self._elapsed_ms(started))
        )
        return hits[0] if hits else None

    def _unresolved(
        self, pair: CitationPair, reference: MatchedReference, provenance: List[Provenance]
    ) -> VerificationResult:
        if provenance and all(entry.status == ProvenanceStatus.SKIPPED for entry in provenance):
            return _result(
                pair, ExistenceStatus.PENDING, provenance=provenance, message=OFFLINE_MESSAGE
            )
        if provenance and all(entry.is_service_error for entry in provenance):
            return _result(
                pair,
                ExistenceStatus.SERVICE_ERROR,
                provenance=provenance,
                message=SERVICE_ERROR_MESSAGE,
            )
        return _result(
            pair,
            ExistenceStatus.NOT_FOUND,
            provenance=provenance,
            message=_not_found_message(reference),
            similarity=0.0,
        )

    def _elapsed_ms(self, started: float) -> int:
        return max(0, int(round((self.clock() - started) * 1000)))


def build_search_query(reference: MatchedReference) -> str:
    metadata = reference.metadata
    parts = [metadata.title, metadata.author, str(metadata.year) if metadata.year else None]
    return " ".join(part for part in parts if part)


def _anchor(pair: CitationPair) -> TextAnchor:
    return TextAnchor(pair.inline.start, pair.inline.end, pair.inline.text)


def _result(
    pair: CitationPair,
    existence: ExistenceStatus,
    provenance: Optional[List[Provenance]] = None,
    message: str = "",
    similarity: Optional[float] = None,
) -> VerificationResult:
    return VerificationResult(
        inline_location=_anchor(pair),
        existence_status=existence,
        support_status=SupportStatus.NOT_EVALUATED,
        provenance=provenance or [],
        message=message,
        similarity=similarity,
    )


def _not_found_message(reference: MatchedReference) -> str:
    label = reference.metadata.title or reference.raw_text[:80]
    return f'Paper not found or poor match. Reference: "{label}".'


def _found_message(work: FoundWork, support: SupportStatus) -> str:
    if work.is_retracted:
        return f'RETRACTED SOURCE: "{work.title}"'
    if support == SupportStatus.CONTRADICTORY:
        return f'Paper disputes claim: "{work.title}"'
    if support == SupportStatus.UNRELATED:
        return f'Paper may be unrelated: "{work.title}"'
    return f'Found: "{work.title}"'


__all__ = [
    "ExternalVerificationService",
    "VerificationWorklist",
    "build_search_query",
]
