import json

from citation_audit.config import Settings
from citation_audit.exceptions import ProviderError
from citation_audit.models import (
    CitationPair,
    ExistenceStatus,
    FoundWork,
    MatchedReference,
    PatternType,
    ProvenanceSource,
    ProvenanceStatus,
    ReferenceMetadata,
    SupportStatus,
    UnmatchedReason,
)
from citation_audit.remediation import RemediationService
from citation_audit.semantic import CompletionProvider, SemanticClaimService
from citation_audit.verification import (
    ExternalVerificationService,
    VerificationWorklist,
    build_search_query,
)

from conftest import make_pattern

RAW_REFERENCE = (
    "He, K. (2016). Deep residual learning for image recognition. "
    "Proceedings of CVPR, 770-778."
)


class FakeResolver:
    def __init__(self, work=None, error=None):
        self.work = work
        self.error = error
        self.calls = []

    def lookup_doi(self, doi):
        self.calls.append(doi)
        if self.error:
            raise self.error
        return self.work


class FakeAggregator:
    def __init__(self, hits=None, error=None):
        self.hits = hits or []
        self.error = error
        self.queries = []
        self.titles = []

    def search(self, query, title=None):
        self.queries.append(query)
        self.titles.append(title)
        if self.error:
            raise self.error
        return list(self.hits)


class ExplodingSemantic:
    def verify_claim(self, claim, abstract):
        raise RuntimeError("completion client crashed")


def _reference(doi=None, title="Deep residual learning for image recognition", raw=RAW_REFERENCE):
    return MatchedReference(
        raw_text=raw,
        index=1,
        metadata=ReferenceMetadata(title=title, author="He, K", year=2016, doi=doi),
    )


def _pair(text="(He, 2016)", start=0, reference=None, reason=None, context=None):
    inline = make_pattern(PatternType.AUTHOR_YEAR, text, start=start, context=context)
    if reference is None and reason is None:
        reason = UnmatchedReason.NO_MATCHING_ENTRY
    return CitationPair(inline, reference, reason)


def _work(similarity=0.9, retracted=False, abstract=None):
    return FoundWork(
        title="Deep Residual Learning for Image Recognition",
        url="https://doi.org/10.1109/CVPR.2016.90",
        database="crossref",
        abstract=abstract,
        is_retracted=retracted,
        similarity=similarity,
    )


def test_worklist_is_last_in_first_out():
    first, second = _pair("(A, 2001)"), _pair("(B, 2002)")
    worklist = VerificationWorklist([first])
    worklist.push(second)

    assert len(worklist) == 2
    assert worklist.pop() is second
    assert worklist.pop() is first
    assert not worklist


def test_results_follow_reverse_document_order():
    service = ExternalVerificationService()
    pairs = [_pair(f"(Author{i}, 2020)", start=i * 20) for i in range(3)]

    results = service.verify_citation_pairs(pairs)

    assert len(results) == 3
    assert [r.inline_location.start for r in results] == [40, 20, 0]


def test_unmatched_citation_makes_no_provider_calls():
    resolver, aggregator = FakeResolver(), FakeAggregator()
    service = ExternalVerificationService(resolver=resolver, aggregator=aggregator)

    results = service.verify_citation_pairs(
        [_pair(reason=UnmatchedReason.NO_REFERENCE_LIST)]
    )

    assert results[0].existence_status == ExistenceStatus.NOT_FOUND
    assert results[0].support_status == SupportStatus.NOT_EVALUATED
    assert results[0].provenance == []
    assert "No reference list" in results[0].message
    assert resolver.calls == []
    assert aggregator.queries == []


def test_thin_reference_is_pending():
    aggregator = FakeAggregator([_work()])
    service = ExternalVerificationService(aggregator=aggregator)

    short = service.verify_pair(_pair(reference=_reference(raw="He. Deep learning.")))
    untitled = service.verify_pair(_pair(reference=_reference(title=None)))

    assert short.existence_status == ExistenceStatus.PENDING
    assert untitled.existence_status == ExistenceStatus.PENDING
    assert aggregator.queries == []


def test_identifier_lookup_takes_priority():
    resolver = FakeResolver(work=_work(similarity=0.0))
    aggregator = FakeAggregator([_work()])
    service = ExternalVerificationService(resolver=resolver, aggregator=aggregator)

    result = service.verify_pair(_pair(reference=_reference(doi="10.1109/CVPR.2016.90")))

    assert result.existence_status == ExistenceStatus.CONFIRMED
    assert result.similarity == 1.0
    assert resolver.calls == ["10.1109/CVPR.2016.90"]
    assert aggregator.queries == []
    assert [(p.source, p.status) for p in result.provenance] == [
        (ProvenanceSource.CROSSREF, ProvenanceStatus.SUCCESS)
    ]
    assert result.provenance[0].latency_ms is not None


def test_failed_lookup_falls_back_to_search_and_is_recorded():
    resolver = FakeResolver(error=ProviderError("CrossRef", "timeout"))
    aggregator = FakeAggregator([_work(similarity=0.82)])
    service = ExternalVerificationService(resolver=resolver, aggregator=aggregator)

    result = service.verify_pair(_pair(reference=_reference(doi="10.1109/CVPR.2016.90")))

    assert result.existence_status == ExistenceStatus.CONFIRMED
    assert result.similarity == 0.82
    assert [(p.source, p.status) for p in result.provenance] == [
        (ProvenanceSource.CROSSREF, ProvenanceStatus.FAILED),
        (ProvenanceSource.OTHER, ProvenanceStatus.SUCCESS),
    ]
    assert "timeout" in result.provenance[0].error
    assert result.has_service_error
    assert aggregator.queries == ["Deep residual learning for image recognition He, K 2016"]
    assert aggregator.titles == ["Deep residual learning for image recognition"]


def test_similarity_thresholds():
    service = ExternalVerificationService(aggregator=FakeAggregator([_work(similarity=0.6)]))
    likely = service.verify_pair(_pair(reference=_reference()))

    service = ExternalVerificationService(aggregator=FakeAggregator([_work(similarity=0.4)]))
    poor = service.verify_pair(_pair(reference=_reference()))

    assert likely.existence_status == ExistenceStatus.CONFIRMED
    assert poor.existence_status == ExistenceStatus.NOT_FOUND
    assert poor.similarity == 0.4
    assert poor.found_work is None


def test_retracted_match_still_counts_as_existing():
    service = ExternalVerificationService(
        aggregator=FakeAggregator([_work(similarity=0.2, retracted=True)])
    )

    result = service.verify_pair(_pair(reference=_reference()))

    assert result.existence_status == ExistenceStatus.CONFIRMED
    assert result.message.startswith("RETRACTED SOURCE")
    assert result.found_work.is_retracted


def test_empty_search_is_not_found():
    service = ExternalVerificationService(aggregator=FakeAggregator([]))

    result = service.verify_pair(_pair(reference=_reference()))

    assert result.existence_status == ExistenceStatus.NOT_FOUND
    assert not result.has_service_error


def test_every_source_failing_is_a_service_error():
    service = ExternalVerificationService(
        resolver=FakeResolver(error=ProviderError("CrossRef", "503")),
        aggregator=FakeAggregator(error=ProviderError("Other", "All bibliographic providers failed")),
    )

    result = service.verify_pair(_pair(reference=_reference(doi="10.1/x")))

    assert result.existence_status == ExistenceStatus.SERVICE_ERROR
    assert all(p.status == ProvenanceStatus.FAILED for p in result.provenance)


def test_offline_service_leaves_citations_pending():
    service = ExternalVerificationService()

    result = service.verify_pair(_pair(reference=_reference(doi="10.1/x")))

    assert result.existence_status == ExistenceStatus.PENDING
    assert [p.status for p in result.provenance] == [
        ProvenanceStatus.SKIPPED,
        ProvenanceStatus.SKIPPED,
    ]
    assert not result.has_service_error


def test_unexpected_failure_is_isolated_to_its_pair(caplog):
    # A hit without the expected attributes fails after the search succeeded.
    service = ExternalVerificationService(aggregator=FakeAggregator([object()]))
    pairs = [
        _pair("(He, 2016)", start=0, reference=_reference()),
        _pair("(Doe, 2020)", start=30),
    ]

    with caplog.at_level("ERROR"):
        results = service.verify_citation_pairs(pairs)

    assert len(results) == 2
    assert results[0].existence_status == ExistenceStatus.NOT_FOUND
    assert results[1].existence_status == ExistenceStatus.SERVICE_ERROR
    assert results[1].inline_location.text == "(He, 2016)"
    assert results[1].message == "Verification error occurred."
    assert [p.status for p in results[1].provenance] == [ProvenanceStatus.SUCCESS]
    assert "(He, 2016)" in caplog.text


def test_support_check_failure_keeps_confirmed_existence(caplog):
    work = _work(similarity=0.95, abstract="Residual nets ease training.")
    service = ExternalVerificationService(
        aggregator=FakeAggregator([work]),
        semantic=ExplodingSemantic(),
    )
    pair = _pair(reference=_reference(), context="Residual nets train well (He, 2016).")

    with caplog.at_level("ERROR"):
        results = service.verify_citation_pairs([pair])

    result = results[0]
    assert result.existence_status == ExistenceStatus.CONFIRMED
    assert result.support_status == SupportStatus.NOT_EVALUATED
    assert result.found_work is work
    assert result.semantic_analysis is None
    assert not result.has_service_error
    assert "completion client crashed" in caplog.text


def test_deadline_leaves_remaining_pairs_pending():
    ticks = iter([0.0])
    aggregator = FakeAggregator([_work()])
    service = ExternalVerificationService(
        aggregator=aggregator,
        settings=Settings(deadline_seconds=5.0),
        clock=lambda: next(ticks, 10.0),
    )

    results = service.verify_citation_pairs([_pair(reference=_reference())] * 2)

    assert [r.existence_status for r in results] == [ExistenceStatus.PENDING] * 2
    assert aggregator.queries == []


class ScriptedProvider(CompletionProvider):
    def __init__(self, reply):
        self.reply = reply
        self.prompts = []

    def complete(self, prompt):
        self.prompts.append(prompt)
        return self.reply


def test_confirmed_citation_gets_support_verdict():
    provider = ScriptedProvider(
        json.dumps({"status": "DISPUTED", "reasoning": "Abstract reports the opposite.", "confidence": 0.9})
    )
    service = ExternalVerificationService(
        aggregator=FakeAggregator([_work(abstract="Deeper networks are harder to train.")]),
        semantic=SemanticClaimService(provider),
    )

    result = service.verify_pair(
        _pair(reference=_reference(), context="Deeper networks are easy to train (He, 2016).")
    )

    assert result.support_status == SupportStatus.CONTRADICTORY
    assert result.semantic_analysis.confidence == 0.9
    assert result.message.startswith("Paper disputes claim")
    assert "Deeper networks are easy to train" in provider.prompts[0]


def test_support_not_evaluated_without_context():
    provider = ScriptedProvider("{}")
    service = ExternalVerificationService(
        aggregator=FakeAggregator([_work(abstract="Some abstract text.")]),
        semantic=SemanticClaimService(provider),
    )

    result = service.verify_pair(_pair(reference=_reference()))

    assert result.support_status == SupportStatus.NOT_EVALUATED
    assert provider.prompts == []


def test_search_query_skips_missing_fields():
    reference = MatchedReference(
        raw_text=RAW_REFERENCE, index=1, metadata=ReferenceMetadata(title="A title")
    )

    assert build_search_query(reference) == "A title"


class SequencedAggregator(FakeAggregator):
    """Returns one hit list per call, in order."""

    def __init__(self, *responses):
        super().__init__()
        self.responses = list(responses)

    def search(self, query, title=None):
        self.queries.append(query)
        self.titles.append(title)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return list(response)


def test_not_found_citation_gets_alternative_sources():
    alternative = FoundWork(
        title="Identity mappings in deep residual networks",
        url="https://arxiv.org/abs/1603.05027",
        database="arxiv",
        year=2016,
        similarity=0.834,
    )
    aggregator = SequencedAggregator([_work(similarity=0.2)], [alternative])
    service = ExternalVerificationService(
        aggregator=aggregator, remediation=RemediationService(aggregator)
    )
    pair = _pair(reference=_reference(), context="Residual networks ease training (He, 2016).")

    result = service.verify_citation_pairs([pair])[0]

    assert result.existence_status == ExistenceStatus.NOT_FOUND
    assert result.reason == "Source could not be located in academic databases."
    assert result.action.startswith("Review the suggested alternatives")
    assert [s.title for s in result.suggestions] == ["Identity mappings in deep residual networks"]
    assert result.suggestions[0].relevance_score == 83
    assert aggregator.queries[1] == "Residual networks ease training (He, 2016)."
    assert aggregator.titles[1] is None


def test_failed_suggestion_search_leaves_verdict_untouched():
    aggregator = SequencedAggregator([], ProviderError("Other", "All bibliographic providers failed"))
    service = ExternalVerificationService(
        aggregator=aggregator, remediation=RemediationService(aggregator)
    )

    result = service.verify_pair(_pair(reference=_reference()))

    assert result.existence_status == ExistenceStatus.NOT_FOUND
    assert result.suggestions == []
    assert not result.has_service_error
    assert len(aggregator.queries) == 2


def test_confirmed_citation_needs_no_action():
    aggregator = FakeAggregator([_work()])
    service = ExternalVerificationService(
        aggregator=aggregator, remediation=RemediationService(aggregator)
    )

    result = service.verify_pair(_pair(reference=_reference()))

    assert result.existence_status == ExistenceStatus.CONFIRMED
    assert result.action == "No action required."
    assert result.suggestions == []
    assert len(aggregator.queries) == 1


def test_from_settings_shares_the_aggregator_with_remediation():
    service = ExternalVerificationService.from_settings(Settings(suggestion_limit=3))

    assert service.remediation.aggregator is service.aggregator
    assert service.remediation.limit == 3
    assert service.semantic is None
