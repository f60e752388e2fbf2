from citation_audit.models import (
    ExistenceStatus,
    FoundWork,
    PatternType,
    RiskSeverity,
    RiskType,
    SupportStatus,
    TextAnchor,
    VerificationResult,
)
from citation_audit.risk import RiskAnalyzer

from conftest import make_pattern


def _confirmed(work):
    return VerificationResult(
        inline_location=TextAnchor(40, 50, "(Roe, 2019)"),
        existence_status=ExistenceStatus.CONFIRMED,
        support_status=SupportStatus.NOT_EVALUATED,
        found_work=work,
    )


def test_commercial_sponsor_in_context_is_flagged():
    pattern = make_pattern(
        PatternType.AUTHOR_YEAR,
        "(Smith, 2020)",
        start=12,
        context="The trial, funded by a large pharma company, reported gains (Smith, 2020).",
    )

    risks = RiskAnalyzer().analyze([pattern], [])

    assert len(risks) == 1
    assert risks[0].type == RiskType.FUNDING_BIAS
    assert risks[0].severity == RiskSeverity.MEDIUM
    assert risks[0].anchor.start == 12
    assert risks[0].description.startswith("Potential funding bias")


def test_public_funding_is_not_a_risk():
    pattern = make_pattern(
        PatternType.AUTHOR_YEAR,
        "(Smith, 2020)",
        context="This work was funded by a national science council (Smith, 2020).",
    )

    assert RiskAnalyzer().analyze([pattern], []) == []


def test_retracted_source_is_a_high_risk():
    retracted = FoundWork(title="Retracted: Vaccines and autism", is_retracted=True, similarity=0.9)
    sound = FoundWork(title="A sound study", similarity=0.9)

    risks = RiskAnalyzer().analyze([], [_confirmed(retracted), _confirmed(sound)])

    assert [risk.type for risk in risks] == [RiskType.RETRACTED]
    assert risks[0].severity == RiskSeverity.HIGH
    assert risks[0].anchor.text == "(Roe, 2019)"
    assert "Vaccines and autism" in risks[0].description
