import pytest

from citation_audit.exceptions import AuditInputError
from citation_audit.models import PatternType, SectionType
from citation_audit.schema import parse_audit_request


def _payload(**overrides):
    payload = {
        "declaredStyle": "APA",
        "documentMeta": {"language": "en", "editor": "docs"},
        "sections": [{"title": "References", "type": "REFERENCE_SECTION", "range": {"start": 900, "end": 1200}}],
        "patterns": [
            {
                "patternType": "AUTHOR_YEAR",
                "text": "(Smith, 2020)",
                "start": 10,
                "end": 23,
                "section": "BODY",
                "context": "Prior work (Smith, 2020) showed this.",
                "confidence": 0.9,
            },
            {"patternType": "et_al_no_period", "text": "et al", "start": 40, "end": 45},
        ],
        "referenceList": {
            "sectionTitle": "References",
            "entries": [{"index": 1, "rawText": "Smith, A. (2020). A title. Journal."}],
        },
        "wordCount": 1200,
    }
    payload.update(overrides)
    return payload


def test_camel_case_payload_is_converted():
    request = parse_audit_request(_payload())

    assert request.declared_style == "APA"
    assert request.word_count == 1200
    assert request.document_meta.editor == "docs"
    assert request.sections[0].type == SectionType.REFERENCE_SECTION
    assert request.sections[0].range == (900, 1200)
    assert request.patterns[0].pattern_type == PatternType.AUTHOR_YEAR
    assert request.patterns[0].context.startswith("Prior work")
    assert request.patterns[1].pattern_type == PatternType.ET_AL_NO_PERIOD
    assert request.reference_list.entries[0].raw_text.startswith("Smith")


def test_optional_fields_default():
    request = parse_audit_request(
        {"declaredStyle": "IEEE", "patterns": [], "referenceList": None}
    )

    assert request.reference_list is None
    assert request.word_count is None
    assert request.patterns == ()


@pytest.mark.parametrize(
    "payload",
    [
        {"patterns": []},
        {"declaredStyle": "  ", "patterns": []},
        {"declaredStyle": "APA"},
        {"declaredStyle": "APA", "patterns": [{"patternType": "UNKNOWN", "text": "x", "start": 0, "end": 1}]},
        {"declaredStyle": "APA", "patterns": [{"patternType": "AUTHOR_YEAR", "text": "x", "start": 5, "end": 1}]},
        {"declaredStyle": "APA", "patterns": [], "wordCount": -1},
    ],
)
def test_invalid_payloads_are_rejected(payload):
    with pytest.raises(AuditInputError):
        parse_audit_request(payload)


def test_error_details_name_the_field():
    with pytest.raises(AuditInputError) as excinfo:
        parse_audit_request({"patterns": []})

    assert "declaredStyle" in str(excinfo.value)


def test_non_object_payload_is_rejected():
    with pytest.raises(AuditInputError):
        parse_audit_request(["not", "an", "object"])
