"""Audit reporting utilities."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from .models import (
    AuditReport,
    CitationFlag,
    FoundWork,
    IntegrityIndex,
    Provenance,
    RiskFactor,
    Suggestion,
    SupportStatus,
    TextAnchor,
    VerificationResult,
)


def _serialize_anchor(anchor: Optional[TextAnchor]) -> Optional[Dict[str, Any]]:
    if anchor is None:
        return None
    return {"start": anchor.start, "end": anchor.end, "text": anchor.text}


def _serialize_flag(flag: CitationFlag) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "type": flag.type.value,
        "ruleId": flag.rule_id,
        "message": flag.message,
    }
    if flag.anchor is not None:
        data["anchor"] = _serialize_anchor(flag.anchor)
    if flag.section is not None:
        data["section"] = flag.section
    if flag.expected is not None:
        data["expected"] = flag.expected
    return data


def _serialize_provenance(entry: Provenance) -> Dict[str, Any]:
    data: Dict[str, Any] = {"source": entry.source.value, "status": entry.status.value}
    if entry.latency_ms is not None:
        data["latencyMs"] = entry.latency_ms
    if entry.error is not None:
        data["error"] = entry.error
    return data


def _serialize_work(work: FoundWork) -> Dict[str, Any]:
    return {
        "title": work.title,
        "url": work.url,
        "database": work.database,
        "authors": list(work.authors),
        "year": work.year,
        "doi": work.doi,
        "abstract": work.abstract,
        "isRetracted": work.is_retracted,
    }


def _serialize_suggestion(suggestion: Suggestion) -> Dict[str, Any]:
    return {
        "title": suggestion.title,
        "url": suggestion.url,
        "database": suggestion.database,
        "year": suggestion.year,
        "relevanceScore": suggestion.relevance_score,
        "whyMatch": suggestion.why_match,
    }


def _serialize_risk(risk: RiskFactor) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "type": risk.type.value,
        "description": risk.description,
        "severity": risk.severity.value,
    }
    if risk.anchor is not None:
        data["anchor"] = _serialize_anchor(risk.anchor)
    return data


def _serialize_result(result: VerificationResult) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "inlineLocation": _serialize_anchor(result.inline_location),
        "existenceStatus": result.existence_status.value,
        "supportStatus": result.support_status.value,
        "provenance": [_serialize_provenance(entry) for entry in result.provenance],
        "message": result.message,
    }
    if result.similarity is not None:
        data["similarity"] = result.similarity
    if result.found_work is not None:
        data["foundWork"] = _serialize_work(result.found_work)
    if result.semantic_analysis is not None:
        data["semanticAnalysis"] = {
            "reasoning": result.semantic_analysis.reasoning,
            "confidence": result.semantic_analysis.confidence,
        }
    if result.reason is not None:
        data["reason"] = result.reason
    if result.action is not None:
        data["action"] = result.action
    if result.suggestions:
        data["suggestions"] = [_serialize_suggestion(s) for s in result.suggestions]
    return data


def _serialize_index(index: IntegrityIndex) -> Dict[str, Any]:
    return {
        "totalScore": index.total_score,
        "confidence": index.confidence.value,
        "components": {
            "styleScore": index.style_score,
            "verificationScore": index.verification_score,
            "referenceScore": index.reference_score,
            "semanticScore": index.semantic_score,
        },
        "verificationLimits": list(index.verification_limits),
    }


def report_to_dict(report: AuditReport) -> Dict[str, Any]:
    """Serialize a report to the camelCase JSON shape consumers expect."""
    return {
        "style": report.style.value,
        "timestamp": report.timestamp,
        "flags": [_serialize_flag(flag) for flag in report.flags],
        "verificationResults": [_serialize_result(r) for r in report.verification_results],
        "detectedStyles": [style.value for style in report.detected_styles],
        "integrityIndex": _serialize_index(report.integrity_index),
        "riskFactors": [_serialize_risk(risk) for risk in report.risk_factors],
    }


def render_flags(flags: List[CitationFlag]) -> str:
    if not flags:
        return "No citation style issues detected."
    lines = []
    for flag in flags:
        line = f"[{flag.type.value}] {flag.rule_id}: {flag.message}"
        if flag.anchor is not None:
            line += f" -> {flag.anchor.text}"
        if flag.expected:
            line += f" (expected: {flag.expected})"
        lines.append(line)
    return "\n".join(lines)


def render_report(report: AuditReport) -> str:
    """Return a human-readable summary of an audit."""

    index = report.integrity_index
    lines = [
        "Citation Audit Report",
        f"Style: {report.style.value}",
        f"Citation Integrity Index: {index.total_score}/100 ({index.confidence.value} confidence)",
        (
            f"  style {index.style_score}, verification {index.verification_score}, "
            f"reference list {index.reference_score}, semantic {index.semantic_score}"
        ),
    ]
    if report.detected_styles:
        detected = ", ".join(style.value for style in report.detected_styles)
        lines.append(f"Detected styles: {detected}")
    for limit in index.verification_limits:
        lines.append(f"Note: {limit}")

    if report.flags:
        lines.append("Issues:")
        lines.append(render_flags(report.flags))
    else:
        lines.append("No citation style issues detected.")

    if report.verification_results:
        lines.append("Verification:")
        for result in report.verification_results:
            line = f"[{result.existence_status.value}] {result.inline_location.text}: {result.message}"
            if result.support_status != SupportStatus.NOT_EVALUATED:
                line += f" (support: {result.support_status.value})"
            lines.append(line)
            for suggestion in result.suggestions:
                lines.append(
                    f"  try: {suggestion.title} ({suggestion.relevance_score}% relevant)"
                )
    if report.risk_factors:
        lines.append("Risks:")
        for risk in report.risk_factors:
            lines.append(f"[{risk.severity.value}] {risk.type.value}: {risk.description}")
    return "\n".join(lines)


__all__ = ["render_flags", "render_report", "report_to_dict"]
