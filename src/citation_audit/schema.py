"""Validation of incoming audit payloads (camelCase JSON from the extractor)."""
from __future__ import annotations

from typing import Any, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .exceptions import AuditInputError
from .models import (
    AuditRequest,
    DocumentMeta,
    DocumentSection,
    ExtractedPattern,
    PatternType,
    ReferenceEntry,
    ReferenceListExtraction,
    SectionType,
)


class _Schema(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class DocumentMetaSchema(_Schema):
    language: str = "en"
    editor: str = ""


class SectionRangeSchema(_Schema):
    start: int = Field(..., ge=0)
    end: int = Field(..., ge=0)


class DocumentSectionSchema(_Schema):
    title: str
    type: SectionType = SectionType.BODY
    range: Optional[SectionRangeSchema] = None


class ExtractedPatternSchema(_Schema):
    pattern_type: PatternType = Field(..., alias="patternType")
    text: str
    start: int = Field(..., ge=0)
    end: int = Field(..., ge=0)
    section: SectionType = SectionType.BODY
    context: Optional[str] = None
    confidence: Optional[float] = Field(None, ge=0, le=1)

    @model_validator(mode="after")
    def check_offsets(self) -> "ExtractedPatternSchema":
        if self.end < self.start:
            raise ValueError("end must not precede start")
        return self


class ReferenceEntrySchema(_Schema):
    index: int
    raw_text: str = Field(..., alias="rawText")
    start: int = Field(0, ge=0)
    end: int = Field(0, ge=0)


class ReferenceListSchema(_Schema):
    section_title: str = Field(..., alias="sectionTitle")
    entries: List[ReferenceEntrySchema] = Field(default_factory=list)


class AuditRequestSchema(_Schema):
    declared_style: str = Field(..., alias="declaredStyle")
    document_meta: DocumentMetaSchema = Field(
        default_factory=DocumentMetaSchema, alias="documentMeta"
    )
    sections: List[DocumentSectionSchema] = Field(default_factory=list)
    patterns: List[ExtractedPatternSchema]
    reference_list: Optional[ReferenceListSchema] = Field(None, alias="referenceList")
    word_count: Optional[int] = Field(None, alias="wordCount", ge=0)

    @field_validator("declared_style")
    @classmethod
    def style_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("declaredStyle must not be blank")
        return value.strip()

    def to_request(self) -> AuditRequest:
        reference_list = None
        if self.reference_list is not None:
            reference_list = ReferenceListExtraction(
                section_title=self.reference_list.section_title,
                entries=tuple(
                    ReferenceEntry(
                        index=entry.index, raw_text=entry.raw_text, start=entry.start, end=entry.end
                    )
                    for entry in self.reference_list.entries
                ),
            )
        return AuditRequest(
            declared_style=self.declared_style,
            patterns=tuple(
                ExtractedPattern(
                    pattern_type=pattern.pattern_type,
                    text=pattern.text,
                    start=pattern.start,
                    end=pattern.end,
                    section=pattern.section,
                    context=pattern.context,
                    confidence=pattern.confidence,
                )
                for pattern in self.patterns
            ),
            reference_list=reference_list,
            document_meta=DocumentMeta(
                language=self.document_meta.language, editor=self.document_meta.editor
            ),
            sections=tuple(
                DocumentSection(
                    title=section.title,
                    type=section.type,
                    range=(section.range.start, section.range.end) if section.range else None,
                )
                for section in self.sections
            ),
            word_count=self.word_count,
        )


def parse_audit_request(payload: Mapping[str, Any]) -> AuditRequest:
    """Validate a raw payload, raising AuditInputError on missing or bad fields."""
    if not isinstance(payload, Mapping):
        raise AuditInputError("Audit request must be a JSON object")
    try:
        schema = AuditRequestSchema.model_validate(dict(payload))
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        raise AuditInputError("Invalid audit request", problems) from exc
    return schema.to_request()


__all__ = ["AuditRequestSchema", "parse_audit_request"]
