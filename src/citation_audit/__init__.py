"""Citation style auditing and source verification toolkit."""

from .app import CitationAuditApp
from .config import Settings
from .exceptions import AuditInputError, CitationAuditError, CompletionFormatError, ProviderError
from .models import AuditReport, AuditRequest, CitationStyle, ExtractedPattern, ReferenceEntry
from .pattern_observer import PatternObserver
from .providers import ArxivClient, BibliographicSearchAggregator, CrossrefClient, PubMedClient
from .remediation import RemediationService
from .risk import RiskAnalyzer
from .schema import parse_audit_request
from .style_rules import StyleRuleRegistry
from .verification import ExternalVerificationService

__all__ = [
    "CitationAuditApp",
    "Settings",
    "AuditInputError",
    "CitationAuditError",
    "CompletionFormatError",
    "ProviderError",
    "AuditReport",
    "AuditRequest",
    "CitationStyle",
    "ExtractedPattern",
    "ReferenceEntry",
    "PatternObserver",
    "ArxivClient",
    "BibliographicSearchAggregator",
    "CrossrefClient",
    "PubMedClient",
    "RemediationService",
    "RiskAnalyzer",
    "parse_audit_request",
    "StyleRuleRegistry",
    "ExternalVerificationService",
]
