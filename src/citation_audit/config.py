"""Runtime settings read from the environment (and an optional .env file)."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import find_dotenv, load_dotenv

log = logging.getLogger(__name__)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw in (None, ""):
        return default
    try:
        return float(raw)
    except ValueError:
        log.warning("Ignoring non-numeric %s=%r", name, raw)
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except ValueError:
        log.warning("Ignoring non-integer %s=%r", name, raw)
        return default


@dataclass(frozen=True)
class Settings:
    """Tunable parameters for the audit pipeline.

    Attributes:
        default_style: Style used when a request declares an unknown one.
        http_timeout: Per-request timeout (seconds) for bibliographic lookups.
        crossref_mailto: Contact address sent to Crossref's polite pool.
        openai_api_key: Key for the completion provider; None disables it.
        openai_model: Chat model used for claim support judgments.
        completion_timeout: Timeout (seconds) for one completion call.
        high_similarity: Similarity above which a hit is a confident match.
        low_similarity: Similarity above which a hit is a likely match.
        min_reference_words: References shorter than this are not looked up.
        default_word_count: Word count assumed when the request omits it.
        deadline_seconds: Optional overall verification budget per audit.
        suggestion_limit: Alternative sources offered per unbacked citation; 0 disables.
        log_level: Root log level for the command line entry point.
    """

    default_style: str = "MLA"
    http_timeout: float = 10.0
    crossref_mailto: str = ""
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-3.5-turbo"
    completion_timeout: float = 20.0
    high_similarity: float = 0.7
    low_similarity: float = 0.5
    min_reference_words: int = 6
    default_word_count: int = 1000
    deadline_seconds: Optional[float] = None
    suggestion_limit: int = 5
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        if dotenv:
            load_dotenv(find_dotenv(usecwd=True))
        deadline = _env_float("CITATION_AUDIT_DEADLINE_SECONDS", 0.0)
        return cls(
            default_style=os.getenv("CITATION_AUDIT_DEFAULT_STYLE", cls.default_style),
            http_timeout=_env_float("CITATION_AUDIT_HTTP_TIMEOUT", cls.http_timeout),
            crossref_mailto=os.getenv("CITATION_AUDIT_CROSSREF_MAILTO", ""),
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_model=os.getenv("CITATION_AUDIT_OPENAI_MODEL", cls.openai_model),
            completion_timeout=_env_float(
                "CITATION_AUDIT_COMPLETION_TIMEOUT", cls.completion_timeout
            ),
            high_similarity=_env_float("CITATION_AUDIT_HIGH_SIMILARITY", cls.high_similarity),
            low_similarity=_env_float("CITATION_AUDIT_LOW_SIMILARITY", cls.low_similarity),
            min_reference_words=_env_int(
                "CITATION_AUDIT_MIN_REFERENCE_WORDS", cls.min_reference_words
            ),
            default_word_count=_env_int(
                "CITATION_AUDIT_DEFAULT_WORD_COUNT", cls.default_word_count
            ),
            deadline_seconds=deadline if deadline > 0 else None,
            suggestion_limit=_env_int("CITATION_AUDIT_SUGGESTION_LIMIT", cls.suggestion_limit),
            log_level=os.getenv("CITATION_AUDIT_LOG_LEVEL", cls.log_level).upper(),
        )


__all__ = ["Settings"]
