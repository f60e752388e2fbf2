"""Claim support judgments from a single text-completion call."""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Optional

from .exceptions import CompletionFormatError, ProviderError
from .models import SupportStatus

log = logging.getLogger(__name__)

PROMPT_TEMPLATE = """
Evaluate if the following document claim is supported by the provided research paper abstract.

DOCUMENT CLAIM:
"{claim}"

PAPER ABSTRACT:
"{abstract}"

DECISION CRITERIA:
- SUPPORTED: The abstract directly confirms or strongly supports the specific claim.
- DISPUTED: The abstract contradicts the claim or provides evidence against it.
- PARTIALLY_SUPPORTED: The abstract supports some part of the claim or suggests it under specific conditions, but isn't a direct 1:1 match.
- UNRELATED: The abstract is about a different topic and doesn't mention the claim's core subject.

Return your response as a JSON object with three fields:
1. "status": One of "SUPPORTED", "DISPUTED", "PARTIALLY_SUPPORTED", "UNRELATED".
2. "reasoning": A one-sentence explanation of why you chose this status.
3. "confidence": A number between 0 and 1.

JSON:"""

STATUS_MAP = {
    "SUPPORTED": SupportStatus.SUPPORTED,
    "PARTIALLY_SUPPORTED": SupportStatus.PLAUSIBLE,
    "DISPUTED": SupportStatus.CONTRADICTORY,
    "UNRELATED": SupportStatus.UNRELATED,
}
DEFAULT_CONFIDENCE = 0.8
JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


@dataclass(frozen=True)
class SemanticVerdict:
    status: SupportStatus
    reasoning: str
    confidence: float


class CompletionProvider:
    """Port for a single-shot text completion service."""

    name: str = "base"

    def complete(self, prompt: str) -> str:  # pragma: no cover - interface
        raise NotImplementedError


class OpenAICompletionProvider(CompletionProvider):
    """Chat-completion call through the OpenAI SDK, timeout-bounded and retry-free."""

    name = "openai"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-3.5-turbo",
        timeout: float = 20.0,
        max_tokens: int = 150,
        temperature: float = 0.3,
        client=None,
    ):
        if client is None:
            from openai import OpenAI

            client = OpenAI(api_key=api_key, timeout=timeout, max_retries=0)
        self.client = client
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature

    def complete(self, prompt: str) -> str:
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except Exception as exc:
            raise ProviderError("openai", "Completion request failed", str(exc)) from exc
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""


def unwrap_json(reply: str) -> dict:
    """Pull the JSON object out of a reply that may carry fences or prose."""
    text = (reply or "").strip()
    text = re.sub(r"```(?:json)?", "", text).strip()
    match = JSON_OBJECT.search(text)
    if not match:
        raise CompletionFormatError("Completion reply contained no JSON object", text[:80])
    try:
        data = json.loads(match.group(0))
    except ValueError as exc:
        raise CompletionFormatError("Completion reply was not valid JSON", text[:80]) from exc
    if not isinstance(data, dict):
        raise CompletionFormatError("Completion reply was not a JSON object")
    return data


class SemanticClaimService:
    """Judge whether a cited abstract supports the claim it is cited for.

    Failures never propagate: any provider or parse error yields an UNRELATED
    verdict with zero confidence.
    """

    def __init__(self, provider: CompletionProvider):
        self.provider = provider

    def verify_claim(self, claim: str, abstract: str) -> SemanticVerdict:
        if not claim or not abstract:
            return SemanticVerdict(
                SupportStatus.UNRELATED, "Insufficient information to evaluate claim.", 0.0
            )
        prompt = PROMPT_TEMPLATE.format(claim=claim, abstract=abstract)
        try:
            data = unwrap_json(self.provider.complete(prompt))
        except CompletionFormatError as exc:
            log.error("Unparseable semantic verdict for %r: %s", claim[:50], exc)
            return _failed_verdict()
        except Exception as exc:
            log.error("Semantic claim check failed for %r: %s", claim[:50], exc)
            return _failed_verdict()

        raw_status = str(data.get("status") or "").strip().upper()
        status = STATUS_MAP.get(raw_status)
        if status is None:
            log.info("Unrecognized support status %r, treating as plausible", raw_status)
            status = SupportStatus.PLAUSIBLE
        reasoning = str(data.get("reasoning") or "").strip()
        return SemanticVerdict(status, reasoning, _confidence(data.get("confidence")))


def _failed_verdict() -> SemanticVerdict:
    return SemanticVerdict(
        SupportStatus.UNRELATED, "Semantic verification service encountered an error.", 0.0
    )


def _confidence(value) -> float:
    if value is None or isinstance(value, bool):
        return DEFAULT_CONFIDENCE
    try:
        number = float(value)
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE
    return min(1.0, max(0.0, number))


__all__ = [
    "CompletionProvider",
    "OpenAICompletionProvider",
    "SemanticClaimService",
    "SemanticVerdict",
    "unwrap_json",
]
