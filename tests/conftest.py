import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT / "src") not in sys.path:
    sys.path.insert(0, str(ROOT / "src"))

from typing import Optional

import pytest

from citation_audit.models import (
    ExtractedPattern,
    PatternType,
    ReferenceEntry,
    ReferenceListExtraction,
)


def make_pattern(
    pattern_type: PatternType, text: str, start: int = 0, context: Optional[str] = None
) -> ExtractedPattern:
    return ExtractedPattern(
        pattern_type=pattern_type,
        text=text,
        start=start,
        end=start + len(text),
        context=context,
    )


@pytest.fixture()
def apa_reference_list() -> ReferenceListExtraction:
    """An APA-formatted list mirroring a short empirical paper."""

    entries = [
        "Doe, J. (2021). Sample article title about reference integrity checks. "
        "Journal of Testing, 10(2), 123-130. https://doi.org/10.1234/jt.2021.456",
        "Smith, A., & Lee, B. (2020). Another study on automated testing of manuscripts. "
        "Proceedings of the Reference Checking Conference.",
        "Patel, R. (2019). Data validation handbook for research software. Testing Press.",
    ]
    return ReferenceListExtraction(
        section_title="References",
        entries=tuple(
            ReferenceEntry(index=i + 1, raw_text=text, start=1000 + 200 * i, end=1100 + 200 * i)
            for i, text in enumerate(entries)
        ),
    )


@pytest.fixture()
def ieee_reference_list() -> ReferenceListExtraction:
    entries = [
        '[1] J. Doe, "Sample article title about reference integrity checks," '
        "Journal of Testing, vol. 10, no. 2, pp. 123-130, 2021.",
        '[2] A. Smith and B. Lee, "Another study on automated testing of manuscripts," '
        "in Proc. Reference Checking Conf., 2020.",
    ]
    return ReferenceListExtraction(
        section_title="References",
        entries=tuple(
            ReferenceEntry(index=i + 1, raw_text=text) for i, text in enumerate(entries)
        ),
    )
