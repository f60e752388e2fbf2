"""Bibliographic registry clients (Crossref, arXiv, PubMed) and their aggregator."""
from __future__ import annotations

import json
import logging
import re
import urllib.parse
from typing import Callable, Dict, List, Optional, Sequence
from xml.etree import ElementTree

import httpx
from rapidfuzz import fuzz

from .exceptions import ProviderError
from .models import FoundWork

log = logging.getLogger(__name__)

Fetcher = Callable[[str, float], str]

USER_AGENT = "citation-audit/0.1"
MAX_QUERY_CHARS = 200
MIN_HIT_SIMILARITY = 0.3
TITLE_WEIGHT = 0.7
YEAR_PATTERN = re.compile(r"\b(?:19|20)\d{2}\b")
TAG_PATTERN = re.compile(r"<[^>]+>")


def normalize_doi(doi: str) -> str:
    doi = doi.strip().lower()
    doi = re.sub(r"^https?://(dx\.)?doi\.org/", "", doi)
    doi = doi.replace("doi:", "")
    return doi


def http_get(url: str, timeout: float, user_agent: str = USER_AGENT) -> str:
    """GET ``url`` and return the body; 404 yields an empty string."""
    try:
        response = httpx.get(
            url, timeout=timeout, headers={"User-Agent": user_agent}, follow_redirects=True
        )
    except httpx.RequestError as exc:
        raise ProviderError(_source_for(url), f"Request to {url} failed", str(exc)) from exc
    if response.status_code == 404:
        return ""
    try:
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise ProviderError(
            _source_for(url), f"{url} answered HTTP {response.status_code}"
        ) from exc
    return response.text


def _source_for(url: str) -> str:
    host = urllib.parse.urlparse(url).netloc
    return host or "unknown"


def _clean(text: str) -> str:
    return re.sub(r"[^\w\s]", " ", text.lower()).strip()


def title_similarity(cited: str, found: str) -> float:
    """Order-aware title similarity in [0, 1]; very short titles score 0.

    Blends ``token_sort_ratio`` with word overlap (Jaccard), so a title that
    shares only a few words with the cited one stays low even when those
    words appear in the same order.
    """
    if not cited or not found:
        return 0.0
    a, b = _clean(cited), _clean(found)
    if len(a) < 10 or len(b) < 10:
        return 0.0
    ordered = fuzz.token_sort_ratio(a, b) / 100.0
    words_a, words_b = set(a.split()), set(b.split())
    overlap = len(words_a & words_b) / len(words_a | words_b)
    return TITLE_WEIGHT * ordered + (1 - TITLE_WEIGHT) * overlap


def term_coverage(query: str, text: str) -> float:
    """Share of the query's content words that occur in ``text``."""
    terms = {word for word in _clean(query).split() if len(word) > 3}
    if not terms or not text:
        return 0.0
    words = set(_clean(text).split())
    return len(terms & words) / len(terms)


def score_hit(
    query: str,
    title: str,
    abstract: Optional[str],
    year: Optional[int],
    cited_title: Optional[str] = None,
) -> float:
    """Score a search hit, halving it when the query's year is off by more than one.

    With ``cited_title`` the hit's title is compared against it and the
    abstract is ignored; existence checks rely on this score. Without it the
    hit is ranked by how many query terms its title and abstract contain.
    """
    if cited_title:
        best = title_similarity(cited_title, title)
    else:
        best = term_coverage(query, f"{title} {abstract or ''}")
    cited = YEAR_PATTERN.search(query)
    if cited and year and abs(int(cited.group(0)) - year) > 1:
        best *= 0.5
    return best


def _strip_markup(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    text = " ".join(TAG_PATTERN.sub(" ", value).split())
    return text or None


class SearchProvider:
    """Base interface for free-text bibliographic search."""

    name: str = "base"

    def search(
        self, query: str, title: Optional[str] = None
    ) -> List[FoundWork]:  # pragma: no cover - interface
        """Return hits for ``query``; ``title`` is the cited title to score hits against."""
        raise NotImplementedError


class CrossrefClient(SearchProvider):
    """Client for DOI resolution and free-text search against Crossref."""

    name = "crossref"
    BASE_URL = "https://api.crossref.org/works"

    def __init__(
        self,
        fetcher: Optional[Fetcher] = None,
        timeout: float = 10.0,
        mailto: str = "",
        rows: int = 5,
    ):
        self.fetcher = fetcher or self._http_get
        self.timeout = timeout
        self.mailto = mailto
        self.rows = rows

    def _http_get(self, url: str, timeout: float) -> str:
        agent = f"{USER_AGENT} (mailto:{self.mailto})" if self.mailto else USER_AGENT
        return http_get(url, timeout, user_agent=agent)

    def lookup_doi(self, doi: str) -> Optional[FoundWork]:
        url = f"{self.BASE_URL}/{urllib.parse.quote(normalize_doi(doi))}"
        payload = self.fetcher(url, self.timeout)
        if not payload:
            return None
        items = self._parse_items(payload)
        if not items:
            return None
        work = self._to_work(items[0])
        work.similarity = 1.0
        return work

    def search(self, query: str, title: Optional[str] = None) -> List[FoundWork]:
        params = urllib.parse.urlencode(
            {
                "query.bibliographic": query[:MAX_QUERY_CHARS],
                "rows": self.rows,
            }
        )
        payload = self.fetcher(f"{self.BASE_URL}?{params}", self.timeout)
        if not payload:
            return []
        hits = []
        for item in self._parse_items(payload):
            work = self._to_work(item)
            work.similarity = score_hit(query, work.title, work.abstract, work.year, title)
            if work.similarity > MIN_HIT_SIMILARITY:
                hits.append(work)
        return hits

    @staticmethod
    def _parse_items(payload: str) -> List[Dict[str, object]]:
        try:
            data = json.loads(payload)
        except ValueError as exc:
            raise ProviderError("CrossRef", "Malformed Crossref response") from exc

        message = data.get("message") if isinstance(data, dict) else None
        if not message or not isinstance(message, dict):
            return []
        if "items" in message:
            return [item for item in message.get("items") or [] if isinstance(item, dict)]
        return [message]

    @staticmethod
    def _to_work(message: Dict[str, object]) -> FoundWork:
        def first_value(value):
            if isinstance(value, list) and value:
                return value[0]
            if isinstance(value, str):
                return value
            return None

        authors: List[str] = []
        for author in message.get("author") or []:
            family = author.get("family")
            given = author.get("given")
            if family and given:
                authors.append(f"{family}, {given}")
            elif family:
                authors.append(family)

        year: Optional[int] = None
        for key in ("issued", "published", "created"):
            issued = message.get(key)
            if isinstance(issued, dict):
                parts = issued.get("date-parts") or []
                if parts and parts[0] and parts[0][0]:
                    year = int(parts[0][0])
                    break

        title = first_value(message.get("title")) or ""
        doi = message.get("DOI")
        retracted = title.upper().startswith("RETRACTED") or any(
            isinstance(update, dict) and update.get("type") == "retraction"
            for update in message.get("update-to") or []
        )
        return FoundWork(
            title=title,
            url=f"https://doi.org/{doi}" if doi else str(message.get("URL") or ""),
            database="crossref",
            authors=authors,
            year=year,
            doi=doi,
            abstract=_strip_markup(message.get("abstract")),
            is_retracted=retracted,
        )


class ArxivClient(SearchProvider):
    """Search arXiv's Atom API."""

    name = "arxiv"
    BASE_URL = "http://export.arxiv.org/api/query"
    NS = {"atom": "http://www.w3.org/2005/Atom"}
    ID_YEAR = re.compile(r"/(\d{2})(\d{2})\.")

    def __init__(self, fetcher: Optional[Fetcher] = None, timeout: float = 10.0, rows: int = 5):
        self.fetcher = fetcher or http_get
        self.timeout = timeout
        self.rows = rows

    def search(self, query: str, title: Optional[str] = None) -> List[FoundWork]:
        params = urllib.parse.urlencode(
            {"search_query": f"all:{query[:MAX_QUERY_CHARS]}", "max_results": self.rows}
        )
        payload = self.fetcher(f"{self.BASE_URL}?{params}", self.timeout)
        if not payload:
            return []
        try:
            root = ElementTree.fromstring(payload)
        except ElementTree.ParseError as exc:
            raise ProviderError("arXiv", "Malformed arXiv response") from exc

        hits = []
        for entry in root.findall("atom:entry", self.NS):
            entry_title = " ".join((entry.findtext("atom:title", "", self.NS) or "").split())
            summary = " ".join((entry.findtext("atom:summary", "", self.NS) or "").split())
            link = (entry.findtext("atom:id", "", self.NS) or "").strip()
            authors = [
                name.strip()
                for name in (
                    author.findtext("atom:name", "", self.NS)
                    for author in entry.findall("atom:author", self.NS)
                )
                if name and name.strip()
            ]
            work = FoundWork(
                title=entry_title,
                url=link,
                database="arxiv",
                authors=authors,
                year=self._year(entry, link),
                abstract=summary or None,
            )
            work.similarity = score_hit(query, entry_title, summary, work.year, title)
            if work.similarity > MIN_HIT_SIMILARITY:
                hits.append(work)
        return hits

    def _year(self, entry: ElementTree.Element, link: str) -> Optional[int]:
        published = entry.findtext("atom:published", "", self.NS) or ""
        match = YEAR_PATTERN.search(published)
        if match:
            return int(match.group(0))
        id_match = self.ID_YEAR.search(link)
        if id_match:
            prefix = int(id_match.group(1))
            return 1900 + prefix if prefix >= 90 else 2000 + prefix
        return None


class PubMedClient(SearchProvider):
    """Search PubMed through the NCBI E-utilities (esearch + efetch)."""

    name = "pubmed"
    SEARCH_URL = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils/esearch.fcgi"
    FETCH_URL = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils/efetch.fcgi"

    def __init__(self, fetcher: Optional[Fetcher] = None, timeout: float = 10.0, rows: int = 5):
        self.fetcher = fetcher or http_get
        self.timeout = timeout
        self.rows = rows

    def search(self, query: str, title: Optional[str] = None) -> List[FoundWork]:
        ids = self._search_ids(query)
        if not ids:
            return []
        params = urllib.parse.urlencode({"db": "pubmed", "id": ",".join(ids), "retmode": "xml"})
        payload = self.fetcher(f"{self.FETCH_URL}?{params}", self.timeout)
        if not payload:
            return []
        try:
            root = ElementTree.fromstring(payload)
        except ElementTree.ParseError as exc:
            raise ProviderError("PubMed", "Malformed PubMed efetch response") from exc

        hits = []
        for article in root.iter("PubmedArticle"):
            work = self._to_work(article)
            work.similarity = score_hit(query, work.title, work.abstract, work.year, title)
            if work.similarity > MIN_HIT_SIMILARITY:
                hits.append(work)
        return hits

    def _search_ids(self, query: str) -> List[str]:
        params = urllib.parse.urlencode(
            {
                "db": "pubmed",
                "term": query[:MAX_QUERY_CHARS],
                "retmax": self.rows,
                "retmode": "json",
            }
        )
        payload = self.fetcher(f"{self.SEARCH_URL}?{params}", self.timeout)
        if not payload:
            return []
        try:
            data = json.loads(payload)
        except ValueError as exc:
            raise ProviderError("PubMed", "Malformed PubMed esearch response") from exc
        result = data.get("esearchresult") if isinstance(data, dict) else None
        if not isinstance(result, dict):
            return []
        return [str(pmid) for pmid in result.get("idlist") or []]

    @staticmethod
    def _to_work(article: ElementTree.Element) -> FoundWork:
        def text_of(path: str) -> str:
            node = article.find(path)
            if node is None:
                return ""
            return " ".join("".join(node.itertext()).split())

        pmid = text_of(".//MedlineCitation/PMID")
        abstract = " ".join(
            " ".join("".join(node.itertext()).split())
            for node in article.findall(".//Abstract/AbstractText")
        )
        year_text = text_of(".//PubDate/Year")
        authors = []
        for author in article.findall(".//AuthorList/Author"):
            last = (author.findtext("LastName") or "").strip()
            first = (author.findtext("ForeName") or "").strip()
            if last:
                authors.append(f"{last}, {first}" if first else last)
        publication_types = {
            (node.text or "").strip().lower()
            for node in article.findall(".//PublicationTypeList/PublicationType")
        }
        return FoundWork(
            title=text_of(".//ArticleTitle"),
            url=f"https://pubmed.ncbi.nlm.nih.gov/{pmid}/" if pmid else "",
            database="pubmed",
            authors=authors,
            year=int(year_text) if year_text.isdigit() else None,
            abstract=abstract or None,
            is_retracted="retracted publication" in publication_types,
        )


class BibliographicSearchAggregator(SearchProvider):
    """Query several providers and merge their hits, best similarity first."""

    name = "aggregate"

    def __init__(self, providers: Sequence[SearchProvider]):
        self.providers = list(providers)

    @classmethod
    def default(cls, timeout: float = 10.0, mailto: str = "") -> "BibliographicSearchAggregator":
        return cls(
            [
                CrossrefClient(timeout=timeout, mailto=mailto),
                ArxivClient(timeout=timeout),
                PubMedClient(timeout=timeout),
            ]
        )

    def search(self, query: str, title: Optional[str] = None) -> List[FoundWork]:
        hits: List[FoundWork] = []
        failures: List[str] = []
        for provider in self.providers:
            try:
                hits.extend(provider.search(query, title=title))
            except Exception as exc:
                log.warning("%s search failed: %s", provider.name, exc)
                failures.append(f"{provider.name}: {exc}")

        if self.providers and len(failures) == len(self.providers):
            raise ProviderError("Other", "All bibliographic providers failed", "; ".join(failures))
        return sorted(hits, key=lambda work: work.similarity, reverse=True)


__all__ = [
    "SearchProvider",
    "CrossrefClient",
    "ArxivClient",
    "PubMedClient",
    "BibliographicSearchAggregator",
    "http_get",
    "normalize_doi",
    "score_hit",
    "term_coverage",
    "title_similarity",
]
