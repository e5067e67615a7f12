from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field

import httpx

from app.config import settings
from app.tools.web_utils import query_terms

ATOM_NS = {"a": "http://www.w3.org/2005/Atom"}

ML_TERMS = ("machine learning", "deep learning", "neural network", "algorithm", "optimization")


@dataclass
class ArxivPaper:
    id: str
    title: str
    summary: str
    published: str
    link: str
    authors: list[str] = field(default_factory=list)
    pdf_link: str | None = None


def enhance_query(query: str) -> str:
    """Restrict the search to likely arXiv categories when the topic is obvious."""
    lowered = query.lower()
    if any(term in lowered for term in ML_TERMS):
        return f"({query}) AND (cat:cs.LG OR cat:cs.AI OR cat:stat.ML)"
    if "physics" in lowered or "quantum" in lowered:
        return f"({query}) AND (cat:quant-ph OR cat:physics)"
    if "math" in lowered or "statistics" in lowered:
        return f"({query}) AND (cat:math OR cat:stat)"
    return query


def is_relevant(title: str, summary: str, query: str) -> bool:
    terms = query_terms(query, min_length=2)
    if not terms:
        return len(summary) > 100
    text = f"{title} {summary}".lower()
    matched = sum(1 for t in terms if t in text)
    return matched / len(terms) >= 0.4 and len(summary) > 100


def parse_feed(xml_text: str, query: str) -> list[ArxivPaper]:
    """Parse an arXiv Atom feed, keeping entries relevant to the query."""
    root = ET.fromstring(xml_text)
    papers: list[ArxivPaper] = []
    for entry in root.findall("a:entry", ATOM_NS):
        title = " ".join((entry.findtext("a:title", default="", namespaces=ATOM_NS) or "").split())
        summary = " ".join((entry.findtext("a:summary", default="", namespaces=ATOM_NS) or "").split())
        if not is_relevant(title, summary, query):
            continue

        entry_id = (entry.findtext("a:id", default="", namespaces=ATOM_NS) or "").strip()
        pdf_link = None
        for link in entry.findall("a:link", ATOM_NS):
            if link.get("title") == "pdf":
                pdf_link = link.get("href")
                break

        papers.append(
            ArxivPaper(
                id=entry_id,
                title=title,
                summary=summary,
                published=(entry.findtext("a:published", default="", namespaces=ATOM_NS) or "").strip(),
                link=pdf_link or entry_id,
                authors=[
                    a.findtext("a:name", default="", namespaces=ATOM_NS) or ""
                    for a in entry.findall("a:author", ATOM_NS)
                ],
                pdf_link=pdf_link,
            )
        )
    return papers


async def search(query: str, *, max_results: int = 10) -> list[ArxivPaper]:
    """Search arXiv and return the most relevant papers."""
    params = {
        "search_query": enhance_query(query),
        "start": 0,
        "max_results": max_results,
        "sortBy": "relevance",
        "sortOrder": "descending",
    }
    async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
        response = await client.get(settings.arxiv_api_url, params=params)
        response.raise_for_status()
        xml_text = response.text

    return parse_feed(xml_text, query)[: settings.academic_max_papers]
