"""Paper download, PDF text extraction and chunk selection for academic research."""
from __future__ import annotations

import asyncio
import io
import re
from dataclasses import dataclass, field
from typing import Any

import httpx
from pypdf import PdfReader

from app.config import settings
from app.services import logger as log_service
from app.tools.arxiv_search import ArxivPaper
from app.tools.web_utils import query_terms

MIN_EXTRACTED_CHARS = 100
SEPARATORS = ("\n\n", "\n", ". ", " ")
_CONTROL_CHARS = re.compile(r"[\u0000-\u0008\u000b\u000c\u000e-\u001f\u007f-\u009f]")


@dataclass
class DocumentChunk:
    text: str
    metadata: dict[str, Any] = field(default_factory=dict)


def sanitize_text(text: str) -> str:
    text = _CONTROL_CHARS.sub("", text)
    text = re.sub(r"[ \t]+", " ", text)
    return re.sub(r"\n{3,}", "\n\n", text).strip()


def extract_pdf_text(data: bytes, max_pages: int) -> str:
    reader = PdfReader(io.BytesIO(data))
    parts: list[str] = []
    for page_num, page in enumerate(reader.pages[:max_pages]):
        try:
            parts.append(page.extract_text() or "")
        except Exception as e:
            log_service.log_event(
                event_type="pdf_page_failed",
                message=f"Failed to extract text from page {page_num}",
                level="WARNING",
                error=str(e),
            )
    return " ".join(parts)


def split_text(text: str, chunk_size: int, overlap: int) -> list[str]:
    """Split text into chunks of at most ``chunk_size`` characters.

    Cuts prefer paragraph, line, sentence and word boundaries in that order,
    and each chunk repeats the last ``overlap`` characters of the previous one.
    """
    text = text.strip()
    if len(text) <= chunk_size:
        return [text] if text else []

    chunks: list[str] = []
    start = 0
    while start < len(text):
        end = min(start + chunk_size, len(text))
        if end < len(text):
            window = text[start:end]
            for sep in SEPARATORS:
                cut = window.rfind(sep)
                if cut > chunk_size // 2:
                    end = start + cut + len(sep)
                    break
        chunk = text[start:end].strip()
        if chunk:
            chunks.append(chunk)
        if end >= len(text):
            break
        start = max(end - overlap, start + 1)
    return chunks


def paper_metadata(paper: ArxivPaper) -> dict[str, Any]:
    return {
        "title": paper.title,
        "authors": ", ".join(paper.authors),
        "published": paper.published,
        "source": paper.link,
        "type": "academic_paper",
    }


def summary_chunk(paper: ArxivPaper) -> DocumentChunk:
    return DocumentChunk(text=f"{paper.title}\n\n{paper.summary}", metadata=paper_metadata(paper))


async def download_pdf(url: str, client: httpx.AsyncClient, max_bytes: int) -> bytes:
    """Fetch a PDF, giving up as soon as it is known to exceed ``max_bytes``."""
    too_large = f"PDF larger than {max_bytes} bytes"
    async with client.stream("GET", url, follow_redirects=True) as response:
        response.raise_for_status()
        declared = response.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > max_bytes:
            raise ValueError(too_large)

        buffer = bytearray()
        async for block in response.aiter_bytes():
            buffer.extend(block)
            if len(buffer) > max_bytes:
                raise ValueError(too_large)
    return bytes(buffer)


async def load_paper(paper: ArxivPaper, client: httpx.AsyncClient) -> list[DocumentChunk]:
    """Download a paper's PDF and chunk it; fall back to title and abstract."""
    if not paper.pdf_link:
        return [summary_chunk(paper)]

    try:
        data = await download_pdf(paper.pdf_link, client, settings.academic_max_pdf_bytes)
        text = await asyncio.to_thread(extract_pdf_text, data, settings.academic_max_pdf_pages)
    except Exception as e:
        log_service.log_event(
            event_type="paper_download_failed",
            message="Falling back to the abstract",
            level="WARNING",
            paper=paper.title,
            error=str(e),
        )
        return [summary_chunk(paper)]

    if len(text) < MIN_EXTRACTED_CHARS:
        return [summary_chunk(paper)]

    metadata = paper_metadata(paper)
    return [
        DocumentChunk(text=chunk, metadata=dict(metadata))
        for chunk in split_text(
            sanitize_text(text),
            settings.academic_chunk_size,
            settings.academic_chunk_overlap,
        )
    ]


def select_relevant(chunks: list[DocumentChunk], query: str, limit: int) -> list[DocumentChunk]:
    """Keep the chunks sharing the most terms with the query, stable on ties."""
    terms = query_terms(query, min_length=2)

    def overlap(chunk: DocumentChunk) -> int:
        lowered = chunk.text.lower()
        return sum(lowered.count(t) for t in terms)

    ranked = sorted(enumerate(chunks), key=lambda pair: (-overlap(pair[1]), pair[0]))
    return [chunk for _, chunk in ranked[:limit]]
