"""
CMDR Kael - BGS PDF Search
Downloads the squadron's BGS briefing PDF and answers substring queries.
"""

import asyncio
import io
import re
from typing import Dict, List

from pypdf import PdfReader

import logger as log
from constants import PDF_MIN_CHUNK_CHARS
from tools.fetch import fetch


def pdf_to_paragraphs(data: bytes, min_length: int = PDF_MIN_CHUNK_CHARS) -> List[str]:
    """Extract text and split on blank lines, keeping substantial paragraphs."""
    reader = PdfReader(io.BytesIO(data))
    text = "\n\n".join((page.extract_text() or "") for page in reader.pages)
    text = text.replace("\r\n", "\n")
    paragraphs = (p.strip() for p in re.split(r'\n{2,}', text))
    return [p for p in paragraphs if len(p) >= min_length]


class PdfIndex:
    """In-memory paragraph index over one remote PDF."""

    def __init__(self, url: str):
        self.url = url
        self.chunks: List[str] = []
        self.loaded = False

    async def load(self):
        """Fetch and index the PDF once; failures leave the index empty."""
        if self.loaded:
            return
        if not self.url:
            log.warn("BGS_PDF_URL not configured.", "pdf")
            self.loaded = True
            return
        try:
            log.info(f"Fetching PDF from {self.url}", "pdf")
            data = await fetch("GET", self.url, raw=True)
            self.chunks = await asyncio.to_thread(pdf_to_paragraphs, data)
            log.ok(f"Loaded PDF, {len(self.chunks)} chunks", "pdf")
        except Exception as e:
            log.error(f"Error loading PDF: {e}", "pdf")
            self.chunks = []
        finally:
            self.loaded = True

    def query(self, query: str, limit: int = 5) -> List[Dict[str, str]]:
        """First `limit` chunks containing the query (case-insensitive)."""
        if not self.loaded:
            log.warn("query() called before load() completed", "pdf")
        if not query:
            return []
        needle = query.lower()
        results = []
        for chunk in self.chunks:
            if needle in chunk.lower():
                results.append({"text": chunk})
                if len(results) >= limit:
                    break
        return results
