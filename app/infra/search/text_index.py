# app/infra/search/text_index.py
from __future__ import annotations

import logging
from typing import Dict, Iterable, List

from app.domain.models import ProductRecord
from app.domain.ports import TextIndexPort

log = logging.getLogger("puphax.index")

MIN_TOKEN_LEN = 3


def index_keys(text: str) -> List[str]:
    """Lower-cased words of 3+ chars plus the whole lower-cased string."""
    normalized = (text or "").lower()
    if not normalized.strip():
        return []
    keys = [w for w in normalized.split() if len(w) >= MIN_TOKEN_LEN]
    keys.append(normalized)
    return keys


class InvertedTextIndex(TextIndexPort):
    """
    key -> records, over product name and active ingredient text.

    Lookup is substring-of-key, so "aspi" reaches the "aspirin" key and a full
    multi-word term reaches the full-string key. Built once at startup; the
    key dict is never touched again, so concurrent readers need no lock.
    """

    def __init__(self, postings: Dict[str, List[ProductRecord]]):
        self._postings = postings

    @classmethod
    def build(cls, records: Iterable[ProductRecord]) -> "InvertedTextIndex":
        postings: Dict[str, List[ProductRecord]] = {}
        for rec in records:
            for source in (rec.name, rec.active_ingredient_text):
                for key in index_keys(source):
                    postings.setdefault(key, []).append(rec)
        log.debug("text index built with %d keys", len(postings))
        return cls(postings)

    def key_count(self) -> int:
        return len(self._postings)

    def lookup(self, term: str) -> List[ProductRecord]:
        """Union of every key containing the term; each record object once, in index order."""
        q = (term or "").strip().lower()
        if not q:
            return []
        seen = set()
        out: List[ProductRecord] = []
        for key, recs in self._postings.items():
            if q not in key:
                continue
            for rec in recs:
                if id(rec) in seen:
                    continue
                seen.add(id(rec))
                out.append(rec)
        return out
