"""Provenance tags and context assembly.

Every fact shown to a customer must be traceable to a
``(product_id, source_type, source_id)`` tuple. The tag format is fixed::

    [Product: <product_id>, Source: <source_type>, ID: <source_id>]

The ``, ID: ...`` segment is left out only for records stored without a
source id.
"""

import re
from collections.abc import Iterable

from .models import ProvenanceItem, RetrievedDocument

CITATION_PATTERN = re.compile(
    r"\[Product: (?P<product_id>[^,\]]+), Source: (?P<source_type>[^,\]]+)"
    r"(?:, ID: (?P<source_id>[^,\]]+))?(?:, Similarity: [0-9.]+)?\]"
)


def format_citation(doc: RetrievedDocument | ProvenanceItem) -> str:
    tag = f"[Product: {doc.product_id}, Source: {doc.source_type}"
    if doc.source_id:
        tag += f", ID: {doc.source_id}"
    return tag + "]"


def build_context_text(
    docs: Iterable[RetrievedDocument], *, with_scores: bool = False
) -> str:
    """Concatenate snippets, each preceded by its provenance tag.

    Returns:
        Blocks of ``<tag>\\n<snippet>`` joined by blank lines.
    """
    blocks = []
    for doc in docs:
        tag = format_citation(doc)
        if with_scores:
            tag = f"{tag[:-1]}, Similarity: {doc.similarity:.3f}]"
        blocks.append(f"{tag}\n{doc.text_snippet}")
    return "\n\n".join(blocks)


def provenance_items(docs: Iterable[RetrievedDocument]) -> list[ProvenanceItem]:
    return [
        ProvenanceItem(
            product_id=doc.product_id,
            source_type=doc.source_type,
            source_id=doc.source_id,
            similarity=doc.similarity,
        )
        for doc in docs
    ]


def extract_citations(text: str) -> list[tuple[str, str, str | None]]:
    """Find provenance tags in generated text.

    Returns:
        ``(product_id, source_type, source_id)`` tuples in order of appearance.
    """
    return [
        (
            match.group("product_id").strip(),
            match.group("source_type").strip(),
            match.group("source_id").strip() if match.group("source_id") else None,
        )
        for match in CITATION_PATTERN.finditer(text)
    ]


def citation_footer(answer: str, docs: list[RetrievedDocument]) -> str:
    """Sources line to append when the answer cites none of the retrieved docs.

    Returns:
        An empty string if the answer already cites a retrieved document,
        otherwise ``"\\n\\nSources: <tag> <tag> ..."`` with duplicates removed.
    """
    known = {(doc.product_id, doc.source_type) for doc in docs}
    cited = {
        (product_id, source_type)
        for product_id, source_type, _ in extract_citations(answer)
    }
    if not docs or known & cited:
        return ""
    tags = list(dict.fromkeys(format_citation(doc) for doc in docs))
    return "\n\nSources: " + " ".join(tags)


def ensure_citations(answer: str, docs: list[RetrievedDocument]) -> str:
    return answer + citation_footer(answer, docs)
