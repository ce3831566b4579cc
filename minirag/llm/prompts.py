"""
Prompt construction and response validation for grounded answers.

The system message carries the answering rules and the numbered context
block; the user message carries the question verbatim.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from minirag.llm.client import Message
from minirag.text import truncate

SYSTEM_PROMPT = """\
You are an assistant specialised in document analysis. Your answers must:
- Rely exclusively on the context provided
- Be concise (at most 3 sentences)
- Include references like [1] where applicable
- State clearly when there is not enough information

Available context:
{context}
"""

INSUFFICIENT_INFORMATION = "There is not enough information in the documents to answer this question."

_NO_INFORMATION = re.compile(
    r"\b(not enough information|insufficient information|no information|"
    r"i (do not|don't) (have|know))\b",
    re.IGNORECASE,
)


def format_context(chunks: Sequence[str], display_chars: int = 200) -> str:
    """Render chunks as ``Fragment [n]: ...`` lines, numbered from 1."""
    return "\n".join(
        f"Fragment [{i}]: {truncate(chunk, display_chars, omission='')}"
        for i, chunk in enumerate(chunks, start=1)
    )


def build_messages(question: str, chunks: Sequence[str], display_chars: int = 200) -> list[Message]:
    """System message with rules and context, followed by the user question."""
    return [
        {"role": "system", "content": SYSTEM_PROMPT.format(context=format_context(chunks, display_chars))},
        {"role": "user", "content": question},
    ]


def validate_response(response: str | None) -> str:
    """
    Normalize a completion into the answer shown to the caller.

    Empty completions and refusals for lack of context collapse to the
    canned INSUFFICIENT_INFORMATION answer.
    """
    if response is None or not response.strip():
        return INSUFFICIENT_INFORMATION
    if _NO_INFORMATION.search(response):
        return INSUFFICIENT_INFORMATION
    return response.strip()
