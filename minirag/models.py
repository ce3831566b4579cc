from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel

from minirag.rag.embedding_provider import ResultStatus


class IngestResponse(BaseModel):
    status: Literal["success"] = "success"
    chunksCreated: int


class AskResponse(BaseModel):
    query: str
    answer: str
    contextUsed: int
    contextPreview: List[str]
    status: ResultStatus


class StatsResponse(BaseModel):
    documents: int
    # High-water mark of resident memory since start, never decreases.
    peakMemoryMb: int
