from typing import List, Optional
from pydantic import BaseModel, Field


class SearchHit(BaseModel):
    """Single ranked result from the web search provider."""
    title: Optional[str] = None
    url: Optional[str] = None
    content: Optional[str] = None
    raw_content: Optional[str] = None
    score: Optional[float] = None
    published_date: Optional[str] = None
    source: Optional[str] = None


class SearchImage(BaseModel):
    url: str
    description: Optional[str] = None


class SearchResponse(BaseModel):
    """
    Normalized provider response.
    """
    query: str = ""
    results: List[SearchHit] = Field(default_factory=list)
    answer: Optional[str] = None
    images: List[SearchImage] = Field(default_factory=list)
    response_time: Optional[float] = None
