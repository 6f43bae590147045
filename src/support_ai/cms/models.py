"""
CMS Content Models

Read-only views of the article entries served by the CMS delivery API.
Only the fields the relevance engine and the indexer use are modeled;
everything else the CMS returns is ignored.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, ConfigDict


class CategoryRef(BaseModel):
    """
    A category reference. Unresolved references carry only `uid`.
    """
    uid: str
    title: Optional[str] = None
    slug: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class Article(BaseModel):
    uid: str = Field(..., min_length=1)
    title: str = ""
    slug: str = ""
    excerpt: Optional[str] = ""
    content: Optional[str] = ""
    category: List[CategoryRef] = Field(default_factory=list)
    article_tags: List[str] = Field(default_factory=list)
    featured: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    model_config = ConfigDict(extra="ignore")

    @property
    def category_name(self) -> str:
        """Title of the first resolved category, or an empty string."""
        if self.category and self.category[0].title:
            return self.category[0].title
        return ""


class ArticlePage(BaseModel):
    """
    One page of `list_documents`. Entries that failed validation are kept
    out of `articles` and described in `rejected` as "uid: reason".
    """
    articles: List[Article] = Field(default_factory=list)
    total: int = 0
    rejected: List[str] = Field(default_factory=list)
