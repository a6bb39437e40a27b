"""Article and project Pydantic schemas."""
from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ArticleCategory = Literal["programming", "cybersecurity", "news", "projects"]


class ArticleCreate(BaseModel):
    """Fields an administrator supplies for a new article.

    Lengths and URLs are checked by the service so that failures come back as
    localized messages rather than schema errors.
    """

    title: str
    description: str
    content: str
    card_image: str | None = None
    external_images: list[str] = Field(default_factory=list)
    category: ArticleCategory
    status: Literal["draft", "published"] = "draft"
    author_id: str = ""
    author_name: str = ""
    tags: list[str] = Field(default_factory=list)
    featured: bool = False


class ArticleUpdate(BaseModel):
    """Partial update; only explicitly set fields are applied."""

    title: str | None = None
    description: str | None = None
    content: str | None = None
    card_image: str | None = None
    external_images: list[str] | None = None
    category: ArticleCategory | None = None
    status: Literal["draft", "published"] | None = None
    tags: list[str] | None = None
    featured: bool | None = None


class ArticleOut(BaseModel):
    id: int
    title: str
    description: str
    content: str
    card_image: str | None = None
    external_images: list[str]
    category: str
    status: str
    author_id: str
    author_name: str
    views: int
    likes: int
    tags: list[str]
    featured: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None
    published_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class ProjectCreate(BaseModel):
    name: str
    description: str
    link: str
    image: str
    category: str = ""
    status: Literal["active", "inactive"] = "active"
    technologies: list[str] = Field(default_factory=list)
    featured: bool = False


class ProjectUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    link: str | None = None
    image: str | None = None
    category: str | None = None
    status: Literal["active", "inactive"] | None = None
    technologies: list[str] | None = None
    featured: bool | None = None


class ProjectOut(BaseModel):
    id: int
    name: str
    description: str
    link: str
    image: str
    category: str
    status: str
    technologies: list[str]
    featured: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class LikeRequest(BaseModel):
    increment: bool = True


class AccessTokenOut(BaseModel):
    token: str
