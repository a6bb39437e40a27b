"""Article endpoints: public reads, administrator writes."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Header, HTTPException, Query, Response, status

from deepbug.api.v1.dependencies import (
    CurrentAdminDep,
    SessionDep,
    require_access_token,
    respond,
)
from deepbug.core import messages
from deepbug.models import Article
from deepbug.schemas.article import (
    AccessTokenOut,
    ArticleCategory,
    ArticleCreate,
    ArticleOut,
    ArticleUpdate,
    LikeRequest,
)
from deepbug.schemas.common import ActionResult, CreatedResult
from deepbug.services.articles import ArticleService
from deepbug.services.tokens import generate_access_token

router = APIRouter(prefix="/articles", tags=["articles"])


def article_resource(article_id: int) -> str:
    return f"article_{article_id}"


def _get_or_404(service: ArticleService, article_id: int) -> Article:
    article = service.get_article(article_id)
    if article is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=messages.ARTICLE_NOT_FOUND,
        )
    return article


@router.get("", response_model=list[ArticleOut])
async def list_published_articles(
    db: SessionDep,
    limit: int = Query(20, ge=1, le=100),
) -> list[Article]:
    return ArticleService(db).get_published_articles(limit)


@router.get("/featured", response_model=list[ArticleOut])
async def list_featured_articles(
    db: SessionDep,
    limit: int = Query(5, ge=1, le=50),
) -> list[Article]:
    return ArticleService(db).get_featured_articles(limit)


@router.get("/category/{category}", response_model=list[ArticleOut])
async def list_articles_by_category(
    category: ArticleCategory,
    db: SessionDep,
    limit: int = Query(10, ge=1, le=100),
) -> list[Article]:
    return ArticleService(db).get_articles_by_category(category, limit)


@router.get("/{article_id}", response_model=ArticleOut)
async def get_article(article_id: int, db: SessionDep) -> Article:
    return _get_or_404(ArticleService(db), article_id)


@router.post("/{article_id}/views", status_code=status.HTTP_204_NO_CONTENT)
async def record_view(article_id: int, db: SessionDep) -> None:
    service = ArticleService(db)
    _get_or_404(service, article_id)
    service.increment_views(article_id)


@router.post("/{article_id}/like")
async def toggle_like(article_id: int, payload: LikeRequest, db: SessionDep) -> dict[str, int]:
    likes = ArticleService(db).toggle_like(article_id, payload.increment)
    if likes is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=messages.ARTICLE_NOT_FOUND,
        )
    return {"likes": likes}


@router.post("", response_model=CreatedResult)
async def create_article(
    payload: ArticleCreate,
    admin: CurrentAdminDep,
    db: SessionDep,
    response: Response,
) -> CreatedResult:
    """Create an article; authorship defaults to the signed-in administrator."""
    data = payload.model_copy(
        update={
            "author_id": payload.author_id or admin.id,
            "author_name": payload.author_name or admin.name,
        }
    )
    result = ArticleService(db).create_article(data)
    if result.success:
        response.status_code = status.HTTP_201_CREATED
    return respond(result, response)


@router.post("/{article_id}/access-token", response_model=AccessTokenOut)
async def issue_access_token(
    article_id: int,
    admin: CurrentAdminDep,
    db: SessionDep,
) -> AccessTokenOut:
    """Issue a token binding this administrator to edits of one article."""
    _get_or_404(ArticleService(db), article_id)
    return AccessTokenOut(token=generate_access_token(admin.id, article_resource(article_id)))


@router.put("/{article_id}", response_model=ActionResult)
async def update_article(
    article_id: int,
    payload: ArticleUpdate,
    admin: CurrentAdminDep,
    db: SessionDep,
    response: Response,
    x_access_token: Annotated[str | None, Header()] = None,
) -> ActionResult:
    require_access_token(admin, article_resource(article_id), x_access_token)
    return respond(ArticleService(db).update_article(article_id, payload), response)


@router.delete("/{article_id}", response_model=ActionResult)
async def delete_article(
    article_id: int,
    admin: CurrentAdminDep,
    db: SessionDep,
    response: Response,
    x_access_token: Annotated[str | None, Header()] = None,
) -> ActionResult:
    require_access_token(admin, article_resource(article_id), x_access_token)
    return respond(ArticleService(db).delete_article(article_id), response)
