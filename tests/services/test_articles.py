# tests/services/test_articles.py
"""Tests for article and project management."""

from __future__ import annotations

from typing import Any

import pytest
from sqlalchemy.orm import Session

from deepbug.core import messages
from deepbug.schemas.article import ArticleCreate, ArticleUpdate, ProjectCreate, ProjectUpdate
from deepbug.services.articles import ArticleService, ProjectService

LONG_CONTENT = "Buffer overflows remain one of the oldest classes of memory bugs. " * 2


def _article(**overrides: Any) -> ArticleCreate:
    data: dict[str, Any] = {
        "title": "Intro to fuzzing",
        "description": "How coverage-guided fuzzers find bugs",
        "content": LONG_CONTENT,
        "category": "cybersecurity",
        "author_id": "1",
        "author_name": "Admin",
    }
    data.update(overrides)
    return ArticleCreate(**data)


def _project(**overrides: Any) -> ProjectCreate:
    data: dict[str, Any] = {
        "name": "DeepScan",
        "description": "A static analyzer for Python web apps",
        "link": "https://github.com/deepbug/deepscan",
        "image": "https://deepbug.com/deepscan.png",
        "technologies": ["python", "ast"],
    }
    data.update(overrides)
    return ProjectCreate(**data)


@pytest.fixture()
def articles(db_session: Session, clock: Any) -> ArticleService:
    return ArticleService(db_session, clock=clock)


@pytest.fixture()
def projects(db_session: Session, clock: Any) -> ProjectService:
    return ProjectService(db_session, clock=clock)


# --- Articles -------------------------------------------------------------------------


def test_create_article_sanitizes_and_zeroes_counters(articles: ArticleService) -> None:
    result = articles.create_article(
        _article(content="<script>steal()</script><p>" + LONG_CONTENT + "</p>")
    )

    assert result.success is True
    assert result.message == messages.ARTICLE_CREATED
    article = articles.get_article(result.id)
    assert article is not None
    assert article.content == "<p>" + LONG_CONTENT + "</p>"
    assert article.views == 0
    assert article.likes == 0
    assert article.published_at is None


@pytest.mark.parametrize(
    "overrides, expected",
    [
        ({"title": "Hey"}, messages.ARTICLE_TITLE_INVALID),
        ({"title": "x" * 201}, messages.ARTICLE_TITLE_INVALID),
        ({"description": "short"}, messages.ARTICLE_DESCRIPTION_INVALID),
        ({"content": "too short"}, messages.ARTICLE_CONTENT_INVALID),
        ({"external_images": ["javascript:alert(1)"]}, messages.IMAGE_URL_INVALID),
        ({"card_image": "not a url"}, messages.CARD_IMAGE_URL_INVALID),
    ],
)
def test_create_article_validation(articles: ArticleService, overrides: dict[str, Any], expected: str) -> None:
    result = articles.create_article(_article(**overrides))

    assert result.success is False
    assert result.message == expected
    assert result.id is None


def test_published_article_gets_publication_time(articles: ArticleService) -> None:
    result = articles.create_article(_article(status="published"))

    article = articles.get_article(result.id)
    assert article is not None
    assert article.published_at is not None


def test_update_publishes_once(articles: ArticleService, clock: Any) -> None:
    article_id = articles.create_article(_article()).id

    assert articles.update_article(article_id, ArticleUpdate(status="published")).success is True
    article = articles.get_article(article_id)
    first_published = article.published_at

    clock.advance(3600)
    articles.update_article(article_id, ArticleUpdate(title="Intro to fuzzing, revised"))
    articles.update_article(article_id, ArticleUpdate(status="published"))
    assert article.published_at == first_published
    assert article.title == "Intro to fuzzing, revised"


def test_update_validates_changed_fields_only(articles: ArticleService) -> None:
    article_id = articles.create_article(_article()).id

    result = articles.update_article(article_id, ArticleUpdate(description="short"))
    assert result.message == messages.ARTICLE_DESCRIPTION_INVALID
    assert articles.update_article(article_id, ArticleUpdate(featured=True)).success is True


def test_update_missing_article(articles: ArticleService) -> None:
    result = articles.update_article(404, ArticleUpdate(title="Does not matter"))

    assert result.success is False
    assert result.message == messages.ARTICLE_NOT_FOUND


def test_delete_article(articles: ArticleService) -> None:
    article_id = articles.create_article(_article()).id

    assert articles.delete_article(article_id).success is True
    assert articles.get_article(article_id) is None
    assert articles.delete_article(article_id).message == messages.ARTICLE_NOT_FOUND


def test_listings_only_show_published(articles: ArticleService, clock: Any) -> None:
    draft_id = articles.create_article(_article(title="Draft article")).id
    clock.advance(10)
    old_id = articles.create_article(_article(title="Older article", status="published")).id
    clock.advance(10)
    new_id = articles.create_article(
        _article(title="Newer article", status="published", featured=True, category="news")
    ).id

    assert [a.id for a in articles.get_published_articles()] == [new_id, old_id]
    assert [a.id for a in articles.get_featured_articles()] == [new_id]
    assert [a.id for a in articles.get_articles_by_category("news")] == [new_id]
    assert draft_id not in [a.id for a in articles.get_articles_by_category("cybersecurity")]
    assert len(articles.get_published_articles(limit=1)) == 1


def test_views_and_likes(articles: ArticleService, db_session: Session) -> None:
    article_id = articles.create_article(_article()).id

    articles.increment_views(article_id)
    articles.increment_views(article_id)
    db_session.expire_all()
    assert articles.get_article(article_id).views == 2

    assert articles.toggle_like(article_id) == 1
    assert articles.toggle_like(article_id, increment=False) == 0
    assert articles.toggle_like(article_id, increment=False) == 0
    assert articles.toggle_like(999) is None


# --- Projects -------------------------------------------------------------------------


def test_create_project(projects: ProjectService) -> None:
    result = projects.create_project(_project(name="<b>DeepScan</b>"))

    assert result.success is True
    project = projects.get_project(result.id)
    assert project is not None
    assert project.name == "<b>DeepScan</b>"
    assert project.technologies == ["python", "ast"]


@pytest.mark.parametrize(
    "overrides, expected",
    [
        ({"name": "ab"}, messages.PROJECT_NAME_INVALID),
        ({"name": "x" * 101}, messages.PROJECT_NAME_INVALID),
        ({"description": "tiny"}, messages.PROJECT_DESCRIPTION_INVALID),
        ({"link": "github.com/deepbug"}, messages.PROJECT_LINK_INVALID),
        ({"image": "data:image/png;base64,AAAA"}, messages.PROJECT_IMAGE_INVALID),
    ],
)
def test_create_project_validation(projects: ProjectService, overrides: dict[str, Any], expected: str) -> None:
    result = projects.create_project(_project(**overrides))

    assert result.success is False
    assert result.message == expected


def test_update_and_delete_project(projects: ProjectService) -> None:
    project_id = projects.create_project(_project()).id

    assert projects.update_project(project_id, ProjectUpdate(status="inactive")).success is True
    assert projects.get_project(project_id).status == "inactive"
    assert projects.update_project(project_id, ProjectUpdate(link="nope")).message == messages.PROJECT_LINK_INVALID

    assert projects.delete_project(project_id).success is True
    assert projects.delete_project(project_id).message == messages.PROJECT_NOT_FOUND
    assert projects.update_project(project_id, ProjectUpdate(name="Renamed")).message == messages.PROJECT_NOT_FOUND


def test_featured_projects_are_active_and_featured(projects: ProjectService) -> None:
    plain = projects.create_project(_project(name="Plain project")).id
    featured = projects.create_project(_project(name="Featured project", featured=True)).id
    projects.create_project(_project(name="Retired project", featured=True, status="inactive"))

    assert [p.id for p in projects.get_featured_projects()] == [featured]
    assert [p.id for p in projects.get_projects()][-1] == plain
