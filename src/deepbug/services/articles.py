"""Articles and portfolio projects managed by administrators."""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from deepbug.core import messages
from deepbug.core.errors import DeepBugError, NotFound, ValidationFailure
from deepbug.core.security import sanitize_html, validate_url
from deepbug.db.time import Clock, from_timestamp
from deepbug.models import Article, Project
from deepbug.models.article import ARTICLE_STATUS_PUBLISHED, PROJECT_STATUS_ACTIVE
from deepbug.schemas.article import ArticleCreate, ArticleUpdate, ProjectCreate, ProjectUpdate
from deepbug.schemas.common import ActionResult, CreatedResult

logger = logging.getLogger(__name__)

MIN_TITLE_LENGTH = 5
MAX_TITLE_LENGTH = 200
MIN_DESCRIPTION_LENGTH = 10
MIN_CONTENT_LENGTH = 50
MIN_PROJECT_NAME_LENGTH = 3
MAX_PROJECT_NAME_LENGTH = 100


def _check_article_fields(
    *,
    title: str | None = None,
    description: str | None = None,
    content: str | None = None,
    card_image: str | None = None,
    external_images: Sequence[str] | None = None,
) -> None:
    """Raise ``ValidationFailure`` for the first field that is present and invalid."""
    if title is not None and not MIN_TITLE_LENGTH <= len(title.strip()) <= MAX_TITLE_LENGTH:
        raise ValidationFailure(messages.ARTICLE_TITLE_INVALID)
    if description is not None and len(description.strip()) < MIN_DESCRIPTION_LENGTH:
        raise ValidationFailure(messages.ARTICLE_DESCRIPTION_INVALID)
    if content is not None and len(content.strip()) < MIN_CONTENT_LENGTH:
        raise ValidationFailure(messages.ARTICLE_CONTENT_INVALID)
    for url in external_images or ():
        if not validate_url(url):
            raise ValidationFailure(messages.IMAGE_URL_INVALID)
    if card_image and not validate_url(card_image):
        raise ValidationFailure(messages.CARD_IMAGE_URL_INVALID)


def _check_project_fields(
    *,
    name: str | None = None,
    description: str | None = None,
    link: str | None = None,
    image: str | None = None,
) -> None:
    if name is not None and not (
        MIN_PROJECT_NAME_LENGTH <= len(name.strip()) <= MAX_PROJECT_NAME_LENGTH
    ):
        raise ValidationFailure(messages.PROJECT_NAME_INVALID)
    if description is not None and len(description.strip()) < MIN_DESCRIPTION_LENGTH:
        raise ValidationFailure(messages.PROJECT_DESCRIPTION_INVALID)
    if link is not None and not validate_url(link):
        raise ValidationFailure(messages.PROJECT_LINK_INVALID)
    if image is not None and not validate_url(image):
        raise ValidationFailure(messages.PROJECT_IMAGE_INVALID)


class ArticleService:
    """Create, edit and query articles."""

    def __init__(self, db: Session, *, clock: Clock = time.time) -> None:
        self.db = db
        self._clock = clock

    def create_article(self, data: ArticleCreate) -> CreatedResult:
        try:
            _check_article_fields(
                title=data.title,
                description=data.description,
                content=data.content,
                card_image=data.card_image,
                external_images=data.external_images,
            )
            article = Article(
                **data.model_dump(exclude={"title", "description", "content"}),
                title=sanitize_html(data.title),
                description=sanitize_html(data.description),
                content=sanitize_html(data.content),
                views=0,
                likes=0,
            )
            if data.status == ARTICLE_STATUS_PUBLISHED:
                article.published_at = from_timestamp(self._clock())
            self.db.add(article)
            self.db.commit()
            self.db.refresh(article)
        except DeepBugError as exc:
            return CreatedResult(success=False, message=exc.message)
        except SQLAlchemyError:
            logger.error("Error creating article", exc_info=True)
            self.db.rollback()
            return CreatedResult(success=False, message=messages.ARTICLE_CREATE_FAILED)

        logger.info("Article %s created", article.id)
        return CreatedResult(success=True, message=messages.ARTICLE_CREATED, id=article.id)

    def update_article(self, article_id: int, changes: ArticleUpdate) -> ActionResult:
        """Apply the explicitly set fields of ``changes``."""
        update_dict = changes.model_dump(exclude_unset=True)
        try:
            article = self.db.get(Article, article_id)
            if article is None:
                raise NotFound(messages.ARTICLE_NOT_FOUND)
            _check_article_fields(
                title=update_dict.get("title"),
                description=update_dict.get("description"),
                content=update_dict.get("content"),
                card_image=update_dict.get("card_image"),
                external_images=update_dict.get("external_images"),
            )

            for key in ("title", "description", "content"):
                if update_dict.get(key) is not None:
                    update_dict[key] = sanitize_html(update_dict[key])
            if (
                update_dict.get("status") == ARTICLE_STATUS_PUBLISHED
                and article.published_at is None
            ):
                article.published_at = from_timestamp(self._clock())
            for key, value in update_dict.items():
                if value is not None:
                    setattr(article, key, value)
            article.updated_at = from_timestamp(self._clock())
            self.db.commit()
        except DeepBugError as exc:
            return ActionResult.fail(exc.message)
        except SQLAlchemyError:
            logger.error("Error updating article %s", article_id, exc_info=True)
            self.db.rollback()
            return ActionResult.fail(messages.ARTICLE_UPDATE_FAILED)

        return ActionResult.ok(messages.ARTICLE_UPDATED)

    def delete_article(self, article_id: int) -> ActionResult:
        try:
            article = self.db.get(Article, article_id)
            if article is None:
                return ActionResult.fail(messages.ARTICLE_NOT_FOUND)
            self.db.delete(article)
            self.db.commit()
        except SQLAlchemyError:
            logger.error("Error deleting article %s", article_id, exc_info=True)
            self.db.rollback()
            return ActionResult.fail(messages.ARTICLE_DELETE_FAILED)

        logger.info("Article %s deleted", article_id)
        return ActionResult.ok(messages.ARTICLE_DELETED)

    def get_article(self, article_id: int) -> Article | None:
        return self.db.get(Article, article_id)

    def _published(self, limit: int, *filters: object) -> list[Article]:
        stmt = (
            select(Article)
            .where(Article.status == ARTICLE_STATUS_PUBLISHED, *filters)
            .order_by(Article.published_at.desc(), Article.id.desc())
            .limit(limit)
        )
        try:
            return list(self.db.scalars(stmt))
        except SQLAlchemyError:
            logger.warning("Error listing articles", exc_info=True)
            self.db.rollback()
            return []

    def get_articles_by_category(self, category: str, limit: int = 10) -> list[Article]:
        return self._published(limit, Article.category == category)

    def get_published_articles(self, limit: int = 20) -> list[Article]:
        return self._published(limit)

    def get_featured_articles(self, limit: int = 5) -> list[Article]:
        return self._published(limit, Article.featured.is_(True))

    def increment_views(self, article_id: int) -> None:
        try:
            self.db.execute(
                update(Article)
                .where(Article.id == article_id)
                .values(views=Article.views + 1)
            )
            self.db.commit()
        except SQLAlchemyError:
            logger.warning("Error counting view for article %s", article_id, exc_info=True)
            self.db.rollback()

    def toggle_like(self, article_id: int, increment: bool = True) -> int | None:
        """Add or remove one like; the count never drops below zero.

        Returns the new count, or None when the article does not exist.
        """
        try:
            article = self.db.get(Article, article_id, with_for_update=True)
            if article is None:
                return None
            article.likes = article.likes + 1 if increment else max(0, article.likes - 1)
            self.db.commit()
        except SQLAlchemyError:
            logger.warning("Error toggling like on article %s", article_id, exc_info=True)
            self.db.rollback()
            return None
        return article.likes


class ProjectService:
    """Create, edit and query showcased projects."""

    def __init__(self, db: Session, *, clock: Clock = time.time) -> None:
        self.db = db
        self._clock = clock

    def create_project(self, data: ProjectCreate) -> CreatedResult:
        try:
            _check_project_fields(
                name=data.name,
                description=data.description,
                link=data.link,
                image=data.image,
            )
            project = Project(
                **data.model_dump(exclude={"name", "description"}),
                name=sanitize_html(data.name),
                description=sanitize_html(data.description),
            )
            self.db.add(project)
            self.db.commit()
            self.db.refresh(project)
        except DeepBugError as exc:
            return CreatedResult(success=False, message=exc.message)
        except SQLAlchemyError:
            logger.error("Error creating project", exc_info=True)
            self.db.rollback()
            return CreatedResult(success=False, message=messages.PROJECT_CREATE_FAILED)

        logger.info("Project %s created", project.id)
        return CreatedResult(success=True, message=messages.PROJECT_CREATED, id=project.id)

    def update_project(self, project_id: int, changes: ProjectUpdate) -> ActionResult:
        update_dict = changes.model_dump(exclude_unset=True)
        try:
            project = self.db.get(Project, project_id)
            if project is None:
                raise NotFound(messages.PROJECT_NOT_FOUND)
            _check_project_fields(
                name=update_dict.get("name"),
                description=update_dict.get("description"),
                link=update_dict.get("link"),
                image=update_dict.get("image"),
            )

            for key in ("name", "description"):
                if update_dict.get(key) is not None:
                    update_dict[key] = sanitize_html(update_dict[key])
            for key, value in update_dict.items():
                if value is not None:
                    setattr(project, key, value)
            project.updated_at = from_timestamp(self._clock())
            self.db.commit()
        except DeepBugError as exc:
            return ActionResult.fail(exc.message)
        except SQLAlchemyError:
            logger.error("Error updating project %s", project_id, exc_info=True)
            self.db.rollback()
            return ActionResult.fail(messages.PROJECT_UPDATE_FAILED)

        return ActionResult.ok(messages.PROJECT_UPDATED)

    def delete_project(self, project_id: int) -> ActionResult:
        try:
            project = self.db.get(Project, project_id)
            if project is None:
                return ActionResult.fail(messages.PROJECT_NOT_FOUND)
            self.db.delete(project)
            self.db.commit()
        except SQLAlchemyError:
            logger.error("Error deleting project %s", project_id, exc_info=True)
            self.db.rollback()
            return ActionResult.fail(messages.PROJECT_DELETE_FAILED)

        logger.info("Project %s deleted", project_id)
        return ActionResult.ok(messages.PROJECT_DELETED)

    def get_project(self, project_id: int) -> Project | None:
        return self.db.get(Project, project_id)

    def _newest(self, limit: int, *filters: object) -> list[Project]:
        stmt = (
            select(Project)
            .where(*filters)
            .order_by(Project.created_at.desc(), Project.id.desc())
            .limit(limit)
        )
        try:
            return list(self.db.scalars(stmt))
        except SQLAlchemyError:
            logger.warning("Error listing projects", exc_info=True)
            self.db.rollback()
            return []

    def get_projects(self, limit: int = 20) -> list[Project]:
        return self._newest(limit)

    def get_featured_projects(self, limit: int = 6) -> list[Project]:
        return self._newest(
            limit,
            Project.featured.is_(True),
            Project.status == PROJECT_STATUS_ACTIVE,
        )
