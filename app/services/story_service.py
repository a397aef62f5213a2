from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload
from datetime import datetime
from typing import List, Optional, Tuple
import logging

from ..models.user import User
from ..models.story import Story, StoryCategory, StoryComment, StoryLike, StoryTag
from ..core.config import settings
from ..core.exceptions import NotFoundError
from ..schemas.story import (
    StoryCreate, CommentCreate, AuthorView, CommentResponse,
    StorySummary, StoryDetail, LikeResult
)

logger = logging.getLogger(__name__)

SORT_OPTIONS = {
    "newest": (Story.created_at.desc(), Story.id.desc()),
    "oldest": (Story.created_at.asc(), Story.id.asc()),
    "popular": (Story.view_count.desc(), Story.created_at.desc(), Story.id.desc()),
    "most_liked": (Story.like_count.desc(), Story.created_at.desc(), Story.id.desc()),
}


def author_view(user: User, anonymous: bool) -> AuthorView:
    """Display identity for a post or comment; anonymous hides all but the role."""
    if anonymous:
        return AuthorView(
            id=None,
            name=settings.ANONYMOUS_DISPLAY_NAME,
            user_type=user.user_type,
        )
    return AuthorView(id=user.id, name=user.name, user_type=user.user_type)


def comment_view(comment: StoryComment) -> CommentResponse:
    return CommentResponse(
        id=comment.id,
        user=author_view(comment.user, comment.is_anonymous),
        content=comment.content,
        is_anonymous=comment.is_anonymous,
        created_at=comment.created_at,
    )


def story_summary(story: Story, anonymize: bool = True) -> StorySummary:
    hidden = anonymize and story.is_anonymous
    # The approver of an auto-approved story is its author
    approved_by = None
    if story.approved_by and not hidden:
        approved_by = story.approved_by.name

    return StorySummary(
        id=story.id,
        author=author_view(story.author, hidden),
        title=story.title,
        content=story.content,
        category=story.category,
        tags=story.tags,
        is_anonymous=story.is_anonymous,
        is_approved=story.is_approved,
        approved_by=approved_by,
        approved_at=story.approved_at,
        like_count=story.like_count,
        comment_count=story.comment_count,
        view_count=story.view_count,
        created_at=story.created_at,
        updated_at=story.updated_at,
    )


def story_detail(story: Story) -> StoryDetail:
    summary = story_summary(story)
    return StoryDetail(
        **summary.model_dump(),
        comments=[comment_view(comment) for comment in story.comments],
    )


class StoryService:
    def __init__(self, db: Session):
        self.db = db

    def _published(self):
        return self.db.query(Story).filter(
            Story.is_approved == True,
            Story.is_active == True,
        )

    def _get_published(self, story_id: int) -> Story:
        story = self._published().filter(Story.id == story_id).first()
        if not story:
            raise NotFoundError("Story not found")
        return story

    def create_story(self, author: User, data: StoryCreate) -> Story:
        """Create a story; professionals' posts skip moderation."""
        auto_approve = author.is_health_professional

        story = Story(
            author_id=author.id,
            title=data.title,
            content=data.content,
            category=data.category,
            is_anonymous=data.is_anonymous,
            is_approved=auto_approve,
            approved_by_id=author.id if auto_approve else None,
            approved_at=datetime.utcnow() if auto_approve else None,
            like_count=0,
            comment_count=0,
            view_count=0,
            is_active=True,
        )
        story.tag_links = [StoryTag(name=tag) for tag in data.tags]

        self.db.add(story)
        self.db.commit()
        self.db.refresh(story)

        logger.info(
            f"Story {story.id} created by user {author.id} "
            f"({'approved' if auto_approve else 'pending moderation'})"
        )
        return story

    def list_stories(
        self,
        category: Optional[StoryCategory] = None,
        tags: Optional[List[str]] = None,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "newest",
    ) -> Tuple[List[Story], int]:
        """Published stories matching the filters, without comments."""
        query = self._published()

        if category:
            query = query.filter(Story.category == category)

        if tags:
            tagged = select(StoryTag.story_id).where(StoryTag.name.in_(tags))
            query = query.filter(Story.id.in_(tagged))

        total = query.count()
        stories = (
            query.options(
                joinedload(Story.author),
                joinedload(Story.approved_by),
                selectinload(Story.tag_links),
            )
            .order_by(*SORT_OPTIONS[sort_by])
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return stories, total

    def get_story(self, story_id: int) -> Story:
        """Fetch a published story and count the view."""
        story = self._get_published(story_id)

        self._bump(story, Story.view_count, 1)
        self.db.commit()
        self.db.refresh(story)

        return story

    def _bump(self, story: Story, counter, delta: int) -> None:
        # Counters change in SQL, never from the loaded value
        query = self.db.query(Story).filter(Story.id == story.id)
        if delta < 0:
            query = query.filter(counter > 0)
        query.update({counter: counter + delta}, synchronize_session=False)

    def _find_like(self, story_id: int, user_id: int) -> Optional[StoryLike]:
        return self.db.query(StoryLike).filter(
            StoryLike.story_id == story_id,
            StoryLike.user_id == user_id,
        ).first()

    def toggle_like(self, story_id: int, user: User) -> LikeResult:
        """Like the story, or remove the caller's like if one exists."""
        story = self._get_published(story_id)

        existing = self._find_like(story.id, user.id)

        try:
            if existing:
                self.db.delete(existing)
                self._bump(story, Story.like_count, -1)
                liked = False
            else:
                self.db.add(StoryLike(story_id=story.id, user_id=user.id))
                self._bump(story, Story.like_count, 1)
                liked = True
            self.db.commit()
        except IntegrityError:
            # Another request recorded the same like first
            self.db.rollback()
            logger.info(f"Duplicate like on story {story.id} by user {user.id} ignored")
            liked = True

        self.db.refresh(story)

        return LikeResult(liked=liked, like_count=story.like_count)

    def add_comment(self, story_id: int, user: User, data: CommentCreate) -> StoryComment:
        story = self._get_published(story_id)

        comment = StoryComment(
            story_id=story.id,
            user_id=user.id,
            content=data.content,
            is_anonymous=data.is_anonymous,
        )
        self.db.add(comment)
        self._bump(story, Story.comment_count, 1)

        self.db.commit()
        self.db.refresh(comment)

        return comment

    def list_user_stories(
        self,
        user: User,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Story], int]:
        """The caller's own active stories, approved or not."""
        query = self.db.query(Story).filter(
            Story.author_id == user.id,
            Story.is_active == True,
        )

        total = query.count()
        stories = (
            query.options(
                joinedload(Story.author),
                joinedload(Story.approved_by),
                selectinload(Story.tag_links),
            )
            .order_by(Story.created_at.desc(), Story.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return stories, total
