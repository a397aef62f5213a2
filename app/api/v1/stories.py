from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Literal, Optional

from ...core.config import settings
from ...core.database import get_db
from ...api.deps import get_current_user
from ...services.story_service import (
    StoryService, story_summary, story_detail, comment_view
)
from ...schemas.common import APIResponse, Pagination
from ...schemas.story import (
    StoryCreate, CommentCreate, CommentResponse, StorySummary,
    StoryDetail, StoryList, LikeResult
)
from ...models.story import StoryCategory
from ...models.user import User

router = APIRouter(prefix="/stories", tags=["Stories"])

SortBy = Literal["newest", "oldest", "popular", "most_liked"]

@router.post(
    "",
    response_model=APIResponse[StorySummary],
    status_code=status.HTTP_201_CREATED
)
def create_story(
    story_data: StoryCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Share a story or piece of advice."""
    service = StoryService(db)
    story = service.create_story(current_user, story_data)

    message = (
        "Story published successfully" if story.is_approved
        else "Story submitted for review"
    )
    return APIResponse(message=message, data=story_summary(story))

@router.get("", response_model=APIResponse[StoryList])
def list_stories(
    category: Optional[StoryCategory] = Query(None),
    tags: Optional[str] = Query(None, description="Comma-separated tag list"),
    page: int = Query(1, ge=1, le=settings.MAX_PAGE),
    limit: int = Query(10, ge=1, le=20),
    sort_by: SortBy = Query("newest", alias="sortBy"),
    db: Session = Depends(get_db)
):
    """Published stories with filtering and pagination."""
    tag_list = None
    if tags:
        tag_list = [t.strip().lower() for t in tags.split(",") if t.strip()]

    service = StoryService(db)
    stories, total = service.list_stories(
        category=category, tags=tag_list, page=page, limit=limit, sort_by=sort_by
    )

    return APIResponse(
        data=StoryList(
            stories=[story_summary(s) for s in stories],
            pagination=Pagination.build(page, limit, total),
        )
    )

# Declared before /{story_id} so "my" is not parsed as an id
@router.get("/my/posts", response_model=APIResponse[StoryList])
def list_my_stories(
    page: int = Query(1, ge=1, le=settings.MAX_PAGE),
    limit: int = Query(10, ge=1, le=20),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """The caller's own stories, including those awaiting review."""
    service = StoryService(db)
    stories, total = service.list_user_stories(current_user, page=page, limit=limit)

    return APIResponse(
        data=StoryList(
            stories=[story_summary(s, anonymize=False) for s in stories],
            pagination=Pagination.build(page, limit, total),
        )
    )

@router.get("/{story_id}", response_model=APIResponse[StoryDetail])
def get_story(
    story_id: int,
    db: Session = Depends(get_db)
):
    """Single story with its comments; counts a view."""
    service = StoryService(db)
    story = service.get_story(story_id)

    return APIResponse(data=story_detail(story))

@router.post("/{story_id}/like", response_model=APIResponse[LikeResult])
def toggle_like(
    story_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Like a story, or unlike it if already liked."""
    service = StoryService(db)
    result = service.toggle_like(story_id, current_user)

    return APIResponse(data=result)

@router.post(
    "/{story_id}/comments",
    response_model=APIResponse[CommentResponse],
    status_code=status.HTTP_201_CREATED
)
def add_comment(
    story_id: int,
    comment_data: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Comment on a published story."""
    service = StoryService(db)
    comment = service.add_comment(story_id, current_user, comment_data)

    return APIResponse(message="Comment added successfully", data=comment_view(comment))
