from pydantic import field_validator
from datetime import datetime
from typing import List, Optional

from .common import CamelModel, Pagination
from ..core.security import UserRole
from ..models.story import StoryCategory

MAX_TAGS = 10
MAX_TAG_LENGTH = 20


class StoryCreate(CamelModel):
    title: str
    content: str
    category: StoryCategory
    tags: List[str] = []
    is_anonymous: bool = False

    @field_validator("title")
    @classmethod
    def check_title(cls, value: str) -> str:
        value = value.strip()
        if not 5 <= len(value) <= 100:
            raise ValueError("Title must be between 5 and 100 characters")
        return value

    @field_validator("content")
    @classmethod
    def check_content(cls, value: str) -> str:
        value = value.strip()
        if not 50 <= len(value) <= 5000:
            raise ValueError("Content must be between 50 and 5000 characters")
        return value

    @field_validator("tags")
    @classmethod
    def check_tags(cls, value: List[str]) -> List[str]:
        if len(value) > MAX_TAGS:
            raise ValueError(f"Tags must be an array with maximum {MAX_TAGS} items")
        tags = []
        for tag in value:
            tag = tag.strip().lower()
            if not 1 <= len(tag) <= MAX_TAG_LENGTH:
                raise ValueError(
                    f"Each tag must be between 1 and {MAX_TAG_LENGTH} characters"
                )
            if tag not in tags:
                tags.append(tag)
        return tags


class CommentCreate(CamelModel):
    content: str
    is_anonymous: bool = False

    @field_validator("content")
    @classmethod
    def check_content(cls, value: str) -> str:
        value = value.strip()
        if not 1 <= len(value) <= 500:
            raise ValueError("Comment must be between 1 and 500 characters")
        return value


class AuthorView(CamelModel):
    """Display identity of a story author or commenter.

    ``id`` is null when the post or comment is anonymous.
    """

    id: Optional[int] = None
    name: str
    user_type: UserRole


class CommentResponse(CamelModel):
    id: int
    user: AuthorView
    content: str
    is_anonymous: bool
    created_at: Optional[datetime] = None


class StorySummary(CamelModel):
    id: int
    author: AuthorView
    title: str
    content: str
    category: StoryCategory
    tags: List[str]
    is_anonymous: bool
    is_approved: bool
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    like_count: int
    comment_count: int
    view_count: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class StoryDetail(StorySummary):
    comments: List[CommentResponse]


class StoryList(CamelModel):
    stories: List[StorySummary]
    pagination: Pagination


class LikeResult(CamelModel):
    liked: bool
    like_count: int
