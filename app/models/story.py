from sqlalchemy import (
    Column, Integer, String, ForeignKey, DateTime, Boolean, Text,
    UniqueConstraint, Enum as SQLEnum
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from ..core.database import Base

class StoryCategory(str, enum.Enum):
    PERSONAL_STORY = "personal_story"
    ADVICE = "advice"
    EDUCATIONAL = "educational"
    SUPPORT = "support"
    AWARENESS = "awareness"

class Story(Base):
    __tablename__ = "stories"

    id = Column(Integer, primary_key=True, index=True)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Content
    title = Column(String(100), nullable=False)
    content = Column(Text, nullable=False)
    category = Column(SQLEnum(StoryCategory), nullable=False, index=True)
    is_anonymous = Column(Boolean, default=False, nullable=False)

    # Moderation
    is_approved = Column(Boolean, default=False, nullable=False, index=True)
    approved_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Denormalized counters
    like_count = Column(Integer, default=0, nullable=False)
    comment_count = Column(Integer, default=0, nullable=False)
    view_count = Column(Integer, default=0, nullable=False)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now(), index=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    author = relationship("User", foreign_keys=[author_id])
    approved_by = relationship("User", foreign_keys=[approved_by_id])
    tag_links = relationship(
        "StoryTag", cascade="all, delete-orphan", order_by="StoryTag.id"
    )
    likes = relationship(
        "StoryLike", back_populates="story", cascade="all, delete-orphan"
    )
    comments = relationship(
        "StoryComment", back_populates="story", cascade="all, delete-orphan",
        order_by="StoryComment.id"
    )

    @property
    def tags(self):
        return [link.name for link in self.tag_links]

    def __repr__(self):
        return f"<Story(id={self.id}, author_id={self.author_id}, title='{self.title}')>"

class StoryTag(Base):
    __tablename__ = "story_tags"
    __table_args__ = (
        UniqueConstraint("story_id", "name", name="uq_story_tags_story_name"),
    )

    id = Column(Integer, primary_key=True, index=True)
    story_id = Column(Integer, ForeignKey("stories.id"), nullable=False, index=True)
    name = Column(String(20), nullable=False, index=True)

class StoryLike(Base):
    __tablename__ = "story_likes"
    __table_args__ = (
        UniqueConstraint("story_id", "user_id", name="uq_story_likes_story_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    story_id = Column(Integer, ForeignKey("stories.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    liked_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    story = relationship("Story", back_populates="likes")

class StoryComment(Base):
    __tablename__ = "story_comments"

    id = Column(Integer, primary_key=True, index=True)
    story_id = Column(Integer, ForeignKey("stories.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    content = Column(String(500), nullable=False)
    is_anonymous = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    story = relationship("Story", back_populates="comments")
    user = relationship("User")

    def __repr__(self):
        return f"<StoryComment(id={self.id}, story_id={self.story_id}, user_id={self.user_id})>"
