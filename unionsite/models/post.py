from sqlalchemy import Column, String, DateTime, Integer, Text, JSON, Boolean, Index
from datetime import datetime

from unionsite.core.database import Base


class Post(Base):
    """Board post; comments and attachments are stored inline as JSON"""
    __tablename__ = "posts"

    __table_args__ = (
        Index('ix_posts_type', 'type'),
        Index('ix_posts_created_at', 'created_at'),
    )

    id = Column(String(64), primary_key=True)
    type = Column(String(32), nullable=False)
    title = Column(String(500), nullable=False)
    content = Column(Text, nullable=False, default="")
    author = Column(String(100), nullable=False)
    author_id = Column(String(36), nullable=True)
    user_id = Column(String(36), nullable=True)
    image_url = Column(Text, nullable=True)
    attachments = Column(JSON, nullable=True)
    # Legacy per-post delete password
    password = Column(String(100), nullable=True)
    comments = Column(JSON, nullable=True)

    views = Column(Integer, default=0, nullable=False)
    pinned = Column(Boolean, default=False, nullable=False)
    pinned_at = Column(String(40), nullable=True)

    # ISO timestamp as supplied by the writing client
    created_at = Column(String(40), nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_summary(self):
        """List-view shape: no content, attachments or comments"""
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "author": self.author,
            "authorId": self.author_id,
            "userId": self.user_id,
            "imageUrl": self.image_url,
            "password": self.password,
            "createdAt": self.created_at,
            "views": self.views or 0,
            "pinned": bool(self.pinned),
            "pinnedAt": self.pinned_at,
        }

    def to_dict(self):
        data = self.to_summary()
        data.update({
            "content": self.content or "",
            "attachments": self.attachments or [],
            "comments": self.comments or [],
        })
        return data

    def __repr__(self):
        return f"<Post {self.id} [{self.type}]>"
