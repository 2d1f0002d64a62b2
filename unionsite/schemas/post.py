from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


class AttachmentSchema(BaseModel):
    name: str
    data: str
    type: str = ""


class CommentSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    author: str
    content: str
    created_at: str = Field("", alias="createdAt")
    replies: List["CommentSchema"] = Field(default_factory=list)


class PostUpsert(BaseModel):
    """
    Body of PUT /posts/{id}.

    Every field is optional; fields the client leaves out keep their stored
    value (a list-view post never overwrites content or comments).
    """
    model_config = ConfigDict(populate_by_name=True)

    type: Optional[str] = None
    title: Optional[str] = None
    content: Optional[str] = None
    author: Optional[str] = None
    author_id: Optional[str] = Field(None, alias="authorId")
    user_id: Optional[str] = Field(None, alias="userId")
    image_url: Optional[str] = Field(None, alias="imageUrl")
    attachments: Optional[List[AttachmentSchema]] = None
    password: Optional[str] = None
    comments: Optional[List[CommentSchema]] = None
    views: Optional[int] = None
    pinned: Optional[bool] = None
    pinned_at: Optional[str] = Field(None, alias="pinnedAt")
    created_at: Optional[str] = Field(None, alias="createdAt")

    def changes(self) -> Dict[str, Any]:
        """Column values for the fields the client sent"""
        data = self.model_dump(exclude_unset=True)
        if "comments" in data and data["comments"] is not None:
            data["comments"] = [
                c.model_dump(by_alias=True) for c in self.comments
            ]
        return data


class ViewCountResponse(BaseModel):
    id: str
    views: int
CommentSchema.model_rebuild()
