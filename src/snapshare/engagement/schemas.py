"""Request/response schemas for the likes and saved-posts endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ---------------------------------------------------------------------------
# Likes
# ---------------------------------------------------------------------------


class LikeRequest(_CamelModel):
    target_type: str = Field(..., alias="targetType", min_length=1, max_length=16)
    target_id: str = Field(..., alias="targetId", min_length=1, max_length=36)


class LikeResponse(_CamelModel):
    id: str
    user_id: str = Field(..., alias="userId")
    target_type: str = Field(..., alias="targetType")
    target_id: str = Field(..., alias="targetId")
    created_at: datetime = Field(..., alias="createdAt")


class LikeCreatedResponse(BaseModel):
    message: str
    like: LikeResponse


class LikeStatsResponse(_CamelModel):
    total_likes: int = Field(..., alias="totalLikes")
    is_liked_by_user: bool = Field(..., alias="isLikedByUser")


class LikerResponse(_CamelModel):
    id: str
    user_id: str = Field(..., alias="userId")
    username: str
    created_at: datetime = Field(..., alias="createdAt")


class LikersPage(BaseModel):
    likes: list[LikerResponse]
    total: int
    page: int
    limit: int


# ---------------------------------------------------------------------------
# Saved posts
# ---------------------------------------------------------------------------


class SaveRequest(_CamelModel):
    post_id: str = Field(..., alias="postId", min_length=1, max_length=36)


class SaveResponse(_CamelModel):
    id: str
    user_id: str = Field(..., alias="userId")
    post_id: str = Field(..., alias="postId")
    created_at: datetime = Field(..., alias="createdAt")


class SaveCreatedResponse(BaseModel):
    message: str
    save: SaveResponse


class SaveStatsResponse(_CamelModel):
    total_saves: int = Field(..., alias="totalSaves")
    is_saved_by_user: bool = Field(..., alias="isSavedByUser")


class SavedPostsPage(_CamelModel):
    saved_posts: list[SaveResponse] = Field(..., alias="savedPosts")
    total: int
    page: int
    limit: int


class MessageResponse(BaseModel):
    message: str
