# pmapi/models/messages.py
from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class UserMetadata(BaseModel):
    model_config = ConfigDict(extra="allow")

    full_name: Optional[str] = None
    role: Optional[str] = None
    avatar_url: Optional[str] = None


class User(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    email: Optional[str] = None
    user_metadata: UserMetadata = Field(default_factory=UserMetadata)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    last_sign_in_at: Optional[str] = None


class Session(BaseModel):
    """Token grant returned by sign-in; the caller decides where to keep it."""

    model_config = ConfigDict(extra="allow")

    access_token: str
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    expires_at: Optional[int] = None
    refresh_token: Optional[str] = None
    user: Optional[User] = None


class SignUpResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    user: Optional[Dict[str, Any]] = None
    session: Optional[Dict[str, Any]] = None


# ---- storage ----


class StorageObject(BaseModel):
    """Reference to an uploaded blob; download/remove key on path."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    path: str
    url: Optional[str] = None
    size: Optional[int] = None
    checksum: Optional[str] = None
    bucket: Optional[str] = None
    mimetype: Optional[str] = None


class StorageFile(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: str
    size: Optional[int] = None
    last_modified: Optional[str] = Field(default=None, alias="lastModified")


class SignedUrl(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    signed_url: str = Field(alias="signedURL")
    path: Optional[str] = None
    bucket: Optional[str] = None
    expires_in: Optional[int] = Field(default=None, alias="expiresIn")
