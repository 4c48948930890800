"""Snapshots of CMS entities as the CMS reports them.

Field names follow the CMS's own (post_status, user_login, ...) so hook
payloads can be forwarded without renaming.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class Post(BaseModel):
    """A content item or one of its revisions."""

    id: int = Field(alias="ID")
    post_type: str = "post"
    post_title: str = ""
    post_status: str = "draft"
    post_name: str = ""
    post_parent: int = 0
    post_author: int | None = None
    post_date: datetime | None = None
    post_modified: datetime | None = None

    model_config = {"populate_by_name": True}

    @property
    def is_revision(self) -> bool:
        return self.post_type == "revision"

    @property
    def is_autosave(self) -> bool:
        return self.post_status == "inherit" and "autosave" in self.post_name


class User(BaseModel):
    """A CMS account."""

    id: int = Field(alias="ID")
    user_login: str = ""
    user_nicename: str = ""
    user_email: str = ""
    display_name: str = ""
    roles: list[str] = Field(default_factory=list)
    user_registered: datetime | None = None
    avatar_url: str | None = None

    model_config = {"populate_by_name": True}


class Theme(BaseModel):
    stylesheet: str
    name: str


class Plugin(BaseModel):
    plugin: str
    name: str


class PostType(BaseModel):
    slug: str
    singular_name: str
