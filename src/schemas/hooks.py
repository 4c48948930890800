"""Hook batch schema — the CMS forwards every hook fired during one of its
requests as a single batch.

Each hook is a tagged model discriminated on `hook`, carrying whatever
context the CMS had at the time (current post state, revisions, users).
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, Field

from src.schemas.cms import Post, User


class Actor(BaseModel):
    """The logged-in account that triggered the host request."""

    id: int
    roles: list[str] = Field(default_factory=list)
    display_name: str = ""

    @property
    def role_label(self) -> str:
        return ", ".join(self.roles)


class _PostHook(BaseModel):
    post: Post
    revisions: list[Post] = Field(default_factory=list, description="All revisions of the logical post")
    post_type_label: str | None = Field(default=None, description="Singular label, when the CMS sends it")


class SavePostHook(_PostHook):
    hook: Literal["save_post"]
    parent: Post | None = Field(default=None, description="Parent post when `post` is a revision")
    update: bool = False


class DeletePostHook(_PostHook):
    hook: Literal["delete_post"]


class TrashedPostHook(_PostHook):
    hook: Literal["trashed_post"]
    previous_status: str


class PublishPostHook(_PostHook):
    hook: Literal["draft_to_publish"]


class UnpublishPostHook(_PostHook):
    hook: Literal["publish_to_draft"]


class LoginHook(BaseModel):
    hook: Literal["wp_login"]
    user_login: str
    user: User


class LogoutHook(BaseModel):
    hook: Literal["wp_logout"]
    user_id: int
    user: User | None = None


class UserRegisterHook(BaseModel):
    hook: Literal["user_register"]
    user: User


class DeleteUserHook(BaseModel):
    hook: Literal["delete_user"]
    user: User
    reassign: User | None = None


class UserActivityHook(BaseModel):
    """Heartbeat from a logged-in browser; the actor is the active user."""

    hook: Literal["user_activity"]


HookCall = Annotated[
    SavePostHook
    | DeletePostHook
    | TrashedPostHook
    | PublishPostHook
    | UnpublishPostHook
    | LoginHook
    | LogoutHook
    | UserRegisterHook
    | DeleteUserHook
    | UserActivityHook,
    Field(discriminator="hook"),
]


class HookBatch(BaseModel):
    """Everything one CMS request wants logged, in firing order."""

    actor: Actor | None = None
    source_ip: str | None = None
    doing_cron: bool = False
    doing_autosave: bool = False
    hooks: list[HookCall] = Field(default_factory=list)


class HookBatchResult(BaseModel):
    status: str = "ok"
    logged: list[int] = Field(default_factory=list)
    rejected: list[str] = Field(default_factory=list)
