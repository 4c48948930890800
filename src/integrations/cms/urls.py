"""URL builders for CMS screens linked from the log."""

from __future__ import annotations

from urllib.parse import quote

from src.config import settings


def _site(path: str) -> str:
    return f"{settings.cms.cms_base_url.rstrip('/')}/{path.lstrip('/')}"


def _admin(path: str) -> str:
    return f"{settings.cms.cms_admin_url.rstrip('/')}/{path.lstrip('/')}"


def admin_home_url() -> str:
    return settings.cms.cms_admin_url


def post_permalink(post_id: int | str) -> str:
    return _site(f"/?p={post_id}")


def post_edit_url(post_id: int | str) -> str:
    return _admin(f"post.php?post={post_id}&action=edit")


def trash_listing_url(post_type: str = "post") -> str:
    return _admin(f"edit.php?post_status=trash&post_type={quote(post_type)}")


def revision_compare_url(revision_id: int | str) -> str:
    return _admin(f"revision.php?revision={revision_id}")


def author_profile_url(user_id: int | str) -> str:
    return _site(f"/?author={user_id}")


def user_edit_url(user_id: int | str) -> str:
    return _admin(f"user-edit.php?user_id={user_id}")


def theme_editor_url(stylesheet: str) -> str:
    return _admin(f"theme-editor.php?theme={quote(stylesheet)}")


def ip_lookup_url(ip: str) -> str:
    return f"https://whatismyipaddress.com/ip/{quote(ip)}"
