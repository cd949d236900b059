"""URL-safe provider usernames for public booking pages."""

import re


def slugify(text: str, fallback: str = "provider") -> str:
    """Lower-case, keep a-z 0-9 . _ -, collapse everything else to '-'."""
    s = re.sub(r"[^a-z0-9._-]+", "-", text.strip().lower()).strip("-._")
    return s or fallback


def username_from_email(email: str) -> str:
    """Public page username: the local part of the email."""
    return slugify(email.split("@")[0])
