"""Input validation, HTML sanitization and password hashing.

Every value a user types passes through one of these predicates before it
reaches the identity provider or the database. They are pure functions over
strings; the only configuration they read is the bounds in ``settings``.
"""
from __future__ import annotations

import html
import re
import uuid
from typing import Final

import bcrypt
from bleach.sanitizer import Cleaner
from email_validator import EmailNotValidError, validate_email as _check_email
from pydantic import HttpUrl, TypeAdapter, ValidationError

from deepbug.core.settings import settings

ALLOWED_TAGS: Final[frozenset[str]] = frozenset({
    "p", "br", "strong", "b", "em", "i", "u", "blockquote", "code", "pre",
    "h1", "h2", "h3", "h4", "h5", "h6", "ul", "ol", "li", "a", "img",
})
ALLOWED_ATTRIBUTES: Final[dict[str, list[str]]] = {
    "a": ["href", "title", "target", "rel"],
    "img": ["src", "alt", "title"],
}
ALLOWED_PROTOCOLS: Final[frozenset[str]] = frozenset({"http", "https", "mailto"})

# Latin letters, digits, the Arabic block, whitespace and - _ .
_NAME_RE: Final = re.compile(r"[a-zA-Z0-9\u0600-\u06FF\s\-_.]+")
_PASSWORD_RE: Final = re.compile(r"(?=.*[A-Za-z])(?=.*[0-9])[A-Za-z0-9@$!%*#?&]+")
# bleach keeps the text of stripped elements; script and style bodies must go entirely.
_EXECUTABLE_BLOCK_RE: Final = re.compile(
    r"<(script|style)\b[^>]*>.*?(?:</\1\s*>|$)",
    re.IGNORECASE | re.DOTALL,
)

_cleaner = Cleaner(
    tags=ALLOWED_TAGS,
    attributes=ALLOWED_ATTRIBUTES,
    protocols=ALLOWED_PROTOCOLS,
    strip=True,
    strip_comments=True,
)
_http_url = TypeAdapter(HttpUrl)

CSP_DIRECTIVES: Final[tuple[str, ...]] = (
    "default-src 'self'",
    "script-src 'self' 'unsafe-inline' https://www.gstatic.com https://apis.google.com",
    "style-src 'self' 'unsafe-inline' https://fonts.googleapis.com",
    "font-src 'self' https://fonts.gstatic.com",
    "img-src 'self' data: https: http:",
    "connect-src 'self' https://identitytoolkit.googleapis.com",
)


def sanitize_html(value: str) -> str:
    """Strip markup outside the rich-text allow-list.

    Allowed formatting survives verbatim; script/style elements vanish with
    their content, and event handlers or ``javascript:`` links never survive.
    """
    if not value:
        return ""
    return _cleaner.clean(_EXECUTABLE_BLOCK_RE.sub("", value))


def escape_html(text: str) -> str:
    """Render ``text`` inert for plain-text display contexts."""
    return html.escape(text or "", quote=True)


def validate_email(email: str) -> bool:
    if not email or len(email) > settings.max_email_length:
        return False
    try:
        _check_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def validate_name(name: str) -> bool:
    if not name:
        return False
    if not settings.min_name_length <= len(name) <= settings.max_name_length:
        return False
    return _NAME_RE.fullmatch(name) is not None


def validate_password(password: str) -> bool:
    """Require the minimum length plus at least one letter and one digit."""
    if not password or len(password) < settings.min_password_length:
        return False
    return _PASSWORD_RE.fullmatch(password) is not None


def validate_message(message: str) -> bool:
    return bool(message) and len(message) <= settings.max_message_length


def validate_url(url: str) -> bool:
    """Return True for absolute http(s) URLs with a host."""
    if not url:
        return False
    try:
        _http_url.validate_python(url)
    except ValidationError:
        return False
    return True


def generate_secure_id() -> str:
    return str(uuid.uuid4())


def get_csp_header() -> str:
    """Return the Content-Security-Policy header value served with every response."""
    return "; ".join(CSP_DIRECTIVES)


def hash_password(password: str, rounds: int = 12) -> str:
    """Return a bcrypt hash of ``password`` suitable for storage."""
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check ``password`` against a stored bcrypt hash; malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False
