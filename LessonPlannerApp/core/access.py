"""Role & tenant access helpers."""

import re
from typing import Any, Iterable

from rest_framework.exceptions import NotFound

_WHITESPACE = re.compile(r"\s+")


def normalize_role(role: Any) -> str:
    """Canonical role key: lowercase, whitespace runs collapsed to underscores.

    ``"Assistant Director"``, ``" assistant_director "`` and ``"ASSISTANT  DIRECTOR"``
    all become ``"assistant_director"``. ``None`` becomes an empty string.
    """
    if role is None:
        return ""
    return _WHITESPACE.sub("_", str(role).strip()).lower()


def normalize_roles(roles: Iterable[Any] | None) -> list[str]:
    """Normalize, drop blanks and de-duplicate while keeping first-seen order."""
    seen: list[str] = []
    for role in roles or []:
        key = normalize_role(role)
        if key and key not in seen:
            seen.append(key)
    return seen


def tenant_id_of(obj: Any) -> Any:
    if obj is None:
        return None
    return getattr(obj, "tenant_id", None)


def same_tenant(user, obj: Any) -> bool:
    return bool(user and obj is not None and user.tenant_id is not None
                and tenant_id_of(obj) == user.tenant_id)


def ensure_same_tenant(user, obj: Any, label: str = "Object") -> None:
    """Cross-tenant objects are reported as missing rather than forbidden."""
    if not same_tenant(user, obj):
        raise NotFound(f"{label} not found")
