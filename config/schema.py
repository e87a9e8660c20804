"""Custom OpenAPI schema hooks for drf-spectacular.

The API is mounted twice (``/api/`` and ``/api/v1/``); only the versioned
routes are documented, grouped by feature.
"""

from __future__ import annotations

from typing import Any

# Method names that contain operations in the OpenAPI path item
_HTTP_METHODS = {"get", "post", "put", "patch", "delete", "options", "head"}

VERSIONED_PREFIX = "/api/v1/"

PATTERN_TAGS = [
    ("/api/v1/tasks", "Tasks"),
    ("/api/v1/auth/", "Authentication"),
    ("/api/v1/schema", "Meta"),
]

ALL_TAGS = [t for _, t in PATTERN_TAGS]


def only_versioned(endpoints: list[tuple], **kwargs: Any) -> list[tuple]:
    """Preprocessing hook: drop the unversioned compatibility aliases."""
    return [ep for ep in endpoints if ep[0].startswith(VERSIONED_PREFIX)]


def assign_group_tag(path: str) -> str | None:
    """Return the first matching tag name for a given path."""
    for prefix, tag in PATTERN_TAGS:
        if path.startswith(prefix):
            return tag
    return None


def group_tags(result: dict[str, Any], **kwargs: Any) -> dict[str, Any]:
    """Post-processing hook forcing exactly one logical tag per operation."""
    paths = result.get("paths", {})
    for path, path_item in paths.items():
        tag = assign_group_tag(path)
        if not tag:
            continue
        for method, op_obj in path_item.items():
            if method.lower() not in _HTTP_METHODS:
                continue
            if not isinstance(op_obj, dict):
                continue
            op_obj["tags"] = [tag]

    # Ensure declared tags list contains all groups we used (order preserved)
    existing = {t.get("name") for t in result.get("tags", [])}
    tag_list = result.setdefault("tags", [])
    for tag in ALL_TAGS:
        if tag not in existing:
            tag_list.append({"name": tag})
    return result
