"""
Input validation functions for docsync.

Provides validation for document paths, author identities, workspace
addresses and content so that malformed writes are rejected before they
reach the document store.
"""

import re

# @ + four-character shortname, optional .suffix (e.g. "@suzy" or "@suzy.bx7q")
_AUTHOR_PATTERN = re.compile(r"^@[a-z][a-z0-9]{3}(\.[a-z0-9]+)?$")

# + name + . + suffix (e.g. "+gardening.friends")
_WORKSPACE_PATTERN = re.compile(r"^\+[a-z][a-z0-9-]{0,30}\.[a-z0-9]+$")


# ---------------------------------------------------------------------------
# Error message formatting helpers
# ---------------------------------------------------------------------------


def format_validation_error(field_name: str, reason: str) -> str:
    """
    Generate consistent error message for validation failures.

    Args:
        field_name: Human-readable field name (e.g., "Path")
        reason: Description of validation failure (e.g., "cannot be empty")

    Returns:
        Formatted error message string
    """
    return f"{field_name} {reason}"


def validate_path(path: str) -> tuple[bool, str]:
    """
    Validate a document path.

    Args:
        path: The slash-separated relative path to validate

    Returns:
        Tuple of (is_valid, error_message).
        Returns (True, "") if valid, (False, reason) if invalid.

    Validation rules:
        - Cannot be empty or whitespace-only
        - Must be relative (no leading '/') and use '/' separators
        - Cannot have empty, '.' or '..' segments
        - Cannot contain control characters
    """
    if not path or not path.strip():
        return (False, format_validation_error("Path", "cannot be empty"))

    if path.startswith("/"):
        return (False, format_validation_error("Path", "must be relative"))

    if "\\" in path:
        return (
            False,
            format_validation_error("Path", "must use '/' as separator"),
        )

    for segment in path.split("/"):
        if segment == "":
            return (
                False,
                format_validation_error(
                    "Path", "cannot have empty path segments"
                ),
            )
        if segment in (".", ".."):
            return (
                False,
                format_validation_error(
                    "Path", f"cannot contain '{segment}' segments"
                ),
            )

    if any(ord(ch) < 32 or ord(ch) == 127 for ch in path):
        return (
            False,
            format_validation_error(
                "Path", "cannot contain control characters"
            ),
        )

    return (True, "")


def validate_author(author: str) -> tuple[bool, str]:
    """Validate an author identity such as ``@suzy`` or ``@suzy.bx7q``."""
    if not author:
        return (False, format_validation_error("Author", "cannot be empty"))
    if not _AUTHOR_PATTERN.match(author):
        return (
            False,
            format_validation_error(
                "Author",
                f"'{author}' must be '@' followed by a 4-character "
                "lowercase shortname and an optional '.suffix'",
            ),
        )
    return (True, "")


def validate_workspace(workspace: str) -> tuple[bool, str]:
    """Validate a workspace address such as ``+gardening.friends``."""
    if not workspace:
        return (
            False,
            format_validation_error("Workspace", "cannot be empty"),
        )
    if not _WORKSPACE_PATTERN.match(workspace):
        return (
            False,
            format_validation_error(
                "Workspace",
                f"'{workspace}' must look like '+name.suffix'",
            ),
        )
    return (True, "")


def validate_content(
    content: str, max_size: int = 1_000_000
) -> tuple[bool, str]:
    """
    Validate document content.

    Args:
        content: The content to validate (empty content is a tombstone)
        max_size: Maximum size in bytes (default: 1,000,000)

    Returns:
        Tuple of (is_valid, error_message).
        Returns (True, "") if valid, (False, reason) if invalid.
    """
    content_bytes = len(content.encode("utf-8"))
    if content_bytes > max_size:
        return (
            False,
            format_validation_error(
                "Content", f"exceeds maximum size of {max_size} bytes"
            ),
        )

    return (True, "")
