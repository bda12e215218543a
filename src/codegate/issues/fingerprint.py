"""Stable issue fingerprints."""

import hashlib
import json
import re
from typing import Optional

DEFAULT_LINE_BUCKET = 10

_WHITESPACE = re.compile(r"\s+")


def normalize_path(file_path: str) -> str:
    """Forward slashes, no leading './'."""
    path = file_path.strip().replace("\\", "/")
    while path.startswith("./"):
        path = path[2:]
    return path


def message_shape(message: str) -> str:
    """Message with whitespace runs collapsed and trimmed."""
    return _WHITESPACE.sub(" ", message).strip()


def line_bucket(line: Optional[int], bucket_size: int = DEFAULT_LINE_BUCKET) -> Optional[int]:
    """
    Bucket index of a line.

    Nearby lines share a bucket so small edits above an issue keep its identity.
    """
    if line is None or line < 1:
        return None
    return (line - 1) // bucket_size


def compute_fingerprint(
    analyzer_key: str,
    rule_key: str,
    file_path: str,
    line: Optional[int],
    message: str,
    line_bucket_size: int = DEFAULT_LINE_BUCKET,
) -> str:
    """
    Compute the identity hash of an issue.

    Args:
        analyzer_key: Reporting analyzer
        rule_key: Rule identifier
        file_path: Path of the affected file
        line: Start line, if any
        message: Issue message
        line_bucket_size: Lines per bucket

    Returns:
        SHA-256 hex digest over a canonical JSON document
    """
    if line_bucket_size < 1:
        raise ValueError("line_bucket_size must be at least 1")

    canonical = json.dumps(
        {
            "analyzer": analyzer_key,
            "rule": rule_key,
            "path": normalize_path(file_path),
            "bucket": line_bucket(line, line_bucket_size),
            "message": message_shape(message),
        },
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
