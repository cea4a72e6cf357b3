"""Normalization of loosely typed agent replies."""

from normalizer.extractor import extract, is_match, resolve_agent_payload
from normalizer.sanitizer import sanitize_publish_result, sanitize_scan_result

__all__ = [
    "extract",
    "is_match",
    "resolve_agent_payload",
    "sanitize_publish_result",
    "sanitize_scan_result",
]
