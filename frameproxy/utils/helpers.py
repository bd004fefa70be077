"""Utility functions and helpers."""

from typing import Dict

from frameproxy.proxy.target import TargetDescriptor


def truncate_text(text: str, max_length: int = 100) -> str:
    """Truncate text to maximum length.

    Args:
        text: Text to truncate
        max_length: Maximum length

    Returns:
        Truncated text with ellipsis if needed
    """
    if len(text) <= max_length:
        return text
    return text[:max_length - 3] + "..."


def describe_target(target: TargetDescriptor, max_length: int = 100) -> Dict[str, str]:
    """Human-readable fields of a resolved target, for display.

    Args:
        target: Resolved target
        max_length: Truncate long values to this length

    Returns:
        Ordered mapping of field name to value
    """
    return {
        "Target URL": truncate_text(target.url, max_length),
        "Origin": target.base_url,
        "Host": target.host,
        "Port": str(target.port),
        "Path": truncate_text(target.path_query, max_length),
        "Upstream request": truncate_text(target.upstream_url, max_length),
    }
