"""
TestRail utility functions for payload formatting and response parsing.
"""
import json
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlsplit

API_PREFIX = "/api/v2/"


def format_elapsed(seconds: Optional[float]) -> Optional[str]:
    """
    Format an execution time as a TestRail timespan.

    Args:
        seconds: Elapsed time in seconds

    Returns:
        Timespan such as "1.5s", or None when there is no measurable time
    """
    if seconds is None or seconds <= 0:
        return None
    text = f"{seconds:.3f}".rstrip("0").rstrip(".")
    if text == "0":
        return None
    return f"{text}s"


def parse_extra_parameters(raw: Optional[str]) -> Dict[str, str]:
    """
    Parse the extra-parameters blob merged into every submitted result.

    Values keep their JSON text: strings are used as is, anything else is
    re-serialized ("true", "5", '{"a": 1}').

    Args:
        raw: Empty string or a JSON object

    Returns:
        Ordered mapping of key to string value

    Raises:
        ValueError: If the blob is not empty and not a JSON object
    """
    if raw is None or not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"Extra parameters are not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ValueError("Extra parameters must be a JSON object.")
    return {
        key: value if isinstance(value, str) else json.dumps(value)
        for key, value in data.items()
    }


def is_valid_extra_parameters(raw: Optional[str]) -> bool:
    """Check the extra-parameters blob without raising."""
    try:
        parse_extra_parameters(raw)
        return True
    except ValueError:
        return False


def extract_items(data: Any, key: str) -> Tuple[List[Any], Optional[str]]:
    """
    Pull the list out of a TestRail collection response.

    Older servers return a bare JSON array, newer ones a page object with the
    list under ``key`` and a ``_links.next`` pointer.

    Returns:
        (items, next endpoint or None)

    Raises:
        ValueError: If the response holds no list
    """
    if isinstance(data, list):
        return data, None
    if isinstance(data, dict) and isinstance(data.get(key), list):
        next_link = (data.get("_links") or {}).get("next")
        return data[key], endpoint_from_link(next_link)
    raise ValueError(f"Response does not contain a '{key}' list")


def endpoint_from_link(link: Optional[str]) -> Optional[str]:
    """
    Turn a pagination link ("/api/v2/get_cases/1&offset=250") into an
    endpoint usable with the client ("get_cases/1&offset=250").
    """
    if not link:
        return None
    if "?" in link:
        link = urlsplit(link).query or link
    index = link.find(API_PREFIX)
    if index >= 0:
        return link[index + len(API_PREFIX):]
    return link.lstrip("/")


def has_http_scheme(host: str) -> bool:
    """Return True when the host URL starts with http:// or https://."""
    return host.startswith("http://") or host.startswith("https://")
