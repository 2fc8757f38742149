"""Utility helper functions"""

from datetime import date, datetime
import re

_EXCESS_NEWLINES = re.compile(r'\n{3,}')
_WHITESPACE = re.compile(r'\s+')
_STAR_COUNT = re.compile(r'[\d,]+')

MAX_DESCRIPTION_LENGTH = 200


def truncate_string(text: str, max_length: int, suffix: str = "...") -> str:
    """
    Truncate string to maximum length

    Args:
        text: Text to truncate
        max_length: Maximum length
        suffix: Suffix to add if truncated

    Returns:
        Truncated string
    """
    if len(text) <= max_length:
        return text

    return text[:max_length - len(suffix)] + suffix


def normalize_whitespace(text: str) -> str:
    """Collapse runs of whitespace into single spaces"""
    if not text:
        return ""
    return _WHITESPACE.sub(' ', text).strip()


def parse_star_count(text: str) -> int:
    """
    Extract a star count from text like "1,234 stars today"

    Args:
        text: Text containing a number, possibly with thousands separators

    Returns:
        Parsed integer, 0 when no number is present
    """
    match = _STAR_COUNT.search(text or "")
    if not match:
        return 0

    digits = match.group(0).replace(",", "")
    if not digits:
        return 0

    return int(digits)


def sanitize_markdown(content: str) -> str:
    """
    Sanitize LLM-provided text before embedding it in the Markdown report

    Escapes table delimiters, normalizes line breaks and collapses
    more than two consecutive newlines.

    Args:
        content: Raw text

    Returns:
        Sanitized text
    """
    content = (content or "").replace("|", "\\|")
    content = content.replace("\r\n", "\n")
    content = _EXCESS_NEWLINES.sub("\n\n", content)
    return content.strip()


def sanitize_url(url: str) -> str:
    """Ensure a URL carries an http(s) scheme"""
    url = (url or "").strip()
    if not url.startswith("http://") and not url.startswith("https://"):
        return "https://" + url
    return url


def sanitize_repo_name(name: str) -> str:
    """Remove characters that would break a Markdown link label"""
    for char in "[]()":
        name = name.replace(char, "")
    return name.strip()


def sanitize_description(desc: str) -> str:
    """Flatten a repository description to one line of at most 200 characters"""
    desc = normalize_whitespace(desc)
    return truncate_string(desc, MAX_DESCRIPTION_LENGTH)


def format_number(value: int) -> str:
    """Format an integer with thousands separators (1234 -> "1,234")"""
    return f"{value:,}"


def format_date(day: date | datetime) -> str:
    """Format a date as ISO YYYY-MM-DD"""
    return day.strftime("%Y-%m-%d")
