import re

_TOKEN_PATTERN = re.compile(r"^\s*(\d+)\s*(?:-\s*(\d+)\s*)?$")


def parse(ranges: str, page_count: int, *, preserve_order: bool = False) -> list[int]:
    """Resolve a page range string such as "1-3, 5" into 1-based page numbers.

    Args:
        ranges: Comma-separated tokens, each a page number or "start-end".
        page_count: Number of pages in the target document.
        preserve_order: Reorder mode. Keeps the exact token order and allows
            duplicates. Otherwise pages are de-duplicated and sorted.

    Returns:
        Page numbers within [1, page_count]. Unparseable tokens, reversed
        ranges and out-of-range pages are dropped, so the result may be empty.
    """
    pages: list[int] = []
    for token in ranges.split(","):
        pages.extend(_resolve_token(token, page_count))
    if preserve_order:
        return pages
    return sorted(set(pages))


def to_zero_based(pages: list[int]) -> list[int]:
    """Convert 1-based page numbers to document indices."""
    return [page - 1 for page in pages]


def _resolve_token(token: str, page_count: int) -> list[int]:
    match = _TOKEN_PATTERN.match(token)
    if match is None:
        return []
    start = int(match.group(1))
    end = int(match.group(2)) if match.group(2) is not None else start
    if start > end:
        return []
    return list(range(max(start, 1), min(end, page_count) + 1))
