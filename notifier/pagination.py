"""Splitting report content into pages that fit the sink's limits."""
import logging
from typing import Callable, List, Optional, Sequence

logger = logging.getLogger(__name__)


def split_long_line(line: str, max_length: int) -> List[str]:
    """Hard-split a line into pieces of at most ``max_length`` characters."""
    return [line[i:i + max_length] for i in range(0, len(line), max_length)]


def chunk_lines(
    lines: Sequence[str],
    max_length: int,
    separator: str = '\n'
) -> List[str]:
    """
    Greedily pack lines into pages no longer than ``max_length``.

    A line that alone exceeds the limit closes the current page and is
    hard-split into pages of its own.
    """
    chunks = []
    current = None

    for line in lines:
        if len(line) > max_length:
            logger.warning(f"Line of {len(line)} chars exceeds page limit, splitting")
            if current is not None:
                chunks.append(current)
                current = None
            chunks.extend(split_long_line(line, max_length))
            continue

        if current is None:
            current = line
        elif len(current) + len(separator) + len(line) > max_length:
            chunks.append(current)
            current = line
        else:
            current = current + separator + line

    if current:
        chunks.append(current)
    return [chunk for chunk in chunks if chunk]


def is_section_header(field: dict) -> bool:
    return field.get('inline') is False


def paginate_fields(
    fields: Sequence[dict],
    max_fields: int,
    is_header: Optional[Callable[[dict], bool]] = None
) -> List[List[dict]]:
    """
    Split fields into pages of at most ``max_fields``.

    When a page break falls inside a group, the group's header is repeated
    at the top of the next page, unless the next field is a header itself.
    """
    is_header = is_header or is_section_header
    pages = []
    current: List[dict] = []
    last_header = None

    for field in fields:
        header = is_header(field)
        if header:
            last_header = field

        if len(current) >= max_fields:
            pages.append(current)
            current = []
            if last_header is not None and not header:
                current.append(last_header)

        current.append(field)

    if current:
        pages.append(current)
    return pages
