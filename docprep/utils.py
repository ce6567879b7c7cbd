"""Utility functions shared by the normalizer, TOC assembler and CLI."""

from collections.abc import Iterator, Mapping
from typing import Any

from docprep.model.nodes import (
    ColumnBlock,
    Columns,
    ListNode,
    Margin,
    Node,
    Stack,
    Table,
    Text,
    Toc,
)


def format_scalar(value: bool | int | float) -> str:
    """Render a number or boolean the way a JSON author wrote it.

    Examples:
        True -> 'true'
        42 -> '42'
        2.5 -> '2.5'
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def plain_text(value: Any) -> str:
    """Return the displayed text of a node or of a raw node description."""
    if isinstance(value, Text):
        return plain_text(value.text)
    if isinstance(value, Node):
        return ""
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    if isinstance(value, (bool, int, float)):
        return format_scalar(value)
    if isinstance(value, Mapping):
        return plain_text(value.get("text"))
    if isinstance(value, (list, tuple)):
        return "".join(plain_text(part) for part in value)
    return ""


def coerce_margin(value: Any) -> Margin | None:
    """Expand the author margin forms to (left, top, right, bottom).

    Accepts a single number, ``[horizontal, vertical]`` or
    ``[left, top, right, bottom]``.  Returns None for anything else.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return (value, value, value, value)
    if isinstance(value, (list, tuple)):
        if not all(
            isinstance(v, (int, float)) and not isinstance(v, bool) for v in value
        ):
            return None
        if len(value) == 2:
            horizontal, vertical = value
            return (horizontal, vertical, horizontal, vertical)
        if len(value) == 4:
            return tuple(value)
    return None


def with_bottom_margin(margin: Margin | None, minimum: float) -> Margin:
    """Return ``margin`` with its bottom edge raised to at least ``minimum``."""
    left, top, right, bottom = margin or (0, 0, 0, 0)
    return (left, top, right, max(bottom, minimum))


def is_span_marker(cell: Any) -> bool:
    """Check whether a table cell only continues a row/column span."""
    return isinstance(cell, Mapping) and bool(cell.get("_span"))


def iter_nodes(node: Node) -> Iterator[Node]:
    """Walk a canonical tree depth-first, parents before children."""
    yield node
    children: list[Any] = []
    if isinstance(node, Stack):
        children = node.stack
    elif isinstance(node, Columns):
        children = node.columns
    elif isinstance(node, ColumnBlock):
        children = node.content
    elif isinstance(node, ListNode):
        children = node.items
    elif isinstance(node, Table):
        children = [cell for row in node.body for cell in row]
    elif isinstance(node, Text) and isinstance(node.text, list):
        children = node.text
    elif isinstance(node, Toc) and node.title is not None:
        children = [node.title]

    for child in children:
        if isinstance(child, Node):
            yield from iter_nodes(child)
