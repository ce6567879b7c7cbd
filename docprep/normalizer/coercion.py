"""Shorthand coercion and shallow node construction.

Turns author input (strings, numbers, lists, partial mappings) into one of
the canonical node dataclasses.  Children are copied into fresh lists but
left un-normalized; the preprocessor recurses into them afterwards.
"""

import logging
from collections.abc import Callable, Mapping
from typing import Any

from docprep.config import NormalizerOptions
from docprep.errors import UnrecognizedStructure
from docprep.model.nodes import (
    Canvas,
    ColumnBlock,
    Columns,
    Image,
    ListNode,
    Node,
    Outline,
    Qr,
    Stack,
    Table,
    TableDataSpec,
    Text,
    Toc,
)
from docprep.utils import coerce_margin, format_scalar, plain_text

logger = logging.getLogger(__name__)

# Keys understood on every node kind.
_COMMON_KEYS = frozenset({"id", "tocItem", "outline", "margin"})


def coerce_shorthand(value: Any) -> Node | dict[str, Any]:
    """Apply the shorthand rules, returning a node mapping (or a node as is).

    Rules, first match wins:
        [a, b]          -> {"stack": [a, b]}
        "abc"           -> {"text": "abc"}
        3 / True        -> {"text": "3"} / {"text": "true"}
        None            -> {"text": ""}
        {}              -> {"text": ""}
        {"text": None}  -> {"text": ""} (other keys kept)
    """
    if isinstance(value, Node):
        return value
    if isinstance(value, (list, tuple)):
        return {"stack": list(value)}
    if isinstance(value, str):
        return {"text": value}
    if isinstance(value, (bool, int, float)):
        return {"text": format_scalar(value)}
    if value is None:
        return {"text": ""}
    if isinstance(value, Mapping):
        if not value:
            return {"text": ""}
        mapping = dict(value)
        if "text" in mapping and mapping["text"] is None:
            mapping["text"] = ""
        return mapping
    raise UnrecognizedStructure(value)


def expand_outline(value: Any, mapping: Mapping[str, Any]) -> Outline:
    """Expand an ``outline`` declaration into an Outline.

    A bare number is the outline level; a missing outline text is taken from
    the node's own text.
    """
    if isinstance(value, bool):
        spec: dict[str, Any] = {"level": 1}
    elif isinstance(value, (int, float)):
        spec = {"level": value}
    elif isinstance(value, Mapping):
        spec = dict(value)
    else:
        raise UnrecognizedStructure(value)

    if "text" not in spec:
        spec["text"] = mapping.get("text")
    level = spec.pop("level", 1)
    text = spec.pop("text")
    return Outline(
        level=_whole_number(level, value), text=plain_text(text), attributes=spec
    )


def build_node(mapping: Mapping[str, Any], options: NormalizerOptions) -> Node:
    """Construct the canonical node for a coerced mapping.

    Raises UnrecognizedStructure if no kind discriminator is present.
    """
    for discriminator, keys, builder in _DISPATCH:
        if _declares(mapping, discriminator):
            node = builder(mapping, options)
            consumed = keys | _COMMON_KEYS
            break
    else:
        raise UnrecognizedStructure(mapping)

    node.id = mapping.get("id") or None
    node.toc_item = _toc_ids(mapping.get("tocItem"))

    outline = mapping.get("outline")
    if outline is not None and outline is not False:
        node.outline = expand_outline(outline, mapping)

    if "margin" in mapping:
        node.margin = coerce_margin(mapping["margin"])
        if node.margin is None:
            logger.debug("Keeping unrecognized margin %r as-is", mapping["margin"])
            node.attributes["margin"] = mapping["margin"]

    node.attributes.update(
        (key, value) for key, value in mapping.items() if key not in consumed
    )
    logger.debug("Built %s node", node.kind)
    return node


def _declares(mapping: Mapping[str, Any], key: str) -> bool:
    if key == "text":
        return (
            "text" in mapping
            or bool(mapping.get("pageReference"))
            or bool(mapping.get("textReference"))
        )
    return mapping.get(key) is not None


def _toc_ids(value: Any) -> list[Any]:
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _children(value: Any, mapping: Mapping[str, Any]) -> list[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    raise UnrecognizedStructure(mapping)


def _whole_number(value: Any, context: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise UnrecognizedStructure(context)
    return int(value)


def _build_columns(mapping: Mapping[str, Any], options: NormalizerOptions) -> Node:
    return Columns(columns=_children(mapping["columns"], mapping))


def _build_column_block(
    mapping: Mapping[str, Any], options: NormalizerOptions
) -> Node:
    content = mapping.get("content", [])
    if not isinstance(content, (list, tuple)):
        content = [content]
    return ColumnBlock(
        column_count=_whole_number(mapping["columnCount"], mapping),
        content=list(content),
    )


def _build_stack(mapping: Mapping[str, Any], options: NormalizerOptions) -> Node:
    return Stack(stack=_children(mapping["stack"], mapping))


def _build_ul(mapping: Mapping[str, Any], options: NormalizerOptions) -> Node:
    return ListNode(items=_children(mapping["ul"], mapping), ordered=False)


def _build_ol(mapping: Mapping[str, Any], options: NormalizerOptions) -> Node:
    return ListNode(items=_children(mapping["ol"], mapping), ordered=True)


def _build_table(mapping: Mapping[str, Any], options: NormalizerOptions) -> Node:
    spec = mapping["table"]
    if not isinstance(spec, Mapping) or not isinstance(
        spec.get("body", []), (list, tuple)
    ):
        raise UnrecognizedStructure(mapping)

    body = [_children(row, mapping) for row in spec.get("body", [])]
    widths = spec.get("widths")
    data = mapping.get("data")
    return Table(
        body=body,
        header_rows=_whole_number(spec.get("headerRows", 0), mapping),
        widths=list(widths) if isinstance(widths, (list, tuple)) else widths,
        options={
            k: v for k, v in spec.items() if k not in ("body", "headerRows", "widths")
        },
        data=_table_data(data) if data is not None else None,
    )


def _table_data(data: Any) -> TableDataSpec:
    if isinstance(data, TableDataSpec):
        return data
    if not isinstance(data, Mapping):
        raise UnrecognizedStructure(data)
    return TableDataSpec(
        connection=data.get("connection"),
        query=data.get("query"),
        columns=list(data.get("columns") or []),
    )


def _build_text(mapping: Mapping[str, Any], options: NormalizerOptions) -> Node:
    text = mapping.get("text", "")
    if text is None:
        text = ""
    elif isinstance(text, (bool, int, float)):
        text = format_scalar(text)
    elif isinstance(text, (list, tuple)):
        text = list(text)
    return Text(
        text=text,
        page_reference=mapping.get("pageReference") or None,
        text_reference=mapping.get("textReference") or None,
    )


def _build_toc(mapping: Mapping[str, Any], options: NormalizerOptions) -> Node:
    spec = mapping["toc"]
    if not isinstance(spec, Mapping):
        spec = {}
    title = spec.get("title")
    return Toc(
        toc_id=spec.get("id") or options.default_toc_id,
        title=title if title not in (None, "", False) else None,
        show_section_headers=bool(spec.get("showSectionHeaders")),
        options={
            k: v
            for k, v in spec.items()
            if k not in ("id", "title", "showSectionHeaders")
        },
    )


def _build_image(mapping: Mapping[str, Any], options: NormalizerOptions) -> Node:
    return Image(image=mapping["image"])


def _build_canvas(mapping: Mapping[str, Any], options: NormalizerOptions) -> Node:
    return Canvas(canvas=_children(mapping["canvas"], mapping))


def _build_qr(mapping: Mapping[str, Any], options: NormalizerOptions) -> Node:
    qr = mapping["qr"]
    return Qr(qr=qr if isinstance(qr, str) else plain_text(qr))


_Builder = Callable[[Mapping[str, Any], NormalizerOptions], Node]

# Checked in order; the first discriminator present decides the kind.
_DISPATCH: tuple[tuple[str, frozenset[str], _Builder], ...] = (
    ("columns", frozenset({"columns"}), _build_columns),
    ("columnCount", frozenset({"columnCount", "content"}), _build_column_block),
    ("stack", frozenset({"stack"}), _build_stack),
    ("ul", frozenset({"ul"}), _build_ul),
    ("ol", frozenset({"ol"}), _build_ol),
    ("table", frozenset({"table", "data"}), _build_table),
    ("text", frozenset({"text", "pageReference", "textReference"}), _build_text),
    ("toc", frozenset({"toc"}), _build_toc),
    ("image", frozenset({"image"}), _build_image),
    ("canvas", frozenset({"canvas"}), _build_canvas),
    ("qr", frozenset({"qr"}), _build_qr),
)
