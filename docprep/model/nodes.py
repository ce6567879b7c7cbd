"""Canonical node kinds produced by the document normalizer.

Every element of a normalized document is exactly one of the dataclasses
below.  Author shorthand (bare strings, numbers, lists, empty mappings) never
reaches this layer: the normalizer coerces it first.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from docprep.model.records import ReferenceRecord

Margin = tuple[float, float, float, float]  # left, top, right, bottom


@dataclass
class Outline:
    """Document outline (bookmark) entry attached to a node."""

    level: int = 1
    text: str = ""
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass
class Node:
    """Base class for canonical nodes."""

    kind: ClassVar[str] = ""

    id: str | None = None
    toc_item: list[str] = field(default_factory=list)
    outline: Outline | None = None
    margin: Margin | None = None
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass
class Text(Node):
    """A run of text, or a list of inline nodes.

    ``page_ref`` and ``text_ref`` point at the reference records of the
    nodes named by ``page_reference`` / ``text_reference``; they are filled
    in by the layout stage and are not part of node equality.
    """

    kind: ClassVar[str] = "text"

    text: "str | list[Node]" = ""
    page_reference: str | None = None
    text_reference: str | None = None
    page_ref: "ReferenceRecord | None" = field(
        default=None, compare=False, repr=False
    )
    text_ref: "ReferenceRecord | None" = field(
        default=None, compare=False, repr=False
    )


@dataclass
class Stack(Node):
    """Children laid out vertically."""

    kind: ClassVar[str] = "stack"

    stack: list[Any] = field(default_factory=list)


@dataclass
class Columns(Node):
    """Children laid out side by side."""

    kind: ClassVar[str] = "columns"

    columns: list[Any] = field(default_factory=list)


@dataclass
class ColumnBlock(Node):
    """Wrapper block whose content flows through ``column_count`` columns."""

    kind: ClassVar[str] = "columnBlock"

    column_count: int = 1
    content: list[Any] = field(default_factory=list)


@dataclass
class ListNode(Node):
    """Ordered (``ol``) or unordered (``ul``) list."""

    kind: ClassVar[str] = "list"

    items: list[Any] = field(default_factory=list)
    ordered: bool = False


@dataclass
class TableDataSpec:
    """External row source description for a data-backed table."""

    connection: Any = None
    query: Any = None
    columns: list[Any] = field(default_factory=list)


@dataclass
class Table(Node):
    """Table body as a list of rows of cells.

    Header rows are the first ``header_rows`` rows of ``body``.  Cells that
    continue a row/column span are kept as ``{"_span": True}`` markers.
    """

    kind: ClassVar[str] = "table"

    body: list[list[Any]] = field(default_factory=list)
    header_rows: int = 0
    widths: list[Any] | None = None
    options: dict[str, Any] = field(default_factory=dict)
    data: TableDataSpec | None = None


@dataclass
class Image(Node):
    """Image given as a path/data URL or raw bytes."""

    kind: ClassVar[str] = "image"

    image: str | bytes | Any = ""


@dataclass
class Canvas(Node):
    """Vector drawing operations, passed through untouched."""

    kind: ClassVar[str] = "canvas"

    canvas: list[Any] = field(default_factory=list)


@dataclass
class Qr(Node):
    """QR code payload."""

    kind: ClassVar[str] = "qr"

    qr: str = ""


@dataclass
class Toc(Node):
    """Table of contents collecting every node that names it in ``tocItem``."""

    kind: ClassVar[str] = "toc"

    toc_id: str = "_default_"
    title: Node | None = None
    items: list[Text] = field(default_factory=list)
    show_section_headers: bool = False
    options: dict[str, Any] = field(default_factory=dict)

