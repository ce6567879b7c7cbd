"""Single-pass document normalizer.

Bridges author input (nested mappings, lists and scalars) to the canonical
node tree consumed by the layout stage, registering node ids and TOC
membership on the way down.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from docprep.config import NormalizerOptions
from docprep.errors import UnrecognizedStructure, UnresolvedReference
from docprep.events import NODE_NORMALIZED, TABLE_NEEDS_DATA, TraversalEventBus
from docprep.model.nodes import (
    Canvas,
    ColumnBlock,
    Columns,
    Image,
    ListNode,
    Node,
    Qr,
    Stack,
    Table,
    Text,
    Toc,
)
from docprep.normalizer.coercion import build_node, coerce_shorthand
from docprep.normalizer.references import ReferenceRegistry
from docprep.normalizer.toc import TocAssembler
from docprep.utils import is_span_marker

logger = logging.getLogger(__name__)

_Handler = Callable[[Any], Awaitable[Node]]


@dataclass
class NormalizationContext:
    """State owned by one document run."""

    options: NormalizerOptions = field(default_factory=NormalizerOptions)
    references: ReferenceRegistry = field(default_factory=ReferenceRegistry)
    tocs: TocAssembler | None = None
    events: TraversalEventBus = field(default_factory=TraversalEventBus)

    def __post_init__(self) -> None:
        if self.tocs is None:
            self.tocs = TocAssembler(self.options)


@dataclass
class NormalizedDocument:
    """Result handed to the layout stage."""

    root: Node
    references: ReferenceRegistry
    tocs: TocAssembler


class DocumentNormalizer:
    """Rewrites a document description into canonical nodes."""

    def __init__(self, context: NormalizationContext | None = None) -> None:
        self.context = context or NormalizationContext()
        self._handlers: tuple[tuple[type[Node], _Handler], ...] = (
            (Columns, self._handle_columns),
            (ColumnBlock, self._handle_column_block),
            (Stack, self._handle_stack),
            (ListNode, self._handle_list),
            (Table, self._handle_table),
            (Text, self._handle_text),
            (Toc, self._handle_toc),
            (Image, self._handle_image),
            (Canvas, self._handle_leaf),
            (Qr, self._handle_leaf),
        )

    async def normalize_document(self, document: Any) -> NormalizedDocument:
        """Normalize a whole document and finish TOC/reference bookkeeping."""
        root = await self.normalize(document)
        self.context.tocs.finalize()

        unresolved = self.context.references.unresolved()
        if unresolved:
            if self.context.options.strict_references:
                raise UnresolvedReference(unresolved)
            logger.warning(
                "Unresolved node reference(s): %s", ", ".join(unresolved)
            )
        for toc_id in self.context.tocs.orphans():
            logger.info("TOC '%s' has items but is never placed", toc_id)

        return NormalizedDocument(
            root=root,
            references=self.context.references,
            tocs=self.context.tocs,
        )

    async def normalize(self, value: Any) -> Node:
        """Normalize one node (and its subtree).

        Raises UnrecognizedStructure if the value is not a known node kind.
        """
        node = coerce_shorthand(value)
        if not isinstance(node, Node):
            node = build_node(node, self.context.options)

        for kind, handler in self._handlers:
            if isinstance(node, kind):
                node = await handler(node)
                break
        else:
            raise UnrecognizedStructure(node)

        await self.context.events.emit(NODE_NORMALIZED, node)
        return node

    async def _expand(self, children: list[Any]) -> None:
        """Normalize ``children`` in order, replacing each slot in place."""
        for index in range(len(children)):
            children[index] = await self.normalize(children[index])

    async def _handle_columns(self, node: Columns) -> Node:
        await self._expand(node.columns)
        return node

    async def _handle_column_block(self, node: ColumnBlock) -> Node:
        await self._expand(node.content)
        return node

    async def _handle_stack(self, node: Stack) -> Node:
        await self._expand(node.stack)
        return node

    async def _handle_list(self, node: ListNode) -> Node:
        await self._expand(node.items)
        return node

    async def _handle_table(self, node: Table) -> Node:
        if node.data is not None:
            await self.context.events.emit(TABLE_NEEDS_DATA, node, self.context)
            if node.data is not None:
                logger.warning("Table data source was not consumed by any listener")

        if not node.body:
            return node

        # Column-major walk over the width of the first row.
        for col in range(len(node.body[0])):
            for row in node.body:
                if col >= len(row):
                    continue
                cell = row[col]
                if cell is None:
                    cell = ""
                if not is_span_marker(cell):
                    row[col] = await self.normalize(cell)

        return node

    async def _handle_text(self, node: Text) -> Node:
        context = self.context

        if node.toc_item:
            context.tocs.add_item(node)

        if node.id:
            context.references.declare(node.id, node)

        if node.page_reference:
            node.page_ref = context.references.reference(node.page_reference)
            node.text = context.options.page_reference_placeholder

        if node.text_reference:
            node.text_ref = context.references.reference(node.text_reference)
            node.text = ""

        if isinstance(node.text, list):
            await self._expand(node.text)
        elif isinstance(node.text, Text) or (
            isinstance(node.text, Mapping) and "text" in node.text
        ):
            node.text = [await self.normalize(node.text)]
        elif not isinstance(node.text, str):
            raise UnrecognizedStructure(node.text)

        return node

    async def _handle_toc(self, node: Toc) -> Node:
        if node.title is not None:
            node.title = await self.normalize(node.title)
        self.context.tocs.claim(node)
        return node

    async def _handle_image(self, node: Image) -> Node:
        image = node.image
        # Serialized Node.js buffer, e.g. from JSON.stringify(Buffer).
        if (
            isinstance(image, dict)
            and image.get("type") == "Buffer"
            and isinstance(image.get("data"), list)
        ):
            node.image = bytes(image["data"])
        return node

    async def _handle_leaf(self, node: Node) -> Node:
        return node


async def normalize_document(
    document: Any,
    options: NormalizerOptions | None = None,
    events: TraversalEventBus | None = None,
) -> NormalizedDocument:
    """Normalize ``document`` with a fresh reference registry and TOC assembler."""
    context = NormalizationContext(
        options=options or NormalizerOptions(),
        events=events or TraversalEventBus(),
    )
    return await DocumentNormalizer(context).normalize_document(document)


def normalize_document_sync(
    document: Any,
    options: NormalizerOptions | None = None,
    events: TraversalEventBus | None = None,
) -> NormalizedDocument:
    """Blocking wrapper around normalize_document for callers without a loop."""
    return asyncio.run(normalize_document(document, options, events))
