"""Tests for docprep.normalizer.preprocessor module."""

import asyncio
import copy

import pytest

from docprep.config import NormalizerOptions
from docprep.errors import (
    DuplicateIdentifier,
    DuplicateTocIdentifier,
    UnrecognizedStructure,
    UnresolvedReference,
)
from docprep.events import NODE_NORMALIZED, TABLE_NEEDS_DATA, TraversalEventBus
from docprep.model.nodes import (
    ColumnBlock,
    Columns,
    Image,
    ListNode,
    Stack,
    Table,
    Text,
    Toc,
)
from docprep.normalizer.preprocessor import (
    DocumentNormalizer,
    normalize_document,
    normalize_document_sync,
)


def _normalize(value, **kwargs):
    return normalize_document_sync(value, **kwargs).root


class TestShorthand:
    """Shorthand inputs produce the documented node kinds."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("hello", "hello"),
            (42, "42"),
            (False, "false"),
            (None, ""),
            ({}, ""),
            ({"text": None}, ""),
        ],
    )
    def test_scalars_become_text(self, value, expected):
        node = _normalize(value)
        assert isinstance(node, Text)
        assert node.text == expected

    def test_list_becomes_stack(self):
        node = _normalize(["a", 1, None])
        assert isinstance(node, Stack)
        assert [child.text for child in node.stack] == ["a", "1", ""]

    def test_nested_lists(self):
        node = _normalize([["a"], "b"])
        assert isinstance(node.stack[0], Stack)
        assert node.stack[0].stack[0].text == "a"

    def test_unrecognized_structure(self):
        with pytest.raises(UnrecognizedStructure):
            _normalize({"stack": ["ok", {"fontSize": 12}]})

    def test_input_not_mutated(self):
        document = {"stack": ["a", {"ul": ["b", None]}]}
        snapshot = copy.deepcopy(document)
        _normalize(document)
        assert document == snapshot


class TestContainers:
    """Composite kinds normalize their children in order."""

    def test_columns(self):
        node = _normalize({"columns": ["left", {"text": "right"}]})
        assert isinstance(node, Columns)
        assert [c.text for c in node.columns] == ["left", "right"]

    def test_lists(self):
        node = _normalize({"ol": ["one", ["two", "three"]]})
        assert isinstance(node, ListNode)
        assert node.ordered is True
        assert isinstance(node.items[1], Stack)

    def test_column_block(self):
        node = _normalize({"columnCount": 2, "content": ["a", "b"]})
        assert isinstance(node, ColumnBlock)
        assert all(isinstance(c, Text) for c in node.content)

    def test_table_cells(self):
        node = _normalize(
            {"table": {"headerRows": 1, "body": [["H1", "H2"], [None, 3]]}}
        )
        assert isinstance(node, Table)
        assert [[cell.text for cell in row] for row in node.body] == [
            ["H1", "H2"],
            ["", "3"],
        ]

    def test_table_span_markers_untouched(self):
        marker = {"_span": True}
        node = _normalize(
            {"table": {"body": [[{"text": "wide", "colSpan": 2}, marker]]}}
        )
        assert node.body[0][0].attributes == {"colSpan": 2}
        assert node.body[0][1] == {"_span": True}

    def test_table_short_row(self):
        node = _normalize({"table": {"body": [["a", "b"], ["c"]]}})
        assert len(node.body[1]) == 1
        assert node.body[1][0].text == "c"

    def test_empty_table(self):
        node = _normalize({"table": {"body": []}})
        assert node.body == []

    def test_traversal_order(self):
        seen = []
        bus = TraversalEventBus()
        bus.subscribe(
            NODE_NORMALIZED,
            lambda node: seen.append(node.text) if isinstance(node, Text) else None,
        )
        normalize_document_sync(
            {"stack": ["a", {"columns": ["b", "c"]}, "d"]}, events=bus
        )
        assert seen == ["a", "b", "c", "d"]


class TestTextHandling:
    """References, nested text and outlines on text nodes."""

    def test_forward_page_reference(self):
        result = normalize_document_sync(
            [
                {"text": "see page", "pageReference": "end"},
                {"text": "The end", "id": "end"},
            ]
        )
        referrer, target = result.root.stack
        assert referrer.text == "00000"
        assert referrer.page_ref.node is target
        assert referrer.page_ref.pseudo is False
        assert result.references.unresolved() == []

    def test_backward_text_reference(self):
        result = normalize_document_sync(
            [{"text": "Title", "id": "t"}, {"textReference": "t"}]
        )
        target, referrer = result.root.stack
        assert referrer.text == ""
        assert referrer.text_ref.node is target

    def test_duplicate_identifier(self):
        with pytest.raises(DuplicateIdentifier):
            _normalize([{"text": "a", "id": "x"}, {"stack": [{"text": "b", "id": "x"}]}])

    def test_nested_text_description(self):
        node = _normalize({"text": {"text": "inner", "bold": True}})
        assert isinstance(node.text, list)
        assert node.text[0].text == "inner"
        assert node.text[0].attributes == {"bold": True}

    def test_nested_description_without_text(self):
        with pytest.raises(UnrecognizedStructure):
            _normalize({"text": {"image": "a.png"}})

    def test_nested_text_node(self):
        node = _normalize({"text": Text(text="inner")})
        assert node.text == [Text(text="inner")]

    def test_inline_runs(self):
        node = _normalize({"text": ["plain ", {"text": "bold", "bold": True}]})
        assert [run.text for run in node.text] == ["plain ", "bold"]

    def test_outline_uses_node_text(self):
        node = _normalize({"text": "Chapter 1", "outline": 1})
        assert node.outline.level == 1
        assert node.outline.text == "Chapter 1"

    def test_custom_placeholder(self):
        options = NormalizerOptions(page_reference_placeholder="###")
        node = _normalize(
            [{"pageReference": "x"}, {"text": "x", "id": "x"}], options=options
        )
        assert node.stack[0].text == "###"

    def test_unresolved_reference_is_warning(self, caplog):
        result = normalize_document_sync({"pageReference": "nowhere"})
        assert result.references.unresolved() == ["nowhere"]
        assert "nowhere" in caplog.text

    def test_unresolved_reference_strict(self):
        with pytest.raises(UnresolvedReference):
            normalize_document_sync(
                {"pageReference": "nowhere"},
                options=NormalizerOptions(strict_references=True),
            )


class TestTocHandling:
    """TOC declarations and items across the tree."""

    def test_items_sorted(self):
        result = normalize_document_sync(
            [
                {"text": "banana", "tocItem": "fruit"},
                {"text": "apple", "tocItem": "fruit"},
                {"text": "cherry", "tocItem": "fruit"},
                {"toc": {"id": "fruit", "title": {"text": "Fruit"}}},
            ]
        )
        toc = result.root.stack[3]
        assert isinstance(toc, Toc)
        assert isinstance(toc.title, Text)
        assert [item.text for item in toc.items] == ["apple", "banana", "cherry"]

    def test_toc_before_items(self):
        result = normalize_document_sync(
            [
                {"toc": {}},
                {"text": "Second", "tocItem": True},
                {"text": "First", "tocItem": True},
            ]
        )
        toc = result.root.stack[0]
        assert toc.toc_id == "_default_"
        assert [item.text for item in toc.items] == ["First", "Second"]

    def test_section_headers(self):
        result = normalize_document_sync(
            [
                {"text": "Beta", "tocItem": "i"},
                {"text": "2 two", "tocItem": "i"},
                {"text": "Alpha", "tocItem": "i"},
                {"toc": {"id": "i", "showSectionHeaders": True}},
            ]
        )
        toc = result.root.stack[3]
        assert [item.text for item in toc.items] == [
            "0-9",
            "2 two",
            "A",
            "Alpha",
            "B",
            "Beta",
        ]

    def test_duplicate_toc(self):
        with pytest.raises(DuplicateTocIdentifier):
            _normalize([{"toc": {"id": "a"}}, {"toc": {"id": "a"}}])

    def test_late_item_gets_gap_instead_of_earlier_one(self):
        result = normalize_document_sync(
            [
                {"text": "apple", "tocItem": "t"},
                {"text": "cherry", "tocItem": "t"},
                {"toc": {"id": "t", "showSectionHeaders": True}},
                {"text": "avocado", "tocItem": "t"},
            ]
        )
        apple, cherry, toc, avocado = result.root.stack
        assert [item.text for item in toc.items] == [
            "A",
            "apple",
            "avocado",
            "C",
            "cherry",
        ]
        assert apple.margin is None
        assert avocado.margin == (0, 0, 0, 10.0)
        assert cherry.margin is None

    def test_orphan_toc(self):
        result = normalize_document_sync(
            [{"text": "x", "tocItem": "ghost"}, {"text": "y"}]
        )
        assert not any(isinstance(n, Toc) for n in result.root.stack)
        assert result.tocs.orphans() == ["ghost"]


class TestLeafKinds:
    """Image, canvas and QR handling."""

    def test_serialized_buffer_image(self):
        node = _normalize({"image": {"type": "Buffer", "data": [137, 80, 78, 71]}})
        assert isinstance(node, Image)
        assert node.image == b"\x89PNG"

    def test_image_path(self):
        node = _normalize({"image": "logo.png", "width": 50})
        assert node.image == "logo.png"
        assert node.attributes == {"width": 50}


class TestIdempotence:
    """Normalizing canonical output again yields the same tree."""

    def test_round_trip(self):
        document = {
            "stack": [
                "plain",
                {"text": "Intro", "id": "intro", "margin": 5},
                {"columns": ["a", ["b"]]},
                {"ul": ["x", "y"]},
                {"table": {"body": [["h", {"_span": True}], [None, 1]]}},
                {"image": "logo.png"},
                {"qr": "data"},
            ]
        }
        first = _normalize(document)
        second = _normalize(copy.deepcopy(first))
        assert second == first


class TestTableData:
    """Tables backed by an external row source."""

    def test_listener_fills_rows_before_cells_are_normalized(self):
        bus = TraversalEventBus()

        def fill(table, context):
            table.body.append(["row", 7])
            table.data = None

        bus.subscribe(TABLE_NEEDS_DATA, fill)
        node = normalize_document_sync(
            {
                "table": {"body": [["Name", "Qty"]]},
                "data": {"connection": None, "query": None, "columns": []},
            },
            events=bus,
        ).root
        assert node.data is None
        assert [cell.text for cell in node.body[1]] == ["row", "7"]

    def test_without_listener_keeps_data(self, caplog):
        node = _normalize(
            {"table": {"body": [["a"]]}, "data": {"query": "select 1"}}
        )
        assert node.data.query == "select 1"
        assert "not consumed" in caplog.text


class TestDocumentNormalizer:
    """Tests for the DocumentNormalizer entry points."""

    def test_fresh_state_per_run(self):
        document = {"text": "a", "id": "a"}
        normalize_document_sync(document)
        normalize_document_sync(document)

    def test_async_entry_point(self):
        result = asyncio.run(normalize_document(["x"]))
        assert result.root.stack[0].text == "x"

    def test_normalizer_default_context(self):
        normalizer = DocumentNormalizer()
        node = asyncio.run(normalizer.normalize("x"))
        assert node.text == "x"
        assert normalizer.context.tocs.options is normalizer.context.options
