"""Table-of-contents aggregation.

Text nodes join a TOC by naming its id in ``tocItem``; the ``Toc`` node
itself may appear before or after them.  Items are collected per id in
traversal order, then sorted by their displayed text and optionally split
into alphabetic sections with synthetic header entries.
"""

import logging
from collections.abc import Iterator

from docprep.config import NormalizerOptions
from docprep.errors import DuplicateTocIdentifier
from docprep.model.nodes import Text, Toc
from docprep.model.records import TocRecord
from docprep.utils import plain_text, with_bottom_margin

logger = logging.getLogger(__name__)

_NUMERIC = "numeric"


def sort_toc_items(items: list[Text]) -> list[Text]:
    """Sort items by displayed text (ordinal, stable)."""
    return sorted(items, key=plain_text)


def build_toc_entries(
    items: list[Text],
    show_section_headers: bool = False,
    options: NormalizerOptions | None = None,
) -> list[Text]:
    """Build the final entry list of a TOC from its collected items.

    With ``show_section_headers`` a header entry is inserted before the
    first item of every leading character, and a single ``0-9`` header
    covers a leading run of digit items.  The item preceding a header gets
    at least ``toc_header_gap`` of bottom margin.
    """
    options = options or NormalizerOptions()
    entries = sort_toc_items(items)
    if not show_section_headers or not entries:
        return entries

    result: list[Text] = []
    section: str | None = None

    if plain_text(entries[0])[:1].isdecimal():
        result.append(_section_header(options.numeric_section_label, options))
        section = _NUMERIC

    for item in entries:
        lead = plain_text(item)[:1]
        # Digits only stay in the numeric section when it is the current one.
        if lead and not (section == _NUMERIC and lead.isdecimal()):
            key = lead.upper()
            if key != section:
                if result:
                    previous = result[-1]
                    previous.margin = with_bottom_margin(
                        previous.margin, options.toc_header_gap
                    )
                result.append(_section_header(key, options))
                section = key
        result.append(item)

    return result


def _section_header(label: str, options: NormalizerOptions) -> Text:
    return Text(text=label, attributes={"style": options.section_header_style})


class TocAssembler:
    """Collects TOC items and declarations for one document run."""

    def __init__(self, options: NormalizerOptions | None = None) -> None:
        self.options = options or NormalizerOptions()
        self._records: dict[str, TocRecord] = {}

    def add_item(self, node: Text) -> None:
        """Append ``node`` to every TOC named in its ``toc_item`` list."""
        for index, toc_id in enumerate(node.toc_item):
            if not isinstance(toc_id, str):
                toc_id = self.options.default_toc_id
                node.toc_item[index] = toc_id
            self._record(toc_id).items.append(node)

    def claim(self, toc: Toc) -> TocRecord:
        """Make ``toc`` the concrete node for its id and adopt collected items.

        Raises DuplicateTocIdentifier if the id already has a concrete TOC.
        """
        if not toc.toc_id:
            toc.toc_id = self.options.default_toc_id

        record = self._records.get(toc.toc_id)
        if record is not None and not record.pseudo:
            raise DuplicateTocIdentifier(toc.toc_id)
        if record is None:
            record = self._record(toc.toc_id)

        record.pseudo = False
        record.node = toc
        # Section headers and their spacing are applied once, in finalize.
        toc.items = sort_toc_items(record.items)
        logger.debug(
            "Claimed TOC '%s' with %d pending item(s)", toc.toc_id, len(record.items)
        )
        return record

    def finalize(self) -> None:
        """Build the entries of every concrete TOC from all of its items.

        Runs once the whole tree has been walked, so items declared after the
        ``Toc`` node are included and only the final neighbours of each
        section header get the header gap.
        """
        for record in self._records.values():
            if record.pseudo or record.node is None:
                logger.debug("TOC '%s' has items but no TOC node", record.toc_id)
                continue
            record.node.items = build_toc_entries(
                record.items, record.node.show_section_headers, self.options
            )
            logger.info("TOC '%s': %d item(s)", record.toc_id, len(record.items))

    def get(self, toc_id: str) -> TocRecord | None:
        return self._records.get(toc_id)

    def orphans(self) -> list[str]:
        """TOC ids that collected items but were never placed in the document."""
        return [i for i, record in self._records.items() if record.pseudo]

    def _record(self, toc_id: str) -> TocRecord:
        record = self._records.get(toc_id)
        if record is None:
            record = TocRecord(toc_id=toc_id)
            self._records[toc_id] = record
        return record

    def __contains__(self, toc_id: object) -> bool:
        return toc_id in self._records

    def __iter__(self) -> Iterator[TocRecord]:
        return iter(self._records.values())

    def __len__(self) -> int:
        return len(self._records)
