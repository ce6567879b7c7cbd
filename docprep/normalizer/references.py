"""Identifier registry for node references.

Nodes declare an ``id``; other nodes point at it through ``pageReference``
or ``textReference``.  Either side may come first in traversal order, so
the referrer creates a pseudo record that the referent later claims.
"""

import logging
from collections.abc import Iterator

from docprep.errors import DuplicateIdentifier
from docprep.model.nodes import Node
from docprep.model.records import ReferenceRecord

logger = logging.getLogger(__name__)


class ReferenceRegistry:
    """Maps identifiers to reference records for one document run."""

    def __init__(self) -> None:
        self._records: dict[str, ReferenceRecord] = {}

    def declare(self, identifier: str, node: Node) -> ReferenceRecord:
        """Bind ``identifier`` to a concrete node.

        Raises DuplicateIdentifier if another concrete node already holds it.
        """
        record = self._records.get(identifier)
        if record is None:
            record = ReferenceRecord(node=node)
            self._records[identifier] = record
            logger.debug("Declared node id '%s'", identifier)
            return record

        if not record.pseudo:
            raise DuplicateIdentifier(identifier)

        record.node = node
        record.pseudo = False
        logger.debug("Resolved forward reference to node id '%s'", identifier)
        return record

    def reference(self, identifier: str) -> ReferenceRecord:
        """Return the record for ``identifier``, creating a pseudo one if needed."""
        record = self._records.get(identifier)
        if record is None:
            record = ReferenceRecord(node=None, pseudo=True)
            self._records[identifier] = record
            logger.debug("Created pseudo record for node id '%s'", identifier)
        return record

    def get(self, identifier: str) -> ReferenceRecord | None:
        return self._records.get(identifier)

    def unresolved(self) -> list[str]:
        """Identifiers that were referenced but never declared."""
        return [i for i, record in self._records.items() if record.pseudo]

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._records

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)
