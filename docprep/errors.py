"""Errors raised while normalizing a document description."""

from typing import Any

_MAX_REPR = 200


def _describe(value: Any) -> str:
    text = repr(value)
    if len(text) > _MAX_REPR:
        text = text[: _MAX_REPR - 3] + "..."
    return text


class DocumentStructureError(ValueError):
    """Base class for fatal document description errors."""


class UnrecognizedStructure(DocumentStructureError):
    """Raised when a value matches none of the known node kinds."""

    def __init__(self, value: Any) -> None:
        super().__init__(f"Unrecognized document structure: {_describe(value)}")
        self.value = value


class DuplicateIdentifier(DocumentStructureError):
    """Raised when two concrete nodes declare the same ``id``."""

    def __init__(self, identifier: str) -> None:
        super().__init__(f"Node id '{identifier}' already exists")
        self.identifier = identifier


class DuplicateTocIdentifier(DocumentStructureError):
    """Raised when two concrete TOC nodes declare the same TOC id."""

    def __init__(self, toc_id: str) -> None:
        super().__init__(f"TOC '{toc_id}' already exists")
        self.toc_id = toc_id


class UnresolvedReference(DocumentStructureError):
    """Raised in strict mode when references point at ids never declared."""

    def __init__(self, identifiers: list[str]) -> None:
        names = ", ".join(f"'{i}'" for i in identifiers)
        super().__init__(f"Unresolved node reference(s): {names}")
        self.identifiers = identifiers
