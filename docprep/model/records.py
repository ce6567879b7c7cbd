"""Registry records shared between the normalizer and the layout stage."""

from dataclasses import dataclass, field

from docprep.model.nodes import Node, Text, Toc


@dataclass(eq=False)
class ReferenceRecord:
    """Slot for an identifier.

    A pseudo record is created by whoever mentions the identifier first
    (usually a ``pageReference``) and is bound to the real node later.
    """

    node: Node | None = None
    pseudo: bool = False

    @property
    def resolved(self) -> bool:
        return not self.pseudo and self.node is not None


@dataclass(eq=False)
class TocRecord:
    """Items collected for one TOC id, plus the concrete ``Toc`` once seen."""

    toc_id: str
    items: list[Text] = field(default_factory=list)
    pseudo: bool = True
    node: Toc | None = None
