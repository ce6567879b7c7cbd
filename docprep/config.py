"""Options controlling a normalization run."""

from dataclasses import dataclass


@dataclass(frozen=True)
class NormalizerOptions:
    """Settings shared by the normalizer, reference registry and TOC assembler."""

    default_toc_id: str = "_default_"
    # Reserves room for the page number the layout stage substitutes later.
    page_reference_placeholder: str = "00000"
    # Minimum bottom margin kept above a TOC section header.
    toc_header_gap: float = 10.0
    numeric_section_label: str = "0-9"
    section_header_style: str = "tocSectionHeader"
    strict_references: bool = False
