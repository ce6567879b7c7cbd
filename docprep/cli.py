"""CLI entry point for the document normalizer."""

import argparse
import asyncio
import json
import logging
import sys
from collections import Counter
from pathlib import Path

from docprep.config import NormalizerOptions
from docprep.datasource import SqliteRowSource, table_data_listener
from docprep.errors import DocumentStructureError
from docprep.events import TABLE_NEEDS_DATA, TraversalEventBus
from docprep.normalizer.preprocessor import NormalizedDocument, normalize_document
from docprep.utils import iter_nodes


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the docprep CLI."""
    parser = argparse.ArgumentParser(
        prog="docprep",
        description="Normalize a JSON document description and report its structure",
    )
    parser.add_argument(
        "-i",
        "--input",
        required=True,
        help="JSON file holding the document description",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail when a page/text reference names an id that is never declared",
    )
    parser.add_argument(
        "--toc-header-gap",
        type=float,
        default=NormalizerOptions.toc_header_gap,
        help="Bottom margin kept above TOC section headers",
    )
    parser.add_argument(
        "--sqlite-tables",
        action="store_true",
        help="Fill tables declaring 'data' from SQLite databases",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging (very verbose)",
    )

    args = parser.parse_args(argv)

    # Configure logging
    if args.debug:
        log_level = logging.DEBUG
    elif args.verbose:
        log_level = logging.INFO
    else:
        log_level = logging.WARNING

    logging.basicConfig(
        level=log_level,
        format="%(levelname)s: %(message)s",
    )

    input_path = Path(args.input).resolve()
    if not input_path.is_file():
        print(f"Error: Input file does not exist: {input_path}", file=sys.stderr)
        return 1

    try:
        document = json.loads(input_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        print(f"Error: {input_path.name} is not valid JSON: {e}", file=sys.stderr)
        return 1

    options = NormalizerOptions(
        strict_references=args.strict,
        toc_header_gap=args.toc_header_gap,
    )
    source = SqliteRowSource(input_path.parent) if args.sqlite_tables else None

    try:
        result = asyncio.run(_normalize(document, options, source))
    except DocumentStructureError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        logging.debug("Full traceback:", exc_info=True)
        return 1

    print(render_summary(result))
    return 0


async def _normalize(
    document: object,
    options: NormalizerOptions,
    source: SqliteRowSource | None,
) -> NormalizedDocument:
    events = TraversalEventBus()
    if source is None:
        return await normalize_document(document, options, events)
    return await events.run_scoped(
        TABLE_NEEDS_DATA,
        table_data_listener(source),
        lambda: normalize_document(document, options, events),
    )


def render_summary(result: NormalizedDocument) -> str:
    """Describe the normalized tree: node kinds, ids and TOCs."""
    kinds = Counter(node.kind for node in iter_nodes(result.root))
    lines = ["Nodes:"]
    for kind, count in sorted(kinds.items()):
        lines.append(f"  {kind:<12} {count}")

    unresolved = result.references.unresolved()
    declared = [i for i in result.references if i not in unresolved]
    lines.append(f"Declared ids: {', '.join(declared) or '-'}")
    if unresolved:
        lines.append(f"Unresolved references: {', '.join(unresolved)}")

    for record in result.tocs:
        if record.pseudo:
            lines.append(
                f"TOC '{record.toc_id}': {len(record.items)} item(s), never placed"
            )
        else:
            lines.append(f"TOC '{record.toc_id}': {len(record.items)} item(s)")

    return "\n".join(lines)


if __name__ == "__main__":
    sys.exit(main())
