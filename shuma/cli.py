#!/usr/bin/env python3
"""
CLI for the Shuma valuation support engine.

Usage:
    python -m shuma.cli normalize "<address>"
    python -m shuma.cli ingest <rows_json> [--store <fingerprints_json>] [--reference-date YYYY-MM-DD]
    python -m shuma.cli value <request_json>
    python -m shuma.cli facts <facts_json> [--as-of ISO_DATETIME]

Examples:
    # Normalise a free-text address
    python -m shuma.cli normalize "רח' ויצמן 12 תל אביב דירה 4"

    # Ingest a batch, deduplicating against earlier runs
    python -m shuma.cli ingest feeds/batch.json --store data/fingerprints.json

    # Value range from {"subject": {...}, "pool": [...], "top_k": 5}
    python -m shuma.cli value requests/subject.json
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from shuma.address import fuzzy_address_score, normalize_israeli_address
from shuma.comp_engine import (
    ComparableCandidate,
    SubjectPropertyFeatures,
    calculate_valuation_range,
    rank_comparables,
)
from shuma.factual import build_factual_data_layer
from shuma.ingestion import JsonFileFingerprintStore, run_ingestion_pipeline
from utils.coercion import parse_iso_date, parse_iso_datetime, to_float
from utils.config import Config
from utils.formatting import format_currency


def load_json(path: str):
    """
    Read a JSON document from disk.

    Raises:
        FileNotFoundError: Path does not exist
        json.JSONDecodeError: File is not valid JSON
    """
    input_path = Path(path)
    if not input_path.exists():
        raise FileNotFoundError(path)
    with open(input_path, "r", encoding="utf-8") as f:
        return json.load(f)


def emit(payload) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def cmd_normalize(args):
    """Normalise one address, optionally scoring it against a second one."""
    result = normalize_israeli_address(args.address).to_dict()
    if args.compare:
        result["fuzzy_score"] = fuzzy_address_score(args.address, args.compare)
    emit(result)
    return 0


def cmd_ingest(args):
    """Run a JSON batch of raw rows through the ingestion pipeline."""
    rows = load_json(args.rows_file)
    if isinstance(rows, dict):
        rows = rows.get("rows", [])
    if not isinstance(rows, list):
        print("Error: Expected a JSON list of rows", file=sys.stderr)
        return 1

    reference_date = None
    if args.reference_date:
        reference_date = parse_iso_date(args.reference_date)
        if reference_date is None:
            print(f"Error: Invalid reference date: {args.reference_date}", file=sys.stderr)
            return 1

    store = JsonFileFingerprintStore(args.store) if args.store else None
    result = run_ingestion_pipeline(rows, reference_date=reference_date, fingerprint_store=store)
    emit(result.to_dict())
    return 0


def cmd_value(args):
    """Rank a comparable pool for a subject and print the value range."""
    request = load_json(args.request_file)
    if not isinstance(request, dict) or not isinstance(request.get("subject"), dict):
        print("Error: Expected an object with 'subject' and 'pool'", file=sys.stderr)
        return 1

    top_k = request.get("top_k")
    if top_k is None:
        top_k = Config.load().default_top_k
    top_k = to_float(top_k)
    if top_k is None:
        print(f"Error: Invalid top_k: {request.get('top_k')}", file=sys.stderr)
        return 1

    subject = SubjectPropertyFeatures.from_dict(request["subject"])
    pool = [
        ComparableCandidate.from_dict(c)
        for c in request.get("pool") or []
        if isinstance(c, dict)
    ]

    ranked = rank_comparables(subject, pool, int(top_k)) if pool else []
    summary = calculate_valuation_range(ranked)

    emit({
        "comparables": [c.to_dict() for c in ranked],
        "valuation": summary.to_dict(),
    })
    if summary.is_sufficient:
        print(
            f"Range: {format_currency(summary.low)} - {format_currency(summary.high)} "
            f"(mid {format_currency(summary.mid)})",
            file=sys.stderr,
        )
    else:
        print("No priced comparables supplied; no range produced", file=sys.stderr)
    return 0


def cmd_facts(args):
    """Build the reliability-annotated factual layer from a JSON input."""
    data = load_json(args.facts_file)
    if not isinstance(data, dict):
        print("Error: Expected a JSON object", file=sys.stderr)
        return 1
    as_of = None
    if args.as_of:
        as_of = parse_iso_datetime(args.as_of)
        if as_of is None:
            print(f"Error: Invalid as-of timestamp: {args.as_of}", file=sys.stderr)
            return 1

    emit(build_factual_data_layer(data, as_of=as_of).to_dict())
    return 0


def main(argv=None):
    """Main CLI entry point."""
    config = Config.load()
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    parser = argparse.ArgumentParser(
        description="Shuma Engine - valuation support for Israeli residential appraisal",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m shuma.cli normalize "רח' ויצמן 12 תל אביב"
    python -m shuma.cli ingest feeds/batch.json --reference-date 2025-01-01
    python -m shuma.cli value requests/subject.json
    python -m shuma.cli facts requests/facts.json

Output:
    JSON on stdout; human-readable summaries and errors on stderr
        """,
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    normalize_parser = subparsers.add_parser(
        "normalize",
        help="Normalise a Hebrew free-text address",
    )
    normalize_parser.add_argument("address", help="Raw address text")
    normalize_parser.add_argument(
        "--compare",
        help="Second address to fuzzy-score against",
    )
    normalize_parser.set_defaults(func=cmd_normalize)

    ingest_parser = subparsers.add_parser(
        "ingest",
        help="Ingest a JSON batch of raw transaction rows",
    )
    ingest_parser.add_argument("rows_file", help="Path to JSON list of rows")
    ingest_parser.add_argument(
        "--store",
        help="JSON fingerprint store for cross-run deduplication",
    )
    ingest_parser.add_argument(
        "--reference-date",
        help="Date recency is measured against (YYYY-MM-DD, default today)",
    )
    ingest_parser.set_defaults(func=cmd_ingest)

    value_parser = subparsers.add_parser(
        "value",
        help="Rank comparables and compute a value range",
    )
    value_parser.add_argument("request_file", help="Path to JSON with subject, pool, top_k")
    value_parser.set_defaults(func=cmd_value)

    facts_parser = subparsers.add_parser(
        "facts",
        help="Build the reliability-annotated factual data layer",
    )
    facts_parser.add_argument("facts_file", help="Path to JSON with property, transactions, planning")
    facts_parser.add_argument(
        "--as-of",
        help="Moment recency is measured from (ISO date or datetime, default now)",
    )
    facts_parser.set_defaults(func=cmd_facts)

    args = parser.parse_args(argv)
    try:
        return args.func(args)
    except FileNotFoundError as e:
        print(f"Error: File not found: {e}", file=sys.stderr)
        return 1
    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
