"""Command-line interface for projsync.

Subcommands:
- normalize: canonicalize one field across the projects service
- migrate:   bulk-load a JSON snapshot or workbook into the service
- histogram: count the values of one field in a source
- summaries: per-director contract rollups of a source
- compare:   normalized source counts vs the service's counts

Exit codes: 0 ok, 1 fatal error (nothing or not everything ran), 2 some writes failed.
"""

from __future__ import annotations
import argparse
import logging

from projsync.client import ProjectStoreClient
from projsync.errors import ConfigurationError, SourceUnavailable, SyncError
from projsync.loaders import is_spreadsheet, load_column_map, load_records, rename_columns
from projsync.normalizers import get_profile, load_profiles
from projsync.planner import value_histogram
from projsync.reports import compare_counts, director_summaries, format_histogram, write_report
from projsync.settings import API_BASE_URL, BATCH_DELAY_MS, BATCH_SIZE, COLUMN_MAP_PATH, DEFAULT_FIELD, PROFILES_PATH
from projsync.setup_logging import setup_logging
from projsync.sync import run_migration, run_normalization

log = logging.getLogger("projsync")

EXIT_OK, EXIT_FATAL, EXIT_PARTIAL = 0, 1, 2


def _int_or_str(value: str | None):
    # "--sheet 2" is the third sheet and "--delete-placeholder 1" an integer id
    if value is None:
        return None
    return int(value) if value.isdigit() else value


def _add_batch_args(p: argparse.ArgumentParser):
    p.add_argument("--batch-size", type=int, default=BATCH_SIZE, help=f"Changes per batch (default {BATCH_SIZE})")
    p.add_argument("--delay-ms", type=int, default=BATCH_DELAY_MS,
                   help=f"Pause between batches in ms (default {BATCH_DELAY_MS})")
    p.add_argument("--dry-run", action="store_true", help="Plan and report, but write nothing")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="projsync", description="Sync project records with the projects service.")
    p.add_argument("--api", default=API_BASE_URL, help=f"Projects service base URL (default {API_BASE_URL})")
    p.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ...")
    sub = p.add_subparsers(dest="command", required=True)

    n = sub.add_parser("normalize", help="Canonicalize a field through a named profile")
    n.add_argument("--profile", required=True, help="Profile name from the profiles file")
    n.add_argument("--profiles", default=str(PROFILES_PATH), help="Profiles JSON file")
    n.add_argument("--field", default=None, help="Override the profile's field")
    n.add_argument("--source", default=None, help="Plan from this file/URL instead of the service")
    n.add_argument("--sheet", default=None, help="Workbook sheet name or index")
    n.add_argument("--no-verify", action="store_true", help="Skip the final re-read of the service")
    n.add_argument("--report", default=None, help="Write a JSON run report here")
    _add_batch_args(n)

    m = sub.add_parser("migrate", help="Bulk-create records from a snapshot or workbook")
    m.add_argument("source", help="JSON / xlsx / csv file")
    m.add_argument("--sheet", default=None, help="Workbook sheet name or index")
    m.add_argument("--column-map", default=None,
                   help=f"Header -> field JSON map (workbooks default to {COLUMN_MAP_PATH.name})")
    m.add_argument("--required-field", default="project_name", help="Drop rows where this field is blank")
    m.add_argument("--delete-placeholder", action="append", default=[], metavar="ID",
                   help="Delete this project id before migrating (repeatable)")
    _add_batch_args(m)

    h = sub.add_parser("histogram", help="Count values of a field")
    h.add_argument("source", help="File path or service URL")
    h.add_argument("--field", default=DEFAULT_FIELD)
    h.add_argument("--sheet", default=None)

    s = sub.add_parser("summaries", help="Per-director contract rollups")
    s.add_argument("source", help="File path or service URL")
    s.add_argument("--field", default=DEFAULT_FIELD)
    s.add_argument("--sheet", default=None)
    s.add_argument("--output", default=None, help="Write the summaries as JSON here")

    c = sub.add_parser("compare", help="Compare normalized source counts with the service")
    c.add_argument("source", help="File path of the source of truth")
    c.add_argument("--profile", required=True)
    c.add_argument("--profiles", default=str(PROFILES_PATH))
    c.add_argument("--sheet", default=None)
    c.add_argument("--column-map", default=None, help="Header -> field JSON map for workbooks")
    return p


# --------------------------------------------------------------------
# Commands
# --------------------------------------------------------------------
def cmd_normalize(args, client: ProjectStoreClient) -> int:
    profile = get_profile(load_profiles(args.profiles), args.profile)
    if args.field:
        profile = profile.model_copy(update={"field": args.field})

    try:
        result = run_normalization(
            client, profile,
            source=args.source, sheet=_int_or_str(args.sheet),
            batch_size=args.batch_size, delay_ms=args.delay_ms,
            dry_run=args.dry_run, verify=not args.no_verify,
        )
    except SourceUnavailable:
        log.info("Updated 0 of 0 projects (load failed, nothing attempted)")
        raise

    if args.report:
        write_report(args.report, result.to_report())
    return EXIT_PARTIAL if result.summary.failed_changes else EXIT_OK


def _column_map_for(path_arg, source: str):
    if path_arg:
        return load_column_map(path_arg)
    if is_spreadsheet(source):
        return load_column_map(COLUMN_MAP_PATH)
    return None


def cmd_migrate(args, client: ProjectStoreClient) -> int:
    result = run_migration(
        client, args.source,
        column_map=_column_map_for(args.column_map, args.source),
        required_field=args.required_field or None,
        placeholder_ids=[_int_or_str(i) for i in args.delete_placeholder],
        sheet=_int_or_str(args.sheet),
        batch_size=args.batch_size, delay_ms=args.delay_ms,
        dry_run=args.dry_run,
    )
    return EXIT_PARTIAL if result.summary.failed_batches else EXIT_OK


def cmd_histogram(args, client: ProjectStoreClient) -> int:
    records = load_records(args.source, client=client, sheet=_int_or_str(args.sheet))
    hist = value_histogram(records, args.field)
    log.info("%d distinct %s value(s):\n%s", len(hist), args.field, "\n".join(format_histogram(hist)))
    return EXIT_OK


def cmd_summaries(args, client: ProjectStoreClient) -> int:
    records = load_records(args.source, client=client, sheet=_int_or_str(args.sheet))
    rows = director_summaries(records, field=args.field)
    for r in rows:
        log.info("%s: %d projects, %.1fM contract value, %.1fM outstanding",
                 r["directorName"], r["projectCount"],
                 r["totalContractAmount"] / 1e6, r["totalOutstandingBalance"] / 1e6)
    if args.output:
        write_report(args.output, {"directors": rows})
    return EXIT_OK


def cmd_compare(args, client: ProjectStoreClient) -> int:
    profile = get_profile(load_profiles(args.profiles), args.profile)
    source_records = load_records(args.source, client=client, sheet=_int_or_str(args.sheet))
    col_map = _column_map_for(args.column_map, args.source)
    if col_map:
        source_records = rename_columns(source_records, col_map)

    norm = profile.normalizer()
    expected = value_histogram([norm.normalize_record(profile.field, r) for r in source_records], profile.field)
    actual = value_histogram(client.list_projects(), profile.field)

    mismatches = compare_counts(expected, actual)
    for m in mismatches:
        log.warning("%s: source=%d store=%d", m.value, m.expected, m.actual)
    if mismatches:
        log.info("%d %s value(s) differ", len(mismatches), profile.field)
    else:
        log.info("all %d %s value(s) match", len(expected), profile.field)
    return EXIT_PARTIAL if mismatches else EXIT_OK


COMMANDS = {
    "normalize": cmd_normalize,
    "migrate": cmd_migrate,
    "histogram": cmd_histogram,
    "summaries": cmd_summaries,
    "compare": cmd_compare,
}


def main(argv: list[str] | None = None, client: ProjectStoreClient | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)
    client = client or ProjectStoreClient(args.api)

    try:
        return COMMANDS[args.command](args, client)
    except ConfigurationError as e:
        log.error("configuration error: %s", e)
    except SourceUnavailable as e:
        log.error("source unavailable: %s", e)
    except SyncError as e:
        log.error("%s failed: %s", args.command, e)
    return EXIT_FATAL


if __name__ == "__main__":
    raise SystemExit(main())
