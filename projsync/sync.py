"""
Run orchestration: load -> plan -> apply -> verify.

Both entry points are strictly sequential. SourceUnavailable and
ConfigurationError propagate to the caller; per-record write failures
end up in the returned summary.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Sequence

from projsync.applier import BatchResult, MigrationSummary, RunSummary, apply_batches, bulk_create_batches
from projsync.client import ProjectStoreClient
from projsync.errors import ApplyFailure, ConfigurationError, SourceUnavailable
from projsync.loaders import is_spreadsheet, load_records, rename_columns
from projsync.normalizers.profiles import NormalizationProfile
from projsync.planner import PendingChange, TransitionSummary, plan, value_histogram
from projsync.reports import format_histogram, format_transitions
from projsync.settings import BATCH_DELAY_MS, BATCH_SIZE

log = logging.getLogger(__name__)


@dataclass
class NormalizationResult:
    profile: str
    field: str
    records_read: int
    pending: List[PendingChange]
    transitions: TransitionSummary
    summary: RunSummary
    final_histogram: Dict[str, int] = field(default_factory=dict)
    dry_run: bool = False

    def to_report(self) -> Dict[str, Any]:
        return {
            "profile": self.profile,
            "field": self.field,
            "dry_run": self.dry_run,
            "records_read": self.records_read,
            "transitions": self.transitions,
            "attempted": self.summary.total_attempted,
            "succeeded": self.summary.total_succeeded,
            "failed": [c.id for c in self.summary.failed_changes],
            "final_histogram": self.final_histogram,
        }


@dataclass
class MigrationResult:
    records_read: int
    records_sent: int
    deleted: int
    summary: MigrationSummary
    histogram: Dict[str, int] = field(default_factory=dict)
    dry_run: bool = False


def _delay_seconds(delay_ms) -> float:
    return max(0, delay_ms if delay_ms is not None else BATCH_DELAY_MS) / 1000.0


def _log_batch(result: BatchResult):
    if result.failed_ids:
        log.warning("batch %d: %d of %d updated, failed ids %s",
                    result.batch_index, result.succeeded, result.attempted, result.failed_ids)
    else:
        log.info("batch %d: %d of %d updated", result.batch_index, result.succeeded, result.attempted)


def run_normalization(
    client: ProjectStoreClient,
    profile: NormalizationProfile,
    *,
    source: str | None = None,
    sheet=None,
    batch_size: int | None = None,
    delay_ms: int | None = None,
    dry_run: bool = False,
    verify: bool = True,
    sleep=time.sleep,
) -> NormalizationResult:
    """
    Canonicalize `profile.field` across the store.

    `source` defaults to the store itself; a snapshot file can be used to
    plan instead, but writes always go to the store by record id.
    """
    if not profile.field:
        raise ConfigurationError("profile has no field name")
    batch_size = BATCH_SIZE if batch_size is None else batch_size
    if batch_size < 1:
        raise ConfigurationError(f"batch size must be >= 1, got {batch_size}")
    # workbook rows carry no store ids, so there is nothing to write back to
    if source is not None and is_spreadsheet(source):
        raise ConfigurationError(
            f"cannot normalize from workbook {source}: use the service or a JSON/CSV export with ids"
        )

    log.info("normalizing %s with profile %r", profile.field, profile.name)

    # 1) Load (fatal on failure: nothing planned, nothing written)
    if source is None:
        records = client.list_projects()
    else:
        records = load_records(source, client=client, sheet=sheet)
    log.info("found %d projects", len(records))

    # 2) Plan
    pending, transitions = plan(records, profile.field, profile.mapping)
    log.info("%d projects need %s updates", len(pending), profile.field)
    if transitions:
        log.info("updates to be made:\n%s", "\n".join(format_transitions(transitions)))

    result = NormalizationResult(
        profile=profile.name,
        field=profile.field,
        records_read=len(records),
        pending=pending,
        transitions=transitions,
        summary=RunSummary(),
        dry_run=dry_run,
    )
    if not pending:
        log.info("No updates needed")
        return result
    if dry_run:
        log.info("dry run: %d update(s) not applied", len(pending))
        return result

    # 3) Apply, one record at a time
    def apply_one(change: PendingChange) -> bool:
        return client.update_project(change.id, change.payload())

    result.summary = apply_batches(
        pending, batch_size, apply_one, _delay_seconds(delay_ms), sleep=sleep, on_batch=_log_batch
    )
    log.info(result.summary.describe())
    if result.summary.failed_changes:
        log.warning("failed project ids: %s", [c.id for c in result.summary.failed_changes])

    # 4) Verify: report-only re-read of the store
    if verify:
        result.final_histogram = verify_store(client, profile.field)

    return result


def verify_store(client: ProjectStoreClient, field_name: str) -> Dict[str, int]:
    """Re-read the store and count current values. Never writes."""
    log.info("verifying updates...")
    try:
        records = client.list_projects()
    except SourceUnavailable as e:
        # writes already happened; a failed audit read doesn't undo them
        log.error("verification read failed: %s", e)
        return {}
    hist = value_histogram(records, field_name)
    log.info("final %s counts:\n%s", field_name, "\n".join(format_histogram(hist)))
    return hist


def prepare_migration_records(
    records: Sequence[Dict[str, Any]],
    column_map: Mapping[str, str] | None,
    required_field: str | None,
) -> List[Dict[str, Any]]:
    """Rename headers (if a map is given) and drop rows whose required field is blank."""
    out = rename_columns(list(records), column_map) if column_map else [dict(r) for r in records]
    if required_field:
        before = len(out)
        out = [r for r in out if str(r.get(required_field) or "").strip()]
        log.info("%d valid projects after filtering (%d dropped)", len(out), before - len(out))
    return out


def run_migration(
    client: ProjectStoreClient,
    source: str,
    *,
    column_map: Mapping[str, str] | None = None,
    required_field: str | None = "project_name",
    placeholder_ids: Sequence[Any] = (),
    sheet=None,
    batch_size: int | None = None,
    delay_ms: int | None = None,
    histogram_field: str = "project_director",
    dry_run: bool = False,
    sleep=time.sleep,
) -> MigrationResult:
    """Bulk-load a snapshot or workbook into the store."""
    batch_size = BATCH_SIZE if batch_size is None else batch_size
    if batch_size < 1:
        raise ConfigurationError(f"batch size must be >= 1, got {batch_size}")

    raw = load_records(source, client=client, sheet=sheet)
    log.info("found %d projects in %s", len(raw), source)
    records = prepare_migration_records(raw, column_map, required_field)
    hist = value_histogram(records, histogram_field)

    result = MigrationResult(
        records_read=len(raw),
        records_sent=0,
        deleted=0,
        summary=MigrationSummary(total_records=len(records)),
        histogram=hist,
        dry_run=dry_run,
    )
    if dry_run:
        log.info("dry run: %d project(s) would be migrated", len(records))
        return result

    # pre-flight: a dead service is fatal before anything is deleted or sent
    client.healthz()
    log.info("projects service at %s is up", client.base_url)

    if placeholder_ids:
        try:
            result.deleted = client.delete_projects(list(placeholder_ids))
            log.info("deleted placeholder project(s) %s", list(placeholder_ids))
        except ApplyFailure as e:
            log.warning("could not delete placeholder project(s) %s: %s", list(placeholder_ids), e)

    result.summary = bulk_create_batches(
        records, batch_size, client.bulk_create, _delay_seconds(delay_ms), sleep=sleep
    )
    result.records_sent = len(records)
    log.info(result.summary.describe())
    if hist:
        log.info("%s statistics:\n%s", histogram_field, "\n".join(format_histogram(hist)))
    return result
