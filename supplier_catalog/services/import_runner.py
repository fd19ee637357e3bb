import time
import logging
import traceback
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from sqlalchemy.orm import Session

from supplier_catalog.exceptions import CatalogError
from supplier_catalog.models import ImportRun, ImportRunError

logger = logging.getLogger(__name__)


@dataclass
class ImportIssue:
    """A row or product that was skipped during a run."""
    entity_type: str  # row, product
    message: str
    entity_id: Optional[str] = None
    error_code: Optional[str] = None
    raw: Optional[dict] = None


@dataclass
class ImportOutcome:
    """What an import job hands back to the runner."""
    read_count: int = 0
    write_count: int = 0
    result: dict[str, Any] = field(default_factory=dict)
    issues: list[ImportIssue] = field(default_factory=list)


class ImportRunner:
    """
    Records bulk import / catalog sync executions in import_runs and import_run_errors.

    There is no locking: callers (cron, a job queue) must guarantee at most one run per
    supplier/file at a time. Issues are written after the job finishes because the jobs commit
    and roll back per product on the same session.
    """
    def __init__(self, session: Session, job: str, supplier: str):
        self.session = session
        self.job = job
        self.supplier = supplier
        self.run_id = None

    def run(self, func: Callable[[], ImportOutcome], meta: Optional[dict] = None) -> ImportRun:
        import_run = ImportRun(job=self.job, supplier=self.supplier, status="running", meta=meta or {})
        self.session.add(import_run)
        self.session.commit()
        self.run_id = import_run.id

        start_time = time.time()
        logger.info(f"[IMPORT] Starting run {self.run_id} ({self.supplier}:{self.job})")

        outcome: Optional[ImportOutcome] = None
        failure: Optional[Exception] = None
        failure_stack: Optional[str] = None
        try:
            outcome = func()
        except Exception as e:
            failure = e
            failure_stack = traceback.format_exc()
            logger.error(f"[IMPORT] Run {self.run_id} failed: {e}")
            self.session.rollback()

        import_run = self.session.get(ImportRun, self.run_id)
        if outcome is not None:
            import_run.read_count = outcome.read_count
            import_run.write_count = outcome.write_count
            import_run.result = outcome.result
            for issue in outcome.issues:
                self.log_error(import_run, issue.entity_type, issue.message, entity_id=issue.entity_id,
                               error_code=issue.error_code, raw=issue.raw)
            import_run.status = "success" if not outcome.issues else "partial"
        else:
            import_run.status = "fail"
            code = failure.error_code if isinstance(failure, CatalogError) else None
            self.log_error(import_run, "system", str(failure), stack=failure_stack, error_code=code)

        import_run.finished_at = datetime.now(timezone.utc)
        import_run.duration_ms = int((time.time() - start_time) * 1000)
        self.session.commit()
        logger.info(f"[IMPORT] Run {self.run_id} completed. Status: {import_run.status}, "
                    f"Written: {import_run.write_count}, Errors: {import_run.error_count}")

        if failure is not None:
            raise failure
        return import_run

    def log_error(self, import_run: ImportRun, entity_type: str, message: str,
                  stack: Optional[str] = None, entity_id: Optional[str] = None,
                  error_code: Optional[str] = None, raw: Optional[dict] = None):
        error_entry = ImportRunError(
            run_id=import_run.id,
            entity_type=entity_type,
            entity_id=entity_id,
            error_code=error_code,
            message=message,
            stack=stack,
            raw=raw
        )
        self.session.add(error_entry)
        import_run.error_count = (import_run.error_count or 0) + 1
