import logging
from typing import Any, Dict, List

import requests

from projsync.errors import ApplyFailure, SourceUnavailable
from projsync.normalizers.types import Record
from projsync.settings import API_BASE_URL, HTTP_TIMEOUT

log = logging.getLogger(__name__)


def _ok(r) -> bool:
    return 200 <= r.status_code < 300


def _body_snippet(r) -> str:
    return (r.text or "")[:400]


class ProjectStoreClient:
    """
    Thin wrapper around the projects service HTTP API.

    Reads raise SourceUnavailable (fatal for a run); writes raise
    ApplyFailure (recorded per change / per batch by the caller).
    Any object with requests.Session's get/put/post/request methods can
    be passed as `session`.
    """
    def __init__(self, base_url: str | None = None, session=None, timeout: float | None = None):
        self.base_url = (base_url or API_BASE_URL).rstrip("/")
        self.timeout = timeout or HTTP_TIMEOUT
        if session is None:
            session = requests.Session()
            session.headers.update({"Content-Type": "application/json"})
        self.session = session

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    # ------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------
    def healthz(self) -> Dict[str, Any]:
        try:
            r = self.session.get(self._url("/api/health"), timeout=self.timeout)
        except requests.RequestException as e:
            raise SourceUnavailable(f"health check failed: {e}") from e
        if not _ok(r):
            raise SourceUnavailable(f"health check returned HTTP {r.status_code}")
        return r.json()

    def list_projects(self) -> List[Record]:
        """GET every project in one call (the service does not paginate)."""
        url = self._url("/api/projects")
        try:
            r = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise SourceUnavailable(f"failed to fetch projects from {url}: {e}") from e
        if not _ok(r):
            raise SourceUnavailable(f"failed to fetch projects: HTTP {r.status_code} {_body_snippet(r)}")
        try:
            data = r.json()
        except ValueError as e:
            raise SourceUnavailable(f"projects response is not JSON: {e}") from e
        if not isinstance(data, list) or not all(isinstance(p, dict) for p in data):
            raise SourceUnavailable("projects response is not a list of objects")
        log.info("fetched %d project(s) from %s", len(data), url)
        return data

    # ------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------
    def update_project(self, project_id, fields: Dict[str, Any]) -> bool:
        """PUT a partial update for one project. True on success, ApplyFailure otherwise."""
        try:
            r = self.session.put(self._url(f"/api/projects/{project_id}"), json=fields, timeout=self.timeout)
        except (requests.RequestException, TypeError, ValueError) as e:
            # TypeError/ValueError: the payload could not be encoded as JSON
            raise ApplyFailure(f"update of project {project_id} failed: {e}", record_id=project_id) from e
        if not _ok(r):
            raise ApplyFailure(
                f"update of project {project_id} returned HTTP {r.status_code}: {_body_snippet(r)}",
                record_id=project_id, status=r.status_code,
            )
        return True

    def bulk_create(self, records: List[Record]) -> Dict[str, Any]:
        """POST a batch of full records. Returns {"addedCount": int, "errors": [...]}."""
        try:
            r = self.session.post(self._url("/api/projects/bulk"), json={"projects": records}, timeout=self.timeout)
        except (requests.RequestException, TypeError, ValueError) as e:
            raise ApplyFailure(f"bulk create of {len(records)} project(s) failed: {e}") from e
        if not _ok(r):
            raise ApplyFailure(
                f"bulk create returned HTTP {r.status_code}: {_body_snippet(r)}", status=r.status_code
            )
        try:
            data = r.json()
        except ValueError as e:
            raise ApplyFailure(f"bulk create response is not JSON: {e}") from e
        return {"addedCount": int(data.get("addedCount", 0) or 0), "errors": list(data.get("errors") or [])}

    def delete_projects(self, ids: List[Any]) -> int:
        """DELETE a list of project ids. Returns how many the service removed."""
        try:
            r = self.session.request("DELETE", self._url("/api/projects"), json={"ids": list(ids)}, timeout=self.timeout)
        except requests.RequestException as e:
            raise ApplyFailure(f"delete of {ids} failed: {e}") from e
        if not _ok(r):
            raise ApplyFailure(f"delete of {ids} returned HTTP {r.status_code}: {_body_snippet(r)}", status=r.status_code)
        try:
            return int(r.json().get("deletedCount", 0))
        except (ValueError, AttributeError, TypeError):
            return 0
