# tests/conftest.py
import json
from typing import Any, Dict, List

import pytest
import requests
from fastapi import Body, FastAPI, HTTPException
from fastapi.testclient import TestClient

from projsync.client import ProjectStoreClient


# --- In-memory stand-in for the projects service ---
class FakeStore:
    def __init__(self):
        self.projects: List[Dict[str, Any]] = []
        self.fail_ids: set = set()       # PUTs to these ids answer 500
        self.writes: List[Any] = []      # ids in the order PUTs arrived
        self.reads = 0
        self.next_id = 1

    def find(self, project_id: str):
        for p in self.projects:
            if str(p.get("id")) == project_id:
                return p
        return None


def make_app(store: FakeStore) -> FastAPI:
    app = FastAPI(title="fake projects service")

    @app.get("/api/health")
    def health():
        return {"status": "ok"}

    @app.get("/api/projects")
    def list_projects():
        store.reads += 1
        return store.projects

    @app.put("/api/projects/{project_id}")
    def update_project(project_id: str, fields: Dict[str, Any] = Body(...)):
        store.writes.append(project_id)
        if project_id in store.fail_ids:
            raise HTTPException(500, "Failed to update project")
        p = store.find(project_id)
        if p is None:
            raise HTTPException(404, "Project not found")
        p.update({k: v for k, v in fields.items() if k != "id"})
        return {"message": "Project updated successfully"}

    @app.post("/api/projects/bulk")
    def bulk_create(payload: Dict[str, Any] = Body(...)):
        projects = payload.get("projects")
        if not isinstance(projects, list):
            raise HTTPException(400, "Projects must be an array")
        added, errors = 0, []
        for i, p in enumerate(projects):
            if not isinstance(p, dict):
                errors.append(f"Row {i + 1}: not an object")
                continue
            store.projects.append({**p, "id": store.next_id})
            store.next_id += 1
            added += 1
        return {"success": True, "addedCount": added, "errors": errors}

    @app.delete("/api/projects")
    def delete_projects(payload: Dict[str, Any] = Body(...)):
        ids = {str(i) for i in payload.get("ids", [])}
        before = len(store.projects)
        store.projects = [p for p in store.projects if str(p.get("id")) not in ids]
        return {"success": True, "deletedCount": before - len(store.projects)}

    return app


class DownSession:
    """Session whose every call fails like a refused connection."""
    def _fail(self, *args, **kwargs):
        raise requests.ConnectionError("connection refused")

    get = put = post = request = _fail


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def client(store):
    with TestClient(make_app(store)) as tc:
        yield ProjectStoreClient(base_url="http://testserver", session=tc, timeout=5)


@pytest.fixture
def down_client():
    return ProjectStoreClient(base_url="http://localhost:1", session=DownSession(), timeout=1)


# --- Seed data: director spellings as they show up after an Excel import ---
@pytest.fixture
def seed_projects(store):
    store.projects = [
        {"id": 1, "project_name": "Warehouse A", "project_director": "ANCHY VERO",
         "updated_contract_amount": 1_000_000, "contract_billed": 250_000, "project_status": "OPEN"},
        {"id": 2, "project_name": "Warehouse B", "project_director": "Anchy Vero",
         "updated_contract_amount": 500_000, "contract_billed": 500_000, "project_status": "CLOSED"},
        {"id": 3, "project_name": "Plant C", "project_director": "PAUL PASCUAL ",
         "updated_contract_amount": 2_000_000, "contract_billed": 0, "project_status": "OPEN"},
        {"id": 4, "project_name": "Office D", "project_director": "GEORGE URZAL",
         "updated_contract_amount": 300_000, "contract_billed": 100_000, "project_status": "OPEN"},
        {"id": 5, "project_name": "Office E", "project_director": None,
         "updated_contract_amount": 0, "contract_billed": 0, "project_status": "OPEN"},
        {"id": 6, "project_name": "Depot F", "project_director": "Jane Roe",
         "updated_contract_amount": 100_000, "contract_billed": 0, "project_status": "OPEN"},
    ]
    store.next_id = 7
    return store.projects


TITLE_CASE = {
    "ANCHY VERO": "Anchy Vero",
    "ANCHY VERO ": "Anchy Vero",
    "PAUL PASCUAL": "Paul Pascual",
    "PAUL PASCUAL ": "Paul Pascual",
    "GEORGE URZAL": "George Urzal",
    "GEORGE URZAL ": "George Urzal",
    "Paul Pascual": "Paul Pascual",
}


@pytest.fixture
def profiles_file(tmp_path):
    data = {
        "profiles": {
            "title-case": {"field": "project_director", "mapping": TITLE_CASE},
            "excel-upper": {"field": "project_director", "mapping": {"Anchy Vero": "ANCHY VERO"}},
        }
    }
    path = tmp_path / "profiles.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path
