from datetime import datetime

import pytest

from errors import Forbidden, ValidationFailed
from projects import ProjectService
from schemas import PROJECTS, Identity

ADMIN = Identity(id="admin", email="admin@example.com", role="admin")


@pytest.fixture
def service(db):
    return ProjectService(db)


def project_payload(**overrides):
    payload = {"title": "Backyard deck", "imageUrl": "https://example.com/deck.jpg"}
    payload.update(overrides)
    return payload


def test_create_project_sets_defaults(service, db):
    project = service.create_project(ADMIN, project_payload(description="  Cedar deck  ", category="ongoing"))
    assert project["title"] == "Backyard deck"
    assert project["description"] == "Cedar deck"
    assert project["imageUrl"] == "https://example.com/deck.jpg"
    assert project["category"] == "ongoing"
    assert project["status"] == "active"
    assert project["uploadedBy"] == "admin@example.com"
    assert db[PROJECTS].count_documents({}) == 1


def test_create_project_ignores_client_status(service):
    project = service.create_project(ADMIN, project_payload(status="inactive", uploadedBy="mallory"))
    assert project["status"] == "active"
    assert project["uploadedBy"] == "admin@example.com"


def test_create_project_requires_admin(service, db):
    with pytest.raises(Forbidden):
        service.create_project(Identity(id="x", email="x@example.com", role="editor"), project_payload())
    assert db[PROJECTS].count_documents({}) == 0


def test_create_project_validates(service, db):
    with pytest.raises(ValidationFailed) as exc_info:
        service.create_project(ADMIN, {"imageUrl": "not-a-url"})
    assert [e["field"] for e in exc_info.value.errors] == ["title", "imageUrl"]
    assert db[PROJECTS].count_documents({}) == 0


def test_list_active_projects_newest_first(service, db):
    db[PROJECTS].insert_many([
        {"title": "Old", "status": "active", "createdAt": datetime(2024, 1, 1)},
        {"title": "Hidden", "status": "inactive", "createdAt": datetime(2024, 3, 1)},
        {"title": "New", "status": "active", "createdAt": datetime(2024, 2, 1)},
    ])
    projects = service.list_active_projects()
    assert [p["title"] for p in projects] == ["New", "Old"]
    assert all(isinstance(p["id"], str) for p in projects)
