import logging
from typing import Any, Dict, List, Optional

from pymongo.database import Database

from auth import ADMIN_ROLE, AuthGate
from database import storage_errors, to_public
from schemas import PROJECTS, Identity, Project
from validation import PROJECT_RULES

logger = logging.getLogger(__name__)


class ProjectService:
    def __init__(self, db: Database):
        self.collection = db[PROJECTS]

    def list_active_projects(self) -> List[Dict[str, Any]]:
        with storage_errors():
            cursor = self.collection.find({"status": "active"}).sort("createdAt", -1)
            return [to_public(p) for p in cursor]

    def create_project(self, identity: Identity, payload: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        AuthGate.authorize(identity, ADMIN_ROLE)
        data = PROJECT_RULES.validate(payload)
        doc = Project(
            title=data["title"],
            description=data["description"],
            image_url=data["imageUrl"],
            category=data["category"],
            status="active",
            uploaded_by=identity.email or "admin",
        ).to_document()
        with storage_errors():
            res = self.collection.insert_one(doc)
        doc["_id"] = res.inserted_id
        logger.info(f"Project created by {doc['uploadedBy']}: {doc['title']}")
        return to_public(doc)
