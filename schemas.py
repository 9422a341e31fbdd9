"""
Database Schemas for the Landing Page API

MongoDB documents are defined below using Pydantic models. Field names are
stored in camelCase (the alias) so existing collections stay readable.

We will use these collections:
- reviews: customer reviews shown on the landing page
- projects: portfolio projects managed by the admin
"""

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ReviewStatus = Literal["pending", "approved", "rejected"]
ProjectCategory = Literal["first", "second", "third", "ongoing", "complete"]
ProjectStatus = Literal["active", "inactive"]

REVIEWS = "reviews"
PROJECTS = "projects"


def utcnow() -> datetime:
    # naive UTC, which is what pymongo hands back by default
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Document(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True)


class Review(Document):
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., description="Lowercased email address")
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., min_length=1, max_length=1000)
    status: ReviewStatus = Field("approved")


class Project(Document):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field("", max_length=1000)
    image_url: str = Field(..., description="Public image URL")
    category: ProjectCategory = Field("first")
    status: ProjectStatus = Field("active")
    uploaded_by: str = Field("admin", description="Email of the admin who created it")


class AggregateStats(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    average_rating: float = 0
    total_reviews: int = 0


class Identity(BaseModel):
    id: str = Field(..., description="Token subject")
    email: str
    role: str = Field("admin")
