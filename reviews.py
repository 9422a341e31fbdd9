import logging
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple

from pymongo.database import Database

from database import storage_errors, to_public
from errors import RateLimited
from schemas import REVIEWS, AggregateStats, Review, utcnow
from validation import REVIEW_RULES

logger = logging.getLogger(__name__)

SPAM_WINDOW = timedelta(hours=1)
LIST_LIMIT = 100


def round_rating(value: float) -> float:
    """Round to 2 decimals with ties going up (4.125 -> 4.13)."""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


class ReviewService:
    """Public review submission and listing, with live rating stats."""

    def __init__(self, db: Database, clock: Callable[[], datetime] = utcnow):
        self.collection = db[REVIEWS]
        self.clock = clock

    def get_stats(self) -> Dict[str, Any]:
        with storage_errors():
            agg = list(self.collection.aggregate([
                {"$match": {"status": "approved"}},
                {"$group": {"_id": None, "averageRating": {"$avg": "$rating"}, "totalReviews": {"$sum": 1}}},
            ]))
        if not agg or agg[0].get("averageRating") is None:
            return AggregateStats().model_dump(by_alias=True)
        return AggregateStats(
            average_rating=round_rating(agg[0]["averageRating"]),
            total_reviews=agg[0]["totalReviews"],
        ).model_dump(by_alias=True)

    def list_reviews(self) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
        with storage_errors():
            cursor = self.collection.find({"status": "approved"}).sort("createdAt", -1).limit(LIST_LIMIT)
            reviews = [to_public(r) for r in cursor]
        return reviews, self.get_stats()

    def recent_review(self, email: str, now: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
        since = (now or self.clock()) - SPAM_WINDOW
        with storage_errors():
            return self.collection.find_one({"email": email, "createdAt": {"$gte": since}})

    def submit_review(self, payload: Optional[Dict[str, Any]]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        data = REVIEW_RULES.validate(payload)
        now = self.clock()

        if self.recent_review(data["email"], now):
            logger.info(f"Rate limited review from {data['email']}")
            raise RateLimited()

        # auto-approved; there is no moderation queue
        doc = Review(**data, status="approved", created_at=now, updated_at=now).to_document()
        with storage_errors():
            res = self.collection.insert_one(doc)
        doc["_id"] = res.inserted_id
        logger.info(f"Review created: {doc['_id']} ({doc['rating']}/5)")
        return to_public(doc), self.get_stats()
