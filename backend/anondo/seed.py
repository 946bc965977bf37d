"""Seed the canonical categories and tags.

Usage:
    python -m anondo.seed

Existing rows (matched by name) are left untouched, so the script can be
re-run safely.
"""
import logging

from sqlalchemy.orm import Session

from anondo.database import SessionLocal
from anondo.models.taxonomy import Category, Tag

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

CATEGORIES = [
    {"name": "Technology", "description": "Tech meetups, conferences, and workshops", "color": "#3B82F6", "icon": "laptop"},
    {"name": "Sports", "description": "Sports events and activities", "color": "#10B981", "icon": "sports"},
    {"name": "Social", "description": "Social gatherings and networking", "color": "#F59E0B", "icon": "users"},
    {"name": "Education", "description": "Learning and educational events", "color": "#8B5CF6", "icon": "book"},
    {"name": "Food & Drink", "description": "Culinary experiences and tastings", "color": "#EF4444", "icon": "utensils"},
    {"name": "Arts & Culture", "description": "Art exhibitions, cultural events", "color": "#EC4899", "icon": "palette"},
]

TAGS = ["networking", "beginner-friendly", "free", "workshop", "outdoor", "premium"]


def seed(db: Session) -> tuple[int, int]:
    """Insert missing categories and tags. Returns (categories_added, tags_added)."""
    existing_categories = {name for (name,) in db.query(Category.name)}
    added_categories = 0
    for data in CATEGORIES:
        if data["name"] not in existing_categories:
            db.add(Category(**data))
            added_categories += 1

    existing_tags = {name for (name,) in db.query(Tag.name)}
    added_tags = 0
    for name in TAGS:
        if name not in existing_tags:
            db.add(Tag(name=name))
            added_tags += 1

    db.commit()
    return added_categories, added_tags


def main():
    db = SessionLocal()
    try:
        categories, tags = seed(db)
    finally:
        db.close()
    logger.info("Seed complete: %d categories and %d tags added", categories, tags)


if __name__ == "__main__":
    main()
