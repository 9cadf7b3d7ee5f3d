#!/usr/bin/env python3
"""Create tables and load a starter course catalog.

Usage:
    python scripts/seed_catalog.py            # insert missing demo courses
    python scripts/seed_catalog.py --file courses.json
"""
import argparse
import asyncio
import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List

from sqlalchemy import select

from coursestore.core.database import SessionLocal, engine, init_models
from coursestore.models import Course

logger = logging.getLogger("coursestore.seed")

DEFAULT_COURSES: List[Dict[str, Any]] = [
    {"title": "Scratch Adventures", "description": "Block coding for beginners", "price": "49.00"},
    {"title": "Python for Kids", "description": "First steps in text-based coding", "price": "79.00"},
    {"title": "Web Design Basics", "description": "HTML and CSS by building a personal page", "price": "59.00"},
]


def load_courses(path: str | None) -> List[Dict[str, Any]]:
    if not path:
        return DEFAULT_COURSES
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise SystemExit("Course file must contain a JSON array")
    return data


async def seed(courses: List[Dict[str, Any]]) -> int:
    await init_models()
    added = 0
    async with SessionLocal() as db:
        existing = set((await db.execute(select(Course.title))).scalars().all())
        for item in courses:
            if item["title"] in existing:
                continue
            db.add(Course(
                title=item["title"],
                description=item.get("description"),
                price=Decimal(str(item.get("price", "0"))),
                image_url=item.get("image_url"),
                is_active=item.get("is_active", True),
            ))
            added += 1
        await db.commit()
    await engine.dispose()
    return added


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed the course catalog")
    parser.add_argument("--file", help="JSON array of {title, description, price}")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    added = asyncio.run(seed(load_courses(args.file)))
    logger.info("Added %d course(s)", added)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
