"""
Shared fixtures: an in-memory SQLite catalog and a helper for adding products to it.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterable

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from app.db.base import Base
from app.db.models import Category, Product, ProductTag

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture()
def engine():
    # one shared connection: reads run in worker threads and must see the same in-memory db
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session(engine) -> Session:
    with Session(engine) as session:
        yield session


@pytest.fixture()
def add_category(session: Session):
    def _add(name: str, image: str | None = None) -> Category:
        category = Category(name=name, image=image)
        session.add(category)
        session.commit()
        return category

    return _add


@pytest.fixture()
def add_product(session: Session):
    """Adds a product; each call is one minute newer than the previous unless ``age`` is given."""

    created = {"count": 0}

    def _add(
        name: str,
        *,
        price: float = 100.0,
        description: str | None = None,
        tags: Iterable[str] = (),
        discount_pct: int | None = None,
        stock: int = 1,
        category: Category | None = None,
        minutes: int | None = None,
    ) -> Product:
        offset = created["count"] if minutes is None else minutes
        created["count"] += 1
        product = Product(
            name=name,
            description=description,
            price=price,
            discount_pct=discount_pct,
            stock=stock,
            images=[],
            category=category,
            created_at=BASE_TIME + timedelta(minutes=offset),
            tag_rows=[ProductTag(tag=tag) for tag in tags],
        )
        session.add(product)
        session.commit()
        return product

    return _add
