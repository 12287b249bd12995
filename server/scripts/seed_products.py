from __future__ import annotations

import argparse
import csv
import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, List

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from sqlalchemy import create_engine, select
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import AppSettings
from app.db.base import Base
from app.db.models import Category, Product, ProductTag

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
logger = logging.getLogger("seed_products")

DEFAULT_SQLITE_DB_URL = "sqlite:///./data/sqlite/catalog.db"
# ids derived from names stay stable across re-seeds
PRODUCT_ID_NAMESPACE = uuid.UUID("6f1c1a8e-4b8e-4f43-9a55-2f7f3d0a9c11")

CSV_FIELDNAMES = [
    "name",
    "description",
    "price",
    "tagsJson",
]


class ProductRecord(BaseModel):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: str | None = None
    price: float = Field(..., ge=0)
    discount_pct: int | None = Field(default=None, ge=0, le=100, alias="discountPct")
    stock: int = Field(default=0, ge=0)
    images: List[str] = Field(default_factory=list, alias="imagesJson")
    tags: List[str] = Field(default_factory=list, alias="tagsJson")
    category: str | None = None
    created_at: datetime | None = Field(default=None, alias="createdAt")

    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
    }

    @model_validator(mode="before")
    @classmethod
    def _normalise_raw(cls, values: dict) -> dict:
        values = dict(values)
        for alias, plain in (("tagsJson", "tags"), ("imagesJson", "images")):
            raw = values.get(alias)
            plain_value = values.pop(plain, None)
            if raw is None:
                raw = plain_value
            values[alias] = _coerce_string_list(raw, alias)

        name = str(values.get("name") or "").strip()
        values["name"] = name
        identifier = str(values.get("id") or "").strip()
        values["id"] = identifier or (str(uuid.uuid5(PRODUCT_ID_NAMESPACE, name.lower())) if name else "")

        for key in ("description", "category", "discountPct", "createdAt", "stock"):
            raw_value = values.get(key)
            if isinstance(raw_value, str):
                raw_value = raw_value.strip()
                values[key] = raw_value or None
        if values.get("stock") is None:
            values.pop("stock", None)
        return values

    @field_validator("created_at")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


@dataclass
class SeedResult:
    inserted: int = 0
    updated: int = 0
    categories_created: int = 0


def _coerce_string_list(value: Any, field_name: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return []
        try:
            value = json.loads(value)
        except json.JSONDecodeError as exc:
            raise ValueError(f"{field_name} is not valid JSON: {value}") from exc
    if not isinstance(value, list):
        raise ValueError(f"{field_name} must be a JSON array of strings.")
    cleaned: list[str] = []
    for item in value:
        text = str(item).strip()
        if text and text not in cleaned:
            cleaned.append(text)
    return cleaned


def _default_db_url() -> str:
    settings = AppSettings()
    backend = (settings.catalog_db_backend or "sqlite").strip().lower()
    postgres_url = (settings.catalog_postgres_url or "").strip()
    sqlite_url = (settings.catalog_sqlite_url or DEFAULT_SQLITE_DB_URL).strip()
    if backend == "postgres":
        if postgres_url:
            return postgres_url
        raise ValueError("CATALOG_POSTGRES_URL must be set when CATALOG_DB_BACKEND=postgres.")
    return sqlite_url


def load_products_from_csv(path: Path) -> List[ProductRecord]:
    if not path.exists():
        raise FileNotFoundError(f"CSV file not found at {path}")

    records: list[ProductRecord] = []
    with path.open("r", encoding="utf-8", newline="") as handle:
        reader = csv.DictReader(handle)
        if reader.fieldnames is None:
            raise ValueError("CSV file is missing headers.")
        missing = [field for field in CSV_FIELDNAMES if field not in reader.fieldnames]
        if missing:
            raise ValueError(f"CSV file is missing required columns: {', '.join(missing)}")

        for row in reader:
            if not any(row.values()):
                continue
            try:
                record = ProductRecord.model_validate(row)
            except ValidationError as exc:
                raise ValueError(f"Invalid product row {row}: {exc}") from exc
            records.append(record)

    if not records:
        raise ValueError("CSV file did not contain any product records.")

    return records


def load_products_from_json(path: Path) -> List[ProductRecord]:
    if not path.exists():
        raise FileNotFoundError(f"JSON file not found at {path}")

    payload = json.loads(path.read_text(encoding="utf-8"))
    candidates = payload
    if isinstance(payload, dict):
        for key in ("products", "data", "items"):
            value = payload.get(key)
            if isinstance(value, list):
                candidates = value
                break
    if not isinstance(candidates, list):
        raise ValueError("JSON file must contain a list of products.")

    records: list[ProductRecord] = []
    for item in candidates:
        if not isinstance(item, dict):
            continue
        try:
            records.append(ProductRecord.model_validate(item))
        except ValidationError as exc:
            logger.warning("Skipping product %r: %s", item.get("name"), exc)
    if not records:
        raise ValueError("JSON file did not contain any valid product records.")
    return records


def load_products(path: Path) -> List[ProductRecord]:
    if path.suffix.lower() == ".json":
        return load_products_from_json(path)
    return load_products_from_csv(path)


def _prepare_engine(db_url: str):
    url = make_url(db_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        db_path = Path(url.database).expanduser()
        if not db_path.is_absolute():
            db_path = (Path.cwd() / db_path).resolve()
        db_path.parent.mkdir(parents=True, exist_ok=True)
        url = url.set(database=str(db_path))
    return create_engine(url, future=True)


def _get_or_create_category(session: Session, name: str, result: SeedResult) -> Category:
    category = session.execute(select(Category).where(Category.name == name)).scalar_one_or_none()
    if category is None:
        category = Category(name=name)
        session.add(category)
        session.flush()
        result.categories_created += 1
    return category


def _apply_record(product: Product, record: ProductRecord, category: Category | None) -> None:
    product.name = record.name
    product.description = record.description
    product.price = record.price
    product.discount_pct = record.discount_pct
    product.stock = record.stock
    product.images = list(record.images)
    product.category = category
    product.tag_rows = [ProductTag(tag=tag) for tag in record.tags]
    if record.created_at is not None:
        product.created_at = record.created_at


def seed_products(*, records: Iterable[ProductRecord], db_url: str) -> SeedResult:
    records = list(records)
    if not records:
        raise ValueError("No product records were provided.")

    engine = _prepare_engine(db_url)
    Base.metadata.create_all(engine)

    result = SeedResult()
    try:
        with Session(engine) as session:
            for record in records:
                category = (
                    _get_or_create_category(session, record.category, result) if record.category else None
                )
                product = session.get(Product, record.id)
                if product is None:
                    product = Product(id=record.id)
                    _apply_record(product, record, category)
                    session.add(product)
                    result.inserted += 1
                else:
                    # clear old tags first so re-adding one does not trip the unique pair
                    product.tag_rows = []
                    session.flush()
                    _apply_record(product, record, category)
                    result.updated += 1
                session.flush()
            session.commit()
    except SQLAlchemyError as exc:
        logger.error("Failed to seed catalog database: %s", exc)
        raise
    finally:
        engine.dispose()

    logger.info(
        "Seeded catalog database at %s (inserted=%d, updated=%d, categories=%d)",
        db_url,
        result.inserted,
        result.updated,
        result.categories_created,
    )
    return result


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed the product catalog (SQLite or Postgres) from a CSV or JSON file.")
    parser.add_argument(
        "source",
        type=Path,
        nargs="?",
        default=Path("data/catalog/products.csv"),
        help="Path to a products CSV or JSON file.",
    )
    parser.add_argument(
        "--db",
        type=str,
        default=None,
        help="SQLAlchemy database URL for the catalog (defaults to the app settings).",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    records = load_products(args.source)
    seed_products(records=records, db_url=args.db or _default_db_url())


if __name__ == "__main__":
    main()
