"""Durable ingredient store backed by SQLAlchemy.

One ``ingredients`` table keyed by a unique normalized name. The store is
constructed once (engine + session factory) and injected into the
persister, reconciler and provider; nothing here is module-global.
"""

import logging
from typing import Dict, Iterable, Iterator, List, Optional, Set

from sqlalchemy import Boolean, Column, Float, Integer, String, Text, create_engine, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from nutriflow.data_layer.models import (
    DatasetSource,
    IngredientRecord,
    NutrientValues,
    normalize_name,
)


logger = logging.getLogger(__name__)

Base = declarative_base()

DEFAULT_DATABASE_URL = "sqlite:///./nutriflow.db"

# SQLite limits bound parameters per statement
_IN_CLAUSE_CHUNK = 500

DEFAULT_PAGE_SIZE = 1000


class IngredientRow(Base):
    __tablename__ = "ingredients"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, index=True, nullable=False)
    description = Column(Text, default="")
    serving_size_basis = Column(String(16), default="100g", nullable=False)

    calories = Column(Float, default=0.0, nullable=False)
    protein = Column(Float, default=0.0, nullable=False)
    carbs = Column(Float, default=0.0, nullable=False)
    fat = Column(Float, default=0.0, nullable=False)
    fiber = Column(Float, default=0.0, nullable=False)
    sugar = Column(Float, default=0.0, nullable=False)
    sodium = Column(Float, default=0.0, nullable=False)
    cholesterol = Column(Float, default=0.0, nullable=False)
    saturated_fat = Column(Float, default=0.0, nullable=False)
    trans_fat = Column(Float, default=0.0, nullable=False)
    monounsaturated_fat = Column(Float, default=0.0, nullable=False)
    polyunsaturated_fat = Column(Float, default=0.0, nullable=False)
    calcium = Column(Float, default=0.0, nullable=False)
    potassium = Column(Float, default=0.0, nullable=False)

    category = Column(String(64), nullable=False)
    aisle = Column(String(64), nullable=False)
    source = Column(String(16), index=True, nullable=False)
    basis_assumed = Column(Boolean, default=False, nullable=False)


def _row_from_record(record: IngredientRecord) -> IngredientRow:
    return IngredientRow(
        name=record.name,
        description=record.description,
        serving_size_basis=record.serving_size_basis,
        category=record.category,
        aisle=record.aisle,
        source=record.source.value,
        basis_assumed=record.basis_assumed,
        **record.nutrients.to_dict(),
    )


def _record_from_row(row: IngredientRow) -> IngredientRecord:
    nutrients = NutrientValues(**{
        name: getattr(row, name) or 0.0 for name in NutrientValues.field_names()
    })
    return IngredientRecord(
        id=row.id,
        name=row.name,
        nutrients=nutrients,
        category=row.category,
        aisle=row.aisle,
        source=DatasetSource(row.source),
        serving_size_basis=row.serving_size_basis,
        description=row.description or "",
        basis_assumed=bool(row.basis_assumed),
    )


def create_store_engine(database_url: str = DEFAULT_DATABASE_URL) -> Engine:
    """Create an engine; SQLite gets cross-thread access for pooled workers."""
    kwargs = {"future": True}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # Every session must see the same in-memory database
            kwargs["poolclass"] = StaticPool
    return create_engine(database_url, **kwargs)


class IngredientStore:
    """Read/write access to the ingredients table.

    Usage:
        store = IngredientStore.from_url("sqlite:///./nutriflow.db")
        store.create_schema()
        store.insert_many(records)
        store.get_by_name("milk, whole")
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self._session_factory = sessionmaker(
            autocommit=False, autoflush=False, bind=engine, future=True
        )

    @classmethod
    def from_url(cls, database_url: str = DEFAULT_DATABASE_URL) -> "IngredientStore":
        return cls(create_store_engine(database_url))

    def create_schema(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def existing_names(self, names: Iterable[str]) -> Set[str]:
        """Return the subset of names already stored."""
        wanted = list(dict.fromkeys(names))
        found: Set[str] = set()
        with self._session_factory() as session:
            for start in range(0, len(wanted), _IN_CLAUSE_CHUNK):
                chunk = wanted[start:start + _IN_CLAUSE_CHUNK]
                rows = session.execute(
                    select(IngredientRow.name).where(IngredientRow.name.in_(chunk))
                )
                found.update(rows.scalars())
        return found

    def get_by_name(self, name: str) -> Optional[IngredientRecord]:
        with self._session_factory() as session:
            row = session.execute(
                select(IngredientRow).where(IngredientRow.name == normalize_name(name))
            ).scalar_one_or_none()
            return _record_from_row(row) if row is not None else None

    def get_by_id(self, ingredient_id: int) -> Optional[IngredientRecord]:
        with self._session_factory() as session:
            row = session.get(IngredientRow, ingredient_id)
            return _record_from_row(row) if row is not None else None

    def count(self, source: Optional[DatasetSource] = None) -> int:
        query = select(func.count(IngredientRow.id))
        if source is not None:
            query = query.where(IngredientRow.source == source.value)
        with self._session_factory() as session:
            return session.execute(query).scalar_one()

    def iter_records(
        self,
        min_calories: Optional[float] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> Iterator[IngredientRecord]:
        """Yield stored records ordered by id, optionally above a calorie floor.

        Rows are read in keyset pages of page_size, each in its own session,
        so callers may write to the store between yields.
        """
        if page_size <= 0:
            raise ValueError(f"Invalid page_size: {page_size}. Must be positive.")
        last_id = 0
        while True:
            query = (
                select(IngredientRow)
                .where(IngredientRow.id > last_id)
                .order_by(IngredientRow.id)
                .limit(page_size)
            )
            if min_calories is not None:
                query = query.where(IngredientRow.calories > min_calories)
            with self._session_factory() as session:
                page = [_record_from_row(row) for row in session.execute(query).scalars()]
            if not page:
                return
            for record in page:
                yield record
            last_id = page[-1].id

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert_many(self, records: List[IngredientRecord]) -> int:
        """Insert records in one transaction (all or nothing).

        Raises:
            sqlalchemy.exc.SQLAlchemyError: On any failure; nothing is committed
        """
        if not records:
            return 0
        with self._session_factory() as session:
            with session.begin():
                session.add_all([_row_from_record(record) for record in records])
        return len(records)

    def insert_one(self, record: IngredientRecord) -> None:
        """Insert a single record.

        Raises:
            sqlalchemy.exc.IntegrityError: If the name already exists
        """
        with self._session_factory() as session:
            with session.begin():
                session.add(_row_from_record(record))

    def overwrite(self, name: str, nutrients: NutrientValues) -> bool:
        """Replace the nutrients of the record called name.

        Returns:
            True if a record was updated
        """
        with self._session_factory() as session:
            with session.begin():
                row = session.execute(
                    select(IngredientRow).where(IngredientRow.name == normalize_name(name))
                ).scalar_one_or_none()
                if row is None:
                    return False
                for field_name, value in nutrients.to_dict().items():
                    setattr(row, field_name, value)
        return True

    def clear(self, sources: Optional[Iterable[DatasetSource]] = None) -> int:
        """Delete records from the given sources (default: all ingestion sources).

        Returns:
            Number of rows deleted
        """
        source_values = [
            source.value for source in (sources or DatasetSource.ingestion_sources())
        ]
        with self._session_factory() as session:
            with session.begin():
                deleted = (
                    session.query(IngredientRow)
                    .filter(IngredientRow.source.in_(source_values))
                    .delete(synchronize_session=False)
                )
        logger.info("Deleted %d ingredients (sources: %s)", deleted, ", ".join(source_values))
        return deleted

    def counts_by_source(self) -> Dict[str, int]:
        with self._session_factory() as session:
            rows = session.execute(
                select(IngredientRow.source, func.count(IngredientRow.id))
                .group_by(IngredientRow.source)
            )
            return {source: count for source, count in rows}
