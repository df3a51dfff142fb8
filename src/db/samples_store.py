from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Iterable

from sqlalchemy import BigInteger, Index, Integer, String, UniqueConstraint, create_engine, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from config import SAMPLES_DB_FILE
from domain.sampling import Sample

SAMPLES_DB_PATH = SAMPLES_DB_FILE


class SamplesBase(DeclarativeBase):
    pass


class BlockSampleOrm(SamplesBase):
    __tablename__ = "block_samples"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    run_id: Mapped[str] = mapped_column(String, nullable=False)
    chain: Mapped[str] = mapped_column(String, nullable=False)
    token_address: Mapped[str] = mapped_column(String, nullable=False)
    block: Mapped[int] = mapped_column(Integer, nullable=False)
    timestamp_ms: Mapped[int] = mapped_column(BigInteger, nullable=False)
    # stored as text to keep Decimal precision
    price: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (
        UniqueConstraint("run_id", "block", name="uq_block_samples_run_block"),
        Index("ix_block_samples_run", "run_id", "block"),
    )


class SampleRepository:
    def __init__(self, session: Session):
        self.session = session

    def save_run(self, run_id: str, *, chain: str, token_address: str, samples: Iterable[Sample]) -> int:
        rows: list[dict[str, object]] = [
            {
                "run_id": run_id,
                "chain": chain,
                "token_address": token_address.lower(),
                "block": sample.block,
                "timestamp_ms": sample.timestamp,
                "price": str(sample.price),
            }
            for sample in samples
        ]
        if not rows:
            return 0

        stmt = sqlite_insert(BlockSampleOrm).values(rows)
        stmt = stmt.on_conflict_do_nothing(index_elements=["run_id", "block"])
        self.session.execute(stmt)
        self.session.commit()
        return len(rows)

    def load_run(self, run_id: str) -> list[Sample]:
        stmt = select(BlockSampleOrm).where(BlockSampleOrm.run_id == run_id).order_by(BlockSampleOrm.block)
        rows = self.session.execute(stmt).scalars().all()
        return [Sample(block=row.block, timestamp=row.timestamp_ms, price=Decimal(row.price)) for row in rows]

    def list_runs(self) -> list[str]:
        stmt = select(BlockSampleOrm.run_id).distinct().order_by(BlockSampleOrm.run_id)
        return list(self.session.scalars(stmt).all())


def init_samples_db(echo: bool = False, *, db_file: str | Path = SAMPLES_DB_PATH, reset: bool = False) -> Session:
    path = Path(db_file)
    if reset and path.exists():
        path.unlink()
    path.parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(f"sqlite:///{path}", echo=echo)
    SamplesBase.metadata.create_all(engine)
    return sessionmaker(engine)()


__all__ = ["BlockSampleOrm", "SAMPLES_DB_PATH", "SampleRepository", "SamplesBase", "init_samples_db"]
