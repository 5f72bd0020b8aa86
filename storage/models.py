"""SQLAlchemy ORM models for persisted universe snapshots."""
from sqlalchemy import (
    BigInteger, Boolean, Column, DECIMAL, ForeignKey, Index,
    Integer, String, TEXT, TIMESTAMP, UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, relationship
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    pass


class UniverseSnapshotDB(Base):
    __tablename__ = "universe_snapshots"

    id = Column(BigInteger, primary_key=True, autoincrement=True)
    taken_at = Column(TIMESTAMP(timezone=True), nullable=False)
    provider = Column(String(30))
    asset_count = Column(Integer, nullable=False, default=0)
    narrative_available = Column(Boolean, nullable=False, default=False)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    assets = relationship(
        "SnapshotAssetDB", back_populates="snapshot", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_snapshots_taken_at", "taken_at"),
    )


class SnapshotAssetDB(Base):
    __tablename__ = "snapshot_assets"

    id = Column(BigInteger, primary_key=True, autoincrement=True)
    snapshot_id = Column(
        BigInteger, ForeignKey("universe_snapshots.id", ondelete="CASCADE"), nullable=False
    )
    asset_id = Column(String(120), nullable=False)
    position = Column(Integer, nullable=False)   # universe order
    symbol = Column(String(40))
    final_score = Column(DECIMAL(6, 2), nullable=False)
    payload = Column(TEXT, nullable=False)       # ScoredAsset JSON

    __table_args__ = (
        UniqueConstraint("snapshot_id", "asset_id", name="uq_snapshot_asset"),
        Index("idx_snapshot_assets_position", "snapshot_id", "position"),
    )

    snapshot = relationship("UniverseSnapshotDB", back_populates="assets")
