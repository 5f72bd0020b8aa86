"""Snapshot storage layer.

Persists the latest scored universe so a restart can show stale-but-valid
data immediately while the first scan runs. Every save replaces the
previous snapshot wholesale.

Backend is selected at startup via the DATABASE_URL environment variable:
  - DATABASE_URL=none (or unset) → data/universe.csv (default / fallback)
  - DATABASE_URL=postgresql://... → PostgreSQL via SQLAlchemy async + asyncpg

All public functions are async so they integrate seamlessly with FastAPI.
"""
import asyncio
import os
from pathlib import Path
from typing import Iterable, Optional

import pandas as pd

from common.logger import get_logger
from common.models import ScoredAsset, Universe

logger = get_logger("database")

DATA_DIR = Path(__file__).parent.parent / "data"
DATA_DIR.mkdir(exist_ok=True)

SNAPSHOT_FILE = "universe.csv"
SNAPSHOT_COLUMNS = [
    "snapshot_at", "provider", "narrative_available",
    "position", "asset_id", "symbol", "final_score", "payload",
]

# ── Backend detection ──────────────────────────────────────────────────────────
_raw_url: str = os.getenv("DATABASE_URL", "none").strip()
USE_POSTGRES: bool = _raw_url.lower() not in ("none", "", "null")

# PostgreSQL objects, populated only when USE_POSTGRES is True
_engine = None
_SessionFactory = None

if USE_POSTGRES:
    from sqlalchemy import delete, select
    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
    from storage.models import Base, SnapshotAssetDB, UniverseSnapshotDB

    # Normalise URL scheme for asyncpg driver
    _db_url = _raw_url
    if _db_url.startswith("postgres://"):
        _db_url = "postgresql+asyncpg://" + _db_url[len("postgres://"):]
    elif _db_url.startswith("postgresql://") and "+asyncpg" not in _db_url:
        _db_url = _db_url.replace("postgresql://", "postgresql+asyncpg://", 1)

    _engine = create_async_engine(
        _db_url,
        echo=False,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
    )
    _SessionFactory = async_sessionmaker(_engine, expire_on_commit=False)
    logger.info(f"[PG] Backend: {_db_url.split('@')[-1]}")
else:
    logger.info("[CSV] Backend: %s/%s", DATA_DIR, SNAPSHOT_FILE)


def _universe_from_payloads(payloads: Iterable[str], built_at, provider: str,
                            narrative_available: bool) -> Universe:
    assets = {}
    for payload in payloads:
        asset = ScoredAsset.model_validate_json(payload)
        assets[asset.id] = asset
    return Universe(assets=assets, built_at=built_at, provider=provider,
                    narrative_available=narrative_available)


# ── CSV helpers (sync; run via asyncio.to_thread) ─────────────────────────────

def _csv_save_snapshot(universe: Universe, data_dir: Path) -> None:
    rows = [
        {
            "snapshot_at": universe.built_at.isoformat(),
            "provider": universe.provider,
            "narrative_available": universe.narrative_available,
            "position": i,
            "asset_id": a.id,
            "symbol": a.record.symbol,
            "final_score": round(a.final_score, 2),
            "payload": a.model_dump_json(),
        }
        for i, a in enumerate(universe.ordered())
    ]
    df = pd.DataFrame(rows, columns=SNAPSHOT_COLUMNS)
    path = data_dir / SNAPSHOT_FILE
    tmp = path.with_name(path.name + ".tmp")
    df.to_csv(tmp, index=False)
    tmp.replace(path)
    logger.info("[CSV] Saved snapshot of %d assets → %s", len(rows), path)


def _csv_load_snapshot(data_dir: Path) -> Optional[Universe]:
    path = data_dir / SNAPSHOT_FILE
    if not path.exists():
        return None
    try:
        df = pd.read_csv(path, dtype=str, keep_default_na=False)
        if df.empty:
            return None
        df["position"] = df["position"].astype(int)
        df = df.sort_values("position", kind="stable")
        first = df.iloc[0]
        return _universe_from_payloads(
            df["payload"],
            built_at=first["snapshot_at"],
            provider=first["provider"],
            narrative_available=first["narrative_available"].lower() == "true",
        )
    except (ValueError, KeyError) as e:
        logger.warning("[CSV] Ignoring unreadable snapshot %s: %s", path, e)
        return None


# ── PostgreSQL helpers (async) ─────────────────────────────────────────────────

async def _pg_save_snapshot(universe: Universe) -> None:
    async with _SessionFactory() as session:
        async with session.begin():
            snap = UniverseSnapshotDB(
                taken_at=universe.built_at,
                provider=universe.provider,
                asset_count=universe.size,
                narrative_available=universe.narrative_available,
            )
            session.add(snap)
            await session.flush()
            session.add_all([
                SnapshotAssetDB(
                    snapshot_id=snap.id,
                    asset_id=a.id,
                    position=i,
                    symbol=a.record.symbol,
                    final_score=round(a.final_score, 2),
                    payload=a.model_dump_json(),
                )
                for i, a in enumerate(universe.ordered())
            ])
            # Older snapshots (and their assets, via ON DELETE CASCADE) go away
            await session.execute(
                delete(UniverseSnapshotDB).where(UniverseSnapshotDB.id != snap.id)
            )
    logger.info("[PG] Saved snapshot of %d assets", universe.size)


async def _pg_load_snapshot() -> Optional[Universe]:
    async with _SessionFactory() as session:
        snap = (await session.execute(
            select(UniverseSnapshotDB).order_by(UniverseSnapshotDB.taken_at.desc()).limit(1)
        )).scalar_one_or_none()
        if snap is None:
            return None
        payloads = (await session.execute(
            select(SnapshotAssetDB.payload)
            .where(SnapshotAssetDB.snapshot_id == snap.id)
            .order_by(SnapshotAssetDB.position)
        )).scalars().all()
    if not payloads:
        return None
    return _universe_from_payloads(payloads, snap.taken_at, snap.provider or "",
                                   bool(snap.narrative_available))


# ── Public async API ───────────────────────────────────────────────────────────

async def save_snapshot(universe: Universe) -> None:
    """Replace the persisted snapshot with *universe* (PostgreSQL or CSV)."""
    if USE_POSTGRES:
        await _pg_save_snapshot(universe)
    else:
        await asyncio.to_thread(_csv_save_snapshot, universe, DATA_DIR)


async def load_snapshot() -> Optional[Universe]:
    """Return the persisted universe, or None when nothing usable is stored."""
    if USE_POSTGRES:
        return await _pg_load_snapshot()
    return await asyncio.to_thread(_csv_load_snapshot, DATA_DIR)


async def init_db() -> None:
    """Create all tables (idempotent)."""
    if not USE_POSTGRES:
        return
    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("[PG] Tables ensured")
