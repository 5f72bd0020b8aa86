"""CryptoScore: FastAPI read API over the scored universe, with scheduler."""
import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Literal, Optional

from fastapi import APIRouter, BackgroundTasks, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from common.logger import get_logger
from common.models import ScanQuery
from config.settings import AUTO_REFRESH_MINUTES, NARRATIVES_URL, load_scan_config
from ingest.narratives import NarrativeSource
from ingest.registry import get_provider
from scoring.filters import DEFAULT_SORT
from scoring.scanner import Scanner
from storage.cache import UniverseCache
from storage.database import init_db, load_snapshot, save_snapshot

logger = get_logger("api")

# ConfigurationError here is fatal: the app never starts on a bad config
SCAN_CONFIG = load_scan_config()
PROVIDER = get_provider(SCAN_CONFIG.provider)
NARRATIVES = NarrativeSource(NARRATIVES_URL) if NARRATIVES_URL else None

cache = UniverseCache()
scanner = Scanner(PROVIDER, SCAN_CONFIG, cache, narratives=NARRATIVES, persist=save_snapshot)


async def run_scan_cycle():
    """Run one scan; failures are reported through the cache status."""
    return await scanner.scan()


async def refresh_loop(interval_seconds: float):
    """Rescan forever; one failed cycle never stops the loop."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await run_scan_cycle()
        except Exception as e:
            logger.error(f"❌ Scheduled scan failed: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    snapshot = await load_snapshot()
    if snapshot is not None:
        cache.hydrate(snapshot)
    asyncio.create_task(run_scan_cycle())
    asyncio.create_task(refresh_loop(AUTO_REFRESH_MINUTES * 60))
    yield

app = FastAPI(title="CryptoScore API", version="0.1.0", lifespan=lifespan)

app.add_middleware(CORSMiddleware,
    allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

# ── API routes (on a shared router, mounted at both "/" and "/api") ───────────

router = APIRouter()


@router.get("/health")
def health():
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.get("/status")
def get_status():
    return cache.status.model_dump(mode="json")


@router.get("/universe")
def get_universe():
    """All scored assets in universe order (market cap descending)."""
    universe = cache.current
    rows = [a.to_row() for a in universe.ordered()] if universe is not None else []
    return {"assets": rows, "count": len(rows),
            "status": cache.status.model_dump(mode="json")}


@router.get("/scan")
def get_scan(
    market_cap_min: Optional[float] = None,
    market_cap_max: Optional[float] = None,
    volume_min: Optional[float] = None,
    min_score: Optional[float] = None,
    rank_max: Optional[float] = None,
    fdv_to_market_cap_max: Optional[float] = None,
    require_supply_clarity: Optional[bool] = None,
    q: str = Query("", max_length=100),
    sort: str = DEFAULT_SORT,
    order: Optional[Literal["asc", "desc"]] = None,
):
    """Filtered, sorted view. Unset filters fall back to the scan configuration."""
    query = ScanQuery.from_config(
        SCAN_CONFIG,
        market_cap_min=market_cap_min,
        market_cap_max=market_cap_max,
        volume_24h_min=volume_min,
        min_score=min_score,
        rank_max=rank_max,
        fdv_to_market_cap_max=fdv_to_market_cap_max,
        require_supply_clarity=require_supply_clarity,
        search=q,
        sort=sort,
        order=order,
    )
    view = cache.view(query)
    status = cache.status
    note = ""
    if status.state == "empty":
        note = "No scores yet, scan in progress..."
    elif not view:
        note = "No matches (filters too strict?)"
    return {"assets": [a.to_row() for a in view], "count": len(view),
            "status": status.model_dump(mode="json"), "note": note}


@router.get("/asset/{asset_id}")
def get_asset(asset_id: str):
    asset = cache.get(asset_id)
    if asset is None:
        raise HTTPException(404, f"No scored asset {asset_id}")
    return asset.model_dump(mode="json")


@router.post("/scan/refresh")
async def trigger_refresh(background_tasks: BackgroundTasks):
    """Manually trigger a full scan cycle."""
    background_tasks.add_task(run_scan_cycle)
    return {"status": "scan triggered", "provider": PROVIDER.name}

# Mount routes at root (for nginx) and at /api (for direct browser access)
app.include_router(router)
app.include_router(router, prefix="/api")
