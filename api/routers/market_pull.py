"""
Google market pull — start a job, poll or stream its progress, download the CSV.
"""

import asyncio
import json
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response, StreamingResponse

from ..schemas import MarketPullRequest, MarketPullStarted, JobStatusResponse, RegionInfo
from pipeline import JobInput, JobManager, JobRejected, JobStatus
from regions import load_region, list_regions

logger = logging.getLogger("marketpull.api")

router = APIRouter(prefix="/google-market-pull", tags=["market-pull"])

_KEEPALIVE_SECONDS = 15


def get_job_manager(request: Request) -> JobManager:
    """FastAPI dependency: the process-wide JobManager created at startup."""
    return request.app.state.job_manager


def _sse_event(status: JobStatus) -> str:
    return f"data: {json.dumps(status.to_dict())}\n\n"


@router.post("", response_model=MarketPullStarted)
async def start_market_pull(
    body: MarketPullRequest,
    manager: JobManager = Depends(get_job_manager),
):
    """Start a market pull. Only one job may run, followed by a cooldown."""
    try:
        region = load_region(body.region)
    except (FileNotFoundError, ValueError):
        raise HTTPException(
            status_code=400,
            detail=f"Unknown region '{body.region}'. Available: {list_regions()}",
        )

    job_input = JobInput(
        service_category=body.service_category,
        region=region.slug,
        min_reviews=body.min_reviews,
        max_results=body.max_results,
        limit_one_per_domain=body.limit_one_per_domain,
    )
    try:
        job_id = manager.start(job_input)
    except JobRejected as e:
        raise HTTPException(status_code=429, detail=str(e))

    return MarketPullStarted(job_id=job_id)


@router.get("/status", response_model=JobStatusResponse)
async def get_market_pull_status(manager: JobManager = Depends(get_job_manager)):
    """Current job snapshot plus the remaining cooldown in milliseconds."""
    status = manager.get_status()
    return JobStatusResponse(**status.to_dict(), cooldown_remaining=manager.cooldown_remaining_ms())


@router.get("/stream")
async def stream_market_pull(request: Request, manager: JobManager = Depends(get_job_manager)):
    """Server-sent events: the current snapshot, then one event per change."""

    async def generate():
        queue: asyncio.Queue = asyncio.Queue()
        handle = manager.subscribe(queue.put_nowait)
        try:
            while True:
                if await request.is_disconnected():
                    break
                try:
                    status = await asyncio.wait_for(queue.get(), timeout=_KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield ": keep-alive\n\n"
                    continue
                yield _sse_event(status)
        finally:
            manager.unsubscribe(handle)
            logger.debug(f"Progress stream {handle} closed")

    return StreamingResponse(
        generate(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.get("/download")
async def download_market_pull(manager: JobManager = Depends(get_job_manager)):
    """One-shot CSV download; the job's data is cleared afterwards."""
    status = manager.get_status()
    if status.status != "completed" or not status.csv_data:
        raise HTTPException(status_code=400, detail="No CSV data available")

    filename = f"google-market-pull-{datetime.now(timezone.utc).date().isoformat()}.csv"
    manager.clear_data()
    logger.info(f"📥 CSV for {status.id} downloaded, job data cleared")

    return Response(
        content=status.csv_data,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/regions", response_model=list[RegionInfo])
async def get_regions():
    """Regions available for a market pull."""
    results = []
    for slug in list_regions():
        region = load_region(slug)
        results.append(RegionInfo(
            slug=region.slug,
            name=region.name,
            abbreviation=region.abbreviation,
            sub_region_count=len(region.sub_regions),
            sub_regions=region.sub_regions,
        ))
    return results
