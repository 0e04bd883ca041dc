
import datetime
import logging
from collections import deque
from typing import Deque, Optional

from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse, StreamingResponse

from lazy import LazyBag, SinglePassError, UnsupportedOperationError
from models import (
    BagSummary, StatsResponse, ErrorResponse, HealthCheckResponse, MAX_NUMBERS
)
from utils import (
    ServerConfig, setup_logging, number_source, iter_json_array,
    bag_summary, memory_snapshot
)

config = ServerConfig.from_env()
setup_logging(config.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Streamy numbers")

# Most recent stream summaries, newest first
RECENT_STREAMS: Deque[BagSummary] = deque(maxlen=50)


def _stream_bag(bag: LazyBag, requested: int):
    """Write the bag out as a JSON array, then record what it handed out."""
    chunks = iter_json_array(bag)

    def _body():
        try:
            yield from chunks
        finally:
            summary = BagSummary(**bag_summary(bag, requested))
            RECENT_STREAMS.appendleft(summary)
            logger.info(
                f"Streamed {summary.delivered}/{requested} numbers (closed={summary.closed})"
            )

    return _body()


@app.get("/numbers")
async def numbers(
    how_many: Optional[int] = Query(
        None, description="How many numbers to stream", ge=0, le=MAX_NUMBERS
    )
) -> StreamingResponse:
    """
    Stream 0..how_many-1 as a JSON array without ever holding the whole
    array in memory: the numbers are produced lazily, wrapped in a LazyBag
    and serialized one element at a time as the client reads.
    """
    requested = config.default_count if how_many is None else how_many
    bag = LazyBag(number_source(requested, config))
    # iter() happens here so single-pass errors surface before headers go out
    body = _stream_bag(bag, requested)
    return StreamingResponse(body, media_type="application/json")


@app.get("/stats", response_model=StatsResponse)
async def get_stats(
    limit: int = Query(10, description="Number of recent streams to return", ge=1, le=50)
) -> StatsResponse:
    """Accounting of the most recent /numbers responses"""
    streams = list(RECENT_STREAMS)[:limit]
    return StatsResponse(ok=True, streams=streams, count=len(streams))


@app.get("/health", response_model=HealthCheckResponse)
async def health_check() -> HealthCheckResponse:
    """Health check endpoint"""
    start_time = datetime.datetime.now()
    memory = memory_snapshot()
    response_time = (datetime.datetime.now() - start_time).total_seconds() * 1000
    return HealthCheckResponse(
        status="healthy",
        timestamp=start_time,
        memory=memory,
        response_time_ms=response_time
    )


# Exception handlers for bag contract violations
@app.exception_handler(SinglePassError)
async def single_pass_handler(request: Request, exc: SinglePassError):
    return JSONResponse(
        status_code=409,
        content=ErrorResponse(
            error=str(exc),
            error_code="SINGLE_PASS",
            timestamp=datetime.datetime.now(datetime.timezone.utc).isoformat()
        ).model_dump()
    )


@app.exception_handler(UnsupportedOperationError)
async def unsupported_operation_handler(request: Request, exc: UnsupportedOperationError):
    return JSONResponse(
        status_code=501,
        content=ErrorResponse(
            error=str(exc),
            error_code="UNSUPPORTED_OPERATION",
            timestamp=datetime.datetime.now(datetime.timezone.utc).isoformat()
        ).model_dump()
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8080)
