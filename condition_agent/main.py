import logging
import os
from datetime import datetime

from fastapi import FastAPI, HTTPException

from condition_agent.config import EVENT_LOG_SIZE, LOG_LEVEL, PROMETHEUS_URL
from condition_agent.models import ConditionRequest, ConditionResponse
from condition_agent.prometheus_client import (
    PrometheusConditionError,
    get_prometheus_condition,
    headers_from_environ,
)

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

# ------------------------------------------------------------------
# FastAPI App Setup
# ------------------------------------------------------------------
app = FastAPI(title="Prometheus Condition Agent")

EVENT_LOG = []  # in-memory console feed for /events


def add_event(message: str):
    ts = datetime.utcnow().strftime("%H:%M:%S")
    EVENT_LOG.insert(0, f"[{ts}] {message}")
    if len(EVENT_LOG) > EVENT_LOG_SIZE:
        EVENT_LOG.pop()


# ------------------------------------------------------------------
# Routes
# ------------------------------------------------------------------
@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/events")
async def events():
    return {"events": EVENT_LOG}


@app.post("/condition", response_model=ConditionResponse)
async def evaluate_condition(req: ConditionRequest):
    if not req.query.strip():
        raise HTTPException(status_code=400, detail="query must be non-empty.")

    prometheus_url = req.prometheus_url or PROMETHEUS_URL
    headers = headers_from_environ(os.environ)
    add_event(f"Evaluating condition: {req.query}")

    try:
        met = await get_prometheus_condition(prometheus_url, req.query, headers=headers)
    except PrometheusConditionError as e:
        logger.error("Condition evaluation failed for %r: %s", req.query, e)
        add_event(f"Condition evaluation failed: {e}")
        return ConditionResponse(query=req.query, condition_met=False, error=str(e))

    add_event(f"Condition {'met' if met else 'not met'}: {req.query}")
    return ConditionResponse(query=req.query, condition_met=met)
