import asyncio
import logging
import os
import time
from typing import Dict, Mapping, Optional

import httpx
from pydantic import TypeAdapter, ValidationError

from condition_agent.config import (
    HTTP_TIMEOUT_SECONDS,
    PROMETHEUS_HEADER_PREFIX,
    QUERY_PATH,
    QUERY_TIMEOUT_SECONDS,
)
from condition_agent.models import (
    MatrixResult,
    QueryResponse,
    QueryResult,
    ScalarResult,
    StringResult,
    VectorResult,
)

logger = logging.getLogger(__name__)

KNOWN_RESULT_TYPES = ("vector", "matrix", "scalar", "string")

_query_result = TypeAdapter(QueryResult)


class PrometheusConditionError(Exception):
    """Base class for condition evaluation failures."""


class PrometheusClientError(PrometheusConditionError):
    """The Prometheus client could not be built from the given address."""


class PrometheusQueryError(PrometheusConditionError):
    """The query failed: network, HTTP, API error or deadline."""


class PrometheusResultTypeError(PrometheusConditionError):
    """The query returned something other than an instant vector."""


def headers_from_environ(environ: Mapping[str, str]) -> Dict[str, str]:
    """
    Build the header map from PROMETHEUS_HEADER_* variables.

    PROMETHEUS_HEADER_X_API_KEY=secret becomes {"X-API-KEY": "secret"}.
    Keys are applied in sorted order, so when two variables map to the
    same header the lexicographically last one wins.
    """
    headers: Dict[str, str] = {}
    for key in sorted(environ):
        if not key.startswith(PROMETHEUS_HEADER_PREFIX):
            continue
        name = key[len(PROMETHEUS_HEADER_PREFIX):].replace("_", "-")
        if not name:
            continue
        headers[name] = environ[key]
    return headers


class HeaderTransport(httpx.AsyncBaseTransport):
    """Sets custom headers on every request before handing it to the wrapped transport."""

    def __init__(
        self,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        headers: Optional[Mapping[str, str]] = None,
    ):
        self.transport = transport or httpx.AsyncHTTPTransport()
        # None means: re-read the process environment on each request
        self.headers = headers

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        headers = self.headers if self.headers is not None else headers_from_environ(os.environ)
        for name, value in headers.items():
            request.headers[name] = value
        return await self.transport.handle_async_request(request)

    async def aclose(self) -> None:
        await self.transport.aclose()


def build_client(
    prometheus_url: str,
    headers: Optional[Mapping[str, str]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    try:
        url = httpx.URL(prometheus_url)
    except (httpx.InvalidURL, TypeError) as exc:
        raise PrometheusClientError(f"failed to create Prometheus client: {exc}") from exc
    if url.scheme not in ("http", "https") or not url.host:
        raise PrometheusClientError(
            f"failed to create Prometheus client: invalid address {prometheus_url!r}"
        )

    return httpx.AsyncClient(
        base_url=url,
        timeout=HTTP_TIMEOUT_SECONDS,
        transport=HeaderTransport(transport=transport, headers=headers),
    )


async def query_prometheus(client: httpx.AsyncClient, query: str, ts: float) -> QueryResponse:
    """Run an instant query and decode the API envelope."""
    params = {"query": query, "time": f"{ts:.3f}"}
    resp = await client.post(QUERY_PATH, data=params)
    if resp.status_code in (405, 501):
        # server does not accept POST for queries
        resp = await client.get(QUERY_PATH, params=params)

    # Prometheus answers API errors with a JSON body on these codes
    if not resp.is_success and resp.status_code not in (400, 422, 503):
        raise PrometheusQueryError(
            f"failed to query Prometheus: server returned HTTP status {resp.status_code} {resp.reason_phrase}"
        )

    try:
        payload = QueryResponse.model_validate(resp.json())
    except ValueError as exc:
        raise PrometheusQueryError(
            f"failed to query Prometheus: cannot decode response (HTTP {resp.status_code}): {exc}"
        ) from exc

    if payload.status == "error":
        raise PrometheusQueryError(f"failed to query Prometheus: {payload.errorType}: {payload.error}")
    if not resp.is_success:
        raise PrometheusQueryError(
            f"failed to query Prometheus: server returned HTTP status {resp.status_code} {resp.reason_phrase}"
        )
    return payload


def parse_result(data) -> QueryResult:
    if not isinstance(data, dict):
        raise PrometheusQueryError("failed to query Prometheus: response has no data")
    result_type = data.get("resultType")
    if result_type not in KNOWN_RESULT_TYPES:
        raise PrometheusResultTypeError(f"unexpected result type from Prometheus: {result_type}")
    try:
        return _query_result.validate_python(data)
    except ValidationError as exc:
        raise PrometheusQueryError(f"failed to query Prometheus: malformed {result_type} result: {exc}") from exc


async def get_prometheus_condition(
    prometheus_url: str,
    condition: str,
    headers: Optional[Mapping[str, str]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> bool:
    """
    Execute a Prometheus query and check whether the condition is met.

    Returns True when the query yields a non-empty instant vector and False
    when the vector is empty. Raises PrometheusConditionError otherwise.
    headers defaults to the PROMETHEUS_HEADER_* environment variables.
    """
    client = build_client(prometheus_url, headers=headers, transport=transport)
    ts = time.time()

    async with client:
        try:
            payload = await asyncio.wait_for(
                query_prometheus(client, condition, ts), timeout=QUERY_TIMEOUT_SECONDS
            )
        except asyncio.TimeoutError as exc:
            raise PrometheusQueryError(
                f"failed to query Prometheus: deadline of {QUERY_TIMEOUT_SECONDS:g}s exceeded"
            ) from exc
        except httpx.HTTPError as exc:
            raise PrometheusQueryError(f"failed to query Prometheus: {exc!r}") from exc

    if payload.warnings:
        logger.warning("Warnings: %s", payload.warnings)
    if payload.infos:
        logger.info("Info: %s", payload.infos)

    result = parse_result(payload.data)
    match result:
        case VectorResult(result=samples):
            return len(samples) > 0
        case MatrixResult() | ScalarResult() | StringResult():
            raise PrometheusResultTypeError(f"unexpected result type from Prometheus: {result.resultType}")
    raise PrometheusResultTypeError(f"unexpected result type from Prometheus: {type(result).__name__}")
