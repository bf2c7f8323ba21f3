from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field

SamplePair = Tuple[float, str]


# ----------------------------
# Result variants (Prometheus HTTP API "data" block)
# ----------------------------
class Sample(BaseModel):
    metric: Dict[str, str] = Field(default_factory=dict)
    value: Optional[SamplePair] = None
    # native histogram samples carry this instead of "value"
    histogram: Optional[Tuple[float, Dict[str, Any]]] = None


class SampleStream(BaseModel):
    metric: Dict[str, str] = Field(default_factory=dict)
    values: List[SamplePair] = Field(default_factory=list)
    histograms: List[Tuple[float, Dict[str, Any]]] = Field(default_factory=list)


class VectorResult(BaseModel):
    resultType: Literal["vector"]
    result: List[Sample] = Field(default_factory=list)


class MatrixResult(BaseModel):
    resultType: Literal["matrix"]
    result: List[SampleStream] = Field(default_factory=list)


class ScalarResult(BaseModel):
    resultType: Literal["scalar"]
    result: SamplePair


class StringResult(BaseModel):
    resultType: Literal["string"]
    result: SamplePair


QueryResult = Annotated[
    Union[VectorResult, MatrixResult, ScalarResult, StringResult],
    Field(discriminator="resultType"),
]


class QueryResponse(BaseModel):
    """Envelope returned by /api/v1/query, success or error."""

    status: Literal["success", "error"]
    data: Optional[Dict[str, Any]] = None
    errorType: Optional[str] = None
    error: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)
    infos: List[str] = Field(default_factory=list)


# ----------------------------
# Service request / response
# ----------------------------
class ConditionRequest(BaseModel):
    query: str
    prometheus_url: Optional[str] = None


class ConditionResponse(BaseModel):
    query: str
    condition_met: bool
    error: Optional[str] = None
