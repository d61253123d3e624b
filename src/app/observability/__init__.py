"""Observabilidade: correlation/job ids e métricas via logs estruturados.

Uso:
    from app.observability import get_correlation_id, set_correlation_id
    from app.observability import record_latency, record_job_outcome
"""

from app.observability.correlation import (
    generate_correlation_id,
    get_correlation_id,
    get_job_id,
    reset_correlation_id,
    reset_job_id,
    set_correlation_id,
    set_job_id,
)
from app.observability.metrics import (
    record_ingress_swallowed_error,
    record_job_outcome,
    record_latency,
    record_token_refresh,
)

__all__ = [
    "generate_correlation_id",
    "get_correlation_id",
    "get_job_id",
    "record_ingress_swallowed_error",
    "record_job_outcome",
    "record_latency",
    "record_token_refresh",
    "reset_correlation_id",
    "reset_job_id",
    "set_correlation_id",
    "set_job_id",
]
