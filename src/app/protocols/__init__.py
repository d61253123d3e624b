"""Protocolos e contratos do core da aplicação."""

from .dedupe import AsyncDedupeProtocol
from .job_queue import JOB_NAME_SELLSY_EVENT, Job, JobConsumerProtocol, JobQueueProtocol
from .sellsy_api import SellsyApiProtocol

__all__ = [
    "JOB_NAME_SELLSY_EVENT",
    "AsyncDedupeProtocol",
    "Job",
    "JobConsumerProtocol",
    "JobQueueProtocol",
    "SellsyApiProtocol",
]
