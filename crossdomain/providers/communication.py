"""
Correlation-id logging for calls from the engine into a domain.

Every provider call gets a correlation id that is bound into the structlog
context for the duration of the call, so each log line emitted while
collecting from a domain can be traced back to one request.
"""

import time
from collections import deque
from datetime import datetime
from typing import Optional
from uuid import uuid4

import structlog
from pydantic import BaseModel, Field

from crossdomain.config import get_settings

logger = structlog.get_logger()

ENGINE_DOMAIN = "CROSS_DOMAIN_ENGINE"


class CommunicationRecord(BaseModel):
    """One in-flight or finished call into a domain."""

    correlation_id: str
    source_domain: str
    target_domain: str
    operation: str
    details: str = ""
    started_at: datetime = Field(default_factory=datetime.utcnow)
    started_monotonic: float = Field(default_factory=time.monotonic)
    finished_at: Optional[datetime] = None
    status: str = "IN_PROGRESS"
    response_details: Optional[str] = None


class DomainCommunicationLogger:
    """
    Tracks calls from the engine into one domain.

    Instances are owned by a single provider and the orchestrator never runs
    one provider on two threads at once, so no locking is needed. Only the
    most recent finished calls are kept in history.

    Example:
        >>> comm = DomainCommunicationLogger("WAREHOUSING")
        >>> cid = comm.start("MetricCollection", "collecting all metrics")
        >>> comm.success(cid, "collected 12 metrics")
    """

    def __init__(
        self,
        target_domain: str,
        source_domain: str = ENGINE_DOMAIN,
        history_size: Optional[int] = None,
    ):
        if history_size is None:
            history_size = get_settings().communication_history_size
        self.target_domain = target_domain
        self.source_domain = source_domain
        self._active: dict[str, CommunicationRecord] = {}
        self.history: deque[CommunicationRecord] = deque(maxlen=history_size)
        self.logger = logger.bind(target_domain=target_domain)

    def start(self, operation: str, details: str = "") -> str:
        """
        Record the start of a call and return its correlation id.

        Args:
            operation: Operation label (e.g. "MetricCollection")
            details: Free-form request description

        Returns:
            Correlation id for the matching success/failure call
        """
        correlation_id = str(uuid4())
        self._active[correlation_id] = CommunicationRecord(
            correlation_id=correlation_id,
            source_domain=self.source_domain,
            target_domain=self.target_domain,
            operation=operation,
            details=details,
        )
        self.logger.info(
            "domain_comm_start",
            correlation_id=correlation_id,
            source_domain=self.source_domain,
            operation=operation,
            details=details,
        )
        return correlation_id

    def success(self, correlation_id: str, response_details: str = "") -> None:
        """Mark a call as completed."""
        record = self._finish(correlation_id, "SUCCESS", response_details)
        if record is None:
            return
        self.logger.info(
            "domain_comm_success",
            correlation_id=correlation_id,
            operation=record.operation,
            duration_ms=self._duration_ms(record),
            response=response_details,
        )

    def failure(
        self,
        correlation_id: str,
        error_details: str,
        exc: Optional[BaseException] = None,
    ) -> None:
        """Mark a call as failed."""
        record = self._finish(correlation_id, "FAILURE", error_details)
        if record is None:
            return
        self.logger.error(
            "domain_comm_failure",
            correlation_id=correlation_id,
            operation=record.operation,
            duration_ms=self._duration_ms(record),
            error=error_details,
            error_type=type(exc).__name__ if exc is not None else None,
        )

    @property
    def active_count(self) -> int:
        return len(self._active)

    def _finish(
        self, correlation_id: str, status: str, response_details: str
    ) -> Optional[CommunicationRecord]:
        record = self._active.pop(correlation_id, None)
        if record is None:
            self.logger.warning(
                "domain_comm_unknown_correlation_id", correlation_id=correlation_id
            )
            return None
        finished = record.model_copy(
            update={
                "finished_at": datetime.utcnow(),
                "status": status,
                "response_details": response_details,
            }
        )
        self.history.append(finished)
        return finished

    @staticmethod
    def _duration_ms(record: CommunicationRecord) -> int:
        return int((time.monotonic() - record.started_monotonic) * 1000)
