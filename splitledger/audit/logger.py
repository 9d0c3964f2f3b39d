"""
Audit Logger

DESIGN DECISION: Internal consistency violations are never raised to the
caller. The engine returns its best-effort result and reports the problem
here, where developers and telemetry can see it.

The audit logger:
- Always logs locally through structlog
- Forwards to an optional AuditSink
- Retries sinks that raise AuditSinkError, then gives up quietly
- Supports correlation IDs to trace one recomputation end to end
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from splitledger.audit.sink import AuditSink, AuditSinkError
from splitledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An AuditSink (for telemetry or test assertions), if given
    """

    def __init__(
        self,
        sink: Optional[AuditSink] = None,
    ):
        """
        Initialize audit logger.

        Args:
            sink: Destination for events.
                  If None, only logs locally.
        """
        self._sink = sink
        self._logger = structlog.get_logger("splitledger.audit")

    @property
    def sink(self) -> Optional[AuditSink]:
        return self._sink

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Forwards to the sink if available.

        Returns True if the sink accepted the event (or no sink is configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._sink:
            try:
                return self._deliver(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_sink_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, max=1),
        retry=retry_if_exception_type(AuditSinkError),
        reraise=True,
    )
    def _deliver(self, event: AuditEvent) -> bool:
        return self._sink.append_event(event)

    def log_balance_invariant_violated(
        self,
        group_id: Optional[str],
        residual: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log net balances that do not sum to zero."""
        self.log(AuditEventBuilder.balance_invariant_violated(
            group_id=group_id,
            residual=residual,
            correlation_id=correlation_id,
        ))

    def log_expense_split_mismatch(
        self,
        expense_id: str,
        amount: str,
        shares_total: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an expense whose participant shares do not add up."""
        self.log(AuditEventBuilder.expense_split_mismatch(
            expense_id=expense_id,
            amount=amount,
            shares_total=shares_total,
            correlation_id=correlation_id,
        ))

    def log_currency_mismatch(
        self,
        entity_type: str,
        entity_id: str,
        expected: str,
        found: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.currency_mismatch(
            entity_type=entity_type,
            entity_id=entity_id,
            expected=expected,
            found=found,
            correlation_id=correlation_id,
        ))

    def log_settlement_residual(
        self,
        unsettled: dict[str, str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log balances the settlement plan could not zero."""
        self.log(AuditEventBuilder.settlement_residual(
            unsettled=unsettled,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a snapshot recomputation and pass it
    through the aggregator and optimizer.
    """
    return uuid4()
