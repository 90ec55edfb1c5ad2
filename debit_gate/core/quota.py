from debit_gate.core.errors import ExceedsMaxPerOrdinal, ExceedsPerTransferLimit, ExceedsPeriodLimit
from debit_gate.schemas.records import (
    DelegateRecord, INITIAL_ACCUMULATED, INITIAL_ANCHOR_TIMESTAMP, INITIAL_TRANSFER_ORDINAL, U64_MAX,
)
import logging

logger = logging.getLogger(__name__)

# AUTHORITATIVE QUOTA ENGINE – DO NOT DUPLICATE
# Every debit against a delegate passes through admit_debit.


def _period_elapsed(record: DelegateRecord, current_timestamp: int) -> bool:
    # Strictly greater: a call exactly period_seconds after the anchor stays in the window
    return current_timestamp - record.period_anchor_timestamp > record.period_seconds


def admit_debit(record: DelegateRecord, amount: int, current_timestamp: int, current_ordinal: int) -> None:
    """
    Validates a debit against the delegate's limits and records it.

    Checks run in a fixed order and all of them run before any field is written,
    so a rejected debit leaves the record exactly as it was:
      1. amount above the per-transfer limit
      2. a debit was already admitted in this processing step
      3. (not a check) the rolling window restarts at current_timestamp once it has elapsed
      4. the window total would pass the period limit, or overflow
    """
    if amount < 0:
        raise ValueError("Debit amount must not be negative")

    if amount > record.per_transfer_limit:
        raise ExceedsPerTransferLimit(
            f"Amount {amount} exceeds per-transfer limit {record.per_transfer_limit}"
        )

    if current_ordinal == record.last_transfer_ordinal:
        raise ExceedsMaxPerOrdinal(f"A debit was already admitted in step {current_ordinal}")

    accumulated = record.period_accumulated
    anchor = record.period_anchor_timestamp
    if _period_elapsed(record, current_timestamp):
        accumulated = 0
        anchor = current_timestamp

    total = accumulated + amount
    if total > U64_MAX or total > record.period_limit:
        raise ExceedsPeriodLimit(
            f"Amount {amount} with {accumulated} already moved exceeds period limit {record.period_limit}"
        )

    if anchor != record.period_anchor_timestamp:
        logger.debug(f"Period rolled over at {current_timestamp}")
    record.period_anchor_timestamp = anchor
    record.last_transfer_ordinal = current_ordinal
    record.period_accumulated = total


def reset_quota_state(record: DelegateRecord) -> None:
    record.period_accumulated = INITIAL_ACCUMULATED
    record.period_anchor_timestamp = INITIAL_ANCHOR_TIMESTAMP
    record.last_transfer_ordinal = INITIAL_TRANSFER_ORDINAL


def remaining_headroom(record: DelegateRecord, current_timestamp: int) -> int:
    """Largest amount a debit at current_timestamp could move, ignoring the per-step cap."""
    accumulated = 0 if _period_elapsed(record, current_timestamp) else record.period_accumulated
    return max(0, min(record.per_transfer_limit, record.period_limit - accumulated))
