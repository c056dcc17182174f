"""
Usage governor for upstream model calls.

Owns the process-wide usage record and decides whether a paid upstream call
is permitted.

Evaluation Order:
1. Lifetime cost limit - One-way latch, never reset within the process
2. Daily request limit
3. Monthly request limit
4. Monthly cost limit - Projects half a thousand tokens for the next call

Counters live in memory only and start from zero on every deploy.
"""

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum, auto
from typing import Callable, Optional

from resume_chat.config.loader import UsageLimits

logger = logging.getLogger(__name__)

# Fraction of a thousand tokens assumed for the next call's cost projection
NEXT_CALL_COST_FACTOR = 0.5


class UsageDecision(Enum):
    """Outcome of a permission check, in evaluation order."""
    ALLOWED = auto()
    LIFETIME_LIMIT = auto()
    DAILY_LIMIT = auto()
    MONTHLY_REQUEST_LIMIT = auto()
    MONTHLY_COST_LIMIT = auto()


@dataclass
class UsageRecord:
    """Mutable usage counters for the current process."""
    last_reset: datetime
    daily_request_count: int = 0
    monthly_request_count: int = 0
    monthly_cost_estimate: float = 0.0
    lifetime_cost_estimate: float = 0.0
    upstream_permanently_disabled: bool = False


class UsageGovernor:
    """Gatekeeper for every upstream call.

    The only component that mutates the UsageRecord. All operations run
    under a single lock because request handlers execute on a thread pool.

    Requests between a permission check and their usage being recorded are
    tracked as reservations and count against the ceilings, so concurrent
    requests cannot all slip past the same remaining headroom. The accepted
    overshoot is the difference between the projected and the actual cost
    of calls already in flight.
    """

    def __init__(
        self,
        limits: UsageLimits,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """Initialize the governor.

        Args:
            limits: Spending ceilings (required)
            clock: Source of the current time, defaults to datetime.now
        """
        self._limits = limits
        self._clock = clock or datetime.now
        self._lock = threading.Lock()
        self._record = UsageRecord(last_reset=self._clock())
        self._in_flight = 0
        self._latch_warned = False

    @property
    def limits(self) -> UsageLimits:
        return self._limits

    @property
    def upstream_disabled(self) -> bool:
        with self._lock:
            return self._record.upstream_permanently_disabled

    def snapshot(self) -> UsageRecord:
        """Return a copy of the current usage record."""
        with self._lock:
            return replace(self._record)

    def reset_counters_if_new_period(self) -> None:
        """Zero period counters when the calendar day or month has changed."""
        with self._lock:
            self._reset_if_new_period()

    def evaluate(self) -> UsageDecision:
        """Decide whether an upstream call is permitted right now."""
        with self._lock:
            self._reset_if_new_period()
            return self._evaluate()

    def can_make_upstream_request(self) -> bool:
        return self.evaluate() is UsageDecision.ALLOWED

    def reserve(self) -> UsageDecision:
        """Check permission and, when allowed, hold a slot for one call.

        A held reservation is settled by record_usage() after a successful
        call, or dropped by release() when the call fails.
        """
        with self._lock:
            self._reset_if_new_period()
            decision = self._evaluate()
            if decision is UsageDecision.ALLOWED:
                self._in_flight += 1
            return decision

    def release(self) -> None:
        """Drop a reservation whose upstream call did not complete."""
        with self._lock:
            if self._in_flight > 0:
                self._in_flight -= 1

    def record_usage(self, tokens_used: int) -> None:
        """Account for one completed upstream call.

        Must be called only after a successful call, with the real token
        count from that call's response.

        Args:
            tokens_used: Total tokens reported by the upstream API
        """
        tokens_used = max(int(tokens_used), 0)
        cost = tokens_used / 1000 * self._limits.cost_per_1k_tokens

        with self._lock:
            if self._in_flight > 0:
                self._in_flight -= 1

            record = self._record
            record.daily_request_count += 1
            record.monthly_request_count += 1
            record.monthly_cost_estimate += cost
            record.lifetime_cost_estimate += cost

            if record.lifetime_cost_estimate >= self._limits.lifetime_cost_limit:
                self._latch()
            lifetime = record.lifetime_cost_estimate

        logger.debug(
            "Recorded upstream usage: tokens=%s cost=$%.6f lifetime=$%.6f",
            tokens_used,
            cost,
            lifetime,
        )

    def _reset_if_new_period(self) -> None:
        now = self._clock()
        record = self._record
        last = record.last_reset

        if now.date() != last.date():
            record.daily_request_count = 0
        if (now.year, now.month) != (last.year, last.month):
            record.monthly_request_count = 0
            record.monthly_cost_estimate = 0.0
            logger.info("New billing month, monthly usage counters reset")

        record.last_reset = now

    def _evaluate(self) -> UsageDecision:
        record = self._record
        limits = self._limits

        if record.upstream_permanently_disabled:
            return UsageDecision.LIFETIME_LIMIT
        if record.lifetime_cost_estimate >= limits.lifetime_cost_limit:
            self._latch()
            return UsageDecision.LIFETIME_LIMIT

        pending = self._in_flight
        if record.daily_request_count + pending >= limits.daily_request_limit:
            return UsageDecision.DAILY_LIMIT
        if record.monthly_request_count + pending >= limits.monthly_request_limit:
            return UsageDecision.MONTHLY_REQUEST_LIMIT

        projected = limits.cost_per_1k_tokens * NEXT_CALL_COST_FACTOR
        if record.monthly_cost_estimate + projected * (pending + 1) >= limits.monthly_cost_limit:
            return UsageDecision.MONTHLY_COST_LIMIT

        return UsageDecision.ALLOWED

    def _latch(self) -> None:
        self._record.upstream_permanently_disabled = True
        if not self._latch_warned:
            self._latch_warned = True
            logger.warning(
                "Lifetime cost limit of $%.2f reached ($%.4f spent); "
                "upstream calls disabled until restart",
                self._limits.lifetime_cost_limit,
                self._record.lifetime_cost_estimate,
            )
