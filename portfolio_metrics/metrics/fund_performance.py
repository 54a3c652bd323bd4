"""Fund performance multiples and IRR for LP reporting.

Every function returns None instead of raising when the input cannot
produce a meaningful figure: no investments, nothing paid in, or cash
flows without both an outflow and an inflow.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Sequence

import numpy as np

from portfolio_metrics.common.time_utils import utc_calendar_date


logger = logging.getLogger(__name__)

DAYS_PER_YEAR = 365.25
IRR_INITIAL_GUESS = 0.1
IRR_MAX_ITERATIONS = 100
IRR_TOLERANCE = 1e-8
# Accepted IRR range: -100% .. 10,000%.
IRR_MIN = -1.0
IRR_MAX = 100.0


@dataclass(frozen=True)
class Investment:
    invested_amount: float
    current_value: float  # unrealized
    realized_value: float


@dataclass(frozen=True)
class CashFlow:
    when: date | datetime
    amount: float  # negative = paid in, positive = distributed or residual value


def _totals(investments: Sequence[Investment]) -> tuple[float, float, float] | None:
    if not investments:
        return None
    x = np.asarray(
        [(i.invested_amount, i.current_value, i.realized_value) for i in investments],
        dtype=float,
    )
    invested, unrealized, realized = (float(v) for v in x.sum(axis=0))
    if invested == 0:
        return None
    return invested, unrealized, realized


def calculate_tvpi(investments: Sequence[Investment]) -> float | None:
    """Total value (unrealized + realized) to paid-in."""
    totals = _totals(investments)
    if totals is None:
        return None
    invested, unrealized, realized = totals
    return (unrealized + realized) / invested


def calculate_dpi(investments: Sequence[Investment]) -> float | None:
    totals = _totals(investments)
    if totals is None:
        return None
    invested, _, realized = totals
    return realized / invested


def calculate_rvpi(investments: Sequence[Investment]) -> float | None:
    totals = _totals(investments)
    if totals is None:
        return None
    invested, unrealized, _ = totals
    return unrealized / invested


def calculate_moic(investments: Sequence[Investment]) -> float | None:
    # Same ratio as TVPI, reported per deal rather than per fund.
    return calculate_tvpi(investments)


def _npv(rate: float, amounts: np.ndarray, years: np.ndarray) -> float:
    base = 1.0 + rate
    if base <= 0:
        return math.inf
    return float(np.sum(amounts / np.power(base, years)))


def _npv_derivative(rate: float, amounts: np.ndarray, years: np.ndarray) -> float:
    base = 1.0 + rate
    if base <= 0:
        return math.inf
    return float(np.sum(-years * amounts / np.power(base, years + 1.0)))


def calculate_irr(cash_flows: Sequence[CashFlow]) -> float | None:
    """Annualised internal rate of return of dated cash flows.

    Newton-Raphson on the NPV with year fractions of 365.25 days from the
    earliest flow, starting at 10%. Returns None without at least one
    outflow and one inflow, when the iteration diverges or does not
    converge, or when the root lies outside -100%..10,000%.
    """
    if len(cash_flows) < 2:
        return None
    if not any(cf.amount < 0 for cf in cash_flows) or not any(cf.amount > 0 for cf in cash_flows):
        return None

    ordered = sorted(cash_flows, key=lambda cf: utc_calendar_date(cf.when))
    first = utc_calendar_date(ordered[0].when)
    years = np.asarray(
        [(utc_calendar_date(cf.when) - first).days / DAYS_PER_YEAR for cf in ordered],
        dtype=float,
    )
    amounts = np.asarray([cf.amount for cf in ordered], dtype=float)

    rate = IRR_INITIAL_GUESS
    with np.errstate(over="ignore", divide="ignore", invalid="ignore"):
        for _ in range(IRR_MAX_ITERATIONS):
            f = _npv(rate, amounts, years)
            f_prime = _npv_derivative(rate, amounts, years)
            if abs(f_prime) < 1e-14:
                # Flat NPV: step away from the stationary point.
                rate += 0.1
                continue

            new_rate = rate - f / f_prime
            if not math.isfinite(new_rate):
                logger.debug("IRR iteration diverged at rate %r", rate)
                return None
            if abs(new_rate - rate) < IRR_TOLERANCE:
                if new_rate < IRR_MIN or new_rate > IRR_MAX:
                    return None
                return new_rate
            rate = new_rate

    logger.debug("IRR did not converge after %d iterations", IRR_MAX_ITERATIONS)
    return None
