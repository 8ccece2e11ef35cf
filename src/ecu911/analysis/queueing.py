"""M/M/c queueing model (Erlang-C).

Poisson arrivals at rate lambda (incidents/hour), exponential service at
rate mu per responder (mu = 60 / mean service minutes) and c parallel
responders. Factorial terms are evaluated through the Poisson pmf/cdf so
large provinces (c in the thousands) stay numerically stable.

When lambda >= c*mu the queue has no steady state. That is reported as a
data condition: waits and queue lengths are infinite, the probability of
waiting is 1 and the province is classified as overloaded.
"""

import math
from dataclasses import dataclass
from typing import Optional, Tuple

from scipy import stats

from ecu911.core.config import QueueingConfig
from ecu911.core.entities import CapacityStatus

# Guards ceil() against float noise such as 90 / (2.4 * 0.75) = 50.000000000000007
_CEIL_PRECISION = 9


@dataclass(frozen=True)
class QueueAnalysis:
    """Steady-state metrics for one M/M/c system.

    Attributes:
        utilization_factor: rho = lambda / (c * mu).
        probability_empty: P0, probability of no incidents in the system.
        probability_of_waiting: Erlang-C, chance an arrival must queue.
        avg_wait_time_minutes: Wq.
        avg_system_time_minutes: W = Wq + 1/mu.
        avg_queue_length: Lq = lambda * Wq.
        avg_system_length: L = lambda * W.
        recommended_personnel: Servers needed to hold rho at the optimal target.
    """
    utilization_factor: float
    probability_empty: float
    probability_of_waiting: float
    avg_wait_time_minutes: float
    avg_system_time_minutes: float
    avg_queue_length: float
    avg_system_length: float
    is_overloaded: bool
    is_critical: bool
    is_optimal: bool
    is_underutilized: bool
    recommended_personnel: int

    @property
    def utilization_percentage(self) -> float:
        return self.utilization_factor * 100

    @property
    def is_stable(self) -> bool:
        return self.utilization_factor < 1.0


def erlang_c(arrival_rate: float, service_rate: float, servers: int) -> Tuple[float, float]:
    """Probability of waiting and of an empty system.

    Uses P0 = [sum_{n<c} a^n/n! + a^c/c! * c/(c-a)]^-1 with a = lambda/mu,
    rewritten with Poisson terms (multiply through by e^-a).

    Args:
        arrival_rate: lambda, arrivals per hour.
        service_rate: mu, completions per hour per server.
        servers: c, at least 1.

    Returns:
        (C(c, lambda, mu), P0). (1.0, 0.0) when the system is unstable.
    """
    if servers < 1:
        raise ValueError("servers must be at least 1")
    if arrival_rate <= 0:
        return 0.0, 1.0
    offered = arrival_rate / service_rate
    if offered >= servers:
        return 1.0, 0.0

    tail = stats.poisson.pmf(servers, offered) * servers / (servers - offered)
    denominator = stats.poisson.cdf(servers - 1, offered) + tail
    probability_wait = float(tail / denominator)
    probability_empty = float(math.exp(-offered) / denominator)
    return probability_wait, probability_empty


def recommended_servers(
    arrival_rate: float, service_rate: float, target_utilization: float
) -> int:
    """Smallest c with rho <= target: ceil(lambda / (mu * target)), at least 1."""
    raw = arrival_rate / (service_rate * target_utilization)
    return max(1, math.ceil(round(raw, _CEIL_PRECISION)))


def classify(rho: float, config: QueueingConfig) -> CapacityStatus:
    """Map utilisation to a capacity status.

    rho >= 1 is CRITICAL (collapsed), rho >= critical threshold is
    OVERLOADED, below the minimum is UNDERUTILIZED, everything else
    (including the band between optimal and critical) is OPTIMAL.
    """
    if rho >= 1.0:
        return CapacityStatus.CRITICAL
    if rho >= config.critical_utilization:
        return CapacityStatus.OVERLOADED
    if rho < config.min_utilization:
        return CapacityStatus.UNDERUTILIZED
    return CapacityStatus.OPTIMAL


def utilization(arrival_rate: float, servers: float, config: QueueingConfig) -> float:
    """rho for a given headcount; infinite with no servers and positive load."""
    if servers <= 0:
        return math.inf if arrival_rate > 0 else 0.0
    return arrival_rate / (servers * config.service_rate)


def analyze_queue_performance(
    emergencies_per_hour: float,
    available_personnel: int,
    config: Optional[QueueingConfig] = None,
) -> QueueAnalysis:
    """Full M/M/c analysis for one province.

    Args:
        emergencies_per_hour: Arrival rate lambda.
        available_personnel: Server count c (floored at 1).
        config: Model constants. Uses defaults if None.

    Returns:
        QueueAnalysis with all steady-state metrics.
    """
    config = config or QueueingConfig()
    lam = max(0.0, float(emergencies_per_hour))
    mu = config.service_rate
    c = max(1, int(available_personnel))

    rho = lam / (c * mu)
    p_wait, p0 = erlang_c(lam, mu, c)

    if lam >= c * mu:
        wait_minutes = math.inf
    else:
        wait_minutes = p_wait / (c * mu - lam) * 60
    system_minutes = wait_minutes + config.service_time_minutes

    return QueueAnalysis(
        utilization_factor=rho,
        probability_empty=p0,
        probability_of_waiting=p_wait,
        avg_wait_time_minutes=wait_minutes,
        avg_system_time_minutes=system_minutes,
        avg_queue_length=lam * wait_minutes / 60,
        avg_system_length=lam * system_minutes / 60,
        is_overloaded=rho >= 1.0,
        is_critical=rho >= config.critical_utilization,
        is_optimal=config.min_utilization <= rho <= config.optimal_utilization,
        is_underutilized=rho < config.min_utilization,
        recommended_personnel=recommended_servers(lam, mu, config.optimal_utilization),
    )
