"""
Circuit breaker utility for remote catalog backends.
Stops hammering a failing pricing API; while open, lookups fail fast.
"""
from enum import Enum
import logging
import time
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


FAILURE_THRESHOLD = 3  # Trip breaker after N consecutive failures
OPEN_STATE_DURATION = 60.0  # Seconds to remain OPEN before allowing a trial request
HALF_OPEN_MAX_REQUESTS = 1  # Trial requests allowed while HALF_OPEN


class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing fast
    HALF_OPEN = "half_open"  # Probing for recovery


class CircuitBreakerError(Exception):
    """Raised by check() when the circuit does not allow a request."""
    pass


class CircuitBreaker:
    """
    Consecutive-failure circuit breaker.

    Transitions:
    - CLOSED -> OPEN: after failure_threshold consecutive failures
    - OPEN -> HALF_OPEN: once open_duration seconds have elapsed
    - HALF_OPEN -> CLOSED: on a successful trial request
    - HALF_OPEN -> OPEN: on a failed trial request
    """

    def __init__(
        self,
        service_name: str,
        failure_threshold: int = FAILURE_THRESHOLD,
        open_duration: float = OPEN_STATE_DURATION,
        half_open_max_requests: int = HALF_OPEN_MAX_REQUESTS,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize circuit breaker.

        Args:
            service_name: Name of the guarded backend (e.g., "azure_retail")
            failure_threshold: Consecutive failures before opening
            open_duration: Seconds to stay OPEN before probing
            half_open_max_requests: Trial requests allowed in HALF_OPEN
            clock: Monotonic time source, injectable for tests
        """
        self.service_name = service_name
        self.failure_threshold = failure_threshold
        self.open_duration = open_duration
        self.half_open_max_requests = half_open_max_requests
        self._clock = clock

        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.opened_at: Optional[float] = None
        self.half_open_requests = 0

    def _transition(self, new_state: CircuitState, reason: str) -> None:
        logger.warning(
            "Circuit breaker for %s: %s -> %s (%s)",
            self.service_name, self.state.name, new_state.name, reason
        )
        self.state = new_state

    def allow_request(self) -> bool:
        """
        Check if a request may proceed.

        Returns:
            True if the request should be sent, False if the circuit is open
        """
        if self.state == CircuitState.OPEN:
            if self.opened_at is not None and self._clock() - self.opened_at >= self.open_duration:
                self._transition(CircuitState.HALF_OPEN, "testing recovery")
                self.half_open_requests = 1
                return True
            return False

        if self.state == CircuitState.HALF_OPEN:
            if self.half_open_requests < self.half_open_max_requests:
                self.half_open_requests += 1
                return True
            return False

        return True

    def check(self) -> None:
        """Raise CircuitBreakerError if a request is not allowed."""
        if not self.allow_request():
            raise CircuitBreakerError(
                f"{self.service_name} is unavailable (circuit {self.state.value})"
            )

    def record_success(self) -> None:
        if self.state == CircuitState.HALF_OPEN:
            self._transition(CircuitState.CLOSED, "service recovered")
            self.opened_at = None
            self.half_open_requests = 0
        self.failure_count = 0

    def record_cancelled(self) -> None:
        """
        Release the slot of a request that ended without an outcome.

        A cancelled trial request shows neither recovery nor failure, so HALF_OPEN
        admits the next request in its place.
        """
        if self.state == CircuitState.HALF_OPEN and self.half_open_requests > 0:
            self.half_open_requests -= 1

    def record_failure(self) -> None:
        self.failure_count += 1

        if self.state == CircuitState.HALF_OPEN:
            self._transition(CircuitState.OPEN, "service still failing")
            self.opened_at = self._clock()
            self.half_open_requests = 0
        elif self.state == CircuitState.CLOSED and self.failure_count >= self.failure_threshold:
            self._transition(CircuitState.OPEN, f"{self.failure_count} consecutive failures")
            self.opened_at = self._clock()


# One breaker per remote backend, shared by every catalog instance
_circuit_breakers: Dict[str, CircuitBreaker] = {}


def get_circuit_breaker(service_name: str) -> CircuitBreaker:
    """
    Get or create the circuit breaker for a backend.

    Args:
        service_name: Name of the backend

    Returns:
        CircuitBreaker instance for the backend
    """
    if service_name not in _circuit_breakers:
        _circuit_breakers[service_name] = CircuitBreaker(service_name)
    return _circuit_breakers[service_name]


def reset_circuit_breakers() -> None:
    """Forget every breaker (used between tests)."""
    _circuit_breakers.clear()
