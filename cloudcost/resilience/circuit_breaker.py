"""
Circuit breaker utility for resilience.
Stops hammering documentation and search hosts that are failing; an open
breaker counts as one failed attempt and is never retried.
"""
from enum import Enum
from datetime import datetime
import logging
import threading
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


# Circuit breaker configuration constants
FAILURE_THRESHOLD = 3  # Trip breaker after N consecutive failures
OPEN_STATE_DURATION = 60  # Seconds to remain OPEN before transitioning to HALF_OPEN
HALF_OPEN_MAX_REQUESTS = 1  # Max requests allowed in HALF_OPEN state


class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing fast, not calling upstream
    HALF_OPEN = "half_open"  # Testing if upstream recovered


class CircuitBreaker:
    """
    Circuit breaker guarding one upstream host.
    
    Transitions:
    - CLOSED -> OPEN: After failure_threshold consecutive failures
    - OPEN -> HALF_OPEN: After open_duration seconds
    - HALF_OPEN -> CLOSED: On successful request
    - HALF_OPEN -> OPEN: On failure during test
    """
    
    def __init__(
        self,
        service_name: str,
        failure_threshold: int = FAILURE_THRESHOLD,
        open_duration: int = OPEN_STATE_DURATION,
        half_open_max_requests: int = HALF_OPEN_MAX_REQUESTS,
        clock: Callable[[], datetime] = datetime.now
    ):
        """
        Initialize circuit breaker.
        
        Args:
            service_name: Upstream label used in logs (e.g. "freetier_docs")
            failure_threshold: Number of consecutive failures before opening
            open_duration: Seconds to remain OPEN before HALF_OPEN
            half_open_max_requests: Max requests allowed in HALF_OPEN state
            clock: Time source, injectable for tests
        """
        self.service_name = service_name
        self.failure_threshold = failure_threshold
        self.open_duration = open_duration
        self.half_open_max_requests = half_open_max_requests
        self._clock = clock
        self._lock = threading.Lock()
        
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.opened_at: Optional[datetime] = None
        self.half_open_requests = 0
        self.probe_started_at: Optional[datetime] = None
    
    def allow_request(self) -> bool:
        """
        Check if a call to the upstream may proceed.
        
        Returns:
            True if request should proceed, False if circuit is open
        """
        with self._lock:
            if self.state == CircuitState.OPEN:
                elapsed = (self._clock() - self.opened_at).total_seconds() if self.opened_at else 0
                if elapsed < self.open_duration:
                    return False
                logger.warning(
                    f"Circuit breaker for {self.service_name}: OPEN -> HALF_OPEN (testing recovery)"
                )
                self.state = CircuitState.HALF_OPEN
                self.half_open_requests = 0
            
            if self.state == CircuitState.HALF_OPEN:
                now = self._clock()
                if self.half_open_requests >= self.half_open_max_requests and self.probe_started_at:
                    # A probe that never reported back must not hold the slot forever
                    if (now - self.probe_started_at).total_seconds() >= self.open_duration:
                        logger.warning(
                            f"Circuit breaker for {self.service_name}: HALF_OPEN probe timed out, allowing another"
                        )
                        self.half_open_requests = 0
                if self.half_open_requests < self.half_open_max_requests:
                    self.half_open_requests += 1
                    self.probe_started_at = now
                    return True
                return False
            
            return True
    
    def record_success(self) -> None:
        """Reset the failure count; closes a HALF_OPEN circuit."""
        with self._lock:
            if self.state == CircuitState.HALF_OPEN:
                logger.warning(
                    f"Circuit breaker for {self.service_name}: HALF_OPEN -> CLOSED (upstream recovered)"
                )
                self.state = CircuitState.CLOSED
                self.half_open_requests = 0
                self.opened_at = None
            self.failure_count = 0
    
    def record_failure(self) -> None:
        """Count a failure; opens the circuit at the threshold or on a failed probe."""
        with self._lock:
            self.failure_count += 1
            
            if self.state == CircuitState.HALF_OPEN:
                logger.warning(
                    f"Circuit breaker for {self.service_name}: HALF_OPEN -> OPEN (upstream still failing)"
                )
                self.state = CircuitState.OPEN
                self.opened_at = self._clock()
                self.half_open_requests = 0
            elif self.state == CircuitState.CLOSED and self.failure_count >= self.failure_threshold:
                logger.warning(
                    f"Circuit breaker for {self.service_name}: "
                    f"CLOSED -> OPEN ({self.failure_count} consecutive failures)"
                )
                self.state = CircuitState.OPEN
                self.opened_at = self._clock()
    
    def release(self) -> None:
        """Give back a HALF_OPEN probe slot for a call that ended without an outcome (e.g. cancelled)."""
        with self._lock:
            if self.state == CircuitState.HALF_OPEN and self.half_open_requests > 0:
                self.half_open_requests -= 1
    
    def current_state(self) -> CircuitState:
        return self.state


# Global circuit breaker instances (one per upstream)
_circuit_breakers: Dict[str, CircuitBreaker] = {}
_registry_lock = threading.Lock()


def get_circuit_breaker(service_name: str) -> CircuitBreaker:
    """
    Get or create the shared circuit breaker for an upstream.
    
    Args:
        service_name: Name of the upstream
    
    Returns:
        CircuitBreaker instance for the upstream
    """
    with _registry_lock:
        if service_name not in _circuit_breakers:
            _circuit_breakers[service_name] = CircuitBreaker(service_name)
        return _circuit_breakers[service_name]


def reset_circuit_breakers() -> None:
    """Forget all breakers (used by tests and on configuration reload)."""
    with _registry_lock:
        _circuit_breakers.clear()
