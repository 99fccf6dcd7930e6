"""Retry plan entity."""

from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class RetryPlan:
    """Bounded exponential backoff, delays in seconds.

    ``max_attempts`` counts retries after the first attempt on one origin.
    """

    max_attempts: int = 3
    initial_delay: float = 0.1
    max_delay: float = 1.0
    backoff_multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 0:
            raise ValueError("max_attempts must be >= 0")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must be >= 0")
        if self.initial_delay > self.max_delay:
            raise ValueError("initial_delay must be <= max_delay")
        if self.backoff_multiplier < 1:
            raise ValueError("backoff_multiplier must be >= 1")

    def delay(self, attempt: int) -> float:
        """Delay before retrying after the given attempt index (0-based)."""
        if self.initial_delay == 0:
            return 0.0
        try:
            delay = self.initial_delay * self.backoff_multiplier**attempt
        except OverflowError:
            return self.max_delay
        return min(delay, self.max_delay)

    def worst_case(self) -> float:
        """Total backoff sleep on one origin when every retry is used."""
        return sum(self.delay(i) for i in range(self.max_attempts))

    def to_dict(self) -> dict[str, float]:
        return asdict(self)
