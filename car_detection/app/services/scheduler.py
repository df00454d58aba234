from dataclasses import dataclass, field


@dataclass
class IntervalScheduler:
    """Decide when the live loop should run a detection cycle.

    Callers feed the elapsed time since the previous call; nothing here reads a
    clock. Calls must be serialized by the host loop.
    """

    interval: float = 1.0
    _accumulated: float = field(default=0.0, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.interval <= 0:
            raise ValueError(f"Detection interval must be positive, got {self.interval}")

    @property
    def accumulated(self) -> float:
        return self._accumulated

    def advance(self, elapsed: float) -> bool:
        """Accumulate ``elapsed`` seconds; return True (and restart) once the interval is reached."""

        if elapsed < 0:
            raise ValueError(f"Elapsed time cannot be negative, got {elapsed}")
        self._accumulated += elapsed
        if self._accumulated >= self.interval:
            self._accumulated = 0.0
            return True
        return False

    def reset(self) -> None:
        self._accumulated = 0.0
