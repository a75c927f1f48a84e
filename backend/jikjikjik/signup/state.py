"""Page-lifetime state owned by one signup wizard session."""

from dataclasses import dataclass, field

ACTIVE = "active"
COMPLETED = "completed"


def _initial_indicators(total_steps: int) -> list[str]:
    return [ACTIVE] + [""] * (total_steps - 1)


@dataclass
class WizardState:
    """Active step (1-indexed) plus the step indicator marks."""
    total_steps: int
    current_step: int = 1
    indicators: list[str] = field(default_factory=list)

    def __post_init__(self):
        if not self.indicators:
            self.indicators = _initial_indicators(self.total_steps)

    def reset(self) -> None:
        self.current_step = 1
        self.indicators = _initial_indicators(self.total_steps)


@dataclass
class VerificationSession:
    """Proof-of-ownership attempt for one phone number.

    ``phone`` holds digits only. ``issued_code`` is cleared when the
    window runs out; the session then has to be dispatched again.
    """
    phone: str
    issued_code: str | None
    remaining_seconds: int
    sent_at: float
    verified: bool = False

    @property
    def expired(self) -> bool:
        return self.remaining_seconds < 0

    def invalidate(self) -> None:
        self.issued_code = None
        self.verified = False

    @property
    def time_left(self) -> str:
        """Remaining window as MM:SS."""
        minutes, seconds = divmod(max(self.remaining_seconds, 0), 60)
        return f"{minutes:02d}:{seconds:02d}"
