"""Probabilistic failure simulation for the ping collector."""

import random
from enum import Enum
from typing import Protocol


class Outcome(Enum):
    """How the collector treats a validated ping."""

    ACCEPT = "accept"
    ERROR = "error"
    HANG = "hang"


class SimulatedError(RuntimeError):
    """Raised for the simulated internal error branch."""


class OutcomePolicy(Protocol):
    """Protocol defining how an outcome is chosen for each request."""

    def decide(self) -> Outcome:
        """Choose the outcome for one validated request."""
        ...


class FailureSimulator:
    """Draws a random outcome per request: success, server error or hang."""

    def __init__(
        self,
        seed: int | None = None,
        rng: random.Random | None = None,
        ok_chance: float = 0.6,
        error_chance: float = 0.2,
    ):
        """Initialize the simulator.

        Args:
            seed: Optional seed for deterministic behavior
            rng: Random source to draw from; overrides seed when given
            ok_chance: Probability of accepting a ping
            error_chance: Probability of a simulated internal error; the
                remaining probability mass makes the collector hang
        """
        if ok_chance < 0 or error_chance < 0 or ok_chance + error_chance > 1:
            raise ValueError("chances must be non-negative and sum to at most 1")

        # Isolated random instance unless one is injected
        self._random = rng if rng is not None else random.Random(seed)
        self.ok_chance = ok_chance
        self.error_chance = error_chance

    def decide(self) -> Outcome:
        r = self._random.random()
        if r < self.ok_chance:
            return Outcome.ACCEPT
        if r < self.ok_chance + self.error_chance:
            return Outcome.ERROR
        return Outcome.HANG


class FixedOutcome:
    """Policy that always returns the same outcome."""

    def __init__(self, outcome: Outcome):
        self.outcome = outcome

    def decide(self) -> Outcome:
        return self.outcome


def policy_from_name(name: str, seed: int | None = None) -> OutcomePolicy:
    """Build an outcome policy from its configuration name.

    ``random`` gives the 60/20/20 FailureSimulator; ``accept``, ``error`` and
    ``hang`` force a single branch.
    """
    name = name.strip().lower()
    if name == "random":
        return FailureSimulator(seed=seed)
    try:
        return FixedOutcome(Outcome(name))
    except ValueError:
        raise ValueError(f"Unknown outcome policy: {name!r}") from None
