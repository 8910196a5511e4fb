"""
Counter normalization.

Turns successive raw, wrapping byte counters into:
- a monotonically accumulated total per direction
- the delta and elapsed time since the previous sample
- a bytes/sec rate, zeroed when samples are too far apart to trust
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING

from netrate.records import RawObservation

if TYPE_CHECKING:
    from netrate.store import StatStore


COUNTER_BITS = 32
STALE_AFTER_SECONDS = 60.0
RATE_EPSILON_SECONDS = 0.001


@dataclass(frozen=True)
class InterfaceState:
    """Latest normalized state of one interface."""

    raw_in: int = 0
    raw_out: int = 0
    captured_at: float = 0.0
    total_in: int = 0
    total_out: int = 0
    delta_in: int = 0
    delta_out: int = 0
    elapsed: float = 0.0
    in_rate: float = 0.0
    out_rate: float = 0.0
    valid: bool = False


def wrap_delta(new: int, previous: int, bits: int = COUNTER_BITS) -> int:
    """
    Bytes counted between two raw readings of a `bits`-wide counter.

    A reading lower than the previous one is taken as exactly one wrap.
    """
    if new < previous:
        return new + (1 << bits) - previous
    return new - previous


class CounterNormalizer:
    """
    Applies the wraparound and staleness policy to raw observations.

    Never raises for counter values: zero, repeated and decreasing readings
    are all valid input.
    """

    def __init__(
        self,
        counter_bits: int = COUNTER_BITS,
        stale_after: float = STALE_AFTER_SECONDS,
        epsilon: float = RATE_EPSILON_SECONDS,
    ):
        self.counter_bits = counter_bits
        self.stale_after = stale_after
        self.epsilon = epsilon
        self._modulus = 1 << counter_bits

    def normalize(
        self,
        previous: Optional[InterfaceState],
        observation: RawObservation,
        captured_at: float,
    ) -> Optional[InterfaceState]:
        """
        Compute the new state for `observation` taken at `captured_at`.

        Returns None when the observation must leave the store untouched:
        the interface is down, loopback, or has no name.
        """
        if observation.is_loopback or not observation.is_up or not observation.name:
            return None

        raw_in = observation.raw_in % self._modulus
        raw_out = observation.raw_out % self._modulus

        if previous is None or not previous.valid:
            return InterfaceState(
                raw_in=raw_in,
                raw_out=raw_out,
                captured_at=captured_at,
                valid=True,
            )

        delta_in = wrap_delta(raw_in, previous.raw_in, self.counter_bits)
        delta_out = wrap_delta(raw_out, previous.raw_out, self.counter_bits)
        elapsed = max(captured_at - previous.captured_at, 0.0)

        if elapsed > self.stale_after:
            in_rate = out_rate = 0.0
        else:
            in_rate = delta_in / (elapsed + self.epsilon)
            out_rate = delta_out / (elapsed + self.epsilon)

        return InterfaceState(
            raw_in=raw_in,
            raw_out=raw_out,
            captured_at=captured_at,
            total_in=previous.total_in + delta_in,
            total_out=previous.total_out + delta_out,
            delta_in=delta_in,
            delta_out=delta_out,
            elapsed=elapsed,
            in_rate=in_rate,
            out_rate=out_rate,
            valid=True,
        )

    def apply(
        self,
        store: "StatStore",
        observation: RawObservation,
        captured_at: float,
    ) -> Optional[InterfaceState]:
        """Normalize against the stored state and write the result back."""
        state = self.normalize(store.get(observation.name), observation, captured_at)
        if state is not None:
            store.put(observation.name, state)
        return state
