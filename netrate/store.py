"""
Per-interface state kept across polling cycles.

Owned by the collector loop: created once at start-up and passed into
every cycle. Entries are never removed; an interface that disappears
simply keeps reporting its last known values.
"""

from __future__ import annotations

from typing import Dict, Iterator, NamedTuple, Optional, Tuple

from netrate.normalizer import InterfaceState


class InterfaceReport(NamedTuple):
    """What the reporting side sees for one interface."""

    name: str
    total_in: int
    total_out: int
    in_rate: float
    out_rate: float


class StatStore:
    """Mapping of interface name (case-sensitive) to its latest state."""

    def __init__(self):
        self._states: Dict[str, InterfaceState] = {}

    def get(self, name: str) -> Optional[InterfaceState]:
        return self._states.get(name)

    def put(self, name: str, state: InterfaceState) -> None:
        self._states[name] = state

    def __contains__(self, name: object) -> bool:
        return name in self._states

    def __len__(self) -> int:
        return len(self._states)

    def __iter__(self) -> Iterator[Tuple[str, InterfaceState]]:
        return iter(list(self._states.items()))

    def report(self) -> Iterator[InterfaceReport]:
        """One report per known interface, sorted by name."""
        for name in sorted(self._states):
            state = self._states[name]
            yield InterfaceReport(
                name=name,
                total_in=state.total_in,
                total_out=state.total_out,
                in_rate=state.in_rate,
                out_rate=state.out_rate,
            )
