"""
One polling cycle: decode the interface table and fold it into the store.

Parsing and applying are interleaved record by record, so when a buffer
turns out to be malformed part-way through, the interfaces decoded before
the bad record have already been applied and stay applied.
"""

import logging

from netrate.normalizer import CounterNormalizer
from netrate.records import DARWIN_LAYOUT, RecordLayout, iter_observations
from netrate.store import StatStore

logger = logging.getLogger(__name__)


def run_cycle(
    store: StatStore,
    normalizer: CounterNormalizer,
    buffer: bytes,
    captured_at: float,
    layout: RecordLayout = DARWIN_LAYOUT,
) -> int:
    """
    Apply every qualifying record in `buffer` to `store`.

    Returns the number of observations that updated the store. Raises
    `MalformedBufferError` if a record overruns the buffer.
    """
    applied = 0
    for observation in iter_observations(buffer, layout):
        state = normalizer.apply(store, observation, captured_at)
        if state is None:
            logger.debug("Interface %s is down; keeping previous state", observation.name)
            continue
        applied += 1
    return applied
