from dataclasses import dataclass
from typing import Optional

# Batch granularity for insert + spill-check cycles. Large enough to amortize
# SQLite transaction overhead, small enough to notice the threshold promptly.
DEFAULT_ADD_BATCH_SIZE = 50_000

# At ~200 bytes per resident item this caps the in-memory set near 100MB.
DEFAULT_SPILL_THRESHOLD = 500_000


@dataclass(frozen=True)
class SpillConfig:
    """
    Tunables for a single AppendSet.

    Attributes:
        add_batch_size: Maximum number of items forwarded to the store per chunk
        spill_threshold: Distinct-item count at which the set moves to disk
        temp_dir: Directory for the spill database (system temp dir if None)
    """

    add_batch_size: int = DEFAULT_ADD_BATCH_SIZE
    spill_threshold: int = DEFAULT_SPILL_THRESHOLD
    temp_dir: Optional[str] = None

    def __post_init__(self):
        if self.add_batch_size <= 0:
            raise ValueError("Add batch size must be positive")
        if self.spill_threshold <= 0:
            raise ValueError("Spill threshold must be positive")
