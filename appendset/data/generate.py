import random
import time
from typing import Any, Dict, Iterator, List, Optional

from mimesis import Person
from mimesis.locales import Locale


class ItemGenerator:
    """Generates set items with mimesis: usernames and small composite records."""

    def __init__(self, locale: Locale = Locale.EN, seed: Optional[int] = None):
        self.person = Person(locale=locale, seed=seed)
        self.random = random.Random(seed)
        self.basic = ["C", "c", "U", "u", "L", "l", "D", "d", ""]
        self.connectors = [".", "_", "-", ""]
        # mimesis needs at least one of these in a username mask
        required_chars = {"C", "U", "l"}
        patterns_set = set()
        for first in self.basic:
            for second in self.basic:
                for connector in self.connectors:
                    pattern = f"{first}{connector}{second}"
                    if pattern and any(char in pattern for char in required_chars):
                        patterns_set.add(pattern)
        # sorted so a seeded generator is reproducible across runs
        self.patterns = sorted(patterns_set)
        self.p_idx = 0

    def generate_username(self) -> str:
        """Generate a single username, rotating through the mask patterns."""
        pattern = self.patterns[self.p_idx]
        self.p_idx = (self.p_idx + 1) % len(self.patterns)
        return self.person.username(mask=pattern, drange=(0, 9999))

    def generate_record(self) -> Dict[str, Any]:
        """Generate a composite item: a flat dict of mixed value types."""
        return {
            "username": self.generate_username(),
            "email": self.person.email(),
            "visits": self.random.randint(0, 10_000),
            "active": self.random.random() < 0.5,
        }

    def generate_batch(self, count: int, kind: str = "username") -> Iterator[Any]:
        """
        Generate a batch of items.

        Args:
            count: Number of items to generate
            kind: "username" for strings, "record" for dicts

        Returns:
            Iterator over the generated items (duplicates possible)
        """
        if kind == "username":
            make = self.generate_username
        elif kind == "record":
            make = self.generate_record
        else:
            raise ValueError(f"Unknown item kind: {kind}")

        for _ in range(count):
            yield make()

    def distinct_usernames(self, count: int) -> List[str]:
        """Generate exactly count distinct usernames."""
        print(f"Generating {count:,} distinct usernames...")
        start_time = time.time()

        # The index suffix guarantees distinctness without a dedup pass
        usernames = [f"{self.generate_username()}#{i}" for i in range(count)]

        elapsed = time.time() - start_time
        print(f"Generation complete! {count:,} usernames in {elapsed:.1f}s")
        return usernames
