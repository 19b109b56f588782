"""
Per-connection session state.
"""

import random
from dataclasses import dataclass, field
from typing import Optional, Set


@dataclass
class SessionState:
    """
    Everything one connection remembers while it is open.

    Owned by the connection's thread and never shared, so no locking.

    Attributes:
        told_jokes: Catalog indices already offered to this client. Only
                    ever grows; an index is added the moment its joke is
                    chosen, even if the client never hears the punchline.
        rng: Private random source. Seeded from OS entropy unless a seed
             is given (tests).
        jokes_completed: Dialogues that reached the punchline.
        corrections: Wrong replies, at any stage.
        restarts: Dialogues abandoned after a wrong "<setup> who?".
    """

    seed: Optional[int] = None
    told_jokes: Set[int] = field(default_factory=set)
    jokes_completed: int = 0
    corrections: int = 0
    restarts: int = 0

    rng: random.Random = field(init=False, repr=False)

    def __post_init__(self):
        # random.Random(None) seeds itself from os.urandom()
        self.rng = random.Random(self.seed)

    def untold(self, catalog_size: int) -> list:
        """Indices in range(catalog_size) not yet offered to this client."""
        return [index for index in range(catalog_size) if index not in self.told_jokes]

    def choose_joke(self, catalog_size: int) -> Optional[int]:
        """
        Pick an untold joke uniformly at random and mark it told.

        Returns:
            The chosen catalog index, or None when every joke has been told.
        """
        candidates = self.untold(catalog_size)
        if not candidates:
            return None

        index = self.rng.choice(candidates)
        self.told_jokes.add(index)
        return index
