"""Shared test constants and the scripted RNG used by simulation tests."""

import random
from datetime import datetime

from courier_dispatch.core.entities import Location

CLOCK = datetime(2025, 1, 1, 8, 0)
CUSTOMER_LOCATION = Location(32.0853, 34.7818)
# ~3 km east of CUSTOMER_LOCATION
NEARBY_LOCATION = Location(32.0800, 34.8130)
# ~60 km north
FAR_LOCATION = Location(32.6300, 34.9500)


class ScriptedRandom(random.Random):
    """Random whose random()/randint()/choice() answers come from queues.

    Falls back to the seeded generator once a queue runs dry.
    """

    def __init__(self, rolls=(), ints=(), seed: int = 7):
        super().__init__(seed)
        self.rolls = list(rolls)
        self.ints = list(ints)

    def random(self) -> float:
        if self.rolls:
            return self.rolls.pop(0)
        return super().random()

    def randint(self, a: int, b: int) -> int:
        if self.ints:
            return self.ints.pop(0)
        return super().randint(a, b)

    def choice(self, seq):
        return seq[0]
