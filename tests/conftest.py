import os
import random
import sys

import pytest

# Allow running the tests from a checkout without installing the package
CURRENT_DIR = os.path.dirname(__file__)
SRC_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..', 'src'))
if SRC_ROOT not in sys.path:
    sys.path.insert(0, SRC_ROOT)

from poke_a_bone.controller import GameController
from poke_a_bone.reporter import ScoreReporter
from poke_a_bone.scheduler import Scheduler
from poke_a_bone.storage import MemoryStore


class FakeClock:
    # keeps whole milliseconds so repeated steps add up exactly
    def __init__(self, start_ms=0):
        self.ms = start_ms

    def __call__(self):
        return self.ms / 1000

    def advance_ms(self, ms):
        self.ms += ms


@pytest.fixture()
def scheduler():
    return Scheduler()


@pytest.fixture()
def store():
    return MemoryStore()


@pytest.fixture()
def reported():
    return []


@pytest.fixture()
def controller(scheduler, store, reported):
    ctl = GameController(
        scheduler,
        store=store,
        reporter=ScoreReporter(reported.append),
        rng=random.Random(1234),
    )
    ctl.start()
    yield ctl
    ctl.teardown()


@pytest.fixture()
def clock():
    return FakeClock()
