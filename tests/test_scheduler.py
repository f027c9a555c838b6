import threading
from typing import Optional

import numpy as np
import pytest
import utils

from antrules._params import AlgorithmParams
from antrules.archive import Archive
from antrules.archive import SynchronizedArchive
from antrules.cost import Maximise
from antrules.dataset import Dataset
from antrules.exceptions import SchedulerError
from antrules.rule._list import RuleList
from antrules.rule.activities import FindRuleListActivity
from antrules.rule.graph import GraphFactory
from antrules.scheduler import IterativeActivity
from antrules.scheduler import ParallelScheduler
from antrules.scheduler import Scheduler


class Solution:

    def __init__(self, value: float):
        self.quality: Maximise = Maximise(value)

    def compare_to(self, other: "Solution") -> int:
        return self.quality.compare_to(other.quality)


class CountingActivity(IterativeActivity[Solution]):
    """Creates random solutions, counting the calls of every phase."""

    def __init__(self, params: AlgorithmParams, constant: Optional[float] = None):
        super().__init__(params)
        self.constant: Optional[float] = constant
        self.created: int = 0
        self.updates: int = 0
        self.restarted: int = 0
        self._lock: threading.Lock = threading.Lock()

    def create(self, rng: np.random.Generator) -> Solution:
        with self._lock:
            self.created += 1
        return Solution(self.constant if self.constant is not None else rng.random())

    def update(self, archive: Archive[Solution]):
        super().update(archive)
        self.updates += 1

    def restart(self):
        self.restarted += 1


class FailingActivity(CountingActivity):

    def create(self, rng: np.random.Generator) -> Solution:
        raise RuntimeError("construction failed")


def test_termination_after_max_iterations():
    params: AlgorithmParams = utils.params(
        colony_size=1, max_iterations=25, stagnation=1000
    )
    activity: CountingActivity = CountingActivity(params)

    Scheduler(activity, params).run()

    assert activity.created == 25
    assert activity.updates == 25
    assert activity.iteration == 25


def test_every_iteration_creates_the_whole_colony():
    params: AlgorithmParams = utils.params(
        colony_size=7, max_iterations=4, stagnation=1000
    )
    activity: CountingActivity = CountingActivity(params)

    Scheduler(activity, params).run()

    assert activity.created == 28


def test_single_restart_on_stagnation():
    params: AlgorithmParams = utils.params(
        colony_size=2, max_iterations=100, stagnation=3
    )
    activity: CountingActivity = CountingActivity(params, constant=0.5)

    Scheduler(activity, params).run()

    assert activity.restarted == 1
    # first iteration sets the global best, then two stagnation windows
    assert activity.iteration == 1 + 4 + 4
    assert activity.best().quality == Maximise(0.5)


def test_new_instance():
    sequential: AlgorithmParams = utils.params()
    parallel: AlgorithmParams = utils.params(parallel=2)

    assert type(Scheduler.new_instance(CountingActivity(sequential), sequential)) is Scheduler
    scheduler: Scheduler = Scheduler.new_instance(CountingActivity(parallel), parallel)
    assert isinstance(scheduler, ParallelScheduler)
    assert isinstance(scheduler.archive, SynchronizedArchive)


def test_parallel_failure_is_propagated():
    params: AlgorithmParams = utils.params(colony_size=4, max_iterations=3, parallel=2)
    activity: FailingActivity = FailingActivity(params)

    with pytest.raises(SchedulerError) as error:
        ParallelScheduler(activity, params).run()

    assert isinstance(error.value.__cause__, RuntimeError)
    assert activity.updates == 0


def test_same_seed_same_generators():
    params: AlgorithmParams = utils.params(colony_size=3, random_state=11)
    first: list[np.random.Generator] = Scheduler(CountingActivity(params), params).generators()
    second: list[np.random.Generator] = Scheduler(CountingActivity(params), params).generators()

    assert [g.random() for g in first] == [g.random() for g in second]


def _colony(scheduler_type: type, params: AlgorithmParams) -> list[float]:
    dataset: Dataset = utils.to_dataset(utils.mixed_dataset(80, seed=3))
    activity: FindRuleListActivity = FindRuleListActivity(
        GraphFactory.create(dataset), dataset, params
    )
    scheduler: Scheduler[RuleList] = scheduler_type(activity, params)
    activity.initialise()
    candidates: list[RuleList] = scheduler.create(scheduler.generators())
    return sorted(c.quality.raw() for c in candidates)


def test_parallel_sequential_equivalence():
    params: AlgorithmParams = utils.params(
        colony_size=10, max_iterations=1, minimum_cases=5, random_state=2024, parallel=4
    )

    sequential: list[float] = _colony(Scheduler, params)
    parallel: list[float] = _colony(ParallelScheduler, params)

    assert len(sequential) == 10
    assert sequential == parallel
