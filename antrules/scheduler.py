"""The generic ACO loop.

A :class:`Scheduler` drives an :class:`Activity` through the states
``initialise -> (create -> search -> update)* -> terminate``. Every iteration
creates exactly ``colony_size`` candidates, each one with its own random
generator derived from the run seed, so sequential and parallel runs with the
same seed build the same candidates.
"""
from __future__ import annotations

from abc import ABC
from abc import abstractmethod
from logging import Logger
from logging import getLogger
from typing import Generic
from typing import Optional
from typing import TypeVar

import numpy as np
from joblib import Parallel
from joblib import delayed

from antrules._params import AlgorithmParams
from antrules._timing import PerformanceTimer
from antrules._timing import SearchTimes
from antrules.archive import Archive
from antrules.archive import SynchronizedArchive
from antrules.exceptions import AntRulesError
from antrules.exceptions import SchedulerError

T = TypeVar("T")


class Activity(ABC, Generic[T]):

    @abstractmethod
    def initialise(self):
        pass

    @abstractmethod
    def create(self, rng: np.random.Generator) -> T:
        """Creates a single candidate solution. Must not modify any state
        shared with other concurrently created candidates."""

    def search(self, archive: Archive[T]) -> bool:
        """Optional local search over the candidates of the iteration.

        Returns:
            bool: True if the relative order of the candidates changed
        """
        return False

    @abstractmethod
    def update(self, archive: Archive[T]):
        pass

    @abstractmethod
    def terminate(self) -> bool:
        pass

    @abstractmethod
    def best(self) -> Optional[T]:
        pass


class IterativeActivity(Activity[T]):
    """Activity keeping track of the iteration number, the global best
    candidate and the stagnation counter.

    Stagnation handling allows a single restart: the first time the
    stagnation counter exceeds the configured limit :meth:`restart` is called
    and the counter cleared, the second time the activity terminates.
    Subclasses define the reset scope by overriding :meth:`restart`, or
    disable the restart altogether with ``restarts = False``.
    """

    restarts: bool = True

    def __init__(self, params: AlgorithmParams):
        self.params: AlgorithmParams = params
        self.iteration: int = 0
        self.stagnation: int = 0
        self.global_best: Optional[T] = None
        self._restart_available: bool = self.restarts
        self.logger: Logger = getLogger(self.__class__.__name__)

    def initialise(self):
        self.iteration = 0
        self.stagnation = 0
        self.global_best = None
        self._restart_available = self.restarts

    def restart(self):
        """Resets the learned state of the search."""

    def terminate(self) -> bool:
        if self.stagnation > self.params["stagnation"]:
            if not self._restart_available:
                return True
            self.logger.info(
                "Stagnation limit reached at iteration %d, restarting", self.iteration
            )
            self.restart()
            self.stagnation = 0
            self._restart_available = False
        return self.iteration >= self.params["max_iterations"]

    def update(self, archive: Archive[T]):
        self.iteration += 1
        candidate: T = archive.highest()
        if self.global_best is None or candidate.compare_to(self.global_best) > 0:
            self.global_best = candidate
            self.stagnation = 0
        elif candidate.compare_to(self.global_best) == 0:
            self.stagnation += 1
        self.logger.debug(
            "Iteration %d: best=%s global=%s stagnation=%d",
            self.iteration,
            candidate.quality,
            self.global_best.quality,
            self.stagnation,
        )

    def best(self) -> Optional[T]:
        return self.global_best


class Scheduler(Generic[T]):
    """Sequential scheduler: the candidates of an iteration are created one
    after the other in the calling thread."""

    def __init__(self, activity: Activity[T], params: AlgorithmParams):
        self.activity: Activity[T] = activity
        self.colony_size: int = params["colony_size"]
        self.archive: Archive[T] = self._new_archive(params)
        self.times: SearchTimes = SearchTimes()
        self._seed: np.random.SeedSequence = np.random.SeedSequence(
            params["random_state"]
        )
        self.logger: Logger = getLogger(self.__class__.__name__)

    @staticmethod
    def new_instance(activity: Activity[T], params: AlgorithmParams) -> Scheduler[T]:
        """Returns a parallel scheduler when ``params["parallel"]`` is set,
        otherwise a sequential one."""
        if params["parallel"]:
            return ParallelScheduler(activity, params)
        return Scheduler(activity, params)

    def _new_archive(self, params: AlgorithmParams) -> Archive[T]:
        return Archive(params["colony_size"], params["q"])

    def run(self):
        """Runs the search until the activity terminates. The result is
        available from ``activity.best()``."""
        self.logger.info("Starting search with %d ants", self.colony_size)
        with PerformanceTimer() as total:
            self.activity.initialise()
            self.archive.clear()
            while not self.activity.terminate():
                with PerformanceTimer() as timer:
                    self.create(self.generators())
                self.times.construction_time += timer.timedelta

                with PerformanceTimer() as timer:
                    if self.activity.search(self.archive):
                        self.archive.sort()
                    self.activity.update(self.archive)
                    self.archive.clear()
                self.times.update_time += timer.timedelta
        self.times.total_training_time += total.timedelta
        self.logger.info("Search finished: %s", self.times)

    def generators(self) -> list[np.random.Generator]:
        """Returns one independent random generator per ant of the colony."""
        return [
            np.random.default_rng(seed)
            for seed in self._seed.spawn(self.colony_size)
        ]

    def _build(self, rng: np.random.Generator) -> T:
        candidate: T = self.activity.create(rng)
        self.archive.add(candidate)
        return candidate

    def create(self, generators: list[np.random.Generator]) -> list[T]:
        return [self._build(rng) for rng in generators]


class ParallelScheduler(Scheduler[T]):
    """Scheduler creating the candidates of an iteration concurrently on a
    pool of worker threads. The call returns only once every candidate is
    created; the first failure of a task aborts the run."""

    def __init__(self, activity: Activity[T], params: AlgorithmParams):
        super().__init__(activity, params)
        self.n_jobs: int = params["parallel"] or -1

    def _new_archive(self, params: AlgorithmParams) -> Archive[T]:
        return SynchronizedArchive(params["colony_size"], params["q"])

    def create(self, generators: list[np.random.Generator]) -> list[T]:
        try:
            return Parallel(n_jobs=self.n_jobs, prefer="threads")(
                delayed(self._build)(rng) for rng in generators
            )
        except AntRulesError:
            raise
        except Exception as error:
            raise SchedulerError(
                f"Candidate construction failed: {error}",
                details={"n_jobs": self.n_jobs},
            ) from error
