from typing import Literal
from typing import Optional

import numpy as np
import pandas as pd

from antrules._model import BaseModel
from antrules._params import DEFAULT_PARAMS_VALUES
from antrules._params import AlgorithmParams
from antrules.dataset import Dataset
from antrules.scheduler import Scheduler
from antrules.tree._node import Tree
from antrules.tree.activity import FindTreeActivity
from antrules.tree.graph import TreeGraph


class AntTreeClassifier(BaseModel):
    """Ant-Tree-Miner classifier. Each ant builds a decision tree top-down,
    selecting the attribute of every node with a probability proportional to
    the pheromone of the branch leading to it times the gain ratio of the
    attribute. Trees are pruned before being evaluated.
    """

    def __init__(
        self,
        colony_size: int = DEFAULT_PARAMS_VALUES["colony_size"],
        max_iterations: int = DEFAULT_PARAMS_VALUES["max_iterations"],
        stagnation: int = DEFAULT_PARAMS_VALUES["stagnation"],
        evaporation_factor: float = DEFAULT_PARAMS_VALUES["evaporation_factor"],
        p_best: float = DEFAULT_PARAMS_VALUES["p_best"],
        minimum_cases: int = 3,
        maximum_limit: int = DEFAULT_PARAMS_VALUES["maximum_limit"],
        dynamic_heuristic: bool = DEFAULT_PARAMS_VALUES["dynamic_heuristic"],
        tree_heuristic: Literal["gain_ratio", "gain"] = DEFAULT_PARAMS_VALUES[
            "tree_heuristic"
        ],
        filter_gain: bool = DEFAULT_PARAMS_VALUES["filter_gain"],
        tree_measure: Literal["accuracy", "pessimistic"] = DEFAULT_PARAMS_VALUES[
            "tree_measure"
        ],
        tree_pruner: Literal["pessimistic", "accuracy", "none"] = DEFAULT_PARAMS_VALUES[
            "tree_pruner"
        ],
        parallel: Optional[int] = DEFAULT_PARAMS_VALUES["parallel"],
        random_state: Optional[int] = DEFAULT_PARAMS_VALUES["random_state"],
    ):
        """
        Args:
            colony_size (int, optional): Number of trees created in each
                iteration. Defaults to DEFAULT_PARAMS_VALUES["colony_size"].
            max_iterations (int, optional): Maximum number of iterations.
                Defaults to DEFAULT_PARAMS_VALUES["max_iterations"].
            stagnation (int, optional): Number of iterations without
                improvement after which the pheromone is reset once, and the
                search stops the second time. Defaults to
                DEFAULT_PARAMS_VALUES["stagnation"].
            evaporation_factor (float, optional): Fraction of the pheromone
                kept at each update. Defaults to
                DEFAULT_PARAMS_VALUES["evaporation_factor"].
            p_best (float, optional): Probability of constructing the best
                tree once converged. Defaults to DEFAULT_PARAMS_VALUES["p_best"].
            minimum_cases (int, optional): Minimum number of instances of at
                least two branches of a node. Defaults to 3.
            maximum_limit (int, optional): Maximum number of candidate cut
                points of continuous attributes. Defaults to
                DEFAULT_PARAMS_VALUES["maximum_limit"].
            dynamic_heuristic (bool, optional): Recomputes the heuristic on
                the instances reaching each node. Defaults to
                DEFAULT_PARAMS_VALUES["dynamic_heuristic"].
            tree_heuristic (str, optional): Heuristic information of the
                attributes. Defaults to DEFAULT_PARAMS_VALUES["tree_heuristic"].
            filter_gain (bool, optional): Only attributes with at least
                average gain keep a positive gain ratio. Defaults to
                DEFAULT_PARAMS_VALUES["filter_gain"].
            tree_measure (str, optional): Quality measure of the trees.
                Defaults to DEFAULT_PARAMS_VALUES["tree_measure"].
            tree_pruner (str, optional): Tree pruning procedure. Defaults to
                DEFAULT_PARAMS_VALUES["tree_pruner"].
            parallel (Optional[int], optional): Number of worker threads
                creating the trees of an iteration, -1 for all the cores and
                None to create them sequentially. Defaults to None.
            random_state (Optional[int], optional): Seed of the search.
                Defaults to None.
        """
        # pylint: disable=unused-argument
        params: dict = locals()
        params.pop("self")
        super().__init__(**params)

    def _search(self, dataset: Dataset, params: AlgorithmParams) -> Tree:
        activity: FindTreeActivity = FindTreeActivity(
            TreeGraph(dataset), dataset, params
        )
        scheduler: Scheduler[Tree] = Scheduler.new_instance(activity, params)
        scheduler.run()
        self.search_times = scheduler.times
        return activity.best()

    def _predict_values(self, values: np.ndarray) -> np.ndarray:
        return self.model_.predict_values(values, len(self.classes_))

    def fit(self, X: pd.DataFrame, y: pd.Series) -> Tree:
        return super().fit(X, y)
