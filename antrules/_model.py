from logging import Logger
from logging import getLogger
from typing import Any
from typing import Optional
from typing import Union

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator
from sklearn.base import ClassifierMixin

from antrules._params import AlgorithmParams
from antrules._params import adjust_params_on_dataset
from antrules._params import validate_params
from antrules._timing import SearchTimes
from antrules.dataset import Dataset
from antrules.rule._list import RuleList
from antrules.tree._node import Tree

Model = Union[RuleList, Tree]


class BaseModel(BaseEstimator, ClassifierMixin):
    """Base of the estimators. Subclasses implement :meth:`_search`, which
    runs the ACO search on the training dataset and returns the induced
    model."""

    def __init__(self, **algorithm_params: dict):
        # locals() of a method calling super() also holds the __class__ cell
        algorithm_params.pop("__class__", None)
        self._params: dict[str, Any] = algorithm_params
        self.search_times: Optional[SearchTimes] = None
        self.model_: Optional[Model] = None
        self.dataset_: Optional[Dataset] = None
        self.classes_: Optional[np.ndarray] = None
        self.logger: Logger = getLogger(self.__class__.__name__)

    def set_params(self, **params):
        self._params.update(params)
        return self

    def get_params(self, deep=True) -> dict:
        return self._params

    def _search(self, dataset: Dataset, params: AlgorithmParams) -> Model:
        raise NotImplementedError()

    def _predict_values(self, values: np.ndarray) -> np.ndarray:
        return self.model_.predict_values(values)

    def fit(self, X: pd.DataFrame, y: pd.Series) -> Model:
        """Trains a model on given data.

        Args:
            X (pd.DataFrame): dataset
            y (pd.Series): label column

        Raises:
            ConfigurationError: if the parameters are invalid

        Returns:
            Model: trained rule list, rule set or tree
        """
        if not isinstance(X, pd.DataFrame):
            X = pd.DataFrame(X)
        if not isinstance(y, pd.Series):
            y = pd.Series(y, index=X.index)
        validated: AlgorithmParams = validate_params(self._params)
        adjusted: AlgorithmParams = adjust_params_on_dataset(validated, y)

        dataset: Dataset = Dataset.from_pandas(X, y)
        labels: dict[str, Any] = {str(v): v for v in y.unique()}
        self.classes_ = np.array(
            [labels[v] for v in dataset.class_attribute.values], dtype=object
        )
        self.logger.info(
            "Training on %d instances, %d attributes, %d classes",
            dataset.size(),
            len(dataset.predictive_attributes()),
            dataset.class_length(),
        )
        self.search_times = SearchTimes()
        self.model_ = self._search(dataset, adjusted)
        self.model_.fix_thresholds(dataset)
        self.dataset_ = dataset
        return self.model_

    def predict(self, X: pd.DataFrame) -> np.ndarray:
        """
        Args:
            X (pd.DataFrame): data with the same columns as the training data

        Returns:
            np.ndarray: predicted labels
        """
        if self.model_ is None:
            raise ValueError("Model is not fitted, call fit first.")
        if not isinstance(X, pd.DataFrame):
            X = pd.DataFrame(X)
        values: np.ndarray = self.dataset_.encode(X)
        predicted: np.ndarray = self._predict_values(values)
        return self.classes_[predicted]

    def to_string(self) -> str:
        return self.model_.to_string(self.dataset_)
