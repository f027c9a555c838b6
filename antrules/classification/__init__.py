from antrules.classification._rules import AntMinerClassifier
from antrules.classification._rules import ArchiveClassifier
from antrules.classification._rules import PittsburghClassifier
from antrules.classification._rules import UnorderedClassifier
from antrules.classification._tree import AntTreeClassifier

__all__ = [
    "AntMinerClassifier",
    "PittsburghClassifier",
    "ArchiveClassifier",
    "UnorderedClassifier",
    "AntTreeClassifier",
]
