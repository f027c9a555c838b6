from antrules.tree._node import Tree
from antrules.tree.activity import FindTreeActivity
from antrules.tree.graph import TreeGraph

__all__ = ["Tree", "TreeGraph", "FindTreeActivity"]
