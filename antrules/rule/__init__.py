from antrules.rule._list import RuleList
from antrules.rule._list import RuleSet
from antrules.rule._rule import Rule
from antrules.rule.activities import ArchiveFindRuleListActivity
from antrules.rule.activities import FindRuleActivity
from antrules.rule.activities import FindRuleListActivity
from antrules.rule.activities import FindRuleSetActivity
from antrules.rule.activities import SequentialCovering

__all__ = [
    "Rule",
    "RuleList",
    "RuleSet",
    "FindRuleActivity",
    "FindRuleListActivity",
    "ArchiveFindRuleListActivity",
    "FindRuleSetActivity",
    "SequentialCovering",
]
