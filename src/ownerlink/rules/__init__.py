"""Site rules — declarative per-site configuration.

Modules:

* ``models`` — ``SiteRule`` and its enums.
* ``matcher`` — ``RuleMatcher`` for first-match-wins URL prefix selection.
* ``loader`` — ``RuleSource`` protocol and JSON file loading.
"""

from ownerlink.rules.loader import JsonFileRuleSource, RuleSource, StaticRuleSource, load_rules_from_file
from ownerlink.rules.matcher import RuleMatcher
from ownerlink.rules.models import AcquisitionMethod, ControlCategory, InsertionMode, SiteRule

__all__ = [
    "AcquisitionMethod",
    "ControlCategory",
    "InsertionMode",
    "JsonFileRuleSource",
    "RuleMatcher",
    "RuleSource",
    "SiteRule",
    "StaticRuleSource",
    "load_rules_from_file",
]
