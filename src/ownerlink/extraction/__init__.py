"""Address extraction primitives.

* ``search`` — depth-first address search over an lxml subtree.
* ``expression`` — path/property expressions over a read-only page view.
* ``resolver`` — token id → owner address through a message channel.
"""

from ownerlink.extraction.expression import EvaluationContext, evaluate, parse_expression
from ownerlink.extraction.resolver import MappingOwnerChannel, MessageChannel, OwnerResolver
from ownerlink.extraction.search import find_address_in_node, search_document

__all__ = [
    "EvaluationContext",
    "MappingOwnerChannel",
    "MessageChannel",
    "OwnerResolver",
    "evaluate",
    "find_address_in_node",
    "parse_expression",
    "search_document",
]
