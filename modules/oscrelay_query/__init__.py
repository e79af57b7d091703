"""OSC Relay Query

Servicio de descubrimiento OSCQuery (árbol JSON por HTTP).
"""

from modules.oscrelay_query.query_service import (
    OSCQueryService,
    OSCQAccess,
    QueryNode,
    DEFAULT_STATUS,
)

__all__ = [
    "OSCQueryService",
    "OSCQAccess",
    "QueryNode",
    "DEFAULT_STATUS",
]
