"""
aquiflow data package.

Provides contracts for the drainage network and pattern objects read by the
groundwater model. Input record readers live in aquiflow.data.readers.
"""

from aquiflow.data.contracts import (
    Node,
    TimePattern,
)

__all__ = [
    "Node",
    "TimePattern",
]
