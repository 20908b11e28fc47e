"""Hierarchical outline and task editor engine."""

from worklog_outline.api import OutlineApi
from worklog_outline.models.node import Node
from worklog_outline.protocols import FocusLocation, KeyValueStore, OutlineApiProtocol
from worklog_outline.session import OutlineSession

__all__ = [
    "FocusLocation",
    "KeyValueStore",
    "Node",
    "OutlineApi",
    "OutlineApiProtocol",
    "OutlineSession",
]
