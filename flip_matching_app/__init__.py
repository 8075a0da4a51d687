"""Non-crossing matchings with one free point and the flip graph between them."""

from .backend import (
    EnumerationResult,
    FlipGraph,
    FlipGraphNode,
    Matching,
    build_flip_graph,
    canonical_form,
    enumerate_matchings,
    is_one_flip_away,
)
from .engine import Engine, EngineError
from .geometry import Point, Segment, collinear, quantize, segments_cross
from .history import HistoryManager
from .records import SavedState
from .state import EditResult, MatchingState, Rejection

__all__ = [
    "EditResult",
    "Engine",
    "EngineError",
    "EnumerationResult",
    "FlipGraph",
    "FlipGraphNode",
    "HistoryManager",
    "Matching",
    "MatchingState",
    "Point",
    "Rejection",
    "SavedState",
    "Segment",
    "build_flip_graph",
    "canonical_form",
    "collinear",
    "enumerate_matchings",
    "is_one_flip_away",
    "quantize",
    "segments_cross",
]
