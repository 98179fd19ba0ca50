"""Matching: haversine distance, heuristic duplicate score, oracle fusion, tight-tier merge target."""

from matching.geo import haversine_m, distance_m
from matching.heuristic import heuristic_confidence, score_candidates
from matching.fusion import fuse_judgments, semantic_fusion
from matching.merge import MergeTarget, find_merge_target

__all__ = [
    "haversine_m",
    "distance_m",
    "heuristic_confidence",
    "score_candidates",
    "fuse_judgments",
    "semantic_fusion",
    "MergeTarget",
    "find_merge_target",
]
