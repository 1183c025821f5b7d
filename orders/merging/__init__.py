"""
Merging subpackage for the Orders domain.

Public API:
- cluster_and_merge
- MergeDecisionEngine / MergeDecision
- MergePolicy (+ profile factories)
"""

from .clustering import MergeCluster, build_clusters
from .engine import MergeDecision, MergeDecisionEngine, cluster_and_merge
from .policy import MergePolicy, default_policy, offpeak_policy, peak_policy, policy_for_profile
from .scoring import MergeScore, score_cluster

__all__ = [
    "cluster_and_merge",
    "MergeDecision",
    "MergeDecisionEngine",
    "MergeCluster",
    "build_clusters",
    "MergeScore",
    "score_cluster",
    "MergePolicy",
    "default_policy",
    "peak_policy",
    "offpeak_policy",
    "policy_for_profile",
]
