# defs/assets/__init__.py
"""
Epoch scoring assets, all partitioned by epoch.

Asset dependency flow:
    validator_epoch_import → normalized_epoch_records → historical_scores
                           → rolling_aggregates → ranked_scores
    validator_epoch_import → epoch_control_report
    historical_scores      → commission_change_report
    ranked_scores          → allocation_report
"""

from .partitions import epoch_partitions
from .ingestion import validator_epoch_import, normalized_epoch_records
from .history import historical_scores
from .scoring import rolling_aggregates, ranked_scores
from .reports import epoch_control_report, commission_change_report, allocation_report

__all__ = [
    "epoch_partitions",
    "validator_epoch_import",
    "normalized_epoch_records",
    "historical_scores",
    "rolling_aggregates",
    "ranked_scores",
    "epoch_control_report",
    "commission_change_report",
    "allocation_report",
]
