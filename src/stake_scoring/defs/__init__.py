from .jobs import epoch_scoring_job, scoring_assets, report_assets
from .sensors import new_epoch_export_sensor
from .resources import DatabaseResource, ScoringConfig


resources = {
    "db": DatabaseResource(),
    "scoring": ScoringConfig(),
}


__all__ = [
    "epoch_scoring_job",
    "scoring_assets",
    "report_assets",
    "new_epoch_export_sensor",
    "resources",
    "DatabaseResource",
    "ScoringConfig",
]
