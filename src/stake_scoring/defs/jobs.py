from dagster import AssetSelection, define_asset_job

from .assets import (
    validator_epoch_import,
    normalized_epoch_records,
    historical_scores,
    rolling_aggregates,
    ranked_scores,
    epoch_control_report,
    commission_change_report,
    allocation_report,
)


scoring_assets = [
    validator_epoch_import,
    normalized_epoch_records,
    historical_scores,
    rolling_aggregates,
    ranked_scores,
]

report_assets = [
    epoch_control_report,
    commission_change_report,
    allocation_report,
]


epoch_scoring_job = define_asset_job(
    name="epoch_scoring",
    selection=AssetSelection.assets(*scoring_assets)
    | AssetSelection.assets(*report_assets),
    description="Import one epoch export, update history, rank and allocate",
)
