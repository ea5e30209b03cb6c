"""
Dagster Definitions for the validator epoch scoring pipeline
"""

from dagster import Definitions

from stake_scoring.defs import (
    epoch_scoring_job,
    new_epoch_export_sensor,
    report_assets,
    resources,
    scoring_assets,
)


defs = Definitions(
    assets=[
        *scoring_assets,
        *report_assets,
    ],
    jobs=[epoch_scoring_job],
    sensors=[new_epoch_export_sensor],
    resources=resources,
)
