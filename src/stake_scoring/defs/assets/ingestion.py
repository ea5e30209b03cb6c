# defs/assets/ingestion.py
"""
Extraction assets: read an epoch export and normalize it against history.
"""

from dagster import asset, OpExecutionContext
import pandas as pd

from ...services.ingestor import read_validator_csv
from ...services.normalizer import normalize_epoch
from ..resources import DatabaseResource, ScoringConfig
from .partitions import epoch_partitions


@asset(
    partitions_def=epoch_partitions,
    description="Typed validator records of one epoch export",
    compute_kind="python",
)
def validator_epoch_import(
    context: OpExecutionContext,
    scoring: ScoringConfig,
) -> pd.DataFrame:
    """
    Parse the CSV export for the partition's epoch.
    Fails the run (no store mutation) on any malformed input.
    """
    scoring.validate_parameters()
    epoch = int(context.partition_key)
    export_path = scoring.export_path(epoch)

    context.log.info(f"Importing epoch {epoch} from {export_path}")

    records = read_validator_csv(export_path, expected_epoch=epoch, logger=context.log)

    context.add_output_metadata(
        {
            "epoch": epoch,
            "export_path": str(export_path),
            "validators": len(records),
        }
    )
    return records


@asset(
    partitions_def=epoch_partitions,
    description="Epoch records with pct, stake_conc, adj_credits and avg_position",
    compute_kind="python",
)
def normalized_epoch_records(
    context: OpExecutionContext,
    db: DatabaseResource,
    scoring: ScoringConfig,
    validator_epoch_import: pd.DataFrame,
) -> pd.DataFrame:
    """
    adj_credits = floor(credits * max(0, 100 - cw*commission - dw*dcc) / 100)
    avg_position = adj_credits * scale / mean(reference adj_credits)
    """
    with db.get_store(context.log) as store:
        normalized = normalize_epoch(validator_epoch_import, store, scoring, context.log)

    context.add_output_metadata(
        {
            "validators": len(normalized),
            "total_pct": float(normalized["pct"].sum()),
            "total_stake_conc": float(normalized["stake_conc"].sum()),
            "zero_adj_credits": int((normalized["adj_credits"] == 0).sum()),
        }
    )
    return normalized
