# defs/assets/history.py
"""
Storage asset: replace the epoch in the historical store.
"""

from dagster import asset, OpExecutionContext, Output
import pandas as pd

from ..resources import DatabaseResource
from .partitions import epoch_partitions


@asset(
    partitions_def=epoch_partitions,
    description="Epoch records replaced atomically in the historical store",
    compute_kind="sql",
)
def historical_scores(
    context: OpExecutionContext,
    db: DatabaseResource,
    normalized_epoch_records: pd.DataFrame,
) -> Output[int]:
    """Delete-then-insert of the whole epoch inside one transaction."""
    epoch = int(context.partition_key)

    with db.get_store(context.log) as store:
        stored = store.upsert_epoch(epoch, normalized_epoch_records)
        stored_epochs = store.epochs()

    return Output(
        stored,
        metadata={
            "epoch": epoch,
            "records_stored": stored,
            "epochs_in_store": len(stored_epochs),
        },
    )
