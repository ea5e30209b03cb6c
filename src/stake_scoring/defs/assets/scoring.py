# defs/assets/scoring.py
"""
Scoring assets: trailing-window aggregate, then ranked allocation.

Asset dependency flow:
    historical_scores → rolling_aggregates → ranked_scores
"""

from dagster import asset, OpExecutionContext, Output
import pandas as pd

from ...services.aggregator import aggregate_epoch
from ...services.finalizer import finalize_scores
from ..resources import DatabaseResource, ScoringConfig
from .partitions import epoch_partitions


@asset(
    partitions_def=epoch_partitions,
    description="Per-validator trailing-window averages for the epoch",
    compute_kind="python",
)
def rolling_aggregates(
    context: OpExecutionContext,
    db: DatabaseResource,
    scoring: ScoringConfig,
    historical_scores: int,  # Dependency ensures the epoch is stored first
) -> pd.DataFrame:
    epoch = int(context.partition_key)

    with db.get_store(context.log) as store:
        aggregate = aggregate_epoch(store, epoch, scoring, context.log)

    context.add_output_metadata(
        {
            "validators": len(aggregate),
            "full_history": int(
                (aggregate["score_records"] >= scoring.window_size).sum()
            ),
        }
    )
    return aggregate


@asset(
    partitions_def=epoch_partitions,
    description="Final ranking and top-N stake allocation percentages",
    compute_kind="python",
)
def ranked_scores(
    context: OpExecutionContext,
    db: DatabaseResource,
    scoring: ScoringConfig,
    rolling_aggregates: pd.DataFrame,
) -> Output[pd.DataFrame]:
    """
    avg_score = round(base_score * mult) when score > 0, mult > 0 and the
    validator has min_score_records epochs in the window; else 0.
    pct is the avg_score share within the top_n.
    """
    epoch = int(context.partition_key)

    ranked = finalize_scores(rolling_aggregates, scoring, context.log)

    with db.get_store(context.log) as store:
        store.replace_rankings(epoch, ranked)

    allocated = ranked[ranked["pct"] > 0]
    return Output(
        ranked,
        metadata={
            "epoch": epoch,
            "validators_ranked": len(ranked),
            "validators_with_pct": len(allocated),
            "total_pct": float(ranked["pct"].sum()),
            "top_vote_address": (
                str(ranked["vote_address"].iloc[0]) if len(allocated) else ""
            ),
        },
    )
