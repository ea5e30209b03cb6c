# defs/assets/reports.py
"""
Control reports for operators. Informative only: nothing downstream reads them.
"""

from dagster import asset, OpExecutionContext, Output
import pandas as pd

from ...services.reports import commission_changes, epoch_control_summary, top_allocations
from ..resources import DatabaseResource, ScoringConfig
from .partitions import epoch_partitions


@asset(
    partitions_def=epoch_partitions,
    description="Import control totals: validators, stake, low-credit validators",
    compute_kind="python",
)
def epoch_control_report(
    context: OpExecutionContext,
    scoring: ScoringConfig,
    validator_epoch_import: pd.DataFrame,
) -> Output[dict]:
    summary = epoch_control_summary(
        validator_epoch_import,
        low_credit_ratio=scoring.low_credit_ratio,
        max_credit_ratio=scoring.max_credit_ratio,
    )

    context.log.info(
        f"validators {summary['validators']}, total staked {summary['total_staked']}, "
        f"avg epoch_credits {summary['avg_epoch_credits']}"
    )
    if summary["below_avg_credits_count"]:
        context.log.warning(
            f"{summary['below_avg_credits_count']} validators below "
            f"{scoring.low_credit_ratio:.0%} of average credits, holding "
            f"{summary['below_avg_credits_stake']} stake"
        )

    return Output(summary, metadata=summary)


@asset(
    partitions_def=epoch_partitions,
    description="Validators whose commission changed since the previous epoch",
    compute_kind="sql",
)
def commission_change_report(
    context: OpExecutionContext,
    db: DatabaseResource,
    historical_scores: int,
) -> Output[pd.DataFrame]:
    epoch = int(context.partition_key)

    with db.get_store(context.log) as store:
        changes = commission_changes(store, epoch)

    changed = sorted(changes["vote_address"].unique().tolist())
    if changed:
        context.log.warning(
            f"Commission changed for {len(changed)} validators in epoch {epoch}"
        )

    return Output(
        changes,
        metadata={"epoch": epoch, "validators_changed": len(changed)},
    )


@asset(
    partitions_def=epoch_partitions,
    description="Head of the allocation table for review",
    compute_kind="python",
)
def allocation_report(
    context: OpExecutionContext,
    scoring: ScoringConfig,
    ranked_scores: pd.DataFrame,
) -> Output[pd.DataFrame]:
    head, allocated = top_allocations(ranked_scores, scoring.report_top_limit)

    for row in head.itertuples(index=False):
        context.log.info(
            f"#{row.rank} {row.vote_address} ({row.name}): pct {row.pct:.4f}, "
            f"avg_score {row.avg_score}, mult {row.mult:.4f}"
        )

    return Output(head, metadata={"validators_with_pct": allocated})
