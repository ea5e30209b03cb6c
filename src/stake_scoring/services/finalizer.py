# services/finalizer.py
"""
Score Finalizer

avg_score = round(base_score * mult) for qualified validators, else 0.
Qualified means a non-zero current score, a positive multiplier and at least
`min_score_records` epochs in the trailing window.

The top `top_n` validators by avg_score share 100% of the allocation; all
others get 0.
"""

from typing import Optional
import logging

import pandas as pd

from ..utils.calculations import round_half_away, share_of_subset


def qualification_mask(aggregate: pd.DataFrame, min_score_records: int) -> pd.Series:
    return (
        (aggregate["score"] != 0)
        & (aggregate["mult"] > 0)
        & (aggregate["score_records"] >= min_score_records)
    )


def finalize_scores(
    aggregate: pd.DataFrame,
    config,
    logger: Optional[logging.Logger] = None,
) -> pd.DataFrame:
    """
    Rank and allocate.

    Ordering is avg_score descending, then vote_address ascending; `rank` is
    the 1-based position in that ordering.

    Returns:
        Copy of `aggregate` with avg_score, rank and pct, sorted by rank
    """
    logger = logger or logging.getLogger(__name__)

    df = aggregate.copy()
    if df.empty:
        return df.assign(
            avg_score=pd.Series(dtype="int64"),
            rank=pd.Series(dtype="int64"),
            pct=pd.Series(dtype="float64"),
        )

    qualified = qualification_mask(df, config.min_score_records)
    raw_score = round_half_away(df["base_score"].astype(float) * df["mult"].astype(float))
    df["avg_score"] = raw_score.where(qualified, 0.0).astype("int64")

    df = df.sort_values(
        ["avg_score", "vote_address"], ascending=[False, True], kind="mergesort"
    ).reset_index(drop=True)
    df["rank"] = range(1, len(df) + 1)

    top = df["rank"] <= config.top_n
    df["pct"] = share_of_subset(df["avg_score"], top)

    allocated = int((df["pct"] > 0).sum())
    if allocated == 0:
        logger.warning(
            f"No validator qualified for allocation among {len(df)} candidates"
        )
    else:
        logger.info(
            f"Finalized {len(df)} validators: {int(qualified.sum())} qualified, "
            f"{allocated} allocated within top {config.top_n}"
        )

    return df
