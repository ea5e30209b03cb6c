# services/aggregator.py
"""
Rolling Aggregator

Trailing-window averages per validator for the current epoch E over epochs
[E - (W - 1), E]. Every validator of the current epoch is kept, scored or
not, so downstream health checks see the whole set.
"""

from typing import List, Optional
import logging

import pandas as pd

from ..utils.calculations import round_half_away


AGGREGATE_COLUMNS: List[str] = [
    "epoch",
    "keybase_id",
    "name",
    "vote_address",
    "score",
    "epoch_credits",
    "commission",
    "score_records",
    "base_score",
    "avg_pos",
    "mult",
    "avg_commiss",
    "avg_dcc",
    "avg_ec",
    "avg_active_stake",
    "delta_credits",
]


def window_bounds(epoch: int, window_size: int):
    """Inclusive (low, high) epoch bounds of the trailing window."""
    if window_size < 1:
        raise ValueError(f"window_size must be >= 1, got {window_size}")
    return epoch - (window_size - 1), epoch


def aggregate_epoch(
    store,
    epoch: int,
    config,
    logger: Optional[logging.Logger] = None,
) -> pd.DataFrame:
    """
    Build the rolling aggregate for `epoch`.

    Returns:
        DataFrame with AGGREGATE_COLUMNS, one row per validator in `epoch`
    """
    logger = logger or logging.getLogger(__name__)
    epoch = int(epoch)

    current = store.epoch_records(epoch)
    if current.empty:
        logger.warning(f"No records stored for epoch {epoch}")
        return pd.DataFrame(columns=AGGREGATE_COLUMNS)

    epoch_low, epoch_high = window_bounds(epoch, config.window_size)
    history = store.records_in_range(epoch_low, epoch_high)

    window = (
        history.groupby("vote_address")
        .agg(
            score_records=("epoch", "nunique"),
            base_score=("adj_credits", "mean"),
            avg_pos=("avg_position", "mean"),
            avg_commiss=("commission", "mean"),
            avg_dcc=("data_center_concentration", "mean"),
            avg_ec=("epoch_credits", "mean"),
            avg_active_stake=("active_stake", "mean"),
        )
        .reset_index()
    )

    # Left join: the current epoch drives the row set
    df = current[
        [
            "epoch",
            "keybase_id",
            "name",
            "vote_address",
            "score",
            "epoch_credits",
            "commission",
        ]
    ].merge(window, on="vote_address", how="left")

    averaged = ["base_score", "avg_pos", "avg_commiss", "avg_dcc", "avg_ec", "avg_active_stake"]
    for col in averaged:
        df[col] = df[col].astype(float).fillna(0.0)

    df["score_records"] = df["score_records"].fillna(0).astype(int)
    df["base_score"] = round_half_away(df["base_score"]).astype("int64")
    df["avg_ec"] = round_half_away(df["avg_ec"]).astype("int64")
    df["mult"] = df["avg_pos"] - config.position_center
    df["delta_credits"] = df["avg_ec"] - df["epoch_credits"].astype("int64")

    short_history = int((df["score_records"] < config.window_size).sum())
    logger.info(
        f"Epoch {epoch}: aggregated {len(df)} validators over epochs "
        f"{epoch_low}-{epoch_high} ({short_history} with fewer than "
        f"{config.window_size} epochs of history)"
    )

    return df[AGGREGATE_COLUMNS]
