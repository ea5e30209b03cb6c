# services/backfill.py
"""
Fill a missing epoch with the per-validator average of its neighbours so the
trailing window does not punish everybody for a lost export.
"""

from typing import Optional
import logging

import numpy as np
import pandas as pd

from ..errors import MalformedInputError
from .historical_store import SCORE_COLUMNS


def _max_present(values: pd.Series):
    present = values.dropna()
    return present.max() if not present.empty else None


def _min_present(values: pd.Series):
    present = values.dropna()
    return present.min() if not present.empty else None


def synthesize_epoch(store, epoch: int, radius: int = 1) -> pd.DataFrame:
    """
    Average records of epochs [epoch - radius, epoch + radius], excluding
    `epoch` itself, into one record per validator labelled `epoch`.
    Integer columns are truncated like SQL CAST.
    """
    if radius < 1:
        raise ValueError(f"radius must be >= 1, got {radius}")

    neighbours = store.records_in_range(epoch - radius, epoch + radius)
    neighbours = neighbours[neighbours["epoch"] != epoch]
    if neighbours.empty:
        return pd.DataFrame(columns=SCORE_COLUMNS)

    df = (
        neighbours.groupby("vote_address")
        .agg(
            keybase_id=("keybase_id", _max_present),
            name=("name", _max_present),
            identity=("identity", _max_present),
            score=("score", "mean"),
            avg_position=("avg_position", "mean"),
            commission=("commission", "mean"),
            active_stake=("active_stake", "mean"),
            epoch_credits=("epoch_credits", "mean"),
            data_center_concentration=("data_center_concentration", "mean"),
            can_halt_the_network_group=("can_halt_the_network_group", _min_present),
            stake_state=("stake_state", _min_present),
            stake_state_reason=("stake_state_reason", _min_present),
            www_url=("www_url", _max_present),
            pct=("pct", "mean"),
            stake_conc=("stake_conc", "mean"),
            adj_credits=("adj_credits", "mean"),
        )
        .reset_index()
    )

    for col in ["score", "commission", "active_stake", "epoch_credits", "adj_credits"]:
        df[col] = np.trunc(df[col].astype(float)).astype("int64")

    df["epoch"] = int(epoch)
    return df[SCORE_COLUMNS]


def backfill_epoch(
    store,
    epoch: int,
    radius: int = 1,
    overwrite: bool = False,
    logger: Optional[logging.Logger] = None,
) -> int:
    """
    Synthesize `epoch` from its neighbours and store it.

    Raises:
        MalformedInputError: If the epoch already exists and overwrite is False,
            or no neighbouring epoch holds data

    Returns:
        Number of records written
    """
    logger = logger or logging.getLogger(__name__)
    epoch = int(epoch)

    if epoch in store.epochs() and not overwrite:
        raise MalformedInputError(
            f"Epoch {epoch} already has records; pass overwrite=True to replace them"
        )

    records = synthesize_epoch(store, epoch, radius)
    if records.empty:
        raise MalformedInputError(
            f"Cannot backfill epoch {epoch}: no records within {radius} epoch(s)"
        )

    written = store.upsert_epoch(epoch, records)
    logger.info(
        f"Backfilled epoch {epoch} with {written} records averaged from "
        f"epochs {epoch - radius}-{epoch + radius}"
    )
    return written
