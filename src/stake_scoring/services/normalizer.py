# services/normalizer.py
"""
Per-Epoch Normalizer

Adds the epoch-relative columns to freshly ingested records:

    pct          = score share of the epoch (0-100)
    stake_conc   = active stake share of the epoch (0-100)
    adj_credits  = epoch credits discounted by commission and concentration
    avg_position = adj_credits relative to the reference population, scaled
"""

from typing import Optional
import logging

import numpy as np
import pandas as pd

from ..errors import MalformedInputError, ReferencePopulationEmptyError
from ..utils.calculations import share_of_total


def adjusted_credits(
    records: pd.DataFrame,
    commission_weight: float = 1.0,
    concentration_weight: float = 3.0,
) -> pd.Series:
    """
    floor(epoch_credits * (100 - cw*commission - dw*concentration) / 100)

    The discount factor is clamped at 0 so credits never go negative.
    """
    factor = (
        100.0
        - commission_weight * records["commission"].astype(float)
        - concentration_weight * records["data_center_concentration"].astype(float)
    ).clip(lower=0.0)
    adjusted = np.floor(records["epoch_credits"].astype(float) * factor / 100.0)
    return adjusted.astype("int64")


def normalize_epoch(
    records: pd.DataFrame,
    store,
    config,
    logger: Optional[logging.Logger] = None,
) -> pd.DataFrame:
    """
    Normalize one epoch's ingested records against the live store.

    The avg_position reference population is every stored record above
    `config.min_reference_credits`, except the stored copy of this epoch, plus
    this epoch's fresh records. It is recomputed on every call.

    Raises:
        MalformedInputError: If `records` span more than one epoch or are empty
        ReferencePopulationEmptyError: If nobody clears the credits floor
    """
    logger = logger or logging.getLogger(__name__)

    if records.empty:
        raise MalformedInputError("No records to normalize")

    epochs = records["epoch"].unique()
    if len(epochs) != 1:
        raise MalformedInputError(
            f"Normalizer expects a single epoch, got {sorted(epochs.tolist())}"
        )
    epoch = int(epochs[0])

    df = records.copy()

    # 1. Epoch shares
    if df["score"].sum() <= 0:
        logger.warning(f"Epoch {epoch}: total score is 0, every pct set to 0")
    df["pct"] = share_of_total(df["score"])

    if df["active_stake"].sum() <= 0:
        logger.warning(f"Epoch {epoch}: total active stake is 0, stake_conc set to 0")
    df["stake_conc"] = share_of_total(df["active_stake"])

    # 2. Adjusted credits
    df["adj_credits"] = adjusted_credits(
        df, config.commission_weight, config.concentration_weight
    )

    # 3. Position against the reference population
    floor = config.min_reference_credits
    historical = store.reference_credits(floor, exclude_epoch=epoch)
    current = df.loc[df["adj_credits"] > floor, "adj_credits"].astype(float)
    reference = pd.concat([historical, current], ignore_index=True)

    if reference.empty:
        raise ReferencePopulationEmptyError(
            f"Epoch {epoch}: no records with adj_credits above {floor}"
        )

    reference_mean = float(reference.mean())
    df["avg_position"] = (
        df["adj_credits"].astype(float) * config.position_scale / reference_mean
    )

    logger.info(
        f"Epoch {epoch}: normalized {len(df)} records, reference population "
        f"{len(reference)} ({len(current)} current), mean adj_credits "
        f"{reference_mean:.2f}"
    )

    return df
