# services/reports.py
"""
Operator-facing checks over an epoch: import control totals, commission
changes between consecutive epochs, and the allocated head of the ranking.
"""

from typing import Dict, Optional, Tuple

import pandas as pd


def epoch_control_summary(
    records: pd.DataFrame,
    low_credit_ratio: float = 0.5,
    max_credit_ratio: float = 0.6,
) -> Dict:
    """
    Control totals for one epoch's records.

    - validators / total_staked
    - avg_epoch_credits
    - count and stake of validators below `low_credit_ratio` x average credits
    - count of validators below `max_credit_ratio` x the best credits
    """
    if records.empty:
        return {
            "validators": 0,
            "total_staked": 0,
            "avg_epoch_credits": 0.0,
            "below_avg_credits_count": 0,
            "below_avg_credits_stake": 0,
            "below_max_credits_count": 0,
        }

    credits = records["epoch_credits"].astype(float)
    avg_credits = float(credits.mean())
    below_avg = records[credits < avg_credits * low_credit_ratio]
    below_max = records[credits < float(credits.max()) * max_credit_ratio]

    return {
        "validators": int(len(records)),
        "total_staked": int(records["active_stake"].sum()),
        "avg_epoch_credits": round(avg_credits, 2),
        "below_avg_credits_count": int(len(below_avg)),
        "below_avg_credits_stake": int(below_avg["active_stake"].sum()),
        "below_max_credits_count": int(len(below_max)),
    }


def commission_changes(
    store, epoch: int, lookback: Optional[int] = None
) -> pd.DataFrame:
    """
    Every stored record of each validator whose commission in `epoch` differs
    from `epoch - 1`. Validators new in `epoch` count as changed. The history
    runs up to the latest stored epoch, including epochs after `epoch`.

    Args:
        store: Open HistoricalStore
        epoch: Epoch to check
        lookback: Start the history N-1 epochs before `epoch` (all if None)

    Returns:
        Records of the changed validators ordered by vote_address, epoch
    """
    epoch = int(epoch)
    current = store.epoch_records(epoch)
    previous = store.epoch_records(epoch - 1)

    if current.empty:
        return current

    previous_pairs = set(
        zip(previous["vote_address"], previous["commission"].astype(int))
    )
    changed = [
        vote_address
        for vote_address, commission in zip(
            current["vote_address"], current["commission"].astype(int)
        )
        if (vote_address, commission) not in previous_pairs
    ]

    if len(changed) == 0:
        return current.iloc[0:0]

    epochs = store.epochs()
    epoch_low = epochs[0] if lookback is None else epoch - lookback + 1
    history = store.records_in_range(epoch_low, epochs[-1])
    history = history[history["vote_address"].isin(changed)]
    return history.sort_values(["vote_address", "epoch"]).reset_index(drop=True)


def top_allocations(ranked: pd.DataFrame, limit: int = 20) -> Tuple[pd.DataFrame, int]:
    """The first `limit` allocated rows by rank and the number of allocated validators."""
    allocated = ranked[ranked["pct"] > 0].sort_values("rank")
    return allocated.head(limit).reset_index(drop=True), int(len(allocated))
