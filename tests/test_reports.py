"""
Tests for epoch control reports and neighbour backfill.
"""

import pandas as pd
import pytest

from factories import stored_record
from stake_scoring.errors import MalformedInputError
from stake_scoring.services.backfill import backfill_epoch, synthesize_epoch
from stake_scoring.services.reports import (
    commission_changes,
    epoch_control_summary,
    top_allocations,
)


# ============================================================
# CONTROL SUMMARY
# ============================================================


def test_control_summary(records_frame):
    records = records_frame(
        [
            stored_record(1, "A", epoch_credits=100_000, active_stake=10),
            stored_record(1, "B", epoch_credits=80_000, active_stake=20),
            stored_record(1, "C", epoch_credits=30_000, active_stake=5),
        ]
    )

    summary = epoch_control_summary(records)

    assert summary["validators"] == 3
    assert summary["total_staked"] == 35
    assert summary["avg_epoch_credits"] == pytest.approx(70_000.0)
    # below 35000 (half the average)
    assert summary["below_avg_credits_count"] == 1
    assert summary["below_avg_credits_stake"] == 5
    # below 60000 (60% of the best)
    assert summary["below_max_credits_count"] == 1


def test_control_summary_empty(records_frame):
    summary = epoch_control_summary(records_frame([]))

    assert summary["validators"] == 0
    assert summary["total_staked"] == 0


# ============================================================
# COMMISSION CHANGES
# ============================================================


def test_commission_changes(store, records_frame):
    store.upsert_epoch(
        1,
        records_frame(
            [
                stored_record(1, "A", commission=5),
                stored_record(1, "B", commission=5),
            ]
        ),
    )
    store.upsert_epoch(
        2,
        records_frame(
            [
                stored_record(2, "A", commission=5),
                stored_record(2, "B", commission=10),
                stored_record(2, "NEW", commission=0),
            ]
        ),
    )

    changes = commission_changes(store, 2)

    assert changes["vote_address"].tolist() == ["B", "B", "NEW"]
    assert changes["epoch"].tolist() == [1, 2, 2]
    assert changes["commission"].tolist() == [5, 10, 0]


def test_commission_changes_include_later_epochs(store, records_frame):
    store.upsert_epoch(1, records_frame([stored_record(1, "A", commission=5)]))
    store.upsert_epoch(2, records_frame([stored_record(2, "A", commission=8)]))
    store.upsert_epoch(3, records_frame([stored_record(3, "A", commission=8)]))

    changes = commission_changes(store, 2)

    assert changes["epoch"].tolist() == [1, 2, 3]
    assert changes["commission"].tolist() == [5, 8, 8]
    assert commission_changes(store, 2, lookback=1)["epoch"].tolist() == [2, 3]


def test_no_commission_changes(store, records_frame):
    for epoch in (1, 2):
        store.upsert_epoch(epoch, records_frame([stored_record(epoch, "A")]))

    assert commission_changes(store, 2).empty


# ============================================================
# TOP ALLOCATIONS
# ============================================================


def test_top_allocations():
    ranked = pd.DataFrame(
        {
            "vote_address": ["A", "B", "C", "D"],
            "rank": [1, 2, 3, 4],
            "pct": [50.0, 30.0, 20.0, 0.0],
        }
    )

    head, allocated = top_allocations(ranked, limit=2)

    assert head["vote_address"].tolist() == ["A", "B"]
    assert allocated == 3


# ============================================================
# BACKFILL
# ============================================================


def test_synthesize_epoch_averages_neighbours(store, records_frame):
    store.upsert_epoch(
        1,
        records_frame(
            [stored_record(1, "A", epoch_credits=100_001, commission=4, avg_position=50.0)]
        ),
    )
    store.upsert_epoch(
        3,
        records_frame(
            [stored_record(3, "A", epoch_credits=100_000, commission=5, avg_position=60.0)]
        ),
    )

    df = synthesize_epoch(store, 2)

    row = df.iloc[0]
    assert row["epoch"] == 2
    assert row["epoch_credits"] == 100_000  # 100000.5 truncated
    assert row["commission"] == 4  # 4.5 truncated
    assert row["avg_position"] == pytest.approx(55.0)
    assert row["name"] == "Validator A"


def test_backfill_epoch_writes_store(store, records_frame):
    for epoch in (1, 3):
        store.upsert_epoch(
            epoch,
            records_frame([stored_record(epoch, "A"), stored_record(epoch, "B")]),
        )

    assert backfill_epoch(store, 2) == 2
    assert store.epochs() == [1, 2, 3]
    assert sorted(store.epoch_records(2)["vote_address"]) == ["A", "B"]


def test_backfill_refuses_existing_epoch(store, records_frame):
    for epoch in (1, 2, 3):
        store.upsert_epoch(epoch, records_frame([stored_record(epoch, "A")]))

    with pytest.raises(MalformedInputError, match="overwrite"):
        backfill_epoch(store, 2)

    assert backfill_epoch(store, 2, overwrite=True) == 1


def test_backfill_without_neighbours_fails(store):
    with pytest.raises(MalformedInputError, match="no records"):
        backfill_epoch(store, 10)
