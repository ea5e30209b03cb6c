"""
Tests for the per-epoch normalizer.
"""

import pandas as pd
import pytest

from factories import export_row, stored_record
from stake_scoring.defs.resources import ScoringConfig
from stake_scoring.errors import MalformedInputError, ReferencePopulationEmptyError
from stake_scoring.services.ingestor import EXPORT_COLUMNS
from stake_scoring.services.normalizer import adjusted_credits, normalize_epoch


def export_frame(rows):
    df = pd.DataFrame(rows, columns=EXPORT_COLUMNS)
    df["can_halt_the_network_group"] = False
    return df


# ============================================================
# SHARES
# ============================================================


def test_pct_and_stake_conc_sum_to_100(store, scoring_config):
    records = export_frame(
        [
            export_row(10, "A", score=1, active_stake=1),
            export_row(10, "B", score=1, active_stake=1),
            export_row(10, "C", score=1, active_stake=1),
        ]
    )

    df = normalize_epoch(records, store, scoring_config)

    assert df["pct"].sum() == pytest.approx(100.0, abs=1e-3)
    assert df["stake_conc"].sum() == pytest.approx(100.0, abs=1e-3)
    assert df["pct"].iloc[0] == pytest.approx(33.3333)


def test_zero_totals_give_zero_shares(store, scoring_config):
    records = export_frame(
        [
            export_row(10, "A", score=0, active_stake=0),
            export_row(10, "B", score=0, active_stake=0),
        ]
    )

    df = normalize_epoch(records, store, scoring_config)

    assert (df["pct"] == 0).all()
    assert (df["stake_conc"] == 0).all()


def test_pct_rounded_to_four_places(store, scoring_config):
    records = export_frame(
        [export_row(10, "A", score=2), export_row(10, "B", score=1)]
    )

    df = normalize_epoch(records, store, scoring_config)

    assert df["pct"].tolist() == [66.6667, 33.3333]


# ============================================================
# ADJUSTED CREDITS
# ============================================================


def test_adjusted_credits_discounts_commission_and_concentration():
    records = export_frame(
        [export_row(10, "A", epoch_credits=100_000, commission=10, data_center_concentration=5.0)]
    )

    # 100 - 10 - 3*5 = 75
    assert adjusted_credits(records).tolist() == [75_000]


def test_adjusted_credits_floor():
    records = export_frame(
        [export_row(10, "A", epoch_credits=999, commission=7, data_center_concentration=0.0)]
    )

    # 999 * 93 / 100 = 929.07
    assert adjusted_credits(records).tolist() == [929]


def test_adjusted_credits_never_negative():
    records = export_frame(
        [export_row(10, "A", epoch_credits=100_000, commission=50, data_center_concentration=20.0)]
    )

    # 100 - 50 - 60 = -10 -> clamped to 0
    assert adjusted_credits(records).tolist() == [0]


def test_adjusted_credits_configurable_weights():
    records = export_frame(
        [export_row(10, "A", epoch_credits=100_000, commission=10, data_center_concentration=5.0)]
    )

    assert adjusted_credits(records, 1.0, 4.0).tolist() == [70_000]
    assert adjusted_credits(records, 0.0, 0.0).tolist() == [100_000]


# ============================================================
# POSITION
# ============================================================


def test_avg_position_against_current_epoch(store, scoring_config):
    records = export_frame(
        [
            export_row(10, "A", epoch_credits=60_000),
            export_row(10, "B", epoch_credits=40_000),
            export_row(10, "C", epoch_credits=20_000),
        ]
    )

    df = normalize_epoch(records, store, scoring_config).set_index("vote_address")

    # reference = mean(60000, 40000); C is below the 30000 floor
    assert df.loc["A", "avg_position"] == pytest.approx(60.0)
    assert df.loc["B", "avg_position"] == pytest.approx(40.0)
    assert df.loc["C", "avg_position"] == pytest.approx(20.0)


def test_avg_position_uses_stored_history(store, scoring_config, records_frame):
    store.upsert_epoch(9, records_frame([stored_record(9, "X", adj_credits=100_000)]))
    records = export_frame([export_row(10, "A", epoch_credits=50_000)])

    df = normalize_epoch(records, store, scoring_config)

    # reference = mean(100000, 50000) = 75000
    assert df["avg_position"].iloc[0] == pytest.approx(50_000 * 50 / 75_000)


def test_rerun_ignores_stored_copy_of_same_epoch(store, scoring_config, records_frame):
    store.upsert_epoch(10, records_frame([stored_record(10, "A", adj_credits=90_000)]))
    records = export_frame([export_row(10, "A", epoch_credits=60_000)])

    df = normalize_epoch(records, store, scoring_config)

    assert df["avg_position"].iloc[0] == pytest.approx(50.0)


def test_reference_floor_is_configurable(store):
    config = ScoringConfig(min_reference_credits=10_000)
    records = export_frame(
        [
            export_row(10, "A", epoch_credits=40_000),
            export_row(10, "B", epoch_credits=20_000),
        ]
    )

    df = normalize_epoch(records, store, config).set_index("vote_address")

    assert df.loc["A", "avg_position"] == pytest.approx(40_000 * 50 / 30_000)


def test_empty_reference_population_fails(store, scoring_config):
    records = export_frame([export_row(10, "A", epoch_credits=20_000)])

    with pytest.raises(ReferencePopulationEmptyError):
        normalize_epoch(records, store, scoring_config)


def test_multi_epoch_input_rejected(store, scoring_config):
    records = export_frame([export_row(10, "A"), export_row(11, "B")])

    with pytest.raises(MalformedInputError):
        normalize_epoch(records, store, scoring_config)


def test_input_frame_not_mutated(store, scoring_config):
    records = export_frame([export_row(10, "A")])

    normalize_epoch(records, store, scoring_config)

    assert "adj_credits" not in records.columns
