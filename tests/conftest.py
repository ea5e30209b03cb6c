"""
Shared fixtures: CSV export writer, an on-disk SQLite store and a builder for
normalized record frames.
"""

import pandas as pd
import pytest

from stake_scoring.defs.resources import ScoringConfig
from stake_scoring.services.historical_store import HistoricalStore, SCORE_COLUMNS
from stake_scoring.services.ingestor import EXPORT_COLUMNS


@pytest.fixture
def scoring_config():
    """Default scoring parameters."""
    return ScoringConfig()


@pytest.fixture
def store(tmp_path):
    """Open historical store in a temporary SQLite file."""
    history = HistoricalStore.from_url(f"sqlite:///{tmp_path / 'scores.db'}")
    history.open()
    yield history
    history.close()


@pytest.fixture
def write_export(tmp_path):
    """Write export rows as a CSV and return its path."""

    def _write(rows, name="validator-detail.csv"):
        path = tmp_path / name
        pd.DataFrame(rows, columns=EXPORT_COLUMNS).to_csv(path, index=False)
        return path

    return _write


@pytest.fixture
def records_frame():
    """Build a normalized records DataFrame from factories.stored_record rows."""

    def _build(rows):
        return pd.DataFrame(rows, columns=SCORE_COLUMNS)

    return _build
