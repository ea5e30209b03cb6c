# defs/resources.py
"""
Dagster Resources for the historical store connection and scoring configuration
"""
from contextlib import contextmanager
from pathlib import Path
from typing import Optional
import logging
import os

from dagster import ConfigurableResource
from pydantic import PrivateAttr
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from ..services.historical_store import HistoricalStore


class DatabaseResource(ConfigurableResource):
    """Database resource for the historical scores database"""

    scores_db_url: str = os.getenv("SCORES_DB_URL", "sqlite:///db/score-sqlite3.db")

    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30

    _engine: Optional[Engine] = PrivateAttr(default=None)

    @property
    def engine(self) -> Engine:
        """Lazy initialization of the scores database engine"""
        if self._engine is None:
            pool_options = {}
            # SQLite uses a single-connection pool
            if not self.scores_db_url.startswith("sqlite"):
                pool_options = {
                    "pool_size": self.pool_size,
                    "max_overflow": self.max_overflow,
                    "pool_timeout": self.pool_timeout,
                }
            self._engine = create_engine(self.scores_db_url, echo=False, **pool_options)
        return self._engine

    @contextmanager
    def get_store(self, logger: Optional[logging.Logger] = None):
        """Open (and migrate) the historical store for the duration of a step"""
        store = HistoricalStore(self.engine, logger)
        store.open()
        try:
            yield store
        finally:
            store.close()


class ScoringConfig(ConfigurableResource):
    """Configuration resource for scoring parameters"""

    # Trailing window
    window_size: int = 5
    min_score_records: int = 5

    # Allocation
    top_n: int = 200

    # Position multiplier: mult = avg_position - position_center
    position_center: float = 49.0
    position_scale: float = 50.0
    min_reference_credits: int = 30000

    # adj_credits discounts
    commission_weight: float = 1.0
    concentration_weight: float = 3.0

    # Epoch exports
    import_dir: str = os.getenv("SCORES_IMPORT_DIR", "db/data-mainnet-beta")
    import_file_template: str = "validator-detail-{epoch}.csv"

    # Reporting
    report_top_limit: int = 20
    low_credit_ratio: float = 0.5
    max_credit_ratio: float = 0.6

    def validate_parameters(self) -> None:
        """Raise ValueError on parameter combinations the pipeline cannot use"""
        if self.window_size < 1:
            raise ValueError(f"window_size must be >= 1, got {self.window_size}")
        if self.min_score_records < 0:
            raise ValueError(
                f"min_score_records must be >= 0, got {self.min_score_records}"
            )
        # score_records counts epochs inside the window, so it never exceeds it
        if self.min_score_records > self.window_size:
            raise ValueError(
                f"min_score_records ({self.min_score_records}) cannot exceed "
                f"window_size ({self.window_size}); no validator could qualify"
            )
        if self.top_n < 1:
            raise ValueError(f"top_n must be >= 1, got {self.top_n}")
        if self.position_scale <= 0:
            raise ValueError(f"position_scale must be > 0, got {self.position_scale}")
        if self.commission_weight < 0 or self.concentration_weight < 0:
            raise ValueError("commission/concentration weights must be >= 0")
        if "{epoch}" not in self.import_file_template:
            raise ValueError("import_file_template must contain '{epoch}'")

    def export_path(self, epoch) -> Path:
        """Location of an epoch's CSV export"""
        return Path(self.import_dir) / self.import_file_template.format(epoch=epoch)
