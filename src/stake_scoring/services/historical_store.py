# services/historical_store.py
"""
Historical Store

Epoch-keyed table of normalized validator records. Records only change by
replacing a whole epoch inside one transaction, so reruns are idempotent and a
failed run leaves the previous state untouched.
"""

from typing import List, Optional
import logging

import pandas as pd
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ..db.models import Base
from ..errors import MalformedInputError, StoreWriteError
from ..utils.calculations import to_row_dicts


SCORE_COLUMNS: List[str] = [
    "epoch",
    "keybase_id",
    "name",
    "identity",
    "vote_address",
    "score",
    "avg_position",
    "commission",
    "active_stake",
    "epoch_credits",
    "data_center_concentration",
    "can_halt_the_network_group",
    "stake_state",
    "stake_state_reason",
    "www_url",
    "pct",
    "stake_conc",
    "adj_credits",
]

RANKED_COLUMNS: List[str] = [
    "epoch",
    "rank",
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
    "avg_score",
    "pct",
]


def _insert_query(table: str, columns: List[str]) -> str:
    return f"""
        INSERT INTO {table} ({", ".join(columns)})
        VALUES ({", ".join(":" + col for col in columns)})
    """


class HistoricalStore:
    """
    Single-writer store for per-epoch validator records.

    Lifecycle: open() runs the schema migration, close() releases the engine.
    Also usable as a context manager.
    """

    def __init__(self, engine: Engine, logger: Optional[logging.Logger] = None):
        self.engine = engine
        self.logger = logger or logging.getLogger(__name__)
        self._is_open = False

    @classmethod
    def from_url(cls, db_url: str, logger: Optional[logging.Logger] = None):
        return cls(create_engine(db_url, echo=False), logger)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> "HistoricalStore":
        """Create missing tables and indexes."""
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise StoreWriteError(f"Schema migration failed: {exc}") from exc
        self._is_open = True
        return self

    def close(self) -> None:
        self.engine.dispose()
        self._is_open = False

    def __enter__(self) -> "HistoricalStore":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _ensure_open(self) -> None:
        if not self._is_open:
            raise RuntimeError("HistoricalStore is not open; call open() first")

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def upsert_epoch(self, epoch: int, records: pd.DataFrame) -> int:
        """
        Replace every record of `epoch` with `records` in one transaction.

        Returns:
            Number of records inserted

        Raises:
            MalformedInputError: If a record belongs to another epoch
            StoreWriteError: If the database rejects the write (rolled back)
        """
        self._ensure_open()
        epoch = int(epoch)

        if not records.empty:
            foreign = records[records["epoch"].astype(int) != epoch]
            if not foreign.empty:
                raise MalformedInputError(
                    f"Refusing to store records of epochs "
                    f"{sorted(foreign['epoch'].unique().tolist())} under epoch {epoch}"
                )

        rows = to_row_dicts(records, SCORE_COLUMNS)

        try:
            with self.engine.begin() as conn:
                deleted = conn.execute(
                    text("DELETE FROM scores WHERE epoch = :epoch"), {"epoch": epoch}
                ).rowcount
                if rows:
                    conn.execute(text(_insert_query("scores", SCORE_COLUMNS)), rows)
        except SQLAlchemyError as exc:
            self.logger.error(f"Epoch {epoch} write failed, rolled back: {exc}")
            raise StoreWriteError(f"Failed to store epoch {epoch}: {exc}") from exc

        if deleted:
            self.logger.info(f"Replaced {deleted} existing records for epoch {epoch}")
        self.logger.info(f"Stored {len(rows)} records for epoch {epoch}")
        return len(rows)

    def replace_rankings(self, epoch: int, ranked: pd.DataFrame) -> int:
        """Swap the ranked table for `epoch`'s ranking. Only one epoch is ever kept."""
        self._ensure_open()
        rows = to_row_dicts(ranked.assign(epoch=int(epoch)), RANKED_COLUMNS)

        try:
            with self.engine.begin() as conn:
                conn.execute(text("DELETE FROM ranked_scores"))
                if rows:
                    conn.execute(
                        text(_insert_query("ranked_scores", RANKED_COLUMNS)), rows
                    )
        except SQLAlchemyError as exc:
            self.logger.error(f"Ranking write for epoch {epoch} failed: {exc}")
            raise StoreWriteError(
                f"Failed to store rankings for epoch {epoch}: {exc}"
            ) from exc

        return len(rows)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _read(self, query: str, params: dict, columns: List[str]) -> pd.DataFrame:
        self._ensure_open()
        with self.engine.connect() as conn:
            result = conn.execute(text(query), params).fetchall()
        return pd.DataFrame(result, columns=columns)

    def records_in_range(
        self,
        epoch_low: int,
        epoch_high: int,
        vote_address: Optional[str] = None,
    ) -> pd.DataFrame:
        """All records with epoch_low <= epoch <= epoch_high, ordered by epoch."""
        address_filter = ""
        params = {"epoch_low": int(epoch_low), "epoch_high": int(epoch_high)}

        if vote_address is not None:
            address_filter = "AND vote_address = :vote_address"
            params["vote_address"] = vote_address

        query = f"""
            SELECT {", ".join(SCORE_COLUMNS)}
            FROM scores
            WHERE epoch BETWEEN :epoch_low AND :epoch_high
            {address_filter}
            ORDER BY epoch, vote_address
        """
        return self._read(query, params, SCORE_COLUMNS)

    def epoch_records(self, epoch: int) -> pd.DataFrame:
        return self.records_in_range(epoch, epoch)

    def epochs(self) -> List[int]:
        self._ensure_open()
        with self.engine.connect() as conn:
            result = conn.execute(
                text("SELECT DISTINCT epoch FROM scores ORDER BY epoch")
            ).fetchall()
        return [int(row[0]) for row in result]

    def latest_epoch(self) -> Optional[int]:
        epochs = self.epochs()
        return epochs[-1] if epochs else None

    def reference_credits(
        self, min_credits: int, exclude_epoch: Optional[int] = None
    ) -> pd.Series:
        """adj_credits of every stored record above the minimum-credits floor."""
        epoch_filter = ""
        params = {"min_credits": min_credits}

        if exclude_epoch is not None:
            epoch_filter = "AND epoch <> :exclude_epoch"
            params["exclude_epoch"] = int(exclude_epoch)

        query = f"""
            SELECT adj_credits
            FROM scores
            WHERE adj_credits > :min_credits
            {epoch_filter}
        """
        df = self._read(query, params, ["adj_credits"])
        return df["adj_credits"].astype(float)

    def rankings(self) -> pd.DataFrame:
        """The persisted ranking, ordered by rank."""
        query = f"""
            SELECT {", ".join(RANKED_COLUMNS)}
            FROM ranked_scores
            ORDER BY rank
        """
        return self._read(query, {}, RANKED_COLUMNS)
