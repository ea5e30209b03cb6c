# HISTORICAL STORE TABLES
from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    Float,
    Index,
    Integer,
    String,
)
from .base import Base, TimestampMixin


class ValidatorEpochScore(Base, TimestampMixin):
    """One normalized row per (epoch, validator). Replaced by epoch, never edited."""

    __tablename__ = "scores"

    # Composite Primary Key
    epoch = Column(Integer, primary_key=True)
    vote_address = Column(String(64), primary_key=True)

    # Identity & Display Metadata
    identity = Column(String(64), nullable=False)
    keybase_id = Column(String)
    name = Column(String)
    www_url = Column(String)

    # Raw Export Values
    score = Column(BigInteger, nullable=False, default=0)
    avg_position = Column(Float, nullable=False, default=0)
    commission = Column(Integer, nullable=False, default=0)
    active_stake = Column(BigInteger, nullable=False, default=0)
    epoch_credits = Column(BigInteger, nullable=False, default=0)
    data_center_concentration = Column(Float, nullable=False, default=0)

    # Stake State
    can_halt_the_network_group = Column(Boolean)
    stake_state = Column(String)
    stake_state_reason = Column(String)

    # Derived (per-epoch normalizer)
    adj_credits = Column(BigInteger, nullable=False, default=0)
    pct = Column(Float, nullable=False, default=0)
    stake_conc = Column(Float, nullable=False, default=0)

    __table_args__ = (
        Index("idx_scores_vote_address_epoch", "vote_address", "epoch"),
        Index("idx_scores_epoch_adj_credits", "epoch", "adj_credits"),
    )


class RankedScore(Base, TimestampMixin):
    """Latest epoch's ranking. Rebuilt wholesale on every run."""

    __tablename__ = "ranked_scores"

    vote_address = Column(String(64), primary_key=True)
    epoch = Column(Integer, nullable=False)
    rank = Column(Integer, nullable=False)

    keybase_id = Column(String)
    name = Column(String)

    # Current Epoch Values
    score = Column(BigInteger, nullable=False, default=0)
    epoch_credits = Column(BigInteger, nullable=False, default=0)
    commission = Column(Integer, nullable=False, default=0)

    # Trailing Window Aggregates
    score_records = Column(Integer, nullable=False, default=0)
    base_score = Column(BigInteger, nullable=False, default=0)
    avg_pos = Column(Float, nullable=False, default=0)
    mult = Column(Float, nullable=False, default=0)
    avg_commiss = Column(Float, nullable=False, default=0)
    avg_dcc = Column(Float, nullable=False, default=0)
    avg_ec = Column(BigInteger, nullable=False, default=0)
    avg_active_stake = Column(Float, nullable=False, default=0)
    delta_credits = Column(BigInteger, nullable=False, default=0)

    # Final Score & Allocation
    avg_score = Column(BigInteger, nullable=False, default=0)
    pct = Column(Float, nullable=False, default=0)

    __table_args__ = (Index("idx_ranked_scores_rank", "rank"),)
