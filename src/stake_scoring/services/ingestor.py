# services/ingestor.py
"""
Validator Record Ingestor

Parses one epoch's per-validator CSV export into typed records. One file is
exactly one epoch; anything else is rejected before the store is touched.
"""

from pathlib import Path
from typing import List, Optional, Union
import logging

import pandas as pd

from ..errors import MalformedInputError
from .validators.field_validator import FieldValidator


EXPORT_COLUMNS: List[str] = [
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
]

HEADER_IDENTITY_TOKEN = "identity"


def build_export_validator() -> FieldValidator:
    """Typing rules for the 15 export columns."""
    return (
        FieldValidator()
        .add_integer_field("epoch")
        .add_string_field("keybase_id", nullable=True)
        .add_string_field("name", nullable=True)
        .add_string_field("identity")
        .add_string_field("vote_address")
        .add_integer_field("score")
        .add_float_field("avg_position")
        .add_integer_field("commission")
        .add_integer_field("active_stake")
        .add_integer_field("epoch_credits")
        .add_float_field("data_center_concentration")
        .add_boolean_field("can_halt_the_network_group", nullable=True)
        .add_string_field("stake_state", nullable=True)
        .add_string_field("stake_state_reason", nullable=True)
        .add_string_field("www_url", nullable=True)
    )


def read_validator_csv(
    path: Union[str, Path],
    expected_epoch: Optional[int] = None,
    logger: Optional[logging.Logger] = None,
) -> pd.DataFrame:
    """
    Read and type one epoch export.

    Args:
        path: CSV file (UTF-8, comma-delimited, header row first)
        expected_epoch: If given, the file's epoch must equal it
        logger: Logger for progress messages

    Returns:
        DataFrame with EXPORT_COLUMNS, one row per validator

    Raises:
        MalformedInputError: On any schema, typing or single-epoch violation
    """
    logger = logger or logging.getLogger(__name__)
    path = Path(path)

    try:
        raw = pd.read_csv(
            path,
            header=None,
            dtype=str,
            keep_default_na=False,
            na_values=[],
            encoding="utf-8",
            skip_blank_lines=True,
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as exc:
        raise MalformedInputError(f"{path}: cannot parse CSV: {exc}") from exc
    except OSError as exc:
        raise MalformedInputError(f"{path}: cannot read file: {exc}") from exc

    if raw.shape[1] != len(EXPORT_COLUMNS):
        raise MalformedInputError(
            f"{path}: expected {len(EXPORT_COLUMNS)} columns, found {raw.shape[1]}"
        )

    header = [str(value).strip() for value in raw.iloc[0].tolist()]
    if header != EXPORT_COLUMNS:
        raise MalformedInputError(f"{path}: unexpected header {header}")

    raw = raw.iloc[1:].copy()
    raw.columns = EXPORT_COLUMNS

    # only missing trailing fields are NaN; empty fields stay ""
    short_rows = raw[raw.isna().any(axis=1)]
    if not short_rows.empty:
        raise MalformedInputError(
            f"{path}: row {int(short_rows.index[0])} has fewer than "
            f"{len(EXPORT_COLUMNS)} columns"
        )

    repeated_headers = raw["identity"].str.strip() == HEADER_IDENTITY_TOKEN
    if repeated_headers.any():
        logger.warning(
            f"{path}: dropping {int(repeated_headers.sum())} repeated header row(s)"
        )
        raw = raw[~repeated_headers]

    if raw.empty:
        raise MalformedInputError(f"{path}: no validator rows")

    validator = build_export_validator()
    records = []
    for line_no, row in zip(raw.index, raw.to_dict(orient="records")):
        try:
            records.append(validator.validate_and_transform(row))
        except ValueError as exc:
            raise MalformedInputError(f"{path}: row {int(line_no)}: {exc}") from exc

    df = pd.DataFrame(records, columns=EXPORT_COLUMNS)

    epochs = sorted(df["epoch"].unique().tolist())
    if len(epochs) != 1:
        raise MalformedInputError(
            f"{path}: one file must hold exactly one epoch, found {epochs}"
        )
    epoch = int(epochs[0])
    if expected_epoch is not None and epoch != int(expected_epoch):
        raise MalformedInputError(
            f"{path}: file holds epoch {epoch}, expected {expected_epoch}"
        )

    duplicated = df["vote_address"].duplicated()
    if duplicated.any():
        raise MalformedInputError(
            f"{path}: duplicate vote_address values "
            f"{sorted(df.loc[duplicated, 'vote_address'].unique().tolist())}"
        )

    out_of_range = df[(df["commission"] < 0) | (df["commission"] > 100)]
    if not out_of_range.empty:
        raise MalformedInputError(
            f"{path}: commission outside 0-100 for "
            f"{out_of_range['vote_address'].tolist()}"
        )

    logger.info(f"Ingested {len(df)} validator records for epoch {epoch} from {path}")
    return df
