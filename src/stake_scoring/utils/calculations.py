from typing import Dict, List
import numpy as np
import pandas as pd


# --- Core numeric helpers --- #
def round_half_away(values: pd.Series, decimals: int = 0) -> pd.Series:
    """SQL-style ROUND: halves go away from zero (pandas rounds half to even)."""
    factor = 10**decimals
    scaled = values.astype(float) * factor
    return np.sign(scaled) * np.floor(np.abs(scaled) + 0.5) / factor


def share_of_total(values: pd.Series, decimals: int = 4) -> pd.Series:
    """Percentage share of each value in the column total, 0 everywhere when the total is 0."""
    values = values.astype(float)
    total = values.sum()
    if total <= 0:
        return pd.Series(0.0, index=values.index)
    return round_half_away(values * 100.0 / total, decimals)


def share_of_subset(values: pd.Series, members: pd.Series) -> pd.Series:
    """
    Percentage share computed only within `members` (boolean mask).
    Non-members get 0; everyone gets 0 if the members sum to 0.
    """
    values = values.astype(float)
    total = values[members].sum()
    if total <= 0:
        return pd.Series(0.0, index=values.index)
    return (values / total * 100.0).where(members, 0.0)


# --- DataFrame <-> DB row helpers --- #
def _native(value):
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and np.isnan(value):
        return None
    return value


def to_row_dicts(df: pd.DataFrame, columns: List[str]) -> List[Dict]:
    """Rows as plain-Python dicts (numpy scalars unboxed, NaN -> None) for DB drivers."""
    return [
        {col: _native(value) for col, value in zip(columns, row)}
        for row in df[columns].itertuples(index=False, name=None)
    ]
