from pathlib import Path
from typing import Optional, Union
import logging

import pandas as pd

from .aggregator import aggregate_epoch
from .finalizer import finalize_scores
from .ingestor import read_validator_csv
from .normalizer import normalize_epoch


def process_epoch(
    store,
    csv_path: Union[str, Path],
    config,
    logger: Optional[logging.Logger] = None,
    expected_epoch: Optional[int] = None,
) -> pd.DataFrame:
    """
    Run one epoch end to end: ingest, normalize, replace the epoch in the
    store, aggregate the trailing window, rank and persist the ranking.

    Ingest and normalize errors abort before the store is touched; store
    errors roll the epoch back.

    Returns:
        The ranked table for the epoch
    """
    logger = logger or logging.getLogger(__name__)
    config.validate_parameters()

    records = read_validator_csv(csv_path, expected_epoch=expected_epoch, logger=logger)
    epoch = int(records["epoch"].iloc[0])

    normalized = normalize_epoch(records, store, config, logger)
    store.upsert_epoch(epoch, normalized)

    aggregate = aggregate_epoch(store, epoch, config, logger)
    ranked = finalize_scores(aggregate, config, logger)
    store.replace_rankings(epoch, ranked)

    logger.info(f"Epoch {epoch} processed: {len(ranked)} validators ranked")
    return ranked
