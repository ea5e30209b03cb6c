# defs/sensors.py
"""
Sensor registering a partition (and a run) for every new epoch export.
"""

from pathlib import Path
from typing import List
import re

from dagster import RunRequest, SensorEvaluationContext, SensorResult, sensor

from .assets.partitions import epoch_partitions
from .jobs import epoch_scoring_job
from .resources import ScoringConfig


def export_file_pattern(template: str) -> re.Pattern:
    """Regex matching file names produced by `template`, capturing the epoch."""
    return re.compile(
        "^" + re.escape(template).replace(re.escape("{epoch}"), r"(\d+)") + "$"
    )


def discover_export_epochs(import_dir: str, template: str) -> List[str]:
    """Epoch numbers (as partition keys) of all exports in `import_dir`, ascending."""
    directory = Path(import_dir)
    if not directory.is_dir():
        return []

    pattern = export_file_pattern(template)
    epochs = set()
    for path in directory.iterdir():
        match = pattern.match(path.name)
        if match and path.is_file():
            epochs.add(int(match.group(1)))
    return [str(epoch) for epoch in sorted(epochs)]


@sensor(
    job=epoch_scoring_job,
    minimum_interval_seconds=300,
    description="Adds an epoch partition and requests a run for each new export",
)
def new_epoch_export_sensor(context: SensorEvaluationContext, scoring: ScoringConfig):
    found = discover_export_epochs(scoring.import_dir, scoring.import_file_template)
    known = set(context.instance.get_dynamic_partitions(epoch_partitions.name))
    new_epochs = [epoch for epoch in found if epoch not in known]

    if not new_epochs:
        return SensorResult(skip_reason=f"No new exports in {scoring.import_dir}")

    context.log.info(f"New epoch exports: {', '.join(new_epochs)}")

    # Oldest first so the trailing window is filled in order
    return SensorResult(
        run_requests=[
            RunRequest(run_key=f"epoch-{epoch}", partition_key=epoch)
            for epoch in new_epochs
        ],
        dynamic_partitions_requests=[epoch_partitions.build_add_request(new_epochs)],
    )
