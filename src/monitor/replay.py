"""
Observation replay from files.

Reads recorded observations (CSV or JSON) and feeds them through the monitor
in file order, e.g. to rebuild state after a restart or to audit a past
incident.

Design:
- Iterator-based sources, one row at a time
- Bad rows are logged and skipped, they don't stop the replay
- Authorization still applies: the replay caller must hold the reporter role

Example CSV:
    entity_id,actual,magnitude,timestamp
    pool-a,1000,5000,2025-02-07T10:30:45Z
"""

from __future__ import annotations

import csv
import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.anomaly.schema import Severity
from src.core.exceptions import DataValidationError, IngestionError

from .service import RiskMonitor

logger = logging.getLogger(__name__)


class Observation(BaseModel):
    """One recorded settlement observation."""

    model_config = ConfigDict(str_strip_whitespace=True)

    entity_id: str = Field(..., min_length=1, max_length=128)
    actual: int
    magnitude: int = Field(0, ge=0)
    timestamp: datetime


class ReplaySummary(BaseModel):
    """Outcome of a replay run."""

    processed: int = 0
    skipped: int = 0
    severity_counts: Dict[Severity, int] = Field(default_factory=dict)


class BaseObservationSource(ABC):
    """
    Abstract base class for observation files.
    """

    def __init__(self, filepath: Union[str, Path], encoding: str = "utf-8"):
        self.filepath = Path(filepath)
        self.encoding = encoding

        if not self.filepath.exists():
            raise IngestionError(f"Observation file not found: {self.filepath}")

    @abstractmethod
    def ingest(self) -> Iterator[Dict[str, Any]]:
        """Yield raw observation dicts in file order."""


class JSONObservationSource(BaseObservationSource):
    """
    JSON observations, either an array of objects or NDJSON.

    Malformed NDJSON lines are skipped with a warning; a malformed array is fatal.
    """

    def ingest(self) -> Iterator[Dict[str, Any]]:
        try:
            with open(self.filepath, "r", encoding=self.encoding) as f:
                content = f.read().lstrip("\ufeff").strip()
        except OSError as e:
            raise IngestionError(f"Failed to read JSON observations: {e}") from e

        if content.startswith("["):
            try:
                rows = json.loads(content)
            except json.JSONDecodeError as e:
                raise IngestionError(f"Invalid JSON array: {e}") from e
            for idx, row in enumerate(rows):
                if isinstance(row, dict):
                    yield row
                else:
                    logger.warning("Non-object observation at index %d: %s", idx, type(row))
            return

        for line_num, line in enumerate(content.split("\n"), start=1):
            line = line.strip()
            if not line:
                continue
            try:
                row = json.loads(line)
            except json.JSONDecodeError:
                logger.warning("Malformed JSON at line %d: %s", line_num, line[:100])
                continue
            if isinstance(row, dict):
                yield row
            else:
                logger.warning("NDJSON line %d not an object: %s", line_num, type(row))


class CSVObservationSource(BaseObservationSource):
    """
    CSV observations with a header row.
    """

    def __init__(
        self,
        filepath: Union[str, Path],
        encoding: str = "utf-8",
        delimiter: str = ",",
    ):
        super().__init__(filepath, encoding)
        self.delimiter = delimiter

    def ingest(self) -> Iterator[Dict[str, Any]]:
        try:
            with open(self.filepath, "r", encoding=self.encoding, newline="") as f:
                reader = csv.DictReader(f, delimiter=self.delimiter)
                if reader.fieldnames is None:
                    raise IngestionError("CSV file is empty")
                reader.fieldnames = [name.lstrip("\ufeff") for name in reader.fieldnames]

                for line_num, row in enumerate(reader, start=2):
                    if all(v in (None, "") for v in row.values()):
                        logger.warning("Empty row at line %d", line_num)
                        continue
                    yield row
        except IngestionError:
            raise
        except (OSError, csv.Error) as e:
            raise IngestionError(f"Failed to read CSV observations: {e}") from e


def ingest_observations(
    filepath: Union[str, Path],
    format: str = "auto",
) -> Iterator[Dict[str, Any]]:
    """
    Yield raw observation dicts from a file.

    Args:
        filepath: Path to the observation file
        format: "json", "csv", or "auto" to detect from the extension

    Raises:
        IngestionError: If the file is missing or the format is unknown
    """
    filepath = Path(filepath)

    if format == "auto":
        suffix = filepath.suffix.lower()
        if suffix in {".json", ".jsonl", ".ndjson"}:
            format = "json"
        elif suffix == ".csv":
            format = "csv"
        else:
            raise IngestionError(f"Cannot detect observation format for {filepath.name}")

    if format == "json":
        source: BaseObservationSource = JSONObservationSource(filepath)
    elif format == "csv":
        source = CSVObservationSource(filepath)
    else:
        raise IngestionError(f"Unknown format: {format}")

    yield from source.ingest()


def parse_observation(raw: Dict[str, Any]) -> Optional[Observation]:
    """Validate a raw row; returns None (and logs) when it is malformed."""
    try:
        return Observation.model_validate(raw)
    except ValidationError as e:
        logger.warning("Skipping malformed observation %s: %s", raw, e.errors()[0]["msg"])
        return None


def replay_observations(
    monitor: RiskMonitor,
    caller: str,
    filepath: Union[str, Path],
    format: str = "auto",
) -> ReplaySummary:
    """
    Feed every valid observation in a file through ``monitor``.
    """
    summary = ReplaySummary()
    for raw in ingest_observations(filepath, format=format):
        observation = parse_observation(raw)
        if observation is None:
            summary.skipped += 1
            continue

        try:
            record = monitor.report_observation(
                caller,
                observation.entity_id,
                observation.actual,
                observation.magnitude,
                observation.timestamp,
            )
        except DataValidationError as e:
            logger.warning("Skipping rejected observation %s: %s", raw, e)
            summary.skipped += 1
            continue
        summary.processed += 1
        summary.severity_counts[record.severity] = summary.severity_counts.get(record.severity, 0) + 1

    logger.info(
        "Replayed %d observations from %s (%d skipped)",
        summary.processed,
        filepath,
        summary.skipped,
    )
    return summary
