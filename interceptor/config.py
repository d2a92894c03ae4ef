"""Engagement data loading (fuse profiles, guidance tuning, threat tables, assets)."""

from __future__ import annotations
import json
from pathlib import Path

DEFAULT_DATA_PATH = Path(__file__).parent / "data" / "engagement_data.json"


def load_engagement_data(filepath: str | Path | None = None) -> dict:
    """
    Load engagement data from a JSON file.

    Args:
        filepath: Path to an engagement_data.json file. Defaults to the
            data file shipped with the package.

    Returns:
        Dictionary containing all engagement data.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
    """
    path = Path(filepath) if filepath is not None else DEFAULT_DATA_PATH
    with open(path, "r") as f:
        return json.load(f)
