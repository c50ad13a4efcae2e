# data/data_loader.py
import logging
from collections import OrderedDict
from datetime import date
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

import pandas as pd

from ..exceptions import NoUsableRowsError
from .data_structures import Observation

logger = logging.getLogger(__name__)

# Header substrings, matched case-insensitively
COLUMN_KEYS = {
    "date": "date",
    "track_id": "track",
    "streams": "stream",
    "danceability": "danceability",
    "energy": "energy",
    "valence": "valence",
    "acousticness": "acousticness",
}
REQUIRED_COLUMNS = ("date", "track_id", "streams")
NUMERIC_COLUMNS = ("streams", "danceability", "energy", "valence", "acousticness")


class RecordStore:
    """
    Parsed observations keyed by (track_id, date).
    A repeated key replaces the earlier observation.
    """

    def __init__(self, observations: Optional[Iterable[Observation]] = None):
        self._records: "OrderedDict[Tuple[str, date], Observation]" = OrderedDict()
        self._track_order: Dict[str, None] = {}
        for observation in observations or ():
            self.add(observation)

    def add(self, observation: Observation):
        self._records[observation.key] = observation
        self._track_order.setdefault(observation.track_id, None)

    def __len__(self):
        return len(self._records)

    def __iter__(self) -> Iterator[Observation]:
        return iter(self._records.values())

    def get(self, track_id: str, day: date) -> Optional[Observation]:
        return self._records.get((track_id, day))

    def observations(self) -> List[Observation]:
        """Observations in first-seen key order."""
        return list(self._records.values())

    @property
    def track_ids(self) -> List[str]:
        return list(self._track_order)

    @property
    def dates(self) -> List[date]:
        return sorted({obs.date for obs in self._records.values()})


def _find_column(headers: List[str], key: str) -> Optional[str]:
    candidates = [h for h in headers if key in h.lower()]
    if not candidates:
        return None
    if key == "track":
        # Prefer an id column over e.g. "track_name" when both are present
        for header in candidates:
            if "id" in header.lower():
                return header
    return candidates[0]


def resolve_columns(headers: List[str]) -> Dict[str, Optional[str]]:
    """Map canonical field names to the CSV's own header names."""
    mapping = {field: _find_column(headers, key) for field, key in COLUMN_KEYS.items()}
    others = [h for h in headers if h != mapping["track_id"]]
    # "track_name" wins over e.g. "artist_name"
    mapping["track_name"] = (_find_column([h for h in others if "track" in h.lower()], "name")
                             or _find_column(others, "name"))
    return mapping


def observations_from_frame(df: pd.DataFrame) -> RecordStore:
    """Convert a raw string frame into a RecordStore, skipping malformed rows."""
    headers = [str(c).strip().strip('"') for c in df.columns]
    df = df.copy()
    df.columns = headers
    mapping = resolve_columns(headers)

    missing = [field for field in REQUIRED_COLUMNS if mapping[field] is None]
    if missing:
        raise NoUsableRowsError(f"Required column(s) missing from header: {', '.join(missing)}")

    track_ids = df[mapping["track_id"]].fillna("").astype(str).str.strip()
    raw_dates = df[mapping["date"]].fillna("").astype(str).str.strip()
    has_date = raw_dates != ""
    dates = pd.to_datetime(raw_dates.where(has_date), errors="coerce", format="mixed")

    numeric = {}
    for field in NUMERIC_COLUMNS:
        column = mapping[field]
        if column is None:
            numeric[field] = pd.Series(0.0, index=df.index)
        else:
            numeric[field] = pd.to_numeric(df[column], errors="coerce").fillna(0.0)

    names = None
    if mapping["track_name"] is not None:
        names = df[mapping["track_name"]].fillna("").astype(str).str.strip()

    has_track = track_ids != ""
    keyless = int((~(has_track & has_date)).sum())
    if keyless:
        logger.warning(f"Skipped {keyless} row(s) without a track id or date")
    unparsable = has_track & has_date & dates.isna()
    if unparsable.any():
        examples = list(raw_dates[unparsable].unique()[:5])
        logger.warning(f"Skipped {int(unparsable.sum())} row(s) with unparsable dates, e.g. {examples}")
    valid = has_track & dates.notna()

    store = RecordStore()
    for idx in df.index[valid.to_numpy()]:
        name = names[idx] if names is not None and names[idx] else None
        store.add(Observation(
            date=dates[idx].date(),
            track_id=track_ids[idx],
            streams=float(numeric["streams"][idx]),
            danceability=float(numeric["danceability"][idx]),
            energy=float(numeric["energy"][idx]),
            valence=float(numeric["valence"][idx]),
            acousticness=float(numeric["acousticness"][idx]),
            track_name=name,
        ))

    if not len(store):
        raise NoUsableRowsError("No usable rows found in input")

    logger.info(f"Loaded {len(store)} observations for {len(store.track_ids)} tracks "
                f"over {len(store.dates)} days")
    return store


def load_observations(source) -> RecordStore:
    """
    Read a streaming history CSV (path or file-like object).

    Columns are located by case-insensitive substring match on the header and
    may appear in any order. Unparsable numbers become 0; rows missing the
    track id or date are dropped.
    """
    try:
        df = pd.read_csv(source, dtype=str, keep_default_na=False, skipinitialspace=True,
                         on_bad_lines="skip")
    except pd.errors.EmptyDataError as e:
        raise NoUsableRowsError(f"Input is empty: {e}") from e
    return observations_from_frame(df)
