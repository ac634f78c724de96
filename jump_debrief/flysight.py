"""FlySight CSV loading (FlySight 1 and FlySight 2 track files)."""

from __future__ import annotations
from dataclasses import dataclass
from io import StringIO
import re
from pathlib import Path
from typing import IO, Optional, Union

import numpy as np
import pandas as pd

from .domain import Sample

CSVSource = Union[str, Path, IO[bytes], IO[str]]

# Internal name -> accepted header spellings
COLUMNS: dict[str, list[str]] = {
    "time": ["time"],
    "lat": ["lat", "latitude"],
    "lon": ["lon", "longitude"],
    "hMSL": ["hMSL", "alt_msl_m", "altitude"],
    "velN": ["velN"],
    "velE": ["velE"],
    "velD": ["velD"],
    "hAcc": ["hAcc"],
    "vAcc": ["vAcc"],
    "sAcc": ["sAcc"],
    "numSV": ["numSV"],
}
REQUIRED = ["time", "lat", "lon", "hMSL", "velN", "velE", "velD"]


@dataclass(frozen=True)
class FlySightMetadata:
    format_version: Optional[int] = None    # 1 for FlySight 2 "$FLYS,1" files, None for FlySight 1
    firmware_version: Optional[str] = None
    device_id: Optional[str] = None
    session_id: Optional[str] = None
    total_samples: int = 0


@dataclass(frozen=True)
class FlySightRecording:
    samples: list[Sample]
    metadata: FlySightMetadata


# -----------------------------
# Helpers
# -----------------------------

def _header_key(name: str) -> str:
    """Case and punctuation insensitive form of a header, e.g. " Alt_MSL_m " -> "altmslm"."""
    return re.sub(r"[^0-9a-z]", "", str(name).lower())


# Header key -> internal name
_ALIASES = {_header_key(alias): name for name, aliases in COLUMNS.items() for alias in aliases}


def _resolve_columns(headers) -> dict[str, Optional[str]]:
    """Map each internal column name to the header carrying it (leftmost wins)."""
    resolved: dict[str, Optional[str]] = dict.fromkeys(COLUMNS)
    for header in headers:
        name = _ALIASES.get(_header_key(header))
        if name is not None and resolved[name] is None:
            resolved[name] = header
    return resolved


def _read_text(csv_source: CSVSource) -> str:
    if hasattr(csv_source, "read"):
        content = csv_source.read()
        return content.decode("utf-8") if isinstance(content, bytes) else content
    return Path(csv_source).read_text(encoding="utf-8")


def _parse_flysight2(lines: list[str]) -> tuple[pd.DataFrame, FlySightMetadata]:
    version = None
    variables: dict[str, str] = {}
    columns: list[str] = []
    rows: list[str] = []

    for line in lines:
        parts = line.split(",")
        tag = parts[0]
        if tag == "$FLYS" and len(parts) > 1:
            version = int(parts[1])
        elif tag == "$VAR" and len(parts) > 2:
            variables[parts[1]] = ",".join(parts[2:])
        elif tag == "$COL" and len(parts) > 1 and parts[1] == "GNSS":
            columns = parts[2:]
        elif tag == "$GNSS":
            rows.append(",".join(parts[1:]))

    metadata = FlySightMetadata(
        format_version=version,
        firmware_version=variables.get("FIRMWARE_VER"),
        device_id=variables.get("DEVICE_ID"),
        session_id=variables.get("SESSION_ID"),
    )
    if not rows:
        return pd.DataFrame(columns=columns), metadata
    if not columns:
        raise ValueError("FlySight 2 file has $GNSS rows but no '$COL,GNSS,...' header.")

    df = pd.read_csv(StringIO("\n".join(rows)), header=None, names=columns)
    return df, metadata


def _parse_flysight1(text: str) -> pd.DataFrame:
    df = pd.read_csv(StringIO(text))
    # Second line is the units row ("(deg)", "(m/s)", ...); it fails the timestamp parse below
    return df


# -----------------------------
# Loader
# -----------------------------

def load_flysight(csv_source: CSVSource) -> FlySightRecording:
    """
    Load a FlySight track CSV into time-ordered Samples.

    Rows whose timestamp or position/velocity fields do not parse are dropped.
    Missing hAcc/vAcc/sAcc/numSV columns default to 0.

    Args:
        csv_source: Path or file-like object

    Returns:
        FlySightRecording with samples and header metadata
    """
    text = _read_text(csv_source)
    lines = [ln.strip() for ln in text.splitlines() if ln.strip()]
    if not lines:
        return FlySightRecording(samples=[], metadata=FlySightMetadata())

    if lines[0].startswith("$FLYS"):
        df, metadata = _parse_flysight2(lines)
    else:
        df, metadata = _parse_flysight1("\n".join(lines)), FlySightMetadata()

    if len(df) == 0:
        return FlySightRecording(samples=[], metadata=metadata)

    picked = _resolve_columns(df.columns)
    missing = [name for name in REQUIRED if picked[name] is None]
    if missing:
        raise ValueError(f"Missing required columns: {missing}. Found columns: {list(df.columns)}")

    out = pd.DataFrame({"time": pd.to_datetime(df[picked["time"]], utc=True, errors="coerce")})
    for name in COLUMNS:
        if name == "time":
            continue
        col = picked[name]
        out[name] = pd.to_numeric(df[col], errors="coerce") if col is not None else 0.0

    out = out.dropna(subset=REQUIRED).reset_index(drop=True)

    times = out["time"].dt.to_pydatetime()
    num_sv = out["numSV"].fillna(0).to_numpy(dtype=np.int64)
    samples = [
        Sample(
            time=times[i],
            lat_deg=float(row.lat),
            lon_deg=float(row.lon),
            alt_msl_m=float(row.hMSL),
            vel_n=float(row.velN),
            vel_e=float(row.velE),
            vel_d=float(row.velD),
            h_acc_m=float(row.hAcc) if pd.notna(row.hAcc) else 0.0,
            v_acc_m=float(row.vAcc) if pd.notna(row.vAcc) else 0.0,
            s_acc_ms=float(row.sAcc) if pd.notna(row.sAcc) else 0.0,
            num_sv=int(num_sv[i]),
        )
        for i, row in enumerate(out.itertuples(index=False))
    ]

    metadata = FlySightMetadata(
        format_version=metadata.format_version,
        firmware_version=metadata.firmware_version,
        device_id=metadata.device_id,
        session_id=metadata.session_id,
        total_samples=len(samples),
    )
    return FlySightRecording(samples=samples, metadata=metadata)
