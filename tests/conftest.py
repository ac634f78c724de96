"""Shared synthetic FlySight-like tracks for the test suite."""

from datetime import datetime, timedelta, timezone

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from jump_debrief.domain import Sample

BASE_TIME = datetime(2025, 9, 11, 17, 26, 18, tzinfo=timezone.utc)
M_PER_DEG_LAT = 111_195.0


def build_track(vel_d, dt=1.0, alt0=1000.0, horiz=10.0, heading_deg=0.0, h_acc=5.0, alt=None):
    """
    Build a Sample list from a velD series.

    Altitude integrates velD (alt[i] = alt[i-1] - velD[i] * dt) unless `alt` is given.
    horiz, heading_deg and h_acc may be scalars or per-sample arrays.
    """
    vel_d = np.asarray(vel_d, dtype=float)
    n = len(vel_d)
    horiz = np.broadcast_to(np.asarray(horiz, dtype=float), (n,))
    heading = np.deg2rad(np.broadcast_to(np.asarray(heading_deg, dtype=float), (n,)))
    h_acc = np.broadcast_to(np.asarray(h_acc, dtype=float), (n,))

    if alt is None:
        alt = alt0 - np.concatenate(([0.0], np.cumsum(vel_d[1:] * dt)))
    alt = np.asarray(alt, dtype=float)

    vel_n = horiz * np.cos(heading)
    vel_e = horiz * np.sin(heading)
    lat = 34.76 + np.cumsum(vel_n * dt) / M_PER_DEG_LAT
    lon = -81.20 + np.cumsum(vel_e * dt) / (M_PER_DEG_LAT * np.cos(np.deg2rad(34.76)))

    return [
        Sample(
            time=BASE_TIME + timedelta(seconds=i * dt),
            lat_deg=float(lat[i]),
            lon_deg=float(lon[i]),
            alt_msl_m=float(alt[i]),
            vel_n=float(vel_n[i]),
            vel_e=float(vel_e[i]),
            vel_d=float(vel_d[i]),
            h_acc_m=float(h_acc[i]),
            v_acc_m=8.0,
            s_acc_ms=0.5,
            num_sv=10,
        )
        for i in range(n)
    ]


def full_jump_vel_d():
    """
    1 Hz full-altitude jump, sample indices:
      0..29 climb, 30..39 level jump run, 40..48 exit ramp (0..48 m/s),
      49..78 freefall at 50 m/s, 79..90 opening (50 -> 6 m/s),
      91..210 canopy at 6 m/s, 211..225 on the ground.
    """
    return np.concatenate([
        np.full(30, -5.0),
        np.zeros(10),
        np.arange(0.0, 50.0, 6.0),
        np.full(30, 50.0),
        np.linspace(50.0, 6.0, 12),
        np.full(120, 6.0),
        np.zeros(15),
    ])


def full_jump_horiz():
    return np.concatenate([
        np.full(40, 40.0),    # aircraft
        np.full(171, 10.0),    # jumper in the air
        np.full(15, 0.5),    # standing on the ground
    ])


def hop_and_pop_vel_d():
    """
    1 Hz hop-and-pop that never exceeds 18 m/s, sample indices:
      0..19 climb, 20..24 level, 25..31 ramp 0..18, 32..36 hold 18,
      37..41 opening 18 -> 8, 42..81 canopy at 6, 82..91 on the ground.
    """
    return np.concatenate([
        np.full(20, -5.0),
        np.zeros(5),
        np.arange(0.0, 19.0, 3.0),
        np.full(5, 18.0),
        np.linspace(18.0, 8.0, 5),
        np.full(40, 6.0),
        np.zeros(10),
    ])


def hop_and_pop_horiz():
    return np.concatenate([np.full(25, 35.0), np.full(57, 8.0), np.full(10, 0.5)])


@pytest.fixture
def track():
    """Factory fixture: track(vel_d, **kwargs) -> list[Sample]."""
    return build_track


@pytest.fixture
def full_jump():
    return build_track(full_jump_vel_d(), alt0=3000.0, horiz=full_jump_horiz())


@pytest.fixture
def hop_and_pop():
    return build_track(hop_and_pop_vel_d(), horiz=hop_and_pop_horiz())


@pytest.fixture
def full_jump_channels():
    """(vel_d, horiz) arrays behind the full_jump fixture, for tests that modify them."""
    return full_jump_vel_d(), full_jump_horiz()


FS1_HEADER = "time,lat,lon,hMSL,velN,velE,velD,hAcc,vAcc,sAcc,heading,cAcc,gpsFix,numSV"
FS1_UNITS = ",(deg),(deg),(m),(m/s),(m/s),(m/s),(m),(m),(m/s),(deg),(deg),,"


def _iso(t):
    return t.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def write_flysight(samples, version=2):
    """Render samples as FlySight 2 (version=2) or FlySight 1 (version=1) CSV text."""
    if version == 1:
        lines = [FS1_HEADER, FS1_UNITS]
        for s in samples:
            lines.append(
                f"{_iso(s.time)},{s.lat_deg},{s.lon_deg},{s.alt_msl_m},{s.vel_n},{s.vel_e},"
                f"{s.vel_d},{s.h_acc_m},{s.v_acc_m},{s.s_acc_ms},0.0,1.0,3,{s.num_sv}"
            )
        return "\n".join(lines) + "\n"

    lines = [
        "$FLYS,1",
        "$VAR,FIRMWARE_VER,v2023.09.22.2",
        "$VAR,DEVICE_ID,003e0038484e501420353131",
        "$VAR,SESSION_ID,8e5e0b2c8fd2e1a7c2b5d43e",
        "$COL,GNSS,time,lat,lon,hMSL,velN,velE,velD,hAcc,vAcc,sAcc,numSV",
        "$UNIT,GNSS,,deg,deg,m,m/s,m/s,m/s,m,m,m/s,",
        "$DATA",
    ]
    for s in samples:
        lines.append(
            f"$GNSS,{_iso(s.time)},{s.lat_deg},{s.lon_deg},{s.alt_msl_m},{s.vel_n},{s.vel_e},"
            f"{s.vel_d},{s.h_acc_m},{s.v_acc_m},{s.s_acc_ms},{s.num_sv}"
        )
    return "\n".join(lines) + "\n"


@pytest.fixture
def flysight_csv():
    """Factory fixture: flysight_csv(samples, version=2) -> CSV text."""
    return write_flysight
