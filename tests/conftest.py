"""
Shared fixtures: builders for synthetic R9 CSV exports.
"""

from pathlib import Path

import pytest

from r9convert.services.csv_parser import FLIGHT_COLUMNS, SYSTEM_COLUMNS


POWER_ON = "<<<< **** POWER ON **** >>>>"
INCREMENTAL_EXTRACT = "<< Incremental extract >>"

ENGINE_HEADER_CURRENT = [
    "Systime", "Date", "Time",
    "Eng1 Oil Temperature", "Eng1 Oil Pressure", "Eng1 RPM", "Eng1 Manifold Pressure (In.Hg)",
    *[f"Eng1 CHT[{n}] (°F)" for n in range(1, 7)],
    *[f"Eng1 EGT[{n}] (°F)" for n in range(1, 7)],
    "Eng1 Percent Pwr", "FuelFlow", "FuelUsed", "FuelRemaining", "FuelTimeRemaining (min)",
    "FuelEconomy", "Eng1 MBus1 Volts", "Eng1 Bus2 Volts",
]

ENGINE_HEADER_LEGACY = [
    "Systime", "Date", "Time",
    "Eng1OilTemperature(°F)", "Eng1OilPressure", "Eng1RPM", "Eng1ManifoldPressure(In.Hg)",
    *[f"Eng1CHT[{n}](°F)" for n in range(1, 7)],
    *[f"Eng1EGT[{n}](°F)" for n in range(1, 7)],
    "Eng1PercentPwr", "FuelFlow(Gal/hr)", "FuelUsed(Gal)", "FuelRemaining(Gal)", "FuelTimeRemaining(min)",
    "FuelEconomy(nm/gal)", "Eng1Bus1Volts", "Eng1Bus3Volts",
]

FLIGHT_HEADER = ["Systime", "Date", "Time", *[spec.headers[0] for spec in FLIGHT_COLUMNS.values()]]
SYSTEM_HEADER = ["Systime", "Date", "Time", *[spec.headers[0] for spec in SYSTEM_COLUMNS.values()]]


def make_row(header: list[str], date: str, time: str, values: dict) -> list[str]:
    """One data row with the given cells; everything else empty."""
    cells = {"Systime": "1000", "Date": date, "Time": time, **values}
    return [str(cells.get(name, "")) for name in header]


def marker_row(date: str, time: str, sentinel: str = POWER_ON) -> list[str]:
    return ["1000", date, time, sentinel]


def write_r9_csv(path: Path, header: list[str], rows: list[list[str]]) -> Path:
    lines = [",".join(header)] + [",".join(row) for row in rows]
    path.write_text("\n".join(lines) + "\n", encoding="cp1252")
    return path


ENGINE_VALUES = {
    "Eng1 Oil Temperature": "180",
    "Eng1 Oil Pressure": "60",
    "Eng1 RPM": "2400",
    "Eng1 Manifold Pressure (In.Hg)": "24.5",
    **{f"Eng1 CHT[{n}] (°F)": str(340 + n) for n in range(1, 7)},
    **{f"Eng1 EGT[{n}] (°F)": str(1300 + n) for n in range(1, 7)},
    "Eng1 Percent Pwr": "65.4",
    "FuelFlow": "12.5",
    "Eng1 MBus1 Volts": "28.1",
    "Eng1 Bus2 Volts": "27.9",
}

FLIGHT_VALUES = {
    "Filtered NormAcc (G)": "1.01",
    "NormAcc (G)": "1.02",
    "LateralAcc (G)": "0.01",
    "Heading (°M)": "90",
    "Pitch (°)": "2.5",
    "Roll (°)": "-1.5",
    "FlightDirectorPitch (°)": "3.0",
    "FlightDirectorRoll (°)": "-2.0",
    "PressureAltitude (ft)": "5000",
    "IndicatedAirspeed (kts)": "120",
    "TrueAirspeed (kts)": "130",
    "VerticalSpeed (ft/min)": "0",
    "GPSLatitude": "37.6188056",
    "GPSLongitude": "-122.3754167",
    "AHRSStatusbits": "0x1F",
    "DFC100 Lat Active": "2",
    "DFC100 Lat Armed": "8",
    "DFC100 Vert Active": "13",
    "DFC100 Vert Armed": "0",
    "DFC100 Alt Target": "6000",
}

SYSTEM_VALUES = {
    "OutsideAirTemperature (°C)": "5",
    "GroundSpeed (kts)": "125",
    "GroundTrack (°M)": "85",
    "CrossTrackDeviation (nm)": "0.5",
    "AltimeterSetting (in.hg)": "30.42",
    "AltBug (ft)": "6000",
    "HdgBug (°)": "90",
    "NavigationMode": "1",
    "ActiveWptId": "KSFO",
    "NavaidBrg (°M)": "100",
    "OBS (°M)": "45",
    "DesiredTrack (°M)": "88",
    "NavFreq (kHz)": "110300",
    "CrsSelect": "0",
    "DistanceToActiveWpt (nm)": "12.3",
    "GPSState": "5",
    "MagVar (° -W/+E)": "13.2",
    "GPS MSL Altitude (m)": "1524",
    "GPS AGL Height (m)": "1000",
    "LocalizerDeviation (-1..1)": "0.25",
    "GlideslopeDeviation (-1..1)": "-0.1",
}


def write_flight_export(
    folder: Path,
    prefix: str,
    date: str,
    power_on: str,
    times: list[str],
    engine_header: list[str] = ENGINE_HEADER_CURRENT,
) -> None:
    """One power cycle: a POWER ON marker in each log followed by data rows."""
    folder.mkdir(parents=True, exist_ok=True)
    # both engine header styles list the fields in the same order
    engine_values = {
        name: ENGINE_VALUES.get(current, "")
        for name, current in zip(engine_header[3:], ENGINE_HEADER_CURRENT[3:])
    }

    write_r9_csv(
        folder / f"{prefix}_ENGINE.CSV",
        engine_header,
        [marker_row(date, power_on)] + [make_row(engine_header, date, t, engine_values) for t in times[::4]],
    )
    write_r9_csv(
        folder / f"{prefix}_FLIGHT.CSV",
        FLIGHT_HEADER,
        [marker_row(date, power_on)] + [make_row(FLIGHT_HEADER, date, t, FLIGHT_VALUES) for t in times],
    )
    write_r9_csv(
        folder / f"{prefix}_SYSTEM.CSV",
        SYSTEM_HEADER,
        [marker_row(date, power_on)] + [make_row(SYSTEM_HEADER, date, t, SYSTEM_VALUES) for t in times[::2]],
    )


def clock(start_minute: int, start_second: int, count: int, hour: int = 12) -> list[str]:
    """`count` consecutive HH:MM:SS strings."""
    total = hour * 3600 + start_minute * 60 + start_second
    return [
        f"{(t // 3600):02d}:{(t % 3600) // 60:02d}:{t % 60:02d}"
        for t in range(total, total + count)
    ]


@pytest.fixture
def r9_export(tmp_path):
    """Two power cycles an hour apart, 10 s of data each."""
    folder = tmp_path / "r9"
    write_flight_export(folder, "20230601_1200", "20230601", "12:00:00", clock(0, 1, 10))
    write_flight_export(folder, "20230601_1300", "20230601", "13:00:00", clock(0, 1, 10, hour=13))
    return folder


@pytest.fixture
def output_dir(tmp_path):
    out = tmp_path / "out"
    out.mkdir()
    return out
