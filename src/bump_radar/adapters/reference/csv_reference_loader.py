"""
CSV Reference Loader - reference tables to an immutable lookup.

Reads the packaged carrier, aircraft, route, distance and airport tables with
pandas, validates each against its Pandera schema, and freezes the
rows into a ``ReferenceData`` lookup for the scoring engine.
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Dict, FrozenSet, Optional, Tuple, Type, Union

import pandas as pd
import pandera as pa

from src.bump_radar.schemas.reference import (
    AircraftCodeSchema,
    AircraftDefaults,
    AircraftDefaultSchema,
    AircraftType,
    AircraftTypeSchema,
    AirportInfo,
    AirportSchema,
    CarrierStats,
    CarrierStatsSchema,
    Operator,
    OperatorSchema,
    ReferenceData,
    RouteDistanceSchema,
    RouteDurationSchema,
    RouteLoadFactor,
    RouteLoadFactorSchema,
)

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path(__file__).resolve().parents[2] / "data"


def _read_table(
    data_dir: Path,
    filename: str,
    schema: Type[pa.DataFrameModel],
) -> pd.DataFrame:
    """
    Read one CSV and validate it at the boundary.

    Args:
        data_dir: Directory holding the reference CSVs.
        filename: CSV file name.
        schema: Pandera model to validate against.

    Returns:
        Validated (and type-coerced) DataFrame.

    Raises:
        FileNotFoundError: If the table is missing.
        pandera.errors.SchemaError: If the table violates its schema.
    """
    path = data_dir / filename
    if not path.exists():
        raise FileNotFoundError(f"Reference table not found: {path}")
    df = pd.read_csv(path)
    validated = schema.validate(df)
    logger.debug("Loaded %d rows from %s", len(validated), filename)
    return validated


def _optional_str(value: object) -> Optional[str]:
    if value is None or pd.isna(value) or value == "":
        return None
    return str(value)


def parse_peak_days(value: object) -> FrozenSet[int]:
    """
    Parse a semicolon-separated weekday list ("0;3;4").

    Weekdays follow ``date.weekday()``: 0 is Monday.
    """
    text = _optional_str(value)
    if text is None:
        return frozenset()
    return frozenset(int(part) for part in text.split(";") if part.strip())


def load_reference_data(data_dir: Optional[Union[str, Path]] = None) -> ReferenceData:
    """
    Load and validate every reference table.

    Args:
        data_dir: Directory with the CSVs. Defaults to the packaged data.

    Returns:
        Immutable ReferenceData lookup.
    """
    root = Path(data_dir) if data_dir is not None else DEFAULT_DATA_DIR

    carriers_df = _read_table(root, "carriers.csv", CarrierStatsSchema)
    carriers = {
        row.code: CarrierStats(
            code=row.code,
            name=row.name,
            db_rate=float(row.db_rate),
            idb_rate=float(row.idb_rate),
            vdb_rate=float(row.vdb_rate),
            load_factor=float(row.load_factor),
            avg_compensation=float(row.avg_compensation),
            oversale_rate=float(row.oversale_rate),
        )
        for row in carriers_df.itertuples(index=False)
    }

    aircraft_df = _read_table(root, "aircraft_types.csv", AircraftTypeSchema)
    aircraft_types = {
        row.key: AircraftType(
            key=row.key,
            name=row.name,
            iata_code=row.iata_code,
            capacity=int(row.capacity),
            is_regional=bool(row.is_regional),
        )
        for row in aircraft_df.itertuples(index=False)
    }

    codes_df = _read_table(root, "aircraft_codes.csv", AircraftCodeSchema)
    aircraft_codes = dict(zip(codes_df["feed_code"], codes_df["aircraft_key"]))
    unknown_keys = set(aircraft_codes.values()) - set(aircraft_types)
    if unknown_keys:
        raise ValueError(f"aircraft_codes.csv references unknown aircraft: {sorted(unknown_keys)}")

    defaults_df = _read_table(root, "aircraft_defaults.csv", AircraftDefaultSchema)
    aircraft_defaults = {
        row.carrier: AircraftDefaults(
            carrier=row.carrier,
            short_haul=row.short_haul,
            medium_haul=row.medium_haul,
            long_haul=row.long_haul,
        )
        for row in defaults_df.itertuples(index=False)
    }

    lf_df = _read_table(root, "route_load_factors.csv", RouteLoadFactorSchema)
    route_load_factors: Dict[Tuple[str, str], RouteLoadFactor] = {}
    for row in lf_df.itertuples(index=False):
        route_load_factors[(row.origin, row.destination)] = RouteLoadFactor(
            origin=row.origin,
            destination=row.destination,
            load_factor=float(row.load_factor),
            peak_days=parse_peak_days(row.peak_days),
            is_leisure=bool(row.is_leisure),
        )

    durations_df = _read_table(root, "route_durations.csv", RouteDurationSchema)
    route_durations = {
        (row.origin, row.destination): int(row.minutes)
        for row in durations_df.itertuples(index=False)
    }

    distances_df = _read_table(root, "route_distances.csv", RouteDistanceSchema)
    route_distances = {
        (row.origin, row.destination): int(row.miles)
        for row in distances_df.itertuples(index=False)
    }

    airports_df = _read_table(root, "airports.csv", AirportSchema)
    airports = {
        row.iata: AirportInfo(
            iata=row.iata,
            icao=row.icao,
            timezone=row.timezone,
            is_hub=bool(row.is_hub),
        )
        for row in airports_df.itertuples(index=False)
    }

    operators_df = _read_table(root, "operators.csv", OperatorSchema)
    operators = {
        row.icao_prefix: Operator(
            icao_prefix=row.icao_prefix,
            iata_code=row.iata_code,
            name=row.name,
            branded_as=_optional_str(row.branded_as),
            is_cargo=bool(row.is_cargo),
        )
        for row in operators_df.itertuples(index=False)
    }

    logger.info(
        "Reference data loaded: %d carriers, %d aircraft types, %d routes, %d airports",
        len(carriers),
        len(aircraft_types),
        len(route_load_factors),
        len(airports),
    )

    return ReferenceData(
        carriers=carriers,
        aircraft_types=aircraft_types,
        aircraft_codes=aircraft_codes,
        aircraft_defaults=aircraft_defaults,
        route_load_factors=route_load_factors,
        route_durations=route_durations,
        airports=airports,
        operators=operators,
        route_distances=route_distances,
    )


@lru_cache(maxsize=1)
def get_reference_data() -> ReferenceData:
    """Packaged reference data, loaded once per process."""
    return load_reference_data()
