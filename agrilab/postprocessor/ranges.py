"""
Nutrient Plausibility Ranges.

Read-only table of plausible values per analysis type. Soil readings
are in %, ppm or cmol/kg; leaf readings are % composition.

The table is process-wide configuration: it is built once and exposed
through read-only mappings.
"""

from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from agrilab.model_inference.extraction_result import ValidationRange
from agrilab.utils.exceptions import ConfigurationError

RangeTable = Mapping[str, Mapping[str, ValidationRange]]

SOIL_RANGES: Dict[str, ValidationRange] = {
    "pH": ValidationRange(3.0, 9.0),
    "N": ValidationRange(0.01, 2.0),    # %
    "P": ValidationRange(1.0, 200.0),   # ppm
    "K": ValidationRange(0.05, 2.0),    # cmol/kg
    "Ca": ValidationRange(0.1, 20.0),   # cmol/kg
    "Mg": ValidationRange(0.05, 5.0),   # cmol/kg
}

LEAF_RANGES: Dict[str, ValidationRange] = {
    "N": ValidationRange(1.5, 4.0),
    "P": ValidationRange(0.1, 0.5),
    "K": ValidationRange(0.5, 2.5),
    "Ca": ValidationRange(0.2, 1.5),
    "Mg": ValidationRange(0.1, 0.8),
}


def freeze_ranges(table: Mapping[str, Mapping[str, ValidationRange]]) -> RangeTable:
    """Wrap a nested range table in read-only mappings."""
    return MappingProxyType({
        analysis_type: MappingProxyType(dict(ranges))
        for analysis_type, ranges in table.items()
    })


DEFAULT_VALIDATION_RANGES: RangeTable = freeze_ranges({
    "soil": SOIL_RANGES,
    "leaf": LEAF_RANGES,
})


def build_range_table(overrides: Optional[Mapping[str, Any]] = None) -> RangeTable:
    """
    Merge configured overrides over the default table.

    Args:
        overrides: {analysis_type: {parameter_key: [min, max]}}.

    Returns:
        Read-only range table.

    Raises:
        ConfigurationError: If an override is not a valid (min, max) pair.
    """
    if not overrides:
        return DEFAULT_VALIDATION_RANGES

    table = {name: dict(ranges) for name, ranges in DEFAULT_VALIDATION_RANGES.items()}

    for analysis_type, ranges in overrides.items():
        if analysis_type not in ("soil", "leaf"):
            raise ConfigurationError(
                f"validation.ranges.{analysis_type}",
                "analysis type must be 'soil' or 'leaf'"
            )
        for key, bounds in (ranges or {}).items():
            table[analysis_type][key] = _parse_bounds(f"validation.ranges.{analysis_type}.{key}", bounds)

    return freeze_ranges(table)


def _parse_bounds(config_key: str, bounds: Any) -> ValidationRange:
    try:
        low, high = (float(b) for b in bounds)
    except (TypeError, ValueError):
        raise ConfigurationError(config_key, f"expected [min, max], got {bounds!r}")
    if low > high:
        raise ConfigurationError(config_key, f"min {low} is greater than max {high}")
    return ValidationRange(low, high)
