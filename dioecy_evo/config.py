"""Configuration system for dioecy-evo.

Hierarchical YAML configuration with deep-merge support:
  base.yaml → scenario override → command-line overrides

Sections map 1:1 to YAML top-level keys:
  model:   which variant and its biological parameters
  sweep:   parameter grid, starting state, generations, threshold
  output:  which artifacts to write and where
"""

from __future__ import annotations

import dataclasses
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from dioecy_evo.models import MODELS
from dioecy_evo.types import InvasionMode, ModelParameters


# ═══════════════════════════════════════════════════════════════════════
# CONFIGURATION DATACLASSES
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class ModelSection:
    """Model variant and biological parameters."""
    variant: int = 1          # 1 = single locus (6 genotypes), 2 = two loci (9 genotypes)
    h: float = 0.5            # Probability that an inconstant reproduces as a cosex
    S: float = 0.0            # Cosex selfing rate
    d: float = 0.0            # Inbreeding depression on selfed offspring
    V: float = 1.0            # YY viability (0 = "ancient", 1 = "recent" dioecy)
    PSatF: float = 0.0        # Pollen output saturating female ovules (0 = unlimited)
    ppY: float = 1.0          # Y-pollen viability (model 1 only)
    Q: float = 1.0            # Cosex relative pollen output (single-point runs)
    F: float = 1.0            # Cosex relative ovule output (single-point runs)

    def to_parameters(self) -> ModelParameters:
        """Immutable parameter value for the simulation engine."""
        return ModelParameters(
            h=self.h, S=self.S, d=self.d, V=self.V,
            PSatF=self.PSatF, ppY=self.ppY, Q=self.Q, F=self.F,
        )


@dataclass
class SweepSection:
    """Parameter grid and equilibrium settings."""
    subdivisions: int = 201        # Grid width = height (pixels)
    invasion: str = 'dioecy'       # 'dioecy' (invade inconstants) or 'pgd' (invade males)
    iterations: int = 10000        # Generations before equilibrium is assumed
    threshold: float = 0.01        # Frequency above which a sex class counts as present
    axes: str = 'QF'               # 'QF' (Q, F in [0, 1]) or 'Kk' (K, k in [0, limit])
    axis_limit: float = 4.0        # Maximum K and k for 'Kk' axes
    single_point: bool = False     # Evaluate only (Q, F) from the model section
    workers: int = 1               # Worker processes for the sweep (1 = serial)


@dataclass
class OutputSection:
    """Output control."""
    directory: str = '.'
    bitmap: bool = True            # Write the classification map as .bmp
    magnify: int = 1               # Pixels per grid cell in the bitmap
    text_grid: bool = False        # Tab-separated female frequencies (.txt)
    plot: bool = False             # Matplotlib phase diagram (.png)
    table: bool = False            # Per-cell results table (.csv)
    verbose: bool = True


@dataclass
class SimulationConfig:
    """Complete run configuration.

    Load from YAML via `load_config()`.
    """
    model: ModelSection = field(default_factory=ModelSection)
    sweep: SweepSection = field(default_factory=SweepSection)
    output: OutputSection = field(default_factory=OutputSection)


# ═══════════════════════════════════════════════════════════════════════
# YAML LOADING & MERGING
# ═══════════════════════════════════════════════════════════════════════

def deep_merge(base: Dict, override: Dict) -> Dict:
    """Recursively merge override into base. Modifies base in place.

    - Dict values are merged recursively
    - Non-dict values are replaced
    - Keys in override but not base are added

    Returns:
        The merged base dictionary.
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _dict_to_section(section_cls, data: Dict) -> Any:
    """Convert a dict to a dataclass, ignoring unknown keys."""
    valid_fields = {f.name for f in dataclasses.fields(section_cls)}
    filtered = {k: v for k, v in data.items() if k in valid_fields}
    return section_cls(**filtered)


_SECTIONS = {
    'model': ModelSection,
    'sweep': SweepSection,
    'output': OutputSection,
}


def config_from_dict(data: Optional[Dict]) -> SimulationConfig:
    """Build and validate a SimulationConfig from a (merged) dict."""
    data = data or {}
    sections = {}
    for key, cls in _SECTIONS.items():
        if key in data and isinstance(data[key], dict):
            sections[key] = _dict_to_section(cls, data[key])
        else:
            sections[key] = cls()
    config = SimulationConfig(**sections)
    validate_config(config)
    return config


def config_to_dict(config: SimulationConfig) -> Dict:
    """Plain-dict form of a config (YAML serialisable)."""
    return dataclasses.asdict(config)


def _check_unit_interval(name: str, value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must be in [0, 1], got {value}")


def validate_config(config: SimulationConfig) -> None:
    """Validate configuration constraints. Raises ValueError on failure.

    Checks:
      - Model variant exists
      - Probabilities (h, S, d, V, ppY) lie in [0, 1]
      - PSatF, Q, F are non-negative
      - Grid, iteration and output settings are usable
    """
    m = config.model
    if m.variant not in MODELS:
        raise ValueError(
            f"model.variant must be one of {sorted(MODELS)}, got {m.variant!r}"
        )
    for name in ('h', 'S', 'd', 'V', 'ppY'):
        _check_unit_interval(f"model.{name}", getattr(m, name))
    for name in ('PSatF', 'Q', 'F'):
        if getattr(m, name) < 0:
            raise ValueError(f"model.{name} must be >= 0, got {getattr(m, name)}")
    if m.variant == 2 and m.ppY != 1.0:
        warnings.warn(
            f"model.ppY={m.ppY} has no effect in model 2 (Y-pollen "
            f"viability is only part of model 1)",
            UserWarning,
            stacklevel=2,
        )

    s = config.sweep
    valid_invasions = {mode.value for mode in InvasionMode}
    if s.invasion not in valid_invasions:
        raise ValueError(
            f"sweep.invasion must be one of {valid_invasions}, "
            f"got '{s.invasion}'"
        )
    valid_axes = {'QF', 'Kk'}
    if s.axes not in valid_axes:
        raise ValueError(
            f"sweep.axes must be one of {valid_axes}, got '{s.axes}'"
        )
    if s.subdivisions < 2:
        raise ValueError(
            f"sweep.subdivisions must be >= 2, got {s.subdivisions}"
        )
    if s.iterations < 0:
        raise ValueError(f"sweep.iterations must be >= 0, got {s.iterations}")
    if s.threshold < 0:
        raise ValueError(f"sweep.threshold must be >= 0, got {s.threshold}")
    if s.axis_limit <= 0:
        raise ValueError(f"sweep.axis_limit must be positive, got {s.axis_limit}")
    if s.workers < 1:
        raise ValueError(f"sweep.workers must be >= 1, got {s.workers}")

    if config.output.magnify < 1:
        raise ValueError(
            f"output.magnify must be >= 1, got {config.output.magnify}"
        )


def load_config(
    base_path: Union[str, Path],
    scenario_path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict] = None,
) -> SimulationConfig:
    """Load and merge hierarchical YAML configuration.

    Merge order: base → scenario → overrides.
    Each layer overrides only the fields it specifies.

    Args:
        base_path: Path to base configuration YAML.
        scenario_path: Optional scenario override YAML.
        overrides: Optional dict of overrides (e.g. from the command line).

    Returns:
        Validated SimulationConfig.

    Raises:
        FileNotFoundError: If base_path doesn't exist.
        ValueError: If validation fails.
    """
    base_path = Path(base_path)
    if not base_path.exists():
        raise FileNotFoundError(f"Config file not found: {base_path}")

    with open(base_path) as f:
        config_dict = yaml.safe_load(f) or {}

    if scenario_path is not None:
        scenario_path = Path(scenario_path)
        if scenario_path.exists():
            with open(scenario_path) as f:
                scenario = yaml.safe_load(f) or {}
            deep_merge(config_dict, scenario)

    if overrides is not None:
        deep_merge(config_dict, overrides)

    return config_from_dict(config_dict)


def default_config() -> SimulationConfig:
    """Return a SimulationConfig with all default values."""
    config = SimulationConfig()
    validate_config(config)
    return config
