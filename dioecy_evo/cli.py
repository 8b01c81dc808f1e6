#!/usr/bin/env python3
"""Command-line entry point: sweep the (Q, F) plane or evaluate one point.

Examples:
    # Model 1, default parameters, 201 x 201 bitmap
    dioecy-evo

    # Model 2 with selfing and inbreeding depression, start from PGD
    dioecy-evo --model 2 -S 0.3 -d 0.5 --pgd

    # One point, given as K and k
    dioecy-evo --onerun -K 0.5 -k 1.5

    # Legacy K/k axes from 0 to 4 plus a gnuplot text grid
    dioecy-evo --oldformat --oldformatlimit 4 --gnuplot

When the same parameter is given several ways (e.g. -Q then -K), the last
one on the command line wins. ``-h`` sets the inconstancy parameter h;
use ``--help`` for usage.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Dict, List, Optional

from dioecy_evo import __version__
from dioecy_evo.config import SimulationConfig, config_from_dict, load_config
from dioecy_evo.models import get_model
from dioecy_evo.render import (
    format_settings,
    format_single_point,
    output_stem,
    write_bitmap,
    write_text_grid,
)
from dioecy_evo.sweep import SweepResult, run_single_point, run_sweep
from dioecy_evo.utils import timer


# Destination → config section for every overridable option
_FIELD_SECTIONS = {
    'variant': 'model',
    'h': 'model',
    'S': 'model',
    'd': 'model',
    'V': 'model',
    'PSatF': 'model',
    'ppY': 'model',
    'Q': 'model',
    'F': 'model',
    'subdivisions': 'sweep',
    'invasion': 'sweep',
    'iterations': 'sweep',
    'threshold': 'sweep',
    'axes': 'sweep',
    'axis_limit': 'sweep',
    'single_point': 'sweep',
    'workers': 'sweep',
    'directory': 'output',
    'bitmap': 'output',
    'magnify': 'output',
    'text_grid': 'output',
    'plot': 'output',
    'table': 'output',
    'verbose': 'output',
}


def _from_k(text: str) -> float:
    """K (or k) → Q (or F) = 1 / (1 + K)."""
    value = float(text)
    if value == -1.0:
        raise argparse.ArgumentTypeError("K and k must not be -1")
    return 1.0 / (1.0 + value)


def _from_reciprocal(text: str) -> float:
    """pi (or omega) → Q (or F) = 1 / pi."""
    value = float(text)
    if value == 0.0:
        raise argparse.ArgumentTypeError("pi and omega must be non-zero")
    return 1.0 / value


def _complement(text: str) -> float:
    """YY penalty → viability V = 1 - penalty."""
    return 1.0 - float(text)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='dioecy-evo',
        description="Deterministic evolution of dioecy, gynodioecy and "
                    "sex inconstancy over a grid of cosex allocations.",
        add_help=False,
        allow_abbrev=False,
        argument_default=argparse.SUPPRESS,
    )
    parser.add_argument('--help', action='help',
                        help="Show this message and exit")
    parser.add_argument('--version', action='version',
                        version=f"%(prog)s {__version__}")
    parser.add_argument('--config', type=str,
                        help="Base YAML configuration file")
    parser.add_argument('--scenario', type=str,
                        help="YAML file merged over the base configuration")
    parser.add_argument('--model', dest='variant', type=int, choices=[1, 2],
                        help="Model variant: 1 (single locus) or 2 (two loci)")

    bio = parser.add_argument_group('model parameters')
    bio.add_argument('-H', '-h', '--inconstanth', dest='h', type=float,
                     help="Probability that an inconstant reproduces as a cosex")
    bio.add_argument('-S', '-s', '--selfing', dest='S', type=float,
                     help="Cosex selfing rate")
    bio.add_argument('-D', '-d', '--depression', dest='d', type=float,
                     help="Inbreeding depression")
    bio.add_argument('-V', '-v', dest='V', type=float,
                     help="YY viability")
    bio.add_argument('--yypenalty', dest='V', type=_complement,
                     help="YY penalty (sets V = 1 - value)")
    bio.add_argument('--ancient', '--ancientdioecy', dest='V',
                     action='store_const', const=0.0,
                     help="Ancient dioecy (V = 0)")
    bio.add_argument('--recent', '--recentdioecy', dest='V',
                     action='store_const', const=1.0,
                     help="Recent dioecy (V = 1)")
    bio.add_argument('--PSatF', dest='PSatF', type=float,
                     help="Pollen output saturating female ovules (0 = no limitation)")
    bio.add_argument('--ppY', dest='ppY', type=float,
                     help="Y-pollen viability (model 1 only)")
    bio.add_argument('-Q', '-q', dest='Q', type=float,
                     help="Cosex pollen output relative to a male (single point)")
    bio.add_argument('-K', '--malek', dest='Q', type=_from_k,
                     help="Sets Q = 1 / (1 + K)")
    bio.add_argument('--pi', dest='Q', type=_from_reciprocal,
                     help="Sets Q = 1 / pi")
    bio.add_argument('-F', '-f', dest='F', type=float,
                     help="Cosex ovule output relative to a female (single point)")
    bio.add_argument('-k', '--femalek', dest='F', type=_from_k,
                     help="Sets F = 1 / (1 + k)")
    bio.add_argument('--omega', dest='F', type=_from_reciprocal,
                     help="Sets F = 1 / omega")

    sweep = parser.add_argument_group('sweep')
    sweep.add_argument('--onerun', dest='single_point', action='store_const',
                       const=True, help="Evaluate only the given Q and F")
    sweep.add_argument('--pgd', dest='invasion', action='store_const',
                       const='pgd',
                       help="Start from pseudo-gynodioecy and invade males")
    sweep.add_argument('--endpoint', '--iterations', dest='iterations', type=int,
                       help="Generations before equilibrium is assumed")
    sweep.add_argument('--threshold', dest='threshold', type=float,
                       help="Frequency above which a sex class counts as present")
    sweep.add_argument('--subdivisions', dest='subdivisions', type=int,
                       help="Grid width and height")
    sweep.add_argument('--oldformat', dest='axes', action='store_const',
                       const='Kk', help="Use K and k axes instead of Q and F")
    sweep.add_argument('--oldformatlimit', dest='axis_limit', type=float,
                       help="Maximum K and k on --oldformat axes")
    sweep.add_argument('--workers', dest='workers', type=int,
                       help="Worker processes for the sweep")

    out = parser.add_argument_group('output')
    out.add_argument('--outdir', dest='directory', type=str,
                     help="Directory for output files")
    out.add_argument('--gnuplot', dest='text_grid', action='store_const',
                     const=True, help="Also write female frequencies as text")
    out.add_argument('--no-bitmap', dest='bitmap', action='store_const',
                     const=False, help="Do not write the .bmp map")
    out.add_argument('--magnify', dest='magnify', type=int,
                     help="Bitmap pixels per grid cell")
    out.add_argument('--plot', dest='plot', action='store_const', const=True,
                     help="Also write a .png phase diagram")
    out.add_argument('--csv', dest='table', action='store_const', const=True,
                     help="Also write a per-cell .csv table")
    out.add_argument('--quiet', dest='verbose', action='store_const',
                     const=False, help="Only print results")
    return parser


def overrides_from_args(args: argparse.Namespace) -> Dict[str, Dict]:
    """Nested override dict holding only the options given on the command line."""
    overrides: Dict[str, Dict] = {}
    for dest, value in vars(args).items():
        section = _FIELD_SECTIONS.get(dest)
        if section is not None:
            overrides.setdefault(section, {})[dest] = value
    return overrides


def build_config(args: argparse.Namespace) -> SimulationConfig:
    overrides = overrides_from_args(args)
    config_path = getattr(args, 'config', None)
    scenario_path = getattr(args, 'scenario', None)
    if scenario_path is not None and not Path(scenario_path).exists():
        raise FileNotFoundError(f"Scenario file not found: {scenario_path}")
    if config_path is None:
        if scenario_path is None:
            return config_from_dict(overrides)
        # A lone scenario file acts as the base
        config_path, scenario_path = scenario_path, None
    return load_config(config_path, scenario_path, overrides)


def write_outputs(result: SweepResult, directory: Path) -> List[Path]:
    """Write every artifact enabled in the output section."""
    out = result.config.output
    stem = output_stem(result.config)
    directory.mkdir(parents=True, exist_ok=True)
    written = []
    if out.bitmap:
        written.append(write_bitmap(result.states, directory / f"{stem}.bmp", out.magnify))
    if out.text_grid:
        written.append(write_text_grid(result.female, directory / f"{stem}.txt"))
    if out.table:
        path = directory / f"{stem}.csv"
        result.to_dataframe().to_csv(path, index=False)
        written.append(path)
    if out.plot:
        from dioecy_evo.viz import plot_phase_diagram

        path = directory / f"{stem}.png"
        plot_phase_diagram(result, save_path=path)
        written.append(path)
    return written


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = build_config(args)
    except (ValueError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    verbose = config.output.verbose
    if verbose:
        print(format_settings(config))

    if config.sweep.single_point:
        result = run_single_point(config)
        print(format_single_point(result, get_model(config.model.variant)))
        return 0

    try:
        with timer("sweep", verbose):
            result = run_sweep(config)
        written = write_outputs(result, Path(config.output.directory))
    except MemoryError:
        print("Out of memory!", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Failed to create output file: {e}", file=sys.stderr)
        return 1

    if verbose:
        counts = result.category_counts()
        print("Cells per state: " + ", ".join(
            f"{name}={count}" for name, count in counts.items() if count
        ))
    for path in written:
        print(f"Saved {path}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
