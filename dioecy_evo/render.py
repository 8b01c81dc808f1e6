"""Text and bitmap output for sweep and single-point results.

  - write_bitmap:     24-bit uncompressed BMP, one pixel (or a magnified
                      block) per grid cell, coloured by EquilibriumState
  - write_text_grid:  tab-separated female frequency per cell, one line per
                      grid row, for external 3-D plotting (gnuplot)
  - format_*:         settings banner and single-point report

BMP layout: 14-byte file header + 40-byte info header, then pixel rows from
the bottom of the image upwards (grid row y = 0 first), each pixel stored
as (blue, green, red) and each row zero-padded to a multiple of 4 bytes.
"""

from __future__ import annotations

import struct
from pathlib import Path
from typing import Dict, List, Tuple, Union

import numpy as np

from dioecy_evo.config import SimulationConfig
from dioecy_evo.equilibrium import EquilibriumResult
from dioecy_evo.models import ModelStructure
from dioecy_evo.types import EquilibriumState, InvasionMode


STATE_COLORS: Dict[EquilibriumState, Tuple[int, int, int]] = {
    EquilibriumState.NONE: (0, 0, 0),        # black
    EquilibriumState.PGD:  (255, 127, 127),  # pink
    EquilibriumState.SSD:  (255, 255, 0),    # yellow
    EquilibriumState.DIO:  (127, 0, 255),    # purple
    EquilibriumState.PAD:  (180, 180, 255),  # pale blue
    EquilibriumState.INC:  (255, 255, 255),  # white
}

BMP_HEADER_SIZE = 54
BMP_INFO_SIZE = 40


def _palette_bgr() -> np.ndarray:
    palette = np.zeros((len(EquilibriumState), 3), dtype=np.uint8)
    for state, (r, g, b) in STATE_COLORS.items():
        palette[int(state)] = (b, g, r)
    return palette


def bitmap_bytes(states: np.ndarray, magnify: int = 1) -> bytes:
    """Encode a [y, x] classification map as a BMP file image."""
    states = np.asarray(states)
    if states.ndim != 2:
        raise ValueError(f"classification map must be 2-D, got shape {states.shape}")
    if magnify < 1:
        raise ValueError(f"magnify must be >= 1, got {magnify}")

    pixels = _palette_bgr()[states.astype(np.intp)]          # (rows, cols, 3)
    pixels = np.repeat(np.repeat(pixels, magnify, axis=0), magnify, axis=1)
    height, width = pixels.shape[:2]

    row_bytes = width * 3
    padding = (4 - row_bytes % 4) % 4
    rows = pixels.reshape(height, row_bytes)
    if padding:
        rows = np.hstack([rows, np.zeros((height, padding), dtype=np.uint8)])
    image = rows.tobytes()

    header = struct.pack(
        '<2sIIIIiiHHIIiiII',
        b'BM',
        BMP_HEADER_SIZE + len(image),   # file size
        0,                              # reserved
        BMP_HEADER_SIZE,                # pixel data offset
        BMP_INFO_SIZE,
        width,
        height,                         # positive: rows stored bottom-up
        1,                              # planes
        24,                             # bits per pixel
        0,                              # no compression
        len(image),
        0, 0,                           # pixels per metre
        0, 0,                           # palette entries
    )
    return header + image


def write_bitmap(states: np.ndarray, path: Union[str, Path], magnify: int = 1) -> Path:
    """Write a classification map as a .bmp file. Raises OSError on failure."""
    path = Path(path)
    with open(path, 'wb') as f:
        f.write(bitmap_bytes(states, magnify))
    return path


def write_text_grid(values: np.ndarray, path: Union[str, Path]) -> Path:
    """Write a [y, x] map as tab-separated text, one line per row."""
    path = Path(path)
    np.savetxt(path, np.asarray(values), fmt='%f', delimiter='\t')
    return path


# ═══════════════════════════════════════════════════════════════════════
# TEXT REPORTS
# ═══════════════════════════════════════════════════════════════════════


def _g(value: float) -> str:
    """printf-style %G formatting."""
    return f"{value:G}"


def _reciprocal(value: float) -> float:
    return float('inf') if value == 0 else 1.0 / value


def output_stem(config: SimulationConfig) -> str:
    """Base name shared by every artifact of a run."""
    m = config.model
    start = InvasionMode(config.sweep.invasion).start_label
    return (
        f"model{m.variant}_start{start}_V{_g(m.V)}_S{_g(m.S)}_d{_g(m.d)}"
        f"_h{_g(m.h)}_PSatF{_g(m.PSatF)}_ppY{_g(m.ppY)}"
    )


def format_settings(config: SimulationConfig) -> str:
    """Banner listing the parameters of a run."""
    m, s = config.model, config.sweep
    lines: List[str] = ['', f"Model {m.variant}", '']
    if s.single_point:
        pi, omega = _reciprocal(m.Q), _reciprocal(m.F)
        lines.append(f"Q = {_g(m.Q)} (K = {_g(pi - 1)}, pi = {_g(pi)})")
        lines.append(f"F = {_g(m.F)} (k = {_g(omega - 1)}, \"omega\" = {_g(omega)})")
        lines.append('')
    lines.append(f"h = {_g(m.h)}")
    lines.append(f"Selfing rate = {_g(m.S)}")
    lines.append(f"Inbreeding depression = {_g(m.d)}")
    lines.append(f"YY viability = {_g(m.V)} (YY penalty = {_g(1 - m.V)})")
    lines.append(f"PSatF = {_g(m.PSatF)}")
    if m.variant == 1:
        lines.append(f"ppY = {_g(m.ppY)}")
    lines.append('')
    lines.append(f"Iterations = {s.iterations}")
    lines.append('')
    if not s.single_point:
        top = _g(s.axis_limit) if s.axes == 'Kk' else '1'
        y_name, x_name = ('k', 'K') if s.axes == 'Kk' else ('F', 'Q')
        lines.append(
            f"Sweeping {s.subdivisions * s.subdivisions} {x_name} and {y_name} "
            f"combinations; this may take a while."
        )
        lines.append('')
        lines.append(f"                       {top} |")
        lines.append(f"Output format:       {y_name}   |")
        lines.append("                       0 |")
        lines.append("                          -----")
        lines.append(f"                          0   {top}")
        lines.append(f"                            {x_name}")
        lines.append('')
    return '\n'.join(lines)


def format_single_point(result: EquilibriumResult, model: ModelStructure) -> str:
    """Aggregates, per-genotype frequencies and category of one population."""
    female = float(np.asarray(result.female).reshape(-1)[0])
    male = float(np.asarray(result.male).reshape(-1)[0])
    inconstant = float(np.asarray(result.inconstant).reshape(-1)[0])
    record = result.genotype_record(model)

    lines = [
        "Females       Males         Inconstants",
        f"{female:.6f}      {male:.6f}      {inconstant:.6f}",
        '',
        'Genotype frequencies:',
        '',
        '      ' + ''.join(f"{label:<10}" for label in record),
        '      ' + '  '.join(f"{value:.6f}" for value in record.values()),
        '',
        f"Final state: {result.category.label}",
    ]
    return '\n'.join(lines)
