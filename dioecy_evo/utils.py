"""Utility functions for dioecy-evo."""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Dict, Generator


@contextmanager
def timer(label: str = "", verbose: bool = True) -> Generator[Dict[str, float], None, None]:
    """Context-manager timer.

    Yields a dict whose ``'elapsed'`` entry is filled in on exit; prints the
    elapsed time when ``verbose``.
    """
    record = {'elapsed': 0.0}
    start = time.perf_counter()
    try:
        yield record
    finally:
        record['elapsed'] = time.perf_counter() - start
        if verbose:
            if label:
                print(f"[{label}] {record['elapsed']:.3f}s")
            else:
                print(f"Elapsed: {record['elapsed']:.3f}s")
