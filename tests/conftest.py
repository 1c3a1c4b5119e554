from pathlib import Path

import numpy as np
import pytest


def write_daq_file(path: Path, *, speed=1.5, fwd=10.0, aft=6.0, drag=500.0, n=2000, fs=200.0,
                   zeros=(0.0, 0.1, 0.2, -0.2, 0.05), cfs=(1.0, 2.0, 5.0, 5.0, 250.0)):
    """Tank DAQ export with constant channels in physical units ``speed/fwd/aft/drag``.

    Raw values are back-calculated from the zero offsets and calibration
    factors so the loader recovers the requested means.
    """
    lines = [f"# header line {i + 1}" for i in range(16)]
    lines.append("  ".join(f"{z:g}" for z in zeros))
    lines.append("  ".join(f"{c:g}" for c in cfs))
    lines += ["Channels", "Time Speed Fwd Aft Drag", "s V V V V", "-----"]
    time = np.arange(1, n + 1) / fs
    raw = [v / cf + z for v, z, cf in zip((speed, fwd, aft, drag), zeros[1:], cfs[1:])]
    for t in time:
        lines.append(f" {t:.5f} " + " ".join(f"{r:.9f}" for r in raw))
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n")
    return path


@pytest.fixture
def daq_file():
    return write_daq_file
