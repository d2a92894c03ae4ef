#!/usr/bin/env python3
"""
Launch envelope table for a ground-launched interceptor.

Sweeps horizontal range at a fixed target height and prints the direct and
lofted launch angles with their times of flight, marking ranges outside the
envelope.
"""

import argparse
import sys
from pathlib import Path

import numpy as np

# Add project root to path for proper imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from interceptor.errors import UnreachableTargetError
from interceptor.physics import Vector3D
from interceptor.trajectory import max_ballistic_range, solve_launch


def envelope_rows(speed: float, height: float, ranges: np.ndarray) -> list[tuple]:
    """(range, direct angle, direct tof, lofted angle, lofted tof) per range; None when unreachable."""
    launcher = Vector3D(0.0, 0.0, 0.0)
    rows = []
    for horizontal_range in ranges:
        target = Vector3D(float(horizontal_range), height, 0.0)
        try:
            direct = solve_launch(launcher, target, speed)
            lofted = solve_launch(launcher, target, speed, prefer_lofted=True)
        except UnreachableTargetError:
            rows.append((horizontal_range, None, None, None, None))
            continue
        rows.append((
            horizontal_range,
            direct.angle_deg,
            direct.time_of_flight(horizontal_range),
            lofted.angle_deg,
            lofted.time_of_flight(horizontal_range),
        ))
    return rows


def main():
    parser = argparse.ArgumentParser(
        description="Print the ballistic launch envelope of an interceptor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python scripts/launch_envelope.py --speed 150
    python scripts/launch_envelope.py --speed 300 --height 500 --steps 30
        """,
    )
    parser.add_argument("--speed", type=float, default=150.0, help="Launch speed in m/s (default: 150)")
    parser.add_argument("--height", type=float, default=0.0, help="Target height in m (default: 0)")
    parser.add_argument("--max-range", type=float, default=None,
                        help="Largest range to sweep in m (default: 1.1 * v^2/g)")
    parser.add_argument("--steps", type=int, default=20, help="Number of ranges (default: 20)")
    args = parser.parse_args()

    max_range = args.max_range if args.max_range is not None else 1.1 * max_ballistic_range(args.speed)
    ranges = np.linspace(max_range / args.steps, max_range, args.steps)

    print("=" * 64)
    print(f"LAUNCH ENVELOPE  speed={args.speed:.0f} m/s  target height={args.height:.0f} m")
    print(f"Flat-ground max range: {max_ballistic_range(args.speed):.0f} m")
    print("=" * 64)
    print(f"{'Range (m)':>10} {'Direct':>9} {'TOF (s)':>8} {'Lofted':>9} {'TOF (s)':>8}")
    print("-" * 64)

    for horizontal_range, direct_deg, direct_tof, lofted_deg, lofted_tof in envelope_rows(
        args.speed, args.height, ranges
    ):
        if direct_deg is None:
            print(f"{horizontal_range:>10.0f} {'out of envelope':>36}")
            continue
        print(f"{horizontal_range:>10.0f} {direct_deg:>8.2f}° {direct_tof:>8.2f} "
              f"{lofted_deg:>8.2f}° {lofted_tof:>8.2f}")


if __name__ == "__main__":
    main()
