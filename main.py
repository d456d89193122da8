#!/usr/bin/env python3
"""
EchoSense - Gesture and breathing sensing from acoustic ranging

Runs the processing pipeline against a simulated ranging engine and prints
a live readout.

Usage:
    python main.py gesture          # Approach/retreat gesture readout
    python main.py breath           # Breathing rate readout
    python main.py record           # Log a session and export it as CSV
    python main.py diagnose         # Check stack and tick budget

License: MIT
"""

import argparse
import logging
import sys
import time

from echosense import Config
from echosense.diagnostic import run_all_diagnostics
from echosense.driver import SamplingDriver
from echosense.ranging import SimulatedRangingEngine
from echosense.settings import CalibrationParams, MemorySettingsStore
from echosense.ui import ConsoleUI


def make_settings(args) -> MemorySettingsStore:
    """Seed a settings store from command-line calibration options."""
    settings = MemorySettingsStore()
    CalibrationParams(
        base_sensitivity=args.base_sensitivity,
        median_multiplier=args.median_multiplier,
        invert_gesture=args.invert,
    ).to_store(settings)
    return settings


def run_session(driver: SamplingDriver, duration: float):
    """Run until duration elapses (0 = until Ctrl+C)."""
    if not driver.start():
        print("Failed to start sampling")
        sys.exit(1)

    try:
        if duration > 0:
            time.sleep(duration)
        else:
            while True:
                time.sleep(0.5)
    except KeyboardInterrupt:
        print("\n\nStopping...")
    finally:
        driver.stop()
        print()


def cmd_gesture(args):
    """Gesture readout mode."""
    config = Config(sample_interval=args.interval)

    print("\n" + "=" * 60)
    print("  EchoSense - Gesture Detection")
    print("=" * 60)
    print(f"\nBase sensitivity: {args.base_sensitivity}")
    print(f"Median multiplier: {args.median_multiplier}")
    print("\nSimulated hand strokes toward and away from the device.")
    print("Press Ctrl+C to exit.\n")

    engine = SimulatedRangingEngine(pattern="hand", amplitude=args.amplitude,
                                    stroke_sec=args.stroke, noise_std=args.noise,
                                    seed=args.seed)
    driver = SamplingDriver(engine, make_settings(args), config)
    driver.subscribe(ConsoleUI())

    run_session(driver, args.duration)


def cmd_breath(args):
    """Breath rate readout mode."""
    config = Config(sample_interval=args.interval, breath_eval_every=args.eval_every)

    print("\n" + "=" * 60)
    print("  EchoSense - Breathing Rate")
    print("=" * 60)
    print(f"\nSimulated breathing at {args.bpm:.1f} breaths/min.")
    print(f"First estimate after ~{config.breath_min_samples * config.sample_interval:.0f}s, "
          f"settles within ~{config.breath_window_sec:.0f}s.")
    print("Press Ctrl+C to exit.\n")

    engine = SimulatedRangingEngine(pattern="breathing", amplitude=args.amplitude,
                                    bpm=args.bpm, noise_std=args.noise, seed=args.seed)
    driver = SamplingDriver(engine, make_settings(args), config)
    driver.set_breath_mode(True)
    driver.subscribe(ConsoleUI())

    run_session(driver, args.duration)

    latest = driver.latest
    if latest is not None:
        print(f"Final estimate: {latest.breath_rate:.1f} breaths/min "
              f"(quality {latest.breath_quality:.2f})")


def cmd_record(args):
    """Record a session and export the log."""
    config = Config(sample_interval=args.interval)
    if args.export_dir:
        config.export_dir = args.export_dir

    print("\n" + "=" * 60)
    print("  EchoSense - Recording")
    print("=" * 60)
    print(f"\nRecording {args.duration:.0f}s of "
          f"{'breathing' if args.breath else 'hand strokes'}...")

    pattern = "breathing" if args.breath else "hand"
    engine = SimulatedRangingEngine(pattern=pattern, amplitude=args.amplitude,
                                    noise_std=args.noise, seed=args.seed)
    driver = SamplingDriver(engine, make_settings(args), config)
    driver.set_breath_mode(args.breath)
    driver.set_logging(True)

    run_session(driver, args.duration)

    path = driver.export_log(args.export_dir or None)
    if path is None:
        print("❌ Export failed - no file written")
        sys.exit(1)
    print(f"✓ Log saved to {path} ({len(driver.pipeline.log)} records)")


def cmd_diagnose(args):
    """Run diagnostics."""
    ok = run_all_diagnostics(Config(sample_interval=args.interval))
    sys.exit(0 if ok else 1)


def main():
    parser = argparse.ArgumentParser(
        description="EchoSense - Gesture and breathing sensing from acoustic ranging",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python main.py gesture                       # Gesture readout
    python main.py gesture --invert              # Flip approach/retreat
    python main.py breath --bpm 12               # Breathing at 12 /min
    python main.py record --duration 30          # Export a 30s CSV log
    python main.py diagnose                      # Check tick budget
        """
    )

    subparsers = parser.add_subparsers(dest='command', help='Command')

    # Common arguments
    def add_common_args(p):
        p.add_argument('--interval', type=float, default=0.02,
                      help='Tick period in seconds (default: 0.02)')
        p.add_argument('--base-sensitivity', type=float, default=0.001,
                      help='Threshold floor (default: 0.001)')
        p.add_argument('--median-multiplier', type=float, default=1.0,
                      help='Median |v| multiplier (default: 1.0)')
        p.add_argument('--invert', action='store_true',
                      help='Invert gesture direction')
        p.add_argument('--amplitude', type=float, default=0.08,
                      help='Simulated motion amplitude (default: 0.08)')
        p.add_argument('--noise', type=float, default=0.0005,
                      help='Simulated noise std (default: 0.0005)')
        p.add_argument('--seed', type=int, default=None,
                      help='Random seed for simulated noise')
        p.add_argument('--duration', type=float, default=0,
                      help='Seconds to run, 0 = until Ctrl+C (default: 0)')
        p.add_argument('--verbose', '-v', action='store_true',
                      help='Debug logging')

    # Gesture command
    p_gesture = subparsers.add_parser('gesture', help='Gesture readout')
    add_common_args(p_gesture)
    p_gesture.add_argument('--stroke', type=float, default=0.6,
                          help='Simulated stroke duration in seconds (default: 0.6)')

    # Breath command
    p_breath = subparsers.add_parser('breath', help='Breathing rate readout')
    add_common_args(p_breath)
    p_breath.add_argument('--bpm', type=float, default=15.0,
                         help='Simulated breathing rate (default: 15)')
    p_breath.add_argument('--eval-every', type=int, default=1,
                         help='Re-evaluate breath rate every N ticks (default: 1)')
    p_breath.set_defaults(amplitude=0.005)

    # Record command
    p_record = subparsers.add_parser('record', help='Record and export a CSV log')
    add_common_args(p_record)
    p_record.add_argument('--breath', action='store_true',
                         help='Record in breath mode')
    p_record.add_argument('--export-dir', type=str, default=None,
                         help='Export directory (default: system temp dir)')
    p_record.set_defaults(duration=10.0)

    # Diagnose command
    p_diag = subparsers.add_parser('diagnose', help='Check stack and tick budget')
    p_diag.add_argument('--interval', type=float, default=0.02,
                       help='Tick period in seconds (default: 0.02)')
    p_diag.add_argument('--verbose', '-v', action='store_true',
                       help='Debug logging')

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    # Dispatch
    commands = {
        'gesture': cmd_gesture,
        'breath': cmd_breath,
        'record': cmd_record,
        'diagnose': cmd_diagnose,
    }

    commands[args.command](args)


if __name__ == "__main__":
    main()
