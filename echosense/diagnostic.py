"""
EchoSense Diagnostic Tool

Quick checks to verify the numeric stack and the per-tick time budget.
Run this first to make sure everything works.
"""

import time
from dataclasses import replace
from typing import Dict, Optional

import numpy as np

from .breath import BreathEstimator
from .config import Config
from .driver import SamplingDriver
from .ranging import SimulatedRangingEngine
from .settings import MemorySettingsStore


def check_imports():
    """Check all required imports."""
    print("=" * 50)
    print("1. CHECKING IMPORTS")
    print("=" * 50)

    checks = []

    try:
        import numpy
        checks.append(("numpy", f"✅ {numpy.__version__}"))
    except ImportError as e:
        checks.append(("numpy", f"❌ {e}"))

    try:
        import scipy
        checks.append(("scipy", f"✅ {scipy.__version__}"))
    except ImportError as e:
        checks.append(("scipy", f"❌ {e}"))

    for name, status in checks:
        print(f"  {name}: {status}")

    return all("✅" in s for _, s in checks)


def time_breath_estimator(config: Config, repeats: int = 20) -> Dict[str, float]:
    """
    Time one autocorrelation over a full breath window per method.

    Returns:
        Mean milliseconds per estimate, keyed by correlation method
    """
    n = config.breath_window_samples
    t = np.arange(n) * config.sample_interval
    window = 0.3 + 0.005 * np.sin(2 * np.pi * 0.25 * t)

    timings = {}
    for method in ("direct", "fft"):
        cfg = replace(config, correlation_method=method, breath_eval_every=n)
        estimator = BreathEstimator(cfg)
        for x in window:
            estimator.update(float(x))

        started = time.perf_counter()
        for _ in range(repeats):
            estimator.estimate()
        timings[method] = (time.perf_counter() - started) / repeats * 1000

    return timings


def check_tick_budget(config: Config):
    """Check the breath estimator fits inside one tick."""
    print("\n" + "=" * 50)
    print("2. TICK BUDGET")
    print("=" * 50)

    budget_ms = config.sample_interval * 1000
    timings = time_breath_estimator(config)

    print(f"  Tick period: {budget_ms:.1f} ms, window: {config.breath_window_samples} samples")
    for method, ms in timings.items():
        marker = "✅" if ms < budget_ms * 0.5 else ("⚠️ " if ms < budget_ms else "❌")
        print(f"  {method:>6}: {ms:7.3f} ms per estimate {marker}")

    if min(timings.values()) >= budget_ms:
        print("  Consider a larger breath_eval_every to decimate re-evaluation")
        return False
    return True


def check_simulated_session(config: Config, duration: float = 1.0):
    """Run the driver against a simulated engine for a short while."""
    print("\n" + "=" * 50)
    print("3. SIMULATED SESSION")
    print("=" * 50)

    engine = SimulatedRangingEngine(pattern="hand", noise_std=0.0005, seed=0)
    driver = SamplingDriver(engine, MemorySettingsStore(), config)

    labels = set()
    driver.subscribe(lambda snap: labels.add(snap.gesture_label))

    if not driver.start():
        print("  ❌ Driver failed to start")
        return False
    time.sleep(duration)
    driver.stop()

    stats = driver.get_statistics()
    expected = duration * config.tick_rate
    print(f"  Ticks: {stats['tick_count']} (expected ~{expected:.0f})")
    print(f"  Overruns: {stats['overrun_count']}, skipped slots: {stats['skipped_count']}")
    print(f"  Labels seen: {', '.join(sorted(l for l in labels if l)) or '-'}")

    ok = stats["tick_count"] >= expected * 0.5
    print("  ✅ Sampling OK" if ok else "  ❌ Too few ticks - machine too slow or overloaded")
    return ok


def run_all_diagnostics(config: Optional[Config] = None):
    """Run all diagnostic tests."""
    config = config or Config()

    print("\n" + "🔊 " * 20)
    print("   ECHOSENSE DIAGNOSTIC")
    print("🔊 " * 20)

    results = []
    results.append(("Imports", check_imports()))
    results.append(("Tick Budget", check_tick_budget(config)))
    results.append(("Simulated Session", check_simulated_session(config)))

    # Summary
    print("\n" + "=" * 50)
    print("SUMMARY")
    print("=" * 50)

    all_ok = True
    for name, ok in results:
        status = "✅" if ok else "❌"
        print(f"  {name}: {status}")
        if not ok:
            all_ok = False

    print("\n" + "-" * 50)
    if all_ok:
        print("🎉 All checks passed!")
        print("\nNext steps:")
        print("  1. python main.py gesture     # Gesture readout")
        print("  2. python main.py breath      # Breath rate readout")
        print("  3. python main.py record      # Record and export a CSV log")
    else:
        print("⚠️  Some checks failed. See above.")

    return all_ok


if __name__ == "__main__":  # python -m echosense.diagnostic
    run_all_diagnostics()
