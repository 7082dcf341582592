"""
Runnable factor_engine walkthroughs.

    $ python -m examples.estimate_synthetic
    $ python -m examples.robust_estimation

Each module exposes ``main(**overrides)``; ``run_example`` calls it by name.
"""

import importlib

EXAMPLES = {
    "estimate_synthetic": "recover known factor returns from a simulated panel",
    "robust_estimation": "winsorize outliers, skip degenerate dates, save to NPZ",
}


def list_examples():
    """Example names mapped to one-line summaries."""
    return dict(EXAMPLES)


def run_example(name, **overrides):
    """Run ``examples.<name>.main(**overrides)`` and return its result."""
    if name not in EXAMPLES:
        raise ValueError(f"Unknown example '{name}'. Choose from: {sorted(EXAMPLES)}")
    return importlib.import_module(f"examples.{name}").main(**overrides)
