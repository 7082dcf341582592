"""
Robust Estimation Example
=========================
"""
import tempfile
from pathlib import Path

import numpy as np
from factor_engine import (
    CrossSection,
    CrossSectionalEstimator,
    EstimatorConfig,
    Panel,
    load_results,
    save_results,
    simulate_panel,
)


def main(n_dates=10, n_assets=60, seed=7, output_dir=None, **kwargs):
    print("=" * 70)
    print("Robust Estimation: winsorization and skipped dates")
    print("=" * 70)

    rng = np.random.default_rng(seed)
    truth = simulate_panel(
        n_dates=n_dates,
        n_assets=n_assets,
        sector_names=["cyclical", "defensive", "growth"],
        style_names=["momentum"],
        rng=rng,
        idio_vol=0.01,
    )
    cross_sections = list(truth.panel)

    # 1. A fat-finger print on the first date
    first = cross_sections[0]
    first.returns[0] = 5.0

    # 2. A date with too few names to identify 1 + 2 + 1 parameters
    thin = CrossSection(
        date="thin-day",
        asset_ids=first.asset_ids[:3],
        returns=first.returns[:3],
        weights=first.weights[:3],
        sector_exposures=first.sector_exposures[:3],
        style_exposures=first.style_exposures[:3],
        sector_names=first.sector_names,
        style_names=first.style_names,
    )

    # 3. A date where every asset has zero weight: singular design
    dead = CrossSection(
        date="halted-day",
        asset_ids=first.asset_ids,
        returns=first.returns,
        weights=np.zeros(n_assets),
        sector_exposures=first.sector_exposures,
        style_exposures=first.style_exposures,
        sector_names=first.sector_names,
        style_names=first.style_names,
    )

    panel = Panel(cross_sections[:1] + [thin, dead] + cross_sections[1:])

    config = EstimatorConfig(winsor_percentile=0.05, max_workers=4)
    result = CrossSectionalEstimator(config).estimate(panel)

    print(f"\nCommitted: {len(result.committed_dates)}  Skipped: {len(result.skipped_dates)}")
    for outcome in result.outcomes:
        if not outcome.is_committed:
            print(f"  {outcome.date}: {outcome.reason}")

    # 4. Persist and reload
    out_dir = Path(output_dir) if output_dir is not None else Path(tempfile.mkdtemp())
    path = out_dir / "factor_returns.npz"
    save_results(result, path)
    reloaded = load_results(path)
    print(f"\nSaved {len(reloaded.factor_returns)} factor returns to {path}")

    print("\n" + "=" * 70)
    print("Robust estimation complete!")
    print("=" * 70)

    return result, reloaded


if __name__ == "__main__":
    main()
