"""
factor_engine - Cross-Sectional Factor Return Estimation
"""

__version__ = "0.1.0"

# =============================================================================
# ERRORS
# =============================================================================
from .errors import (
    FactorEngineError,
    DimensionMismatch,
    EmptyData,
    InvalidPercentile,
    SingularMatrix,
    InsufficientData,
    InvalidConfiguration,
)

# =============================================================================
# CORE TYPES
# =============================================================================
from .types import (
    CrossSection,
    Panel,
    FactorKind,
    FactorReturnRecord,
    ResidualRecord,
    OutcomeStatus,
    DateOutcome,
    EstimatorConfig,
    EstimationResult,
    WLSResult,
    ConstrainedWLSResult,
    FactorContribution,
    AttributionResult,
)

# =============================================================================
# LINEAR ALGEBRA
# =============================================================================
from .linalg import (
    solve_linear_system,
    weighted_least_squares,
    SINGULARITY_THRESHOLD,
)

# =============================================================================
# CONSTRAINED REGRESSION
# =============================================================================
from .regression import (
    build_constrained_design,
    constrained_wls,
    ConstrainedFactorRegression,
)

# =============================================================================
# WINSORIZATION
# =============================================================================
from .winsorize import (
    winsorize,
    winsorize_bounds,
    Winsorizer,
)

# =============================================================================
# PANEL ESTIMATION
# =============================================================================
from .estimator import (
    CrossSectionalEstimator,
    estimate_factor_returns,
)

# =============================================================================
# SIMULATION
# =============================================================================
from .simulation import (
    PanelSimulator,
    SimulatedPanel,
    simulate_panel,
)

# =============================================================================
# I/O
# =============================================================================
from .io import (
    save_results,
    load_results,
    ResultFormat,
)

# =============================================================================
# ATTRIBUTION
# =============================================================================
from .attribution import compute_attribution

# PUBLIC API
# =============================================================================
__all__ = [
    "__version__",
    "FactorEngineError",
    "DimensionMismatch",
    "EmptyData",
    "InvalidPercentile",
    "SingularMatrix",
    "InsufficientData",
    "InvalidConfiguration",
    "CrossSection",
    "Panel",
    "FactorKind",
    "FactorReturnRecord",
    "ResidualRecord",
    "OutcomeStatus",
    "DateOutcome",
    "EstimatorConfig",
    "EstimationResult",
    "WLSResult",
    "ConstrainedWLSResult",
    "FactorContribution",
    "AttributionResult",
    "solve_linear_system",
    "weighted_least_squares",
    "SINGULARITY_THRESHOLD",
    "build_constrained_design",
    "constrained_wls",
    "ConstrainedFactorRegression",
    "winsorize",
    "winsorize_bounds",
    "Winsorizer",
    "CrossSectionalEstimator",
    "estimate_factor_returns",
    "PanelSimulator",
    "SimulatedPanel",
    "simulate_panel",
    "save_results",
    "load_results",
    "ResultFormat",
    "compute_attribution",
]
