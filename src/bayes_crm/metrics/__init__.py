"""
Posterior-based evaluation metrics.

Modules:
- convergence: Rhat / ESS diagnostics and labels
- calibration: posterior calibration curve, intercept/slope, Brier, ECE
- discrimination: AUROC and the AUC posterior
- dca: bootstrap decision curve analysis
- goodness_of_fit: Hosmer-Lemeshow test
- thresholds: Youden threshold and classification metrics
"""

from bayes_crm.metrics.calibration import (
    calibration_bin_edges,
    calibration_intercept_slope,
    compute_brier_score,
    expected_calibration_error,
    posterior_calibration_curve,
    summarize_calibration,
)
from bayes_crm.metrics.convergence import (
    all_converged,
    classify_rhat,
    compute_convergence_report,
)
from bayes_crm.metrics.dca import (
    compute_dca_summary,
    decision_curve_analysis,
    generate_dca_thresholds,
    net_benefit,
    net_benefit_treat_all,
)
from bayes_crm.metrics.discrimination import (
    auc_posterior,
    auc_posterior_mode,
    auroc,
    summarize_auc,
)
from bayes_crm.metrics.goodness_of_fit import (
    HLTestResult,
    choose_n_groups,
    hosmer_lemeshow_test,
)
from bayes_crm.metrics.thresholds import (
    ClassificationReport,
    binary_metrics_at_threshold,
    classification_report_at_youden,
    threshold_youden,
)

__all__ = [
    "classify_rhat",
    "compute_convergence_report",
    "all_converged",
    "calibration_bin_edges",
    "posterior_calibration_curve",
    "calibration_intercept_slope",
    "expected_calibration_error",
    "compute_brier_score",
    "summarize_calibration",
    "auroc",
    "auc_posterior",
    "auc_posterior_mode",
    "summarize_auc",
    "net_benefit",
    "net_benefit_treat_all",
    "decision_curve_analysis",
    "compute_dca_summary",
    "generate_dca_thresholds",
    "HLTestResult",
    "choose_n_groups",
    "hosmer_lemeshow_test",
    "ClassificationReport",
    "threshold_youden",
    "binary_metrics_at_threshold",
    "classification_report_at_youden",
]
