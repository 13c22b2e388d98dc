"""
Error taxonomy for the Bayesian risk-model pipeline.

Fatal errors (raised):
    SchemaError             - input table does not match the configured schema
    ConvergenceFailure      - an MCMC fit produced no usable posterior
    LOOFailure              - one or more leave-one-out refits failed
    ArtifactIntegrityError  - expected output artifacts are missing after a run

Non-fatal issues are issued as DataQualityWarning (and logged) through
warn_data_quality(); the affected stage applies its documented fallback.
"""

import logging
import warnings

logger = logging.getLogger(__name__)


class SchemaError(ValueError):
    """Raised when an input table violates the dataset schema."""

    def __init__(self, message: str, problems: list[str] | None = None):
        self.problems = list(problems or [])
        if self.problems:
            message = message + "\n" + "\n".join(f"  - {p}" for p in self.problems)
        super().__init__(message)


class ConvergenceFailure(RuntimeError):
    """Raised when a posterior fit fails to produce finite draws from every chain."""


class LOOFailure(ConvergenceFailure):
    """Raised when leave-one-out refits fail for one or more subjects.

    Attributes:
        failures: Mapping of subject position -> failure message
    """

    def __init__(self, failures: dict[int, str]):
        self.failures = dict(sorted(failures.items()))
        lines = [f"  - subject {i}: {msg}" for i, msg in self.failures.items()]
        super().__init__(
            f"Leave-one-out refit failed for {len(self.failures)} subject(s):\n" + "\n".join(lines)
        )


class ArtifactIntegrityError(RuntimeError):
    """Raised when a completed run is missing expected output artifacts."""

    def __init__(self, missing: list[str]):
        self.missing = list(missing)
        super().__init__(
            f"Run finished with {len(self.missing)} missing artifact(s): {', '.join(self.missing)}"
        )


class DataQualityWarning(UserWarning):
    """Non-fatal data issue handled by a documented fallback."""


def warn_data_quality(message: str, stacklevel: int = 2) -> None:
    """Log a data-quality issue and emit it as a DataQualityWarning."""
    logger.warning(message)
    warnings.warn(message, DataQualityWarning, stacklevel=stacklevel + 1)
