from dataclasses import dataclass, field

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict

from psychometric_core.irt.estimation.abilities import AbilityEstimates
from psychometric_core.irt.estimation.enums import (
    ConvergenceStatus,
    EstimateFlag,
)
from psychometric_core.irt.parameters import ItemParameter


@dataclass
class EStepResult:
    """
    Results from the E-step of EM algorithm.

    Attributes:
        posteriors: Posterior weights, shape (n_respondents, n_quadrature).
            posteriors[i, q] = P(theta = theta_q | responses_i, params).
        log_likelihood: Marginal log-likelihood for current parameters.
    """

    posteriors: NDArray[np.float64]
    log_likelihood: float


@dataclass(frozen=True)
class EMState:
    """
    Snapshot of an EM run between iterations.

    Each step function takes a state and returns a new one, so a run can be
    inspected mid-loop or resumed from any snapshot.

    Attributes:
        params: Current item parameters, one per column.
        iteration: Completed EM iterations.
        log_likelihood: Marginal log-likelihood of the last E-step.
        trace: Marginal log-likelihood after every E-step so far.
        status: None while running, otherwise how the run ended.
        low_data_items: Column indices held fixed for lack of responses.
    """

    params: tuple[ItemParameter, ...]
    iteration: int = 0
    log_likelihood: float = -np.inf
    trace: tuple[float, ...] = ()
    status: ConvergenceStatus | None = None
    low_data_items: frozenset[int] = field(default_factory=frozenset)

    @property
    def finished(self) -> bool:
        """Whether the run reached a terminal status."""
        return self.status is not None


class CalibrationResult(BaseModel):
    """
    Calibrated parameters for one item.

    Attributes:
        item_id: Item identifier.
        a: Discrimination after calibration.
        b: Difficulty after calibration.
        c: Guessing (held fixed during calibration).
        se_a: Asymptotic standard error of a (0 when a is fixed).
        se_b: Asymptotic standard error of b.
        log_likelihood_trace: Marginal log-likelihood after every E-step.
        n_iterations: Number of EM iterations performed.
        status: How the EM run terminated.
        flags: Item-level warnings, e.g. LOW_DATA.
    """

    model_config = ConfigDict(frozen=True)

    item_id: str
    a: float
    b: float
    c: float = 0.0
    se_a: float | None = None
    se_b: float | None = None
    log_likelihood_trace: tuple[float, ...] = ()
    n_iterations: int = 0
    status: ConvergenceStatus
    flags: frozenset[EstimateFlag] = frozenset()

    @property
    def converged(self) -> bool:
        """Whether the EM run converged successfully."""
        return self.status == ConvergenceStatus.CONVERGED

    @property
    def low_data(self) -> bool:
        """Whether the item was left unchanged for lack of data."""
        return EstimateFlag.LOW_DATA in self.flags


class CalibrationReport(BaseModel):
    """
    Result of a full calibration run.

    Attributes:
        results: One CalibrationResult per item, in column order.
        parameters: Calibrated ItemParameter per item, in column order.
        abilities: EAP abilities of every respondent under the final
            parameters. None when calibration was skipped for low data.
        log_likelihood: Final marginal log-likelihood.
        n_iterations: Number of EM iterations performed.
        status: How the EM run terminated.
        model_version: Version string for reproducibility tracking.
    """

    model_config = ConfigDict(frozen=True)

    results: tuple[CalibrationResult, ...]
    parameters: tuple[ItemParameter, ...]
    abilities: AbilityEstimates | None = None
    log_likelihood: float
    n_iterations: int
    status: ConvergenceStatus
    model_version: str

    @property
    def n_items(self) -> int:
        """Number of items in the model."""
        return len(self.results)

    @property
    def converged(self) -> bool:
        """Whether estimation converged successfully."""
        return self.status == ConvergenceStatus.CONVERGED
