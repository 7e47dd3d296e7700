"""
Item calibrator using the MML-EM algorithm.

Implements Bock-Aitkin marginal maximum likelihood for dichotomous
1PL / 2PL / 3PL items. Guessing parameters are held fixed; discrimination
(except under 1PL) and difficulty are re-estimated.

The EM loop is an explicit state machine:
    init -> E-step -> M-step -> ... -> {converged | max_iterations | failed}
Every step is a pure function from one EMState to the next.
"""

import dataclasses
import logging
from collections.abc import Sequence

import numpy as np
from numpy.typing import NDArray
from scipy.optimize import minimize

from psychometric_core.core.data_models import ResponseMatrix
from psychometric_core.core.utils import clip_to_bounds
from psychometric_core.errors import InvalidParameterError, LowDataError
from psychometric_core.irt.estimation.abilities import (
    compute_log_likelihood_matrix,
    compute_posteriors,
    summarize_posteriors,
)
from psychometric_core.irt.estimation.config import (
    EstimationConfig,
    default_config,
)
from psychometric_core.irt.estimation.data_models import (
    CalibrationReport,
    CalibrationResult,
    EMState,
    EStepResult,
)
from psychometric_core.irt.estimation.enums import (
    ConvergenceStatus,
    EstimateFlag,
)
from psychometric_core.irt.estimation.gradients import (
    item_expected_information,
    item_negative_expected_log_likelihood,
    item_negative_expected_log_likelihood_gradient,
)
from psychometric_core.irt.estimation.quadrature import (
    ScaledQuadrature,
    get_quadrature,
)
from psychometric_core.irt.estimation.starting_values import (
    compute_starting_values,
)
from psychometric_core.irt.parameters import ItemParameter
from psychometric_core.irt.response_models import ModelKind

logger = logging.getLogger(__name__)


class ItemCalibrator:
    """
    Dichotomous item calibrator using MML-EM.

    E-step: posterior over the quadrature grid for every respondent given
    the current item parameters (the same posterior EAP uses).
    M-step: per-item L-BFGS-B on the expected complete-data log-likelihood
    with analytical gradients, within the configured parameter bounds.
    """

    def __init__(self, config: EstimationConfig | None = None):
        """Initialize item calibrator."""
        self.config = config or default_config()
        self._quadrature = get_quadrature(self.config.quadrature)

    @property
    def quadrature(self) -> ScaledQuadrature:
        """Access quadrature points and weights."""
        return self._quadrature

    def check_data_density(self, data: ResponseMatrix) -> None:
        """
        Reject response matrices too small for a well-conditioned M-step.

        Args:
            data: Response matrix.

        Raises:
            LowDataError: If there are fewer respondents or items than the
                configured minimum.
        """
        density = self.config.density
        if data.n_respondents < density.min_respondents:
            raise LowDataError(
                f"{data.n_respondents} respondents, need at least "
                f"{density.min_respondents}"
            )
        if data.n_items < density.min_items:
            raise LowDataError(
                f"{data.n_items} items, need at least {density.min_items}"
            )

    def _check_convergence(self, current_ll: float, prev_ll: float) -> bool:
        """
        Check if EM has converged based on log-likelihood change.

        Args:
            current_ll: Current log-likelihood.
            prev_ll: Previous log-likelihood.

        Returns:
            True if converged.
        """
        if prev_ll == -np.inf:
            return False

        abs_change = abs(current_ll - prev_ll)
        return bool(abs_change < self.config.convergence.em_tolerance)

    def _resolve_params(
        self,
        data: ResponseMatrix,
        initial_params: Sequence[ItemParameter] | None,
        model: ModelKind,
        guessing: float,
    ) -> list[ItemParameter]:
        """Starting parameters, one per column of the response matrix."""
        if initial_params is None:
            return compute_starting_values(data, model, guessing)

        params = list(initial_params)
        if len(params) != data.n_items:
            raise InvalidParameterError(
                f"Expected {data.n_items} initial parameters, "
                f"got {len(params)}"
            )
        return params

    def initial_state(
        self,
        data: ResponseMatrix,
        initial_params: Sequence[ItemParameter] | None = None,
        model: ModelKind = ModelKind.TWO_PL,
        guessing: float = 0.0,
    ) -> EMState:
        """
        Build the starting EMState.

        Args:
            data: Response matrix.
            initial_params: One ItemParameter per column. Starting values
                from proportion correct are used if None.
            model: Logistic model for starting values when no initial
                parameters are given.
            guessing: Fixed lower asymptote of those starting values under
                3PL.

        Returns:
            EMState at iteration 0.
        """
        params = self._resolve_params(data, initial_params, model, guessing)

        min_responses = self.config.density.min_responses_per_item
        n_valid = data.n_valid_per_item()
        low_data_items = frozenset(
            int(idx) for idx in np.flatnonzero(n_valid < min_responses)
        )
        for idx in sorted(low_data_items):
            logger.info(
                f"Item {params[idx].item_id} has {n_valid[idx]} responses "
                f"(< {min_responses}); holding it fixed"
            )

        return EMState(params=tuple(params), low_data_items=low_data_items)

    def e_step(
        self,
        data: ResponseMatrix,
        params: Sequence[ItemParameter],
    ) -> EStepResult:
        """
        E-step: compute posterior distribution over abilities.

        For each respondent, compute:
            P(theta_q | responses) ∝ P(responses | theta_q) * P(theta_q)

        where P(theta_q) is the quadrature weight (prior).

        Args:
            data: Response matrix.
            params: Current item parameters.

        Returns:
            EStepResult with posteriors and marginal log-likelihood.
        """
        log_lik = compute_log_likelihood_matrix(
            data, params, self._quadrature.points
        )
        posteriors, log_marginal = compute_posteriors(
            log_lik, self._quadrature
        )
        return EStepResult(
            posteriors=posteriors, log_likelihood=float(np.sum(log_marginal))
        )

    def _expected_counts(
        self, data: ResponseMatrix, posteriors: NDArray[np.float64]
    ) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        """
        Expected respondents and correct answers per item and grid point.

        Returns:
            (r, n), both shape (n_items, n_quadrature).
        """
        expected_correct = data.correct_mask.T.astype(np.float64) @ posteriors
        expected_count = data.valid_mask.T.astype(np.float64) @ posteriors
        return expected_correct, expected_count

    def m_step(
        self,
        data: ResponseMatrix,
        posteriors: NDArray[np.float64],
        current_params: Sequence[ItemParameter],
        low_data_items: frozenset[int] = frozenset(),
    ) -> tuple[ItemParameter, ...]:
        """
        M-step: optimize item parameters given posteriors.

        Args:
            data: Response matrix.
            posteriors: Posterior weights from E-step.
            current_params: Current parameter estimates.
            low_data_items: Column indices left unchanged.

        Returns:
            Updated parameter estimates.
        """
        expected_correct, expected_count = self._expected_counts(
            data, posteriors
        )

        new_params = []
        for item_idx, current in enumerate(current_params):
            if item_idx in low_data_items:
                new_params.append(current)
                continue
            new_params.append(
                self._optimize_item(
                    current,
                    expected_correct[item_idx],
                    expected_count[item_idx],
                )
            )
        return tuple(new_params)

    def _optimize_item(
        self,
        current: ItemParameter,
        expected_correct: NDArray[np.float64],
        expected_count: NDArray[np.float64],
    ) -> ItemParameter:
        """
        Optimize (a, b) for one item using L-BFGS-B.

        Args:
            current: Current parameter estimates.
            expected_correct: r_q for this item, shape (n_quadrature,).
            expected_count: n_q for this item, shape (n_quadrature,).

        Returns:
            Optimized ItemParameter.
        """
        bounds_a = self.config.bounds.discrimination
        bounds_b = self.config.bounds.difficulty
        if current.model == ModelKind.ONE_PL:
            # Discrimination is fixed under the Rasch model
            bounds_a = (current.a, current.a)

        x0 = np.array([current.a, current.b], dtype=np.float64)

        result = minimize(
            fun=item_negative_expected_log_likelihood,
            x0=x0,
            args=(
                self._quadrature.points,
                expected_correct,
                expected_count,
                current.c,
            ),
            method="L-BFGS-B",
            jac=item_negative_expected_log_likelihood_gradient,
            bounds=[bounds_a, bounds_b],
            options={
                "maxiter": self.config.convergence.max_lbfgs_iterations,
                "ftol": self.config.convergence.lbfgs_tolerance,
            },
        )

        return current.with_estimates(
            a=clip_to_bounds(float(result.x[0]), bounds_a),
            b=clip_to_bounds(float(result.x[1]), bounds_b),
        )

    def em_iteration(self, data: ResponseMatrix, state: EMState) -> EMState:
        """
        Advance the EM state machine by one iteration.

        Runs an E-step; if the log-likelihood change is below tolerance the
        run is marked converged, otherwise an M-step produces new parameters.

        Args:
            data: Response matrix.
            state: Current state. Must not be finished.

        Returns:
            The next EMState.
        """
        if state.finished:
            return state

        e_result = self.e_step(data, state.params)
        iteration = state.iteration + 1
        trace = state.trace + (e_result.log_likelihood,)
        logger.debug(
            f"Iteration {iteration}: LL = {e_result.log_likelihood:.4f}"
        )

        if not np.isfinite(e_result.log_likelihood):
            return dataclasses.replace(
                state,
                iteration=iteration,
                trace=trace,
                status=ConvergenceStatus.FAILED,
            )

        if self._check_convergence(
            e_result.log_likelihood, state.log_likelihood
        ):
            return dataclasses.replace(
                state,
                iteration=iteration,
                log_likelihood=e_result.log_likelihood,
                trace=trace,
                status=ConvergenceStatus.CONVERGED,
            )

        params = self.m_step(
            data, e_result.posteriors, state.params, state.low_data_items
        )
        status = None
        if iteration >= self.config.convergence.max_em_iterations:
            status = ConvergenceStatus.MAX_ITERATIONS

        return dataclasses.replace(
            state,
            params=params,
            iteration=iteration,
            log_likelihood=e_result.log_likelihood,
            trace=trace,
            status=status,
        )

    def _standard_errors(
        self,
        item: ItemParameter,
        expected_count: NDArray[np.float64],
    ) -> tuple[float | None, float | None]:
        """Asymptotic SEs of (a, b) from the expected information."""
        info = item_expected_information(
            np.array([item.a, item.b], dtype=np.float64),
            self._quadrature.points,
            expected_count,
            item.c,
        )

        if item.model == ModelKind.ONE_PL:
            if info[1, 1] <= 0:
                return 0.0, None
            return 0.0, float(1.0 / np.sqrt(info[1, 1]))

        try:
            covariance = np.linalg.inv(info)
        except np.linalg.LinAlgError:
            return None, None
        variances = np.diag(covariance)
        if np.any(variances <= 0) or not np.all(np.isfinite(variances)):
            return None, None
        se_a, se_b = np.sqrt(variances)
        return float(se_a), float(se_b)

    def _low_data_report(
        self,
        data: ResponseMatrix,
        initial_params: Sequence[ItemParameter] | None,
        model: ModelKind,
        guessing: float,
    ) -> CalibrationReport:
        """Report with parameters unchanged and every item flagged."""
        params = tuple(
            self._resolve_params(data, initial_params, model, guessing)
        )

        results = tuple(
            CalibrationResult(
                item_id=item.item_id,
                a=item.a,
                b=item.b,
                c=item.c,
                status=ConvergenceStatus.LOW_DATA,
                flags=frozenset({EstimateFlag.LOW_DATA}),
            )
            for item in params
        )
        return CalibrationReport(
            results=results,
            parameters=params,
            log_likelihood=-np.inf,
            n_iterations=0,
            status=ConvergenceStatus.LOW_DATA,
            model_version=self.config.model_version,
        )

    def fit(
        self,
        data: ResponseMatrix,
        initial_params: Sequence[ItemParameter] | None = None,
        state: EMState | None = None,
        model: ModelKind = ModelKind.TWO_PL,
        guessing: float = 0.0,
    ) -> CalibrationReport:
        """
        Calibrate item parameters to response data using MML-EM.

        Args:
            data: Response matrix.
            initial_params: One ItemParameter per column. Starting values
                from proportion correct are used if None.
            state: Resume from this state instead of starting over.
            model: Logistic model to calibrate when initial_params is None.
            guessing: Fixed lower asymptote used with a 3PL model.

        Returns:
            CalibrationReport with per-item results, final parameters and
            respondent abilities.
        """
        try:
            self.check_data_density(data)
        except LowDataError as e:
            logger.warning(f"Skipping calibration: {e}")
            return self._low_data_report(
                data, initial_params, model, guessing
            )

        if state is None:
            state = self.initial_state(
                data, initial_params, model, guessing
            )

        while not state.finished:
            state = self.em_iteration(data, state)

        logger.info(
            f"Calibration finished after {state.iteration} iterations: "
            f"status={state.status.value}, LL={state.log_likelihood:.4f}"
        )
        return self._build_report(data, state)

    def _build_report(
        self, data: ResponseMatrix, state: EMState
    ) -> CalibrationReport:
        """Attach standard errors and abilities under the final parameters."""
        assert state.status is not None

        final = self.e_step(data, state.params)
        _, expected_count = self._expected_counts(data, final.posteriors)

        results = []
        for item_idx, item in enumerate(state.params):
            if item_idx in state.low_data_items:
                results.append(
                    CalibrationResult(
                        item_id=item.item_id,
                        a=item.a,
                        b=item.b,
                        c=item.c,
                        log_likelihood_trace=state.trace,
                        n_iterations=state.iteration,
                        status=state.status,
                        flags=frozenset({EstimateFlag.LOW_DATA}),
                    )
                )
                continue

            se_a, se_b = self._standard_errors(item, expected_count[item_idx])
            results.append(
                CalibrationResult(
                    item_id=item.item_id,
                    a=item.a,
                    b=item.b,
                    c=item.c,
                    se_a=se_a,
                    se_b=se_b,
                    log_likelihood_trace=state.trace,
                    n_iterations=state.iteration,
                    status=state.status,
                )
            )

        return CalibrationReport(
            results=tuple(results),
            parameters=state.params,
            abilities=summarize_posteriors(
                final.posteriors, self._quadrature.points
            ),
            log_likelihood=state.log_likelihood,
            n_iterations=state.iteration,
            status=state.status,
            model_version=self.config.model_version,
        )


def calibrate_items(
    response_matrix: ResponseMatrix,
    initial_params: Sequence[ItemParameter] | None = None,
    config: EstimationConfig | None = None,
    model: ModelKind = ModelKind.TWO_PL,
    guessing: float = 0.0,
) -> list[CalibrationResult]:
    """
    Re-estimate item parameters from a response matrix.

    Args:
        response_matrix: Respondent x item responses.
        initial_params: One ItemParameter per column, or None for starting
            values from proportion correct.
        config: Estimation configuration. Uses defaults if None.
        model: Logistic model to calibrate when initial_params is None.
        guessing: Fixed lower asymptote used with a 3PL model.

    Returns:
        One CalibrationResult per item, in column order.
    """
    report = ItemCalibrator(config).fit(
        response_matrix, initial_params, model=model, guessing=guessing
    )
    return list(report.results)
