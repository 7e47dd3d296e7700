"""
Tests for interaction models and multidimensional theta updates.
"""

import pytest

from psychometric_core.errors import InvalidParameterError
from psychometric_core.irt import ItemParameter
from psychometric_core.irt.estimation.config import MIRTConfig
from psychometric_core.mirt import (
    ComponentCode,
    ComponentThetaProfile,
    InteractionModel,
    aggregate_theta_contributions,
    calculate_theta_contributions,
    update_component_theta,
)
from psychometric_core.mirt.calibration import (
    boundary_decay,
    normalize_scores,
)
from psychometric_core.mirt.interaction import (
    compensatory_probability,
    conjunctive_probability,
    disjunctive_probability,
    expected_probability,
)
from psychometric_core.mirt.q_matrix import q_matrix_from_mapping

LEX = ComponentCode.LEX
SYNT = ComponentCode.SYNT
MORPH = ComponentCode.MORPH

Q_SENTENCE = q_matrix_from_mapping({"LEX": 0.5, "SYNT": 0.3, "MORPH": 0.2})


class TestComponentThetaProfile:
    def test_out_of_range_rejected(self) -> None:
        with pytest.raises(InvalidParameterError):
            ComponentThetaProfile(lex=3.5)

    def test_from_mapping(self) -> None:
        profile = ComponentThetaProfile.from_mapping({LEX: 1.0}, 0.5)

        assert profile.theta(LEX) == 1.0
        assert profile.theta(SYNT) == 0.0
        assert profile.global_theta == 0.5
        assert list(profile.as_dict()) == list(ComponentCode)

    def test_with_deltas_clips(self) -> None:
        profile = ComponentThetaProfile(lex=2.9)

        updated = profile.with_deltas({LEX: 0.5, SYNT: -0.2}, 0.1)

        assert updated.lex == 3.0
        assert updated.synt == pytest.approx(-0.2)
        assert updated.global_theta == pytest.approx(0.1)
        assert profile.lex == 2.9


class TestInteractionModels:
    def test_compensatory_at_zero(self) -> None:
        p = compensatory_probability(ComponentThetaProfile(), Q_SENTENCE)

        assert p == pytest.approx(0.5)

    def test_compensatory_strong_dimension_offsets_weak(self) -> None:
        profile = ComponentThetaProfile(lex=2.0, synt=-1.0, morph=-1.0)

        p = compensatory_probability(profile, Q_SENTENCE)

        # 0.5 * 2 - 0.3 - 0.2 = 0.5 > 0
        assert p > 0.5

    def test_compensatory_uses_task_parameters(self) -> None:
        params = {
            LEX: ItemParameter(item_id="lex", a=2.0, b=1.0),
            SYNT: ItemParameter(item_id="synt", a=1.0, b=0.0),
            MORPH: ItemParameter(item_id="morph", a=1.0, b=0.0),
        }
        profile = ComponentThetaProfile(lex=1.0)

        easy = compensatory_probability(profile, Q_SENTENCE, params)
        hard = compensatory_probability(
            profile, Q_SENTENCE, params, composite_difficulty=2.0
        )

        # logit = 0.5 * 2 * 1 - 0.5 * 1
        assert easy == pytest.approx(1 / (1 + 2.718281828459045**-0.5))
        assert hard < easy

    def test_conjunctive_requires_every_dimension(self) -> None:
        mastered = ComponentThetaProfile(lex=1.0, synt=0.5, morph=0.2)
        one_weak = ComponentThetaProfile(lex=1.0, synt=0.5, morph=-0.2)

        p_mastered = conjunctive_probability(mastered, Q_SENTENCE)

        assert p_mastered == pytest.approx(0.9)
        assert conjunctive_probability(one_weak, Q_SENTENCE) == 0.2

    def test_disjunctive_requires_any_dimension(self) -> None:
        one_strong = ComponentThetaProfile(lex=-1.0, synt=0.5, morph=-1.0)
        all_weak = ComponentThetaProfile(lex=-1.0, synt=-0.5, morph=-1.0)

        p_strong = disjunctive_probability(one_strong, Q_SENTENCE)

        assert p_strong == pytest.approx(0.9)
        assert disjunctive_probability(all_weak, Q_SENTENCE) == 0.2

    def test_slip_and_guess_from_config(self) -> None:
        config = MIRTConfig(slip_rate=0.05, guess_rate=0.25)
        weak = ComponentThetaProfile(lex=-1.0, synt=-1.0, morph=-1.0)

        assert conjunctive_probability(
            ComponentThetaProfile(), Q_SENTENCE, config=config
        ) == pytest.approx(0.95)
        assert disjunctive_probability(
            weak, Q_SENTENCE, config=config
        ) == pytest.approx(0.25)

    def test_model_defaults_to_row(self) -> None:
        row = q_matrix_from_mapping(
            {"LEX": 0.5, "SYNT": 0.5}, InteractionModel.CONJUNCTIVE
        )
        weak = ComponentThetaProfile(lex=1.0, synt=-1.0)

        assert expected_probability(weak, row) == 0.2
        assert expected_probability(
            weak, row, model="compensatory"
        ) == pytest.approx(0.5)


class TestScores:
    def test_single_score_applies_to_all(self) -> None:
        scores = normalize_scores(0.75, Q_SENTENCE)

        assert scores == {LEX: 0.75, SYNT: 0.75, MORPH: 0.75}

    def test_mapping_with_string_keys(self) -> None:
        scores = normalize_scores(
            {"LEX": 1.0, "SYNT": 0.5, "MORPH": 0.0}, Q_SENTENCE
        )

        assert scores[SYNT] == 0.5

    @pytest.mark.parametrize("score", [-0.1, 1.1, float("nan")])
    def test_out_of_range(self, score: float) -> None:
        with pytest.raises(InvalidParameterError):
            normalize_scores(score, Q_SENTENCE)

    def test_missing_component(self) -> None:
        with pytest.raises(InvalidParameterError):
            normalize_scores({"LEX": 1.0, "SYNT": 1.0}, Q_SENTENCE)


class TestThetaUpdates:
    def test_boundary_decay(self) -> None:
        assert boundary_decay(0.0) == 1.0
        assert boundary_decay(-1.5) == pytest.approx(0.5)
        assert boundary_decay(3.0) == 0.0

    def test_deltas_proportional_to_weights(self) -> None:
        """K * Q_i * (1.0 - 0.5) for a neutral learner."""
        contributions = calculate_theta_contributions(
            ComponentThetaProfile(), Q_SENTENCE, 1.0
        )
        deltas = {c.component: c.theta_delta for c in contributions}

        assert deltas[LEX] == pytest.approx(0.1 * 0.5 * 0.5)
        assert deltas[SYNT] == pytest.approx(0.1 * 0.3 * 0.5)
        assert deltas[MORPH] == pytest.approx(0.1 * 0.2 * 0.5)
        assert deltas[LEX] / deltas[SYNT] == pytest.approx(0.5 / 0.3)
        assert all(c.expected == pytest.approx(0.5) for c in contributions)

    def test_unweighted_components_do_not_move(self) -> None:
        profile = update_component_theta(
            ComponentThetaProfile(prag=1.0), Q_SENTENCE, 0.0
        )

        assert profile.prag == 1.0
        assert profile.phon == 0.0
        assert profile.lex < 0.0

    def test_global_delta_is_weighted_average(self) -> None:
        contributions = calculate_theta_contributions(
            ComponentThetaProfile(), Q_SENTENCE, 1.0
        )

        update = aggregate_theta_contributions(contributions)

        # sum(Q_i * 0.05 * Q_i) / sum(Q_i)
        assert update.global_delta == pytest.approx(
            0.05 * (0.5**2 + 0.3**2 + 0.2**2)
        )

    def test_decay_shrinks_updates_near_bound(self) -> None:
        """Under a conjunctive row the expectation is fixed, so only the
        decay changes the size of the update."""
        row = q_matrix_from_mapping({"LEX": 1.0}, InteractionModel.CONJUNCTIVE)
        sizes = []
        for theta in (0.5, 1.5, 2.5, 2.9):
            (contribution,) = calculate_theta_contributions(
                ComponentThetaProfile(lex=theta), row, 1.0
            )
            sizes.append(abs(contribution.theta_delta))

        assert sizes == sorted(sizes, reverse=True)
        assert len(set(sizes)) == len(sizes)

    @pytest.mark.parametrize("score", [0.0, 1.0])
    def test_repeated_updates_stay_bounded(self, score: float) -> None:
        config = MIRTConfig(learning_rate=3.0)
        profile = ComponentThetaProfile(lex=2.9, synt=-2.9, morph=0.0)

        for _ in range(200):
            profile = update_component_theta(
                profile, Q_SENTENCE, score, config=config
            )
            for value in profile.as_dict().values():
                assert -3.0 <= value <= 3.0
            assert -3.0 <= profile.global_theta <= 3.0

    def test_success_raises_and_failure_lowers(self) -> None:
        start = ComponentThetaProfile()

        up = update_component_theta(start, Q_SENTENCE, 1.0)
        down = update_component_theta(start, Q_SENTENCE, 0.0)

        assert up.lex > 0 > down.lex
        assert up.global_theta > 0 > down.global_theta
