import math

import jax.numpy as jnp
import numpy as np
import pytest
from jax import random as jrand

from rjglm_jax.core import MOVE_ADD, MOVE_NULL, MOVE_REMOVE, empty_state
from rjglm_jax.inference.rj import RJMHCFG, evaluate_state, initial_state, mh_iteration
from rjglm_jax.inference.rj.proposals import (
    ComponentLayout,
    ProposalTuner,
    adapt,
    choose_move,
    propose_add,
    propose_null,
    propose_remove,
    propose_swap,
)
from rjglm_jax.likelihoods import get as get_likelihood
from rjglm_jax.priors import PriorModel

from conftest import FAMILIES, make_data

PROBS = (0.25, 0.25, 0.25, 0.25)


def _setup(family, **data_kwargs):
    data = make_data(family, **data_kwargs)
    model = get_likelihood(family)
    priors = PriorModel().resolved(data, model)
    state = initial_state(jrand.PRNGKey(0), data, model, priors, RJMHCFG())
    layout = ComponentLayout.for_data(data, priors)
    return data, model, priors, state, layout


@pytest.mark.parametrize("family", ("logistic", "gaussian", "gaussian_conj"))
def test_add_then_remove_restores_log_likelihood(family):
    data, model, priors, state, layout = _setup(family, n=10, V=2)
    log_sds = ProposalTuner.init(layout, 0.5).log_sds
    sample = not model.is_conjugate

    added, log_q_add, _ = propose_add(jrand.PRNGKey(3), state, log_sds, data, PROBS, sample)
    added = evaluate_state(added, data, model, priors)
    assert int(added.model_dimension) == 1

    removed, log_q_remove, _ = propose_remove(jrand.PRNGKey(4), added, log_sds, data, PROBS, sample)
    removed = evaluate_state(removed, data, model, priors)
    assert int(removed.model_dimension) == 0
    np.testing.assert_allclose(float(removed.log_likelihood), float(state.log_likelihood), rtol=1e-12)
    np.testing.assert_allclose(float(log_q_add) + float(log_q_remove), 0.0, atol=1e-10)


def test_swap_preserves_dimension_and_fixed_covariates():
    data, model, priors, state, layout = _setup("logistic", V=5, n_fixed=1)
    log_sds = ProposalTuner.init(layout, 0.5).log_sds
    state = state.with_inclusion(jnp.array([1, 1, 0, 1, 0]), data)
    swapped, _, _ = propose_swap(jrand.PRNGKey(7), state, log_sds, data, PROBS, True)
    assert int(swapped.model_dimension) == 2
    assert int(swapped.inclusion[0]) == 1
    assert int(jnp.sum(jnp.abs(swapped.inclusion - state.inclusion))) == 2
    # excluded coefficients are zero
    assert float(jnp.sum(jnp.where(swapped.inclusion == 0, jnp.abs(swapped.beta), 0.0))) == 0.0


def test_choose_move_falls_back_to_null():
    data = make_data("gaussian", V=3)
    empty = empty_state(data, 0)
    full = empty.with_inclusion(jnp.ones(3, dtype=jnp.int32), data)
    key = jrand.PRNGKey(0)
    assert int(choose_move(key, empty, (0.0, 1.0, 0.0, 0.0), data.n_free)) == MOVE_NULL
    assert int(choose_move(key, empty, (0.0, 0.0, 1.0, 0.0), data.n_free)) == MOVE_NULL
    assert int(choose_move(key, full, (1.0, 0.0, 0.0, 0.0), data.n_free)) == MOVE_NULL
    assert int(choose_move(key, empty, (1.0, 0.0, 0.0, 0.0), data.n_free)) == MOVE_ADD
    assert int(choose_move(key, full, (0.0, 1.0, 0.0, 0.0), data.n_free)) == MOVE_REMOVE


def test_null_move_touches_one_eligible_component():
    data, model, priors, state, layout = _setup("gaussian", clusters=True)
    log_sds = ProposalTuner.init(layout, 0.5).log_sds
    prop, log_q, component = propose_null(jrand.PRNGKey(1), state, log_sds, layout, model, priors)
    c = int(component)
    eligible = np.asarray(layout.eligible(state, model, priors))
    assert eligible[c]
    # no covariates are included, so no coefficient is eligible
    assert not eligible[layout.beta_start:layout.beta_start + data.n_covariates].any()
    diff = np.asarray(layout.pack(prop) - layout.pack(state))
    assert np.count_nonzero(diff) == 1 and diff[c] != 0.0
    assert float(log_q) == 0.0
    assert len(layout.labels(data.covariate_names)) == layout.size


def test_null_move_without_eligible_components_is_a_no_op():
    data, model, priors, state, layout = _setup("gaussian_conj")
    log_sds = ProposalTuner.init(layout, 0.5).log_sds
    prop, _, component = propose_null(jrand.PRNGKey(1), state, log_sds, layout, model, priors)
    assert int(component) == -1
    np.testing.assert_array_equal(np.asarray(layout.pack(prop)), np.asarray(layout.pack(state)))


def test_adapt_moves_scale_towards_target_and_freezes():
    data, model, priors, state, layout = _setup("gaussian")
    tuner = ProposalTuner.init(layout, 0.1)
    state = state.replace(
        move_type=jnp.asarray(MOVE_NULL, dtype=jnp.int32),
        component=jnp.asarray(0, dtype=jnp.int32),
        acceptance_probability=jnp.asarray(1.0),
    )
    accept = jnp.asarray(True)
    up = adapt(tuner, state, accept, jnp.asarray(5), 10, 0.44, 0.6)
    assert float(up.log_sds[0]) == pytest.approx(math.log(0.1) + 0.56)
    assert int(up.n_proposed[0]) == 1 and int(up.move_accepted[MOVE_NULL]) == 1

    frozen = adapt(tuner, state, accept, jnp.asarray(11), 10, 0.44, 0.6)
    assert float(frozen.log_sds[0]) == pytest.approx(math.log(0.1))
    assert int(frozen.move_proposed[MOVE_NULL]) == 1


@pytest.mark.parametrize("family", FAMILIES)
@pytest.mark.parametrize("scale", (0.1, 1e3))
def test_acceptance_probability_in_unit_interval(family, scale):
    data, model, priors, state, layout = _setup(family, n_fixed=1)
    inclusion = jnp.array([1, 1, 1, 0], dtype=jnp.int32)
    beta = jnp.where(inclusion == 1, scale * jnp.array([1.0, -1.0, 1.0, 0.0]), 0.0)
    start = evaluate_state(state.replace(beta=beta).with_inclusion(inclusion, data), data, model, priors)
    assert np.isfinite(float(start.log_target))

    cfg = RJMHCFG(n_iterations=40, burn_in=0)
    tuner = ProposalTuner.init(layout, scale)
    key = jrand.PRNGKey(11)
    moves = set()
    for i in range(40):
        # every move is valid from a state with one of three free covariates excluded
        curr, _, tuner = mh_iteration(
            key, jnp.asarray(i, dtype=jnp.int32), start, start, tuner, data,
            model=model, priors=priors, cfg=cfg, probs=PROBS, layout=layout,
        )
        acc = float(curr.acceptance_probability)
        assert 0.0 <= acc <= 1.0
        assert np.isfinite(float(curr.log_likelihood))
        assert int(curr.inclusion[0]) == 1
        moves.add(int(curr.move_type))
    assert moves == {0, 1, 2, 3}
    assert np.all(np.asarray(tuner.move_proposed) > 0)
    assert int(jnp.sum(tuner.move_proposed)) == 40
