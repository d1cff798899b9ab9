import io
import logging
import math

import jax.numpy as jnp
import pytest

from rjglm_jax.core import ConfigurationError, empty_state
from rjglm_jax.inference.rj import RJMHCFG, run_chain, score_models
from rjglm_jax.inference.rj.scoring import model_label
from rjglm_jax.likelihoods import get as get_likelihood
from rjglm_jax.priors import PriorModel

from conftest import make_data


def _resolved(data):
    model = get_likelihood(data.likelihood)
    return model, PriorModel().resolved(data, model)


def test_labels_and_enumeration_order():
    data = make_data("gaussian_conj", V=4, n_fixed=1)
    model, priors = _resolved(data)
    scores = score_models(data, model, priors, 2)
    assert [label for label, _ in scores] == [
        "Null", "x2", "x3", "x4", "x2_AND_x3", "x2_AND_x4", "x3_AND_x4",
    ]
    assert model_label(["a", "b", "c"]) == "a_AND_b_AND_c"


def test_scores_match_the_sampler_likelihood():
    data = make_data("gaussian_conj", V=4, n_fixed=1)
    model, priors = _resolved(data)
    scores = dict(score_models(data, model, priors, 2))
    state = empty_state(data, 0).with_inclusion(jnp.array([1, 0, 1, 1], dtype=jnp.int32), data)
    state = state.replace(log_tau=jnp.asarray(math.log(priors.tau)))
    assert scores["x3_AND_x4"] == pytest.approx(float(model.log_likelihood(state, data, priors)), rel=1e-9)


def test_dimension_five_enumerates_every_subset():
    data = make_data("gaussian_marginal_conj", V=6)
    model, priors = _resolved(data)
    scores = score_models(data, model, priors, 5)
    assert len(scores) == sum(math.comb(6, d) for d in range(6))
    assert len({label for label, _ in scores}) == len(scores)
    assert "x2_AND_x3_AND_x4_AND_x5_AND_x6" in dict(scores)


def test_dimension_five_scoring_warns(caplog):
    data = make_data("gaussian_conj", V=5)
    model, priors = _resolved(data)
    with caplog.at_level(logging.WARNING, logger="rjglm_jax.inference.rj.scoring"):
        score_models(data, model, priors, 5)
    assert any(r.levelno == logging.WARNING and "dimension 5" in r.getMessage() for r in caplog.records)

    caplog.clear()
    with caplog.at_level(logging.WARNING, logger="rjglm_jax.inference.rj.scoring"):
        score_models(data, model, priors, 4)
    assert not [r for r in caplog.records if r.levelno >= logging.WARNING]


def test_scoring_needs_a_conjugate_family():
    data = make_data("gaussian")
    model, priors = _resolved(data)
    with pytest.raises(ConfigurationError):
        score_models(data, model, priors, 1)


def test_scores_are_written_to_the_header():
    data = make_data("gaussian_conj", V=3)
    out = io.StringIO()
    cfg = RJMHCFG(n_iterations=20, burn_in=0, all_model_scores_up_to_dim=1)
    run = run_chain(data, PriorModel(), cfg, results=out)
    lines = out.getvalue().splitlines()
    assert lines[1].split()[7] == "1"
    assert [line.split()[0] for line in lines[3:7]] == ["Null", "x1", "x2", "x3"]
    assert lines[7].split()[0] == "alpha"
    assert [label for label, _ in run.model_scores] == ["Null", "x1", "x2", "x3"]
