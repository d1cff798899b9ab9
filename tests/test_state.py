import jax.numpy as jnp
import numpy as np

from rjglm_jax.core import (
    MOVE_NULL,
    ModelState,
    count_model_dimension,
    count_partition_dimensions,
    empty_state,
)

from conftest import make_data


def test_empty_state_includes_fixed_covariates_only():
    data = make_data("gaussian", V=5, n_fixed=2, bounds=(2, 3, 5))
    state = empty_state(data, 1)
    np.testing.assert_array_equal(np.asarray(state.inclusion), [1, 1, 0, 0, 0])
    assert int(state.model_dimension) == 0
    np.testing.assert_array_equal(np.asarray(state.partition_dimensions), [0, 0])
    assert state.log_beta_prior_sds.shape == (1,)


def test_with_inclusion_recomputes_dimensions_and_keeps_fixed():
    data = make_data("gaussian", V=5, n_fixed=2, bounds=(2, 3, 5))
    state = empty_state(data, 0).with_inclusion(jnp.array([0, 0, 1, 1, 1]), data)
    np.testing.assert_array_equal(np.asarray(state.inclusion), [1, 1, 1, 1, 1])
    assert int(state.model_dimension) == 3
    np.testing.assert_array_equal(np.asarray(state.partition_dimensions), [1, 2])
    assert int(count_model_dimension(state.inclusion, data)) == 3
    np.testing.assert_array_equal(np.asarray(count_partition_dimensions(state.inclusion, data)), [1, 2])


def test_select_copies_every_field():
    data = make_data("gaussian")
    curr = empty_state(data, 1)
    prop = curr.with_inclusion(jnp.array([1, 0, 0, 1]), data).replace(
        alpha=jnp.asarray(2.0), move_type=jnp.asarray(MOVE_NULL, dtype=jnp.int32)
    )
    taken = ModelState.select(jnp.asarray(True), prop, curr)
    kept = ModelState.select(jnp.asarray(False), prop, curr)
    assert float(taken.alpha) == 2.0 and int(taken.model_dimension) == 2
    assert float(kept.alpha) == 0.0 and int(kept.model_dimension) == 0
    assert taken.inclusion.dtype == jnp.int32


def test_summary():
    data = make_data("gaussian")
    summary = empty_state(data, 0).get_summary()
    assert summary["model_dimension"] == 0
    assert summary["included"] == []
    assert summary["move"] == "Initial"
