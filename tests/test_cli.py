import numpy as np
import pytest

from rjglm_jax.cli import main
from rjglm_jax.core import ConfigurationError
from rjglm_jax.io import load_covariate_data


def _write_data(path, n=30, seed=0, with_time=False, with_cluster=False):
    rng = np.random.default_rng(seed)
    X = rng.normal(size=(n, 3))
    y = (rng.uniform(size=n) < 1.0 / (1.0 + np.exp(-X[:, 0]))).astype(int)
    columns = {"snp1": X[:, 0], "outcome": y, "snp2": X[:, 1], "snp3": X[:, 2]}
    if with_time:
        columns["time"] = rng.exponential(size=n) + 0.01
    if with_cluster:
        columns["centre"] = np.array([10, 20, 40])[np.arange(n) % 3]
    lines = [" ".join(columns)]
    for i in range(n):
        lines.append(" ".join(repr(float(col[i])) for col in columns.values()))
    path.write_text("\n".join(lines) + "\n")
    return path


def test_loader_separates_outcome_and_covariates(tmp_path):
    path = _write_data(tmp_path / "data.txt", with_cluster=True)
    data = load_covariate_data(path, likelihood="logistic", cluster_column="centre", n_fixed=1)
    assert data.covariate_names == ("snp1", "snp2", "snp3")
    assert data.n_observations == 30
    assert data.n_clusters == 3
    assert sorted(np.unique(np.asarray(data.cluster_index)).tolist()) == [0, 1, 2]
    assert data.model_space_partition_bounds == (1, 3)


def test_loader_reads_weibull_times(tmp_path):
    path = _write_data(tmp_path / "data.txt", with_time=True)
    data = load_covariate_data(path, likelihood="weibull")
    assert data.covariate_names == ("snp1", "snp2", "snp3")
    assert np.all(np.asarray(data.times) > 0.0)


def test_loader_missing_column_raises(tmp_path):
    path = _write_data(tmp_path / "data.txt")
    with pytest.raises(ConfigurationError):
        load_covariate_data(path, likelihood="logistic", outcome_column="case")


def test_cli_run(tmp_path):
    data_path = _write_data(tmp_path / "data.txt")
    results = tmp_path / "results.txt"
    code = main([
        "--data", str(data_path),
        "--results", str(results),
        "--likelihood", "logistic",
        "--iterations", "60",
        "--burn-in", "10",
        "--thinning", "5",
        "--adaption", "20",
        "--output-interval", "20",
        "--seed", "3",
        "--log-level", "WARNING",
    ])
    assert code == 0
    lines = results.read_text().splitlines()
    assert lines[1].split()[:3] == ["Logistic", "Poisson", "3"]
    assert lines[3].split() == ["alpha", "snp1", "snp2", "snp3", "LogBetaPriorSd1", "LogLikelihood"]
    assert len(lines) == 4 + 10


def test_cli_beta_binomial_with_scores(tmp_path):
    data_path = _write_data(tmp_path / "data.txt")
    results = tmp_path / "results.txt"
    code = main([
        "--data", str(data_path),
        "--results", str(results),
        "--likelihood", "gaussian_conj",
        "--iterations", "20",
        "--burn-in", "0",
        "--model-space-prior", "beta_binomial",
        "--beta-binomial-a", "1",
        "--beta-binomial-b", "4",
        "--scores-up-to-dim", "2",
        "--log-level", "WARNING",
    ])
    assert code == 0
    lines = results.read_text().splitlines()
    assert lines[1].split()[:2] == ["GaussianConj", "BetaBinomial"]
    assert lines[2] == "1.0 4.0"
    assert lines[3].startswith("Null ")
    assert lines[3 + 7].split()[0] == "alpha"


def test_cli_configuration_error_exits_with_usage_error(tmp_path):
    data_path = _write_data(tmp_path / "data.txt")
    with pytest.raises(SystemExit) as exc:
        main([
            "--data", str(data_path),
            "--results", str(tmp_path / "results.txt"),
            "--likelihood", "logistic",
            "--fixed", "7",
        ])
    assert exc.value.code == 2


def test_cli_mismatched_beta_binomial_hyperparameters_exit(tmp_path):
    data_path = _write_data(tmp_path / "data.txt")
    with pytest.raises(SystemExit) as exc:
        main([
            "--data", str(data_path),
            "--results", str(tmp_path / "results.txt"),
            "--likelihood", "logistic",
            "--model-space-prior", "beta_binomial",
            "--beta-binomial-a", "1", "2",
            "--beta-binomial-b", "4",
        ])
    assert exc.value.code == 2
