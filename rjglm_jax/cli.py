# rjglm_jax/cli.py
"""
Command-line entry point: load a data file, run one RJMH chain and write
the results file.

    rjglm-jax --data data.txt --results results.txt --likelihood logistic \
        --iterations 100000 --burn-in 10000 --thinning 10
"""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

from .core.errors import ConfigurationError
from .inference.rj import RJMH, RJMHCFG
from .io.data import load_covariate_data
from .likelihoods import available as available_likelihoods
from .priors import PriorModel, get_model_space_prior
from .utils.logging import setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rjglm-jax",
        description="Bayesian GLM variable selection by reversible-jump Metropolis-Hastings",
    )
    io = parser.add_argument_group("input/output")
    io.add_argument("--data", type=Path, required=True, help="Whitespace-delimited data file with a header row")
    io.add_argument("--results", type=Path, required=True, help="Results file to write")
    io.add_argument("--likelihood", required=True, choices=available_likelihoods())
    io.add_argument("--outcome-column", default="outcome")
    io.add_argument("--time-column", default="time", help="Survival time column (Weibull)")
    io.add_argument("--cluster-column", default=None, help="Cluster label column (random intercepts)")

    chain = parser.add_argument_group("chain")
    chain.add_argument("--iterations", type=int, default=10000)
    chain.add_argument("--burn-in", type=int, default=1000)
    chain.add_argument("--thinning", type=int, default=1)
    chain.add_argument("--adaption", type=int, default=1000, help="Iterations of proposal-SD adaption")
    chain.add_argument("--output-interval", type=int, default=1000)
    chain.add_argument("--seed", type=int, default=1)
    chain.add_argument("--move-probabilities", type=float, nargs=4, default=(0.25, 0.25, 0.25, 0.25),
                       metavar=("ADD", "REMOVE", "SWAP", "NULL"))
    chain.add_argument("--alternative-initial-values", action="store_true")
    chain.add_argument("--scores-up-to-dim", type=int, default=0,
                       help="Score every model up to this size before sampling (conjugate families)")
    chain.add_argument("--progress", action="store_true", help="Show a progress bar")

    model = parser.add_argument_group("model space")
    model.add_argument("--fixed", type=int, default=0, help="Leading covariates always in the model")
    model.add_argument("--partition-bounds", type=int, nargs="+", default=None,
                       help="Model-space partition bounds, from --fixed to the number of covariates")
    model.add_argument("--model-space-prior", choices=("poisson", "beta_binomial"), default="poisson")
    model.add_argument("--poisson-means", type=float, nargs="+", default=None)
    model.add_argument("--beta-binomial-a", type=float, nargs="+", default=None)
    model.add_argument("--beta-binomial-b", type=float, nargs="+", default=None)

    priors = parser.add_argument_group("coefficient priors")
    priors.add_argument("--alpha-prior-sd", type=float, default=1000.0)
    priors.add_argument("--informative-sds", type=float, nargs="+", default=())
    priors.add_argument("--beta-prior-partition-bounds", type=int, nargs="+", default=None)
    priors.add_argument("--tau", type=float, default=None, help="Conjugate coefficient prior scale (default n)")
    priors.add_argument("--model-tau", action="store_true", help="Sample tau (conjugate families)")

    parser.add_argument("--log-level", default="INFO")
    parser.add_argument("--log-dir", type=Path, default=None)
    return parser


def _model_space_prior(args, n_partitions: int):
    ones = [1.0] * n_partitions
    if args.model_space_prior == "poisson":
        return get_model_space_prior("poisson", args.poisson_means or ones)
    return get_model_space_prior(
        "beta_binomial", args.beta_binomial_a or ones, args.beta_binomial_b or ones
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level, log_dir=args.log_dir)

    try:
        data = load_covariate_data(
            args.data,
            likelihood=args.likelihood,
            outcome_column=args.outcome_column,
            time_column=args.time_column,
            cluster_column=args.cluster_column,
            n_fixed=args.fixed,
            model_space_partition_bounds=args.partition_bounds,
        )
        priors = PriorModel(
            model_space=_model_space_prior(args, data.n_partitions),
            alpha_prior_sd=args.alpha_prior_sd,
            informative_sds=tuple(args.informative_sds),
            beta_prior_partition_bounds=(
                None if args.beta_prior_partition_bounds is None else tuple(args.beta_prior_partition_bounds)
            ),
            tau=args.tau,
            model_tau=args.model_tau,
        )
        p_add, p_remove, p_swap, p_null = args.move_probabilities
        cfg = RJMHCFG(
            n_iterations=args.iterations,
            burn_in=args.burn_in,
            thinning=args.thinning,
            adaption_length=args.adaption,
            console_output_interval=args.output_interval,
            seed=args.seed,
            prob_add=p_add,
            prob_remove=p_remove,
            prob_swap=p_swap,
            prob_null=p_null,
            alternative_initial_values=args.alternative_initial_values,
            all_model_scores_up_to_dim=args.scores_up_to_dim,
            progress=args.progress,
        )
        run = RJMH(cfg).run(data, priors, results=args.results)
    except ConfigurationError as e:
        parser.error(str(e))

    for name, p in run.posterior_inclusion_probabilities.items():
        logger.debug("PIP %s: %.3f", name, p)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
