"""Bayesian protein inference on an identification store."""

import logging
import multiprocessing.pool
import os
from collections.abc import Callable
from dataclasses import replace

from tqdm import tqdm

from alphapi.exceptions import NoProteinsError
from alphapi.fdr import ProteinQualityEvaluator
from alphapi.graph.clustering import cluster_all
from alphapi.graph.evidence_graph import EvidenceGraph
from alphapi.identification import IdentificationStore
from alphapi.inference.engine import BeliefPropagationEngine, BeliefPropagationResult
from alphapi.inference.factor_graph import compile_component
from alphapi.inference.posteriors import (
    annotate_indistinguishable_groups,
    commit_posteriors,
    write_posteriors,
)
from alphapi.inference.scheduler import create_scheduler
from alphapi.optimization.grid_search import GridSearch
from alphapi.reporting.logging import print_environment, print_logo
from alphapi.reporting.reporting import init_logging
from alphapi.workflow.config import USER_DEFINED, Config, load_default_config
from alphapi.workflow.settings import InferenceSettings, ModelParameters

logger = logging.getLogger()


class BayesianProteinInference:
    def __init__(
        self, config: dict | Config | None = None, output_folder: str | None = None
    ) -> None:
        """Infer posterior probabilities of proteins with a Bayesian network and loopy belief propagation.

        Parameters
        ----------
        config : dict | Config, optional
            User configuration, merged into the default configuration. Keys that do not exist in the default
            configuration and values of a different type are rejected.

        output_folder : str, optional
            If given, `log.txt` and the merged `config.yaml` are written to this folder.

        Raises
        ------
        ConfigError
            If the merged configuration is invalid.
        """
        self.config = load_default_config()
        if config is not None:
            user_config = (
                config if isinstance(config, Config) else Config(config, USER_DEFINED)
            )
            self.config.update([user_config], do_print=False)

        self.settings = InferenceSettings.from_config(self.config)

        if output_folder is not None:
            os.makedirs(output_folder, exist_ok=True)
            init_logging(output_folder)
            self.config.to_yaml(os.path.join(output_folder, "config.yaml"))

        logger.setLevel(logging.getLevelName(self.config["general"]["log_level"]))
        print_environment()

        self.best_score: float | None = None
        self.model_parameters: ModelParameters = self.settings.model_parameters
        self.results: list[BeliefPropagationResult] = []

    def _solve_component(
        self,
        graph: EvidenceGraph,
        component_idx: int,
        model_parameters: ModelParameters,
    ) -> BeliefPropagationResult | None:
        if graph.is_degenerate(component_idx):
            logger.debug(
                f"Skipping component {component_idx} with a single node type"
            )
            return None

        factor_graph = compile_component(
            graph, graph.components[component_idx], model_parameters
        )
        if len(factor_graph) == 0:
            return None

        engine = BeliefPropagationEngine(
            create_scheduler(self.settings.belief_propagation), factor_graph
        )
        result = engine.run()
        write_posteriors(engine.estimate_posteriors(), graph)
        return result

    def run_inference(
        self, graph: EvidenceGraph, model_parameters: ModelParameters
    ) -> list[BeliefPropagationResult]:
        """Compile and solve every component with one parameter triple and write the posteriors to the graph.

        Components are independent, with `general.thread_count > 1` they are solved in a thread pool.

        Returns
        -------
        list[BeliefPropagationResult]
            One result per solved component.
        """
        graph.reset_posteriors()

        def solve(component_idx):
            return self._solve_component(graph, component_idx, model_parameters)

        component_indices = range(len(graph.components))
        if self.settings.thread_count > 1:
            with multiprocessing.pool.ThreadPool(self.settings.thread_count) as pool:
                results = list(
                    tqdm(
                        pool.imap(solve, component_indices),
                        total=len(component_indices),
                        disable=logger.level > logging.INFO,
                    )
                )
        else:
            results = [solve(component_idx) for component_idx in component_indices]

        results = [result for result in results if result is not None]
        n_not_converged = sum(1 for result in results if not result.converged)
        if n_not_converged > 0:
            logger.warning(
                f"{n_not_converged:,} of {len(results):,} components did not converge"
            )
        return results

    def infer_posterior_probabilities(
        self,
        store: IdentificationStore,
        evaluator: Callable[[IdentificationStore], float] | None = None,
    ) -> ModelParameters:
        """Run protein inference and annotate `store` in place.

        Protein scores are replaced by posterior probabilities and indistinguishable protein groups are annotated.
        The final run uses the best of the candidate parameter triples. A grid with a single triple is not evaluated,
        its triple is used directly.

        Parameters
        ----------
        store : IdentificationStore
            Identification records, modified in place.

        evaluator : Callable[[IdentificationStore], float], optional
            Quality score of a store with posterior probabilities, higher is better.
            Defaults to `ProteinQualityEvaluator` with the configured `aucweight`.

        Returns
        -------
        ModelParameters
            Parameters of the committed run.

        Raises
        ------
        NoProteinsError
            If the store does not contain any protein.
        """
        print_logo()
        logger.progress("Running Bayesian protein inference")

        if len(store.proteins) == 0:
            raise NoProteinsError()

        graph = EvidenceGraph.build(store, top_psms=self.settings.top_psms)
        graph.compute_connected_components()

        if self.settings.annotate_groups_only:
            cluster_all(graph, extended=False)
            annotate_indistinguishable_groups(graph, store)
            return self.model_parameters

        cluster_all(graph, extended=self.settings.extended_model)

        grid = self.settings.grid_search
        if grid.is_trivial:
            self.model_parameters = grid.model_parameters()
        else:
            if evaluator is None:
                evaluator = ProteinQualityEvaluator(grid.aucweight)
            self.model_parameters = self._optimize(graph, store, evaluator)

        logger.progress(
            f"Final run with alpha={self.model_parameters.pep_emission}, "
            f"beta={self.model_parameters.pep_spurious_emission}, gamma={self.model_parameters.prot_prior}"
        )
        self.results = self.run_inference(graph, self.model_parameters)

        store.reset_scores()
        commit_posteriors(graph, store)
        annotate_indistinguishable_groups(graph, store)
        logger.progress("Finished Bayesian protein inference")
        return self.model_parameters

    def _optimize(
        self,
        graph: EvidenceGraph,
        store: IdentificationStore,
        evaluator: Callable[[IdentificationStore], float],
    ) -> ModelParameters:
        grid = self.settings.grid_search
        grid_search = GridSearch(
            grid.pep_emission_candidates,
            grid.pep_spurious_emission_candidates,
            grid.prot_prior_candidates,
        )
        logger.progress(f"Evaluating {len(grid_search):,} parameter combinations")

        def evaluate(alpha, beta, gamma):
            model_parameters = replace(
                self.settings.model_parameters,
                pep_emission=alpha,
                pep_spurious_emission=beta,
                prot_prior=gamma,
            )
            self.run_inference(graph, model_parameters)
            store.reset_scores()
            commit_posteriors(graph, store)
            return evaluator(store)

        self.best_score, (i_alpha, i_beta, i_gamma) = grid_search.evaluate(evaluate)

        model_parameters = grid.model_parameters(i_alpha, i_beta, i_gamma)
        logger.info(f"Best parameters {model_parameters} with score {self.best_score}")
        return model_parameters
