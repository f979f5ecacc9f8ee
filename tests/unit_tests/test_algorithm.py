import importlib
import os
import sys

import numpy as np
import pytest
import yaml
from conftest import NO_GRID_SEARCH, mock_psm_df, mock_store, random_tempfolder

from alphapi.algorithm import BayesianProteinInference
from alphapi.constants.keys import POSTERIOR_SCORE_TYPE
from alphapi.exceptions import (
    KeyAddedConfigError,
    NoProteinsError,
    OutOfRangeConfigError,
    TypeMismatchConfigError,
)
from alphapi.identification import UNSET_SCORE, IdentificationStore, ProteinHit
from alphapi.reporting import reporting
from alphapi.workflow.settings import ModelParameters


def _config(pep_emission=0.1, pep_spurious_emission=0.001, prot_prior=0.5):
    return {
        "param_optimize": {
            "pep_emission_candidates": [pep_emission],
            "pep_spurious_emission_candidates": [pep_spurious_emission],
            "prot_prior_candidates": [prot_prior],
        }
    }


def test_import_algorithm():
    module = importlib.import_module("alphapi.algorithm")

    assert module.BayesianProteinInference is BayesianProteinInference


def test_shared_peptide_end_to_end(shared_peptide_store):
    inference = BayesianProteinInference(
        _config(prot_prior=0.9, pep_emission=0.1, pep_spurious_emission=0.001)
    )

    # when
    model_parameters = inference.infer_posterior_probabilities(shared_peptide_store)

    protein_a, protein_b = shared_peptide_store.proteins
    assert protein_a.score > protein_b.score
    assert 0.0 <= protein_b.score <= 1.0
    assert 0.0 <= protein_a.score <= 1.0
    assert shared_peptide_store.score_type == POSTERIOR_SCORE_TYPE
    assert model_parameters == ModelParameters(
        pep_emission=0.1, pep_spurious_emission=0.001, prot_prior=0.9
    )
    assert all(result.converged for result in inference.results)


@pytest.mark.parametrize("extended_model", [False, True])
def test_unique_evidence_increases_posterior(extended_model):
    store = mock_store({"PEPA1": ["A"], "PEPA2": ["A"], "PEPB": ["B"]})
    inference = BayesianProteinInference(
        {"extended_model": extended_model, **_config(prot_prior=0.5)}
    )

    # when
    inference.infer_posterior_probabilities(store)

    protein_a, protein_b = store.proteins
    assert protein_a.score > protein_b.score > 0.5


def test_grid_search_commits_best_parameters(shared_peptide_store):
    grid_config = {
        "param_optimize": {
            "pep_emission_candidates": [0.1, 0.5, 0.9],
            "pep_spurious_emission_candidates": [0.001],
            "prot_prior_candidates": [0.5],
        }
    }
    grid_scores = iter([0.7, 0.9, 0.3])

    # when
    inference = BayesianProteinInference(grid_config)
    model_parameters = inference.infer_posterior_probabilities(
        shared_peptide_store, evaluator=lambda store: next(grid_scores)
    )

    assert model_parameters == ModelParameters(
        pep_emission=0.5, pep_spurious_emission=0.001, prot_prior=0.5
    )
    assert inference.best_score == pytest.approx(0.9)

    # the committed posteriors equal a direct run with the best parameters
    direct_store = mock_store({"PEPA": ["A"], "PEPAB": ["A", "B"]})
    BayesianProteinInference(
        _config(prot_prior=0.5, pep_emission=0.5, pep_spurious_emission=0.001)
    ).infer_posterior_probabilities(direct_store)

    assert [p.score for p in shared_peptide_store.proteins] == pytest.approx(
        [p.score for p in direct_store.proteins]
    )


def test_single_grid_triple_is_committed(shared_peptide_store):
    config = {
        "model_parameters": {"pep_emission": 0.1, "prot_prior": 0.9},
        **_config(pep_emission=0.5, prot_prior=0.5),
    }

    # when
    inference = BayesianProteinInference(config)
    model_parameters = inference.infer_posterior_probabilities(
        shared_peptide_store, evaluator=lambda store: pytest.fail("grid evaluated")
    )

    assert model_parameters == ModelParameters(
        pep_emission=0.5, pep_spurious_emission=0.001, prot_prior=0.5
    )
    assert inference.model_parameters == model_parameters
    assert inference.best_score is None

    direct_store = mock_store({"PEPA": ["A"], "PEPAB": ["A", "B"]})
    BayesianProteinInference(
        _config(pep_emission=0.5, prot_prior=0.5)
    ).infer_posterior_probabilities(direct_store)

    assert [p.score for p in shared_peptide_store.proteins] == pytest.approx(
        [p.score for p in direct_store.proteins]
    )


def test_default_configuration_on_psm_df():
    store = IdentificationStore.from_psm_df(mock_psm_df())

    # when
    inference = BayesianProteinInference()
    model_parameters = inference.infer_posterior_probabilities(store)

    assert model_parameters.pep_emission in (0.1, 0.3, 0.5, 0.7, 0.9)
    assert inference.best_score is not None

    protein_df = store.to_protein_df()
    assert protein_df["score"].between(0.0, 1.0).all()
    assert (
        protein_df[protein_df["decoy"] == 0]["score"].mean()
        > protein_df[protein_df["decoy"] == 1]["score"].mean()
    )


def test_thread_pool_matches_serial():
    psm_df = mock_psm_df(n_proteins=12)
    serial_store = IdentificationStore.from_psm_df(psm_df)
    threaded_store = IdentificationStore.from_psm_df(psm_df)

    # when
    BayesianProteinInference(NO_GRID_SEARCH).infer_posterior_probabilities(
        serial_store
    )
    BayesianProteinInference(
        {"general": {"thread_count": 2}, **NO_GRID_SEARCH}
    ).infer_posterior_probabilities(threaded_store)

    assert np.array_equal(
        serial_store.to_protein_df()["score"].values,
        threaded_store.to_protein_df()["score"].values,
    )


def test_protein_without_evidence_stays_unset(shared_peptide_store):
    shared_peptide_store.proteins.append(ProteinHit("LONELY", score=0.3))

    # when
    BayesianProteinInference(NO_GRID_SEARCH).infer_posterior_probabilities(
        shared_peptide_store
    )

    assert shared_peptide_store.proteins[-1].score == UNSET_SCORE


def test_annotate_groups_only():
    store = mock_store({"PEPA": ["A", "B"], "PEPB": ["A", "B"], "PEPC": ["C"]})
    for protein, score in zip(store.proteins, [0.3, 0.4, 0.5], strict=True):
        protein.score = score

    # when
    BayesianProteinInference(
        {"annotate_groups_only": True}
    ).infer_posterior_probabilities(store)

    assert [p.score for p in store.proteins] == [0.3, 0.4, 0.5]
    assert len(store.indistinguishable_groups) == 1
    assert store.indistinguishable_groups[0].accessions == ["A", "B"]
    assert store.indistinguishable_groups[0].probability == pytest.approx(0.4)


def test_groups_annotated_after_inference():
    store = mock_store({"PEPA": ["A", "B"], "PEPB": ["A", "B"]})

    # when
    BayesianProteinInference(NO_GRID_SEARCH).infer_posterior_probabilities(store)

    protein_a, protein_b = store.proteins
    assert protein_a.score == pytest.approx(protein_b.score, abs=1e-4)
    assert store.indistinguishable_groups[0].probability == pytest.approx(
        protein_b.score
    )


def test_no_proteins():
    with pytest.raises(NoProteinsError):
        BayesianProteinInference(NO_GRID_SEARCH).infer_posterior_probabilities(
            IdentificationStore()
        )


@pytest.mark.parametrize(
    "config, error",
    [
        ({"model_parameters": {"prot_prior": 1.5}}, OutOfRangeConfigError),
        ({"top_PSMs": -1}, OutOfRangeConfigError),
        (
            {"loopy_belief_propagation": {"scheduling_type": "bogus"}},
            OutOfRangeConfigError,
        ),
        ({"loopy_belief_propagation": {"dampening_lambda": 1.0}}, OutOfRangeConfigError),
        ({"param_optimize": {"aucweight": -0.1}}, OutOfRangeConfigError),
        ({"param_optimize": {"pep_emission_candidates": []}}, OutOfRangeConfigError),
        ({"unknown_option": 1}, KeyAddedConfigError),
        ({"top_PSMs": "one"}, TypeMismatchConfigError),
        ({"top_PSMs": 1.5}, OutOfRangeConfigError),
        ({"general": {"thread_count": 2.5}}, OutOfRangeConfigError),
        (
            {"loopy_belief_propagation": {"max_nr_iterations": 10.5}},
            OutOfRangeConfigError,
        ),
    ],
)
def test_invalid_configuration(config, error):
    with pytest.raises(error):
        BayesianProteinInference(config)


@pytest.mark.skipif(sys.platform == "win32", reason="does not run on windows")
def test_output_folder(shared_peptide_store):
    output_folder = os.path.join(random_tempfolder(), "output")

    # when
    BayesianProteinInference(
        NO_GRID_SEARCH, output_folder=output_folder
    ).infer_posterior_probabilities(shared_peptide_store)

    with open(os.path.join(output_folder, "config.yaml")) as f:
        config = yaml.safe_load(f)
    assert config["param_optimize"]["prot_prior_candidates"] == [0.5]

    with open(os.path.join(output_folder, "log.txt")) as f:
        log = f.read()
    assert "PROGRESS: Finished Bayesian protein inference" in log

    reporting.init_logging()
