import os
import tempfile

import numpy as np
import pandas as pd
import pytest

from alphapi.identification import (
    IdentificationStore,
    PeptideHit,
    PeptideIdentification,
    ProteinHit,
)

# a single parameter triple, no grid search
NO_GRID_SEARCH = {
    "param_optimize": {
        "pep_emission_candidates": [0.1],
        "pep_spurious_emission_candidates": [0.001],
        "prot_prior_candidates": [0.5],
    }
}


def mock_store(
    peptides: dict[str, list[str]],
    scores: dict[str, float] | None = None,
    decoys: list[str] | None = None,
) -> IdentificationStore:
    """Create a store with one spectrum and one PSM per peptide.

    Parameters
    ----------
    peptides : dict[str, list[str]]
        Peptide sequence to the accessions of the proteins containing it.
        Proteins are created in order of first appearance.

    scores : dict[str, float], optional
        PSM score per peptide, defaults to 0.9.

    decoys : list[str], optional
        Accessions of decoy proteins.

    Returns
    -------
    IdentificationStore
    """
    scores = scores or {}
    decoys = decoys or []

    accessions = []
    for protein_accessions in peptides.values():
        for accession in protein_accessions:
            if accession not in accessions:
                accessions.append(accession)

    return IdentificationStore(
        proteins=[
            ProteinHit(accession=accession, decoy=accession in decoys)
            for accession in accessions
        ],
        peptide_ids=[
            PeptideIdentification(
                hits=[
                    PeptideHit(
                        sequence=sequence,
                        score=scores.get(sequence, 0.9),
                        charge=2,
                        protein_accessions=list(protein_accessions),
                    )
                ],
                run="run_1",
            )
            for sequence, protein_accessions in peptides.items()
        ],
    )


@pytest.fixture
def shared_peptide_store():
    """Protein A with two peptides, protein B sharing one of them."""
    return mock_store({"PEPTIDEA": ["A"], "PEPTIDEAB": ["A", "B"]})


def mock_psm_df(n_proteins: int = 20, random_state: int = 42) -> pd.DataFrame:
    """Create a mock PSM dataframe with target and decoy proteins.

    Every protein has between one and three peptides. Target PSMs score high, decoy PSMs score low.
    Every fourth protein is a decoy.
    """
    rng = np.random.default_rng(random_state)

    rows = []
    spectrum_idx = 0
    for protein_idx in range(n_proteins):
        decoy = protein_idx % 4 == 3
        accession = f"{'rev_' if decoy else ''}PROT{protein_idx}"
        for peptide_idx in range(rng.integers(1, 4)):
            rows.append(
                {
                    "spectrum_idx": spectrum_idx,
                    "run": f"run_{spectrum_idx % 2}",
                    "sequence": f"PEPTIDE{protein_idx}K{peptide_idx}",
                    "charge": int(rng.choice([2, 3])),
                    "score": float(
                        rng.uniform(0.0, 0.3) if decoy else rng.uniform(0.7, 1.0)
                    ),
                    "proteins": accession,
                    "decoy": int(decoy),
                }
            )
            spectrum_idx += 1

    return pd.DataFrame(rows)


def random_tempfolder():
    """Create a randomly named temp folder in the system temp folder

    Returns
    -------
    path : str
        Path to the created temp folder

    """
    tempdir = tempfile.gettempdir()
    # 6 alphanumeric characters
    random_foldername = "alphapi_" + "".join(
        np.random.choice(list("abcdefghijklmnopqrstuvwxyz0123456789"), 6)
    )
    path = os.path.join(tempdir, random_foldername)
    os.makedirs(path, exist_ok=True)
    return path
