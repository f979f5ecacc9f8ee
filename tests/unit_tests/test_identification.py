import numpy as np
import pandas as pd
import pytest

from alphapi.identification import (
    UNSET_SCORE,
    IdentificationStore,
    ProteinGroup,
)


def test_from_psm_df_derives_proteins_and_spectra():
    psm_df = pd.DataFrame(
        {
            "spectrum_idx": [7, 7, 3],
            "run": ["r1", "r1", "r2"],
            "sequence": ["PEPA", "PEPB", "PEPC"],
            "charge": [2, 3, 2],
            "score": [0.9, 0.4, 0.8],
            "proteins": ["P2;P1", "P1", "rev_P3"],
            "decoy": [0, 0, 1],
        }
    )

    # when
    store = IdentificationStore.from_psm_df(psm_df)

    assert [p.accession for p in store.proteins] == ["P2", "P1", "rev_P3"]
    assert [p.decoy for p in store.proteins] == [False, False, True]
    assert all(p.score == UNSET_SCORE for p in store.proteins)

    # spectra in order of first appearance
    assert len(store.peptide_ids) == 2
    assert store.peptide_ids[0].run == "r1"
    assert [h.sequence for h in store.peptide_ids[0].hits] == ["PEPA", "PEPB"]
    assert store.peptide_ids[0].hits[0].protein_accessions == ["P2", "P1"]
    assert store.peptide_ids[0].hits[1].charge == 3
    assert store.peptide_ids[1].hits[0].score == pytest.approx(0.8)


def test_from_psm_df_with_protein_df():
    psm_df = pd.DataFrame(
        {
            "spectrum_idx": [0],
            "sequence": ["PEPA"],
            "score": [0.9],
            "proteins": ["P1"],
        }
    )
    protein_df = pd.DataFrame({"accession": ["P1", "P2"], "decoy": [0, 1]})

    # when
    store = IdentificationStore.from_psm_df(psm_df, protein_df)

    assert [p.accession for p in store.proteins] == ["P1", "P2"]
    assert [p.decoy for p in store.proteins] == [False, True]
    assert store.peptide_ids[0].run == ""
    assert store.peptide_ids[0].hits[0].charge == 0


def test_from_psm_df_missing_proteins():
    psm_df = pd.DataFrame(
        {
            "spectrum_idx": [0, 1],
            "sequence": ["PEPA", "PEPB"],
            "score": [0.9, 0.5],
            "proteins": ["P1", np.nan],
        }
    )

    # when
    store = IdentificationStore.from_psm_df(psm_df)

    assert [p.accession for p in store.proteins] == ["P1"]
    assert store.peptide_ids[1].hits[0].protein_accessions == []


def test_from_psm_df_missing_column():
    psm_df = pd.DataFrame({"spectrum_idx": [0], "sequence": ["PEPA"], "score": [0.9]})

    with pytest.raises(ValueError, match="proteins"):
        IdentificationStore.from_psm_df(psm_df)


def test_to_protein_df(shared_peptide_store):
    shared_peptide_store.proteins[0].score = 0.75
    shared_peptide_store.indistinguishable_groups = [
        ProteinGroup(accessions=["A", "B"], probability=0.5)
    ]

    # when
    protein_df = shared_peptide_store.to_protein_df()
    protein_group_df = shared_peptide_store.to_protein_group_df()

    assert protein_df["accession"].tolist() == ["A", "B"]
    assert protein_df["score"].tolist() == [0.75, UNSET_SCORE]
    assert protein_df["decoy"].tolist() == [0, 0]
    assert protein_group_df["accessions"].tolist() == ["A;B"]
    assert protein_group_df["probability"].tolist() == [0.5]


def test_reset_scores(shared_peptide_store):
    for protein in shared_peptide_store.proteins:
        protein.score = 0.3

    # when
    shared_peptide_store.reset_scores()

    assert all(p.score == UNSET_SCORE for p in shared_peptide_store.proteins)
