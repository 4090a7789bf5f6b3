# Import dependencies
import pandas as pd
import pytest
from Bio.Seq import Seq
from nmd_rules.rules import Exon
from nmd_rules.sequence import Edit
from nmd_rules.translate import get_codon_table
from nmd_rules.transcripts import *

# Two exon transcript on chr1: exon [10, 20) and [30, 45), CDS ATG AAA CAG TGG GCT TAA from 13 to 41, 3'UTR CATG
GENOME = "T" * 10 + "CCCATGAAAC" + "G" * 10 + "AGTGGGCTTAACATG" + "T" * 5


def make_annotation(strand="+"):
    # the - strand version mirrors the coordinates of the + strand transcript on the reverse complement genome
    exons = [(10, 20), (30, 45)]
    cds = [(13, 20), (30, 38)]
    if strand == "-":
        exons = [(len(GENOME) - end, len(GENOME) - start) for start, end in exons]
        cds = [(len(GENOME) - end, len(GENOME) - start) for start, end in cds]

    exons_df = pd.DataFrame([
        {"transcript_id": "tx1", "gene_id": "gene1", "Chromosome": "chr1", "Start": s, "End": e, "Strand": strand}
        for s, e in exons
    ] + [
        # non-coding transcript
        {"transcript_id": "tx_nc", "gene_id": "gene1", "Chromosome": "chr1", "Start": 0, "End": 8, "Strand": strand}
    ])
    cds_df = pd.DataFrame([
        {"transcript_id": "tx1", "gene_id": "gene1", "Chromosome": "chr1", "Start": s, "End": e, "Strand": strand}
        for s, e in cds
    ])
    return exons_df, adjust_last_cds_for_stop_codon(cds_df)


@pytest.fixture
def plus_model():
    exons_df, cds_df = make_annotation("+")
    return build_transcript_models(exons_df, cds_df, {"chr1": GENOME})["tx1"]


@pytest.fixture
def minus_model():
    exons_df, cds_df = make_annotation("-")
    genome = str(Seq(GENOME).reverse_complement())
    return build_transcript_models(exons_df, cds_df, {"chr1": genome})["tx1"]


@pytest.fixture(scope="session")
def codon_table():
    return get_codon_table(1)


def test_adjust_last_cds_for_stop_codon():

    # Plus strand: extend last exon at the END (+3 to End)
    # Minus strand: extend last exon at the START (-3 from Start)

    df = pd.DataFrame({
        "transcript_id": ["tx1", "tx1", "tx1", "tx2", "tx2", "tx2"],
        "Start": [100, 200, 300, 500, 800, 900],
        "End": [150, 250, 350, 550, 850, 950],
        "Strand": ["+", "+", "+", "-", "-", "-"]
    })

    adjusted = adjust_last_cds_for_stop_codon(df)

    assert list(adjusted["Start"]) == [100, 200, 300, 497, 800, 900]
    assert list(adjusted["End"]) == [150, 250, 353, 550, 850, 950]
    # input is not modified
    assert df.loc[2, "End"] == 350


def test_trim_alleles():
    assert trim_alleles(100, "A", "T") == (100, "A", "T")
    assert trim_alleles(100, "C", "CG") == (101, "", "G")       # insertion
    assert trim_alleles(100, "CAG", "C") == (101, "AG", "")     # deletion
    assert trim_alleles(100, "CAT", "CGT") == (101, "A", "G")   # shared prefix and suffix
    assert trim_alleles(100, "A", "A") == (101, "", "")


def test_genomic_to_transcript():
    plus_exons = ((10, 13), (20, 24), (30, 35))
    assert genomic_to_transcript(plus_exons, "+", 10) == 0
    assert genomic_to_transcript(plus_exons, "+", 21) == 4
    assert genomic_to_transcript(plus_exons, "+", 30) == 7
    assert genomic_to_transcript(plus_exons, "+", 15) is None

    minus_exons = ((30, 35), (20, 24), (10, 13))
    assert genomic_to_transcript(minus_exons, "-", 34) == 0
    assert genomic_to_transcript(minus_exons, "-", 30) == 4
    assert genomic_to_transcript(minus_exons, "-", 23) == 5
    assert genomic_to_transcript(minus_exons, "-", 12) == 9
    assert genomic_to_transcript(minus_exons, "-", 10) == 11


def test_codon_table_for_chromosome():
    assert codon_table_for_chromosome("chrM") == 2
    assert codon_table_for_chromosome("MT") == 2
    assert codon_table_for_chromosome("chr1") == 1
    assert codon_table_for_chromosome("chr1", default=11) == 11


def test_build_transcript_models():
    exons_df, cds_df = make_annotation("+")
    models = build_transcript_models(exons_df, cds_df, {"chr1": GENOME})

    # non-coding transcripts are skipped
    assert list(models) == ["tx1"]

    model = models["tx1"]
    assert model.transcript_seq == "CCCATGAAACAGTGGGCTTAACATG"
    assert model.cds_seq == "ATGAAACAGTGGGCTTAA"
    assert model.three_prime_utr == "CATG"
    assert model.coding_start_offset == 4
    assert model.gene_id == "gene1"
    assert model.exons() == (
        Exon(coding_start=1, coding_end=10, length=10, rank=1),
        Exon(coding_start=11, coding_end=25, length=15, rank=2),
    )


def test_build_transcript_models_minus_strand(plus_model, minus_model):
    assert minus_model.exon_bounds == ((30, 40), (5, 20))
    assert minus_model.transcript_seq == plus_model.transcript_seq
    assert minus_model.cds_seq == plus_model.cds_seq
    assert minus_model.three_prime_utr == plus_model.three_prime_utr
    assert minus_model.exons() == plus_model.exons()


def test_variant_to_edit(plus_model):
    # CAG -> TAG
    assert plus_model.variant_to_edit(19, "C", "T") == Edit(7, 7, "T")
    # insertion of T after the anchor G of the start codon
    assert plus_model.variant_to_edit(15, "G", "GT") == Edit(4, 3, "T")
    # deletion of AA with anchor base
    assert plus_model.variant_to_edit(15, "GAA", "G") == Edit(4, 5, "")
    # first base of the second exon
    assert plus_model.variant_to_edit(30, "A", "G") == Edit(8, 8, "G")


def test_variant_to_edit_not_applicable(plus_model):
    # spans the intron
    assert plus_model.variant_to_edit(18, "ACGG", "A") is None
    # 5'UTR
    assert plus_model.variant_to_edit(11, "C", "A") is None
    # intron
    assert plus_model.variant_to_edit(25, "G", "A") is None
    # 3'UTR
    assert plus_model.variant_to_edit(42, "A", "G") is None
    # reference mismatch
    assert plus_model.variant_to_edit(19, "A", "T") is None
    # no change
    assert plus_model.variant_to_edit(19, "C", "C") is None


def test_variant_to_edit_minus_strand(minus_model):
    # same CAG -> TAG change as on the + strand, reported on the reverse strand
    assert minus_model.variant_to_edit(30, "G", "A") == Edit(7, 7, "T")
    # insertion: anchor T at 33 on the reverse genome, inserted A is T on the transcript
    assert minus_model.variant_to_edit(33, "T", "TA") == Edit(4, 3, "T")


def test_affects_stop_codon(plus_model, codon_table):
    # stop gained
    assert affects_stop_codon(plus_model, Edit(7, 7, "T"), codon_table)
    # frameshift creating a stop: ATG TAA
    assert affects_stop_codon(plus_model, Edit(4, 3, "T"), codon_table)
    # synonymous change of the stop codon TAA -> TAG
    assert not affects_stop_codon(plus_model, Edit(18, 18, "G"), codon_table)
    # in-frame deletion of a codon only shifts the stop codon
    assert not affects_stop_codon(plus_model, Edit(4, 6, ""), codon_table)
    # missense
    assert not affects_stop_codon(plus_model, Edit(4, 4, "C"), codon_table)
    # frameshift without any downstream stop codon
    assert not affects_stop_codon(plus_model, Edit(4, 4, ""), codon_table)
