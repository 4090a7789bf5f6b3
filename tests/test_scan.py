# Import dependencies
import pytest
from nmd_rules.scan import *
from conftest import GENOME


# Test reading VCF file
def test_read_vcf_file(vcf_path):

    gr = read_vcf(vcf_path)
    df = gr.df
    assert df.shape[0] == 4  # symbolic <DEL> allele dropped, T>A kept
    assert "Chromosome" in df.columns
    assert "Start" in df.columns
    assert "End" in df.columns

    var1 = df[df["ID"] == "var1"].iloc[0]
    assert var1["Start"] == 19  # 0-based
    assert var1["End"] == 20
    assert var1["Position"] == 20

    var4 = df[df["ID"] == "var4"]
    assert list(var4["Alt"]) == ["A"]


# Test reading GTF file
def test_read_gtf_file(gtf_path):
    gr = read_gtf(gtf_path)
    df = gr.df
    assert df.shape[0] == 4
    assert "transcript_id" in df.columns
    # converted to 0-based half-open
    exons = df[df.Feature == "exon"].sort_values("Start")
    assert list(exons["Start"]) == [10, 30]
    assert list(exons["End"]) == [20, 45]


# Test reading FASTA file
def test_read_fasta_file(fasta_path):
    fasta = read_fasta(fasta_path)
    assert list(fasta.keys()) == ["chr1"]
    assert str(fasta["chr1"][10:20]) == GENOME[10:20]


def test_missing_files(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_vcf(str(tmp_path / "missing.vcf"))
    with pytest.raises(FileNotFoundError):
        read_gtf(str(tmp_path / "missing.gtf"))
    with pytest.raises(FileNotFoundError):
        read_fasta(str(tmp_path / "missing.fa"))
