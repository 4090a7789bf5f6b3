# Import dependencies
import pytest

# pytest-fixtures as inputs for the tests: a small chr1 with one two-exon coding transcript
# exon 11-20 and 31-45 (1-based), CDS ATG AAA CAG TGG GCT TAA, 3'UTR CATG

GENOME = "T" * 10 + "CCCATGAAAC" + "G" * 10 + "AGTGGGCTTAACATG" + "T" * 5

GTF_LINES = [
    ["chr1", "test", "exon", "11", "20", ".", "+", ".", 'gene_id "gene1"; transcript_id "tx1"; exon_number "1";'],
    ["chr1", "test", "exon", "31", "45", ".", "+", ".", 'gene_id "gene1"; transcript_id "tx1"; exon_number "2";'],
    ["chr1", "test", "CDS", "14", "20", ".", "+", "0", 'gene_id "gene1"; transcript_id "tx1"; exon_number "1";'],
    ["chr1", "test", "CDS", "31", "38", ".", "+", "2", 'gene_id "gene1"; transcript_id "tx1"; exon_number "2";'],
]

VCF_LINES = [
    ["chr1", "20", "var1", "C", "T", ".", "PASS", "."],       # CAG -> TAG, stop gained
    ["chr1", "16", "var2", "G", "GT", ".", "PASS", "."],      # frameshift, ATG TAA
    ["chr1", "14", "var3", "A", "G", ".", "PASS", "."],       # start codon change, stop unaffected
    ["chr1", "5", "var4", "T", "A,<DEL>", ".", "PASS", "."],  # intergenic, multi-allelic
]


@pytest.fixture(scope="session")
def data_dir(tmp_path_factory):
    return tmp_path_factory.mktemp("resources")


@pytest.fixture(scope="session")
def gtf_path(data_dir):
    path = data_dir / "test.gtf"
    path.write_text("".join("\t".join(line) + "\n" for line in GTF_LINES))
    return str(path)


@pytest.fixture(scope="session")
def vcf_path(data_dir):
    path = data_dir / "variants.vcf"
    header = "##fileformat=VCFv4.2\n#CHROM\tPOS\tID\tREF\tALT\tQUAL\tFILTER\tINFO\n"
    path.write_text(header + "".join("\t".join(line) + "\n" for line in VCF_LINES))
    return str(path)


@pytest.fixture(scope="session")
def fasta_path(data_dir):
    path = data_dir / "genome.fa"
    path.write_text(f">chr1\n{GENOME}\n")
    return str(path)
