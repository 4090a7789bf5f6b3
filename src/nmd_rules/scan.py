# Import dependencies
import os
import pandas as pd
import pyranges as pr
from pyfaidx import Fasta

# Create the functions used for reading in the files (VCF, GTF, FASTA)

VCF_COLUMNS = ['Chromosome', 'Start', 'ID', 'Ref', 'Alt', 'Qual', 'Filter', 'Info']

def read_vcf(vcf_path):
    """
    Read a single VCF file into a PyRanges object with adjusted coordinates.
    Multi-allelic records are split into one row per ALT allele, symbolic alleles (<DEL>, <DUP>, ...) and
    missing ALT alleles are dropped since they cannot be applied to a sequence.
    """
    if not os.path.exists(vcf_path):
        raise FileNotFoundError(f"VCF file not found: {vcf_path}")

    df = pd.read_csv(
        vcf_path,
        comment='#',
        sep='\t',
        header=None,
        usecols=range(len(VCF_COLUMNS)),
        dtype={0: str, 2: str, 3: str, 4: str}
    )
    df.columns = VCF_COLUMNS

    # One row per ALT allele
    df['Alt'] = df['Alt'].str.split(',')
    df = df.explode('Alt', ignore_index=True)
    df = df[df['Alt'].str.fullmatch(r'[ACGTNacgtn]+', na=False)].copy()
    df['Ref'] = df['Ref'].str.upper()
    df['Alt'] = df['Alt'].str.upper()

    # VCF position of the variant, kept for the output
    df['Position'] = df['Start']

    # Adjust coordinates to 0-based
    df['Start'] = df['Start'] - 1
    df['End'] = df['Start'] + df['Ref'].str.len()

    # Keep only relevant columns
    gr = pr.PyRanges(df[['Chromosome', 'Start', 'End', 'Position', 'ID', 'Ref', 'Alt', 'Qual', 'Filter', 'Info']])
    return gr

def read_gtf(gtf_path):
    """
    Reads a GTF file into a PyRanges object.
    """
    if not os.path.exists(gtf_path):
        raise FileNotFoundError(f"GTF file not found: {gtf_path}")
    return pr.read_gtf(gtf_path)

def read_fasta(fasta_path):
    """
    Reads a genome FASTA file using pyfaidx.Fasta and returns a pyfaidx.Fasta object.
    """
    if not os.path.exists(fasta_path):
        raise FileNotFoundError(f"FASTA file not found: {fasta_path}")
    return Fasta(fasta_path)
