# Import dependencies
import argparse
import os
from collections import Counter

import pandas as pd
import pyranges as pr

from nmd_rules.errors import NMDRulesError
from nmd_rules.predict import NMDRequest, predict_nmd
from nmd_rules.scan import read_vcf, read_gtf, read_fasta
from nmd_rules.transcripts import (
    adjust_last_cds_for_stop_codon,
    affects_stop_codon,
    build_transcript_models,
    codon_table_for_chromosome,
)
from nmd_rules.translate import get_codon_table

VARIANT_COLUMNS = [
    "chromosome", "position", "variant_id", "ref", "alt",
    "transcript_id", "gene_id", "strand", "cds_start", "cds_end",
]

OUTPUT_COLUMNS = VARIANT_COLUMNS + [
    "stop_position", "NMD_prediction", "NMD_rule", "Next_ATG", "Stop_context",
    "nmd_intronless_rule", "nmd_last_exon_rule", "nmd_50bp_penultimate_rule",
    "nmd_first_150bp_rule", "nmd_long_exon_rule",
]


def annotate_variants(vcf, cds_df_adj, exons_df, fasta, codon_table=1, clip_penultimate=False, trace=None):

    """
    Predict NMD for every variant overlapping a coding transcript.

    :param vcf: Parsed VCF variant entries (PyRanges object, see scan.read_vcf)
    :param cds_df_adj: CDS entries from the GTF file including stop codons (DataFrame)
    :param exons_df: All exonic entries from the GTF file (DataFrame)
    :param fasta: Reference genome sequence (pyfaidx.Fasta object)
    :param codon_table: Codon table id for nuclear transcripts
    :param clip_penultimate: Clip the 50bp penultimate exon window to the exon start
    :param trace: Optional callable receiving diagnostic messages
    :return: DataFrame with one row per stop codon affecting variant-transcript pair
    """

    # Intersect variants with CDS regions
    intersection_cds_vcf = pr.PyRanges(cds_df_adj).join(vcf, suffix="_variant").df
    print("Joining variants with cds entries: done.")

    if intersection_cds_vcf.empty:
        return pd.DataFrame(columns=OUTPUT_COLUMNS)

    # Deletions can overlap several CDS segments of the same transcript
    intersection_cds_vcf = intersection_cds_vcf.drop_duplicates(
        subset=["transcript_id", "Chromosome", "Start_variant", "Ref", "Alt", "ID"]
    )

    # Limit to relevant transcripts (to save time), one model per transcript shared by all its variants
    relevant_transcripts = intersection_cds_vcf["transcript_id"].unique()
    models = build_transcript_models(
        exons_df[exons_df["transcript_id"].isin(relevant_transcripts)],
        cds_df_adj[cds_df_adj["transcript_id"].isin(relevant_transcripts)],
        fasta,
    )
    print("Building transcript models: done.")

    results = []
    skipped = Counter()

    for _, row in intersection_cds_vcf.iterrows():
        record = {
            "chromosome": row["Chromosome"],
            "position": row["Position"],
            "variant_id": row["ID"],
            "ref": row["Ref"],
            "alt": row["Alt"],
            "transcript_id": row["transcript_id"],
        }

        model = models.get(row["transcript_id"])
        if model is None:
            skipped["no transcript model"] += 1
            continue

        # Splice-spanning and non-coding edits are not analysed
        edit = model.variant_to_edit(row["Start_variant"], row["Ref"], row["Alt"])
        if edit is None:
            skipped["outside CDS, spanning an exon boundary or reference mismatch"] += 1
            continue

        codon_table_id = codon_table_for_chromosome(model.chromosome, codon_table)
        if not affects_stop_codon(model, edit, get_codon_table(codon_table_id)):
            skipped["not stop codon affecting"] += 1
            continue

        if trace is not None:
            trace(f"\n{record['chromosome']}-{record['position']}-{record['ref']}-{record['alt']} {model.transcript_id}")

        request = NMDRequest(
            coding_sequence=model.cds_seq,
            three_prime_utr=model.three_prime_utr,
            exons=model.exons(),
            edit=edit,
            variant_coding_end=edit.end,
            codon_table_id=codon_table_id,
            coding_start_offset=model.coding_start_offset,
        )
        try:
            result = predict_nmd(request, trace=trace, clip_penultimate=clip_penultimate)
        except NMDRulesError as e:
            skipped[type(e).__name__] += 1
            continue

        record.update({
            "gene_id": model.gene_id,
            "strand": model.strand,
            "cds_start": edit.start,
            "cds_end": edit.end,
            "stop_position": result.stop_position,
        })
        record.update(result.as_dict())
        record.update(result.flags.as_dict())
        results.append(record)

    for reason, count in skipped.items():
        print(f"[Warning] Skipping {count} variant-transcript pairs: {reason}.")

    return pd.DataFrame(results, columns=OUTPUT_COLUMNS)


def main(vcf_path, gtf_path, fasta_path, output, codon_table=1, clip_penultimate=False, verbose=False):

    """
    Main function for NMD rules

    Steps:
    1. Read input files (VCF, GTF, FASTA)
    2. Extract CDS (including stop codons) and exons from the gene annotation
    3. Map variants to coding sequence edits and keep the stop codon affecting ones
    4. Predict NMD triggering / escaping and the stop codon context
    5. Save output results

    :param vcf_path: path to the input VCF file
    :param gtf_path: path to the input GTF annotation file
    :param fasta_path: path to the reference FASTA file
    :param output: output CSV file or directory to save the results in
    :param codon_table: codon table id for nuclear transcripts
    :param clip_penultimate: clip the 50bp penultimate exon window to the exon start
    :param verbose: print diagnostics for every analysed variant
    :return: DataFrame with the NMD predictions
    """

    # read VCF file (variants)
    print(f"Reading VCF file: {vcf_path}")
    vcf = read_vcf(vcf_path)
    print(f"VCF shape: {vcf.df.shape}")

    # read GTF file (gene annotation)
    print(f"Reading GTF file: {gtf_path}")
    gtf = read_gtf(gtf_path)
    print(f"GTF File shape: {gtf.df.shape}")

    # read FASTA file (genome sequence)
    print(f"Reading FASTA file: {fasta_path}")
    fasta = read_fasta(fasta_path)

    # extract CDS and exon regions from the GTF file
    cds_df = gtf[gtf.Feature == "CDS"].df
    exons_df = gtf[gtf.Feature == "exon"].df

    # Adjust the last 3 CDS positions to include stop codons
    cds_df_adj = adjust_last_cds_for_stop_codon(cds_df)
    print("Adjusting last CDS for stop codon: done.")

    print("Predicting NMD for stop codon affecting variants...")
    results = annotate_variants(
        vcf, cds_df_adj, exons_df, fasta,
        codon_table=codon_table,
        clip_penultimate=clip_penultimate,
        trace=print if verbose else None,
    )

    # Write output
    if os.path.isdir(output):
        vcf_base = os.path.splitext(os.path.basename(vcf_path))[0]
        output_file = os.path.join(output, f"{vcf_base}_nmd_rules.csv")
    else:
        output_file = output
    print(f"Writing {len(results)} results to {output_file}")
    results.to_csv(output_file, index=False)

    return results


def is_valid_output_path(path):

    """
    Validate if the output path exists or is creatable.
    Allows a file path (where the parent directory must exist) or a directory.
    """

    if os.path.exists(path):
        return True
    parent = os.path.dirname(path)
    return os.path.isdir(parent) if parent else False


def parse_args(argv=None):

    # CLI argument parser
    parser = argparse.ArgumentParser(description="Predict NMD for stop codon generating variants")
    parser.add_argument('--vcf', required=True, help='Path to VCF file')
    parser.add_argument('--gtf', required=True, help='Path to GTF file')
    parser.add_argument('--fasta', required=True, help='Path to FASTA file')
    parser.add_argument('--output', required=True, help='Path to output file or output directory')
    parser.add_argument('--codon-table', type=int, default=1,
                        help='NCBI codon table id for nuclear transcripts (default: 1, chrM always uses 2)')
    parser.add_argument('--clip-penultimate', action='store_true',
                        help='Never let the 50bp penultimate exon window start before the exon itself')
    parser.add_argument('--verbose', action='store_true', help='Print diagnostics for every analysed variant')

    return parser.parse_args(argv)


def run(argv=None):
    args = parse_args(argv)

    # Check that the output path is valid
    if not is_valid_output_path(args.output):
        raise ValueError(f"Invalid output path: {args.output}")

    # Run the main pipeline
    main(args.vcf, args.gtf, args.fasta, args.output,
         codon_table=args.codon_table,
         clip_penultimate=args.clip_penultimate,
         verbose=args.verbose)


if __name__ == '__main__':
    run()
