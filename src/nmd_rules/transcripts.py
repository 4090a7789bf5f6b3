"""
Transcript models built from GTF exon/CDS entries and the reference genome. They provide the coding sequence,
3'UTR and exon structure a prediction request needs, and map genomic VCF variants onto CDS coordinates.
"""

# Import dependencies
from dataclasses import dataclass

from Bio.Seq import Seq

from nmd_rules.catch_sequence import make_sequence_fetcher
from nmd_rules.errors import NoStopFound
from nmd_rules.rules import Exon
from nmd_rules.sequence import Edit, apply_edit, locate_stop

MITOCHONDRIAL_CHROMOSOMES = {"chrM", "chrMT", "MT", "M"}
MITOCHONDRIAL_CODON_TABLE = 2  # vertebrate mitochondrial code


def codon_table_for_chromosome(chromosome, default=1):
    """Codon table id for a chromosome: the mitochondrial code on chrM, `default` elsewhere."""
    return MITOCHONDRIAL_CODON_TABLE if str(chromosome) in MITOCHONDRIAL_CHROMOSOMES else default


def adjust_last_cds_for_stop_codon(df, transcript_col="transcript_id"):

    """
    Adjusts the genomic coordinates of the last CDS segment in each transcript by adding 3 positions, thus to include
    the stop codon (GTF CDS entries exclude it).
    :param df: Dataframe containing CDS annotation
    :param transcript_col: The name of the column that indicates the transcript ID
    :return: Modified pandas DataFrame where the last CDS segment of each transcript is extended by 3 bases.
    """

    df = df.copy()

    # The last segment in transcript order is the most downstream one on + and the most upstream one on -
    for _, group in df.groupby(transcript_col, observed=True):
        strand = group["Strand"].iloc[0]
        if strand == "+":
            df.at[group["End"].idxmax(), "End"] += 3
        elif strand == "-":
            df.at[group["Start"].idxmin(), "Start"] -= 3

    return df


def trim_alleles(start, ref, alt):

    """
    Remove bases shared by REF and ALT (VCF anchor bases), first at the start then at the end.
    :param start: 0-based genomic position of the first REF base
    :return: (start, ref, alt) describing only the changed bases; ref is empty for pure insertions
    """

    prefix = 0
    while prefix < min(len(ref), len(alt)) and ref[prefix] == alt[prefix]:
        prefix += 1
    start, ref, alt = start + prefix, ref[prefix:], alt[prefix:]

    suffix = 0
    while suffix < min(len(ref), len(alt)) and ref[-1 - suffix] == alt[-1 - suffix]:
        suffix += 1
    if suffix:
        ref, alt = ref[:-suffix], alt[:-suffix]

    return start, ref, alt


def genomic_to_transcript(exon_bounds, strand, position):
    """
    Map a 0-based genomic position onto a 0-based offset in the spliced transcript, or None if it is not exonic.
    exon_bounds are (start, end) half-open genomic intervals in transcript order.
    """
    offset = 0
    for start, end in exon_bounds:
        if start <= position < end:
            if strand == "-":
                return offset + (end - 1 - position)
            return offset + (position - start)
        offset += end - start
    return None


@dataclass(frozen=True)
class TranscriptModel:
    transcript_id: str
    chromosome: str
    strand: str
    exon_bounds: tuple  # genomic (start, end), 0-based half-open, in transcript order
    transcript_seq: str
    coding_start: int  # transcript offset of the first coding base, 0-based
    coding_end: int  # transcript offset right after the stop codon
    gene_id: str = None

    @property
    def cds_seq(self):
        return self.transcript_seq[self.coding_start:self.coding_end]

    @property
    def three_prime_utr(self):
        return self.transcript_seq[self.coding_end:]

    @property
    def coding_start_offset(self):
        # cDNA (1-based) position of the first coding base
        return self.coding_start + 1

    def exons(self):
        """Exons in transcript order with 1-based cDNA start / end."""
        exons = []
        offset = 0
        for rank, (start, end) in enumerate(self.exon_bounds, start=1):
            length = end - start
            exons.append(Exon(coding_start=offset + 1, coding_end=offset + length, length=length, rank=rank))
            offset += length
        return tuple(exons)

    def to_transcript(self, position):
        return genomic_to_transcript(self.exon_bounds, self.strand, position)

    def variant_to_edit(self, start, ref, alt):

        """
        Translate a genomic variant into an edit of the coding sequence.

        :param start: 0-based genomic position of the first REF base (int)
        :param ref: REF allele on the + strand (str)
        :param alt: ALT allele on the + strand (str)
        :return: Edit with 1-based CDS coordinates (edit.end is the variant's CDS end), or None if the variant
                 changes nothing, lies outside the CDS, spans an exon boundary or does not match the reference
        """

        start, ref, alt = trim_alleles(int(start), ref.upper(), alt.upper())
        if not ref and not alt:
            return None

        if ref:
            first = self.to_transcript(start)
            last = self.to_transcript(start + len(ref) - 1)
            expected_span = len(ref) - 1
        else:
            # insertion between the bases at start - 1 and start
            first = self.to_transcript(start - 1)
            last = self.to_transcript(start)
            expected_span = 1

        if first is None or last is None:
            return None
        low, high = min(first, last), max(first, last)
        if high - low != expected_span:  # crosses an intron
            return None
        if low < self.coding_start or high >= self.coding_end:
            return None

        if self.strand == "-":
            ref = str(Seq(ref).reverse_complement())
            alt = str(Seq(alt).reverse_complement())

        if ref:
            edit = Edit(start=low - self.coding_start + 1, end=high - self.coding_start + 1, replacement=alt)
        else:
            edit = Edit(start=high - self.coding_start + 1, end=low - self.coding_start + 1, replacement=alt)

        # Confirm that the reference matches
        if self.cds_seq[edit.start - 1:edit.end] != ref:
            return None

        return edit


def build_transcript_models(exons_df, cds_df, fasta):

    """
    Construct one TranscriptModel per coding transcript by concatenating its exon sequences from the reference genome.

    :param exons_df: DataFrame of exon entries (transcript_id, Chromosome, Start, End, Strand, optionally gene_id)
    :param cds_df: DataFrame of CDS entries including the stop codon (see adjust_last_cds_for_stop_codon)
    :param fasta: pyfaidx.Fasta object, or a mapping of chromosome -> sequence
    :return: dict of transcript_id -> TranscriptModel
    """

    # sequences are cached for this call only
    fetch_exon_sequence = make_sequence_fetcher(fasta)
    cds_by_transcript = {tx: group for tx, group in cds_df.groupby("transcript_id", observed=True)}
    models = {}

    # Process each transcript individually
    for transcript_id, group in exons_df.groupby("transcript_id", observed=True):

        # Skip non-coding transcripts
        if transcript_id not in cds_by_transcript:
            continue

        strand = group.iloc[0]["Strand"]
        if strand not in ["+", "-"]:
            print(f"Unknown strand for {transcript_id}")
            continue

        # Transcript order: ascending on + strand, descending on - strand
        group_sorted = group.sort_values(by="Start", ascending=(strand == "+"))
        chrom = group_sorted.iloc[0]["Chromosome"]
        exon_bounds = tuple((int(s), int(e)) for s, e in zip(group_sorted["Start"], group_sorted["End"]))

        # join exon sequences into a full transcript sequence
        joined_seq = "".join(fetch_exon_sequence(chrom, s, e) for s, e in sorted(exon_bounds))
        if strand == "-":
            joined_seq = str(Seq(joined_seq).reverse_complement())

        # First coding base in transcript coordinates
        cds = cds_by_transcript[transcript_id]
        cds_first_base = int(cds["Start"].min()) if strand == "+" else int(cds["End"].max()) - 1
        coding_start = genomic_to_transcript(exon_bounds, strand, cds_first_base)
        if coding_start is None:
            print(f"[Warning] CDS start of {transcript_id} is not exonic, skipping transcript.")
            continue
        cds_length = int((cds["End"] - cds["Start"]).sum())

        models[transcript_id] = TranscriptModel(
            transcript_id=transcript_id,
            chromosome=str(chrom),
            strand=strand,
            exon_bounds=exon_bounds,
            transcript_seq=joined_seq,
            coding_start=coding_start,
            coding_end=min(coding_start + cds_length, len(joined_seq)),
            gene_id=group.iloc[0]["gene_id"] if "gene_id" in group.columns else None,
        )

    return models


def affects_stop_codon(model, edit, codon_table):

    """
    Decide whether an edit creates, removes or moves the stop codon. Frame-preserving edits upstream of the stop
    shift it by their length change only, so those (like synonymous changes at the stop codon) do not count.
    Edits whose translation never reaches a stop codon are not analysable and return False as well.
    """

    try:
        reference_stop = locate_stop(model.cds_seq, model.three_prime_utr, codon_table)
        mutated_stop = locate_stop(apply_edit(model.cds_seq, edit), model.three_prime_utr, codon_table)
    except NoStopFound:
        return False

    return mutated_stop != reference_stop + edit.length_change
