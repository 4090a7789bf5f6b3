"""
Codon translation helpers built on Biopython's NCBI codon tables.

Translation never aborts: ambiguous or invalid triplets become "X", which matches neither the stop symbol
nor any amino acid display name.
"""

from Bio.Data.CodonTable import unambiguous_dna_by_id

from nmd_rules.errors import UnknownCodonTable

STOP_SYMBOL = "*"
UNKNOWN_SYMBOL = "X"

# single-letter code -> 3-letter display name
AA_NAMES = {
    "A": "Ala", "R": "Arg", "N": "Asn", "D": "Asp", "C": "Cys",
    "E": "Glu", "Q": "Gln", "G": "Gly", "H": "His", "I": "Ile",
    "L": "Leu", "K": "Lys", "M": "Met", "F": "Phe", "P": "Pro",
    "S": "Ser", "T": "Thr", "W": "Trp", "Y": "Tyr", "V": "Val",
    STOP_SYMBOL: "Stop",
}


def get_codon_table(table_id=1):
    """
    Return the Biopython codon table for an NCBI genetic code id (1 = standard code).

    :param table_id: NCBI translation table id (int)
    :return: Bio.Data.CodonTable.CodonTable
    """

    try:
        table_id = int(table_id)
    except (TypeError, ValueError):
        raise UnknownCodonTable(f"Codon table id must be an integer, got {table_id!r}") from None
    if table_id not in unambiguous_dna_by_id:
        raise UnknownCodonTable(
            f"Unknown codon table id {table_id}. Valid: {sorted(unambiguous_dna_by_id.keys())}"
        )
    return unambiguous_dna_by_id[table_id]


def translate_codon(codon, codon_table):
    """Translate a single triplet (case-insensitive) to its one-letter symbol."""
    codon = codon.upper()
    if codon in codon_table.stop_codons:
        return STOP_SYMBOL
    return codon_table.forward_table.get(codon, UNKNOWN_SYMBOL)


def translate(sequence, codon_table):
    """
    Lazily translate a nucleotide sequence in non-overlapping triplets, starting at the first base.
    A trailing partial codon (1 or 2 leftover bases) is dropped.

    :param sequence: nucleotide sequence (str)
    :param codon_table: Biopython codon table, see get_codon_table()
    :return: generator of one-letter amino acid symbols ("*" for stop, "X" for unknown)
    """

    for i in range(0, len(sequence) - 2, 3):
        yield translate_codon(sequence[i:i + 3], codon_table)


def codon_name(codon, codon_table):
    """3-letter display name of a single codon, or "" if it cannot be translated."""
    if len(codon) != 3:
        return ""
    return AA_NAMES.get(translate_codon(codon, codon_table), "")
