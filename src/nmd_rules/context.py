"""
Sequence context around a (premature) stop codon, which may influence NMD efficiency: the two codons preceding
the stop codon with their amino acids, the stop codon itself and the following nucleotide. Also the distance to
the next ATG downstream of the stop codon, for a hypothetical translation reinitiation.
"""

from dataclasses import dataclass

from nmd_rules.translate import codon_name

START_CODON = "ATG"
MISSING_BASE = "N"


@dataclass(frozen=True)
class StopContext:
    minus2_codon: str
    minus2_aa: str
    minus1_codon: str
    minus1_aa: str
    stop_codon: str
    stop_aa: str
    fourth_letter: str
    next_atg_distance: int

    def __str__(self):
        # -2codon(-2aa)-1codon(-1aa)stop_codon(Stop)fourth_letter
        return (
            f"{self.minus2_codon}({self.minus2_aa})"
            f"{self.minus1_codon}({self.minus1_aa})"
            f"{self.stop_codon}({self.stop_aa})"
            f"{self.fourth_letter}"
        )


def next_atg_distance(working_sequence, stop_position):

    """
    Distance in nt from the end of the stop codon through the end of the first downstream ATG, in any frame.

    :param working_sequence: Mutated CDS + 3'UTR (str)
    :param stop_position: Offset right after the stop codon (int)
    :return: Distance (int), or -1 if no ATG follows the stop codon
    """

    if len(working_sequence) < stop_position:
        return -1

    atg_index = working_sequence[stop_position:].upper().find(START_CODON)
    if atg_index == -1:
        return -1
    return atg_index + len(START_CODON)


def _preceding_codon(sequence, stop_position, codons_back, codon_table):
    # codon ending `codons_back` codons before the stop codon; empty when it would start before the sequence
    end = stop_position - 3 * codons_back
    if end - 3 < 0:
        return "", ""
    codon = sequence[end - 3:end]
    return codon, codon_name(codon, codon_table)


def extract_context(working_sequence, stop_position, codon_table):

    """
    Extract the codons around the stop codon ending at `stop_position`.

    :param working_sequence: Mutated CDS + 3'UTR (str)
    :param stop_position: Offset right after the stop codon, as returned by sequence.locate_stop (int)
    :param codon_table: Biopython codon table
    :return: StopContext; codons that do not fit before the sequence start are empty strings
    """

    sequence = working_sequence.upper()

    stop_codon = sequence[max(stop_position - 3, 0):stop_position]
    minus1_codon, minus1_aa = _preceding_codon(sequence, stop_position, 1, codon_table)
    minus2_codon, minus2_aa = _preceding_codon(sequence, stop_position, 2, codon_table)

    fourth_letter = sequence[stop_position] if len(sequence) > stop_position else MISSING_BASE

    return StopContext(
        minus2_codon=minus2_codon,
        minus2_aa=minus2_aa,
        minus1_codon=minus1_codon,
        minus1_aa=minus1_aa,
        stop_codon=stop_codon,
        stop_aa=codon_name(stop_codon, codon_table),
        fourth_letter=fourth_letter,
        next_atg_distance=next_atg_distance(sequence, stop_position),
    )
