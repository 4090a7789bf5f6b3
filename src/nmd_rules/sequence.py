# Import dependencies
from dataclasses import dataclass

from nmd_rules.errors import InvalidEditRange, NoStopFound
from nmd_rules.translate import STOP_SYMBOL, translate


@dataclass(frozen=True)
class Edit:
    """
    Replacement of the closed, 1-based CDS range [start, end] by `replacement`.
    start == end + 1 is a pure insertion in front of `start`; an empty replacement is a pure deletion.
    """

    start: int
    end: int
    replacement: str = ""

    @property
    def length_change(self):
        return len(self.replacement) - (self.end - self.start + 1)


def apply_edit(coding_sequence, edit):

    """
    Apply a single edit to a coding sequence, returning a new sequence (the input is left untouched).

    :param coding_sequence: Reference coding sequence (str)
    :param edit: Edit with 1-based inclusive coordinates relative to the coding sequence
    :return: Mutated coding sequence (str), whose length differs by edit.length_change
    """

    start, end = edit.start, edit.end
    if not 1 <= start <= end + 1 <= len(coding_sequence) + 1:
        raise InvalidEditRange(start, end, len(coding_sequence))

    return coding_sequence[:start - 1] + (edit.replacement or "") + coding_sequence[end:]


def locate_stop(mutated_coding_sequence, utr_sequence, codon_table):

    """
    Re-translate the mutated CDS followed by the 3'UTR and find the first stop codon. A frameshift can move the
    stop codon past the original CDS end, which is why the UTR is part of the working sequence.

    :param mutated_coding_sequence: Coding sequence after applying the edit (str)
    :param utr_sequence: 3'UTR sequence, may be empty (str)
    :param codon_table: Biopython codon table
    :return: Nucleotide offset immediately after the stop codon, i.e. 3 * (number of codons up to and including the stop)
    """

    working_sequence = (mutated_coding_sequence + (utr_sequence or "")).upper()

    for k, aa in enumerate(translate(working_sequence, codon_table)):
        if aa == STOP_SYMBOL:
            return 3 * (k + 1)

    raise NoStopFound(
        f"No stop codon found when translating {len(working_sequence)} nt of mutated CDS + 3'UTR"
    )
