# Error kinds raised by the NMD prediction core.
# All of them abort the evaluation of a single variant only.

class NMDRulesError(Exception):
    """Base class for per-variant prediction failures."""


class InvalidEditRange(NMDRulesError, ValueError):
    """The edit coordinates fall outside the coding sequence."""

    def __init__(self, start, end, cds_length):
        self.start = start
        self.end = end
        self.cds_length = cds_length
        super().__init__(
            f"Edit range [{start}, {end}] outside coding sequence of length {cds_length}"
        )


class NoStopFound(NMDRulesError):
    """Translation of the mutated CDS + 3'UTR never reaches a stop codon."""


class MissingCoordinates(NMDRulesError, ValueError):
    """A coordinate field required for the prediction is absent."""


class InvalidCoordinate(NMDRulesError, ValueError):
    """A coordinate field holds a value that is not an integer position."""


class UnknownCodonTable(NMDRulesError, ValueError):
    """No NCBI genetic code exists for the requested codon table id."""
