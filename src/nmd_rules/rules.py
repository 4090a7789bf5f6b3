# Import dependencies
from dataclasses import dataclass
from enum import Enum

# Rule thresholds
PENULTIMATE_WINDOW = 50  # last nt of the penultimate exon
FIRST_CODING_BASES = 151  # compared against the variant's CDS end, inclusive
LONG_EXON_LENGTH = 407


class Prediction(Enum):
    PUTATIVE_TRIGGERING = "putative_NMD_triggering"
    CANONICAL_ESCAPING = "canonical_NMD_escaping"
    NONCANONICAL_ESCAPING = "noncanonical_NMD_escaping"


class Rule(Enum):
    NONE = ""
    INTRONLESS = "intronless"
    LAST_EXON = "last_exon"
    FIFTY_BP_PENULT_EXON = "50bp_penult_exon"
    FIRST_150BP = "first_150bp"
    LT_407BP_EXON = "lt_407bp_exon"


@dataclass(frozen=True)
class Exon:
    """Exon boundaries, either transcript (cDNA) relative or, after map_exons(), CDS relative."""

    coding_start: int
    coding_end: int
    length: int
    rank: int

    def contains(self, position):
        return self.coding_start <= position <= self.coding_end


@dataclass(frozen=True)
class RuleFlags:
    intronless: bool
    last_exon: bool
    fifty_bp_penult_exon: bool
    first_150bp: bool
    exon_407bp: bool

    def as_dict(self):
        return {
            "nmd_intronless_rule": self.intronless,
            "nmd_last_exon_rule": self.last_exon,
            "nmd_50bp_penultimate_rule": self.fifty_bp_penult_exon,
            "nmd_first_150bp_rule": self.first_150bp,
            "nmd_long_exon_rule": self.exon_407bp,
        }


# Priority order of the escape rules, first true flag wins.
# Canonical rules always outrank noncanonical ones.
ESCAPE_RULES = (
    ("intronless", Prediction.CANONICAL_ESCAPING, Rule.INTRONLESS),
    ("last_exon", Prediction.CANONICAL_ESCAPING, Rule.LAST_EXON),
    ("fifty_bp_penult_exon", Prediction.CANONICAL_ESCAPING, Rule.FIFTY_BP_PENULT_EXON),
    ("first_150bp", Prediction.NONCANONICAL_ESCAPING, Rule.FIRST_150BP),
    ("exon_407bp", Prediction.NONCANONICAL_ESCAPING, Rule.LT_407BP_EXON),
)


def map_exons(exons, coding_start_offset):

    """
    Convert transcript-relative exon boundaries into CDS-relative ones by subtracting the offset where coding starts.
    Exons must already be in transcript (5' -> 3') order; the order is kept as is, since "last" and "penultimate"
    exon are taken from it.

    :param exons: Iterable of Exon in transcript order
    :param coding_start_offset: Transcript-relative position of the first coding base (int)
    :return: Tuple of Exon with shifted coding_start / coding_end
    """

    return tuple(
        Exon(
            coding_start=exon.coding_start - coding_start_offset,
            coding_end=exon.coding_end - coding_start_offset,
            length=exon.length,
            rank=exon.rank,
        )
        for exon in exons
    )


def evaluate_rules(stop_position, exons, variant_coding_end, clip_penultimate=False):

    """
    Evaluate the NMD escape rules for a stop codon. Every rule is computed, priority is only applied by classify():
    1. Intronless rule: The transcript consists of a single exon
    2. Last exon rule: The stop codon is in the last exon
    3. 50bp penultimate rule: The stop codon is within the last 50 nt of the penultimate exon
    4. First 150bp rule: The variant ends within the first 150 coding bases (tested on the variant, not the stop)
    5. Long exon rule: The stop codon is in an exon of at least 407 nt

    :param stop_position: Offset right after the new stop codon, CDS relative (int)
    :param exons: CDS-relative exons in transcript order (see map_exons)
    :param variant_coding_end: CDS position where the variant ends (int)
    :param clip_penultimate: If True, the 50 nt window never starts before the penultimate exon itself
    :return: RuleFlags
    """

    exons = tuple(exons)

    # Intronless rule
    rule_intronless = len(exons) == 1

    # Last exon rule
    rule_last_exon = bool(exons) and exons[-1].contains(stop_position)

    # 50bp from penultimate exon end
    rule_50bp_penultimate = False
    if len(exons) >= 2:
        penultimate = exons[-2]
        window_start = penultimate.coding_end - PENULTIMATE_WINDOW
        if clip_penultimate:
            window_start = max(window_start, penultimate.coding_start)
        rule_50bp_penultimate = window_start <= stop_position <= penultimate.coding_end

    # First 150 coding bases
    rule_first_150bp = variant_coding_end is not None and variant_coding_end <= FIRST_CODING_BASES

    # Long exon rule (stop codon in an exon with >= 407nt)
    rule_long_exon = any(exon.length >= LONG_EXON_LENGTH for exon in exons if exon.contains(stop_position))

    return RuleFlags(
        intronless=rule_intronless,
        last_exon=rule_last_exon,
        fifty_bp_penult_exon=rule_50bp_penultimate,
        first_150bp=rule_first_150bp,
        exon_407bp=rule_long_exon,
    )


def classify(flags):
    """Return (Prediction, Rule) for the highest-priority escape rule that holds."""
    for flag_name, prediction, rule in ESCAPE_RULES:
        if getattr(flags, flag_name):
            return prediction, rule
    return Prediction.PUTATIVE_TRIGGERING, Rule.NONE
