# Import dependencies
from dataclasses import dataclass, field

import pandas as pd

from nmd_rules.context import extract_context
from nmd_rules.errors import InvalidCoordinate, MissingCoordinates, NMDRulesError
from nmd_rules.rules import Exon, RuleFlags, classify, evaluate_rules, map_exons
from nmd_rules.sequence import Edit, apply_edit, locate_stop
from nmd_rules.translate import get_codon_table

# Output fields and their descriptions
HEADER_INFO = {
    "NMD_prediction": "NMD prediction (putative_NMD_triggering, canonical_NMD_escaping, noncanonical_NMD_escaping)",
    "NMD_rule": "NMD escaping rule (intronless, last_exon, 50bp_penult_exon, first_150bp, lt_407bp_exon)",
    "Next_ATG": "Distance to the next ATG in base pairs (no ATG found is -1)",
    "Stop_context": "Genomic context arround stop gained codon: -2codon(-2aa)-1codon(-1aa)stop_codon(Stop)fourth_letter",
}

RESULT_COLUMNS = list(HEADER_INFO) + [
    "stop_position",
    "nmd_intronless_rule",
    "nmd_last_exon_rule",
    "nmd_50bp_penultimate_rule",
    "nmd_first_150bp_rule",
    "nmd_long_exon_rule",
    "NMD_error",
]


@dataclass(frozen=True)
class NMDRequest:
    """
    Everything needed to predict NMD for one variant on one transcript.
    With coding_start_offset == 0 the exons are expected to be CDS relative already.
    """

    coding_sequence: str
    three_prime_utr: str
    exons: tuple
    edit: Edit
    variant_coding_end: int
    codon_table_id: int = 1
    coding_start_offset: int = 0


@dataclass(frozen=True)
class PredictionResult:
    prediction: object
    rule: object
    stop_context: str
    next_atg_distance: int
    stop_position: int = None
    flags: RuleFlags = field(default=None, compare=False)

    def as_dict(self):
        return {
            "NMD_prediction": self.prediction.value,
            "NMD_rule": self.rule.value,
            "Stop_context": self.stop_context,
            "Next_ATG": self.next_atg_distance,
        }


def _check_coordinates(request):
    # reject incomplete requests before any computation
    edit = request.edit
    if edit is None or edit.start is None or edit.end is None:
        raise MissingCoordinates("Edit start and end are required")
    if request.variant_coding_end is None:
        raise MissingCoordinates("Variant CDS end is required")
    if not request.exons:
        raise MissingCoordinates("At least one exon is required")
    for exon in request.exons:
        if any(getattr(exon, name, None) is None for name in ("coding_start", "coding_end", "length")):
            raise MissingCoordinates(f"Exon {exon} lacks a coordinate")
    if request.coding_start_offset is None:
        raise MissingCoordinates("Coding start offset is required")
    if not isinstance(request.coding_sequence, str):
        raise MissingCoordinates("Coding sequence is required")


def predict_nmd(request, trace=None, clip_penultimate=False):

    """
    Predict whether a stop codon generating variant triggers or escapes NMD.

    Steps:
    1. Apply the edit to the coding sequence
    2. Re-translate mutated CDS + 3'UTR to locate the new stop codon
    3. Extract the stop codon context and the distance to the next ATG
    4. Map exons to CDS coordinates and evaluate the escape rules
    5. Classify by rule priority

    :param request: NMDRequest
    :param trace: Optional callable receiving diagnostic messages (e.g. print)
    :param clip_penultimate: Clip the 50bp penultimate window to the exon start (see rules.evaluate_rules)
    :return: PredictionResult
    """

    _check_coordinates(request)
    codon_table = get_codon_table(request.codon_table_id)

    mutated_cds_seq = apply_edit(request.coding_sequence, request.edit)
    working_sequence = (mutated_cds_seq + (request.three_prime_utr or "")).upper()
    if trace is not None:
        trace(f"mutated cds+3'utr: {working_sequence}")

    stop_position = locate_stop(mutated_cds_seq, request.three_prime_utr, codon_table)
    context = extract_context(working_sequence, stop_position, codon_table)
    if trace is not None:
        trace(f"stop cds pos: {stop_position}")
        trace(f"next ATG distance: {context.next_atg_distance}")
        trace(f"stop context: {context}")

    exons = map_exons(request.exons, request.coding_start_offset)
    flags = evaluate_rules(stop_position, exons, request.variant_coding_end, clip_penultimate=clip_penultimate)
    prediction, rule = classify(flags)
    if trace is not None:
        for exon in exons:
            marker = " --> stop codon located in this exon" if exon.contains(stop_position) else ""
            trace(f"EX{exon.rank}\t{exon.coding_start}\t{exon.coding_end}\t{exon.length}{marker}")
        trace(f"rules: {flags.as_dict()} => {prediction.value} {rule.value}")

    return PredictionResult(
        prediction=prediction,
        rule=rule,
        stop_context=str(context),
        next_atg_distance=context.next_atg_distance,
        stop_position=stop_position,
        flags=flags,
    )


def is_stop_affecting_hgvsp(hgvsp):

    """
    Eligibility filter on the protein-level HGVS notation: the variant has to mention a stop codon (Ter), excluding
    synonymous changes at the stop codon (e.g. p.Ter811=) and frameshifts without an inferred stop (e.g. p.Ter257GlufsTer?).
    """

    if not isinstance(hgvsp, str):
        return False
    return "Ter" in hgvsp and "?" not in hgvsp and "=" not in hgvsp


def _to_int(value, name):
    # None / NaN count as missing, anything else has to be an integer position
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        raise MissingCoordinates(f"{name} is missing")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidCoordinate(f"{name} is not an integer: {value!r}") from None


def _as_exon(value, rank):
    # exons in a table may be Exon objects, dicts or (start, end, length[, rank]) sequences
    if isinstance(value, Exon):
        return value
    if isinstance(value, dict):
        fields = [value.get(name) for name in ("coding_start", "coding_end", "length")]
        exon_rank = value.get("rank", rank)
    else:
        try:
            fields = list(value[:3])
        except TypeError:
            raise MissingCoordinates(f"Exon {rank} is not a sequence of coordinates: {value!r}") from None
        if len(fields) < 3:
            raise MissingCoordinates(f"Exon {rank} needs coding start, coding end and length")
        exon_rank = value[3] if len(value) > 3 else rank

    start, end, length = (_to_int(coordinate, f"Exon {rank} {name}")
                          for coordinate, name in zip(fields, ("coding start", "coding end", "length")))
    return Exon(start, end, length, _to_int(exon_rank, f"Exon {rank} rank"))


def _optional_int(row, column, default=None):
    value = row.get(column, default)
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return default
    return _to_int(value, column)


def request_from_row(row):

    """
    Build an NMDRequest from a table row with the columns coding_sequence, three_prime_utr, exons, edit_start,
    edit_end, replacement, variant_coding_end and optionally codon_table_id and coding_start_offset.
    """

    # any sequence of exons (list, tuple, numpy array from parquet); a scalar such as NaN means no exons
    exons = row.get("exons")
    if exons is None or isinstance(exons, (str, float)):
        exons = []
    replacement = row.get("replacement")
    if not isinstance(replacement, str):
        replacement = ""
    utr = row.get("three_prime_utr")
    # validated by get_codon_table
    codon_table_id = row.get("codon_table_id")
    if codon_table_id is None or (not isinstance(codon_table_id, str) and pd.isna(codon_table_id)):
        codon_table_id = 1

    return NMDRequest(
        coding_sequence=row.get("coding_sequence"),
        three_prime_utr=utr if isinstance(utr, str) else "",
        exons=tuple(_as_exon(exon, rank) for rank, exon in enumerate(exons, start=1)),
        edit=Edit(
            start=_optional_int(row, "edit_start"),
            end=_optional_int(row, "edit_end"),
            replacement=replacement,
        ),
        variant_coding_end=_optional_int(row, "variant_coding_end"),
        codon_table_id=codon_table_id,
        coding_start_offset=_optional_int(row, "coding_start_offset", 0),
    )


def _empty_result(error):
    result = {column: None for column in RESULT_COLUMNS}
    result["NMD_error"] = error
    return result


def predict_nmd_row(row, clip_penultimate=False, trace=None):

    """
    Row-wise wrapper around predict_nmd for DataFrame.apply. Failures are isolated to the row: the error class name
    is stored in "NMD_error" and the prediction columns stay empty.

    :param row: A pandas.Series (or dict) with the request columns (see request_from_row)
    :return: A dictionary with the output fields, the rule flags and the stop position
    """

    if "hgvsp" in row and not is_stop_affecting_hgvsp(row.get("hgvsp")):
        return _empty_result("not_stop_affecting")

    try:
        result = predict_nmd(request_from_row(row), trace=trace, clip_penultimate=clip_penultimate)
    except NMDRulesError as e:
        return _empty_result(type(e).__name__)

    output = result.as_dict()
    output["stop_position"] = result.stop_position
    output.update(result.flags.as_dict())
    output["NMD_error"] = None
    return output


def annotate_requests(df, clip_penultimate=False, trace=None):

    """
    Predict NMD for every request in a DataFrame.

    :param df: DataFrame with one request per row
    :return: Copy of df with the RESULT_COLUMNS appended
    """

    if df.empty:
        return df.reindex(columns=list(df.columns) + RESULT_COLUMNS)

    nmd_results = df.apply(
        predict_nmd_row, axis=1, result_type="expand", clip_penultimate=clip_penultimate, trace=trace
    )
    results = pd.concat([df.reset_index(drop=True), nmd_results.reset_index(drop=True)], axis=1)

    failed = results["NMD_error"].notna().sum()
    if failed:
        print(f"[Warning] No NMD prediction for {failed} of {len(results)} variants.")

    return results
