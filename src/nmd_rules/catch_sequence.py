# for faster access to the fasta sequence

from functools import lru_cache


def make_sequence_fetcher(fasta):
    """
    Return a cached fetch(chrom, start, end) for one pyfaidx.Fasta object (or any mapping of chromosome name ->
    sliceable sequence). Each fetcher holds its own cache, which is released together with the fetcher, so
    sequences are only kept as long as the caller keeps the fetcher.

    :param fasta: pyfaidx.Fasta object or dict of chromosome -> sequence
    :return: callable returning the upper case genomic sequence of [start, end)
    """

    @lru_cache(maxsize=None)
    def fetch(chrom, start, end):
        return str(fasta[chrom][start:end]).upper()

    def fetch_exon_sequence(chrom, start, end):
        return fetch(str(chrom), int(start), int(end))

    fetch_exon_sequence.cache_info = fetch.cache_info
    return fetch_exon_sequence
