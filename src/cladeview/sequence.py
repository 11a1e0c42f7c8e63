"""Export the sequences attached to clades."""

from pathlib import Path
from typing import Iterable

import structlog
from Bio import SeqIO
from Bio.Seq import Seq
from Bio.SeqRecord import SeqRecord

from cladeview.clade import Clade
from cladeview.util.timing import time_function

logger = structlog.get_logger()


def to_seq_record(clade: Clade) -> SeqRecord | None:
    """Return a Biopython record for a clade's sequence, or None if it has none."""
    if clade.sequence is None or not clade.sequence.fasta_sequence:
        return None

    # FASTA headers arrive with or without the leading ">"
    header = clade.sequence.fasta_head.lstrip(">").strip() or str(clade.uuid)
    record_id, _, description = header.partition(" ")
    return SeqRecord(
        Seq(clade.sequence.fasta_sequence),
        id=record_id,
        name=clade.name or record_id,
        description=description,
        annotations={"clade": str(clade.uuid)},
    )


@time_function
def write_fasta(clades: Iterable[Clade], output_file: Path | str) -> Path:
    """Write the sequences of loaded clades to a FASTA file.

    Clades without a sequence are skipped.

    Parameters
    ----------
    clades : Iterable[Clade]
        Clades to export, usually the items of the clade store's list.
    output_file : pathlib.Path | str
        Full path of the FASTA file to create.

    Returns
    -------
    pathlib.Path
        Path of the written file.
    """
    output_file = Path(output_file)
    if not output_file.suffix:
        raise ValueError("output_file should be a full path to the output file, including filename")
    output_file.parent.mkdir(parents=True, exist_ok=True)

    clade_count = 0
    records = []
    for clade in clades:
        clade_count += 1
        record = to_seq_record(clade)
        if record is not None:
            records.append(record)

    with open(output_file, "w") as fasta_output:
        SeqIO.write(records, fasta_output, "fasta")

    logger.info("Clade sequences saved", num_clades=clade_count, num_sequences=len(records), path=output_file)

    return output_file
