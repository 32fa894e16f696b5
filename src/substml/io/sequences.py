"""
Nucleotide alignment parsing and encoding.
"""

import re
from dataclasses import dataclass
from pathlib import Path

import numpy as np


# Nucleotide encoding (A, C, G, T order used by every model in substml)
NUCLEOTIDES = 'ACGT'
NUCLEOTIDE_TO_INDEX = {nuc: i for i, nuc in enumerate(NUCLEOTIDES)}
INDEX_TO_NUCLEOTIDE = {i: nuc for i, nuc in enumerate(NUCLEOTIDES)}

# Gaps, N and IUPAC ambiguity codes all collapse to this value
UNKNOWN_CODE = -1
UNKNOWN_CHAR = '-'


@dataclass
class Alignment:
    """
    Multiple sequence alignment of nucleotides.

    Attributes
    ----------
    names : list[str]
        Sequence names/labels
    sequences : ndarray, shape (n_species, n_sites)
        Encoded sequences (0=A, 1=C, 2=G, 3=T, -1=unknown)
    n_species : int
        Number of sequences
    n_sites : int
        Number of sites (alignment length)
    seqtype : str
        Sequence type, always 'dna'
    """

    names: list[str]
    sequences: np.ndarray
    n_species: int
    n_sites: int
    seqtype: str = "dna"

    @classmethod
    def from_sequences(cls, sequences: dict[str, str]) -> "Alignment":
        """
        Build an alignment from a mapping of name to sequence string.

        Examples
        --------
        >>> aln = Alignment.from_sequences({"a": "ACGT", "b": "ACGA"})
        >>> aln.n_sites
        4
        """
        if not sequences:
            raise ValueError("No sequences given")

        names = list(sequences)
        raw = [re.sub(r'\s', '', seq).upper() for seq in sequences.values()]
        return cls._from_raw(names, raw)

    @classmethod
    def from_states(cls, names: list[str], states: np.ndarray) -> "Alignment":
        """
        Wrap an already encoded state matrix (e.g. simulated sequences).

        Parameters
        ----------
        names : list[str]
            One name per row
        states : ndarray, shape (n_species, n_sites)
            State indices in [0, 4) or UNKNOWN_CODE
        """
        states = np.asarray(states, dtype=np.int8)
        if states.ndim != 2:
            raise ValueError(f"states must be 2-dimensional, got shape {states.shape}")
        if len(names) != states.shape[0]:
            raise ValueError(
                f"Got {len(names)} names for {states.shape[0]} sequences"
            )
        if np.any((states < UNKNOWN_CODE) | (states >= len(NUCLEOTIDES))):
            raise ValueError("states contain values outside the nucleotide alphabet")

        return cls(
            names=list(names),
            sequences=states,
            n_species=states.shape[0],
            n_sites=states.shape[1],
        )

    @classmethod
    def from_fasta(cls, filepath: Path | str) -> "Alignment":
        """
        Parse FASTA format alignment file.

        Parameters
        ----------
        filepath : Path or str
            Path to FASTA format file

        Returns
        -------
        Alignment
            Parsed alignment
        """
        filepath = Path(filepath)

        names = []
        sequences_raw = []

        with open(filepath, 'r') as f:
            current_name = None
            current_seq = []

            for line in f:
                line = line.strip()

                if not line:
                    continue

                if line.startswith('>'):
                    if current_name is not None:
                        names.append(current_name)
                        sequences_raw.append(''.join(current_seq))

                    current_name = line[1:].strip()
                    current_seq = []
                else:
                    current_seq.append(line.upper())

            if current_name is not None:
                names.append(current_name)
                sequences_raw.append(''.join(current_seq))

        if not names:
            raise ValueError("No sequences found in FASTA file")

        sequences_clean = [re.sub(r'\s', '', seq) for seq in sequences_raw]
        return cls._from_raw(names, sequences_clean)

    @classmethod
    def from_phylip(cls, filepath: Path | str) -> "Alignment":
        """
        Parse sequential PHYLIP format alignment file.

        The first line holds the number of sequences and the sequence length.
        Each record starts either with ``name<whitespace>sequence`` or with a
        name alone on its line (PAML style); sequence data may continue over
        several lines until the declared length is reached.

        Examples
        --------
        >>> aln = Alignment.from_phylip("primates.phy")
        >>> aln.n_species
        5
        """
        filepath = Path(filepath)

        with open(filepath, 'r') as f:
            lines = [line.rstrip() for line in f.readlines()]

        lines = [line for line in lines if line.strip()]
        if not lines:
            raise ValueError("Empty PHYLIP file")

        header = lines[0].split()
        if len(header) < 2:
            raise ValueError(f"Invalid PHYLIP header: '{lines[0]}'")
        n_species = int(header[0])
        n_chars = int(header[1])

        names = []
        sequences_raw = []

        i = 1
        while i < len(lines) and len(names) < n_species:
            fields = lines[i].strip().split(None, 1)
            i += 1

            names.append(fields[0])
            seq_data = re.sub(r'\s', '', fields[1]).upper() if len(fields) > 1 else ""

            while len(seq_data) < n_chars and i < len(lines):
                seq_data += re.sub(r'\s', '', lines[i]).upper()
                i += 1

            sequences_raw.append(seq_data)

        if len(names) != n_species:
            raise ValueError(f"Expected {n_species} sequences, found {len(names)}")

        for name, seq in zip(names, sequences_raw):
            if len(seq) != n_chars:
                raise ValueError(
                    f"Sequence {name} has length {len(seq)}, expected {n_chars}"
                )

        return cls._from_raw(names, sequences_raw)

    @classmethod
    def _from_raw(cls, names: list[str], sequences_raw: list[str]) -> "Alignment":
        seq_lengths = {len(seq) for seq in sequences_raw}
        if len(seq_lengths) > 1:
            raise ValueError(f"Sequences have different lengths: {seq_lengths}")
        if len(set(names)) != len(names):
            raise ValueError("Sequence names must be unique")

        encoded = cls._encode_nucleotides(sequences_raw)
        return cls(
            names=list(names),
            sequences=encoded,
            n_species=len(names),
            n_sites=encoded.shape[1],
        )

    @staticmethod
    def _encode_nucleotides(sequences: list[str]) -> np.ndarray:
        """Encode DNA sequences as integer arrays (0=A, 1=C, 2=G, 3=T)."""
        n_sequences = len(sequences)
        n_sites = len(sequences[0])

        encoded = np.full((n_sequences, n_sites), UNKNOWN_CODE, dtype=np.int8)

        for i, seq in enumerate(sequences):
            for j, nucleotide in enumerate(seq):
                # U is read as T so RNA alignments load unchanged
                nucleotide = 'T' if nucleotide == 'U' else nucleotide
                if nucleotide in NUCLEOTIDE_TO_INDEX:
                    encoded[i, j] = NUCLEOTIDE_TO_INDEX[nucleotide]

        return encoded

    def to_strings(self) -> dict[str, str]:
        """Decode the alignment back to a mapping of name to sequence string."""
        return {
            name: ''.join(INDEX_TO_NUCLEOTIDE.get(int(idx), UNKNOWN_CHAR) for idx in row)
            for name, row in zip(self.names, self.sequences)
        }

    def __repr__(self) -> str:
        return (
            f"Alignment(n_species={self.n_species}, n_sites={self.n_sites}, "
            f"seqtype='{self.seqtype}')"
        )
