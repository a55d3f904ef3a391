"""
Hashing service for file content comparison.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional


DEFAULT_CHUNK_SIZE = 65536


class HashAlgorithm(Enum):
    """Supported hash algorithms (all at least 256 bits)."""
    SHA256 = "sha256"
    SHA512 = "sha512"

    @classmethod
    def from_string(cls, value: str) -> 'HashAlgorithm':
        """Create from string value."""
        try:
            for algorithm in cls:
                if algorithm.value == value.lower():
                    return algorithm
            return cls[value.upper()]
        except (KeyError, AttributeError):
            return cls.SHA256


@dataclass
class HashResult:
    """Result of a hash operation."""
    algorithm: HashAlgorithm
    hash_hex: str
    hash_bytes: bytes
    file_size: int

    def matches(self, other: 'HashResult') -> bool:
        """Check if this hash matches another."""
        return (self.algorithm == other.algorithm and
                self.hash_bytes == other.hash_bytes)


class HashingService:
    """Service for computing file hashes."""

    def __init__(
        self,
        default_algorithm: HashAlgorithm = HashAlgorithm.SHA256,
        chunk_size: int = DEFAULT_CHUNK_SIZE
    ):
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self.default_algorithm = default_algorithm
        self.chunk_size = chunk_size

    def hash_file(
        self,
        path: Path | str,
        algorithm: Optional[HashAlgorithm] = None
    ) -> HashResult:
        """
        Compute hash of a file.

        The file is streamed in ``chunk_size`` blocks and the handle is
        closed before returning. Raises ``OSError`` if the file cannot be
        opened or read.
        """
        path = Path(path)
        algorithm = algorithm or self.default_algorithm
        hasher = self._create_hasher(algorithm)

        file_size = 0
        with open(path, 'rb') as f:
            while chunk := f.read(self.chunk_size):
                hasher.update(chunk)
                file_size += len(chunk)

        return HashResult(
            algorithm=algorithm,
            hash_hex=hasher.hexdigest(),
            hash_bytes=hasher.digest(),
            file_size=file_size
        )

    def files_identical(
        self,
        path1: Path | str,
        path2: Path | str,
        algorithm: Optional[HashAlgorithm] = None
    ) -> bool:
        """
        Compare two files by their digests.

        Callers are expected to have checked sizes first; equal size is
        necessary but not sufficient. I/O errors propagate: a failed read
        means equality is unknown, not true or false.
        """
        hash1 = self.hash_file(path1, algorithm)
        hash2 = self.hash_file(path2, algorithm)
        return hash1.matches(hash2)

    def _create_hasher(self, algorithm: HashAlgorithm):
        """Create a hasher for the given algorithm."""
        if algorithm == HashAlgorithm.SHA256:
            return hashlib.sha256()
        elif algorithm == HashAlgorithm.SHA512:
            return hashlib.sha512()
        else:
            raise ValueError(f"Unknown algorithm: {algorithm}")
