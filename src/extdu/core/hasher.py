"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

hasher.py
Content comparison of a master/duplicate pair before it is hardlinked.

Files are compared by size first, then by a streamed xxHash64 digest, so a
pair is only linked when the bytes really are the same.
"""

import os

import xxhash

from extdu.core.interfaces import HashAlgorithm

CHUNK_SIZE = 1024 * 1024


# Use the same way to implement and use any other hashing algorithm
class XXHashAlgorithmImpl:
    @staticmethod
    def new():
        return xxhash.xxh64()


class ContentVerifier:
    """
    Decides whether two files hold identical content.
    Read errors propagate as OSError so the caller can report them.
    """

    def __init__(self, algorithm: HashAlgorithm = None, chunk_size: int = CHUNK_SIZE):
        self.algorithm = algorithm or XXHashAlgorithmImpl()
        self.chunk_size = chunk_size

    def file_digest(self, path: str) -> bytes:
        hasher = self.algorithm.new()
        with open(path, "rb") as f:
            while True:
                data = f.read(self.chunk_size)
                if not data:
                    break
                hasher.update(data)
        return hasher.digest()

    def same_content(self, master: str, duplicate: str) -> bool:
        if os.path.getsize(master) != os.path.getsize(duplicate):
            return False
        return self.file_digest(master) == self.file_digest(duplicate)
