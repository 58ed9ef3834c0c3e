"""
Unit tests for core/hasher.py
Verifies xxHash64 streaming digests and the size-then-content comparison.
"""
import pytest
import xxhash

from extdu.core.hasher import ContentVerifier, XXHashAlgorithmImpl


class TestXXHashAlgorithm:

    def test_new_returns_fresh_state(self):
        first = XXHashAlgorithmImpl.new()
        first.update(b"abc")
        second = XXHashAlgorithmImpl.new()
        assert second.digest() == xxhash.xxh64().digest()
        assert first.digest() == xxhash.xxh64(b"abc").digest()


class TestContentVerifier:

    def test_digest_matches_one_shot_hash(self, temp_dir):
        path = temp_dir / "data.bin"
        payload = b"0123456789" * 1000
        path.write_bytes(payload)
        verifier = ContentVerifier(chunk_size=64)  # force many chunks
        assert verifier.file_digest(str(path)) == xxhash.xxh64(payload).digest()

    def test_identical_files(self, duplicate_pair):
        verifier = ContentVerifier()
        assert verifier.same_content(str(duplicate_pair["master"]), str(duplicate_pair["duplicate"]))

    def test_different_size_short_circuits(self, temp_dir):
        a = temp_dir / "a"
        b = temp_dir / "b"
        a.write_bytes(b"short")
        b.write_bytes(b"much longer")
        verifier = ContentVerifier()
        verifier.file_digest = lambda path: pytest.fail("digest should not be computed")
        assert not verifier.same_content(str(a), str(b))

    def test_same_size_different_content(self, temp_dir):
        a = temp_dir / "a"
        b = temp_dir / "b"
        a.write_bytes(b"aaaa")
        b.write_bytes(b"aaab")
        assert not ContentVerifier().same_content(str(a), str(b))

    def test_empty_files_are_identical(self, temp_dir):
        a = temp_dir / "a"
        b = temp_dir / "b"
        a.write_bytes(b"")
        b.write_bytes(b"")
        assert ContentVerifier().same_content(str(a), str(b))

    def test_missing_file_raises(self, temp_dir):
        existing = temp_dir / "a"
        existing.write_bytes(b"x")
        with pytest.raises(OSError):
            ContentVerifier().same_content(str(existing), str(temp_dir / "missing"))
