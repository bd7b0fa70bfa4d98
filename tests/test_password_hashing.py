"""Tests for salted password hashing."""

from __future__ import annotations

import sys
import unittest
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from messagely.passwords import CredentialHasher


class PasswordHashingTests(unittest.TestCase):
    def setUp(self) -> None:
        self.hasher = CredentialHasher(work_factor=4)

    def test_hash_verifies_original_password(self) -> None:
        digest = self.hasher.hash("supersecurepassword")
        self.assertTrue(digest.startswith("$bcrypt-sha256$"))
        self.assertTrue(self.hasher.verify("supersecurepassword", digest))
        self.assertFalse(self.hasher.verify("incorrect", digest))

    def test_same_password_hashes_differently(self) -> None:
        first = self.hasher.hash("pw1")
        second = self.hasher.hash("pw1")
        self.assertNotEqual(first, second)
        self.assertTrue(self.hasher.verify("pw1", first))
        self.assertTrue(self.hasher.verify("pw1", second))

    def test_verify_never_raises_on_bad_digest(self) -> None:
        self.assertFalse(self.hasher.verify("pw1", "not-a-digest"))
        self.assertFalse(self.hasher.verify("pw1", ""))
        self.assertFalse(self.hasher.verify("", self.hasher.hash("pw1")))

    def test_empty_password_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            self.hasher.hash("")

    def test_work_factor_bounds(self) -> None:
        with self.assertRaises(ValueError):
            CredentialHasher(work_factor=3)
        with self.assertRaises(ValueError):
            CredentialHasher(work_factor=32)
        with self.assertRaises(ValueError):
            CredentialHasher(scheme="md5_crypt")
        self.assertEqual(CredentialHasher().work_factor, 12)
        self.assertEqual(CredentialHasher(scheme="pbkdf2_sha256").work_factor, 600_000)

    def test_pbkdf2_digest_still_verifies_and_needs_rehash(self) -> None:
        legacy = CredentialHasher(scheme="pbkdf2_sha256", work_factor=1000)
        digest = legacy.hash("anothersecurepassword")
        self.assertTrue(digest.startswith("$pbkdf2-sha256$"))

        self.assertTrue(self.hasher.verify("anothersecurepassword", digest))
        self.assertFalse(self.hasher.verify("incorrect", digest))
        self.assertTrue(self.hasher.needs_rehash(digest))
        self.assertFalse(self.hasher.needs_rehash(self.hasher.hash("anothersecurepassword")))

    def test_long_passwords_sharing_a_prefix_do_not_collide(self) -> None:
        prefix = "a" * 72
        digest = self.hasher.hash(prefix + "correct-horse")

        self.assertTrue(self.hasher.verify(prefix + "correct-horse", digest))
        self.assertFalse(self.hasher.verify(prefix + "totally-different", digest))
        self.assertFalse(self.hasher.verify(prefix, digest))

    def test_plain_bcrypt_digest_still_verifies_and_needs_rehash(self) -> None:
        legacy = CredentialHasher(scheme="bcrypt", work_factor=4)
        digest = legacy.hash("anothersecurepassword")
        self.assertTrue(digest.startswith("$2"))

        self.assertTrue(self.hasher.verify("anothersecurepassword", digest))
        self.assertTrue(self.hasher.needs_rehash(digest))

    def test_plain_bcrypt_refuses_input_it_would_truncate(self) -> None:
        legacy = CredentialHasher(scheme="bcrypt", work_factor=4)
        prefix = "a" * 72
        with self.assertRaises(ValueError):
            legacy.hash(prefix + "correct-horse")

        digest = legacy.hash(prefix)
        self.assertTrue(legacy.verify(prefix, digest))
        self.assertFalse(legacy.verify(prefix + "totally-different", digest))
        self.assertFalse(self.hasher.verify(prefix + "totally-different", digest))

    def test_dummy_verify_runs(self) -> None:
        self.hasher.dummy_verify()


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
