# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
SHA3-256 helpers and the domain separation prehashes used for signing.

Signing messages are built as ``sha3_256(b"APTOS::" + type_name) || bcs``.
The three prehashes used by the library are computed once per process, on
first use, and are read-only afterwards.
"""

from __future__ import annotations

import hashlib
import threading
import unittest
from typing import Dict

RAW_TRANSACTION_SALT = b"APTOS::RawTransaction"
RAW_TRANSACTION_WITH_DATA_SALT = b"APTOS::RawTransactionWithData"
TRANSACTION_SALT = b"APTOS::Transaction"

_prehash_lock = threading.Lock()
_prehashes: Dict[bytes, bytes] = {}


def sha3_256(data: bytes) -> bytes:
    hasher = hashlib.sha3_256()
    hasher.update(data)
    return hasher.digest()


def prehash(salt: bytes) -> bytes:
    """Return ``sha3_256(salt)``, caching the digest for the process lifetime."""
    value = _prehashes.get(salt)
    if value is not None:
        return value
    with _prehash_lock:
        value = _prehashes.get(salt)
        if value is None:
            value = sha3_256(salt)
            _prehashes[salt] = value
    return value


def raw_transaction_prehash() -> bytes:
    return prehash(RAW_TRANSACTION_SALT)


def raw_transaction_with_data_prehash() -> bytes:
    return prehash(RAW_TRANSACTION_WITH_DATA_SALT)


def transaction_prehash() -> bytes:
    return prehash(TRANSACTION_SALT)


class Test(unittest.TestCase):
    def test_prehash_values(self):
        self.assertEqual(
            raw_transaction_prehash(),
            hashlib.sha3_256(b"APTOS::RawTransaction").digest(),
        )
        self.assertEqual(
            raw_transaction_with_data_prehash(),
            hashlib.sha3_256(b"APTOS::RawTransactionWithData").digest(),
        )
        self.assertEqual(len(transaction_prehash()), 32)

    def test_concurrent_initialization(self):
        salt = b"APTOS::ConcurrentTest"
        results = []

        def compute():
            results.append(prehash(salt))

        threads = [threading.Thread(target=compute) for _ in range(16)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(len(results), 16)
        self.assertEqual(len(set(results)), 1)
        self.assertIs(_prehashes[salt], prehash(salt))


if __name__ == "__main__":
    unittest.main()
