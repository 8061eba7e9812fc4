# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Aptos client core - the offline half of an Aptos client.

Everything needed to produce bytes a node accepts, without talking to one:
encoding values with BCS, deriving addresses, handling keys, and assembling,
signing and verifying transactions.

Quick Start:
    Build, sign and encode a transfer::

        from aptos_core.account import Account
        from aptos_core.account_address import AccountAddress
        from aptos_core.bcs import Serializer
        from aptos_core.transaction_builder import TransactionBuilder, sign_transaction
        from aptos_core.transactions import TransactionArgument

        alice = Account.generate()
        raw_transaction = (
            TransactionBuilder()
            .sender(alice.address())
            .sequence_number(0)
            .chain_id(2)
            .entry_function(
                "0x1::aptos_account::transfer",
                [],
                [
                    TransactionArgument(AccountAddress.from_str("0x2"), Serializer.struct),
                    TransactionArgument(1_000, Serializer.u64),
                ],
            )
            .build()
        )
        signed_transaction = sign_transaction(alice, raw_transaction)
        submit_bytes = signed_transaction.bytes()

Module Organization:
    Encoding:
    - **bcs**: Binary Canonical Serialization
    - **hashing**: SHA3-256 and the domain-separation prehashes

    Identity:
    - **account_address**: Addresses, AIP-40 formatting and derivations
    - **authentication_key**: Authentication keys from public keys

    Cryptography:
    - **asymmetric_crypto**: Key and signature protocols, error types
    - **ed25519**: Ed25519 and MultiEd25519
    - **secp256k1_ecdsa** / **secp256r1_ecdsa**: ECDSA keys
    - **webauthn**: Passkey assertions over secp256r1
    - **keyless**: Keyless and federated keyless wire types
    - **asymmetric_crypto_wrapper**: AnyPublicKey, AnySignature and MultiKey

    Transactions:
    - **authenticator**: Transaction and account authenticators
    - **type_tag**: Move type tags
    - **transactions**: Raw, multi-agent, fee payer and signed transactions
    - **transaction_builder**: Defaults and signing helpers
    - **account**: Signers

Security Considerations:
    - **Private Keys**: Private keys render as a redacted placeholder and
      cannot be serialized to JSON. Use ``aip80()`` to export one explicitly.
"""
