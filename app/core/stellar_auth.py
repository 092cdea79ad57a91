"""
Stellar Wallet Authentication Utilities

This module handles Stellar-specific cryptographic operations for wallet authentication.

Authentication Flow:
1. Backend generates a random nonce -> generate_nonce()
2. Frontend signs the challenge payload {"nonce": "<nonce>"} with the wallet (ed25519)
3. Frontend sends: address, signature (base64)
4. Backend rebuilds the payload from the stored nonce -> challenge_payload()
5. Backend verifies the signature with the address's public key -> verify_signature()

A Stellar account address ("G...") is the StrKey encoding of the ed25519 public key,
so no separate public key has to be sent by the client.

The signature verification uses:
- ED25519 cryptography (Stellar's signature algorithm)
- stellar_sdk StrKey for address validation and decoding
"""

import base64
import binascii
import json
import secrets
from typing import Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey
from stellar_sdk import StrKey


NONCE_NUM_BYTES = 15  # 15 bytes = 30 hex characters
MIN_NONCE_NUM_BYTES = 15


def generate_nonce(num_bytes: int = NONCE_NUM_BYTES) -> str:
    """
    Generate a cryptographically secure random nonce for wallet authentication.

    The nonce is a random hex string that the user must sign with their wallet
    to prove ownership. Anything below 15 bytes of entropy is raised to 15.

    Args:
        num_bytes: Number of random bytes to generate (default: 15 = 30 hex chars)

    Returns:
        Hex-encoded random string (e.g., "a1b2c3d4...")
    """
    if num_bytes < MIN_NONCE_NUM_BYTES:
        num_bytes = MIN_NONCE_NUM_BYTES
    return secrets.token_hex(num_bytes)


def is_valid_address(address: Optional[str]) -> bool:
    """True if ``address`` is a well-formed Stellar ed25519 public key (G...)."""
    if not address:
        return False
    return StrKey.is_valid_ed25519_public_key(address)


def challenge_payload(nonce: Optional[str]) -> bytes:
    """
    Build the exact bytes the wallet was asked to sign.

    Serialized compactly so it matches JSON.stringify({ nonce }) on the client.
    """
    return json.dumps({"nonce": nonce}, separators=(",", ":")).encode("utf-8")


def _decode_base64(value: str) -> bytes:
    """Helper: Decode base64 string to bytes."""
    return base64.b64decode(value.strip(), validate=True)


def verify_signature(address: str, payload: bytes, signature: str) -> bool:
    """
    Verify a base64 ed25519 signature over ``payload`` for a Stellar address.

    Args:
        address: Stellar account address (e.g., "GABC...")
        payload: The exact bytes that were signed (see challenge_payload)
        signature: ED25519 signature, base64 encoded

    Returns:
        True only if the address decodes and the signature verifies.
    """
    try:
        public_key_bytes = StrKey.decode_ed25519_public_key(address)
    except ValueError:
        return False

    try:
        signature_bytes = _decode_base64(signature)
    except (binascii.Error, ValueError):
        return False

    try:
        Ed25519PublicKey.from_public_bytes(public_key_bytes).verify(signature_bytes, payload)
    except InvalidSignature:
        return False
    return True
