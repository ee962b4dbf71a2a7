"""
Sui key handling and message signing for DipCoin.

Every message the exchange verifies (onboarding challenge, order hashes,
cancel hashes) is signed as a Sui personal message and sent in the wire
form ``hex(signature) + flag + base64(public_key)``.
"""

from __future__ import annotations

import base64
import hashlib
import json
from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

import bech32
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519
from cryptography.hazmat.primitives.asymmetric.utils import decode_dss_signature

from ...exceptions import InvalidKeyFormatError, UnsupportedSchemeError

SUI_PRIVATE_KEY_PREFIX = "suiprivkey"
PRIVATE_KEY_SIZE = 32
LEGACY_PRIVATE_KEY_SIZE = 64

# Sui signature scheme flags (first byte of addresses and serialized signatures)
SIGNATURE_SCHEME_TO_FLAG = {
    "ED25519": 0x00,
    "Secp256k1": 0x01,
    "Secp256r1": 0x02,
    "ZkLogin": 0x05,
}
SIGNATURE_FLAG_TO_SCHEME = {flag: scheme for scheme, flag in SIGNATURE_SCHEME_TO_FLAG.items()}
_SIGNABLE_SCHEMES = ("ED25519", "Secp256k1", "Secp256r1")

SIGNATURE_SIZES = {
    "ED25519": (64, 32),
    "Secp256k1": (64, 33),
    "Secp256r1": (64, 33),
}

_CURVES = {
    "Secp256k1": ec.SECP256K1,
    "Secp256r1": ec.SECP256R1,
}

_CURVE_ORDERS = {
    "Secp256k1": 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141,
    "Secp256r1": 0xFFFFFFFF00000000FFFFFFFFFFFFFFFFBCE6FAADA7179E84F3B9CAC2FC632551,
}

# Personal message intent: scope=PersonalMessage(3), version=V0, app=Sui
PERSONAL_MESSAGE_INTENT = bytes([3, 0, 0])


class SignerTypes:
    """Wire flag placed between the hex signature and the base64 public key."""

    SECP = "0"
    KEYPAIR = "1"
    UI_WALLET = "2"
    ZK_LOGIN = "3"


def blake2b_256(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=32).digest()


def uleb128(value: int) -> bytes:
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def personal_message_digest(message: bytes) -> bytes:
    """blake2b-256 of intent || BCS(vector<u8>) of the message."""
    bcs_bytes = uleb128(len(message)) + message
    return blake2b_256(PERSONAL_MESSAGE_INTENT + bcs_bytes)


def address_from_public_key(scheme: str, public_key: bytes) -> str:
    flag = SIGNATURE_SCHEME_TO_FLAG.get(scheme)
    if flag is None:
        raise UnsupportedSchemeError(f"Unsupported signature scheme: {scheme}")
    return "0x" + blake2b_256(bytes([flag]) + public_key).hex()


# ============================================================================
# KEY DECODING
# ============================================================================


def _decode_bech32(value: str) -> Tuple[str, bytes]:
    hrp, data = bech32.bech32_decode(value)
    if hrp != SUI_PRIVATE_KEY_PREFIX or data is None:
        raise InvalidKeyFormatError("Invalid suiprivkey encoding")
    raw = bech32.convertbits(data, 5, 8, False)
    if raw is None or len(raw) != PRIVATE_KEY_SIZE + 1:
        raise InvalidKeyFormatError("Invalid suiprivkey payload length")
    scheme = SIGNATURE_FLAG_TO_SCHEME.get(raw[0])
    if scheme not in _SIGNABLE_SCHEMES:
        raise UnsupportedSchemeError(f"Unsupported key scheme flag: {raw[0]}")
    return scheme, bytes(raw[1:])


def _decode_hex(value: str) -> Optional[bytes]:
    text = value[2:] if value.lower().startswith("0x") else value
    if len(text) != PRIVATE_KEY_SIZE * 2:
        return None
    try:
        return bytes.fromhex(text)
    except ValueError:
        return None


def _decode_base64(value: str) -> Optional[bytes]:
    try:
        return base64.b64decode(value, validate=True)
    except ValueError:
        return None


def _decode_legacy_object(value: str) -> Tuple[str, bytes]:
    try:
        exported = json.loads(value)
    except ValueError as exc:
        raise InvalidKeyFormatError("Invalid exported key object") from exc
    if not isinstance(exported, dict) or "privateKey" not in exported:
        raise InvalidKeyFormatError("Exported key object needs schema and privateKey")
    scheme = exported.get("schema", "ED25519")
    if scheme not in _SIGNABLE_SCHEMES:
        raise UnsupportedSchemeError(f"Unsupported key schema: {scheme}")
    secret = _decode_base64(str(exported["privateKey"]))
    if secret is None:
        raise InvalidKeyFormatError("Exported privateKey is not base64")
    if len(secret) == LEGACY_PRIVATE_KEY_SIZE:
        secret = secret[:PRIVATE_KEY_SIZE]
    if len(secret) != PRIVATE_KEY_SIZE:
        raise InvalidKeyFormatError(f"Invalid private key length: {len(secret)}")
    return scheme, secret


def decode_private_key(value: str, legacy_support: bool = False) -> Tuple[str, bytes]:
    """
    Decode a private key string into ``(scheme, 32-byte secret)``.

    Accepted forms:
        - ``suiprivkey1...`` bech32 (flag byte + secret)
        - 32-byte hex, with or without ``0x`` (Ed25519)
        - base64 ``flag || secret`` (33 bytes) or legacy ``secret || public`` (64 bytes)
        - exported ``{"schema", "privateKey"}`` JSON when ``legacy_support`` is set
    """
    if not isinstance(value, str) or not value.strip():
        raise InvalidKeyFormatError("Private key is empty")
    text = value.strip()

    if text.lower().startswith(SUI_PRIVATE_KEY_PREFIX):
        return _decode_bech32(text.lower())

    if text.startswith("{"):
        if not legacy_support:
            raise InvalidKeyFormatError("Exported key objects require legacy_support=True")
        return _decode_legacy_object(text)

    secret = _decode_hex(text)
    if secret is not None:
        return "ED25519", secret

    raw = _decode_base64(text)
    if raw is not None:
        if len(raw) == PRIVATE_KEY_SIZE + 1:
            scheme = SIGNATURE_FLAG_TO_SCHEME.get(raw[0])
            if scheme not in _SIGNABLE_SCHEMES:
                raise UnsupportedSchemeError(f"Unsupported key scheme flag: {raw[0]}")
            return scheme, raw[1:]
        if len(raw) == LEGACY_PRIVATE_KEY_SIZE:
            return "ED25519", raw[:PRIVATE_KEY_SIZE]
        if len(raw) == PRIVATE_KEY_SIZE:
            return "ED25519", raw

    raise InvalidKeyFormatError("Unrecognized private key format")


def encode_private_key(scheme: str, secret: bytes) -> str:
    """Encode a secret as a ``suiprivkey1...`` bech32 string."""
    if scheme not in _SIGNABLE_SCHEMES:
        raise UnsupportedSchemeError(f"Unsupported key scheme: {scheme}")
    if len(secret) != PRIVATE_KEY_SIZE:
        raise InvalidKeyFormatError(f"Invalid private key length: {len(secret)}")
    data = bech32.convertbits(bytes([SIGNATURE_SCHEME_TO_FLAG[scheme]]) + secret, 8, 5)
    return bech32.bech32_encode(SUI_PRIVATE_KEY_PREFIX, data)


# ============================================================================
# IDENTITY
# ============================================================================


@dataclass(frozen=True)
class SuiIdentity:
    """An address plus the private signing material behind it."""

    scheme: str
    public_key: bytes
    address: str
    _private_key: Any = field(default=None, repr=False, compare=False)

    @classmethod
    def from_secret(cls, scheme: str, secret: bytes) -> "SuiIdentity":
        try:
            if scheme == "ED25519":
                private_key = ed25519.Ed25519PrivateKey.from_private_bytes(secret)
                public_key = private_key.public_key().public_bytes(
                    serialization.Encoding.Raw, serialization.PublicFormat.Raw
                )
            elif scheme in _CURVES:
                private_key = ec.derive_private_key(int.from_bytes(secret, "big"), _CURVES[scheme]())
                public_key = private_key.public_key().public_bytes(
                    serialization.Encoding.X962, serialization.PublicFormat.CompressedPoint
                )
            else:
                raise UnsupportedSchemeError(f"Unsupported key scheme: {scheme}")
        except (ValueError, UnsupportedAlgorithm) as exc:
            raise InvalidKeyFormatError(f"Invalid {scheme} private key: {exc}") from exc

        return cls(
            scheme=scheme,
            public_key=public_key,
            address=address_from_public_key(scheme, public_key),
            _private_key=private_key,
        )

    @classmethod
    def from_private_key(cls, value: str, legacy_support: bool = False) -> "SuiIdentity":
        scheme, secret = decode_private_key(value, legacy_support=legacy_support)
        return cls.from_secret(scheme, secret)

    @property
    def can_sign(self) -> bool:
        return self._private_key is not None

    def sign_personal_message(self, message: bytes) -> bytes:
        """Raw 64-byte signature over the personal-message digest."""
        if self._private_key is None:
            raise UnsupportedSchemeError(f"Identity {self.address} holds no local signing key")
        digest = personal_message_digest(message)

        if self.scheme == "ED25519":
            return self._private_key.sign(digest)

        der = self._private_key.sign(digest, ec.ECDSA(hashes.SHA256()))
        r, s = decode_dss_signature(der)
        order = _CURVE_ORDERS[self.scheme]
        if s > order // 2:
            s = order - s
        return r.to_bytes(32, "big") + s.to_bytes(32, "big")

    def serialized_signature(self, message: bytes) -> str:
        """Sui serialized form: base64(flag || signature || public_key)."""
        signature = self.sign_personal_message(message)
        flag = bytes([SIGNATURE_SCHEME_TO_FLAG[self.scheme]])
        return base64.b64encode(flag + signature + self.public_key).decode()


# ============================================================================
# WIRE SIGNATURES
# ============================================================================


@dataclass(frozen=True)
class ParsedSignature:
    scheme: str
    signature: bytes
    public_key: bytes


def parse_serialized_signature(serialized: str) -> ParsedSignature:
    raw = _decode_base64(serialized)
    if not raw:
        raise UnsupportedSchemeError("Serialized signature is not base64")
    scheme = SIGNATURE_FLAG_TO_SCHEME.get(raw[0])
    if scheme == "ZkLogin":
        # zkLogin carries the proof inline; there is no public key to split off.
        return ParsedSignature(scheme=scheme, signature=raw[1:], public_key=b"")
    if scheme not in SIGNATURE_SIZES:
        raise UnsupportedSchemeError(f"Unsupported signature scheme flag: {raw[0]}")
    sig_size, key_size = SIGNATURE_SIZES[scheme]
    if len(raw) != 1 + sig_size + key_size:
        raise UnsupportedSchemeError(f"Invalid {scheme} signature length: {len(raw)}")
    return ParsedSignature(
        scheme=scheme,
        signature=raw[1:1 + sig_size],
        public_key=raw[1 + sig_size:],
    )


def wire_flag(scheme: str, is_keypair: bool = True) -> str:
    if scheme in ("Secp256k1", "Secp256r1"):
        return SignerTypes.SECP
    if scheme == "ED25519":
        return SignerTypes.KEYPAIR if is_keypair else SignerTypes.UI_WALLET
    if scheme == "ZkLogin":
        return SignerTypes.ZK_LOGIN
    raise UnsupportedSchemeError(f"Unsupported signature scheme: {scheme}")


def assemble_signature(signature: bytes, flag: str, public_key: bytes) -> str:
    return signature.hex() + flag + base64.b64encode(public_key).decode()


def build_signature(serialized: str, is_keypair: bool = True) -> str:
    """
    Re-assemble a Sui serialized signature into the exchange wire format.

    ``is_keypair=False`` marks an Ed25519 signature produced by an external
    (browser) wallet rather than a locally held key.
    """
    parsed = parse_serialized_signature(serialized)
    return assemble_signature(
        parsed.signature,
        wire_flag(parsed.scheme, is_keypair=is_keypair),
        parsed.public_key,
    )


class MessageSigner:
    """Signs arbitrary payloads with a local identity in the wire format."""

    def sign(self, identity: SuiIdentity, message: bytes) -> str:
        if identity.scheme not in _SIGNABLE_SCHEMES:
            raise UnsupportedSchemeError(f"Cannot sign locally with scheme {identity.scheme}")
        signature = identity.sign_personal_message(message)
        return assemble_signature(signature, wire_flag(identity.scheme), identity.public_key)

    def sign_text(self, identity: SuiIdentity, text: str) -> str:
        return self.sign(identity, text.encode("utf-8"))
