"""
Signing capability for feedback authorizations.

The core never holds key material. Callers inject anything with an
`address` and a `sign_personal_message(bytes)` method: a local
eth-account key, a hardware wallet bridge, a remote signing service or a
test double. The method may be sync or async.

Signatures follow EIP-191 personal_sign: the signer hashes
"\\x19Ethereum Signed Message:\\n32" + digest before the ECDSA operation,
and the verifier recomputes that prefixed hash before recovery.
"""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, Any, Awaitable, Protocol, runtime_checkable

from eth_account import Account
from eth_account.messages import defunct_hash_message, encode_defunct
from eth_utils import to_checksum_address

from erc8004.core.exceptions import SigningError
from erc8004.core.logging import get_logger
from erc8004.core.registry import SIGNATURE_LENGTH

if TYPE_CHECKING:
    from eth_account.signers.local import LocalAccount

    from erc8004.adapters.base import BlockchainAdapter

logger = get_logger("auth.signer")


@runtime_checkable
class MessageSigner(Protocol):
    """Anything that can produce an EIP-191 personal-message signature."""

    @property
    def address(self) -> str: ...

    def sign_personal_message(self, message: bytes) -> bytes | Awaitable[bytes]: ...


class LocalAccountSigner:
    """MessageSigner backed by an in-process eth-account key."""

    def __init__(self, account: LocalAccount) -> None:
        self._account = account

    @classmethod
    def from_key(cls, private_key: str | bytes) -> LocalAccountSigner:
        return cls(Account.from_key(private_key))

    @property
    def address(self) -> str:
        return self._account.address

    def sign_personal_message(self, message: bytes) -> bytes:
        signed = self._account.sign_message(encode_defunct(primitive=message))
        return bytes(signed.signature)

    def __repr__(self) -> str:
        return f"LocalAccountSigner({self.address})"


class AdapterSigner:
    """MessageSigner that delegates to a BlockchainAdapter's wallet."""

    def __init__(self, adapter: BlockchainAdapter, address: str) -> None:
        self._adapter = adapter
        self._address = to_checksum_address(address)

    @classmethod
    async def from_adapter(cls, adapter: BlockchainAdapter) -> AdapterSigner:
        address = await adapter.get_address()
        if not address:
            raise SigningError("Adapter has no signing account (read-only mode)")
        return cls(adapter, address)

    @property
    def address(self) -> str:
        return self._address

    async def sign_personal_message(self, message: bytes) -> bytes:
        return await self._adapter.sign_message(message)


def personal_message_hash(digest: bytes) -> bytes:
    """The EIP-191 prefixed hash a verifier recovers against."""
    return bytes(defunct_hash_message(primitive=digest))


def normalize_signature(signature: Any) -> bytes:
    """
    Coerce a signer's output to 65 raw bytes r || s || v with v in {27, 28}.

    Some wallets return v as 0/1; the registry expects 27/28.
    """
    if isinstance(signature, str):
        hex_part = signature[2:] if signature.lower().startswith("0x") else signature
        try:
            signature = bytes.fromhex(hex_part)
        except ValueError as exc:
            raise SigningError("Signer returned a non-hex signature string") from exc
    if not isinstance(signature, (bytes, bytearray)):
        raise SigningError(f"Signer returned {type(signature).__name__}, expected bytes")

    raw = bytearray(signature)
    if len(raw) != SIGNATURE_LENGTH:
        raise SigningError(
            f"Signature must be {SIGNATURE_LENGTH} bytes (r||s||v), got {len(raw)}"
        )
    if raw[64] in (0, 1):
        raw[64] += 27
    if raw[64] not in (27, 28):
        raise SigningError(f"Signature has invalid recovery id v={raw[64]}")
    return bytes(raw)


async def sign_digest(signer: MessageSigner | None, digest: bytes) -> bytes:
    """
    Sign a 32-byte digest with the personal-message prefix.

    Any failure of the capability surfaces as SigningError chained to the
    original exception.
    """
    if signer is None:
        raise SigningError("No signer configured for feedback authorization")
    if len(digest) != 32:
        raise SigningError(f"Digest must be 32 bytes, got {len(digest)}")

    signer_address = getattr(signer, "address", None)
    try:
        result = signer.sign_personal_message(digest)
        if inspect.isawaitable(result):
            result = await result
    except SigningError:
        raise
    except Exception as exc:
        logger.error(f"Signer {signer_address} failed: {exc}")
        raise SigningError(
            f"Signing capability failed: {exc}", signer_address=signer_address
        ) from exc

    return normalize_signature(result)


def recover_signer(digest: bytes, signature: bytes) -> str:
    """Recover the checksummed address that signed digest under EIP-191."""
    try:
        return Account.recover_message(encode_defunct(primitive=digest), signature=signature)
    except Exception as exc:
        raise SigningError(f"Could not recover signer from signature: {exc}") from exc


__all__ = [
    "MessageSigner",
    "LocalAccountSigner",
    "AdapterSigner",
    "personal_message_hash",
    "normalize_signature",
    "sign_digest",
    "recover_signer",
]
