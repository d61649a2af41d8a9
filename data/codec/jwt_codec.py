"""
JWT credential codec.

Credentials can be kept either as structured W3C objects or as compact signed
JWTs. Stores that hold raw tokens decode them through this codec before
handing records back to callers.
"""

from datetime import datetime, timezone
from typing import Any

import jwt
from loguru import logger

REQUIRED_FIELDS = ("@context", "type", "credentialSubject")


class CredentialDecodeError(ValueError):
    """A token-shaped credential could not be decoded."""


def _timestamp_to_iso(value: int | float) -> str:
    return datetime.fromtimestamp(value, tz=timezone.utc).isoformat().replace("+00:00", "Z")


class JwtCredentialCodec:
    """
    Decode/encode verifiable credentials carried as JWTs.

    Signature checks belong to the identity layer; this codec only unpacks
    claims and checks validity windows.
    """

    def __init__(self, algorithm: str = "HS256"):
        self.algorithm = algorithm

    @staticmethod
    def is_token(value: Any) -> bool:
        """True if value looks like a compact JWS (three dot-separated segments)."""
        return isinstance(value, str) and value.count(".") == 2

    def decode(self, token: str) -> dict[str, Any]:
        """
        Decode a JWT credential into a structured credential.

        Registered claims are mapped onto the W3C fields (iss -> issuer,
        sub -> credentialSubject.id, jti -> id, nbf -> issuanceDate,
        exp -> expirationDate) and the original token is kept under proof.jwt.

        Raises:
            CredentialDecodeError: If the token is not a decodable JWT.
        """
        try:
            payload = jwt.decode(
                token,
                options={"verify_signature": False, "verify_exp": False, "verify_nbf": False},
                algorithms=[self.algorithm],
            )
        except jwt.PyJWTError as e:
            raise CredentialDecodeError(f"Invalid credential token: {e}") from e

        credential: dict[str, Any] = dict(payload.get("vc") or {})
        if not credential:
            credential = {k: v for k, v in payload.items() if k not in ("iss", "sub", "jti", "nbf", "exp", "iat")}

        subject = dict(credential.get("credentialSubject") or {})
        if "sub" in payload and "id" not in subject:
            subject["id"] = payload["sub"]
        if subject:
            credential["credentialSubject"] = subject
        if "iss" in payload and "issuer" not in credential:
            credential["issuer"] = {"id": payload["iss"]}
        if "jti" in payload and "id" not in credential:
            credential["id"] = payload["jti"]
        if "nbf" in payload and "issuanceDate" not in credential:
            credential["issuanceDate"] = _timestamp_to_iso(payload["nbf"])
        if "exp" in payload and "expirationDate" not in credential:
            credential["expirationDate"] = _timestamp_to_iso(payload["exp"])
        credential["proof"] = {"type": "JwtProof2020", "jwt": token}
        return credential

    def encode(self, credential: dict[str, Any], key: str, issuer: str | None = None) -> str:
        """Encode a structured credential as a signed JWT with a `vc` claim."""
        claims: dict[str, Any] = {"vc": {k: v for k, v in credential.items() if k != "proof"}}
        issuer_id = issuer or _issuer_id(credential)
        if issuer_id:
            claims["iss"] = issuer_id
        subject_id = (credential.get("credentialSubject") or {}).get("id")
        if subject_id:
            claims["sub"] = subject_id
        if credential.get("id"):
            claims["jti"] = credential["id"]
        claims["nbf"] = int(datetime.now(tz=timezone.utc).timestamp())
        return jwt.encode(claims, key, algorithm=self.algorithm)

    def verify(self, credential: Any) -> bool:
        """
        Check a credential's shape and validity window.

        Accepts a token or a structured credential. Returns False rather than
        raising for malformed or expired credentials.
        """
        if self.is_token(credential):
            try:
                credential = self.decode(credential)
            except CredentialDecodeError as e:
                logger.debug("Credential failed to decode: {}", e)
                return False
        if not isinstance(credential, dict):
            return False
        missing = [f for f in REQUIRED_FIELDS if f not in credential]
        if missing:
            logger.debug("Credential missing fields: {}", missing)
            return False

        token = (credential.get("proof") or {}).get("jwt")
        if token:
            try:
                jwt.decode(
                    token,
                    options={"verify_signature": False, "verify_exp": True, "verify_nbf": True},
                    algorithms=[self.algorithm],
                )
            except jwt.PyJWTError as e:
                logger.debug("Credential token rejected: {}", e)
                return False
            return True

        expiration = credential.get("expirationDate")
        if expiration:
            try:
                expires_at = datetime.fromisoformat(str(expiration).replace("Z", "+00:00"))
            except ValueError:
                return False
            if expires_at.tzinfo is None:
                expires_at = expires_at.replace(tzinfo=timezone.utc)
            return expires_at > datetime.now(tz=timezone.utc)
        return True


def _issuer_id(credential: dict[str, Any]) -> str | None:
    issuer = credential.get("issuer")
    if isinstance(issuer, dict):
        return issuer.get("id")
    return issuer
