"""Credential codec: compact JWT credentials <-> structured credentials."""

from data.codec.jwt_codec import CredentialDecodeError, JwtCredentialCodec

__all__ = ["CredentialDecodeError", "JwtCredentialCodec"]
