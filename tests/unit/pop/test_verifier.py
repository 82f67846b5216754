"""Tests for proof-of-possession verification."""

import time
from collections.abc import Callable

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa

from ict.core.errors import (
    ClaimValidationError,
    InvalidAudience,
    KeyMaterialError,
    MissingKeyMaterial,
    ReplayDetected,
    SignatureInvalid,
    SubjectMismatch,
    TokenExpiredOrNotYetValid,
    UnsupportedAlgorithm,
)
from ict.crypto.keys import public_key_to_jwk
from ict.pop.ledger import NonceLedger
from ict.pop.verifier import ProofOfPossessionVerifier

ISSUER = "https://op.example.com"
USER_ID = "user-1"
IDENTITY = {"sub": USER_ID, "email": "a@example.com"}

ProofFactory = Callable[..., str]


@pytest.fixture
def verifier(ledger: NonceLedger) -> ProofOfPossessionVerifier:
    return ProofOfPossessionVerifier(issuer=ISSUER, ledger=ledger)


def _now() -> int:
    return int(time.time())


class TestSignature:
    """Tests for the embedded-key signature check."""

    async def test_valid_proof(
        self, verifier: ProofOfPossessionVerifier, make_proof: ProofFactory
    ) -> None:
        proof = await verifier.verify(make_proof(), IDENTITY, _now())
        assert proof.claims["sub"] == USER_ID
        assert proof.key.algorithm.value == "ES256"

    @pytest.mark.parametrize(
        ("alg", "key"),
        [
            ("ES384", ec.generate_private_key(ec.SECP384R1())),
            ("ES512", ec.generate_private_key(ec.SECP521R1())),
            ("RS256", rsa.generate_private_key(public_exponent=65537, key_size=2048)),
            ("EdDSA", ed25519.Ed25519PrivateKey.generate()),
        ],
    )
    async def test_other_algorithms(
        self,
        verifier: ProofOfPossessionVerifier,
        make_proof: ProofFactory,
        alg: str,
        key,
    ) -> None:
        proof = await verifier.verify(make_proof(key=key, alg=alg), IDENTITY, _now())
        assert proof.key.echo() == public_key_to_jwk(key.public_key())

    async def test_embedded_key_differs_from_signer(
        self, verifier: ProofOfPossessionVerifier, make_proof: ProofFactory
    ) -> None:
        other = public_key_to_jwk(ec.generate_private_key(ec.SECP256R1()).public_key())
        with pytest.raises(SignatureInvalid):
            await verifier.verify(make_proof(jwk=other), IDENTITY, _now())

    async def test_missing_jwk(
        self, verifier: ProofOfPossessionVerifier, make_proof: ProofFactory
    ) -> None:
        with pytest.raises(MissingKeyMaterial):
            await verifier.verify(make_proof(embed_jwk=False), IDENTITY, _now())

    async def test_curve_mismatch_in_header(
        self, verifier: ProofOfPossessionVerifier, make_proof: ProofFactory
    ) -> None:
        p384 = public_key_to_jwk(ec.generate_private_key(ec.SECP384R1()).public_key())
        with pytest.raises(KeyMaterialError):
            await verifier.verify(make_proof(jwk=p384), IDENTITY, _now())

    async def test_symmetric_algorithm_rejected(
        self, verifier: ProofOfPossessionVerifier
    ) -> None:
        token = jwt.encode(
            {"sub": USER_ID},
            "a-shared-secret-that-is-long-enough-for-hs256",
            algorithm="HS256",
            headers={"jwk": {"kty": "oct", "k": "AAAA"}},
        )
        with pytest.raises(UnsupportedAlgorithm):
            await verifier.verify(token, IDENTITY, _now())

    @pytest.mark.parametrize("token", ["", "not.a.jwt", "garbage"])
    async def test_malformed_token(
        self, verifier: ProofOfPossessionVerifier, token: str
    ) -> None:
        with pytest.raises(SignatureInvalid):
            await verifier.verify(token, IDENTITY, _now())

    async def test_tampered_payload(
        self, verifier: ProofOfPossessionVerifier, make_proof: ProofFactory
    ) -> None:
        header, _payload, signature = make_proof().split(".")
        forged = jwt.encode({"sub": "someone-else"}, "k" * 32, algorithm="HS256")
        token = ".".join([header, forged.split(".")[1], signature])
        with pytest.raises(SignatureInvalid):
            await verifier.verify(token, IDENTITY, _now())


class TestClaims:
    """Tests for subject, audience and time checks."""

    async def test_subject_mismatch(
        self, verifier: ProofOfPossessionVerifier, make_proof: ProofFactory
    ) -> None:
        with pytest.raises(SubjectMismatch):
            await verifier.verify(make_proof(sub="user-2"), IDENTITY, _now())

    async def test_identity_without_subject(
        self, verifier: ProofOfPossessionVerifier, make_proof: ProofFactory
    ) -> None:
        with pytest.raises(SubjectMismatch):
            await verifier.verify(make_proof(), {"email": "a@example.com"}, _now())

    async def test_wrong_audience(
        self, verifier: ProofOfPossessionVerifier, make_proof: ProofFactory
    ) -> None:
        with pytest.raises(InvalidAudience):
            await verifier.verify(
                make_proof(aud="https://elsewhere.example"), IDENTITY, _now()
            )

    async def test_audience_list(
        self, verifier: ProofOfPossessionVerifier, make_proof: ProofFactory
    ) -> None:
        proof = await verifier.verify(
            make_proof(aud=["https://other.example", ISSUER]), IDENTITY, _now()
        )
        assert ISSUER in proof.claims["aud"]

    async def test_missing_audience(
        self, verifier: ProofOfPossessionVerifier, make_proof: ProofFactory
    ) -> None:
        token = make_proof(aud=None)
        with pytest.raises(InvalidAudience):
            await verifier.verify(token, IDENTITY, _now())

    async def test_expired(
        self, verifier: ProofOfPossessionVerifier, make_proof: ProofFactory
    ) -> None:
        now = _now()
        with pytest.raises(TokenExpiredOrNotYetValid):
            await verifier.verify(
                make_proof(iat=now - 100, exp=now - 10), IDENTITY, now
            )

    async def test_not_yet_valid(
        self, verifier: ProofOfPossessionVerifier, make_proof: ProofFactory
    ) -> None:
        now = _now()
        with pytest.raises(TokenExpiredOrNotYetValid):
            await verifier.verify(make_proof(nbf=now + 60), IDENTITY, now)

    async def test_issued_in_future(
        self, verifier: ProofOfPossessionVerifier, make_proof: ProofFactory
    ) -> None:
        now = _now()
        with pytest.raises(TokenExpiredOrNotYetValid):
            await verifier.verify(make_proof(iat=now + 60), IDENTITY, now)

    async def test_missing_expiry(
        self, verifier: ProofOfPossessionVerifier, make_proof: ProofFactory
    ) -> None:
        with pytest.raises(TokenExpiredOrNotYetValid):
            await verifier.verify(make_proof(exp=None), IDENTITY, _now())

    @pytest.mark.parametrize("exp", [10**20, 1e30, 2**63])
    async def test_expiry_beyond_ledger_range(
        self, verifier: ProofOfPossessionVerifier, make_proof: ProofFactory, exp
    ) -> None:
        with pytest.raises(TokenExpiredOrNotYetValid):
            await verifier.verify(make_proof(exp=exp), IDENTITY, _now())

    async def test_far_future_expiry_within_range(
        self, verifier: ProofOfPossessionVerifier, make_proof: ProofFactory
    ) -> None:
        exp = 2**62
        proof = await verifier.verify(make_proof(exp=exp), IDENTITY, _now())
        assert proof.claims["exp"] == exp

    @pytest.mark.parametrize("claim", ["exp", "iat", "nbf"])
    async def test_time_claims_must_be_numbers(
        self, verifier: ProofOfPossessionVerifier, make_proof: ProofFactory, claim: str
    ) -> None:
        now = _now()
        values = {"exp": str(now + 300), "iat": str(now), "nbf": str(now)}
        with pytest.raises(TokenExpiredOrNotYetValid):
            await verifier.verify(make_proof(**{claim: values[claim]}), IDENTITY, now)

    async def test_boolean_time_claim(
        self, verifier: ProofOfPossessionVerifier, make_proof: ProofFactory
    ) -> None:
        with pytest.raises(TokenExpiredOrNotYetValid):
            await verifier.verify(make_proof(nbf=True), IDENTITY, _now())

    async def test_leeway_tolerates_skew(
        self, ledger: NonceLedger, make_proof: ProofFactory
    ) -> None:
        lenient = ProofOfPossessionVerifier(issuer=ISSUER, ledger=ledger, leeway=30)
        now = _now()
        proof = await lenient.verify(make_proof(iat=now + 10), IDENTITY, now)
        assert proof.claims["iat"] == now + 10


class TestReplay:
    """Tests for single-use token identifiers."""

    async def test_missing_jti(
        self, verifier: ProofOfPossessionVerifier, make_proof: ProofFactory
    ) -> None:
        with pytest.raises(ClaimValidationError):
            await verifier.verify(make_proof(jti=None), IDENTITY, _now())

    async def test_second_use_rejected(
        self, verifier: ProofOfPossessionVerifier, make_proof: ProofFactory
    ) -> None:
        token = make_proof()
        await verifier.verify(token, IDENTITY, _now())
        with pytest.raises(ReplayDetected):
            await verifier.verify(token, IDENTITY, _now())

    async def test_rejected_proof_does_not_consume_jti(
        self, verifier: ProofOfPossessionVerifier, make_proof: ProofFactory
    ) -> None:
        with pytest.raises(InvalidAudience):
            await verifier.verify(
                make_proof(jti="jti-1", aud="https://elsewhere.example"),
                IDENTITY,
                _now(),
            )
        proof = await verifier.verify(make_proof(jti="jti-1"), IDENTITY, _now())
        assert proof.claims["jti"] == "jti-1"
