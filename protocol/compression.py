"""Compression Layer: turn a terminal accumulator into a constant-size proof.

The running primary instance already holds every primary step. The last
secondary instance is folded into the running secondary instance, and each
resulting relaxed instance is proven with RelaxedR1CSSNARK. The proof
carries the instances the verifier needs to recompute the state hashes and
redo the secondary fold, so its size depends only on the circuit shapes,
never on the number of steps.
"""

import struct
from dataclasses import dataclass
from typing import Sequence, Tuple

import blake3

from constraints.augmented import SECONDARY_ARITY
from constraints.shape import R1CSInstance, R1CSShape, RelaxedR1CSInstance
from primitives.commitment import CommitmentKey
from primitives.curves import POINT_BYTES, CurveCycle, Group, Point
from primitives.errors import EncodingError, MalformedInput, ProvingError, VerificationFailure
from primitives.field import FIELD_BYTES, FieldElement, from_bytes_be, to_bytes_be
from primitives.polynomial import log2
from primitives.transcript import Transcript
from protocol.folding import IVCStatus, RecursiveSNARK
from protocol.ipa import InnerProductProof
from protocol.nifs import NIFS
from protocol.params import PublicParams
from protocol.spartan import RelaxedR1CSSNARK
from protocol.sumcheck import SumcheckProof

IPA_Q_LABEL_PRIMARY = b"ivc/ipa/q/primary"
IPA_Q_LABEL_SECONDARY = b"ivc/ipa/q/secondary"

PROOF_MAGIC = b"IVCC"
PROOF_VERSION = 2


# --- Keys ---


@dataclass(frozen=True)
class ProverKey:
    params_digest: bytes
    Q_primary: Point
    Q_secondary: Point


@dataclass(frozen=True)
class VerifierKey:
    """Everything verify_compressed needs; independent of the step count."""

    params_digest: bytes
    cycle: CurveCycle
    arity: int
    shape_primary: R1CSShape
    shape_secondary: R1CSShape
    ck_primary: CommitmentKey
    ck_secondary: CommitmentKey
    Q_primary: Point
    Q_secondary: Point

    @property
    def digest(self) -> bytes:
        return key_digest(self.cycle, self.params_digest, self.Q_primary, self.Q_secondary)


def key_digest(cycle: CurveCycle, params_digest: bytes, Q_primary: Point, Q_secondary: Point) -> bytes:
    h = blake3.blake3(b"ivc/verifier-key")
    h.update(params_digest)
    h.update(cycle.primary.encode(Q_primary))
    h.update(cycle.secondary.encode(Q_secondary))
    return h.digest()


def statement_transcript(vk_digest: bytes, num_steps: int, z0_primary: Sequence[FieldElement],
                         zn_primary: Sequence[FieldElement], z0_secondary: Sequence[FieldElement],
                         zn_secondary: Sequence[FieldElement]) -> Transcript:
    """Transcript seeded with the public statement the proof is about."""
    transcript = Transcript(b"CompressedSNARK")
    transcript.absorb_bytes(b"vk", vk_digest)
    transcript.absorb_int(b"num_steps", num_steps)
    transcript.absorb_scalars(b"z0_primary", z0_primary)
    transcript.absorb_scalars(b"zn_primary", zn_primary)
    transcript.absorb_scalars(b"z0_secondary", z0_secondary)
    transcript.absorb_scalars(b"zn_secondary", zn_secondary)
    return transcript


# --- Proof ---


@dataclass(frozen=True)
class CompressedSNARK:
    """Succinct proof of N folded steps.

    Attributes:
        num_steps: N
        z0_primary, zn_primary: Claimed initial and final step state
        z0_secondary, zn_secondary: Secondary circuit's state
        r_U_primary: Running primary instance, proven directly
        r_U_secondary, l_u_secondary: Running and last secondary instances
        nifs_secondary: Folding proof merging them
        snark_primary: Proof for r_U_primary
        snark_secondary: Proof for the folded secondary instance
    """

    num_steps: int
    z0_primary: Tuple[FieldElement, ...]
    zn_primary: Tuple[FieldElement, ...]
    z0_secondary: Tuple[FieldElement, ...]
    zn_secondary: Tuple[FieldElement, ...]
    r_U_primary: RelaxedR1CSInstance
    r_U_secondary: RelaxedR1CSInstance
    l_u_secondary: R1CSInstance
    nifs_secondary: NIFS
    snark_primary: RelaxedR1CSSNARK
    snark_secondary: RelaxedR1CSSNARK

    @staticmethod
    def setup(pp: PublicParams) -> Tuple[ProverKey, VerifierKey]:
        """Derive proving and verifying keys. Deterministic."""
        Q_primary = pp.cycle.primary.hash_to_curve(IPA_Q_LABEL_PRIMARY)
        Q_secondary = pp.cycle.secondary.hash_to_curve(IPA_Q_LABEL_SECONDARY)
        pk = ProverKey(params_digest=pp.digest, Q_primary=Q_primary, Q_secondary=Q_secondary)
        vk = VerifierKey(
            params_digest=pp.digest,
            cycle=pp.cycle,
            arity=pp.arity,
            shape_primary=pp.shape_primary,
            shape_secondary=pp.shape_secondary,
            ck_primary=pp.ck_primary,
            ck_secondary=pp.ck_secondary,
            Q_primary=Q_primary,
            Q_secondary=Q_secondary,
        )
        return pk, vk

    @classmethod
    def prove(cls, pp: PublicParams, pk: ProverKey, recursive_snark: RecursiveSNARK) -> "CompressedSNARK":
        """Compress a terminal accumulator.

        Raises:
            ProvingError: If the accumulator is not terminal, belongs to other
                parameters or holds unsatisfied instances
        """
        rs = recursive_snark
        if pk.params_digest != pp.digest or rs.params_digest != pp.digest:
            raise ProvingError("Proving key, parameters and accumulator do not match")
        if rs.status is not IVCStatus.TERMINAL or rs.l_u_secondary is None:
            raise ProvingError(
                f"Accumulator holds {rs.num_steps} of {rs.iteration_count} steps; compress only terminal accumulators")

        nifs_secondary, U_secondary, W_secondary = NIFS.prove(
            pp.ck_secondary, pp.params_scalar, pp.shape_secondary,
            rs.r_U_secondary, rs.r_W_secondary, rs.l_u_secondary, rs.l_w_secondary)
        try:
            pp.shape_primary.check_relaxed(pp.ck_primary, rs.r_U_primary, rs.r_W_primary)
            pp.shape_secondary.check_relaxed(pp.ck_secondary, U_secondary, W_secondary)
        except VerificationFailure as e:
            raise ProvingError(f"Folded instance is not satisfied: {e}") from e

        vk_digest = key_digest(pp.cycle, pp.digest, pk.Q_primary, pk.Q_secondary)
        transcript = statement_transcript(
            vk_digest, rs.num_steps, rs.z0_primary, rs.zi_primary, rs.z0_secondary, rs.zi_secondary)
        snark_primary = RelaxedR1CSSNARK.prove(
            pp.ck_primary, pk.Q_primary, pp.shape_primary, rs.r_U_primary, rs.r_W_primary, transcript)
        snark_secondary = RelaxedR1CSSNARK.prove(
            pp.ck_secondary, pk.Q_secondary, pp.shape_secondary, U_secondary, W_secondary, transcript)

        return cls(
            num_steps=rs.num_steps,
            z0_primary=rs.z0_primary,
            zn_primary=rs.zi_primary,
            z0_secondary=rs.z0_secondary,
            zn_secondary=rs.zi_secondary,
            r_U_primary=rs.r_U_primary,
            r_U_secondary=rs.r_U_secondary,
            l_u_secondary=rs.l_u_secondary,
            nifs_secondary=nifs_secondary,
            snark_primary=snark_primary,
            snark_secondary=snark_secondary,
        )

    def verify(self, vk: VerifierKey, num_steps: int, z0_primary: Sequence,
               zn_primary: Sequence, z0_secondary: Sequence = (0,)):
        """Shorthand for protocol.verifier.verify_compressed."""
        from protocol.verifier import verify_compressed
        return verify_compressed(vk, self, num_steps, z0_primary, zn_primary, z0_secondary)

    # --- Serialization ---

    def to_bytes(self, vk: VerifierKey) -> bytes:
        """Binary encoding; every length is implied by the verifier key."""
        primary, secondary = vk.cycle.primary, vk.cycle.secondary
        out = bytearray(PROOF_MAGIC + struct.pack("<IQ", PROOF_VERSION, self.num_steps))
        for values in (self.z0_primary, self.zn_primary, self.z0_secondary, self.zn_secondary):
            out += _scalars(values)
        out += _encode_relaxed(primary, self.r_U_primary)
        out += _encode_relaxed(secondary, self.r_U_secondary)
        out += secondary.encode(self.l_u_secondary.comm_W) + _scalars(self.l_u_secondary.X)
        out += secondary.encode(self.nifs_secondary.comm_T)
        out += _encode_snark(primary, self.snark_primary)
        out += _encode_snark(secondary, self.snark_secondary)
        return bytes(out)

    @classmethod
    def from_bytes(cls, data: bytes, vk: VerifierKey) -> "CompressedSNARK":
        """Decode a proof for the shapes in `vk`.

        Raises:
            MalformedInput: On bad magic, truncation, trailing bytes or invalid elements
        """
        reader = _ProofReader(data)
        if reader.take(4) != PROOF_MAGIC:
            raise MalformedInput("Not a compressed IVC proof")
        version, num_steps = struct.unpack("<IQ", reader.take(12))
        if version != PROOF_VERSION:
            raise MalformedInput(f"Unsupported proof version {version}")
        primary, secondary = vk.cycle.primary, vk.cycle.secondary
        F1, F2 = primary.scalar_field, secondary.scalar_field
        z0_primary = reader.scalars(F1, vk.arity)
        zn_primary = reader.scalars(F1, vk.arity)
        z0_secondary = reader.scalars(F2, SECONDARY_ARITY)
        zn_secondary = reader.scalars(F2, SECONDARY_ARITY)
        r_U_primary = _decode_relaxed(reader, primary, vk.shape_primary)
        r_U_secondary = _decode_relaxed(reader, secondary, vk.shape_secondary)
        l_u_secondary = R1CSInstance(
            comm_W=reader.point(secondary), X=reader.scalars(F2, vk.shape_secondary.num_io))
        nifs_secondary = NIFS(comm_T=reader.point(secondary))
        snark_primary = _decode_snark(reader, primary, vk.shape_primary)
        snark_secondary = _decode_snark(reader, secondary, vk.shape_secondary)
        if not reader.at_end():
            raise MalformedInput(f"Proof parsing error: {reader.remaining()} trailing bytes")
        return cls(
            num_steps=num_steps,
            z0_primary=z0_primary,
            zn_primary=zn_primary,
            z0_secondary=z0_secondary,
            zn_secondary=zn_secondary,
            r_U_primary=r_U_primary,
            r_U_secondary=r_U_secondary,
            l_u_secondary=l_u_secondary,
            nifs_secondary=nifs_secondary,
            snark_primary=snark_primary,
            snark_secondary=snark_secondary,
        )


def _scalars(values) -> bytes:
    return b"".join(to_bytes_be(v) for v in values)


def _encode_relaxed(group: Group, U: RelaxedR1CSInstance) -> bytes:
    return group.encode(U.comm_W) + group.encode(U.comm_E) + to_bytes_be(U.u) + _scalars(U.X)


def _encode_snark(group: Group, snark: RelaxedR1CSSNARK) -> bytes:
    out = bytearray()
    for poly in snark.sc_outer.round_polys:
        out += _scalars(poly)
    out += _scalars(snark.claims_outer) + to_bytes_be(snark.eval_E)
    for poly in snark.sc_inner.round_polys:
        out += _scalars(poly)
    out += to_bytes_be(snark.eval_W)
    for ipa in (snark.ipa_E, snark.ipa_W):
        out += b"".join(group.encode(L) for L in ipa.L) + b"".join(group.encode(R) for R in ipa.R)
        out += to_bytes_be(ipa.a)
    return bytes(out)


class _ProofReader:
    def __init__(self, data: bytes):
        self.data = bytes(data)
        self.pos = 0

    def take(self, n: int) -> bytes:
        if self.pos + n > len(self.data):
            raise MalformedInput(f"Proof parsing error: truncated at offset {self.pos}")
        out = self.data[self.pos:self.pos + n]
        self.pos += n
        return out

    def scalar(self, field) -> FieldElement:
        try:
            return from_bytes_be(self.take(FIELD_BYTES), field)
        except EncodingError as e:
            raise MalformedInput(f"Proof parsing error: {e}") from e

    def scalars(self, field, n: int) -> Tuple[FieldElement, ...]:
        return tuple(self.scalar(field) for _ in range(n))

    def point(self, group: Group) -> Point:
        return group.decode(self.take(POINT_BYTES))

    def points(self, group: Group, n: int) -> Tuple[Point, ...]:
        return tuple(self.point(group) for _ in range(n))

    def remaining(self) -> int:
        return len(self.data) - self.pos

    def at_end(self) -> bool:
        return self.pos == len(self.data)


def _decode_relaxed(reader: _ProofReader, group: Group, shape: R1CSShape) -> RelaxedR1CSInstance:
    F = group.scalar_field
    return RelaxedR1CSInstance(
        comm_W=reader.point(group),
        comm_E=reader.point(group),
        u=reader.scalar(F),
        X=reader.scalars(F, shape.num_io),
    )


def _decode_snark(reader: _ProofReader, group: Group, shape: R1CSShape) -> RelaxedR1CSSNARK:
    F = group.scalar_field
    rounds_x = log2(shape.num_cons_padded)
    rounds_y = log2(2 * shape.num_vars_padded)
    rounds_w = log2(shape.num_vars_padded)
    sc_outer = SumcheckProof(round_polys=tuple(reader.scalars(F, 4) for _ in range(rounds_x)))
    claims_outer = reader.scalars(F, 3)
    eval_E = reader.scalar(F)
    sc_inner = SumcheckProof(round_polys=tuple(reader.scalars(F, 3) for _ in range(rounds_y)))
    eval_W = reader.scalar(F)
    ipas = []
    for rounds in (rounds_x, rounds_w):
        L = reader.points(group, rounds)
        R = reader.points(group, rounds)
        ipas.append(InnerProductProof(L=L, R=R, a=reader.scalar(F)))
    return RelaxedR1CSSNARK(
        sc_outer=sc_outer,
        claims_outer=claims_outer,
        eval_E=eval_E,
        sc_inner=sc_inner,
        eval_W=eval_W,
        ipa_E=ipas[0],
        ipa_W=ipas[1],
    )


__all__ = [
    "ProverKey",
    "VerifierKey",
    "CompressedSNARK",
    "statement_transcript",
]
