"""Verifier for recursive accumulators and compressed proofs.

Both entry points return a VerificationResult instead of raising: a
malformed request (wrong lengths, foreign parameters) is reported as
ParameterMismatch, disagreeing public IO as PublicIOMismatch and a
cryptographic rejection as VerificationFailure.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from constraints import ro
from constraints.augmented import NUM_IO, SECONDARY_ARITY
from constraints.shape import R1CSInstance, RelaxedR1CSInstance
from primitives.curves import CurveCycle
from primitives.errors import IVCError, ParameterMismatch, PublicIOMismatch, VerificationFailure
from primitives.field import FieldElement, FieldType
from protocol.compression import CompressedSNARK, VerifierKey, statement_transcript
from protocol.folding import RecursiveSNARK
from protocol.params import PublicParams


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of a verification.

    Attributes:
        error: None on success, otherwise the reason for rejection
        zn_primary: Final step state on success
        zn_secondary: Final secondary IO on success
    """

    error: Optional[IVCError] = None
    zn_primary: Tuple[FieldElement, ...] = ()
    zn_secondary: Tuple[FieldElement, ...] = ()

    @property
    def ok(self) -> bool:
        return self.error is None

    def __bool__(self) -> bool:
        return self.ok

    @property
    def is_malformed(self) -> bool:
        """The request itself was ill-formed rather than the proof rejected."""
        return isinstance(self.error, ParameterMismatch)

    @property
    def is_rejected(self) -> bool:
        return self.error is not None and not self.is_malformed

    def unwrap(self) -> Tuple[Tuple[FieldElement, ...], Tuple[FieldElement, ...]]:
        """Return (zn_primary, zn_secondary) or raise the recorded error."""
        if self.error is not None:
            raise self.error
        return self.zn_primary, self.zn_secondary


# --- Helpers ---


def _claimed(values: Sequence, field: FieldType, expected_len: int, what: str) -> Tuple[FieldElement, ...]:
    """Claimed public values as elements of `field`.

    Accepts ints in [0, p) and elements of `field`; anything else, including
    values that would only match after reduction, is a malformed request.
    """
    try:
        n = len(values)
    except TypeError as e:
        raise ParameterMismatch(f"{what} is not a sequence: {e}") from e
    if n != expected_len:
        raise ParameterMismatch(f"{what} has {n} elements, expected {expected_len}")
    p = field.field_modulus
    out = []
    for v in values:
        if isinstance(v, FieldElement):
            if v.field_modulus != p:
                raise ParameterMismatch(f"{what} holds an element of another field")
            out.append(field(int(v)))
        elif isinstance(v, int) and not isinstance(v, bool):
            if not 0 <= v < p:
                raise ParameterMismatch(f"{what} value {v} is outside [0, p)")
            out.append(field(v))
        else:
            raise ParameterMismatch(f"{what} holds {type(v).__name__}, expected ints or field elements")
    return tuple(out)


def _check_step_count(actual: int, iteration_count: int) -> None:
    if iteration_count < 1:
        raise ParameterMismatch(f"iteration_count must be at least 1, got {iteration_count}")
    if actual != iteration_count:
        raise VerificationFailure(f"Proof covers {actual} steps, verifier expects {iteration_count}")


def _check_state_hashes(cycle: CurveCycle, params: int, num_steps: int, z0, zn, z0_sec, zn_sec,
                        r_U_primary: RelaxedR1CSInstance, r_U_secondary: RelaxedR1CSInstance,
                        l_u_secondary: R1CSInstance) -> None:
    """The last secondary instance publishes both circuits' state hashes after N steps."""
    if len(l_u_secondary.X) != NUM_IO:
        raise VerificationFailure("Last secondary instance has the wrong number of public values")
    h_primary = ro.state_hash(cycle.secondary, params, num_steps, z0, zn, r_U_secondary)
    if int(l_u_secondary.X[0]) != h_primary:
        raise VerificationFailure("Primary state hash does not match (N, z0, zn) and the running instances")
    h_secondary = ro.state_hash(cycle.primary, params, num_steps, z0_sec, zn_sec, r_U_primary)
    if int(l_u_secondary.X[1]) != h_secondary:
        raise VerificationFailure("Secondary state hash does not match the running primary instance")


def _run(check) -> VerificationResult:
    try:
        zn_primary, zn_secondary = check()
    except (ParameterMismatch, PublicIOMismatch, VerificationFailure) as e:
        print(f"ERROR: {type(e).__name__}: {e}")
        return VerificationResult(error=e)
    return VerificationResult(zn_primary=zn_primary, zn_secondary=zn_secondary)


# --- Recursive Accumulator ---


def verify_recursive(pp: PublicParams, accumulator: RecursiveSNARK, iteration_count: int,
                     z0_primary: Sequence, z0_secondary: Sequence = (0,),
                     zn_primary: Optional[Sequence] = None) -> VerificationResult:
    """Verify an accumulator holding `iteration_count` steps from z0.

    Recomputes both state hashes from (N, z0, zn) and the running instances,
    compares them with the last secondary instance's public values, and
    re-checks every instance against its witness and commitments.

    Args:
        pp: Public parameters
        accumulator: Accumulator to check
        iteration_count: Expected number of steps N
        z0_primary: Claimed initial state
        z0_secondary: Claimed initial state of the secondary circuit
        zn_primary: Claimed final state; not compared when None
    """
    def check():
        acc = accumulator
        if acc.params_digest != pp.digest:
            raise ParameterMismatch("Accumulator was built with different public parameters")
        F1 = pp.cycle.primary.scalar_field
        F2 = pp.cycle.secondary.scalar_field
        z0 = _claimed(z0_primary, F1, pp.arity, "z0_primary")
        z0_sec = _claimed(z0_secondary, F2, SECONDARY_ARITY, "z0_secondary")
        zn = _claimed(zn_primary, F1, pp.arity, "zn_primary") if zn_primary is not None else None
        _check_step_count(acc.num_steps, iteration_count)

        if acc.z0_primary != z0:
            raise PublicIOMismatch("z0_primary does not match the accumulator")
        if zn is not None and acc.zi_primary != zn:
            raise PublicIOMismatch("zn_primary does not match the accumulator")
        if acc.z0_secondary != z0_sec:
            raise PublicIOMismatch("z0_secondary does not match the accumulator")
        if acc.zi_secondary != acc.z0_secondary:
            raise VerificationFailure("Secondary state changed across steps")
        if acc.l_u_secondary is None or acc.l_w_secondary is None:
            raise VerificationFailure("Accumulator holds no folded step")

        _check_state_hashes(pp.cycle, pp.params_scalar, iteration_count, z0, acc.zi_primary,
                            z0_sec, acc.zi_secondary, acc.r_U_primary, acc.r_U_secondary, acc.l_u_secondary)

        pp.shape_primary.check_relaxed(pp.ck_primary, acc.r_U_primary, acc.r_W_primary)
        pp.shape_secondary.check_relaxed(pp.ck_secondary, acc.r_U_secondary, acc.r_W_secondary)
        pp.shape_secondary.check_strict(pp.ck_secondary, acc.l_u_secondary, acc.l_w_secondary)
        return acc.zi_primary, acc.zi_secondary

    return _run(check)


# --- Compressed Proof ---


def verify_compressed(vk: VerifierKey, proof: CompressedSNARK, iteration_count: int,
                      z0_primary: Sequence, zn_primary: Sequence,
                      z0_secondary: Sequence = (0,)) -> VerificationResult:
    """Verify a compressed proof of `iteration_count` steps from z0 to zn.

    Cost depends only on the circuit shapes, not on the number of steps.
    """
    def check():
        cycle = vk.cycle
        F1 = cycle.primary.scalar_field
        F2 = cycle.secondary.scalar_field
        z0 = _claimed(z0_primary, F1, vk.arity, "z0_primary")
        zn = _claimed(zn_primary, F1, vk.arity, "zn_primary")
        z0_sec = _claimed(z0_secondary, F2, SECONDARY_ARITY, "z0_secondary")
        _check_step_count(proof.num_steps, iteration_count)

        if proof.z0_primary != z0:
            raise PublicIOMismatch("z0_primary does not match the proof")
        if proof.zn_primary != zn:
            raise PublicIOMismatch("zn_primary does not match the proof")
        if proof.z0_secondary != z0_sec:
            raise PublicIOMismatch("z0_secondary does not match the proof")
        if proof.zn_secondary != proof.z0_secondary:
            raise VerificationFailure("Secondary state changed across steps")
        for name, U, shape in (
            ("primary", proof.r_U_primary, vk.shape_primary),
            ("secondary", proof.r_U_secondary, vk.shape_secondary),
        ):
            if len(U.X) != shape.num_io:
                raise VerificationFailure(f"Running {name} instance has the wrong number of public values")

        params = ro.digest_to_scalar(vk.params_digest)
        _check_state_hashes(cycle, params, iteration_count, z0, zn, z0_sec, z0_sec,
                            proof.r_U_primary, proof.r_U_secondary, proof.l_u_secondary)
        U_secondary = proof.nifs_secondary.verify(cycle.secondary, params, proof.r_U_secondary, proof.l_u_secondary)

        transcript = statement_transcript(vk.digest, iteration_count, z0, zn, z0_sec, z0_sec)
        proof.snark_primary.verify(vk.ck_primary, vk.Q_primary, vk.shape_primary, proof.r_U_primary, transcript)
        proof.snark_secondary.verify(vk.ck_secondary, vk.Q_secondary, vk.shape_secondary, U_secondary, transcript)
        return zn, z0_sec

    return _run(check)


__all__ = ["VerificationResult", "verify_recursive", "verify_compressed"]
