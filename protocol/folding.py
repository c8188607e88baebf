"""Folding Engine: the recursive accumulator and the step loop.

Each step runs both augmented circuits. The primary circuit applies the
user's step function and folds the secondary circuit's last instance into
the running secondary instance; its own new instance is then folded into the
running primary instance and handed to the secondary circuit, which checks
that fold on the other curve:

    r_U_secondary <- r_U_secondary + r·l_u_secondary       (checked by primary step i)
    r_U_primary   <- r_U_primary + r'·l_u_primary           (checked by secondary step i)

After step i the accumulator keeps both running instances and the last
secondary instance, whose public values are the hashes the verifier
recomputes from (i, z0, zi) and the running instances.

    INITIAL --prove_step--> FOLDED --prove_step--> ... --> TERMINAL
    (num_steps = 0)                                  (num_steps = iteration_count)

Accumulators are immutable; prove_step returns a new one, so a failed step
leaves the caller's accumulator untouched.
"""

from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple, Union

from constraints.augmented import SECONDARY_ARITY, AugmentedCircuit, AugmentedInputs
from constraints.r1cs import ConstraintSystem
from constraints.shape import (
    R1CSInstance,
    R1CSShape,
    R1CSWitness,
    RelaxedR1CSInstance,
    RelaxedR1CSWitness,
)
from primitives.commitment import CommitmentKey
from primitives.errors import ParameterMismatch, PublicIOMismatch
from primitives.field import FieldElement, FieldType, to_field_vec, to_hex
from protocol.nifs import NIFS
from protocol.params import PublicParams
from witness import WitnessGenerator, WitnessGeneratorConfig, WitnessGeneratorRef


class IVCStatus(Enum):
    INITIAL = "initial"
    FOLDED = "folded"
    TERMINAL = "terminal"


def _ints(values: Sequence) -> Tuple[int, ...]:
    return tuple(int(v) for v in values)


def synthesize_step(circuit: AugmentedCircuit, cs: ConstraintSystem, shape: R1CSShape, ck: CommitmentKey,
                    inputs: AugmentedInputs, witness: Optional[Sequence] = None
                    ) -> Tuple[R1CSInstance, R1CSWitness, Tuple[int, ...]]:
    """Run one augmented circuit and commit to its witness.

    Returns:
        (strict instance, witness, next state)

    Raises:
        StepConstraintViolation: If the assignment does not satisfy `cs`
    """
    _, w, z_next = circuit.synthesize(inputs, witness)
    cs.check_witness(w)
    W, X = shape.split_witness(w)
    l_w = R1CSWitness(W=tuple(W))
    return R1CSInstance.commit(ck, l_w, X), l_w, z_next


@dataclass(frozen=True)
class RecursiveSNARK:
    """Recursive accumulator after `num_steps` of `iteration_count` steps.

    Attributes:
        params_digest: Digest of the PublicParams it was built with
        iteration_count: Configured number of steps N
        num_steps: Steps folded so far
        z0_primary, zi_primary: Initial and current step state
        z0_secondary, zi_secondary: Secondary circuit's state (carried unchanged)
        r_U_primary, r_W_primary: Running relaxed instance/witness of the primary circuit
        r_U_secondary, r_W_secondary: Same for the secondary circuit
        l_u_secondary, l_w_secondary: Last strict instance/witness of the
            secondary circuit, None before the first step
    """

    params_digest: bytes
    iteration_count: int
    num_steps: int
    z0_primary: Tuple[FieldElement, ...]
    zi_primary: Tuple[FieldElement, ...]
    z0_secondary: Tuple[FieldElement, ...]
    zi_secondary: Tuple[FieldElement, ...]
    r_U_primary: RelaxedR1CSInstance
    r_W_primary: RelaxedR1CSWitness
    r_U_secondary: RelaxedR1CSInstance
    r_W_secondary: RelaxedR1CSWitness
    l_u_secondary: Optional[R1CSInstance]
    l_w_secondary: Optional[R1CSWitness]

    @classmethod
    def initial(cls, pp: PublicParams, z0_primary: Sequence, iteration_count: int,
                z0_secondary: Sequence = (0,)) -> "RecursiveSNARK":
        """Empty accumulator: default running instances, no last instance.

        Raises:
            ParameterMismatch: If iteration_count < 1 or z0 has the wrong length
        """
        if iteration_count < 1:
            raise ParameterMismatch(f"iteration_count must be at least 1, got {iteration_count}")
        if len(z0_primary) != pp.arity:
            raise ParameterMismatch(f"z0 has {len(z0_primary)} elements, step arity is {pp.arity}")
        if len(z0_secondary) != SECONDARY_ARITY:
            raise ParameterMismatch(
                f"Secondary z0 has {len(z0_secondary)} elements, expected {SECONDARY_ARITY}")
        primary, secondary = pp.cycle.primary, pp.cycle.secondary
        z0 = tuple(to_field_vec(z0_primary, primary.scalar_field))
        z0_sec = tuple(to_field_vec(z0_secondary, secondary.scalar_field))
        return cls(
            params_digest=pp.digest,
            iteration_count=iteration_count,
            num_steps=0,
            z0_primary=z0,
            zi_primary=z0,
            z0_secondary=z0_sec,
            zi_secondary=z0_sec,
            r_U_primary=RelaxedR1CSInstance.default(primary, pp.shape_primary),
            r_W_primary=RelaxedR1CSWitness.default(pp.shape_primary),
            r_U_secondary=RelaxedR1CSInstance.default(secondary, pp.shape_secondary),
            r_W_secondary=RelaxedR1CSWitness.default(pp.shape_secondary),
            l_u_secondary=None,
            l_w_secondary=None,
        )

    @property
    def status(self) -> IVCStatus:
        if self.num_steps == 0:
            return IVCStatus.INITIAL
        if self.num_steps >= self.iteration_count:
            return IVCStatus.TERMINAL
        return IVCStatus.FOLDED

    def prove_step(self, pp: PublicParams, witness: Sequence,
                   step_public_input: Optional[Sequence] = None) -> "RecursiveSNARK":
        """Fold one step.

        Args:
            pp: Public parameters the accumulator was built with
            witness: Circom-ordered witness of the step circuit
            step_public_input: Claimed step input; must equal zi when given

        Returns:
            New accumulator with num_steps + 1

        Raises:
            ParameterMismatch: Foreign parameters, terminal accumulator or wrong witness length
            PublicIOMismatch: Step input disagrees with zi
            StepConstraintViolation: Witness does not satisfy the step circuit
        """
        if pp.digest != self.params_digest:
            raise ParameterMismatch("Accumulator was built with different public parameters")
        if self.status is IVCStatus.TERMINAL:
            raise ParameterMismatch(
                f"Accumulator already holds all {self.iteration_count} configured steps")
        step_cs = pp.step_cs
        if len(witness) != step_cs.num_variables():
            raise ParameterMismatch(
                f"Witness has {len(witness)} values, step circuit expects {step_cs.num_variables()}")

        primary, secondary = pp.cycle.primary, pp.cycle.secondary
        Fp: FieldType = primary.scalar_field
        Fs: FieldType = secondary.scalar_field
        if step_public_input is not None:
            claimed = tuple(to_field_vec(step_public_input, Fp))
            if claimed != self.zi_primary:
                raise PublicIOMismatch(f"Step {self.num_steps} input does not match the accumulator state")
        wired = tuple(Fp(int(witness[i])) for i in step_cs.input_wires())
        if wired != self.zi_primary:
            raise PublicIOMismatch(f"Witness input wires of step {self.num_steps} do not carry z_{self.num_steps}")
        step_cs.check_witness(witness)

        params = pp.params_scalar
        i = self.num_steps
        z0, zi = _ints(self.z0_primary), _ints(self.zi_primary)
        z0_sec, zi_sec = _ints(self.z0_secondary), _ints(self.zi_secondary)

        # primary: fold the last secondary instance, run the step function
        r_U_secondary, r_W_secondary = self.r_U_secondary, self.r_W_secondary
        if i == 0:
            inputs = AugmentedInputs(params=params, i=0, z0=z0)
        else:
            nifs_secondary, r_U_secondary, r_W_secondary = NIFS.prove(
                pp.ck_secondary, params, pp.shape_secondary,
                self.r_U_secondary, self.r_W_secondary, self.l_u_secondary, self.l_w_secondary)
            inputs = AugmentedInputs(params=params, i=i, z0=z0, zi=zi, U=self.r_U_secondary,
                                     u=self.l_u_secondary, T=nifs_secondary.comm_T)
        l_u_primary, l_w_primary, zi_next = synthesize_step(
            pp.circuit_primary, pp.cs_primary, pp.shape_primary, pp.ck_primary, inputs, witness)

        # secondary: fold the new primary instance, checked on the other curve
        if i == 0:
            r_U_primary = RelaxedR1CSInstance.from_r1cs_instance(primary, pp.shape_primary, l_u_primary)
            r_W_primary = RelaxedR1CSWitness.from_r1cs_witness(pp.shape_primary, l_w_primary)
            inputs = AugmentedInputs(params=params, i=0, z0=z0_sec, u=l_u_primary)
        else:
            nifs_primary, r_U_primary, r_W_primary = NIFS.prove(
                pp.ck_primary, params, pp.shape_primary,
                self.r_U_primary, self.r_W_primary, l_u_primary, l_w_primary)
            inputs = AugmentedInputs(params=params, i=i, z0=z0_sec, zi=zi_sec, U=self.r_U_primary,
                                     u=l_u_primary, T=nifs_primary.comm_T)
        l_u_secondary, l_w_secondary, zi_sec_next = synthesize_step(
            pp.circuit_secondary, pp.cs_secondary, pp.shape_secondary, pp.ck_secondary, inputs)

        return replace(
            self,
            num_steps=i + 1,
            zi_primary=tuple(to_field_vec(zi_next, Fp)),
            zi_secondary=tuple(to_field_vec(zi_sec_next, Fs)),
            r_U_primary=r_U_primary,
            r_W_primary=r_W_primary,
            r_U_secondary=r_U_secondary,
            r_W_secondary=r_W_secondary,
            l_u_secondary=l_u_secondary,
            l_w_secondary=l_w_secondary,
        )

    def verify(self, pp: PublicParams, num_steps: int, z0_primary: Sequence,
               z0_secondary: Sequence = (0,), zn_primary: Optional[Sequence] = None):
        """Shorthand for protocol.verifier.verify_recursive."""
        from protocol.verifier import verify_recursive
        return verify_recursive(pp, self, num_steps, z0_primary, z0_secondary, zn_primary)


# --- Step Loop ---


class FoldingEngine:
    """Drives the witness adapter and the accumulator over N steps."""

    def __init__(self, pp: PublicParams,
                 generator_ref: Union[WitnessGeneratorRef, str, Path, Any],
                 config: Optional[WitnessGeneratorConfig] = None):
        self.pp = pp
        self.generator = WitnessGenerator(pp.step_cs, generator_ref, config)

    def step(self, acc: RecursiveSNARK, private_input: Dict[str, Any]) -> RecursiveSNARK:
        step_in = [to_hex(z) for z in acc.zi_primary]
        witness = self.generator.compute(step_in, private_input)
        return acc.prove_step(self.pp, witness, acc.zi_primary)

    def run(self, z0_primary: Sequence, private_inputs: Sequence[Dict[str, Any]],
            z0_secondary: Sequence = (0,)) -> RecursiveSNARK:
        """Fold one step per private input, starting from z0."""
        acc = RecursiveSNARK.initial(self.pp, z0_primary, len(private_inputs), z0_secondary)
        for private_input in private_inputs:
            acc = self.step(acc, private_input)
        return acc


def create_recursive_circuit(generator_ref, private_inputs: Sequence[Dict[str, Any]],
                             start_public_input: Sequence, pp: PublicParams,
                             config: Optional[WitnessGeneratorConfig] = None) -> RecursiveSNARK:
    """Run the whole folding loop and return the terminal accumulator."""
    return FoldingEngine(pp, generator_ref, config).run(start_public_input, private_inputs)


__all__ = ["IVCStatus", "RecursiveSNARK", "FoldingEngine", "create_recursive_circuit", "synthesize_step"]
