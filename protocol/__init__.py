"""Protocol - public parameters, folding, compression and verification."""

from protocol.compression import CompressedSNARK, ProverKey, VerifierKey
from protocol.folding import FoldingEngine, IVCStatus, RecursiveSNARK, create_recursive_circuit
from protocol.nifs import NIFS
from protocol.params import PublicParams, build_public_params
from protocol.spartan import RelaxedR1CSSNARK
from protocol.verifier import VerificationResult, verify_compressed, verify_recursive

__all__ = [
    "PublicParams",
    "build_public_params",
    "NIFS",
    "IVCStatus",
    "RecursiveSNARK",
    "FoldingEngine",
    "create_recursive_circuit",
    "RelaxedR1CSSNARK",
    "ProverKey",
    "VerifierKey",
    "CompressedSNARK",
    "VerificationResult",
    "verify_recursive",
    "verify_compressed",
]
