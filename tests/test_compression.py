"""Tests for the compressed SNARK."""

from dataclasses import replace

import pytest

from primitives.errors import MalformedInput, ProvingError, VerificationFailure
from primitives.field import Fr
from protocol import CompressedSNARK, FoldingEngine, NIFS, RecursiveSNARK
from tests.conftest import ADDER_FINAL, ADDER_PRIVATE_INPUTS, ADDER_START, adder_witness


class TestCompressedSNARK:

    def test_setup_deterministic(self, adder_pp, adder_keys) -> None:
        _, vk = adder_keys
        _, vk2 = CompressedSNARK.setup(adder_pp)
        assert vk2.digest == vk.digest

    def test_prove_verify(self, adder_keys, adder_proof) -> None:
        _, vk = adder_keys
        result = adder_proof.verify(vk, 3, ADDER_START, ADDER_FINAL)
        assert result.ok
        assert [int(v) for v in result.zn_primary] == ADDER_FINAL

    def test_non_terminal(self, adder_pp, adder_keys) -> None:
        pk, _ = adder_keys
        acc = RecursiveSNARK.initial(adder_pp, ADDER_START, 3)
        acc = acc.prove_step(adder_pp, adder_witness(1000, 1000, 0))
        with pytest.raises(ProvingError):
            CompressedSNARK.prove(adder_pp, pk, acc)

    def test_foreign_accumulator(self, adder_pp, adder_keys, adder_chain) -> None:
        pk, _ = adder_keys
        with pytest.raises(ProvingError):
            CompressedSNARK.prove(adder_pp, pk, replace(adder_chain, params_digest=bytes(32)))

    def test_wrong_statement(self, adder_keys, adder_proof) -> None:
        _, vk = adder_keys
        assert not adder_proof.verify(vk, 3, ADDER_START, [3001, 5004])
        assert not adder_proof.verify(vk, 2, ADDER_START, ADDER_FINAL)

    def test_tampered_snark(self, adder_keys, adder_proof, capsys) -> None:
        """Changing a claimed evaluation is rejected and reported once."""
        _, vk = adder_keys
        snark = adder_proof.snark_primary
        bad = replace(adder_proof, snark_primary=replace(snark, eval_W=snark.eval_W + 1))
        result = bad.verify(vk, 3, ADDER_START, ADDER_FINAL)
        assert result.is_rejected
        assert capsys.readouterr().out.count("ERROR:") == 1

    def test_tampered_cross_term(self, adder_keys, adder_proof) -> None:
        _, vk = adder_keys
        group = vk.cycle.secondary
        comm_T = group.add(adder_proof.nifs_secondary.comm_T, vk.ck_secondary.generators[0])
        bad = replace(adder_proof, nifs_secondary=NIFS(comm_T=comm_T))
        assert bad.verify(vk, 3, ADDER_START, ADDER_FINAL).is_rejected


    def test_relabeled_accumulator(self, adder_pp, adder_keys) -> None:
        """A proof of one honest step relabeled as seven steps from another z0 is rejected."""
        pk, vk = adder_keys
        acc = RecursiveSNARK.initial(adder_pp, [5, 5], 1)
        acc = acc.prove_step(adder_pp, adder_witness(5, 5, 0))
        relabeled = replace(acc, num_steps=7, iteration_count=7, z0_primary=(Fr(1000), Fr(1000)))
        proof = CompressedSNARK.prove(adder_pp, pk, relabeled)
        result = proof.verify(vk, 7, [1000, 1000], [5, 10])
        assert isinstance(result.error, VerificationFailure)
        assert "state hash" in str(result.error)

    def test_tampered_running_instance(self, adder_keys, adder_proof) -> None:
        """The running primary instance is bound by the published hash."""
        _, vk = adder_keys
        U = replace(adder_proof.r_U_primary, u=adder_proof.r_U_primary.u + 1)
        result = replace(adder_proof, r_U_primary=U).verify(vk, 3, ADDER_START, ADDER_FINAL)
        assert isinstance(result.error, VerificationFailure)

class TestSerialization:

    def test_round_trip(self, adder_keys, adder_proof) -> None:
        """Decoded proofs re-encode identically and still verify."""
        _, vk = adder_keys
        data = adder_proof.to_bytes(vk)
        decoded = CompressedSNARK.from_bytes(data, vk)
        assert decoded.to_bytes(vk) == data
        assert decoded.verify(vk, 3, ADDER_START, ADDER_FINAL).ok

    def test_size_independent_of_steps(self, adder_pp, adder_keys, adder_proof) -> None:
        pk, vk = adder_keys
        acc = FoldingEngine(adder_pp, "adder").run(ADDER_START, ADDER_PRIVATE_INPUTS[:1])
        short = CompressedSNARK.prove(adder_pp, pk, acc)
        assert len(short.to_bytes(vk)) == len(adder_proof.to_bytes(vk))
        assert short.verify(vk, 1, ADDER_START, [1000, 2000]).ok

    def test_trailing_bytes(self, adder_keys, adder_proof) -> None:
        _, vk = adder_keys
        with pytest.raises(MalformedInput, match="trailing"):
            CompressedSNARK.from_bytes(adder_proof.to_bytes(vk) + b"\x00", vk)

    def test_truncated(self, adder_keys, adder_proof) -> None:
        _, vk = adder_keys
        with pytest.raises(MalformedInput):
            CompressedSNARK.from_bytes(adder_proof.to_bytes(vk)[:-1], vk)

    def test_bad_magic(self, adder_keys, adder_proof) -> None:
        _, vk = adder_keys
        with pytest.raises(MalformedInput):
            CompressedSNARK.from_bytes(b"XXXX" + adder_proof.to_bytes(vk)[4:], vk)
