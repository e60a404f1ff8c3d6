import pytest

from gvcfsite.annotator import SiteAnnotator
from gvcfsite.evidence import base_to_id, iter_pileup_evidence
from gvcfsite.locus_info import encode_filters
from gvcfsite.models import BaseId
from gvcfsite.pipeline import annotate_sites


def test_base_to_id():
    assert base_to_id("A") == BaseId.A
    assert base_to_id("t") == BaseId.T
    assert base_to_id("N") == BaseId.ANY
    assert base_to_id("R") == BaseId.ANY


def test_pileup_evidence_over_contig(toy_inputs):
    out = {
        pos: (ref_id, ev)
        for pos, ref_id, ev in iter_pileup_evidence(
            toy_inputs["bam"], toy_inputs["ref_fa"], toy_inputs["contig"], min_mapq=20
        )
    }
    assert sorted(out) == list(range(10, 30))

    ref_id, ev = out[15]
    assert ref_id == BaseId.T
    assert ev.calls.count(BaseId.A) == 1
    assert ev.calls.count(BaseId.T) == 4
    assert ev.n_filtered == 1
    assert ev.depth == 6

    ref_id, ev = out[12]
    assert ref_id == BaseId.G
    assert set(ev.calls) == {BaseId.G}


def test_pileup_evidence_region(toy_inputs):
    positions = [
        pos
        for pos, _, _ in iter_pileup_evidence(
            toy_inputs["bam"], toy_inputs["ref_fa"], toy_inputs["contig"], begin=12, end=14
        )
    ]
    assert positions == [12, 13]


def test_overlapping_mates_are_both_used(overlapping_pair_inputs):
    out = {
        pos: (ref_id, ev)
        for pos, ref_id, ev in iter_pileup_evidence(
            overlapping_pair_inputs["bam"],
            overlapping_pair_inputs["ref_fa"],
            overlapping_pair_inputs["contig"],
        )
    }
    ref_id, ev = out[20]
    assert ref_id == BaseId.A
    assert ev.calls == (BaseId.A, BaseId.A)
    assert ev.n_filtered == 0

    sites = []
    annotator = SiteAnnotator(lambda pos, ref, smod: sites.append((pos, smod)))
    annotate_sites([(20, ref_id, ev)], annotator)
    (_, smod), = sites
    assert encode_filters(smod) == "PASS"
    assert smod.is_block


def test_max_input_depth_caps_pileup(toy_inputs):
    def depth_at_15(**kwargs):
        for pos, _, ev in iter_pileup_evidence(
            toy_inputs["bam"], toy_inputs["ref_fa"], toy_inputs["contig"], **kwargs
        ):
            if pos == 15:
                return ev.depth
        return 0

    assert depth_at_15() == 6
    assert 0 < depth_at_15(max_input_depth=2) < 6


def test_max_input_depth_must_be_positive(toy_inputs):
    with pytest.raises(ValueError, match="max_input_depth"):
        list(
            iter_pileup_evidence(
                toy_inputs["bam"], toy_inputs["ref_fa"], toy_inputs["contig"], max_input_depth=0
            )
        )
