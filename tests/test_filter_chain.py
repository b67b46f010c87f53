"""Test the filter registry and the ordered filter chain."""

import lzma

import pytest

from xzconf.config.constants import MAX_FILTERS, VLI_UNKNOWN
from xzconf.core import (
    FILTER_REGISTRY,
    DeltaOptions,
    FilterChain,
    FilterId,
    InfeasibleConfigError,
    InternalError,
    LzmaOptions,
    ResourceLimitError,
    SubblockOptions,
    UsageError,
)
from xzconf.core.filters import BRANCH_CONVERTERS

ALL_FILTERS = [filter_id for filter_id in FilterId if filter_id != FilterId.UNKNOWN]


def test_registry_covers_every_filter() -> None:
    """Test that every real filter id has registry metadata and the terminator has none."""
    assert set(FILTER_REGISTRY) == set(ALL_FILTERS)
    assert FilterId.UNKNOWN not in FILTER_REGISTRY
    assert all(spec.max_chain_length == MAX_FILTERS for spec in FILTER_REGISTRY.values())


def test_branch_converters_have_no_options_parser() -> None:
    """Test that only LZMA, delta and subblock filters parse options."""
    with_parser = {filter_id for filter_id, spec in FILTER_REGISTRY.items() if spec.parse_options is not None}
    assert with_parser == {FilterId.LZMA1, FilterId.LZMA2, FilterId.DELTA, FilterId.SUBBLOCK}
    assert set(FILTER_REGISTRY) - with_parser == BRANCH_CONVERTERS


def test_filter_ids_match_lzma_module() -> None:
    """Test that filter ids are the ones the lzma module and .xz headers use."""
    assert FilterId.LZMA1 == lzma.FILTER_LZMA1
    assert FilterId.LZMA2 == lzma.FILTER_LZMA2
    assert FilterId.X86 == lzma.FILTER_X86
    assert FilterId.DELTA == lzma.FILTER_DELTA
    assert FilterId.UNKNOWN == VLI_UNKNOWN


def test_add_preserves_order_and_duplicates() -> None:
    """Test that the chain keeps filters exactly in the order given, duplicates included."""
    chain = FilterChain().add(FilterId.X86).add(FilterId.DELTA, "dist=4").add(FilterId.X86).add(FilterId.LZMA2)

    assert chain.ids == (FilterId.X86, FilterId.DELTA, FilterId.X86, FilterId.LZMA2)
    assert chain.entries[1].options == DeltaOptions(dist=4)
    assert isinstance(chain.entries[3].options, LzmaOptions)


def test_add_returns_new_chain() -> None:
    """Test that adding a filter leaves the original chain untouched."""
    empty = FilterChain()
    chain = empty.add(FilterId.ARM)

    assert len(empty) == 0
    assert len(chain) == 1


@pytest.mark.parametrize("filter_id", ALL_FILTERS)
def test_eighth_filter_is_rejected(filter_id: FilterId) -> None:
    """Test that any filter beyond the seventh fails with a resource limit error."""
    chain = FilterChain()
    for _ in range(MAX_FILTERS):
        chain = chain.add(FilterId.SPARC)

    with pytest.raises(ResourceLimitError, match="Maximum number of filters is seven"):
        chain.add(filter_id)


def test_seven_mixed_filters_are_accepted() -> None:
    """Test that exactly seven filters of different kinds fit."""
    chain = FilterChain()
    for filter_id in (
        FilterId.X86,
        FilterId.POWERPC,
        FilterId.IA64,
        FilterId.ARM,
        FilterId.ARMTHUMB,
        FilterId.DELTA,
        FilterId.LZMA2,
    ):
        chain = chain.add(filter_id)

    assert len(chain) == MAX_FILTERS


@pytest.mark.parametrize("filter_id", sorted(BRANCH_CONVERTERS))
def test_branch_converter_rejects_options(filter_id: FilterId) -> None:
    """Test that simple branch converters take no option string."""
    with pytest.raises(UsageError, match="does not take options"):
        FilterChain().add(filter_id, "start=0")


def test_subblock_options_are_parsed() -> None:
    """Test dispatch to the subblock options parser."""
    chain = FilterChain().add(FilterId.SUBBLOCK, "size=8192,rle=16")

    assert chain.entries[0].options == SubblockOptions(subblock_data_size=8192, rle=16, alignment=4)


def test_malformed_options_propagate() -> None:
    """Test that option parser errors surface from add()."""
    with pytest.raises(UsageError, match="Invalid option name"):
        FilterChain().add(FilterId.LZMA2, "bogus=1")


def test_terminated_array_ends_with_sentinel() -> None:
    """Test that the terminated form always ends with the unknown/end sentinel."""
    chain = FilterChain().add(FilterId.X86).add(FilterId.LZMA2).terminate()
    array = chain.as_array()

    assert chain.terminated
    assert len(array) == 3
    assert array[-1].id == FilterId.UNKNOWN
    assert [entry.id for entry in chain] == [FilterId.X86, FilterId.LZMA2]


def test_full_chain_fits_capacity() -> None:
    """Test that seven filters plus the terminator fill the capacity of eight."""
    chain = FilterChain()
    for _ in range(MAX_FILTERS):
        chain = chain.add(FilterId.X86)

    assert len(chain.terminate().as_array()) == MAX_FILTERS + 1


def test_terminated_chain_refuses_more_filters() -> None:
    """Test that a closed chain cannot grow."""
    chain = FilterChain().add(FilterId.LZMA2).terminate()

    with pytest.raises(InternalError):
        chain.add(FilterId.X86)


def test_is_single_lzma1() -> None:
    """Test detection of the only chain the .lzma format accepts."""
    assert FilterChain().add(FilterId.LZMA1).is_single_lzma1()
    assert not FilterChain().add(FilterId.LZMA2).is_single_lzma1()
    assert not FilterChain().add(FilterId.X86).add(FilterId.LZMA1).is_single_lzma1()
    assert not FilterChain().is_single_lzma1()


def test_filter_specs_are_accepted_by_lzma_module() -> None:
    """Test that exported filter specs drive the standard library compressor."""
    chain = FilterChain().add(FilterId.DELTA, "dist=2").add(FilterId.LZMA2, "preset=1,dict=64KiB")
    specs = chain.to_filter_specs()

    assert specs[0] == {"id": lzma.FILTER_DELTA, "dist": 2}
    assert specs[1]["dict_size"] == 64 * 1024

    data = b"xzconf " * 100
    compressed = lzma.compress(data, format=lzma.FORMAT_RAW, filters=specs)
    assert lzma.decompress(compressed, format=lzma.FORMAT_RAW, filters=specs) == data


def test_subblock_has_no_filter_spec() -> None:
    """Test that the subblock filter cannot be exported to the lzma module."""
    chain = FilterChain().add(FilterId.SUBBLOCK)

    with pytest.raises(InfeasibleConfigError):
        chain.to_filter_specs()
