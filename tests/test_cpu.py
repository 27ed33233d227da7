import pytest

from jitkit.cpu import Cpu, CpuError, CpuType, TopologyLevel

INTEL_ECX = 0x6C65746E  # "ntel"
AMD_ECX = 0x444D4163  # "cAMD"


def make_cpuid(table):
    def cpuid(leaf, subleaf):
        return table.get((leaf, subleaf), (0, 0, 0, 0))

    return cpuid


def test_intel_and_amd_combined_matches_separate():
    cpu = Cpu()
    assert (cpu.has(Cpu.INTEL) and cpu.has(Cpu.AMD)) == cpu.has(Cpu.INTEL | Cpu.AMD)


def test_intel_and_amd_combined_on_intel():
    cpu = Cpu(make_cpuid({(0, 0): (1, 0, INTEL_ECX, 0)}))
    assert cpu.has(Cpu.INTEL)
    assert not cpu.has(Cpu.AMD)
    assert (cpu.has(Cpu.INTEL) and cpu.has(Cpu.AMD)) == cpu.has(Cpu.INTEL | Cpu.AMD)


def test_no_cpuid_has_nothing():
    cpu = Cpu()
    assert not cpu.has(Cpu.MMX)
    assert not cpu.has(Cpu.SSE2)
    assert cpu.has(CpuType())
    assert cpu.data_cache_levels() == 0


def test_cpu_type_from_id():
    assert Cpu.SSE == CpuType(8, 0)
    assert Cpu.CLDEMOTE == CpuType(0, 1)
    assert CpuType.from_id(63).low == 1 << 63
    assert CpuType.from_id(77).high == 1 << 13


def test_cpu_type_from_id_out_of_range():
    with pytest.raises(ValueError):
        CpuType.from_id(-1)
    with pytest.raises(ValueError):
        CpuType.from_id(128)


def test_cpu_type_operators():
    both = Cpu.MMX | Cpu.CLDEMOTE
    assert both.low == 1 and both.high == 1
    assert (both & Cpu.MMX) == Cpu.MMX
    assert not (Cpu.MMX & Cpu.SSE)
    assert bool(both)
    assert not CpuType()
    assert hash(CpuType(1, 2)) == hash(CpuType(1, 2))
    assert Cpu.AVX512IFMA == Cpu.AVX512_IFMA


def test_leaf1_edx_features():
    edx = (1 << 23) | (1 << 25) | (1 << 26)
    cpu = Cpu(make_cpuid({(1, 0): (0, 0, 0, edx)}))
    assert cpu.has(Cpu.MMX | Cpu.MMX2 | Cpu.SSE | Cpu.SSE2)
    assert not cpu.has(Cpu.SSE3)


def test_family_fields():
    cpu = Cpu(make_cpuid({(1, 0): (0x000906EA, 0, 0, 0)}))
    assert cpu.stepping == 10
    assert cpu.model == 0xE
    assert cpu.family == 6
    assert cpu.ext_model == 9
    assert cpu.display_model == 0x9E
    assert cpu.display_family == 6
    assert cpu.family_string() == (
        "family=6, model=E, stepping=10, extFamily=0, extModel=9\n"
        "display:family=6, model=9E"
    )


def test_family_0f_adds_ext_family():
    cpu = Cpu(make_cpuid({(1, 0): (0x00100F00, 0, 0, 0)}))
    assert cpu.display_family == 0x10


def test_put_family_prints(capsys):
    Cpu(make_cpuid({(1, 0): (0x000906EA, 0, 0, 0)})).put_family()
    out = capsys.readouterr().out
    assert out == (
        "family=6, model=E, stepping=10, extFamily=0, extModel=9\n"
        "display:family=6, model=9E\n"
    )


def test_avx_requires_os_support():
    ecx = (1 << 27) | (1 << 28) | (1 << 12)
    table = {(1, 0): (0, 0, ecx, 0)}
    enabled = Cpu(make_cpuid(table), lambda: 6)
    assert enabled.has(Cpu.AVX | Cpu.FMA | Cpu.OSXSAVE)
    disabled = Cpu(make_cpuid(table), lambda: 0)
    assert disabled.has(Cpu.OSXSAVE)
    assert not disabled.has(Cpu.AVX)


def test_avx2_and_avx512():
    ecx1 = (1 << 27) | (1 << 28)
    ebx7 = (1 << 5) | (1 << 16) | (1 << 30) | (1 << 3)
    table = {
        (0, 0): (7, 0, 0, 0),
        (1, 0): (0, 0, ecx1, 0),
        (7, 0): (0, ebx7, 0, 1 << 23),
    }
    cpu = Cpu(make_cpuid(table), lambda: 0xE6)
    assert cpu.has(Cpu.AVX2)
    assert cpu.has(Cpu.AVX512F | Cpu.AVX512BW | Cpu.AVX512_FP16)
    assert cpu.has(Cpu.BMI1)
    assert not cpu.has(Cpu.AVX512DQ)


def test_leaf7_subleaf1():
    table = {
        (0, 0): (7, 0, 0, 0),
        (7, 0): (1, 0, 0, 0),
        (7, 1): ((1 << 3) | (1 << 4), 0, 0, 1 << 14),
    }
    cpu = Cpu(make_cpuid(table))
    assert cpu.has(Cpu.RAO_INT | Cpu.AVX_VNNI | Cpu.PREFETCHITI)
    assert not cpu.has(Cpu.AVX512_BF16)


def test_clzero_from_extended_leaf():
    table = {
        (0x80000000, 0): (0x80000008, 0, 0, 0),
        (0x80000008, 0): (0, 1, 0, 0),
    }
    assert Cpu(make_cpuid(table)).has(Cpu.CLZERO)


def _intel_topology():
    return {
        (0, 0): (0xB, 0, INTEL_ECX, 0),
        (0xB, 0): (0, 2, 1 << 8, 0),
        (0xB, 1): (0, 16, 2 << 8, 0),
    }


def test_intel_topology():
    cpu = Cpu(make_cpuid(_intel_topology()))
    assert cpu.num_cores(TopologyLevel.SMT) == 2
    assert cpu.num_cores(TopologyLevel.CORE) == 8


def test_num_cores_without_x2apic():
    cpu = Cpu(make_cpuid({(0, 0): (1, 0, INTEL_ECX, 0)}))
    with pytest.raises(CpuError):
        cpu.num_cores(TopologyLevel.SMT)


def test_intel_caches():
    table = _intel_topology()
    table[(4, 0)] = (1 | (1 << 14), (7 << 22) | 63, 63, 0)
    table[(4, 1)] = (2 | (1 << 14), (7 << 22) | 63, 63, 0)
    table[(4, 2)] = (3 | (15 << 14), (15 << 22) | 63, 1023, 0)
    cpu = Cpu(make_cpuid(table))
    assert cpu.data_cache_levels() == 2
    assert cpu.data_cache_size(0) == 32768
    assert cpu.cores_sharing_data_cache(0) == 1
    assert cpu.data_cache_size(1) == 1048576
    assert cpu.cores_sharing_data_cache(1) == 8


def test_cache_index_out_of_range():
    cpu = Cpu(make_cpuid(_intel_topology()))
    with pytest.raises(CpuError):
        cpu.data_cache_size(0)
    with pytest.raises(CpuError):
        cpu.cores_sharing_data_cache(-1)


def test_amd_caches():
    table = {
        (0, 0): (0xB, 0, AMD_ECX, 0),
        (0xB, 0): (0, 2, 1 << 8, 0),
        (0xB, 1): (0, 16, 2 << 8, 0),
        (0x8000001D, 0): (1 << 14, (7 << 22) | 63, 63, 0),
        (0x8000001D, 2): (1 << 14, (7 << 22) | 63, 1023, 0),
        (0x8000001D, 3): (15 << 14, (15 << 22) | 63, 32767, 0),
    }
    cpu = Cpu(make_cpuid(table))
    assert cpu.data_cache_levels() == 3
    assert [cpu.data_cache_size(i) for i in range(3)] == [32768, 524288, 33554432]
    assert [cpu.cores_sharing_data_cache(i) for i in range(3)] == [1, 1, 8]