"""CPU feature, topology and data-cache detection from CPUID results."""

from __future__ import annotations

import enum
import sys
from collections.abc import Callable

__all__ = ["Cpu", "CpuError", "CpuType", "TopologyLevel"]

CpuidFunc = Callable[[int, int], "tuple[int, int, int, int]"]

_MASK32 = 0xFFFFFFFF
_MASK64 = 0xFFFFFFFFFFFFFFFF

# Leaf 0 ECX value of the vendor string: "ntel" (GenuineIntel), "cAMD" (AuthenticAMD).
_INTEL_ECX = int.from_bytes(b"ntel", "little")
_AMD_ECX = int.from_bytes(b"cAMD", "little")

_MAX_CACHE_LEVELS = 10
_CACHE_NONE = 0
_CACHE_DATA = 1
_CACHE_UNIFIED = 3


class CpuError(Exception):
    """Raised when a requested CPU property is unavailable or out of range."""


class TopologyLevel(enum.IntEnum):
    """Levels of the processor topology reported by CPUID leaf 0xB."""

    SMT = 1
    CORE = 2


class CpuType:
    """A 128-bit set of CPU feature flags split into low and high words."""

    __slots__ = ("_low", "_high")

    def __init__(self, low: int = 0, high: int = 0) -> None:
        self._low = low & _MASK64
        self._high = high & _MASK64

    @staticmethod
    def from_id(feature_id: int) -> CpuType:
        """Return the set holding only the feature with index ``feature_id``."""
        if not 0 <= feature_id < 128:
            raise ValueError(f"feature id out of range: {feature_id}")
        if feature_id < 64:
            return CpuType(1 << feature_id, 0)
        return CpuType(0, 1 << (feature_id - 64))

    def __and__(self, other: CpuType) -> CpuType:
        if not isinstance(other, CpuType):
            return NotImplemented
        return CpuType(self._low & other._low, self._high & other._high)

    def __or__(self, other: CpuType) -> CpuType:
        if not isinstance(other, CpuType):
            return NotImplemented
        return CpuType(self._low | other._low, self._high | other._high)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CpuType):
            return NotImplemented
        return self._low == other._low and self._high == other._high

    def __hash__(self) -> int:
        return hash((self._low, self._high))

    def __bool__(self) -> bool:
        return (self._low | self._high) != 0

    @property
    def low(self) -> int:
        """Flags for feature ids 0..63."""
        return self._low

    @property
    def high(self) -> int:
        """Flags for feature ids 64..127."""
        return self._high

    def __repr__(self) -> str:
        return f"CpuType(low={self._low:#x}, high={self._high:#x})"


def _bit(value: int, n: int) -> bool:
    return bool((value >> n) & 1)


def _extract(value: int, base: int, end: int) -> int:
    return (value >> base) & ((1 << (end - base)) - 1)


def _cache_size(ebx: int, ecx: int) -> int:
    ways = _extract(ebx, 22, 31) + 1
    partitions = _extract(ebx, 12, 21) + 1
    line_size = _extract(ebx, 0, 11) + 1
    return ways * partitions * line_size * (ecx + 1)


class Cpu:
    """Feature set, family, topology and data caches of a processor.

    ``cpuid(leaf, subleaf)`` returns the four registers (eax, ebx, ecx, edx)
    and ``xgetbv()`` the XCR0 register. Without them every query reads as
    zero, which is how a processor without CPUID appears.
    """

    MMX = CpuType.from_id(0)
    MMX2 = CpuType.from_id(1)
    CMOV = CpuType.from_id(2)
    SSE = CpuType.from_id(3)
    SSE2 = CpuType.from_id(4)
    SSE3 = CpuType.from_id(5)
    SSSE3 = CpuType.from_id(6)
    SSE41 = CpuType.from_id(7)
    SSE42 = CpuType.from_id(8)
    POPCNT = CpuType.from_id(9)
    AESNI = CpuType.from_id(10)
    AVX512_FP16 = CpuType.from_id(11)
    OSXSAVE = CpuType.from_id(12)
    PCLMULQDQ = CpuType.from_id(13)
    AVX = CpuType.from_id(14)
    FMA = CpuType.from_id(15)
    AMD_3DNOW = CpuType.from_id(16)
    AMD_3DNOW_EXT = CpuType.from_id(17)
    WAITPKG = CpuType.from_id(18)
    RDTSCP = CpuType.from_id(19)
    AVX2 = CpuType.from_id(20)
    BMI1 = CpuType.from_id(21)
    BMI2 = CpuType.from_id(22)
    LZCNT = CpuType.from_id(23)
    INTEL = CpuType.from_id(24)
    AMD = CpuType.from_id(25)
    ENHANCED_REP = CpuType.from_id(26)
    RDRAND = CpuType.from_id(27)
    ADX = CpuType.from_id(28)
    RDSEED = CpuType.from_id(29)
    SMAP = CpuType.from_id(30)
    HLE = CpuType.from_id(31)
    RTM = CpuType.from_id(32)
    F16C = CpuType.from_id(33)
    MOVBE = CpuType.from_id(34)
    AVX512F = CpuType.from_id(35)
    AVX512DQ = CpuType.from_id(36)
    AVX512_IFMA = CpuType.from_id(37)
    AVX512IFMA = AVX512_IFMA
    AVX512PF = CpuType.from_id(38)
    AVX512ER = CpuType.from_id(39)
    AVX512CD = CpuType.from_id(40)
    AVX512BW = CpuType.from_id(41)
    AVX512VL = CpuType.from_id(42)
    AVX512_VBMI = CpuType.from_id(43)
    AVX512VBMI = AVX512_VBMI
    AVX512_4VNNIW = CpuType.from_id(44)
    AVX512_4FMAPS = CpuType.from_id(45)
    PREFETCHWT1 = CpuType.from_id(46)
    PREFETCHW = CpuType.from_id(47)
    SHA = CpuType.from_id(48)
    MPX = CpuType.from_id(49)
    AVX512_VBMI2 = CpuType.from_id(50)
    GFNI = CpuType.from_id(51)
    VAES = CpuType.from_id(52)
    VPCLMULQDQ = CpuType.from_id(53)
    AVX512_VNNI = CpuType.from_id(54)
    AVX512_BITALG = CpuType.from_id(55)
    AVX512_VPOPCNTDQ = CpuType.from_id(56)
    AVX512_BF16 = CpuType.from_id(57)
    AVX512_VP2INTERSECT = CpuType.from_id(58)
    AMX_TILE = CpuType.from_id(59)
    AMX_INT8 = CpuType.from_id(60)
    AMX_BF16 = CpuType.from_id(61)
    AVX_VNNI = CpuType.from_id(62)
    CLFLUSHOPT = CpuType.from_id(63)
    CLDEMOTE = CpuType.from_id(64)
    MOVDIRI = CpuType.from_id(65)
    MOVDIR64B = CpuType.from_id(66)
    CLZERO = CpuType.from_id(67)
    AMX_FP16 = CpuType.from_id(68)
    AVX_VNNI_INT8 = CpuType.from_id(69)
    AVX_NE_CONVERT = CpuType.from_id(70)
    AVX_IFMA = CpuType.from_id(71)
    RAO_INT = CpuType.from_id(72)
    CMPCCXADD = CpuType.from_id(73)
    PREFETCHITI = CpuType.from_id(74)
    SERIALIZE = CpuType.from_id(75)
    UINTR = CpuType.from_id(76)
    XSAVE = CpuType.from_id(77)

    def __init__(
        self,
        cpuid: CpuidFunc | None = None,
        xgetbv: Callable[[], int] | None = None,
    ) -> None:
        self._cpuid = cpuid
        self._xgetbv = xgetbv
        self._type = CpuType()
        self._x2apic_supported = False
        self._num_cores = [0, 0]
        self._cache_sizes: list[int] = []
        self._cores_sharing: list[int] = []
        self.model = 0
        self.family = 0
        self.stepping = 0
        self.ext_model = 0
        self.ext_family = 0
        self.display_family = 0
        self.display_model = 0
        self._detect_features()
        self._set_family()
        self._set_num_cores()
        self._set_cache_hierarchy()

    def _query(self, leaf: int, subleaf: int = 0) -> tuple[int, int, int, int]:
        if self._cpuid is None:
            return (0, 0, 0, 0)
        eax, ebx, ecx, edx = self._cpuid(leaf, subleaf)
        return eax & _MASK32, ebx & _MASK32, ecx & _MASK32, edx & _MASK32

    def _read_xcr0(self) -> int:
        if self._xgetbv is None:
            return 0
        return self._xgetbv() & _MASK64

    def _add(self, feature: CpuType, condition: bool = True) -> None:
        if condition:
            self._type = self._type | feature

    def _detect_features(self) -> None:
        max_num, _, ecx, _ = self._query(0)
        if ecx == _AMD_ECX:
            self._add(Cpu.AMD)
            _, _, _, edx = self._query(0x80000001)
            if _bit(edx, 31):
                # 3DNow! implies PREFETCHW on AMD
                self._add(Cpu.AMD_3DNOW | Cpu.PREFETCHW)
            # long mode implies PREFETCHW on AMD
            self._add(Cpu.PREFETCHW, _bit(edx, 29))
        if ecx == _INTEL_ECX:
            self._add(Cpu.INTEL)

        max_ext = self._query(0x80000000)[0]
        if max_ext >= 0x80000001:
            _, _, ecx, edx = self._query(0x80000001)
            self._add(Cpu.AMD_3DNOW, _bit(edx, 31))
            self._add(Cpu.AMD_3DNOW_EXT, _bit(edx, 30))
            self._add(Cpu.RDTSCP, _bit(edx, 27))
            self._add(Cpu.MMX2, _bit(edx, 22))
            self._add(Cpu.CMOV, _bit(edx, 15))
            self._add(Cpu.LZCNT, _bit(ecx, 5))
            self._add(Cpu.PREFETCHW, _bit(ecx, 8))
        if max_ext >= 0x80000008:
            ebx = self._query(0x80000008)[1]
            self._add(Cpu.CLZERO, _bit(ebx, 0))

        _, _, ecx1, edx1 = self._query(1)
        self._add(Cpu.SSE3, _bit(ecx1, 0))
        self._add(Cpu.SSSE3, _bit(ecx1, 9))
        self._add(Cpu.SSE41, _bit(ecx1, 19))
        self._add(Cpu.SSE42, _bit(ecx1, 20))
        self._add(Cpu.MOVBE, _bit(ecx1, 22))
        self._add(Cpu.POPCNT, _bit(ecx1, 23))
        self._add(Cpu.AESNI, _bit(ecx1, 25))
        self._add(Cpu.PCLMULQDQ, _bit(ecx1, 1))
        self._add(Cpu.XSAVE, _bit(ecx1, 26))
        self._add(Cpu.OSXSAVE, _bit(ecx1, 27))
        self._add(Cpu.RDRAND, _bit(ecx1, 30))
        self._add(Cpu.F16C, _bit(ecx1, 29))
        self._add(Cpu.CMOV, _bit(edx1, 15))
        self._add(Cpu.MMX, _bit(edx1, 23))
        self._add(Cpu.MMX2 | Cpu.SSE, _bit(edx1, 25))
        self._add(Cpu.SSE2, _bit(edx1, 26))

        if self.has(Cpu.OSXSAVE):
            self._detect_xsave_features(ecx1)
        if max_num >= 7:
            self._detect_leaf7()

    def _detect_xsave_features(self, ecx1: int) -> None:
        # XFEATURE_ENABLED_MASK[2:1] must be '11b'
        bv = self._read_xcr0()
        if bv & 6 != 6:
            return
        self._add(Cpu.AVX, _bit(ecx1, 28))
        self._add(Cpu.FMA, _bit(ecx1, 12))
        # macOS enables AVX-512 state on demand, so its XCR0 bits are not checked
        if sys.platform != "darwin" and (bv >> 5) & 7 != 7:
            return
        _, ebx, ecx, edx = self._query(7, 0)
        self._add(Cpu.AVX512F, _bit(ebx, 16))
        if not self.has(Cpu.AVX512F):
            return
        self._add(Cpu.AVX512DQ, _bit(ebx, 17))
        self._add(Cpu.AVX512_IFMA, _bit(ebx, 21))
        self._add(Cpu.AVX512PF, _bit(ebx, 26))
        self._add(Cpu.AVX512ER, _bit(ebx, 27))
        self._add(Cpu.AVX512CD, _bit(ebx, 28))
        self._add(Cpu.AVX512BW, _bit(ebx, 30))
        self._add(Cpu.AVX512VL, _bit(ebx, 31))
        self._add(Cpu.AVX512_VBMI, _bit(ecx, 1))
        self._add(Cpu.AVX512_VBMI2, _bit(ecx, 6))
        self._add(Cpu.AVX512_VNNI, _bit(ecx, 11))
        self._add(Cpu.AVX512_BITALG, _bit(ecx, 12))
        self._add(Cpu.AVX512_VPOPCNTDQ, _bit(ecx, 14))
        self._add(Cpu.AVX512_4VNNIW, _bit(edx, 2))
        self._add(Cpu.AVX512_4FMAPS, _bit(edx, 3))
        self._add(Cpu.AVX512_VP2INTERSECT, _bit(edx, 8))
        self._add(Cpu.AVX512_FP16, self.has(Cpu.AVX512BW) and _bit(edx, 23))

    def _detect_leaf7(self) -> None:
        max_sub_leaves, ebx, ecx, edx = self._query(7, 0)
        self._add(Cpu.AVX2, self.has(Cpu.AVX) and _bit(ebx, 5))
        self._add(Cpu.BMI1, _bit(ebx, 3))
        self._add(Cpu.BMI2, _bit(ebx, 8))
        self._add(Cpu.ENHANCED_REP, _bit(ebx, 9))
        self._add(Cpu.RDSEED, _bit(ebx, 18))
        self._add(Cpu.ADX, _bit(ebx, 19))
        self._add(Cpu.SMAP, _bit(ebx, 20))
        self._add(Cpu.CLFLUSHOPT, _bit(ebx, 23))
        self._add(Cpu.HLE, _bit(ebx, 4))
        self._add(Cpu.RTM, _bit(ebx, 11))
        self._add(Cpu.MPX, _bit(ebx, 14))
        self._add(Cpu.SHA, _bit(ebx, 29))
        self._add(Cpu.PREFETCHWT1, _bit(ecx, 0))
        self._add(Cpu.WAITPKG, _bit(ecx, 5))
        self._add(Cpu.GFNI, _bit(ecx, 8))
        self._add(Cpu.VAES, _bit(ecx, 9))
        self._add(Cpu.VPCLMULQDQ, _bit(ecx, 10))
        self._add(Cpu.CLDEMOTE, _bit(ecx, 25))
        self._add(Cpu.MOVDIRI, _bit(ecx, 27))
        self._add(Cpu.MOVDIR64B, _bit(ecx, 28))
        self._add(Cpu.UINTR, _bit(edx, 5))
        self._add(Cpu.SERIALIZE, _bit(edx, 14))
        self._add(Cpu.AMX_BF16, _bit(edx, 22))
        self._add(Cpu.AMX_TILE, _bit(edx, 24))
        self._add(Cpu.AMX_INT8, _bit(edx, 25))
        if max_sub_leaves < 1:
            return
        eax, _, _, edx = self._query(7, 1)
        self._add(Cpu.RAO_INT, _bit(eax, 3))
        self._add(Cpu.AVX_VNNI, _bit(eax, 4))
        self._add(Cpu.AVX512_BF16, self.has(Cpu.AVX512F) and _bit(eax, 5))
        self._add(Cpu.CMPCCXADD, _bit(eax, 7))
        self._add(Cpu.AMX_FP16, _bit(eax, 21))
        self._add(Cpu.AVX_IFMA, _bit(eax, 23))
        self._add(Cpu.AVX_VNNI_INT8, _bit(edx, 4))
        self._add(Cpu.AVX_NE_CONVERT, _bit(edx, 5))
        self._add(Cpu.PREFETCHITI, _bit(edx, 14))

    def _set_family(self) -> None:
        eax = self._query(1)[0]
        self.stepping = eax & 0xF
        self.model = (eax >> 4) & 0xF
        self.family = (eax >> 8) & 0xF
        self.ext_model = (eax >> 16) & 0xF
        self.ext_family = (eax >> 20) & 0xFF
        if self.family == 0x0F:
            self.display_family = self.family + self.ext_family
        else:
            self.display_family = self.family
        if self.family in (6, 0x0F):
            self.display_model = (self.ext_model << 4) + self.model
        else:
            self.display_model = self.model

    def _is_known_vendor(self) -> bool:
        return self.has(Cpu.INTEL) or self.has(Cpu.AMD)

    def _set_num_cores(self) -> None:
        if not self._is_known_vendor():
            return
        if self._query(0, 0)[0] < 0xB:
            # without x2APIC the core count cannot be determined
            self._num_cores = [0, 0]
            return
        self._x2apic_supported = True
        for subleaf in range(2):
            _, ebx, ecx, _ = self._query(0xB, subleaf)
            level = _extract(ecx, 8, 15)
            if level in (TopologyLevel.SMT, TopologyLevel.CORE):
                self._num_cores[level - 1] = _extract(ebx, 0, 15)
        # a hypervisor may zero out leaf 0xB
        smt = max(1, self._num_cores[0])
        self._num_cores = [smt, max(smt, self._num_cores[1])]

    def _add_cache(self, size: int, actual_logical_cores: int, smt_width: int) -> None:
        if smt_width == 0:
            raise CpuError("cannot determine the SMT width")
        self._cache_sizes.append(size)
        self._cores_sharing.append(max(actual_logical_cores // smt_width, 1))

    def _set_cache_hierarchy(self) -> None:
        if not self._is_known_vendor():
            return
        if self.has(Cpu.AMD):
            self._set_amd_caches()
        else:
            self._set_intel_caches()

    def _set_amd_caches(self) -> None:
        smt_width, logical_cores = self._num_cores
        # sub-leaves 0, 2, 3: L1 data, L2, L3 (1 is the instruction cache)
        for subleaf in (0, 2, 3):
            eax, ebx, ecx, _ = self._query(0x8000001D, subleaf)
            actual = _extract(eax, 14, 25) + 1
            if logical_cores != 0:
                actual = min(actual, logical_cores)
            self._add_cache(_cache_size(ebx, ecx), actual, smt_width)

    def _set_intel_caches(self) -> None:
        smt_width = 0
        logical_cores = 0
        if self._x2apic_supported:
            smt_width, logical_cores = self._num_cores
        subleaf = 0
        while len(self._cache_sizes) < _MAX_CACHE_LEVELS:
            eax, ebx, ecx, _ = self._query(0x4, subleaf)
            subleaf += 1
            cache_type = _extract(eax, 0, 4)
            if cache_type == _CACHE_NONE:
                break
            if cache_type not in (_CACHE_DATA, _CACHE_UNIFIED):
                continue
            actual = _extract(eax, 14, 25) + 1
            if logical_cores != 0:
                actual = min(actual, logical_cores)
            # the first data cache is never shared between cores
            if cache_type == _CACHE_DATA and smt_width == 0:
                smt_width = actual
            self._add_cache(_cache_size(ebx, ecx), actual, smt_width)

    def has(self, feature: CpuType) -> bool:
        """Return True if every feature in ``feature`` is present."""
        return (feature & self._type) == feature

    def num_cores(self, level: TopologyLevel) -> int:
        """Threads per core (SMT) or cores per package (CORE)."""
        if not self._x2apic_supported:
            raise CpuError("x2APIC is not supported")
        if level == TopologyLevel.SMT:
            return self._num_cores[0]
        if level == TopologyLevel.CORE:
            return self._num_cores[1] // self._num_cores[0]
        raise CpuError(f"unknown topology level: {level}")

    def data_cache_levels(self) -> int:
        """Number of data or unified cache levels found."""
        return len(self._cache_sizes)

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._cache_sizes):
            raise CpuError(f"bad cache level index: {index}")

    def cores_sharing_data_cache(self, index: int) -> int:
        """Number of cores sharing the data cache at ``index``."""
        self._check_index(index)
        return self._cores_sharing[index]

    def data_cache_size(self, index: int) -> int:
        """Size in bytes of the data cache at ``index``."""
        self._check_index(index)
        return self._cache_sizes[index]

    def family_string(self) -> str:
        """Describe the family, model and stepping fields."""
        return (
            f"family={self.family}, model={self.model:X}, stepping={self.stepping}, "
            f"extFamily={self.ext_family}, extModel={self.ext_model:X}\n"
            f"display:family={self.display_family:X}, model={self.display_model:X}"
        )

    def put_family(self) -> str:
        """Write the family description to standard output and return it."""
        text = self.family_string()
        sys.stdout.write(text + "\n")
        return text