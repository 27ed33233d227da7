"""Encoding attribute flags for AVX/EVEX instructions and their textual form."""

from __future__ import annotations

import enum

__all__ = ["AVXType", "NONE", "get_pp", "type_to_string"]

# Sentinel used by the instruction tables for "no value".
NONE = 256


class AVXType(enum.IntFlag):
    """Bit flags describing how a vector instruction is encoded."""

    # low 3 bits: disp8*N compression factor
    T_N1 = 1
    T_N2 = 2
    T_N4 = 3
    T_N8 = 4
    T_N16 = 5
    T_N32 = 6
    T_NX_MASK = 7

    T_N_VL = 1 << 3  # N * (1, 2, 4) for VL
    T_DUP = 1 << 4  # N = (8, 32, 64)
    T_66 = 1 << 5  # pp = 1
    T_F3 = 1 << 6  # pp = 2
    T_F2 = (1 << 5) | (1 << 6)  # pp = 3
    T_ER_R = 1 << 7  # reg{er}
    T_0F = 1 << 8
    T_0F38 = 1 << 9
    T_0F3A = 1 << 10
    T_L0 = 1 << 11
    T_L1 = 1 << 12
    T_W0 = 1 << 13
    T_W1 = 1 << 14
    T_EW0 = 1 << 15
    T_EW1 = 1 << 16
    T_YMM = 1 << 17  # supports YMM, ZMM
    T_EVEX = 1 << 18
    T_ER_X = 1 << 19  # xmm{er}
    T_ER_Y = 1 << 20  # ymm{er}
    T_ER_Z = 1 << 21  # zmm{er}
    T_SAE_X = 1 << 22  # xmm{sae}
    T_SAE_Y = 1 << 23  # ymm{sae}
    T_SAE_Z = 1 << 24  # zmm{sae}
    T_MUST_EVEX = 1 << 25
    T_B32 = 1 << 26  # m32bcst
    T_B64 = 1 << 27  # m64bcst
    T_B16 = (1 << 26) | (1 << 27)  # m16bcst
    T_M_K = 1 << 28  # mem{k}
    T_VSIB = 1 << 29
    T_MEM_EVEX = 1 << 30  # use evex if mem
    T_FP16 = 1 << 31
    T_MAP5 = (1 << 31) | (1 << 8)
    T_MAP6 = (1 << 31) | (1 << 9)


_N_NAMES = ("T_N1", "T_N2", "T_N4", "T_N8", "T_N16", "T_N32")

# Flags rendered by a plain bit test, in output order.
_SIMPLE_AFTER_MAPS = (
    (AVXType.T_0F3A, "T_0F3A"),
    (AVXType.T_L0, "VEZ_L0"),
    (AVXType.T_L1, "VEZ_L1"),
    (AVXType.T_W0, "T_W0"),
    (AVXType.T_W1, "T_W1"),
    (AVXType.T_EW0, "T_EW0"),
    (AVXType.T_EW1, "T_EW1"),
    (AVXType.T_YMM, "T_YMM"),
    (AVXType.T_EVEX, "T_EVEX"),
    (AVXType.T_ER_X, "T_ER_X"),
    (AVXType.T_ER_Y, "T_ER_Y"),
    (AVXType.T_ER_Z, "T_ER_Z"),
    (AVXType.T_ER_R, "T_ER_R"),
    (AVXType.T_SAE_X, "T_SAE_X"),
    (AVXType.T_SAE_Y, "T_SAE_Y"),
    (AVXType.T_SAE_Z, "T_SAE_Z"),
    (AVXType.T_MUST_EVEX, "T_MUST_EVEX"),
)

_SIMPLE_TAIL = (
    (AVXType.T_M_K, "T_M_K"),
    (AVXType.T_VSIB, "T_VSIB"),
    (AVXType.T_MEM_EVEX, "T_MEM_EVEX"),
)

_PP_NAMES = {
    int(AVXType.T_66): "T_66",
    int(AVXType.T_F3): "T_F3",
    int(AVXType.T_F2): "T_F2",
}


def get_pp(type_: int) -> int:
    """Return the pp field: 1 for T_66, 2 for T_F3, 3 for T_F2."""
    return (int(type_) >> 5) & 3


def _names(type_: int):
    low = type_ & AVXType.T_NX_MASK
    if low:
        if low > len(_N_NAMES):
            raise ValueError(f"invalid disp8 factor bits: {low}")
        yield _N_NAMES[low - 1]
    if type_ & AVXType.T_N_VL:
        yield "T_N_VL"
    if type_ & AVXType.T_DUP:
        yield "T_DUP"
    pp = type_ & AVXType.T_F2
    if pp:
        yield _PP_NAMES[pp]
    fp16 = bool(type_ & AVXType.T_FP16)
    if type_ & AVXType.T_0F:
        yield "T_MAP5" if fp16 else "T_0F"
    if type_ & AVXType.T_0F38:
        yield "T_MAP6" if fp16 else "T_0F38"
    for flag, name in _SIMPLE_AFTER_MAPS:
        if type_ & flag:
            yield name
    b32 = type_ & AVXType.T_B32
    b64 = type_ & AVXType.T_B64
    if b32 and b64:
        yield "T_B16"
    elif b32:
        yield "T_B32"
    elif b64:
        yield "T_B64"
    for flag, name in _SIMPLE_TAIL:
        if type_ & flag:
            yield name


def type_to_string(type_: int) -> str:
    """Render a flag combination as a ``" | "``-joined list of flag names."""
    return " | ".join(_names(int(type_)))