# jitkit

This package has helpers for people who generate x86 machine code at run time:

- `jitkit.cpu` detects CPU features, family, topology and data caches from the
  CPUID and XCR0 register values that you supply.
- `jitkit.clock` provides `Clock`, a timer that adds up the time spent in
  repeated sections.
- `jitkit.profiler` writes `perf`-style JIT symbol map files.
- `jitkit.avxtype` holds the instruction-encoding flags (`AVXType`) and their
  readable names.
- `jitkit.bin2hex` provides named binary byte constants, `B00000000` to
  `B11111111`.
- `jitkit.sortline` removes duplicate lines of text and sorts the rest. It also
  provides the `jitkit-sortline` command.

## Install

```
pip install .
```

## CPU features

`Cpu` takes two callables. The first is `cpuid(leaf, subleaf)`, which returns
`(eax, ebx, ecx, edx)`. The second is `xgetbv()`, which returns XCR0. If you
leave either one out, every value it would supply is read as zero.

```python
from jitkit.cpu import Cpu, TopologyLevel

def cpuid(leaf, subleaf):
    # For example, look the values up in a recorded register dump.
    return (0, 0, 0, 0)

cpu = Cpu(cpuid, lambda: 0)
if cpu.has(Cpu.AVX2):
    print("AVX2 available")
print(cpu.family_string())
```

The features are `CpuType` class attributes on `Cpu`, such as `Cpu.SSE42`,
`Cpu.AVX512F`, `Cpu.AMX_TILE`, `Cpu.INTEL` and `Cpu.AMD`. You can combine them
with `|`. `cpu.has(a | b)` is true only when the CPU has both.

The family fields are `family`, `model`, `stepping`, `ext_family`,
`ext_model`, `display_family` and `display_model`. `put_family()` prints them
and also returns the text.

`num_cores(TopologyLevel.SMT)` and `num_cores(TopologyLevel.CORE)` need CPUID
leaf 0xB. The cache queries are `data_cache_levels()`, `data_cache_size(i)`
and `cores_sharing_data_cache(i)`. They raise `CpuError` when the
information is missing or the index is out of range.

## Timing

By default `Clock` counts nanoseconds from `time.perf_counter_ns`. You can
pass another tick source as `Clock(timer)`.

```python
from jitkit.clock import Clock

clock = Clock()
for _ in range(10):
    with clock:          # same as clock.begin() ... clock.end()
        work()
print(clock.count, clock.clock)
clock.clear()
```

## Profiler maps

```python
from jitkit.profiler import Profiler, ProfilerMode

with Profiler("/tmp") as prof:
    prof.init(ProfilerMode.PERF)
    prof.set("my_kernel", 0x7F0000001000, 0x80)
    prof.set_start_addr(0x7F0000002000)
    prof.set_continuous("next", 0x7F0000002040)
```

Each record is appended as a line such as `7f0000001000 80 my_kernel` to
`perf-<pid>.map` in the given directory (`prof.map_path`). Names shorter than
three characters, including the suffix set by `set_name_suffix`, are padded
with `_`. `set_continuous` records a function that starts where the previous
one ended.

## Encoding flags

```python
from jitkit.avxtype import AVXType, type_to_string, get_pp

t = AVXType.T_66 | AVXType.T_0F38 | AVXType.T_W0
print(type_to_string(t))   # T_66 | T_0F38 | T_W0
print(get_pp(t))           # 1
```

## Binary constants

```python
from jitkit.bin2hex import binary_constant, binary_constants

binary_constant("B00000101")     # 5
len(binary_constants())          # 256
```

## Sorting lines

```
jitkit-sortline < names.txt
```

The command reads standard input. It writes each distinct non-empty line
once, in sorted order. From Python, `sort_lines(lines)` returns the same list.

## What this package does not do

- It does not assemble or run machine code. It has no code generator,
  registers, labels or executable memory.
- It does not execute the CPUID or XGETBV instructions itself. `Cpu` only
  interprets the register values that you give it.
- `Clock` does not read the processor's time-stamp counter.
- `ProfilerMode.VTUNE` is accepted but does nothing. Selecting it leaves the
  profiler inactive.