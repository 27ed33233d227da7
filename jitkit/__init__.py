"""CPU feature detection from CPUID values, section timing, perf map output, encoding flags and line sorting for x86 code generation."""

__version__ = "0.1.0"
__all__ = ["avxtype", "bin2hex", "clock", "cpu", "profiler", "sortline"]