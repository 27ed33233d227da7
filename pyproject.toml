[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "jitkit"
version = "0.1.0"
description = "CPU feature detection from CPUID values, section timing, perf map output and encoding-flag tables for x86 JIT work"
requires-python = ">=3.10"
dependencies = []
keywords = ["cpuid", "x86", "jit", "avx", "profiling", "perf"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Hardware",
    "Topic :: Software Development :: Code Generators",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
jitkit-sortline = "jitkit.sortline:main"

[tool.hatch.build.targets.wheel]
packages = ["jitkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
