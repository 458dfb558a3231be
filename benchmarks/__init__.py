"""
Benchmark suite for smartserialize performance.

Compares bounded serialization against standard JSON encoders including:
- Python standard library json
- orjson (Rust-optimized)
- ujson (ultra-fast JSON)

Measures encoding speed and memory usage across different value shapes, and
how much depth and size limits save on broad inputs.
"""
