"""
Test suite for the incremental compilation fuzzer.

Focus areas:
- Commit linearization
- Output parsing strictness
- Cache tree comparison
- Replay stage ordering and evidence
"""
