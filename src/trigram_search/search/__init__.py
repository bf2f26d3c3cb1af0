"""
Trigram decomposition and similarity primitives.

- trigrams: normalization and scored trigram decomposition
- distance: normalized similarity metrics for result refinement
"""
