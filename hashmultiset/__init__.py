"""Hash based multisets with pluggable count types and hashing strategies."""
