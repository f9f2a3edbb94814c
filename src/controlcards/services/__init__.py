"""Authorization-gated operation layer.

Learn: Every public method follows the same four steps:
1. authenticate the bearer token (before any store access)
2. check the caller's role against auth.policy.POLICY
3. run repository calls while holding the store lock
4. shape the result (AccountRead / CardRead) on the way out
"""
