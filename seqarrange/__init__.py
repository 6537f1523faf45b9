"""seqarrange — sequential spatio-temporal arrangement of objects on plates.

Packages:
  geometry   exact polygon utilities over rationals
  arrange    SMT-based placement, refinement, search and scheduling
  web        stateless HTTP API
"""

__version__ = "0.1.0"
