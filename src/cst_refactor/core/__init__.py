"""
Core Package.

Contains the matching and rewriting engine:
- Fragments, metavariables and bindings
- The matcher and its equality services (structure plus resolution oracles)
- Substitution, the rebuild-on-write walker and the fold/find drivers
- The rule-running session engine and its tracer
"""
