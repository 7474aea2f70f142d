"""
Core wiring.

- ports.py: Protocols the engines depend on
- state.py: AppState, the container the composition root fills in
"""
