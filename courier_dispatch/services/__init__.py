"""Services Layer — the imperative shell around core/.

Invariants:
    - Every mutation runs inside DispatchContext.mutation(): one lock, checks
      before writes, notifications after unlock
    - The simulation engine mutates only through OrderLifecycle
"""
