"""Route Dependencies — hands the app's DispatchSystem to route handlers.

Invariants:
    - The system is created in the lifespan and stored on app.state.dispatch
    - Tests swap it with app.dependency_overrides[get_dispatch]
"""

from fastapi import Request

from courier_dispatch.services.dispatch_system import DispatchSystem


def get_dispatch(request: Request) -> DispatchSystem:
    system = getattr(request.app.state, "dispatch", None)
    if system is None:
        raise RuntimeError("Dispatch system not initialized")
    return system
