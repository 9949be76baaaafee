"""
ridepay_services -- Package init and public API.

Responsibility:
    Composition of kernel services and engines into the in-process entry
    points consumed by the request-handling layer.

Architecture position:
    Services -- top of the stack.

    Dependency direction:
        ridepay_services/ -> ridepay_kernel/, ridepay_engines/, ridepay_config/
        ridepay_kernel/   -> ridepay_services/ (FORBIDDEN)
        ridepay_engines/  -> ridepay_services/ (FORBIDDEN)
"""

from ridepay_services.workflow import DisputeResolution, RidePayWorkflow, workflow_scope

__all__ = ["DisputeResolution", "RidePayWorkflow", "workflow_scope"]
