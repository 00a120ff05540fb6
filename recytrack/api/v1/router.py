from fastapi import APIRouter

from recytrack.api.v1.endpoints import (
    intake,
    processing,
    samples,
    outputs,
    allocations,
    orders,
    containers,
    delivery_notes,
    material_flow,
)


api_router = APIRouter(prefix="/api/v1")

# ==================== Material Lifecycle ====================
api_router.include_router(
    intake.router,
    prefix="/intake",
    tags=["Intake"]
)

api_router.include_router(
    processing.router,
    prefix="/processing",
    tags=["Processing"]
)

api_router.include_router(
    samples.router,
    prefix="/samples",
    tags=["Samples"]
)

api_router.include_router(
    outputs.router,
    prefix="/outputs",
    tags=["Output Materials"]
)

# ==================== Orders & Allocation ====================
api_router.include_router(
    allocations.router,
    prefix="/allocations",
    tags=["Batch Allocation"]
)

api_router.include_router(
    orders.router,
    prefix="/orders",
    tags=["Orders"]
)

# ==================== Logistics ====================
api_router.include_router(
    containers.router,
    prefix="/containers",
    tags=["Containers"]
)

api_router.include_router(
    delivery_notes.router,
    prefix="/delivery-notes",
    tags=["Delivery Notes"]
)

# ==================== Traceability ====================
api_router.include_router(
    material_flow.router,
    prefix="/material-flow",
    tags=["Material Flow"]
)
