# Services module
from recytrack.services.results import OperationResult, SideEffectOutcome
from recytrack.services.identifier_service import IdentifierGenerator, SequenceIdGenerator
from recytrack.services.material_flow_service import MaterialFlowService
from recytrack.services.intake_service import IntakeService
from recytrack.services.processing_service import ProcessingService
from recytrack.services.sample_service import SampleService
from recytrack.services.output_material_service import OutputMaterialService
from recytrack.services.allocation_service import AllocationService
from recytrack.services.order_service import OrderService
from recytrack.services.container_service import ContainerService
from recytrack.services.delivery_note_service import DeliveryNoteService

__all__ = [
    "OperationResult",
    "SideEffectOutcome",
    "IdentifierGenerator",
    "SequenceIdGenerator",
    "MaterialFlowService",
    "IntakeService",
    "ProcessingService",
    "SampleService",
    "OutputMaterialService",
    "AllocationService",
    "OrderService",
    "ContainerService",
    "DeliveryNoteService",
]
